from dataclasses import KW_ONLY, dataclass, field

import numpy as np
import torch as th
from torch import nn

from ..constants import DEFAULT_SEED
from ..utils.logger import logger


@dataclass(slots=True)
class LogisticRegressionClassifier:
    """Binary logistic regression fitted with full-batch L-BFGS.

    Labels greater than zero are the positive class.
    """

    _: KW_ONLY
    max_iter: int = 10
    reg_param: float = 0.0
    standardization: bool = True
    seed: int | None = DEFAULT_SEED

    linear: nn.Linear | None = field(default=None, init=False, repr=False)
    mean: th.Tensor | None = field(default=None, init=False, repr=False)
    std: th.Tensor | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if not (isinstance(self.max_iter, int) and self.max_iter > 0):
            raise ValueError("`max_iter` has to be a positive integer")
        if self.reg_param < 0:
            raise ValueError("`reg_param` must not be negative")

    def _prepare(self, features: np.ndarray) -> th.Tensor:
        x = th.as_tensor(np.asarray(features, dtype=np.float32))
        if x.ndim != 2:
            raise ValueError("features must be a two-dimensional array")
        if self.mean is not None and self.std is not None:
            x = (x - self.mean) / self.std
        return x

    def fit(
        self, features: np.ndarray, labels: np.ndarray
    ) -> "LogisticRegressionClassifier":
        logger.info("Fitting %s ...", repr(self))
        if self.seed is not None:
            th.manual_seed(self.seed)

        x = th.as_tensor(np.asarray(features, dtype=np.float32))
        y = th.as_tensor((np.asarray(labels) > 0).astype(np.float32))
        if x.ndim != 2 or len(x) != len(y):
            raise ValueError("features and labels do not match")

        self.mean, self.std = None, None
        if self.standardization:
            self.mean = x.mean(dim=0)
            std = x.std(dim=0, correction=0)
            self.std = th.where(std > 0, std, th.ones_like(std))
            x = (x - self.mean) / self.std

        self.linear = nn.Linear(x.size(1), 1)
        nn.init.zeros_(self.linear.weight)
        nn.init.zeros_(self.linear.bias)
        loss_fn = nn.BCEWithLogitsLoss()
        optimizer = th.optim.LBFGS(self.linear.parameters(), max_iter=self.max_iter)

        def closure() -> th.Tensor:
            optimizer.zero_grad()
            loss = loss_fn(self.linear(x).squeeze(1), y)
            if self.reg_param > 0:
                loss = loss + 0.5 * self.reg_param * self.linear.weight.pow(2).sum()
            loss.backward()
            return loss

        loss = optimizer.step(closure)
        logger.debug("  training loss: %.6f", float(loss))
        return self

    def predict_proba(self, features: np.ndarray) -> np.ndarray:
        """Return the probability of the positive class of each row."""
        if self.linear is None:
            raise ValueError("The classifier is not fitted yet.")
        x = self._prepare(features)
        with th.no_grad():
            return th.sigmoid(self.linear(x).squeeze(1)).numpy().astype(np.float64)
