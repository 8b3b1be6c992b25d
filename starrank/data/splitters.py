from dataclasses import KW_ONLY, dataclass, field

import numpy as np
import pandas as pd

from ..constants import DEFAULT_SEED
from ..errors import ConfigurationError
from ..utils.asserts import assert_type
from ..utils.logger import logger


@dataclass(frozen=True, slots=True)
class RandomSplitter:
    """Randomly split the rows of a frame by weights, e.g. ``(0.8, 0.2)``."""

    ratio: tuple[float, ...] = (0.8, 0.2)
    _: KW_ONLY
    seed: int | None = DEFAULT_SEED
    rng: np.random.Generator = field(init=False, repr=False, hash=False, compare=False)

    def __post_init__(self) -> None:
        assert_type(self.ratio, tuple)
        if len(self.ratio) < 2:
            raise ConfigurationError("A split needs at least two weights.")
        if any(r <= 0 for r in self.ratio):
            raise ConfigurationError(f"Split weights must be positive: {self.ratio}.")
        if self.seed is not None and self.seed < 0:
            raise ConfigurationError(f"seed must not be negative, got {self.seed}.")
        normalized_ratio = tuple(r / sum(self.ratio) for r in self.ratio)
        object.__setattr__(self, "ratio", normalized_ratio)
        object.__setattr__(self, "rng", np.random.default_rng(self.seed))

    def __call__(self, frame: pd.DataFrame) -> list[pd.DataFrame]:
        logger.info("Splitting data by %s ...", repr(self))
        assert_type(frame, pd.DataFrame)
        perm_indices = self.rng.permutation(len(frame))
        bounds = np.floor(np.cumsum(self.ratio)[:-1] * len(frame)).astype(int)
        splits = [
            frame.iloc[np.sort(indices)].reset_index(drop=True)
            for indices in np.split(perm_indices, bounds)
        ]
        for i, split in enumerate(splits):
            logger.debug("  # rows in split %d: %d", i, len(split))
        return splits
