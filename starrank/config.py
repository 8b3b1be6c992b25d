import dataclasses
import datetime
from dataclasses import asdict, dataclass, field
from os import PathLike
from pathlib import Path
from typing import Any

import yaml

from .constants import (
    CACHE_DIR,
    CONFIG_YAML,
    DEFAULT_NEGATIVE_POSITIVE_RATIO,
    DEFAULT_NEGATIVE_VALUE,
    DEFAULT_SEED,
    DEFAULT_TOP_K,
    IID,
    LABEL,
    UID,
)
from .errors import ConfigurationError
from .metrics.functional import METRICS
from .utils.asserts import is_typed_dict
from .utils.logger import logger


def _today() -> str:
    return datetime.date.today().strftime("%Y%m%d")


@dataclass(frozen=True, kw_only=True, slots=True)
class RankerConfig:
    """Parameters of a ranking run."""

    data_dir: str = str(CACHE_DIR)
    """The directory holding the input data and the cached intermediate frames."""
    today: str = field(default_factory=_today)
    """The date stamp of the cached intermediate frames."""

    user_col: str = UID
    item_col: str = IID
    label_col: str = LABEL

    top_k: int = DEFAULT_TOP_K
    """The number of items recommended to and evaluated for each user."""
    metric_name: str = "NDCG@k"
    """The name of the ranking metric."""

    negative_positive_ratio: float = DEFAULT_NEGATIVE_POSITIVE_RATIO
    negative_value: float = DEFAULT_NEGATIVE_VALUE
    popular_pool_size: int | None = None
    """The maximum size of the popular item pool, ``None`` for no limit."""
    num_workers: int = 1
    """The number of processes sampling negatives."""

    seed: int | None = DEFAULT_SEED
    test_ratio: float = 0.2

    generator_timeout: float | None = None
    """Seconds to wait for all candidate generators, ``None`` to wait forever."""

    max_iter: int = 10
    reg_param: float = 0.0
    standardization: bool = True

    def __post_init__(self) -> None:
        # YAML reads an unquoted date stamp as an integer
        object.__setattr__(self, "today", str(self.today))
        self.validate()

    def validate(self) -> None:
        """Check every parameter.

        :raises ConfigurationError: If a parameter is invalid.
        """
        if not (isinstance(self.top_k, int) and self.top_k > 0):
            raise ConfigurationError(f"top_k must be a positive integer: {self.top_k}")
        if self.metric_name not in METRICS:
            raise ConfigurationError(
                f"Unknown metric {self.metric_name!r}, expected one of {list(METRICS)}."
            )
        if not self.negative_positive_ratio > 0:
            raise ConfigurationError(
                "negative_positive_ratio must be positive:"
                f" {self.negative_positive_ratio}"
            )
        if self.popular_pool_size is not None and self.popular_pool_size <= 0:
            raise ConfigurationError("popular_pool_size must be positive or null.")
        if not (isinstance(self.num_workers, int) and self.num_workers >= 1):
            raise ConfigurationError("num_workers must be at least 1.")
        if self.seed is not None and not (
            isinstance(self.seed, int) and self.seed >= 0
        ):
            raise ConfigurationError(
                f"seed must be a non-negative integer or null: {self.seed}"
            )
        if not 0 < self.test_ratio < 1:
            raise ConfigurationError(f"test_ratio must be in (0, 1): {self.test_ratio}")
        if self.generator_timeout is not None and not self.generator_timeout > 0:
            raise ConfigurationError("generator_timeout must be positive or null.")
        if not (isinstance(self.max_iter, int) and self.max_iter > 0):
            raise ConfigurationError("max_iter must be a positive integer.")
        if self.reg_param < 0:
            raise ConfigurationError("reg_param must not be negative.")

    def cache_path(self, name: str) -> Path:
        """The date-stamped path of a cached intermediate result."""
        return Path(self.data_dir).expanduser() / self.today / name

    def replace(self, **changes: Any) -> "RankerConfig":
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> "RankerConfig":
        if not is_typed_dict(values, str, object):
            raise ConfigurationError("A config must be a mapping of parameter names.")
        names = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(values) - names)
        if unknown:
            raise ConfigurationError(f"Unknown config parameters: {unknown}")
        try:
            return cls(**values)
        except TypeError as e:
            raise ConfigurationError(str(e)) from e

    @classmethod
    def from_yaml(cls, path: str | PathLike) -> "RankerConfig":
        """Load a config from a YAML file, or from ``config.yaml`` in a directory.

        :param path: The YAML file or its directory.
        :return: The validated config.
        """
        path = Path(path)
        if path.is_dir():
            path = path / CONFIG_YAML
        logger.info(f"Loading config from {path} ...")
        with open(path, "r", encoding="utf-8") as f:
            values = yaml.safe_load(f) or {}
        return cls.from_dict(values)

    def to_yaml(self, path: str | PathLike) -> None:
        path = Path(path)
        if path.is_dir():
            path = path / CONFIG_YAML
        logger.info(f"Saving config to {path} ...")
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(asdict(self), f, sort_keys=False)
