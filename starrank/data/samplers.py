import math
from dataclasses import KW_ONLY, dataclass
from functools import partial
from typing import Any

import numpy as np
import pandas as pd

from ..constants import (
    DEFAULT_NEGATIVE_POSITIVE_RATIO,
    DEFAULT_NEGATIVE_VALUE,
    IID,
    LABEL,
    UID,
)
from ..errors import ConfigurationError, InsufficientPopulationError
from ..utils.asserts import assert_columns, assert_type
from ..utils.data import parallelize, partition_by_group
from ..utils.logger import logger
from .pool import PopularItemPool

Shortfall = tuple[Any, int, int]
"""A user who could not receive every requested negative: (uid, requested, sampled)."""


def num_negatives(num_positives: int, ratio: float) -> int:
    """The number of negatives requested for a user with ``num_positives`` items."""
    # round first so that e.g. 0.1 * 30 does not become 4
    return math.ceil(round(ratio * num_positives, 9))


def user_rng(seed: int | None, uid) -> np.random.Generator:
    """A random generator for one user, independent of how users are partitioned."""
    if seed is None:
        return np.random.default_rng()
    uid = int(uid)
    # the sign is a separate word so that u and -u get different streams
    return np.random.default_rng([seed, int(uid < 0), abs(uid)])


def sample_negative_iids(
    pool: PopularItemPool,
    positive_iids: np.ndarray,
    ratio: float,
    rng: np.random.Generator,
) -> tuple[np.ndarray, int]:
    """Sample negative items for one user without replacement.

    Items already positive for the user are removed from the pool before drawing,
    so no sampled negative can collide with a positive. When fewer eligible items
    remain than requested, all of them are returned.

    :param pool: The popular item pool.
    :param positive_iids: The positive item IDs of the user.
    :param ratio: The negative/positive ratio.
    :param rng: The random generator of the user.
    :return: The sampled item IDs and the requested number of negatives.
    """
    requested = num_negatives(len(positive_iids), ratio)
    eligible = pool.eligible(positive_iids)
    size = min(requested, len(eligible))
    return rng.choice(eligible, size=size, replace=False), requested


def _sample_partition(
    positives: pd.DataFrame,
    pool: PopularItemPool,
    user_col: str,
    item_col: str,
    ratio: float,
    seed: int | None,
) -> tuple[list[np.ndarray], list[np.ndarray], list[Shortfall]]:
    neg_uids: list[np.ndarray] = []
    neg_iids: list[np.ndarray] = []
    shortfalls: list[Shortfall] = []
    for uid, iids in positives.groupby(user_col, sort=True)[item_col]:
        sampled, requested = sample_negative_iids(
            pool, iids.to_numpy(), ratio, user_rng(seed, uid)
        )
        if len(sampled) < requested:
            shortfalls.append((uid, requested, len(sampled)))
        neg_uids.append(np.repeat(np.asarray([uid]), len(sampled)))
        neg_iids.append(sampled)
    return neg_uids, neg_iids, shortfalls


@dataclass(frozen=True, slots=True)
class NegativeBalancer:
    """Balance positive-only interactions with negatives sampled from popular items.

    For each user with ``P`` positive items, ``ceil(negative_positive_ratio * P)``
    distinct items are drawn from the popular item pool, excluding the user's own
    positives, and labeled with ``negative_value``.
    """

    pool: PopularItemPool
    _: KW_ONLY
    user_col: str = UID
    item_col: str = IID
    label_col: str = LABEL
    negative_value: float = DEFAULT_NEGATIVE_VALUE
    negative_positive_ratio: float = DEFAULT_NEGATIVE_POSITIVE_RATIO
    seed: int | None = None
    num_workers: int = 1
    strict: bool = False

    def __post_init__(self) -> None:
        assert_type(self.pool, PopularItemPool)
        assert_type(self.negative_positive_ratio, (int, float))
        if not self.negative_positive_ratio > 0:
            raise ConfigurationError(
                "negative_positive_ratio must be positive, got"
                f" {self.negative_positive_ratio}."
            )
        if self.seed is not None:
            assert_type(self.seed, int)
            if self.seed < 0:
                raise ConfigurationError(f"seed must not be negative, got {self.seed}.")
        assert_type(self.num_workers, int)
        if self.num_workers < 1:
            raise ConfigurationError("num_workers must be at least 1.")

    def __call__(self, interactions: pd.DataFrame) -> pd.DataFrame:
        """Return the positives together with the sampled negatives.

        :param interactions: The positive interactions.
        :raises InsufficientPopulationError: If ``strict`` and the pool cannot supply
            every requested negative of a user.
        :return: A frame with the user, item and label columns.
        """
        logger.info("Balancing negative samples by %s ...", repr(self))
        positives = self.positives(interactions)
        negatives = self.sample(positives)
        balanced = pd.concat([positives, negatives], ignore_index=True)
        logger.debug("  # positive samples: %d", len(positives))
        logger.debug("  # negative samples: %d", len(negatives))
        return balanced

    def positives(self, interactions: pd.DataFrame) -> pd.DataFrame:
        assert_columns(interactions, [self.user_col, self.item_col])
        columns = [self.user_col, self.item_col]
        if self.label_col in interactions.columns:
            columns.append(self.label_col)
        positives = interactions[columns].drop_duplicates(
            subset=[self.user_col, self.item_col], keep="first", ignore_index=True
        )
        if len(positives) < len(interactions):
            logger.debug(
                "Dropped duplicate interactions: %d -> %d",
                len(interactions),
                len(positives),
            )
        if self.label_col not in positives.columns:
            positives[self.label_col] = 1.0
        return positives

    def sample(self, positives: pd.DataFrame) -> pd.DataFrame:
        """Sample negatives for every user in ``positives``.

        :param positives: Deduplicated positive interactions.
        :return: A frame of negative samples.
        """
        func = partial(
            _sample_partition,
            pool=self.pool,
            user_col=self.user_col,
            item_col=self.item_col,
            ratio=float(self.negative_positive_ratio),
            seed=self.seed,
        )
        partitions = partition_by_group(positives, self.user_col, self.num_workers)
        results = parallelize(partitions, func, self.num_workers)

        neg_uids: list[np.ndarray] = []
        neg_iids: list[np.ndarray] = []
        shortfalls: list[Shortfall] = []
        for uids, iids, partition_shortfalls in results:
            neg_uids.extend(uids)
            neg_iids.extend(iids)
            shortfalls.extend(partition_shortfalls)

        self._report_shortfalls(shortfalls)

        uid_dtype = positives[self.user_col].dtype
        iid_dtype = self.pool.iids.dtype
        return pd.DataFrame(
            {
                self.user_col: np.concatenate(neg_uids).astype(uid_dtype)
                if neg_uids
                else np.empty(0, dtype=uid_dtype),
                self.item_col: np.concatenate(neg_iids).astype(iid_dtype)
                if neg_iids
                else np.empty(0, dtype=iid_dtype),
                self.label_col: float(self.negative_value),
            }
        )

    def _report_shortfalls(self, shortfalls: list[Shortfall]) -> None:
        if not shortfalls:
            return
        if self.strict:
            uid, requested, sampled = shortfalls[0]
            raise InsufficientPopulationError(uid, requested, sampled)
        for uid, requested, sampled in shortfalls:
            logger.debug(
                "  user %s: requested %d negatives, sampled %d", uid, requested, sampled
            )
        logger.warning(
            "%d users were under-sampled because the popular item pool (%d items)"
            " ran out of eligible items",
            len(shortfalls),
            len(self.pool),
        )


def sample_negatives(
    interactions: pd.DataFrame,
    pool: PopularItemPool,
    ratio: float = DEFAULT_NEGATIVE_POSITIVE_RATIO,
    seed: int | None = None,
) -> pd.DataFrame:
    """Balance ``interactions`` with negatives using the default columns."""
    return NegativeBalancer(pool, negative_positive_ratio=ratio, seed=seed)(
        interactions
    )
