from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ..constants import IID
from ..utils.asserts import assert_columns, assert_type
from ..utils.logger import logger


@dataclass(frozen=True, slots=True)
class PopularItemPool:
    """An ordered, deduplicated and read-only pool of globally popular item IDs.

    The pool is the universe negative items are sampled from. It is built once per
    run and shared by all sampling workers, so the underlying array is marked as
    non-writeable.
    """

    iids: np.ndarray

    def __post_init__(self) -> None:
        iids = np.asarray(self.iids)
        if iids.ndim != 1:
            raise ValueError("The item IDs of a pool must be one-dimensional.")
        # keep the first occurrence of each item ID
        _, first_indices = np.unique(iids, return_index=True)
        iids = iids[np.sort(first_indices)].copy()
        iids.flags.writeable = False
        object.__setattr__(self, "iids", iids)

    def __len__(self) -> int:
        return len(self.iids)

    def __iter__(self) -> Iterator:
        return iter(self.iids)

    def __contains__(self, iid) -> bool:
        return bool(np.any(self.iids == iid))

    def __repr__(self) -> str:
        return f"PopularItemPool(size={len(self)})"

    def eligible(self, exclude) -> np.ndarray:
        """Return the item IDs not in ``exclude``, in pool order.

        :param exclude: The item IDs to exclude.
        :return: A new array of eligible item IDs.
        """
        exclude = np.asarray(list(exclude) if isinstance(exclude, set) else exclude)
        if exclude.size == 0:
            return self.iids.copy()
        return self.iids[~np.isin(self.iids, exclude)]

    @classmethod
    def from_popularity(
        cls,
        frame: pd.DataFrame,
        score_col: str,
        item_col: str = IID,
        size: int | None = None,
        min_score: float | None = None,
    ) -> "PopularItemPool":
        """Build a pool from a popularity ranking, such as stargazer counts.

        Items are ordered by descending score; ties keep their order in ``frame``.

        :param frame: A frame with one row per item.
        :param score_col: The column of popularity scores.
        :param item_col: The column of item IDs.
        :param size: The maximum size of the pool.
        :param min_score: The minimum score an item needs to enter the pool.
        :return: The pool.
        """
        assert_columns(frame, [item_col, score_col])
        if size is not None and size <= 0:
            raise ValueError("`size` has to be a positive integer or None")
        if min_score is not None:
            frame = frame[frame[score_col] >= min_score]
        ranked = frame.sort_values(by=score_col, ascending=False, kind="stable")
        ranked = ranked.drop_duplicates(subset=item_col, keep="first")
        iids = ranked[item_col].to_numpy()
        if size is not None:
            iids = iids[:size]
        logger.debug("Built popular item pool of %d items", len(iids))
        return cls(iids)

    @classmethod
    def from_interactions(
        cls,
        interactions: pd.DataFrame,
        item_col: str = IID,
        size: int | None = None,
    ) -> "PopularItemPool":
        """Build a pool by ranking items on their number of interactions.

        Ties are broken by ascending item ID.

        :param interactions: The interaction frame.
        :param item_col: The column of item IDs.
        :param size: The maximum size of the pool.
        :return: The pool.
        """
        assert_type(interactions, pd.DataFrame)
        counts = interactions[item_col].value_counts(sort=False)
        ranked = pd.DataFrame({item_col: counts.index, "count": counts.to_numpy()})
        ranked = ranked.sort_values(by=item_col, kind="stable")
        return cls.from_popularity(ranked, "count", item_col=item_col, size=size)
