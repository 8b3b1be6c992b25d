from collections.abc import Callable, Collection, Iterable, Sequence

import numpy as np
import pandas as pd

from ..constants import DEFAULT_TOP_K, IID, UID
from ..data.pool import PopularItemPool
from ..data.schemas import Candidate
from ..utils.asserts import assert_columns, assert_type

Generator = Callable[[Collection], pd.DataFrame | Iterable[Candidate]]
"""A candidate generator maps a collection of user IDs to (user, item) pairs."""


def _check_top_k(top_k: int) -> None:
    if not (isinstance(top_k, int) and top_k > 0):
        raise ValueError("`top_k` has to be a positive integer")


def _cross(
    users: Collection, iids: np.ndarray, user_col: str, item_col: str
) -> pd.DataFrame:
    uids = np.asarray(list(users))
    return pd.DataFrame(
        {user_col: np.repeat(uids, len(iids)), item_col: np.tile(iids, len(uids))}
    )


def popularity_generator(
    pool: PopularItemPool,
    top_k: int = DEFAULT_TOP_K,
    user_col: str = UID,
    item_col: str = IID,
) -> Generator:
    """Recommend the ``top_k`` most popular items to every user."""
    assert_type(pool, PopularItemPool)
    _check_top_k(top_k)
    iids = pool.iids[:top_k]

    def generate(users: Collection) -> pd.DataFrame:
        return _cross(users, iids, user_col, item_col)

    generate.__name__ = "popularity"
    return generate


def curated_generator(
    iids: Sequence,
    top_k: int = DEFAULT_TOP_K,
    user_col: str = UID,
    item_col: str = IID,
) -> Generator:
    """Recommend the first ``top_k`` items of a curated list to every user."""
    _check_top_k(top_k)
    curated = pd.unique(np.asarray(iids))[:top_k]

    def generate(users: Collection) -> pd.DataFrame:
        return _cross(users, curated, user_col, item_col)

    generate.__name__ = "curation"
    return generate


def precomputed_generator(
    recommendations: pd.DataFrame,
    top_k: int = DEFAULT_TOP_K,
    score_col: str | None = None,
    user_col: str = UID,
    item_col: str = IID,
    name: str = "precomputed",
) -> Generator:
    """Serve recommendations computed elsewhere, e.g. by ALS or content similarity.

    :param recommendations: A frame of (user, item) rows, optionally scored.
    :param top_k: The maximum number of items per user.
    :param score_col: The column ranking the items of a user, higher first. Without
        it the row order is kept.
    :param name: The name reported in logs.
    """
    _check_top_k(top_k)
    columns = [user_col, item_col] + ([score_col] if score_col else [])
    assert_columns(recommendations, columns)
    ranked = recommendations
    if score_col is not None:
        ranked = ranked.sort_values(by=score_col, ascending=False, kind="stable")
    ranked = ranked.groupby(user_col, sort=False).head(top_k)[[user_col, item_col]]

    def generate(users: Collection) -> pd.DataFrame:
        return ranked[ranked[user_col].isin(list(users))].reset_index(drop=True)

    generate.__name__ = name
    return generate
