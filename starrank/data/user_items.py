from typing import Any

import pandas as pd

from ..constants import DEFAULT_TOP_K, IID, ITEMS, LABEL, PROBABILITY, UID
from ..errors import ConfigurationError
from ..utils.asserts import assert_columns


def _check_k(k: int) -> None:
    if not (isinstance(k, int) and k > 0):
        raise ConfigurationError(f"`k` has to be a positive integer, got {k!r}.")


def _group_items(frame: pd.DataFrame, user_col: str, item_col: str) -> dict[Any, list]:
    # groupby keeps the row order inside each group
    grouped = frame.groupby(user_col, sort=True)[item_col].agg(list)
    return {uid: list(iids) for uid, iids in grouped.items()}


def into_user_predicted_items(
    scored: pd.DataFrame,
    *,
    user_col: str = UID,
    item_col: str = IID,
    score_col: str = PROBABILITY,
    k: int = DEFAULT_TOP_K,
) -> dict[Any, list]:
    """Rank each user's scored items by descending score and keep the top ``k``.

    Items with equal scores keep the order in which they appear in ``scored``. A
    (user, item) pair scored more than once keeps its highest score.

    :param scored: A frame of scored candidates.
    :return: A mapping from user ID to the ranked item IDs.
    """
    _check_k(k)
    assert_columns(scored, [user_col, item_col, score_col])
    ranked = scored.sort_values(by=score_col, ascending=False, kind="stable")
    ranked = ranked.drop_duplicates(subset=[user_col, item_col], keep="first")
    ranked = ranked.groupby(user_col, sort=False).head(k)
    return _group_items(ranked, user_col, item_col)


def into_user_actual_items(
    interactions: pd.DataFrame,
    *,
    user_col: str = UID,
    item_col: str = IID,
    label_col: str = LABEL,
    order_col: str | None = None,
    k: int = DEFAULT_TOP_K,
) -> dict[Any, list]:
    """Collect up to ``k`` relevant items for each user.

    Rows with a non-positive label are ignored when ``label_col`` exists. With
    ``order_col`` the most recent (largest) values come first.

    :param interactions: The held-out interactions.
    :return: A mapping from user ID to the relevant item IDs.
    """
    _check_k(k)
    assert_columns(interactions, [user_col, item_col])
    if label_col in interactions.columns:
        interactions = interactions[interactions[label_col] > 0]
    if order_col is not None:
        assert_columns(interactions, [order_col])
        interactions = interactions.sort_values(
            by=order_col, ascending=False, kind="stable"
        )
    interactions = interactions.drop_duplicates(subset=[user_col, item_col])
    interactions = interactions.groupby(user_col, sort=False).head(k)
    return _group_items(interactions, user_col, item_col)


def user_items_to_frame(
    user_items: dict[Any, list], user_col: str = UID, items_col: str = ITEMS
) -> pd.DataFrame:
    return pd.DataFrame(
        {user_col: list(user_items.keys()), items_col: list(user_items.values())}
    )
