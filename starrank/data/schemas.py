from collections.abc import Iterable, Mapping, Sequence
from dataclasses import astuple, dataclass, fields
from typing import Any

import pandas as pd

from ..constants import IID, ITEMS, LABEL, PROBABILITY, UID


@dataclass(frozen=True, slots=True)
class Interaction:
    """An observed (user, item) interaction from the implicit feedback log."""

    user_id: int
    item_id: int
    label: float = 1.0


@dataclass(frozen=True, slots=True)
class LabeledExample(Interaction):
    """An interaction labeled for training, either observed or sampled."""


@dataclass(frozen=True, slots=True)
class Candidate:
    """An unlabeled (user, item) pair waiting to be scored."""

    user_id: int
    item_id: int


@dataclass(frozen=True, slots=True)
class ScoredCandidate(Candidate):
    """A candidate with its probability of being positive and its rank."""

    probability: float = 0.0
    rank: int = 0


@dataclass(frozen=True, slots=True)
class UserItems:
    """A user with an ordered sequence of items, either actual or predicted."""

    user_id: int
    items: tuple[int, ...]


_COLUMNS: dict[str, str] = {
    "user_id": UID,
    "item_id": IID,
    "label": LABEL,
    "probability": PROBABILITY,
    "items": ITEMS,
}


def to_frame(records: Iterable[Any], record_type: type) -> pd.DataFrame:
    """Convert records of a schema dataclass to a DataFrame with the default
    column names.

    :param records: The records.
    :param record_type: The dataclass of the records.
    :return: The DataFrame with one row per record.
    """
    names = [f.name for f in fields(record_type)]
    columns = [_COLUMNS.get(name, name) for name in names]
    rows = [astuple(record) for record in records]
    return pd.DataFrame.from_records(rows, columns=columns)


def user_items_from_mapping(mapping: Mapping[Any, Sequence]) -> list[UserItems]:
    return [UserItems(user_id, tuple(items)) for user_id, items in mapping.items()]


def user_items_to_mapping(
    user_items: Mapping[Any, Sequence] | Iterable[UserItems],
) -> dict[Any, list]:
    if isinstance(user_items, Mapping):
        return {user_id: list(items) for user_id, items in user_items.items()}
    return {row.user_id: list(row.items) for row in user_items}
