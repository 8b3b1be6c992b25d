from collections.abc import Iterable
from typing import TypeGuard, TypeVar

import pandas as pd

KT = TypeVar("KT")
VT = TypeVar("VT")


def assert_type(value, expected_type: type | tuple[type, ...]) -> None:
    if not isinstance(value, expected_type):
        raise TypeError(
            f"Expected {expected_type}, got {type(value).__name__} ({value!r})."
        )


def assert_columns(frame: pd.DataFrame, columns: Iterable[str]) -> None:
    assert_type(frame, pd.DataFrame)
    missing = [column for column in columns if column not in frame.columns]
    if missing:
        raise ValueError(f"Missing columns {missing} in frame {list(frame.columns)}.")


def is_typed_dict(
    value, key_type: type[KT], value_type: type[VT]
) -> TypeGuard[dict[KT, VT]]:
    if not isinstance(value, dict):
        return False
    return all(
        isinstance(key, key_type) and isinstance(value, value_type)
        for key, value in value.items()
    )
