from typing import Any


class StarRankError(Exception):
    """Base class of all errors raised by StarRank."""


class ConfigurationError(StarRankError, ValueError):
    """An invalid parameter detected before any computation starts."""


class InsufficientPopulationError(StarRankError):
    """The popular item pool cannot supply the requested negatives for a user."""

    def __init__(self, user_id: Any, requested: int, available: int) -> None:
        super().__init__(
            f"User {user_id} requested {requested} negative items but only"
            f" {available} are available."
        )
        self.user_id = user_id
        self.requested = requested
        self.available = available


class GeneratorFailure(StarRankError):
    """A candidate generator raised, timed out or returned malformed data."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Generator {name} failed: {reason}")
        self.name = name
        self.reason = reason


class DegenerateUserError(StarRankError, ValueError):
    """A user has no actual relevant items during evaluation."""

    def __init__(self, user_id: Any) -> None:
        super().__init__(f"User {user_id} has no actual relevant items.")
        self.user_id = user_id
