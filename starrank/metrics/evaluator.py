from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..constants import DEFAULT_TOP_K
from ..data.schemas import UserItems, user_items_to_mapping
from ..errors import ConfigurationError
from ..utils.logger import logger
from .base import EmptyTargetAction, RankingMetric
from .functional import format_metric_name, get_metric

UserItemsLike = Mapping[Any, Sequence] | Iterable[UserItems]


class RankingEvaluator:
    """Evaluate predicted rankings against the actual relevant items of users.

    The metric is averaged over every user in ``actual``. Users missing from the
    predictions score 0; predictions of users missing from ``actual`` are ignored.
    The predicted lists are consumed in the given order, which must already reflect
    descending predicted relevance.
    """

    def __init__(
        self,
        actual: UserItemsLike,
        *,
        metric_name: str = "NDCG@k",
        k: int = DEFAULT_TOP_K,
        empty_target_action: EmptyTargetAction = "neg",
        batch_size: int = 1024,
    ) -> None:
        """Initialize the evaluator.

        :param actual: The actual relevant items of each user.
        :param metric_name: The name of the metric. Defaults: ``"NDCG@k"``.
        :param k: The cutoff. Defaults: ``30``.
        :param empty_target_action: What to do with users without relevant items,
            see :py:class:`starrank.metrics.RankingMetric`.
        :param batch_size: The number of users scored per update.
        :raises ConfigurationError: If any parameter is invalid.
        """
        if not (isinstance(k, int) and k > 0):
            raise ConfigurationError(f"`k` has to be a positive integer, got {k!r}.")
        if not (isinstance(batch_size, int) and batch_size > 0):
            raise ConfigurationError("`batch_size` has to be a positive integer.")
        get_metric(metric_name)

        self.actual = user_items_to_mapping(actual)
        self.metric_name = metric_name
        self.k = k
        self.empty_target_action: EmptyTargetAction = empty_target_action
        self.batch_size = batch_size
        # validate empty_target_action eagerly
        self._new_metric()

    def __repr__(self) -> str:
        return (
            f"RankingEvaluator(metric_name={self.metric_name!r}, k={self.k},"
            f" num_users={len(self.actual)})"
        )

    @property
    def formatted_metric_name(self) -> str:
        return format_metric_name(self.metric_name, self.k)

    def _new_metric(self) -> RankingMetric:
        return RankingMetric(
            metric_name=self.metric_name,
            k=self.k,
            empty_target_action=self.empty_target_action,
        )

    def evaluate(self, predicted: UserItemsLike) -> float:
        """Compute the metric of the predicted rankings.

        :param predicted: The ranked items of each user, best first.
        :return: The mean metric over the users in ``actual``.
        """
        logger.info("Evaluating predictions by %s ...", repr(self))
        predicted = user_items_to_mapping(predicted)
        metric = self._new_metric()

        user_ids = list(self.actual)
        for start in range(0, len(user_ids), self.batch_size):
            batch = user_ids[start : start + self.batch_size]
            metric.update(
                [predicted.get(user_id, []) for user_id in batch],
                [self.actual[user_id] for user_id in batch],
                user_ids=batch,
            )

        num_missing = sum(1 for user_id in user_ids if user_id not in predicted)
        num_empty = sum(1 for user_id in user_ids if len(self.actual[user_id]) == 0)
        if num_missing:
            logger.debug("  # users without predictions: %d", num_missing)
        if num_empty:
            logger.warning("%d users have no actual relevant items", num_empty)

        value = float(metric.compute()) if user_ids else 0.0
        logger.info("%s = %s", self.formatted_metric_name, value)
        return value


def evaluate(
    actual: UserItemsLike,
    predicted: UserItemsLike,
    k: int = DEFAULT_TOP_K,
    metric_name: str = "NDCG@k",
) -> float:
    """Compute a ranking metric of ``predicted`` against ``actual``."""
    return RankingEvaluator(actual, metric_name=metric_name, k=k).evaluate(predicted)
