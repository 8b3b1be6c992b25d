from collections.abc import Sequence
from typing import Any, Literal

import torch as th
from torchmetrics import Metric

from ..constants import DEFAULT_TOP_K
from ..errors import ConfigurationError, DegenerateUserError
from .functional import format_metric_name, get_metric, hit_matrix

EmptyTargetAction = Literal["neg", "pos", "skip", "error"]


class RankingMetric(Metric):
    """Ranking metric over predicted item lists and actual relevant item sets.

    The states are a sum of per-user scores and a count of users, both reduced by
    summation, so updates over any partition of the users add up to the same mean.
    """

    is_differentiable: bool = False
    """Whether the metric is differentiable or not."""

    higher_is_better: bool = True
    """Whether a higher metric value is better or not."""

    full_state_update: bool = False
    """Whether the metric value of one update step is related to the existing states."""

    def __init__(
        self,
        metric_name: str = "NDCG@k",
        k: int = DEFAULT_TOP_K,
        empty_target_action: EmptyTargetAction = "neg",
        **kwargs,
    ) -> None:
        """Initialize the metric.

        :param metric_name: The name of the metric, see
            :py:data:`starrank.metrics.functional.METRICS`. Defaults: ``"NDCG@k"``.
        :param k: The cutoff of the predicted lists.
        :param empty_target_action: Specify what to do with users without any
            actual relevant item: ``"neg"`` scores them 0, ``"pos"`` scores them 1,
            ``"skip"`` leaves them out of the mean and ``"error"`` raises.
            Defaults: ``"neg"``.
        :raises ConfigurationError: If ``metric_name``, ``k`` or
            ``empty_target_action`` is invalid.
        """
        super().__init__(**kwargs)

        if not (isinstance(k, int) and k > 0):
            raise ConfigurationError("`k` has to be a positive integer")
        empty_target_action_options = ("neg", "pos", "skip", "error")
        if empty_target_action not in empty_target_action_options:
            raise ConfigurationError(
                "Argument empty_target_action received a wrong value"
                f" {empty_target_action}."
            )

        self.metric_name = metric_name
        self.score_fn = get_metric(metric_name)
        self.k = k
        self.empty_target_action: EmptyTargetAction = empty_target_action

        self.add_state(
            "value", default=th.tensor(0.0, dtype=th.float64), dist_reduce_fx="sum"
        )
        self.add_state("query_num", default=th.tensor(0), dist_reduce_fx="sum")

    @property
    def formatted_metric_name(self) -> str:
        return format_metric_name(self.metric_name, self.k)

    def update(
        self,
        predicted: Sequence[Sequence],
        actual: Sequence[Sequence],
        user_ids: Sequence[Any] | None = None,
    ) -> None:
        """Score a batch of users and accumulate the states.

        :param predicted: The ranked item IDs of each user.
        :param actual: The relevant item IDs of each user.
        :param user_ids: The user IDs, only used in error messages.
        """
        hits, num_relevant = hit_matrix(predicted, actual, self.k)

        non_empty_queries = num_relevant > 0
        non_empty_query_num = int(non_empty_queries.sum())
        empty_query_num = len(num_relevant) - non_empty_query_num

        if non_empty_query_num > 0:
            scores = self.score_fn(
                hits[non_empty_queries], num_relevant[non_empty_queries], self.k
            )
            self.value += scores.sum().to(self.value)

        match self.empty_target_action:
            case "neg":
                self.query_num += len(num_relevant)
            case "pos":
                self.query_num += len(num_relevant)
                self.value += empty_query_num
            case "skip":
                self.query_num += non_empty_query_num
            case "error":
                if empty_query_num > 0:
                    row = int((~non_empty_queries).nonzero()[0])
                    raise DegenerateUserError(
                        user_ids[row] if user_ids is not None else row
                    )
                self.query_num += len(num_relevant)

    def compute(self) -> th.Tensor:
        """Compute the mean of the per-user scores accumulated in update."""
        if self.query_num > 0:
            return self.value / self.query_num
        return th.tensor(0.0, dtype=th.float64)
