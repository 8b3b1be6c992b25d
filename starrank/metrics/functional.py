from collections.abc import Callable, Sequence

import torch as th

from ..errors import ConfigurationError

ScoreFn = Callable[[th.Tensor, th.Tensor, int], th.Tensor]
"""A per-user scoring function ``(hits, num_relevant, k) -> scores``.

``hits`` is a binary matrix of shape (num_users, k) marking which predicted ranks
hold a relevant item, ``num_relevant`` the number of actual relevant items of each
user. Every user passed in has at least one relevant item.
"""


def hit_matrix(
    predicted: Sequence[Sequence], actual: Sequence[Sequence], k: int
) -> tuple[th.Tensor, th.Tensor]:
    """Build the hit matrix of predicted top-k lists against actual item sets.

    Predicted items past rank ``k`` are ignored and a repeated item only counts at
    its first rank.

    :param predicted: The ranked item IDs of each user.
    :param actual: The relevant item IDs of each user.
    :param k: The cutoff.
    :return: The hit matrix of shape (num_users, k) and the number of relevant
        items of each user.
    """
    if len(predicted) != len(actual):
        raise ValueError("predicted and actual must have the same number of users")
    hits = th.zeros(len(actual), k, dtype=th.float64)
    num_relevant = th.zeros(len(actual), dtype=th.long)
    for row, (pred_items, actual_items) in enumerate(zip(predicted, actual)):
        actual_set = set(actual_items)
        num_relevant[row] = len(actual_set)
        seen = set()
        for rank, item in enumerate(list(pred_items)[:k]):
            if item in actual_set and item not in seen:
                hits[row, rank] = 1.0
            seen.add(item)
    return hits, num_relevant


def _discount(k: int) -> th.Tensor:
    return 1.0 / th.log2(th.arange(k, dtype=th.float64) + 2.0)


def _safe_div(numerator: th.Tensor, denominator: th.Tensor) -> th.Tensor:
    positive = denominator > 0
    safe_denominator = th.where(positive, denominator, th.ones_like(denominator))
    return th.where(positive, numerator / safe_denominator, th.zeros_like(numerator))


def normalized_dcg(hits: th.Tensor, num_relevant: th.Tensor, k: int) -> th.Tensor:
    discount = _discount(k)
    dcg = (hits * discount).sum(dim=1)
    ideal_hits = th.arange(k).unsqueeze(0) < num_relevant.clamp(max=k).unsqueeze(1)
    idcg = (ideal_hits.to(discount) * discount).sum(dim=1)
    return _safe_div(dcg, idcg)


def precision(hits: th.Tensor, num_relevant: th.Tensor, k: int) -> th.Tensor:
    return hits.sum(dim=1) / k


def recall(hits: th.Tensor, num_relevant: th.Tensor, k: int) -> th.Tensor:
    return _safe_div(hits.sum(dim=1), num_relevant.to(hits))


def average_precision(hits: th.Tensor, num_relevant: th.Tensor, k: int) -> th.Tensor:
    ranks = th.arange(1, k + 1, dtype=hits.dtype)
    precision_at_hits = hits.cumsum(dim=1) / ranks * hits
    return _safe_div(precision_at_hits.sum(dim=1), num_relevant.clamp(max=k).to(hits))


def hit_rate(hits: th.Tensor, num_relevant: th.Tensor, k: int) -> th.Tensor:
    return (hits.sum(dim=1) > 0).to(hits)


def reciprocal_rank(hits: th.Tensor, num_relevant: th.Tensor, k: int) -> th.Tensor:
    first_hit = hits.argmax(dim=1)
    return hits.amax(dim=1) / (first_hit + 1).to(hits)


METRICS: dict[str, ScoreFn] = {
    "NDCG@k": normalized_dcg,
    "Precision@k": precision,
    "Recall@k": recall,
    "MAP@k": average_precision,
    "HitRate@k": hit_rate,
    "MRR@k": reciprocal_rank,
}
"""Metric names mapped to their per-user scoring functions."""


def get_metric(metric_name: str) -> ScoreFn:
    try:
        return METRICS[metric_name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown metric {metric_name!r}, expected one of {list(METRICS)}."
        ) from None


def format_metric_name(metric_name: str, k: int) -> str:
    """Replace the ``@k`` placeholder by the cutoff, e.g. ``NDCG@30``."""
    return metric_name.replace("@k", f"@{k}")
