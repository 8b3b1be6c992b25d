from .base import RankingMetric
from .evaluator import RankingEvaluator, evaluate
from .functional import METRICS, format_metric_name, get_metric, hit_matrix

__all__ = [
    "RankingMetric",
    "RankingEvaluator",
    "evaluate",
    "METRICS",
    "format_metric_name",
    "get_metric",
    "hit_matrix",
]
