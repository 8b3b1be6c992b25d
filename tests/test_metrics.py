import math

import pytest
import torch as th

from starrank.data import UserItems
from starrank.errors import ConfigurationError, DegenerateUserError
from starrank.metrics import (
    METRICS,
    RankingEvaluator,
    RankingMetric,
    evaluate,
    format_metric_name,
    hit_matrix,
)

A, B, C, X, Y = "itemA", "itemB", "itemC", "itemX", "itemY"
EXAMPLE_NDCG = 1.5 / (1.0 + 1.0 / math.log2(3))


def test_ndcg_of_the_worked_example():
    assert EXAMPLE_NDCG == pytest.approx(0.9197, abs=1e-4)
    value = evaluate({1: [A, B]}, {1: [B, X, A]}, k=3)
    assert value == pytest.approx(EXAMPLE_NDCG)


def test_ndcg_is_one_for_the_ideal_ranking():
    assert evaluate({1: [A, B]}, {1: [A, B, X]}, k=3) == pytest.approx(1.0)
    assert evaluate({1: [A, B]}, {1: [B, A]}, k=3) == pytest.approx(1.0)


def test_ndcg_is_zero_without_hits():
    assert evaluate({1: [A, B]}, {1: [X, Y]}, k=3) == 0.0


def test_ndcg_is_zero_for_an_empty_actual_set():
    value = evaluate({1: []}, {1: [A, B]}, k=3)
    assert value == 0.0
    assert not math.isnan(value)


def test_items_past_k_never_contribute():
    first = evaluate({1: [A, B, C]}, {1: [B, X, A, C, Y]}, k=3)
    second = evaluate({1: [A, B, C]}, {1: [B, X, A, Y, C]}, k=3)
    assert first == pytest.approx(second)


def test_mean_over_actual_users():
    actual = {1: [A, B], 2: [C]}
    predicted = {1: [B, X, A], 2: [X, Y]}
    assert evaluate(actual, predicted, k=3) == pytest.approx(EXAMPLE_NDCG / 2)


def test_users_missing_from_predictions_count_as_zero():
    actual = {1: [A, B], 2: [C]}
    assert evaluate(actual, {1: [B, X, A]}, k=3) == pytest.approx(EXAMPLE_NDCG / 2)


def test_predictions_of_unknown_users_are_ignored():
    value = evaluate({1: [A, B]}, {1: [B, X, A], 9: [A]}, k=3)
    assert value == pytest.approx(EXAMPLE_NDCG)


def test_repeated_predictions_count_once():
    assert evaluate({1: [A]}, {1: [A, A, A]}, k=3) == pytest.approx(1.0)


def test_batching_does_not_change_the_mean():
    actual = {uid: [A, B] if uid % 2 else [C] for uid in range(10)}
    predicted = {uid: [B, X, A] if uid % 3 else [C, A] for uid in range(10)}
    values = [
        RankingEvaluator(actual, k=3, batch_size=size).evaluate(predicted)
        for size in (1, 3, 1024)
    ]
    assert values == pytest.approx([values[0]] * 3)


def test_partial_states_combine_by_summation():
    predicted = [[B, X, A], [X], [C]]
    actual = [[A, B], [C], [C]]
    whole = RankingMetric(k=3)
    whole.update(predicted, actual)

    first, second = RankingMetric(k=3), RankingMetric(k=3)
    first.update(predicted[:1], actual[:1])
    second.update(predicted[1:], actual[1:])
    combined = (first.value + second.value) / (first.query_num + second.query_num)
    assert float(combined) == pytest.approx(float(whole.compute()))


def test_formatted_metric_name():
    evaluator = RankingEvaluator({1: [A]}, metric_name="NDCG@k", k=30)
    assert evaluator.formatted_metric_name == "NDCG@30"
    assert format_metric_name("Precision@k", 5) == "Precision@5"


def test_user_items_are_accepted():
    actual = [UserItems(1, (A, B))]
    predicted = [UserItems(1, (B, X, A))]
    assert evaluate(actual, predicted, k=3) == pytest.approx(EXAMPLE_NDCG)


@pytest.mark.parametrize(
    "metric_name, expected",
    [
        ("Precision@k", 2 / 3),
        ("Recall@k", 1.0),
        ("MAP@k", (1.0 + 2 / 3) / 2),
        ("HitRate@k", 1.0),
        ("MRR@k", 1.0),
    ],
)
def test_other_metrics(metric_name, expected):
    value = evaluate({1: [A, B]}, {1: [B, X, A]}, k=3, metric_name=metric_name)
    assert value == pytest.approx(expected)


def test_reciprocal_rank_of_a_late_hit():
    assert evaluate({1: [A]}, {1: [X, Y, A]}, k=3, metric_name="MRR@k") == (
        pytest.approx(1 / 3)
    )


def test_metric_table_is_extensible():
    assert "NDCG@k" in METRICS
    assert all(callable(fn) for fn in METRICS.values())


def test_empty_target_actions():
    actual = {1: [A, B], 2: []}
    predicted = {1: [B, X, A], 2: [A]}
    skip = RankingEvaluator(actual, k=3, empty_target_action="skip")
    assert skip.evaluate(predicted) == pytest.approx(EXAMPLE_NDCG)
    pos = RankingEvaluator(actual, k=3, empty_target_action="pos")
    assert pos.evaluate(predicted) == pytest.approx((EXAMPLE_NDCG + 1) / 2)
    error = RankingEvaluator(actual, k=3, empty_target_action="error")
    with pytest.raises(DegenerateUserError) as excinfo:
        error.evaluate(predicted)
    assert excinfo.value.user_id == 2


@pytest.mark.parametrize(
    "kwargs",
    [
        {"k": 0},
        {"k": -3},
        {"metric_name": "AUC"},
        {"empty_target_action": "ignore"},
    ],
)
def test_configuration_errors(kwargs):
    with pytest.raises(ConfigurationError):
        RankingEvaluator({1: [A]}, **kwargs)


def test_no_users_gives_zero():
    assert evaluate({}, {1: [A]}, k=3) == 0.0


def test_hit_matrix():
    hits, num_relevant = hit_matrix([[B, X, A, C]], [[A, B, C]], 3)
    assert hits.tolist() == [[1.0, 0.0, 1.0]]
    assert num_relevant.tolist() == [3]
    assert hits.dtype == th.float64
