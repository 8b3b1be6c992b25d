import pandas as pd
import pytest

from starrank.constants import IID, ITEMS, LABEL, PROBABILITY, TIMESTAMP, UID
from starrank.data import (
    into_user_actual_items,
    into_user_predicted_items,
    user_items_to_frame,
)
from starrank.errors import ConfigurationError


def test_predicted_items_are_ranked_by_descending_score():
    scored = pd.DataFrame(
        {
            UID: [1, 1, 1, 2, 2],
            IID: [10, 20, 30, 10, 40],
            PROBABILITY: [0.2, 0.9, 0.5, 0.1, 0.3],
        }
    )
    predicted = into_user_predicted_items(scored, k=2)
    assert predicted == {1: [20, 30], 2: [40, 10]}


def test_equal_scores_keep_upstream_order():
    scored = pd.DataFrame(
        {UID: [1, 1, 1, 1], IID: [30, 10, 20, 40], PROBABILITY: [0.5, 0.5, 0.5, 0.9]}
    )
    assert into_user_predicted_items(scored, k=3) == {1: [40, 30, 10]}


def test_repeated_candidates_keep_their_best_score():
    scored = pd.DataFrame(
        {UID: [1, 1, 1], IID: [10, 20, 10], PROBABILITY: [0.1, 0.5, 0.9]}
    )
    assert into_user_predicted_items(scored, k=3) == {1: [10, 20]}


def test_actual_items_are_positive_recent_and_capped():
    interactions = pd.DataFrame(
        {
            UID: [1, 1, 1, 1, 2],
            IID: [10, 20, 30, 40, 50],
            LABEL: [1.0, 1.0, 0.0, 1.0, 1.0],
            TIMESTAMP: [100, 300, 400, 200, 100],
        }
    )
    actual = into_user_actual_items(interactions, order_col=TIMESTAMP, k=2)
    assert actual == {1: [20, 40], 2: [50]}


def test_actual_items_without_labels_or_order():
    interactions = pd.DataFrame({UID: [1, 1, 2], IID: [10, 20, 30]})
    assert into_user_actual_items(interactions, k=5) == {1: [10, 20], 2: [30]}


def test_non_positive_k_is_rejected():
    scored = pd.DataFrame({UID: [1], IID: [1], PROBABILITY: [0.5]})
    with pytest.raises(ConfigurationError):
        into_user_predicted_items(scored, k=0)
    with pytest.raises(ConfigurationError):
        into_user_actual_items(scored, k=-1)


def test_user_items_to_frame():
    frame = user_items_to_frame({1: [10, 20], 2: [30]})
    assert frame.columns.tolist() == [UID, ITEMS]
    assert frame[ITEMS].tolist() == [[10, 20], [30]]
