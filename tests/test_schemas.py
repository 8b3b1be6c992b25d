from starrank.constants import IID, LABEL, PROBABILITY, UID
from starrank.data import (
    Interaction,
    LabeledExample,
    ScoredCandidate,
    UserItems,
    to_frame,
    user_items_from_mapping,
    user_items_to_mapping,
)


def test_interactions_to_frame():
    frame = to_frame([Interaction(1, 10), Interaction(2, 20)], Interaction)
    assert frame.columns.tolist() == [UID, IID, LABEL]
    assert frame[LABEL].tolist() == [1.0, 1.0]


def test_labeled_examples_to_frame():
    examples = [LabeledExample(1, 10), LabeledExample(1, 30, 0.0)]
    frame = to_frame(examples, LabeledExample)
    assert frame.columns.tolist() == [UID, IID, LABEL]
    assert frame[LABEL].tolist() == [1.0, 0.0]


def test_scored_candidates_to_frame():
    frame = to_frame([ScoredCandidate(1, 10, 0.7, 1)], ScoredCandidate)
    assert frame.columns.tolist() == [UID, IID, PROBABILITY, "rank"]


def test_user_items_conversions():
    mapping = {1: [10, 20], 2: []}
    user_items = user_items_from_mapping(mapping)
    assert user_items == [UserItems(1, (10, 20)), UserItems(2, ())]
    assert user_items_to_mapping(user_items) == mapping
    assert user_items_to_mapping(mapping) == mapping
