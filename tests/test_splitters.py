import pandas as pd
import pytest

from starrank.data import RandomSplitter
from starrank.errors import ConfigurationError


def test_random_split_partitions_rows():
    frame = pd.DataFrame({"x": range(100)})
    training, test = RandomSplitter((0.8, 0.2), seed=0)(frame)
    assert len(training) == 80
    assert len(test) == 20
    assert sorted(training["x"].tolist() + test["x"].tolist()) == list(range(100))


def test_random_split_is_reproducible():
    frame = pd.DataFrame({"x": range(50)})
    first = RandomSplitter((0.7, 0.3), seed=1)(frame)
    second = RandomSplitter((0.7, 0.3), seed=1)(frame)
    for a, b in zip(first, second):
        pd.testing.assert_frame_equal(a, b)


def test_weights_are_normalized():
    frame = pd.DataFrame({"x": range(10)})
    splits = RandomSplitter((2, 1, 1), seed=0)(frame)
    assert [len(split) for split in splits] == [5, 2, 3]


@pytest.mark.parametrize("ratio", [(1.0,), (0.8, 0.0), (0.5, -0.5)])
def test_invalid_weights(ratio):
    with pytest.raises(ConfigurationError):
        RandomSplitter(ratio)


def test_negative_seed_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        RandomSplitter((0.8, 0.2), seed=-1)
