import logging

import pandas as pd

from starrank.constants import UID
from starrank.utils.data import load_or_create_frame, parallelize, partition_by_group
from starrank.utils.logger import init_starrank_logger


def _count(frame: pd.DataFrame) -> int:
    return len(frame)


def test_logger_handlers_are_not_duplicated(tmp_path):
    first = init_starrank_logger(tmp_path)
    second = init_starrank_logger(tmp_path)
    assert first is second
    file_handlers = [h for h in second.handlers if isinstance(h, logging.FileHandler)]
    assert len(file_handlers) == 1
    second.warning("written to the log file")
    for handler in file_handlers:
        handler.flush()
    assert "written to the log file" in (tmp_path / "log.txt").read_text()
    init_starrank_logger()


def test_partitions_keep_groups_together():
    frame = pd.DataFrame({UID: [3, 1, 2, 1, 3, 2, 4], "x": range(7)})
    partitions = partition_by_group(frame, UID, 3)
    assert len(partitions) == 3
    assert sum(len(p) for p in partitions) == len(frame)
    seen = [set(p[UID]) for p in partitions]
    for i, users in enumerate(seen):
        for other in seen[i + 1 :]:
            assert not users & other


def test_partitions_of_an_empty_frame():
    assert partition_by_group(pd.DataFrame({UID: []}), UID, 4) == []


def test_parallelize_in_process():
    partitions = [pd.DataFrame({"x": range(n)}) for n in (1, 2, 3)]
    assert parallelize(partitions, _count, 1) == [1, 2, 3]


def test_load_or_create_frame_caches(tmp_path):
    path = tmp_path / "20240101" / "frame.feather"
    calls = []

    def create():
        calls.append(1)
        return pd.DataFrame({"a": [1, 2, 3]})

    first = load_or_create_frame(path, create)
    second = load_or_create_frame(path, create)
    assert len(calls) == 1
    pd.testing.assert_frame_equal(first, second)
