import multiprocessing as mp
from collections.abc import Callable
from os import PathLike
from pathlib import Path
from typing import TypeVar

import numpy as np
import pandas as pd

from .logger import logger

T = TypeVar("T")


def partition_by_group(
    dataframe: pd.DataFrame, by: str, num_partitions: int
) -> list[pd.DataFrame]:
    """Split a DataFrame into partitions so that all rows of a group land in the
    same partition.

    :param dataframe: The DataFrame.
    :param by: The column to group by.
    :param num_partitions: The maximum number of partitions.
    :return: The non-empty partitions.
    """
    keys = np.sort(dataframe[by].unique())
    if len(keys) == 0:
        return []
    key_groups = np.array_split(keys, min(num_partitions, len(keys)))
    return [
        dataframe[dataframe[by].isin(group)].copy()
        for group in key_groups
        if len(group) > 0
    ]


def parallelize(
    partitions: list[pd.DataFrame],
    func: Callable[[pd.DataFrame], T],
    num_workers: int,
) -> list[T]:
    """Apply a function to DataFrame partitions with a process pool.

    The function must be picklable. With a single worker the partitions are
    processed in the calling process.

    :param partitions: The DataFrame partitions.
    :param func: The function to apply.
    :param num_workers: The number of worker processes.
    :return: The results in partition order.
    """
    if num_workers <= 1 or len(partitions) <= 1:
        return [func(partition) for partition in partitions]
    pool = mp.Pool(min(num_workers, len(partitions)))
    try:
        results = pool.map(func, partitions)
    finally:
        pool.close()
        pool.join()
    return results


def load_or_create_frame(
    path: str | PathLike, create: Callable[[], pd.DataFrame]
) -> pd.DataFrame:
    """Load a DataFrame from a feather file, or create and save it when missing.

    :param path: The path of the feather file.
    :param create: A function creating the DataFrame.
    :return: The loaded or created DataFrame.
    """
    path = Path(path)
    if path.exists():
        logger.info(f"Loading frame from {path} ...")
        return pd.read_feather(path)
    frame = create()
    logger.info(f"Saving frame to {path} ...")
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.reset_index(drop=True).to_feather(path)
    return frame
