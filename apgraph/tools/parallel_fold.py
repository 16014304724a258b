"""
Keyed aggregation over edge frames.

Every aggregate the message updates need (a sum, a maximum, the two largest
values, an argmax) is expressed as a Reducer and run through a ParallelFold
backend. Reducers are associative and commutative: partial results computed
on any split of the rows combine into the same answer, so the backends are
interchangeable.
"""
import logging
import os
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class Reducer(ABC):

    @abstractmethod
    def reduce(self, frame: pd.DataFrame, key: str) -> pd.DataFrame:
        """Reduce the rows of frame grouped by key into one row per key"""

    def combine(self, partials: pd.DataFrame, key: str) -> pd.DataFrame:
        """Merge partial results produced by reduce on disjoint row sets"""
        return self.reduce(partials.reset_index(), key)


class Sum(Reducer):

    def __init__(self, columns: Union[str, Sequence[str]]):
        self.columns = [columns] if isinstance(columns, str) else list(columns)

    def reduce(self, frame, key):
        return frame.groupby(key, sort=False)[self.columns].sum()


class Max(Reducer):

    def __init__(self, columns: Union[str, Sequence[str]]):
        self.columns = [columns] if isinstance(columns, str) else list(columns)

    def reduce(self, frame, key):
        return frame.groupby(key, sort=False)[self.columns].max()


class TopTwo(Reducer):
    """Largest and second largest value per key, counting repeated values.

    The output has columns "first" and "second"; "second" is NaN for keys
    with a single row.
    """

    def __init__(self, column: str):
        self.column = column

    def reduce(self, frame, key):
        return _top_two(frame[key].to_numpy(), frame[self.column].to_numpy(), key)

    def combine(self, partials, key):
        stacked = pd.concat([partials["first"], partials["second"].dropna()])
        return _top_two(stacked.index.to_numpy(), stacked.to_numpy(), key)


class ArgMax(Reducer):
    """Row with the greatest score per key.

    Ties go to the smallest payload value and NaN scores sort last, so the
    choice does not depend on row order.
    """

    def __init__(self, score: str, payload: str):
        self.score = score
        self.payload = payload

    def reduce(self, frame, key):
        ranked = frame[[key, self.payload, self.score]].sort_values(
            [key, self.score, self.payload],
            ascending=[True, False, True],
            na_position="last",
        )
        return ranked.drop_duplicates(subset=key, keep="first").set_index(key)


def _top_two(keys: np.ndarray, values: np.ndarray, key: str) -> pd.DataFrame:
    ranked = pd.DataFrame({key: keys, "value": values}).sort_values(
        [key, "value"], ascending=[True, False], na_position="last"
    )
    position = ranked.groupby(key, sort=False).cumcount()

    first = ranked.loc[position == 0].set_index(key)["value"]
    second = ranked.loc[position == 1].set_index(key)["value"]

    return pd.DataFrame({"first": first, "second": second}).rename_axis(key)


class ParallelFold(ABC):
    """Group-by / combine / join capability used by the clustering steps"""

    @abstractmethod
    def aggregate(self, frame: pd.DataFrame, key: str, reducer: Reducer) -> pd.DataFrame:
        """Return one reduced row per distinct key, indexed by key"""

    def join(
        self,
        left: pd.DataFrame,
        right: pd.DataFrame,
        on: Optional[str] = None,
        how: str = "left",
        lsuffix: str = "",
        rsuffix: str = "",
    ) -> pd.DataFrame:
        """Attach keyed aggregates to left, keeping the row order of left"""
        return left.join(right, on=on, how=how, lsuffix=lsuffix, rsuffix=rsuffix)


class LocalFold(ParallelFold):

    def aggregate(self, frame, key, reducer):
        return reducer.reduce(frame, key)


class ThreadPoolFold(ParallelFold):
    """Reduces contiguous row partitions on a thread pool, then combines them"""

    def __init__(self, n_workers: Optional[int] = None, min_partition_size: int = 10_000):
        self.n_workers = n_workers or os.cpu_count() or 1
        self.min_partition_size = max(1, min_partition_size)

    def _partitions(self, frame: pd.DataFrame) -> List[pd.DataFrame]:
        n_parts = min(self.n_workers, len(frame) // self.min_partition_size)
        if n_parts < 2:
            return [frame]

        return [frame.iloc[rows] for rows in np.array_split(np.arange(len(frame)), n_parts)]

    def aggregate(self, frame, key, reducer):
        partitions = self._partitions(frame)
        if len(partitions) == 1:
            return reducer.reduce(frame, key)

        logger.debug(f"Reducing {len(frame)} rows by '{key}' in {len(partitions)} partitions")

        with ThreadPoolExecutor(max_workers=self.n_workers) as executor:
            partials = list(executor.map(lambda part: reducer.reduce(part, key), partitions))

        return reducer.combine(pd.concat(partials), key)


def get_fold(backend: str = "local", n_workers: Optional[int] = None) -> ParallelFold:
    if backend == "local":
        return LocalFold()
    if backend == "threads":
        return ThreadPoolFold(n_workers=n_workers)
    raise ValueError(f"Unknown fold backend '{backend}'")
