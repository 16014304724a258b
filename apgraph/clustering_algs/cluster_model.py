from functools import cached_property
from typing import Iterable, Iterator, List, Optional

import numpy as np
import pandas as pd

from apgraph.models import ASSIGNMENT_COLUMNS, Cluster


class ClusterModel:
    """
    Read-only view over the (cluster_id, exemplar, member) assignments of one
    affinity propagation run.

    Cluster ids only group rows within this model; they carry no meaning
    across runs.
    """

    def __init__(
        self,
        assignments: pd.DataFrame,
        iterations: Optional[int] = None,
        converged: Optional[bool] = None,
    ):
        self._assignments = assignments[ASSIGNMENT_COLUMNS].astype(np.int64).reset_index(drop=True)
        self._cluster_of = pd.Series(
            self._assignments["cluster_id"].to_numpy(),
            index=self._assignments["member"].to_numpy(),
        )
        self.iterations = iterations
        self.converged = converged

    @property
    def assignments(self) -> pd.DataFrame:
        return self._assignments.copy()

    @cached_property
    def k(self) -> int:
        return int(self._assignments["cluster_id"].nunique())

    def cluster_count(self) -> int:
        """Number of distinct clusters"""
        return self.k

    @cached_property
    def exemplars(self) -> np.ndarray:
        return np.unique(self._assignments["exemplar"].to_numpy())

    def find_cluster_id(self, vertex_id: int) -> int:
        """Cluster id of vertex_id, or -1 if it was not part of the input"""
        return int(self._cluster_of.get(vertex_id, -1))

    def find_cluster(self, vertex_id: int) -> np.ndarray:
        """Sorted ids sharing vertex_id's cluster; empty if vertex_id is unknown"""
        cluster_id = self.find_cluster_id(vertex_id)
        if cluster_id == -1:
            return np.empty(0, dtype=np.int64)

        rows = self._assignments["cluster_id"] == cluster_id
        return np.sort(self._assignments.loc[rows, "member"].to_numpy())

    def labels(self, vertex_ids: Iterable[int]) -> np.ndarray:
        """Cluster id for each given vertex id, -1 for unknown ids"""
        ids = np.asarray(list(vertex_ids), dtype=np.int64)
        return self._cluster_of.reindex(ids).fillna(-1).to_numpy(dtype=np.int64)

    def iter_clusters(self) -> Iterator[Cluster]:
        """Yield clusters one at a time, grouped by (cluster_id, exemplar)"""
        grouped = self._assignments.groupby(["cluster_id", "exemplar"], sort=True)["member"]
        for (cluster_id, exemplar), members in grouped:
            yield Cluster(int(cluster_id), int(exemplar), np.sort(members.to_numpy()))

    def materialize_clusters(self) -> List[Cluster]:
        """
        Every cluster with its full member array.

        This holds all member arrays at once and can exhaust memory for large
        results; prefer iter_clusters or find_cluster there.
        """
        return list(self.iter_clusters())

    def __repr__(self):
        return (
            f"ClusterModel(k={self.k}, members={len(self._assignments)}, "
            f"iterations={self.iterations}, converged={self.converged})"
        )
