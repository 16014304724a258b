import logging
from typing import Tuple

import pandas as pd

from apgraph.exceptions import EmptyInputError
from apgraph.tools.parallel_fold import ParallelFold, Sum

logger = logging.getLogger(__name__)

Delta = Tuple[float, float]


class ConvergenceMonitor:
    """
    Periodic convergence test for the message passing loop.

    Every `interval` iterations the per-vertex sums of outgoing availabilities
    and responsibilities are compared with those of the checkpoint snapshot
    (the one taken at the previous check). The loop stops once the summed
    change moves by no more than tol between two consecutive checks.
    """

    def __init__(self, n_vertices: int, fold: ParallelFold, interval: int = 10):
        if n_vertices == 0:
            raise EmptyInputError("Graph has no vertices, nothing to cluster")

        self.n_vertices = n_vertices
        self.fold = fold
        self.interval = interval
        self.tol = max(1e-5 / n_vertices, 1e-8)

    def should_check(self, iteration: int) -> bool:
        return iteration % self.interval == 0

    def vertex_totals(self, graph: pd.DataFrame) -> pd.DataFrame:
        """Sum of (availability, responsibility) over each vertex's outgoing edges"""
        return self.fold.aggregate(
            graph[["src", "availability", "responsibility"]],
            "src",
            Sum(["availability", "responsibility"]),
        )

    def delta(self, graph: pd.DataFrame, checkpoint: pd.DataFrame) -> Delta:
        joined = self.fold.join(
            self.vertex_totals(graph),
            self.vertex_totals(checkpoint),
            how="inner",
            lsuffix="_cur",
            rsuffix="_prev",
        )

        availability = (joined["availability_cur"] - joined["availability_prev"]).sum()
        responsibility = (joined["responsibility_cur"] - joined["responsibility_prev"]).sum()
        return float(availability), float(responsibility)

    def check(
        self,
        iteration: int,
        graph: pd.DataFrame,
        checkpoint: pd.DataFrame,
        checkpoint_delta: Delta,
    ) -> Tuple[bool, Delta]:
        """
        Compare graph against the checkpoint snapshot.

        Returns:
            (converged, delta) where delta becomes the next checkpoint delta
        """
        delta = self.delta(graph, checkpoint)
        diff = (
            abs(delta[0] - checkpoint_delta[0]),
            abs(delta[1] - checkpoint_delta[1]),
        )

        logger.info(f"Iteration {iteration}: availability delta = {delta[0]}")
        logger.info(f"Iteration {iteration}: responsibility delta = {delta[1]}")
        logger.info(f"Iteration {iteration}: diff(delta) = {diff}")

        return diff[0] <= self.tol and diff[1] <= self.tol, delta
