"""
Responsibility / availability message passing (Frey and Dueck, 2007).

The state lives on the edges: each edge i -> j carries its similarity,
availability a(i, j) and responsibility r(i, j). An iteration builds a new
edge frame from the previous one in two full passes, responsibilities first
and then availabilities from the finished responsibilities.
"""
import logging
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np
import pandas as pd
from tqdm import tqdm

from apgraph.clustering_algs.convergence import ConvergenceMonitor, Delta
from apgraph.graph import distinct_vertices
from apgraph.models import PropagationResult
from apgraph.tools.parallel_fold import LocalFold, ParallelFold, Sum, TopTwo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IterationState:
    """Loop-carried values handed from one iteration to the next"""
    graph: pd.DataFrame
    checkpoint: pd.DataFrame
    checkpoint_delta: Delta
    iteration: int = 0
    converged: bool = False


class MessagePassingEngine:

    def __init__(
        self,
        max_iterations: int = 100,
        damping: float = 0.5,
        fold: Optional[ParallelFold] = None,
        convergence_interval: int = 10,
        show_progress: bool = False,
    ):
        self.max_iterations = max_iterations
        self.damping = damping
        self.fold = fold or LocalFold()
        self.convergence_interval = convergence_interval
        self.show_progress = show_progress

    def update_responsibilities(self, graph: pd.DataFrame) -> pd.DataFrame:
        """
        r'(i, j) = lambda * (s(i, j) - max_{k != j} (s(i, k) + a(i, k))) + (1 - lambda) * r(i, j)

        The competing maximum drops exactly one occurrence of the edge's own
        candidate from its source's candidates and is 0 when nothing is left.
        """
        similarity = graph["similarity"].to_numpy()
        candidate = similarity + graph["availability"].to_numpy()

        top = self.fold.aggregate(
            pd.DataFrame({"src": graph["src"].to_numpy(), "candidate": candidate}),
            "src",
            TopTwo("candidate"),
        )
        joined = self.fold.join(graph[["src"]], top, on="src")
        first = joined["first"].to_numpy()
        second = joined["second"].fillna(0.0).to_numpy()

        # a repeated maximum shows up again as the second value
        competing = np.where(candidate == first, second, first)

        responsibility = (
            self.damping * (similarity - competing)
            + (1.0 - self.damping) * graph["responsibility"].to_numpy()
        )
        return graph.assign(responsibility=responsibility)

    def update_availabilities(self, graph: pd.DataFrame) -> pd.DataFrame:
        """
        With A(j) = r(j, j) + sum_{k != j} max(0, r(k, j)):

            a'(i, j) = lambda * min(0, A(j) - max(0, r(i, j))) + (1 - lambda) * a(i, j)   for i != j
            a'(j, j) = lambda * (A(j) - r(j, j)) + (1 - lambda) * a(j, j)
        """
        dst = graph["dst"].to_numpy()
        responsibility = graph["responsibility"].to_numpy()
        self_loop = graph["src"].to_numpy() == dst
        positive = np.maximum(responsibility, 0.0)

        totals = self.fold.aggregate(
            pd.DataFrame({"dst": dst, "support": np.where(self_loop, responsibility, positive)}),
            "dst",
            Sum("support"),
        )
        support = self.fold.join(graph[["dst"]], totals, on="dst")["support"].to_numpy()

        update = np.where(
            self_loop,
            support - responsibility,
            np.minimum(0.0, support - positive),
        )
        availability = (
            self.damping * update
            + (1.0 - self.damping) * graph["availability"].to_numpy()
        )
        return graph.assign(availability=availability)

    def step(self, state: IterationState, monitor: ConvergenceMonitor) -> IterationState:
        graph = self.update_availabilities(self.update_responsibilities(state.graph))

        if not monitor.should_check(state.iteration):
            return replace(state, graph=graph, iteration=state.iteration + 1)

        converged, delta = monitor.check(
            state.iteration, graph, state.checkpoint, state.checkpoint_delta
        )
        return IterationState(
            graph=graph,
            checkpoint=graph,
            checkpoint_delta=delta,
            iteration=state.iteration + 1,
            converged=converged,
        )

    def run(self, graph: pd.DataFrame) -> PropagationResult:
        """
        Iterate until the convergence check passes or max_iterations is spent.

        Raises:
            EmptyInputError: if the graph has no vertices
        """
        n_vertices = len(distinct_vertices(graph, ("src", "dst")))
        monitor = ConvergenceMonitor(n_vertices, self.fold, self.convergence_interval)

        state = IterationState(
            graph=graph,
            checkpoint=graph,
            checkpoint_delta=(float("inf"), float("inf")),
        )

        for _ in tqdm(
            range(self.max_iterations),
            desc="Affinity propagation",
            unit="iter",
            disable=not self.show_progress,
        ):
            if state.converged:
                break
            state = self.step(state, monitor)

        if state.converged:
            logger.info(f"Converged after {state.iteration} iterations (tol={monitor.tol})")
        else:
            logger.info(f"Stopped after {state.iteration} iterations without converging")

        return PropagationResult(state.graph, state.iteration, state.converged)
