from dataclasses import dataclass

import numpy as np
import pandas as pd

SIMILARITY_COLUMNS = ["i", "j", "s"]
EDGE_COLUMNS = ["src", "dst", "similarity", "availability", "responsibility"]
ASSIGNMENT_COLUMNS = ["cluster_id", "exemplar", "member"]


@dataclass(eq=False)
class Cluster:
    """One cluster of an affinity propagation result"""
    id: int
    exemplar: int
    members: np.ndarray

    def __eq__(self, other):
        if not isinstance(other, Cluster):
            return NotImplemented
        return (
            self.id == other.id
            and self.exemplar == other.exemplar
            and np.array_equal(self.members, other.members)
        )

    def __len__(self):
        return len(self.members)


@dataclass(frozen=True)
class PropagationResult:
    """Final graph snapshot of the message passing loop"""
    graph: pd.DataFrame
    iterations: int
    converged: bool
