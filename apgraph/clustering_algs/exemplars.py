import logging
from typing import Optional

import numpy as np
import pandas as pd

from apgraph.graph import distinct_vertices
from apgraph.models import ASSIGNMENT_COLUMNS
from apgraph.tools.parallel_fold import ArgMax, LocalFold, ParallelFold

logger = logging.getLogger(__name__)


def choose_exemplars(graph: pd.DataFrame, fold: Optional[ParallelFold] = None) -> pd.DataFrame:
    """
    Pick an exemplar for every vertex and number the resulting clusters.

    Each source vertex takes the destination with the highest
    availability + responsibility among its outgoing edges (its self-loop
    included). Equal scores go to the smallest destination id. A vertex
    without outgoing edges is its own exemplar.

    Cluster ids are dense and follow ascending exemplar id, but they are run
    local labels only.

    Returns:
        assignment frame with one (cluster_id, exemplar, member) row per vertex
    """
    fold = fold or LocalFold()

    scores = pd.DataFrame({
        "src": graph["src"].to_numpy(),
        "dst": graph["dst"].to_numpy(),
        "score": graph["availability"].to_numpy() + graph["responsibility"].to_numpy(),
    })
    best = fold.aggregate(scores, "src", ArgMax("score", "dst"))

    vertices = distinct_vertices(graph, ("src", "dst"))
    exemplar_of = pd.Series(vertices, index=vertices, dtype=np.int64)
    exemplar_of.loc[best.index.to_numpy()] = best["dst"].to_numpy()

    exemplars = np.unique(exemplar_of.to_numpy())
    cluster_ids = pd.Series(np.arange(len(exemplars), dtype=np.int64), index=exemplars)

    assignments = pd.DataFrame({
        "cluster_id": cluster_ids.loc[exemplar_of.to_numpy()].to_numpy(),
        "exemplar": exemplar_of.to_numpy(),
        "member": exemplar_of.index.to_numpy(),
    })

    logger.debug(f"Chose {len(exemplars)} exemplars for {len(vertices)} vertices")
    return assignments.sort_values(["cluster_id", "member"]).reset_index(drop=True)[
        ASSIGNMENT_COLUMNS
    ]
