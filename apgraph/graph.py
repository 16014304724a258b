import logging
from typing import Iterable, Optional, Tuple, Union

import numpy as np
import pandas as pd

from apgraph.exceptions import EmptyInputError
from apgraph.models import EDGE_COLUMNS, SIMILARITY_COLUMNS
from apgraph.tools.parallel_fold import LocalFold, ParallelFold, Sum

logger = logging.getLogger(__name__)

SimilarityInput = Union[pd.DataFrame, np.ndarray, Iterable[Tuple[int, int, float]]]


def as_similarity_frame(similarities: SimilarityInput) -> pd.DataFrame:
    """Coerce (i, j, s) triples into a frame with int64 ids and float64 similarities"""
    if isinstance(similarities, pd.DataFrame):
        if similarities.shape[1] != 3:
            raise ValueError(
                f"Similarity frame needs 3 columns (i, j, s), got {similarities.shape[1]}"
            )
        frame = similarities.copy()
        frame.columns = SIMILARITY_COLUMNS
    else:
        rows = similarities if isinstance(similarities, np.ndarray) else list(similarities)
        if len(rows) == 0:
            return pd.DataFrame({
                "i": pd.Series(dtype=np.int64),
                "j": pd.Series(dtype=np.int64),
                "s": pd.Series(dtype=np.float64),
            })
        array = np.asarray(rows, dtype=object)
        if array.ndim != 2 or array.shape[1] != 3:
            raise ValueError(f"Similarities must be (i, j, s) triples, got shape {array.shape}")
        frame = pd.DataFrame(array, columns=SIMILARITY_COLUMNS)

    return frame.astype({"i": np.int64, "j": np.int64, "s": np.float64}).reset_index(drop=True)


def distinct_vertices(frame: pd.DataFrame, columns: Tuple[str, str] = ("i", "j")) -> np.ndarray:
    """Sorted distinct vertex ids appearing in either id column"""
    return np.union1d(frame[columns[0]].to_numpy(), frame[columns[1]].to_numpy())


class GraphBuilder:
    """Turns a similarity relation into the edge frame the message passing runs on"""

    def __init__(self, fold: Optional[ParallelFold] = None):
        self.fold = fold or LocalFold()

    def construct_graph(
        self,
        similarities: SimilarityInput,
        normalize: bool = False,
        symmetric: bool = True,
    ) -> pd.DataFrame:
        """
        Build the initial graph snapshot.

        With symmetric=True every off-diagonal triple (i, j, s) yields both
        i -> j and j -> i, so only one triangle of the matrix may be supplied.
        Supplying both triangles doubles the edges and is not detected.

        Args:
            similarities: (i, j, s) triples
            normalize: divide each edge similarity by the sum over its source's
                outgoing edges (left untouched where that sum is zero)
            symmetric: mirror off-diagonal triples

        Returns:
            edge frame with zeroed availabilities and responsibilities
        """
        sims = as_similarity_frame(similarities)

        if symmetric:
            mirrored = sims.loc[sims["i"] != sims["j"]]
            src = np.concatenate([sims["i"].to_numpy(), mirrored["j"].to_numpy()])
            dst = np.concatenate([sims["j"].to_numpy(), mirrored["i"].to_numpy()])
            similarity = np.concatenate([sims["s"].to_numpy(), mirrored["s"].to_numpy()])
        else:
            src = sims["i"].to_numpy()
            dst = sims["j"].to_numpy()
            similarity = sims["s"].to_numpy()

        graph = pd.DataFrame({
            "src": src.astype(np.int64),
            "dst": dst.astype(np.int64),
            "similarity": similarity.astype(np.float64),
            "availability": 0.0,
            "responsibility": 0.0,
        })

        if normalize:
            graph = self._normalize(graph)

        logger.debug(f"Constructed graph with {len(graph)} edges from {len(sims)} similarities")
        return graph[EDGE_COLUMNS]

    def _normalize(self, graph: pd.DataFrame) -> pd.DataFrame:
        totals = self.fold.aggregate(graph[["src", "similarity"]], "src", Sum("similarity"))
        totals = totals.rename(columns={"similarity": "total"})

        total = self.fold.join(graph[["src"]], totals, on="src")["total"].to_numpy()
        similarity = graph["similarity"].to_numpy()

        with np.errstate(divide="ignore", invalid="ignore"):
            scaled = np.where(total == 0.0, similarity, similarity / total)

        return graph.assign(similarity=scaled)

    def median(self, similarities: SimilarityInput) -> float:
        """Median of all similarity values (mean of the two central values for even counts)"""
        sims = as_similarity_frame(similarities)
        count = len(sims)
        if count == 0:
            raise EmptyInputError("Cannot compute the median of an empty similarity relation")

        ordered = np.sort(sims["s"].to_numpy())
        if count % 2 == 0:
            left = count // 2 - 1
            median = (ordered[left] + ordered[left + 1]) / 2
        else:
            median = ordered[count // 2]
        del ordered

        logger.debug(f"Median of {count} similarities = {median}")
        return float(median)

    def determine_preferences(self, similarities: SimilarityInput) -> pd.DataFrame:
        """Add a self-loop carrying the median similarity for every vertex.

        This sorts the whole relation and can be slow for very large inputs.
        """
        sims = as_similarity_frame(similarities)
        return self.embed_preferences(sims, self.median(sims))

    def embed_preferences(self, similarities: SimilarityInput, preference: float) -> pd.DataFrame:
        """Add a self-loop carrying the given preference for every vertex"""
        sims = as_similarity_frame(similarities)
        vertices = distinct_vertices(sims)

        preferences = pd.DataFrame({
            "i": vertices,
            "j": vertices,
            "s": np.full(len(vertices), float(preference)),
        })

        return pd.concat([sims, preferences], ignore_index=True).astype(
            {"i": np.int64, "j": np.int64, "s": np.float64}
        )
