import logging
from typing import Optional

import numpy as np
import pandas as pd

from apgraph.clustering_algs.cluster_model import ClusterModel
from apgraph.clustering_algs.exemplars import choose_exemplars
from apgraph.clustering_algs.message_passing import MessagePassingEngine
from apgraph.configs import APConfig
from apgraph.graph import GraphBuilder, SimilarityInput
from apgraph.tools.distance_matrix import similarities_from_matrix
from apgraph.tools.parallel_fold import ParallelFold, get_fold

logger = logging.getLogger(__name__)


class AffinityPropagation:
    """
    Affinity propagation clustering over a sparse, possibly asymmetric
    similarity relation.

    Points exchange responsibilities and availabilities along the edges of
    the similarity graph until the messages settle; every point then picks
    the exemplar with the highest availability + responsibility. The number
    of clusters is not fixed in advance: it follows from the preferences,
    the self-similarities s(i, i). See Frey and Dueck, "Clustering by Passing
    Messages Between Data Points", Science 2007.
    """

    def __init__(self, config: Optional[APConfig] = None, fold: Optional[ParallelFold] = None):
        self.config = config or APConfig()
        self.fold = fold or get_fold(self.config.backend, self.config.n_workers)
        self.graph_builder = GraphBuilder(self.fold)
        self.engine = MessagePassingEngine(
            max_iterations=self.config.max_iterations,
            damping=self.config.damping,
            fold=self.fold,
            convergence_interval=self.config.convergence_interval,
            show_progress=self.config.show_progress,
        )

    def determine_preferences(self, similarities: SimilarityInput) -> pd.DataFrame:
        """Append median-valued self-loops for every vertex, the recommended default"""
        return self.graph_builder.determine_preferences(similarities)

    def embed_preferences(self, similarities: SimilarityInput, preference: float) -> pd.DataFrame:
        """Append self-loops with a fixed preference; lower values give fewer clusters"""
        return self.graph_builder.embed_preferences(similarities, preference)

    def run(self, similarities: SimilarityInput) -> ClusterModel:
        """
        Cluster the given similarities.

        Args:
            similarities: (i, j, s) triples. s may be any real value and s(i, j)
                need not equal s(j, i); triples with i == j are preferences.
                With config.symmetric set, pass only one triangle.

        Returns:
            ClusterModel with the cluster assignments

        Raises:
            EmptyInputError: if there are no similarities
        """
        graph = self.graph_builder.construct_graph(
            similarities,
            normalize=self.config.normalization,
            symmetric=self.config.symmetric,
        )
        result = self.engine.run(graph)

        model = ClusterModel(
            choose_exemplars(result.graph, self.fold),
            iterations=result.iterations,
            converged=result.converged,
        )
        logger.info(f"Affinity Propagation found {model.k} clusters")
        return model

    def fit_predict(
        self, similarity_matrix: np.ndarray, preference: Optional[float] = None
    ) -> np.ndarray:
        """
        Cluster a dense n x n similarity matrix.

        The diagonal is ignored; every row gets the median similarity as its
        preference unless one is given.

        Returns:
            cluster label per matrix row

        Raises:
            EmptyInputError: if no preference is given and the matrix has a
                single row, leaving no similarity to take the median of
        """
        n = len(similarity_matrix)
        sims = similarities_from_matrix(similarity_matrix, symmetric=self.config.symmetric)

        if preference is None:
            sims = self.determine_preferences(sims)
        else:
            rows = np.arange(n, dtype=np.int64)
            loops = pd.DataFrame({"i": rows, "j": rows, "s": np.full(n, float(preference))})
            sims = pd.concat([sims, loops], ignore_index=True)

        model = self.run(sims)
        return model.labels(range(n))
