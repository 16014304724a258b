import logging
from typing import Dict

import numpy as np
from sklearn.metrics import (
    calinski_harabasz_score,
    davies_bouldin_score,
    silhouette_score,
)

logger = logging.getLogger(__name__)


class QualityMetrics:
    """Internal validity scores for a label array produced by a cluster model"""

    def quality_metrics(
        self, X: np.ndarray, distance_matrix: np.ndarray, labels: np.ndarray
    ) -> Dict[str, float]:
        """Compute clustering quality metrics

        Every score is NaN when the labels hold a single cluster or one
        cluster per point, where none of them is defined.
        """
        labels = np.asarray(labels)

        if not self.is_scorable(labels):
            logger.info(f"Skipping quality metrics for {len(set(labels))} clusters")
            return {
                "Silhouette Score": np.nan,
                "Calinski-Harabasz": np.nan,
                "Davies-Bouldin": np.nan,
            }

        scores = {
            "Silhouette Score": self.silhouette_score_wrapper(distance_matrix, labels),
            "Calinski-Harabasz": self.calinski_harabasz_score_wrapper(X, labels),
            "Davies-Bouldin": self.davies_bouldin_score_wrapper(X, labels),
        }
        logger.info(f"Clustering quality metrics: {scores}")
        return scores

    @staticmethod
    def is_scorable(labels: np.ndarray) -> bool:
        n_clusters = len(set(labels))
        return 1 < n_clusters < len(labels)

    def silhouette_score_wrapper(
        self, distance_matrix: np.ndarray, labels: np.ndarray
    ) -> float:
        """Compute Silhouette Score"""
        distance_matrix = np.array(distance_matrix, dtype=np.float64)
        np.fill_diagonal(distance_matrix, 0)
        return float(silhouette_score(distance_matrix, labels, metric="precomputed"))

    def calinski_harabasz_score_wrapper(
        self, X: np.ndarray, labels: np.ndarray
    ) -> float:
        """Compute Calinski-Harabasz Score"""
        return float(calinski_harabasz_score(X, labels))

    def davies_bouldin_score_wrapper(self, X: np.ndarray, labels: np.ndarray) -> float:
        """Compute Davies-Bouldin Score"""
        return float(davies_bouldin_score(X, labels))
