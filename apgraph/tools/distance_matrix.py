import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import euclidean_distances

logger = logging.getLogger(__name__)

"""
Helpers that turn dense matrices and raw points into the (i, j, s) similarity
triples affinity propagation consumes.
"""


def similarities_from_matrix(
    similarity_matrix: np.ndarray,
    symmetric: bool = True,
    ids: Optional[Sequence[int]] = None,
) -> pd.DataFrame:
    """Flatten an n x n similarity matrix into triples, skipping the diagonal.

    With symmetric=True only the upper triangle is emitted, matching the
    one-triangle input contract of GraphBuilder.construct_graph.
    """
    similarity_matrix = np.asarray(similarity_matrix, dtype=np.float64)
    _validate_matrix(similarity_matrix, symmetric)

    n = similarity_matrix.shape[0]
    if symmetric:
        rows, cols = np.triu_indices(n, k=1)
    else:
        rows, cols = np.nonzero(~np.eye(n, dtype=bool))

    key = np.arange(n, dtype=np.int64) if ids is None else np.asarray(ids, dtype=np.int64)
    if key.shape[0] != n:
        raise ValueError(f"Got {key.shape[0]} ids for a {n} x {n} matrix")

    return pd.DataFrame({
        "i": key[rows],
        "j": key[cols],
        "s": similarity_matrix[rows, cols],
    })


def similarity_from_distance(
    distance_matrix: np.ndarray, normalizer: Optional[float] = None
) -> np.ndarray:
    """Gaussian kernel exp(-D / normalizer), normalizer defaulting to 2 * std(D)^2"""
    distance_matrix = np.asarray(distance_matrix, dtype=np.float64)

    if normalizer is None:
        normalizer = 2 * (np.std(distance_matrix) ** 2)

    if normalizer == 0:
        normalizer = 1.0

    return np.exp(-distance_matrix / normalizer)


def negative_squared_euclidean(X: np.ndarray) -> np.ndarray:
    """The similarity used in the original AP paper: -||x_i - x_k||^2"""
    return -euclidean_distances(X, squared=True)


def _validate_matrix(matrix: np.ndarray, symmetric: bool) -> bool:
    # check if matrix is square
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"Similarity matrix is not square: {matrix.shape}")

    # only the upper triangle gets used, so the lower one has to agree
    if symmetric and not np.allclose(matrix, matrix.T, equal_nan=True):
        raise ValueError("Similarity matrix is not symmetric")

    logger.debug(f"Similarity matrix {matrix.shape} is valid")
    return True
