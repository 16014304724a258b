import numpy as np
import pandas as pd
import pytest

from apgraph.models import EDGE_COLUMNS

POSITIONS = {1: 0.0, 2: 1.0, 3: 2.0, 4: 100.0, 5: 101.0, 6: 102.0}


@pytest.fixture
def two_group_similarities():
    """Upper triangle of -(x_i - x_j)^2 for two well separated groups on a line"""
    ids = sorted(POSITIONS)
    return [
        (i, j, -(POSITIONS[i] - POSITIONS[j]) ** 2)
        for a, i in enumerate(ids)
        for j in ids[a + 1:]
    ]


@pytest.fixture
def random_similarities():
    rng = np.random.default_rng(7)
    points = rng.normal(size=(20, 2))
    triples = []
    for i in range(20):
        for j in range(i + 1, 20):
            triples.append((i, j, -float(np.sum((points[i] - points[j]) ** 2))))
    return triples


def make_graph(rows):
    """Edge frame from (src, dst, similarity, availability, responsibility) rows"""
    return pd.DataFrame(rows, columns=EDGE_COLUMNS).astype(
        {"src": np.int64, "dst": np.int64, "similarity": float,
         "availability": float, "responsibility": float}
    )
