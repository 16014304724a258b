import numpy as np

from apgraph.clustering_algs.cluster_model import ClusterModel


def cluster_size_summary(model: ClusterModel) -> dict:
    """
    Size structure of one clustering.

    Returns a dict with:
        - n_total
        - n_clusters
        - sizes (cluster sizes, ordered by cluster id)
        - size_stats (min / q1 / median / q3 / max)
        - n_singletons (clusters holding only their exemplar)
    """
    assignments = model.assignments
    sizes = assignments.groupby("cluster_id")["member"].size().to_numpy(dtype=int)

    if sizes.size > 0:
        size_stats = {
            "min": int(np.min(sizes)),
            "q1": float(np.percentile(sizes, 25)),
            "median": float(np.median(sizes)),
            "q3": float(np.percentile(sizes, 75)),
            "max": int(np.max(sizes)),
        }
    else:
        size_stats = {"min": 0, "q1": np.nan, "median": np.nan, "q3": np.nan, "max": 0}

    return {
        "n_total": int(len(assignments)),
        "n_clusters": model.cluster_count(),
        "sizes": sizes.tolist(),
        "size_stats": size_stats,
        "n_singletons": int((sizes == 1).sum()),
    }
