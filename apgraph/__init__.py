from apgraph.clustering import AffinityPropagation
from apgraph.clustering_algs.cluster_model import ClusterModel
from apgraph.configs import APConfig
from apgraph.exceptions import EmptyInputError
from apgraph.models import Cluster

__all__ = [
    "AffinityPropagation",
    "APConfig",
    "Cluster",
    "ClusterModel",
    "EmptyInputError",
]
