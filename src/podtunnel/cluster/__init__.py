"""Cluster access and pod resolution."""

from .client import Kr8sCluster
from .interfaces import ClusterAccess, PodResolver
from .resolvers import (
    PodIdentityResolver,
    SelectorPodResolver,
    normalize_kind,
    resolver_for,
)

__all__ = [
    "ClusterAccess",
    "PodResolver",
    "Kr8sCluster",
    "PodIdentityResolver",
    "SelectorPodResolver",
    "normalize_kind",
    "resolver_for",
]
