"""Per-kind pod resolution for port-forward targets.

Only kinds registered here can be forwarded; anything else raises
``UnsupportedResourceKind`` before any dialog opens.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from ..common.utils import fqn, split_fqn
from ..forward.exceptions import ResourceFetchError, UnsupportedResourceKind
from .interfaces import ClusterAccess, PodResolver

logger = logging.getLogger(__name__)


def normalize_kind(kind: str) -> str:
    """Reduce ``v1/pods``, ``apps/v1/deployments`` or ``Pod`` to a plural name."""
    name = kind.rsplit("/", 1)[-1].strip().lower()
    if name and not name.endswith("s"):
        name += "s"
    return name


def _match_labels(manifest: Mapping[str, Any]) -> dict[str, str]:
    selector = manifest.get("spec", {}).get("selector") or {}
    return dict(selector.get("matchLabels") or {})


def _service_labels(manifest: Mapping[str, Any]) -> dict[str, str]:
    return dict(manifest.get("spec", {}).get("selector") or {})


class PodIdentityResolver:
    """A pod resolves to itself."""

    def resolve_to_pod(self, path: str) -> str:
        return path


class SelectorPodResolver:
    """Resolve a controller to one of the pods its selector matches.

    Running pods are preferred; otherwise the first listed pod is used.
    """

    def __init__(
        self,
        cluster: ClusterAccess,
        kind: str,
        selector: Callable[[Mapping[str, Any]], dict[str, str]],
    ):
        self.cluster = cluster
        self.kind = kind
        self._selector = selector

    def resolve_to_pod(self, path: str) -> str:
        """Resolve a controller path to a pod path.

        Raises:
            ResourceFetchError: If the controller or its pods cannot be read
        """
        manifest = self.cluster.fetch_resource(self.kind, path)
        labels = self._selector(manifest)
        if not labels:
            raise ResourceFetchError(self.kind, path, "no pod selector")

        namespace, _ = split_fqn(path)
        pods = self.cluster.list_resources("pods", namespace, labels)
        if not pods:
            raise ResourceFetchError(self.kind, path, "no pods found")

        running = [p for p in pods if p.get("status", {}).get("phase") == "Running"]
        pod = (running or pods)[0]
        metadata = pod.get("metadata", {})
        resolved = fqn(metadata.get("namespace", namespace), metadata["name"])
        logger.debug(f"Resolved {self.kind} {path!r} to pod {resolved!r}")
        return resolved


_SELECTORS: dict[str, Callable[[Mapping[str, Any]], dict[str, str]]] = {
    "deployments": _match_labels,
    "statefulsets": _match_labels,
    "daemonsets": _match_labels,
    "replicasets": _match_labels,
    "jobs": _match_labels,
    "services": _service_labels,
}


def resolver_for(kind: str, cluster: ClusterAccess) -> PodResolver:
    """Get the pod resolution capability for a resource kind.

    Args:
        kind: Resource kind of the selected row
        cluster: Cluster access used by controller resolvers

    Returns:
        Resolver for the kind

    Raises:
        UnsupportedResourceKind: If the kind cannot resolve to a pod
    """
    name = normalize_kind(kind)
    if name == "pods":
        return PodIdentityResolver()
    if name in _SELECTORS:
        return SelectorPodResolver(cluster, name, _SELECTORS[name])
    raise UnsupportedResourceKind(kind)
