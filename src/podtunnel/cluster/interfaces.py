"""Protocol interfaces for cluster access to avoid coupling to a client."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class ClusterAccess(Protocol):
    """Read access to cluster resources."""

    def fetch_resource(self, kind: str, path: str) -> Mapping[str, Any]:
        """Fetch one resource by kind and ``namespace/name`` path."""
        ...

    def list_resources(
        self, kind: str, namespace: str, label_selector: Mapping[str, str]
    ) -> list[Mapping[str, Any]]:
        """List resources of a kind matching a label selector."""
        ...


class PodResolver(Protocol):
    """Capability of a resource kind to resolve itself to one pod."""

    def resolve_to_pod(self, path: str) -> str:
        """Return the fully qualified name of the pod backing ``path``."""
        ...
