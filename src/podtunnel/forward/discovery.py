"""Pod port discovery and the port candidates offered to the user."""

import logging
from collections.abc import Mapping

from pydantic import ValidationError

from ..cluster.interfaces import ClusterAccess
from ..common.utils import fqn
from .exceptions import ResourceFetchError
from .models import ContainerPort, PortProtocol

logger = logging.getLogger(__name__)


class PodPortDiscovery:
    """Reads the ports a pod's containers declare."""

    def __init__(self, cluster: ClusterAccess):
        self.cluster = cluster

    def fetch_pod_ports(self, pod_path: str) -> dict[str, list[ContainerPort]]:
        """Map each container of a pod to its declared ports.

        Args:
            pod_path: Fully qualified pod name

        Returns:
            Container name to ports, in spec order

        Raises:
            ResourceFetchError: If the pod cannot be fetched or decoded
        """
        logger.debug(f"Fetching ports on pod {pod_path!r}")
        manifest = self.cluster.fetch_resource("pods", pod_path)

        ports_by_container: dict[str, list[ContainerPort]] = {}
        try:
            for container in manifest["spec"]["containers"]:
                ports_by_container[container["name"]] = [
                    ContainerPort(
                        name=port.get("name", ""),
                        container_port=port["containerPort"],
                        protocol=port.get("protocol", PortProtocol.TCP),
                    )
                    for port in container.get("ports") or []
                ]
        except (KeyError, TypeError, ValidationError) as e:
            raise ResourceFetchError("pods", pod_path, f"decode error: {e}") from e

        return ports_by_container


def format_candidate(container: str, port: ContainerPort) -> str:
    """Render a port as ``container/portName:containerPort``."""
    return f"{fqn(container, port.name)}:{port.container_port}"


def port_candidates(ports_by_container: Mapping[str, list[ContainerPort]]) -> list[str]:
    """Build the selectable candidates, keeping TCP ports only."""
    return [
        format_candidate(container, port)
        for container, ports in ports_by_container.items()
        for port in ports
        if port.protocol == PortProtocol.TCP
    ]


def parse_candidate(candidate: str) -> tuple[str, str, int]:
    """Split a candidate back into container, port name and port.

    Raises:
        ValueError: If the candidate is not in candidate format
    """
    container, sep, rest = candidate.partition("/")
    name, colon, port = rest.rpartition(":")
    if not sep or not colon or not container or not port.isdigit():
        raise ValueError(f"Invalid port candidate '{candidate}'")
    return container, name, int(port)
