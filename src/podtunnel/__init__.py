"""podtunnel - port-forward tunnel lifecycle for a Kubernetes operator console."""

from .cluster import ClusterAccess, Kr8sCluster, PodResolver, resolver_for
from .common.exceptions import ConfigurationError, PodTunnelError
from .common.logging import get_logger, setup_logging
from .forward import (
    ControllerState,
    DuplicateSession,
    ForwardConfig,
    ForwardError,
    ForwarderRegistry,
    ForwardingRunner,
    PortSelection,
    PortTunnel,
    PortUnavailable,
    ResourceFetchError,
    SessionController,
    SessionNotFound,
    TransportError,
    TunnelSession,
    UnsupportedResourceKind,
    session_key,
)
from .ui import KeyAction, KeyActions, UIQueue

__version__ = "0.1.0"


__all__ = [
    # Lifecycle
    "SessionController",
    "ControllerState",
    "ForwarderRegistry",
    "ForwardingRunner",
    "TunnelSession",
    "PortTunnel",
    "PortSelection",
    "session_key",
    "ForwardConfig",
    # Cluster
    "ClusterAccess",
    "PodResolver",
    "Kr8sCluster",
    "resolver_for",
    # Console
    "UIQueue",
    "KeyAction",
    "KeyActions",
    # Exceptions
    "PodTunnelError",
    "ConfigurationError",
    "ForwardError",
    "ResourceFetchError",
    "UnsupportedResourceKind",
    "PortUnavailable",
    "DuplicateSession",
    "TransportError",
    "SessionNotFound",
    # Logging
    "get_logger",
    "setup_logging",
]
