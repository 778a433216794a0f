"""Port-forward lifecycle: sessions, registry, runner and controller."""

# Config
from .config import ForwardConfig

# Controller
from .controller import ControllerState, SessionController

# Discovery
from .discovery import (
    PodPortDiscovery,
    format_candidate,
    parse_candidate,
    port_candidates,
)

# Exceptions
from .exceptions import (
    DuplicateSession,
    ForwardError,
    ForwardLimitReached,
    PortUnavailable,
    ResourceFetchError,
    SessionNotFound,
    TransportError,
    UnsupportedResourceKind,
)

# Models
from .models import (
    ContainerPort,
    PortProtocol,
    PortSelection,
    PortTunnel,
    TunnelSession,
    session_key,
)

# Port checks
from .ports import check_ports, try_listen_port

# Registry
from .registry import ForwarderRegistry

# Runner
from .runner import ForwardingRunner, RunnerOutcome, RunnerResult

# Transport
from .transport import Kr8sTransport, Transport, kr8s_transport_factory

__all__ = [
    # Models
    "PortProtocol",
    "PortTunnel",
    "ContainerPort",
    "PortSelection",
    "TunnelSession",
    "session_key",
    "ForwardConfig",
    # Lifecycle
    "ForwarderRegistry",
    "ForwardingRunner",
    "RunnerOutcome",
    "RunnerResult",
    "SessionController",
    "ControllerState",
    "PodPortDiscovery",
    "format_candidate",
    "parse_candidate",
    "port_candidates",
    "check_ports",
    "try_listen_port",
    "Transport",
    "Kr8sTransport",
    "kr8s_transport_factory",
    # Exceptions
    "ForwardError",
    "ResourceFetchError",
    "UnsupportedResourceKind",
    "PortUnavailable",
    "DuplicateSession",
    "TransportError",
    "SessionNotFound",
    "ForwardLimitReached",
]
