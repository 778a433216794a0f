"""Exceptions raised while managing port-forward sessions."""

from ..common.exceptions import PodTunnelError


class ForwardError(PodTunnelError):
    """Base exception for port-forward lifecycle errors."""

    pass


class ResourceFetchError(ForwardError):
    """Cluster data could not be fetched, was denied or failed to decode."""

    def __init__(self, kind: str, path: str, reason: str) -> None:
        self.kind = kind
        self.path = path
        self.reason = reason
        super().__init__(f"Unable to fetch {kind} {path!r}: {reason}")


class UnsupportedResourceKind(ForwardError):
    """The selected resource cannot be resolved to a concrete pod."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"expecting a controller resource for {kind!r}")


class PortUnavailable(ForwardError):
    """A requested local port is already bound."""

    def __init__(self, address: str, port: int, error: OSError) -> None:
        self.address = address
        self.port = port
        self.error = error
        super().__init__(f"Local port {address}:{port} is unavailable: {error}")


class DuplicateSession(ForwardError):
    """A session is already live for the requested key."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__("A port-forward is already active on this pod")


class TransportError(ForwardError):
    """Forwarding failed while the tunnel was running."""

    pass


class SessionNotFound(ForwardError):
    """No session is registered under the given key."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Port-forward '{key}' not found")


class ForwardLimitReached(ForwardError):
    """The registry already holds the configured maximum of sessions."""

    pass
