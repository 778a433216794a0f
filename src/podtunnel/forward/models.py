"""Port-forward session models.

A session ties a pod container to the local listeners that relay into it.
Identity fields are immutable; the active flag and the transport handle are
private state guarded by a per-session lock because the forwarding thread
and the console both touch them.
"""

import threading
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from ..common.utils import validate_non_empty_string

if TYPE_CHECKING:
    from .transport import Transport

KEY_SEPARATOR = "|"


class PortProtocol(str, Enum):
    """Container port protocol."""

    TCP = "TCP"
    UDP = "UDP"
    SCTP = "SCTP"


def session_key(pod: str, container: str) -> str:
    """Build the registry key for a pod container.

    Args:
        pod: Fully qualified pod name (namespace/name)
        container: Container name

    Returns:
        Key of the form ``namespace/name|container``
    """
    return f"{pod}{KEY_SEPARATOR}{container}"


class PortTunnel(BaseModel):
    """One local listener relaying into one container port."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    address: str = Field(
        default="127.0.0.1", min_length=1, description="Local bind address"
    )
    local_port: int = Field(ge=1, le=65535, description="Local port to listen on")
    container_port: int = Field(ge=1, le=65535, description="Remote container port")
    protocol: PortProtocol = Field(
        default=PortProtocol.TCP, description="Port protocol"
    )

    def __str__(self) -> str:
        return f"{self.address}:{self.local_port}->{self.container_port}"


class ContainerPort(BaseModel):
    """A port declared in a pod container spec."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    container_port: int = Field(ge=1, le=65535)
    protocol: PortProtocol = PortProtocol.TCP


class TunnelSession(BaseModel):
    """A live port-forward against one pod container."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    pod: str = Field(min_length=1, description="Pod fully qualified name")
    container: str = Field(min_length=1, description="Container name")
    tunnels: tuple[PortTunnel, ...] = Field(
        min_length=1, description="Local to remote port mappings"
    )
    created_at: datetime = Field(
        default_factory=datetime.now, description="Session creation timestamp"
    )

    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)
    _active: bool = PrivateAttr(default=False)
    _activated_at: datetime | None = PrivateAttr(default=None)
    _transport: Any = PrivateAttr(default=None)
    _released: bool = PrivateAttr(default=False)

    @field_validator("pod", "container")
    @classmethod
    def validate_identity(cls, v: str) -> str:
        """Reject blank identity parts."""
        return validate_non_empty_string(v, "Session identity")

    @property
    def key(self) -> str:
        """Registry key for this session."""
        return session_key(self.pod, self.container)

    @property
    def is_active(self) -> bool:
        """True while the forwarding loop is running."""
        with self._lock:
            return self._active

    @property
    def activated_at(self) -> datetime | None:
        with self._lock:
            return self._activated_at

    @property
    def transport(self) -> "Transport | None":
        return self._transport  # type: ignore[no-any-return]

    @property
    def released(self) -> bool:
        with self._lock:
            return self._released

    def ports(self) -> list[str]:
        """Render the port mappings as ``local:remote`` pairs."""
        return [f"{t.local_port}:{t.container_port}" for t in self.tunnels]

    def mark_active(self) -> None:
        with self._lock:
            self._active = True
            if self._activated_at is None:
                self._activated_at = datetime.now()

    def mark_inactive(self) -> None:
        with self._lock:
            self._active = False

    def attach_transport(self, transport: "Transport") -> None:
        """Hand the transport handle to this session.

        Raises:
            RuntimeError: If a transport is already attached
        """
        with self._lock:
            if self._transport is not None:
                raise RuntimeError(f"Session {self.key} already owns a transport")
            self._transport = transport

    def release(self) -> bool:
        """Close the transport handle, once.

        Returns:
            True if this call released the handle, False if it was already released
        """
        with self._lock:
            if self._released:
                return False
            self._released = True
            transport = self._transport

        if transport is not None:
            transport.close()
        return True

    def info(self) -> dict[str, Any]:
        """Describe the session for the active forwards listing."""
        activated_at = self.activated_at
        return {
            "key": self.key,
            "pod": self.pod,
            "container": self.container,
            "ports": self.ports(),
            "addresses": sorted({t.address for t in self.tunnels}),
            "active": self.is_active,
            "created_at": self.created_at.isoformat(),
            "activated_at": activated_at.isoformat() if activated_at else None,
        }


class PortSelection(BaseModel):
    """One row confirmed in the port-forward dialog."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    candidate: str = Field(min_length=1, description="container/portName:port")
    local_port: int = Field(ge=1, le=65535, description="Local port to listen on")
    address: str | None = Field(None, description="Bind address (config default)")
