"""Forwarder registry for live port-forward sessions."""

import logging
import threading

from pydantic import BaseModel, Field, PrivateAttr

from .exceptions import DuplicateSession, ForwardLimitReached, SessionNotFound
from .models import TunnelSession

logger = logging.getLogger(__name__)


class ForwarderRegistry(BaseModel):
    """In-memory store of live sessions keyed by pod container.

    Every operation runs under one lock, so registry changes are observed in a
    single total order by the console and by every forwarding thread.
    """

    sessions_by_key: dict[str, TunnelSession] = Field(
        default_factory=dict, description="Live sessions by key"
    )
    max_sessions: int = Field(
        default=32, ge=1, le=100, description="Maximum number of live sessions"
    )

    _lock: threading.RLock = PrivateAttr(default_factory=threading.RLock)

    def add(self, session: TunnelSession) -> None:
        """Register a session, checking for a live duplicate atomically.

        Args:
            session: Session to add

        Raises:
            DuplicateSession: If a session is already live for the key
            ForwardLimitReached: If the registry is full
        """
        with self._lock:
            if session.key in self.sessions_by_key:
                raise DuplicateSession(session.key)

            if len(self.sessions_by_key) >= self.max_sessions:
                raise ForwardLimitReached(
                    f"Maximum port-forward limit ({self.max_sessions}) reached"
                )

            self.sessions_by_key[session.key] = session
        logger.info(f"Added port-forward {session.key} to registry")

    def delete(self, key: str) -> TunnelSession:
        """Remove a session from the registry.

        Args:
            key: Session key

        Returns:
            Removed session

        Raises:
            SessionNotFound: If no session is registered under the key
        """
        with self._lock:
            if key not in self.sessions_by_key:
                raise SessionNotFound(key)
            session = self.sessions_by_key.pop(key)
        logger.info(f"Removed port-forward {key} from registry")
        return session

    def discard(
        self, key: str, expected: TunnelSession | None = None
    ) -> TunnelSession | None:
        """Remove a session if present, ignoring absent keys.

        Args:
            key: Session key
            expected: Only remove the entry if it is this very session

        Returns:
            Removed session, or None if nothing was removed
        """
        with self._lock:
            current = self.sessions_by_key.get(key)
            if current is None or (expected is not None and current is not expected):
                logger.debug(f"Port-forward {key} already gone from registry")
                return None
            return self.delete(key)

    def lookup(self, key: str) -> TunnelSession | None:
        """Get the live session for a key, if any."""
        with self._lock:
            return self.sessions_by_key.get(key)

    def all_for_pod(self, pod: str) -> list[TunnelSession]:
        """List every live session targeting a pod.

        Args:
            pod: Fully qualified pod name

        Returns:
            Sessions whose pod matches, in insertion order
        """
        with self._lock:
            return [s for s in self.sessions_by_key.values() if s.pod == pod]

    def sessions(self) -> tuple[TunnelSession, ...]:
        """Snapshot of every live session."""
        with self._lock:
            return tuple(self.sessions_by_key.values())

    def clear(self) -> list[TunnelSession]:
        """Drop every session from the registry.

        Returns:
            The sessions that were registered
        """
        with self._lock:
            dropped = list(self.sessions_by_key.values())
            self.sessions_by_key.clear()
        logger.info("Cleared all port-forwards from registry")
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self.sessions_by_key)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self.sessions_by_key
