"""Background forwarding runner, one thread per session."""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum

from ..ui.interfaces import Console
from .exceptions import TransportError
from .models import TunnelSession
from .registry import ForwarderRegistry

logger = logging.getLogger(__name__)


class RunnerOutcome(str, Enum):
    """How a forwarding runner ended."""

    CLOSED = "closed"
    FAILED = "failed"


@dataclass(frozen=True)
class RunnerResult:
    """Completion signal of a runner."""

    key: str
    outcome: RunnerOutcome
    error: TransportError | None = None


class ForwardingRunner:
    """Runs a session's transport and retires the session when it stops.

    The session must already be in the registry and own a transport. Every
    change the console can see (active flag, registry membership, flash
    messages) is queued onto the UI thread. ``done`` resolves once the
    retirement has run there.
    """

    def __init__(
        self,
        session: TunnelSession,
        registry: ForwarderRegistry,
        console: Console,
        on_activated: Callable[[TunnelSession], None] | None = None,
    ):
        self.session = session
        self.registry = registry
        self.console = console
        self._on_activated = on_activated
        self.done: Future[RunnerResult] = Future()
        self._retired = False
        self._retire_lock = threading.Lock()
        self._thread = threading.Thread(
            target=self._run, name=f"port-forward-{session.key}", daemon=True
        )

    def start(self) -> Future[RunnerResult]:
        """Launch the runner thread and return its completion future."""
        self.done.set_running_or_notify_cancel()
        self._thread.start()
        return self.done

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    @property
    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _run(self) -> None:
        error: TransportError | None = None
        transport = self.session.transport
        try:
            if transport is None:
                raise TransportError(
                    f"Port-forward {self.session.key} has no transport"
                )
            logger.debug(
                f"Starting port-forward {self.session.key} {self.session.ports()}"
            )
            transport.forward(self._on_ready)
        except TransportError as e:
            error = e
        except Exception as e:
            error = TransportError(f"Port-forward {self.session.key} failed: {e}")
            error.__cause__ = e
        finally:
            self.session.release()
            self.console.run_on_ui_thread(lambda: self._retire(error))

        if error is not None:
            logger.error(f"Port-forward {self.session.key} failed: {error}")
        else:
            logger.info(f"Port-forward {self.session.key} closed")

    def _on_ready(self) -> None:
        self.console.run_on_ui_thread(self._activate)

    def _activate(self) -> None:
        if self.done.done() or self.session.released:
            return
        self.session.mark_active()
        self.console.flash.info(
            f"PortForward activated {self.session.pod}:{self.session.ports()[0]}"
        )
        self.console.dialogs.dismiss()
        if self._on_activated is not None:
            self._on_activated(self.session)

    def _retire(self, error: TransportError | None) -> None:
        with self._retire_lock:
            if self._retired:
                return
            self._retired = True

        try:
            self.session.mark_inactive()
            removed = self.registry.discard(self.session.key, expected=self.session)
            # A session deleted from the console was already reported there
            if removed is not None and error is not None:
                self.console.flash.error(error)
            elif removed is not None:
                self.console.flash.info(f"PortForward {self.session.key} stopped")
        finally:
            outcome = RunnerOutcome.FAILED if error else RunnerOutcome.CLOSED
            self.done.set_result(RunnerResult(self.session.key, outcome, error))
