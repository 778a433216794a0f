"""Session controller driving the port-forward flow of the console.

The trigger runs on the UI loop and never blocks on cluster or forwarding
I/O. Pod resolution, port discovery and port validation run on a worker
thread, which hands dialogs and notifications back through the console's
UI queue.
"""

import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from functools import partial
from typing import Any, TypeVar

from pydantic import ValidationError

from ..cluster.interfaces import ClusterAccess
from ..cluster.resolvers import resolver_for
from ..common.logging import get_logger
from ..ui.interfaces import Console
from ..ui.keys import KeyAction, KeyActions
from .config import ForwardConfig
from .discovery import PodPortDiscovery, parse_candidate, port_candidates
from .exceptions import DuplicateSession, ForwardError
from .models import PortSelection, PortTunnel, TunnelSession, session_key
from .ports import check_ports
from .registry import ForwarderRegistry
from .runner import ForwardingRunner, RunnerResult
from .transport import TransportFactory, kr8s_transport_factory

logger = get_logger(__name__)

_T = TypeVar("_T")


class ControllerState(str, Enum):
    """Where the port-forward flow currently stands."""

    IDLE = "idle"
    AWAITING_PORT_SELECTION = "awaiting_port_selection"
    VALIDATING_PORTS = "validating_ports"
    STARTING = "starting"
    ACTIVE = "active"
    TERMINATING = "terminating"
    AWAITING_DELETE_CONFIRMATION = "awaiting_delete_confirmation"


class SessionController:
    """Opens, tracks and tears down port-forwards for one resource view."""

    def __init__(
        self,
        registry: ForwarderRegistry,
        cluster: ClusterAccess,
        console: Console,
        kind: str = "pods",
        config: ForwardConfig | None = None,
        transport_factory: TransportFactory | None = None,
    ):
        """Initialize the controller.

        Args:
            registry: Process-wide forwarder registry
            cluster: Cluster access for pod lookups
            console: Hosting view surfaces
            kind: Resource kind listed by the hosting view
            config: Port-forward configuration
            transport_factory: Builds the transport of a new session
        """
        self.registry = registry
        self.cluster = cluster
        self.console = console
        self.kind = kind
        self.config = config or ForwardConfig()
        self.discovery = PodPortDiscovery(cluster)
        self._transport_factory = transport_factory or kr8s_transport_factory(
            kubeconfig=self.config.kubeconfig,
            context=self.config.context,
            pod_check_interval=self.config.pod_check_interval,
        )
        self._state = ControllerState.IDLE
        self._lock = threading.RLock()
        self._runners: dict[str, ForwardingRunner] = {}
        self._stopped = False
        self._worker = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="port-forward-worker"
        )

    @property
    def state(self) -> ControllerState:
        """Where the latest flow stands.

        One controller drives one flow at a time. A flow that ends returns to
        ``ACTIVE`` while other sessions are still live and to ``IDLE``
        otherwise.
        """
        with self._lock:
            return self._state

    @property
    def stopped(self) -> bool:
        with self._lock:
            return self._stopped

    def _set_state(self, state: ControllerState) -> None:
        with self._lock:
            if self._state != state:
                logger.debug(
                    "Port-forward state", old=self._state.value, new=state.value
                )
            self._state = state

    def _settle(self) -> None:
        with self._lock:
            live = len(self.registry) > 0 and not self._stopped
            self._set_state(ControllerState.ACTIVE if live else ControllerState.IDLE)

    def _advance(
        self, expected: Iterable[ControllerState], state: ControllerState
    ) -> bool:
        with self._lock:
            if self._state not in tuple(expected):
                return False
            self._set_state(state)
            return True

    def _submit(self, fn: Callable[..., _T], *args: Any) -> "Future[_T] | None":
        with self._lock:
            if self._stopped:
                return None
            return self._worker.submit(fn, *args)

    def bind_keys(self, actions: KeyActions) -> None:
        """Register the trigger key in the hosting view's key table."""
        actions.add(
            {
                self.config.trigger_key: KeyAction(
                    label=self.config.trigger_label, handler=self.trigger
                )
            }
        )

    def active_forwards(self) -> tuple[TunnelSession, ...]:
        """Read-only snapshot of every live session."""
        return self.registry.sessions()

    def runner_for(self, key: str) -> ForwardingRunner | None:
        with self._lock:
            return self._runners.get(key)

    # ----------------------------------------------------------------------
    # UI loop side

    def trigger(self, selected_path: str) -> bool:
        """Handle the port-forward key on the selected row.

        The selection is resolved on the worker; the dialog, or the error,
        reaches the console through its UI queue.

        Args:
            selected_path: ``namespace/name`` of the selected resource

        Returns:
            False if the key should pass through, because nothing was
            selected or the controller is stopped
        """
        if not selected_path:
            return False
        return self.prepare(selected_path) is not None

    def prepare(self, selected_path: str) -> "Future[None] | None":
        """Schedule resolution and port discovery for a selected row.

        Returns:
            Future resolved once the dialog or the error has been queued, or
            None if the controller is stopped
        """
        return self._submit(self._prepare, selected_path)

    def resolve_pod(self, path: str) -> str:
        """Resolve the selected resource to the pod to forward to.

        Raises:
            UnsupportedResourceKind: If the view's kind cannot resolve to a pod
            ResourceFetchError: If the resource cannot be read
        """
        return resolver_for(self.kind, self.cluster).resolve_to_pod(path)

    def cancel(self) -> None:
        """The open dialog was dismissed without confirming."""
        with self._lock:
            if self._state in (
                ControllerState.AWAITING_PORT_SELECTION,
                ControllerState.AWAITING_DELETE_CONFIRMATION,
            ):
                self._settle()

    def _show_start_dialog(self, pod: str, candidates: list[str]) -> None:
        self._set_state(ControllerState.AWAITING_PORT_SELECTION)
        self.console.dialogs.show_selection(
            candidates, partial(self._on_ports_selected, pod)
        )

    def _show_delete_dialog(self, pod: str, sessions: Sequence[TunnelSession]) -> None:
        self._set_state(ControllerState.AWAITING_DELETE_CONFIRMATION)
        bindings = "".join(f"\n{s.container}{s.ports()}" for s in sessions)
        self.console.dialogs.show_confirmation(
            f"Delete PortForward {pod}?{bindings}", partial(self.confirm_delete, pod)
        )

    def _on_ports_selected(
        self, pod: str, selections: Sequence[PortSelection] | None
    ) -> list[Future[TunnelSession | None]]:
        if not selections:
            self.cancel()
            return []

        try:
            by_container = self._group_selections(selections)
        except ForwardError as e:
            self._fail(e)
            return []

        futures = []
        for container, tunnels in by_container.items():
            future = self._submit(self.start_forward, pod, container, tunnels)
            if future is None:
                break
            futures.append(future)
        return futures

    def _group_selections(
        self, selections: Sequence[PortSelection]
    ) -> dict[str, list[PortTunnel]]:
        by_container: dict[str, list[PortTunnel]] = {}
        try:
            for selection in selections:
                container, _, container_port = parse_candidate(selection.candidate)
                by_container.setdefault(container, []).append(
                    PortTunnel(
                        address=selection.address or self.config.default_address,
                        local_port=selection.local_port,
                        container_port=container_port,
                    )
                )
        except (ValueError, ValidationError) as e:
            raise ForwardError(f"Invalid port selection: {e}") from e
        return by_container

    def confirm_delete(self, pod: str) -> int:
        """Tear down every port-forward on a pod.

        Closing a session's transport is what stops its runner; the runner
        then finds its registry entry already gone.

        Returns:
            Number of sessions torn down
        """
        sessions = self.registry.all_for_pod(pod)
        for session in sessions:
            session.release()
            session.mark_inactive()
            self.registry.discard(session.key, expected=session)

        logger.info("Port-forward deleted", pod=pod, sessions=len(sessions))
        self.console.flash.info(f"PortForward {pod} deleted!")
        self.console.listing.refresh()
        self._settle()
        return len(sessions)

    # ----------------------------------------------------------------------
    # Worker side

    def _prepare(self, selected_path: str) -> None:
        show: Callable[[], None]
        try:
            pod = self.resolve_pod(selected_path)
            sessions = self.registry.all_for_pod(pod)
            if sessions:
                show = partial(self._show_delete_dialog, pod, sessions)
            else:
                candidates = port_candidates(self.discovery.fetch_pod_ports(pod))
                show = partial(self._show_start_dialog, pod, candidates)
        except ForwardError as e:
            self._fail(e, queued=True)
            return
        self.console.run_on_ui_thread(show)

    def start_forward(
        self, pod: str, container: str, tunnels: Iterable[PortTunnel]
    ) -> TunnelSession | None:
        """Validate the local ports and launch a session.

        No session is created unless every local port is free and no live
        session exists for the pod container. Failures are flashed once
        through the UI queue.

        Returns:
            The launched session, or None if the start was rejected
        """
        if self.stopped:
            logger.info("Port-forward start ignored after stop_all", pod=pod)
            return None

        tunnels = tuple(tunnels)
        session: TunnelSession | None = None
        self._set_state(ControllerState.VALIDATING_PORTS)
        try:
            if not tunnels:
                raise ForwardError("No ports selected for forwarding")
            check_ports(tunnels)

            key = session_key(pod, container)
            if self.registry.lookup(key) is not None:
                raise DuplicateSession(key)

            self._set_state(ControllerState.STARTING)
            session = TunnelSession(pod=pod, container=container, tunnels=tunnels)
            session.attach_transport(self._transport_factory(pod, tunnels))
            self.registry.add(session)
        except ForwardError as e:
            if session is not None:
                session.release()
            self._fail(e, queued=True)
            return None

        runner = ForwardingRunner(
            session, self.registry, self.console, on_activated=self._on_activated
        )
        with self._lock:
            stopped = self._stopped
            if not stopped:
                self._runners[session.key] = runner
        if stopped:
            # stop_all ran while this start was validating
            session.release()
            self.registry.discard(session.key, expected=session)
            return None

        runner.done.add_done_callback(self._on_runner_done)
        runner.start()
        logger.info(
            "Port-forward started", pod=pod, container=container, ports=session.ports()
        )
        return session

    def _on_activated(self, session: TunnelSession) -> None:
        self._advance((ControllerState.STARTING,), ControllerState.ACTIVE)

    def _on_runner_done(self, done: "Future[RunnerResult]") -> None:
        result = done.result()
        with self._lock:
            self._runners.pop(result.key, None)
            if self._advance(
                (ControllerState.STARTING, ControllerState.ACTIVE),
                ControllerState.TERMINATING,
            ):
                self._settle()
        logger.info(
            "Port-forward ended", key=result.key, outcome=result.outcome.value
        )

    def _fail(self, error: ForwardError, queued: bool = False) -> None:
        logger.warning("Port-forward rejected", error=str(error))
        self._settle()
        if queued:
            self.console.run_on_ui_thread(partial(self.console.flash.error, error))
        else:
            self.console.flash.error(error)

    # ----------------------------------------------------------------------
    # Shutdown

    def stop_all(self, timeout: float | None = 5.0) -> int:
        """Tear down every session, for console exit.

        Stopping is terminal: afterwards the trigger passes the key through,
        confirmed dialogs start nothing and a start already validating
        discards its session.

        Args:
            timeout: Seconds to wait for each runner thread to finish

        Returns:
            Number of sessions torn down
        """
        with self._lock:
            self._stopped = True
        sessions = self.registry.clear()
        for session in sessions:
            session.release()
            session.mark_inactive()

        with self._lock:
            runners = list(self._runners.values())
        for runner in runners:
            runner.join(timeout)

        self._worker.shutdown(wait=False, cancel_futures=True)
        self._set_state(ControllerState.IDLE)
        logger.info("Stopped all port-forwards", sessions=len(sessions))
        return len(sessions)

    def info(self) -> list[dict[str, Any]]:
        """Describe every live session for the active forwards listing."""
        return [session.info() for session in self.registry.sessions()]
