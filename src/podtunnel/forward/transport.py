"""Transports relaying local listeners into pod container ports."""

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable, Sequence
from typing import Protocol

import httpx
import kr8s
import kr8s.asyncio
from kr8s.asyncio.objects import Pod
from kr8s.asyncio.portforward import PortForward

from ..common.utils import split_fqn
from .exceptions import TransportError
from .models import PortTunnel

logger = logging.getLogger(__name__)

TERMINAL_PHASES = ("Succeeded", "Failed")


class Transport(Protocol):
    """The forwarding handle owned by a session."""

    def forward(self, on_ready: Callable[[], None]) -> None:
        """Relay traffic until closed, calling ``on_ready`` once listening.

        Raises:
            TransportError: If forwarding fails
        """
        ...

    def close(self) -> None:
        """Stop forwarding. Safe from any thread and idempotent."""
        ...


class Kr8sTransport:
    """Relay over the Kubernetes port-forward websocket using kr8s.

    ``forward`` runs a private event loop in the calling thread, one kr8s
    ``PortForward`` per tunnel, until ``close`` is called or the pod goes
    away.
    """

    def __init__(
        self,
        pod: str,
        tunnels: Sequence[PortTunnel],
        kubeconfig: str | None = None,
        context: str | None = None,
        pod_check_interval: float = 5.0,
    ):
        self.pod = pod
        self.tunnels = tuple(tunnels)
        self.kubeconfig = kubeconfig
        self.context = context
        self.pod_check_interval = pod_check_interval
        self._lock = threading.Lock()
        self._closed = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop: asyncio.Event | None = None

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def forward(self, on_ready: Callable[[], None]) -> None:
        try:
            asyncio.run(self._serve(on_ready))
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"Port-forward {self.pod} failed: {e}") from e
        finally:
            with self._lock:
                self._loop = None
                self._stop = None

    async def _serve(self, on_ready: Callable[[], None]) -> None:
        stop = asyncio.Event()
        with self._lock:
            if self._closed:
                return
            self._loop = asyncio.get_running_loop()
            self._stop = stop

        namespace, name = split_fqn(self.pod)
        api = await kr8s.asyncio.api(kubeconfig=self.kubeconfig, context=self.context)
        pod = await Pod.get(name, namespace=namespace or None, api=api)

        async with contextlib.AsyncExitStack() as stack:
            for tunnel in self.tunnels:
                await stack.enter_async_context(
                    PortForward(
                        pod,
                        tunnel.container_port,
                        local_port=tunnel.local_port,
                        address=tunnel.address,
                    )
                )
                logger.debug(f"Listening on {tunnel} for {self.pod}")
            on_ready()

            watch = asyncio.create_task(self._watch_pod(pod))
            stopped = asyncio.create_task(stop.wait())
            done, pending = await asyncio.wait(
                {watch, stopped}, return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            if watch in done:
                watch.result()
        logger.debug(f"Port-forward {self.pod} closed")

    async def _watch_pod(self, pod: Pod) -> None:
        """Raise once the pod is deleted or has terminated.

        kr8s relays each connection on its own and never reports a dead pod,
        so the pod is re-read every ``pod_check_interval`` seconds. API
        outages are tolerated; the next check retries.

        Raises:
            TransportError: If the pod is gone or in a terminal phase
        """
        while True:
            await asyncio.sleep(self.pod_check_interval)
            try:
                await pod.refresh()
            except kr8s.NotFoundError as e:
                raise TransportError(f"Pod {self.pod} was deleted") from e
            except (kr8s.ServerError, kr8s.APITimeoutError, httpx.TransportError) as e:
                logger.debug(f"Could not check pod {self.pod}: {e}")
                continue

            phase = (pod.raw.get("status") or {}).get("phase")
            if phase in TERMINAL_PHASES:
                raise TransportError(f"Pod {self.pod} is {phase}")

    def close(self) -> None:
        with self._lock:
            self._closed = True
            loop, stop = self._loop, self._stop
        if loop is not None and stop is not None:
            # The loop may already be shutting down on its own
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(stop.set)


TransportFactory = Callable[[str, Sequence[PortTunnel]], Transport]


def kr8s_transport_factory(
    kubeconfig: str | None = None,
    context: str | None = None,
    pod_check_interval: float = 5.0,
) -> TransportFactory:
    """Build a factory producing ``Kr8sTransport`` for a kubeconfig context."""

    def factory(pod: str, tunnels: Sequence[PortTunnel]) -> Transport:
        return Kr8sTransport(
            pod,
            tunnels,
            kubeconfig=kubeconfig,
            context=context,
            pod_check_interval=pod_check_interval,
        )

    return factory
