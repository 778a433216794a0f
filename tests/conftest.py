"""Shared pytest fixtures for podtunnel tests."""

import socket
import threading
import time
from collections.abc import Mapping
from typing import Any
from unittest.mock import Mock

import pytest

from podtunnel.forward import (
    ForwardConfig,
    ForwarderRegistry,
    PortTunnel,
    ResourceFetchError,
    SessionController,
    TransportError,
)
from podtunnel.ui import UIQueue


def build_pod_manifest(
    name: str,
    namespace: str = "ns",
    containers: list[dict[str, Any]] | None = None,
    labels: dict[str, str] | None = None,
    phase: str = "Running",
) -> dict[str, Any]:
    """Build a minimal pod manifest."""
    return {
        "metadata": {"name": name, "namespace": namespace, "labels": labels or {}},
        "spec": {"containers": containers or []},
        "status": {"phase": phase},
    }


class FakeCluster:
    """In-memory cluster keyed by (kind, namespace/name)."""

    def __init__(self) -> None:
        self.resources: dict[tuple[str, str], dict[str, Any]] = {}
        self.fetches: list[tuple[str, str]] = []

    def add(self, kind: str, path: str, manifest: dict[str, Any]) -> None:
        self.resources[(kind, path)] = manifest

    def fetch_resource(self, kind: str, path: str) -> Mapping[str, Any]:
        self.fetches.append((kind, path))
        try:
            return self.resources[(kind, path)]
        except KeyError:
            raise ResourceFetchError(kind, path, "not found") from None

    def list_resources(
        self, kind: str, namespace: str, label_selector: Mapping[str, str]
    ) -> list[Mapping[str, Any]]:
        matches = []
        for (k, path), manifest in self.resources.items():
            if k != kind or not path.startswith(f"{namespace}/"):
                continue
            labels = manifest["metadata"].get("labels", {})
            if all(labels.get(key) == value for key, value in label_selector.items()):
                matches.append(manifest)
        return matches


class FakeTransport:
    """Transport that relays nothing and runs until closed or failed."""

    def __init__(self, pod: str, tunnels: tuple[PortTunnel, ...]) -> None:
        self.pod = pod
        self.tunnels = tunnels
        self.ready = threading.Event()
        self.stopped = threading.Event()
        self.close_calls = 0
        self.error: Exception | None = None
        self.fail_before_ready: Exception | None = None

    def forward(self, on_ready):
        if self.fail_before_ready is not None:
            raise self.fail_before_ready
        on_ready()
        self.ready.set()
        self.stopped.wait(timeout=10)
        if self.error is not None:
            raise self.error

    def close(self) -> None:
        self.close_calls += 1
        self.stopped.set()

    def fail(self, error: Exception) -> None:
        self.error = error
        self.stopped.set()


class FakeConsole:
    """Console with mocked surfaces and a real UI queue."""

    def __init__(self) -> None:
        self.queue = UIQueue()
        self.dialogs = Mock()
        self.flash = Mock()
        self.listing = Mock()

    def run_on_ui_thread(self, fn) -> None:
        self.queue.run_on_ui_thread(fn)


@pytest.fixture
def cluster():
    """Cluster with pod ns/web-0 exposing app/http:8080 and a UDP port."""
    fake = FakeCluster()
    fake.add(
        "pods",
        "ns/web-0",
        build_pod_manifest(
            "web-0",
            labels={"app": "web"},
            containers=[
                {
                    "name": "app",
                    "ports": [
                        {"name": "http", "containerPort": 8080, "protocol": "TCP"},
                        {"name": "dns", "containerPort": 53, "protocol": "UDP"},
                    ],
                }
            ],
        ),
    )
    return fake


@pytest.fixture
def console():
    return FakeConsole()


@pytest.fixture
def registry():
    return ForwarderRegistry()


@pytest.fixture
def transports():
    """Every FakeTransport built by the controller, in creation order."""
    return []


@pytest.fixture
def transport_factory(transports):
    def factory(pod, tunnels):
        transport = FakeTransport(pod, tuple(tunnels))
        transports.append(transport)
        return transport

    return factory


@pytest.fixture
def controller(registry, cluster, console, transport_factory):
    ctrl = SessionController(
        registry,
        cluster,
        console,
        config=ForwardConfig(),
        transport_factory=transport_factory,
    )
    yield ctrl
    ctrl.stop_all(timeout=2)


@pytest.fixture
def settle(console):
    """Drain the UI queue until a condition holds.

    Returns:
        Callable taking a zero-argument predicate and a timeout
    """

    def wait(predicate, timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            console.queue.drain()
            if predicate():
                return True
            time.sleep(0.01)
        console.queue.drain()
        return bool(predicate())

    return wait


@pytest.fixture
def free_port():
    """A local port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def busy_port():
    """A local port held by a listening socket for the test's duration."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    s.listen(1)
    yield s.getsockname()[1]
    s.close()


@pytest.fixture
def transport_error():
    return TransportError("connection reset by peer")


@pytest.fixture
def pod_manifest():
    """Factory for minimal pod manifests."""
    return build_pod_manifest


@pytest.fixture
def fake_transport_cls():
    return FakeTransport
