"""Tests for the kr8s-backed transport."""

import threading
from unittest.mock import AsyncMock, Mock, patch

import httpx
import kr8s
import pytest

from podtunnel.forward import Kr8sTransport, PortTunnel, TransportError
from podtunnel.forward.transport import kr8s_transport_factory


class FakePortForward:
    """Async context manager standing in for kr8s PortForward."""

    opened: list["FakePortForward"] = []

    def __init__(self, pod, remote_port, local_port=None, address="127.0.0.1"):
        self.pod = pod
        self.remote_port = remote_port
        self.local_port = local_port
        self.address = address
        self.entered = False
        self.exited = False

    async def __aenter__(self):
        self.entered = True
        FakePortForward.opened.append(self)
        return self.local_port

    async def __aexit__(self, *exc):
        self.exited = True


@pytest.fixture
def kr8s_mocks():
    """Patch the kr8s API, pod lookup and port-forward classes."""
    FakePortForward.opened = []
    pod = Mock(name="pod", raw={"status": {"phase": "Running"}})
    pod.refresh = AsyncMock()
    with (
        patch("kr8s.asyncio.api", new=AsyncMock(return_value="api")) as api,
        patch(
            "podtunnel.forward.transport.Pod.get", new=AsyncMock(return_value=pod)
        ) as get_pod,
        patch("podtunnel.forward.transport.PortForward", new=FakePortForward),
    ):
        yield api, get_pod, pod


@pytest.fixture
def tunnels():
    return (
        PortTunnel(local_port=9090, container_port=8080),
        PortTunnel(address="0.0.0.0", local_port=9443, container_port=8443),
    )


def run_in_thread(transport):
    """Start ``forward`` on a thread, returning (thread, ready, errors)."""
    ready = threading.Event()
    errors = []

    def target():
        try:
            transport.forward(ready.set)
        except TransportError as e:
            errors.append(e)

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    return thread, ready, errors


class TestKr8sTransport:
    """Test suite for Kr8sTransport."""

    def test_forward_until_closed(self, kr8s_mocks, tunnels):
        """Test each tunnel is opened and torn down when the transport closes"""
        api, get_pod, pod = kr8s_mocks
        transport = Kr8sTransport("ns/web-0", tunnels, kubeconfig="/tmp/kc", context="dev")

        thread, ready, errors = run_in_thread(transport)
        assert ready.wait(timeout=5)

        api.assert_awaited_once_with(kubeconfig="/tmp/kc", context="dev")
        get_pod.assert_awaited_once_with("web-0", namespace="ns", api="api")
        assert [(f.remote_port, f.local_port, f.address) for f in FakePortForward.opened] == [
            (8080, 9090, "127.0.0.1"),
            (8443, 9443, "0.0.0.0"),
        ]
        assert all(f.pod is pod for f in FakePortForward.opened)

        transport.close()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert errors == []
        assert all(f.exited for f in FakePortForward.opened)
        assert transport.closed is True

    def test_close_is_idempotent(self, kr8s_mocks, tunnels):
        """Test closing twice is harmless"""
        transport = Kr8sTransport("ns/web-0", tunnels)
        thread, ready, _ = run_in_thread(transport)
        assert ready.wait(timeout=5)

        transport.close()
        transport.close()
        thread.join(timeout=5)

        assert not thread.is_alive()

    def test_close_before_forward(self, kr8s_mocks, tunnels):
        """Test a transport closed before it starts never dials the cluster"""
        api, _, _ = kr8s_mocks
        transport = Kr8sTransport("ns/web-0", tunnels)
        transport.close()

        on_ready = []
        transport.forward(lambda: on_ready.append(True))

        assert on_ready == []
        api.assert_not_awaited()

    def test_missing_pod_raises_transport_error(self, kr8s_mocks, tunnels):
        """Test kr8s lookup failures surface as TransportError"""
        _, get_pod, _ = kr8s_mocks
        get_pod.side_effect = kr8s.NotFoundError("Pod web-0 not found")
        transport = Kr8sTransport("ns/web-0", tunnels)

        with pytest.raises(TransportError, match="web-0") as exc_info:
            transport.forward(lambda: None)

        assert isinstance(exc_info.value.__cause__, kr8s.NotFoundError)
        assert FakePortForward.opened == []

    def test_factory_builds_transport(self, tunnels):
        """Test the factory passes kubeconfig settings through"""
        factory = kr8s_transport_factory(
            kubeconfig="/tmp/kc", context="dev", pod_check_interval=1.5
        )

        transport = factory("ns/web-0", tunnels)

        assert isinstance(transport, Kr8sTransport)
        assert transport.pod == "ns/web-0"
        assert transport.tunnels == tunnels
        assert transport.kubeconfig == "/tmp/kc"
        assert transport.context == "dev"
        assert transport.pod_check_interval == 1.5


class TestPodWatch:
    """Test suite for noticing a forwarded pod going away."""

    def test_deleted_pod_ends_forwarding(self, kr8s_mocks, tunnels):
        """Test forwarding fails once the pod can no longer be read"""
        _, _, pod = kr8s_mocks
        pod.refresh.side_effect = [None, kr8s.NotFoundError("Pod web-0 not found")]
        transport = Kr8sTransport("ns/web-0", tunnels, pod_check_interval=0.01)

        thread, ready, errors = run_in_thread(transport)
        thread.join(timeout=5)

        assert ready.is_set()
        assert not thread.is_alive()
        assert len(errors) == 1
        assert "deleted" in str(errors[0])
        assert isinstance(errors[0].__cause__, kr8s.NotFoundError)
        assert all(f.exited for f in FakePortForward.opened)

    @pytest.mark.parametrize("phase", ["Succeeded", "Failed"])
    def test_terminated_pod_ends_forwarding(self, kr8s_mocks, tunnels, phase):
        """Test a pod in a terminal phase ends forwarding"""
        _, _, pod = kr8s_mocks
        pod.raw = {"status": {"phase": phase}}
        transport = Kr8sTransport("ns/web-0", tunnels, pod_check_interval=0.01)

        with pytest.raises(TransportError, match=phase):
            transport.forward(lambda: None)

    def test_api_outage_is_tolerated(self, kr8s_mocks, tunnels):
        """Test a failed pod check is retried instead of ending forwarding"""
        _, _, pod = kr8s_mocks
        pod.refresh.side_effect = [
            kr8s.APITimeoutError("timed out"),
            httpx.ConnectError("connection refused"),
            kr8s.ServerError("etcdserver: leader changed"),
            kr8s.NotFoundError("Pod web-0 not found"),
        ]
        transport = Kr8sTransport("ns/web-0", tunnels, pod_check_interval=0.01)

        with pytest.raises(TransportError, match="deleted"):
            transport.forward(lambda: None)

        assert pod.refresh.await_count == 4

    def test_close_stops_pod_checks(self, kr8s_mocks, tunnels):
        """Test closing ends forwarding cleanly while the pod is alive"""
        _, _, pod = kr8s_mocks
        transport = Kr8sTransport("ns/web-0", tunnels, pod_check_interval=0.01)

        thread, ready, errors = run_in_thread(transport)
        assert ready.wait(timeout=5)
        transport.close()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert errors == []
