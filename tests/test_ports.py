"""Tests for local port availability checks."""

import pytest

from podtunnel.forward import PortTunnel, PortUnavailable, check_ports, try_listen_port


class TestTryListenPort:
    def test_free_port_passes(self, free_port):
        """Test a free port raises nothing"""
        try_listen_port("127.0.0.1", free_port)

    def test_free_port_is_released(self, free_port):
        """Test the check does not keep the port bound"""
        try_listen_port("127.0.0.1", free_port)
        try_listen_port("127.0.0.1", free_port)

    def test_busy_port_raises_unavailable(self, busy_port):
        """Test a bound port raises PortUnavailable with the bind error"""
        with pytest.raises(PortUnavailable) as exc_info:
            try_listen_port("127.0.0.1", busy_port)

        assert exc_info.value.port == busy_port
        assert exc_info.value.address == "127.0.0.1"
        assert isinstance(exc_info.value.error, OSError)
        assert exc_info.value.__cause__ is exc_info.value.error

    def test_unknown_address_raises_unavailable(self, free_port):
        """Test an address that is not local cannot be bound"""
        with pytest.raises(PortUnavailable):
            try_listen_port("203.0.113.7", free_port)


class TestCheckPorts:
    def test_all_free(self, free_port):
        """Test a batch of free ports passes"""
        check_ports([PortTunnel(local_port=free_port, container_port=8080)])

    @pytest.mark.parametrize("busy_index", [0, 1, 2])
    def test_any_busy_port_fails_batch(self, busy_index, busy_port, free_port):
        """Test one busy port anywhere in the batch fails the whole batch"""
        ports = [free_port, free_port, free_port]
        ports[busy_index] = busy_port
        tunnels = [
            PortTunnel(local_port=port, container_port=8080 + i)
            for i, port in enumerate(ports)
        ]

        with pytest.raises(PortUnavailable) as exc_info:
            check_ports(tunnels)

        assert exc_info.value.port == busy_port
