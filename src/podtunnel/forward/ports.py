"""Local listen-port availability checks.

The check binds and immediately releases the port, so it is advisory only:
another process may grab the port between the check and the forward.
"""

import logging
import socket
import sys
from collections.abc import Iterable

from .exceptions import PortUnavailable
from .models import PortTunnel

logger = logging.getLogger(__name__)


def try_listen_port(address: str, port: int) -> None:
    """Open and close a TCP listener on exactly ``address:port``.

    Args:
        address: Local bind address
        port: Local port

    Raises:
        PortUnavailable: If the listener cannot be opened
    """
    family = socket.AF_INET6 if ":" in address else socket.AF_INET
    try:
        with socket.socket(family, socket.SOCK_STREAM) as server:
            # Match the listeners the relay opens later
            if hasattr(socket, "SO_REUSEADDR") and sys.platform != "win32":
                server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server.bind((address, int(port)))
            server.listen(1)
    except OSError as e:
        logger.debug(f"Port {address}:{port} is not available: {e}")
        raise PortUnavailable(address, int(port), e) from e


def check_ports(tunnels: Iterable[PortTunnel]) -> None:
    """Check every local port of a batch, failing on the first taken one.

    Args:
        tunnels: Proposed port mappings

    Raises:
        PortUnavailable: For the first port that cannot be bound
    """
    for tunnel in tunnels:
        try_listen_port(tunnel.address, tunnel.local_port)
