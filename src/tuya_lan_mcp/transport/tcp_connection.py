"""Short-lived TCP connection to a device.

Each request opens its own connection; the device handles one
request/response pair per connection and the client closes it.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass

from ..config import CONNECT_TIMEOUT, READ_TIMEOUT, RECV_SIZE
from ..errors import DeviceTimeoutError, TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Endpoint:
    """Network address of a device."""

    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class TCPConnection:
    """Manages one TCP connection to a device.

    Usage::

        with TCPConnection(endpoint) as conn:
            conn.write(frame_bytes)
            data = conn.read()
            conn.shutdown()

    The socket is closed when the ``with`` block exits, whatever the
    outcome. Every ``OSError`` is re-raised as :class:`TransportError`.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        connect_timeout: float = CONNECT_TIMEOUT,
        read_timeout: float = READ_TIMEOUT,
    ) -> None:
        self._endpoint = endpoint
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._sock: socket.socket | None = None

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    def open(self) -> None:
        """Connect and configure the socket.

        Raises:
            TransportError: If the connection cannot be established or
                configured.
        """
        if self._sock is not None:
            return
        try:
            sock = socket.create_connection(
                (self._endpoint.host, self._endpoint.port),
                timeout=self._connect_timeout,
            )
        except socket.timeout as e:
            raise DeviceTimeoutError(f"Timed out connecting to {self._endpoint}", e) from e
        except OSError as e:
            raise TransportError(f"Could not connect to {self._endpoint}", e) from e

        try:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.settimeout(self._read_timeout)
        except OSError as e:
            sock.close()
            raise TransportError(f"Could not configure socket for {self._endpoint}", e) from e

        self._sock = sock
        logger.debug("Connected to %s", self._endpoint)

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        if self._sock is None:
            return
        try:
            self._sock.close()
        finally:
            self._sock = None
            logger.debug("Closed connection to %s", self._endpoint)

    def __enter__(self) -> TCPConnection:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise TransportError(f"Not connected to {self._endpoint}")
        return self._sock

    def write(self, data: bytes) -> int:
        """Write all of ``data``.

        Returns:
            Number of bytes written.

        Raises:
            TransportError: If the write fails before every byte is sent.
        """
        sock = self._require_socket()
        try:
            sock.sendall(data)
        except socket.timeout as e:
            raise DeviceTimeoutError(f"Timed out writing to {self._endpoint}", e) from e
        except OSError as e:
            raise TransportError(f"Write to {self._endpoint} failed", e) from e
        return len(data)

    def read(self, size: int = RECV_SIZE) -> bytes:
        """Read up to ``size`` bytes with a single ``recv`` call.

        Returns:
            The bytes received; ``b""`` means the peer closed the connection.

        Raises:
            DeviceTimeoutError: If nothing arrives within the read timeout.
            TransportError: On any other socket error.
        """
        sock = self._require_socket()
        try:
            return sock.recv(size)
        except socket.timeout as e:
            raise DeviceTimeoutError(
                f"No reply from {self._endpoint} within {self._read_timeout}s", e
            ) from e
        except OSError as e:
            raise TransportError(f"Read from {self._endpoint} failed", e) from e

    def shutdown(self) -> None:
        """Shut down both directions of the connection.

        Raises:
            TransportError: If the shutdown fails.
        """
        sock = self._require_socket()
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            raise TransportError(f"Shutdown of {self._endpoint} failed", e) from e
