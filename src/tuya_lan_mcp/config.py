"""Session configuration.

Protocol constants live at module level; per-session tunables are grouped
in :class:`SessionConfig`, which callers pass to
:meth:`~tuya_lan_mcp.device.TuyaDevice.create`.
"""

from __future__ import annotations

from dataclasses import dataclass

DEVICE_PORT = 6668
CONNECT_TIMEOUT = 5.0  # seconds
READ_TIMEOUT = 2.0  # seconds
RECV_SIZE = 256
MAX_RESPONSE_SIZE = 4096


@dataclass(frozen=True)
class SessionConfig:
    """Timeouts and buffer sizes for a device session.

    Attributes:
        connect_timeout: Seconds to wait for the TCP handshake.
        read_timeout: Seconds to wait for each read of the reply.
        recv_size: Bytes requested per ``recv`` call.
        max_response_size: Upper bound on the bytes accumulated while
            waiting for a frame that arrives in several segments.
    """

    connect_timeout: float = CONNECT_TIMEOUT
    read_timeout: float = READ_TIMEOUT
    recv_size: int = RECV_SIZE
    max_response_size: int = MAX_RESPONSE_SIZE

    def __post_init__(self) -> None:
        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            raise ValueError("Timeouts must be positive")
        if self.recv_size < 1:
            raise ValueError(f"recv_size must be positive, got {self.recv_size}")
        if self.max_response_size < self.recv_size:
            raise ValueError(
                f"max_response_size ({self.max_response_size}) must be at least "
                f"recv_size ({self.recv_size})"
            )
