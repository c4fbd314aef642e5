"""Transport layer: per-request TCP connections to devices."""

from .tcp_connection import Endpoint, TCPConnection
