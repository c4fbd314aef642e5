"""CRC-32 checksum used by Tuya LAN frames.

Tuya uses the standard IEEE 802.3 polynomial (reflected 0xEDB88320,
initial value and final XOR 0xFFFFFFFF), which is exactly what
``zlib.crc32`` computes.
"""

from __future__ import annotations

import zlib


def crc32(data: bytes) -> int:
    """Compute the CRC-32 of ``data`` as an unsigned 32-bit integer."""
    return zlib.crc32(data) & 0xFFFFFFFF
