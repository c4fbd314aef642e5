"""Frame builder and parser for the Tuya LAN (0x55AA) wire format.

Frame layout::

    +----------+---------+---------+---------+----------------------+---------+----------+
    |  Prefix  | Seq nr  | Command | Length  |       Payload        |  CRC32  |  Suffix  |
    | 4 bytes  | 4 bytes | 4 bytes | 4 bytes |  Length - 8 bytes    | 4 bytes | 4 bytes  |
    +----------+---------+---------+---------+----------------------+---------+----------+

- Prefix: 0x00 0x00 0x55 0xAA
- All integers are big-endian unsigned 32-bit
- Length: payload size + 8 (it counts the CRC and the suffix)
- CRC32: over prefix up to the end of the payload
- Suffix: 0x00 0x00 0xAA 0x55

Frames sent by a device may start their payload with a 4-byte return
code. It is recognised by its upper three bytes being zero.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from ..errors import CrcError, ParseError
from ..utils.crc import crc32
from .commands import CommandType, command_from_value

PREFIX = b"\x00\x00\x55\xAA"
SUFFIX = b"\x00\x00\xAA\x55"
HEADER_SIZE = 16  # prefix + seq_nr + command + length
TRAILER_SIZE = 8  # crc + suffix

_HEADER = struct.Struct(">4sIII")


@dataclass
class Frame:
    """A parsed frame; ``payload`` is still encrypted."""

    seq_nr: int
    command: CommandType | int
    payload: bytes
    ret_code: int | None = None

    def __repr__(self) -> str:
        command = getattr(self.command, "name", self.command)
        return (
            f"Frame(seq_nr={self.seq_nr}, command={command}, "
            f"ret_code={self.ret_code}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def build_frame(
    seq_nr: int,
    command: int,
    payload: bytes = b"",
    ret_code: int | None = None,
) -> bytes:
    """Build a complete frame.

    Args:
        seq_nr: Sequence number (0 to 2**32 - 1).
        command: Command id.
        payload: Already-encrypted payload bytes.
        ret_code: If given, prepended to the payload as a 4-byte return
            code, as devices do in their replies.

    Returns:
        The frame bytes ready to be written to the socket.
    """
    if ret_code is not None:
        payload = ret_code.to_bytes(4, "big") + payload
    header = _HEADER.pack(PREFIX, seq_nr, int(command), len(payload) + TRAILER_SIZE)
    body = header + payload
    return body + crc32(body).to_bytes(4, "big") + SUFFIX


def frames_complete(data: bytes, limit: int | None = None) -> bool:
    """Tell whether ``data`` ends on a frame boundary.

    Used by the reader to decide whether to wait for more bytes. Data that
    does not start with the prefix is reported complete, since no amount
    of further reading can fix it; the parser rejects it. So is a frame
    whose declared length would end past ``limit`` bytes.
    """
    offset = 0
    while offset < len(data):
        remaining = len(data) - offset
        if remaining < HEADER_SIZE:
            return not PREFIX.startswith(data[offset : offset + 4])
        prefix, _, _, length = _HEADER.unpack_from(data, offset)
        if prefix != PREFIX:
            return True
        total = HEADER_SIZE + length
        if limit is not None and offset + total > limit:
            return True
        if remaining < total:
            return False
        offset += total
    return offset > 0


def _parse_one(data: bytes, offset: int) -> tuple[Frame, int]:
    remaining = len(data) - offset
    if remaining < HEADER_SIZE:
        raise ParseError(f"Truncated frame header at offset {offset}: {remaining} bytes")

    prefix, seq_nr, command, length = _HEADER.unpack_from(data, offset)
    if prefix != PREFIX:
        raise ParseError(f"Bad frame prefix at offset {offset}: {prefix.hex()}")
    if length < TRAILER_SIZE:
        raise ParseError(f"Frame length {length} is shorter than the trailer")

    end = offset + HEADER_SIZE + length
    if end > len(data):
        raise ParseError(
            f"Truncated frame at offset {offset}: need {HEADER_SIZE + length} bytes, "
            f"have {remaining}"
        )

    payload_end = end - TRAILER_SIZE
    payload = data[offset + HEADER_SIZE : payload_end]
    expected_crc = int.from_bytes(data[payload_end : payload_end + 4], "big")
    suffix = data[payload_end + 4 : end]
    if suffix != SUFFIX:
        raise ParseError(f"Bad frame suffix at offset {payload_end + 4}: {suffix.hex()}")

    actual_crc = crc32(data[offset:payload_end])
    if actual_crc != expected_crc:
        raise CrcError(expected_crc, actual_crc)

    ret_code = None
    if len(payload) >= 4:
        candidate = int.from_bytes(payload[:4], "big")
        if candidate & 0xFFFFFF00 == 0:
            ret_code = candidate
            payload = payload[4:]

    frame = Frame(
        seq_nr=seq_nr,
        command=command_from_value(command),
        payload=payload,
        ret_code=ret_code,
    )
    return frame, end


def parse_frames(data: bytes) -> list[Frame]:
    """Parse every frame in ``data``.

    The whole buffer must be consumed; leftover bytes are an error.

    Raises:
        ParseError: On a bad prefix, suffix, length or a truncated frame.
        CrcError: On a checksum mismatch.
    """
    frames: list[Frame] = []
    offset = 0
    while offset < len(data):
        frame, offset = _parse_one(data, offset)
        frames.append(frame)
    return frames
