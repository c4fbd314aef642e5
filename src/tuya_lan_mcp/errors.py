"""Exception types raised by the device session and the message codec."""

from __future__ import annotations


class TuyaError(Exception):
    """Base exception for Tuya LAN protocol errors."""


class TransportError(TuyaError):
    """The TCP layer failed (connect, configure, write, read or shutdown).

    The underlying ``OSError`` is kept on :attr:`error` and is also
    chained as ``__cause__``.
    """

    def __init__(self, message: str, error: OSError | None = None) -> None:
        self.error = error
        if error is not None:
            message = f"{message}: {error}"
        super().__init__(message)


class DeviceTimeoutError(TransportError):
    """The device did not answer within the read timeout."""


class BadTcpRead(TuyaError):
    """The device closed the connection without sending a reply."""

    def __init__(self, seq_id: int | None = None) -> None:
        self.seq_id = seq_id
        super().__init__(f"Device closed the connection without a reply (seq {seq_id})")


class CodecError(TuyaError):
    """Base exception for codec construction, encoding and parsing failures."""


class VersionError(CodecError):
    """Unsupported protocol version string."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"Unsupported protocol version: {version!r}")


class KeyLengthError(CodecError):
    """The local key is not exactly 16 characters long."""

    def __init__(self, length: int) -> None:
        self.length = length
        super().__init__(f"Local key must be 16 characters, got {length}")


class EncodeError(CodecError):
    """A message could not be turned into bytes."""


class ParseError(CodecError):
    """Inbound bytes do not match the frame layout."""


class CrcError(CodecError):
    """Frame checksum mismatch."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"CRC mismatch: frame says 0x{expected:08X}, computed 0x{actual:08X}")


class DecryptError(CodecError):
    """Payload failed AES decryption or unpadding."""
