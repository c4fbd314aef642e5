"""Message codec: turns :class:`Message` objects into frames and back.

A codec is bound to a protocol version and a device local key. It keeps
no per-message state, so one instance can serve concurrent exchanges.
"""

from __future__ import annotations

import logging
from enum import Enum
from hashlib import md5
from typing import Protocol

from ..errors import EncodeError, KeyLengthError, VersionError
from ..models.message import Message, payload_from_bytes, payload_to_bytes
from .cipher import AESCipher
from .commands import NO_HEADER_COMMANDS
from .framing import build_frame, parse_frames

logger = logging.getLogger(__name__)

KEY_LENGTH = 16
# Key used when the caller has none; devices use it for UDP broadcasts.
DEFAULT_KEY = md5(b"yGAdlopoPVldABfn").digest()
DIGEST_SIZE = 16  # hex characters of the 3.1 MD5 signature
HEADER_PAD = b"\x00" * 12


class ProtocolVersion(str, Enum):
    """Supported protocol versions."""

    V3_1 = "3.1"
    V3_3 = "3.3"

    @property
    def tag(self) -> bytes:
        return self.value.encode("ascii")


class Codec(Protocol):
    """What a device session needs from a codec."""

    def encode(self, message: Message, encrypt: bool) -> bytes:
        ...

    def parse(self, data: bytes) -> list[Message]:
        ...


def _verify_key(key: str | None) -> bytes:
    if key is None:
        return DEFAULT_KEY
    if len(key) != KEY_LENGTH:
        raise KeyLengthError(len(key))
    key_bytes = key.encode("utf-8")
    if len(key_bytes) != KEY_LENGTH:
        raise KeyLengthError(len(key_bytes))
    return key_bytes


class MessageCodec:
    """Encoder/decoder for protocol versions 3.1 and 3.3.

    Usage::

        codec = MessageCodec.create("3.3", "0123456789abcdef")
        frame = codec.encode(Message('{"devId":"..."}', CommandType.DP_QUERY, 1), True)
        replies = codec.parse(frame_from_device)
    """

    def __init__(self, version: ProtocolVersion, key: bytes) -> None:
        self._version = version
        self._key = key
        self._cipher = AESCipher(key)

    @classmethod
    def create(cls, version: str, key: str | None = None) -> MessageCodec:
        """Validate ``version`` and ``key`` and build a codec.

        Args:
            version: ``"3.1"`` or ``"3.3"``.
            key: The device's 16-character local key, or ``None`` to use
                the protocol's default key.

        Raises:
            VersionError: For an unsupported version string.
            KeyLengthError: If the key is not 16 characters.
        """
        try:
            protocol_version = ProtocolVersion(version)
        except ValueError:
            raise VersionError(version) from None
        return cls(protocol_version, _verify_key(key))

    @property
    def version(self) -> ProtocolVersion:
        return self._version

    # ── encoding ────────────────────────────────────────────────────

    def encode(self, message: Message, encrypt: bool) -> bytes:
        """Encode ``message`` into a complete frame.

        Args:
            message: The message to send. It must have a command.
            encrypt: Wrap the payload in the version's encryption envelope.
                Without it the payload is sent as plaintext.

        Raises:
            EncodeError: If the message has no command or the sequence
                number does not fit in 32 bits.
        """
        if message.command is None:
            raise EncodeError("Cannot encode a message without a command")
        seq_nr = message.seq_nr if message.seq_nr is not None else 0
        if not 0 <= seq_nr <= 0xFFFFFFFF:
            raise EncodeError(f"Sequence number out of range: {seq_nr}")

        payload = payload_to_bytes(message.payload)
        if encrypt:
            payload = self._wrap(payload, message.command)
        return build_frame(seq_nr, message.command, payload)

    def _wrap(self, payload: bytes, command: int) -> bytes:
        if self._version is ProtocolVersion.V3_1:
            # 3.1 devices only expect the envelope on state-changing commands
            if command in NO_HEADER_COMMANDS:
                return payload
            encrypted = self._cipher.encrypt(payload, use_base64=True)
            return self._version.tag + self._sign(encrypted) + encrypted

        encrypted = self._cipher.encrypt(payload)
        if command in NO_HEADER_COMMANDS:
            return encrypted
        return self._version.tag + HEADER_PAD + encrypted

    def _sign(self, encrypted: bytes) -> bytes:
        pre_md5 = b"data=" + encrypted + b"||lpv=" + self._version.tag + b"||" + self._key
        return md5(pre_md5).hexdigest()[8:24].encode("ascii")

    # ── decoding ────────────────────────────────────────────────────

    def parse(self, data: bytes) -> list[Message]:
        """Decode every frame in ``data`` into messages.

        Raises:
            ParseError: If the bytes are not a sequence of whole frames.
            CrcError: On a checksum mismatch.
            DecryptError: If a payload fails to decrypt.
        """
        messages = []
        for frame in parse_frames(data):
            plain = self._unwrap(frame.payload)
            messages.append(
                Message(
                    payload=payload_from_bytes(plain),
                    command=frame.command,
                    seq_nr=frame.seq_nr,
                    ret_code=frame.ret_code,
                    raw=frame.payload,
                )
            )
        logger.debug("Parsed %d message(s) from %d bytes", len(messages), len(data))
        return messages

    def _unwrap(self, payload: bytes) -> bytes:
        tag = self._version.tag
        if self._version is ProtocolVersion.V3_1:
            if payload.startswith(tag):
                return self._cipher.decrypt(
                    payload[len(tag) + DIGEST_SIZE :], use_base64=True
                )
            return payload

        if payload.startswith(tag):
            payload = payload[len(tag) + len(HEADER_PAD) :]
        if not payload:
            return b""
        return self._cipher.decrypt(payload)
