"""Device session: one request/response exchange per TCP connection.

A :class:`TuyaDevice` holds a codec and the device's endpoint and nothing
else. ``set`` and ``get`` each open a fresh connection, write one framed
request, read the reply, shut the connection down and decode the reply.
"""

from __future__ import annotations

import logging

from .config import DEVICE_PORT, SessionConfig
from .errors import BadTcpRead, DeviceTimeoutError
from .models.message import Message
from .protocol.codec import Codec, MessageCodec
from .protocol.commands import CommandType
from .protocol.framing import frames_complete
from .transport.tcp_connection import Endpoint, TCPConnection

logger = logging.getLogger(__name__)


class TuyaDevice:
    """Sends commands to a single device.

    Usage::

        device = TuyaDevice.create("3.3", "0123456789abcdef", "192.168.1.40")
        device.set('{"devId":"...","dps":{"1":true}}', seq_id=1)
        replies = device.get('{"devId":"...","gwId":"..."}', seq_id=2)

    The session keeps no connection between calls and is safe to share
    between threads as long as its codec is (``MessageCodec`` is).
    """

    def __init__(
        self,
        codec: Codec,
        endpoint: Endpoint,
        config: SessionConfig | None = None,
    ) -> None:
        self._codec = codec
        self._endpoint = endpoint
        self._config = config or SessionConfig()

    @classmethod
    def create(
        cls,
        version: str,
        key: str | None,
        address: str,
        config: SessionConfig | None = None,
    ) -> TuyaDevice:
        """Build a session with a new :class:`MessageCodec`.

        Raises:
            CodecError: If the version/key combination is invalid.
        """
        codec = MessageCodec.create(version, key)
        return cls.create_with_codec(codec, address, config)

    @classmethod
    def create_with_codec(
        cls,
        codec: Codec,
        address: str,
        config: SessionConfig | None = None,
    ) -> TuyaDevice:
        """Build a session around an already constructed codec."""
        return cls(codec, Endpoint(address, DEVICE_PORT), config)

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def codec(self) -> Codec:
        return self._codec

    @property
    def config(self) -> SessionConfig:
        return self._config

    def set(self, payload: str, seq_id: int) -> None:
        """Send a CONTROL command.

        Replies are logged but neither validated nor returned.
        """
        message = Message(payload, CommandType.CONTROL, seq_id)
        _log_replies(self._send(message, payload, seq_id), seq_id)

    def get(self, payload: str, seq_id: int) -> list[Message]:
        """Send a DP_QUERY command and return the decoded replies."""
        message = Message(payload, CommandType.DP_QUERY, seq_id)
        replies = self._send(message, payload, seq_id)
        _log_replies(replies, seq_id)
        return replies

    def _send(self, message: Message, payload: str, seq_id: int) -> list[Message]:
        config = self._config
        with TCPConnection(
            self._endpoint,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
        ) as conn:
            logger.info("Writing message to %s (%d):\n%s", conn.endpoint, seq_id, payload)
            written = conn.write(self._codec.encode(message, True))
            logger.info("Wrote %d bytes (%d)", written, seq_id)

            data = self._read_reply(conn, seq_id)
            logger.info("Received %d bytes (%d)", len(data), seq_id)
            if not data:
                raise BadTcpRead(seq_id)
            logger.debug("Received response (%d):\n%s", seq_id, data.hex())

            logger.debug("Shutting down connection (%d)", seq_id)
            conn.shutdown()
        return self._codec.parse(data)

    def _read_reply(self, conn: TCPConnection, seq_id: int) -> bytes:
        """Read until the buffer holds whole frames.

        The first read returning nothing yields ``b""``, and a timeout on
        the first read propagates. A reply split over several segments is
        accumulated using the frame length field, up to
        ``max_response_size``. Reading stops early, leaving the codec to
        reject the partial data, when the peer closes mid-frame, when a
        later read times out, or when a frame claims to be larger than
        ``max_response_size``.
        """
        limit = self._config.max_response_size
        recv_size = self._config.recv_size
        data = conn.read(recv_size)
        while data and not frames_complete(data, limit) and len(data) < limit:
            try:
                chunk = conn.read(min(recv_size, limit - len(data)))
            except DeviceTimeoutError:
                logger.warning(
                    "Reply stalled after %d bytes (%d), decoding what arrived",
                    len(data),
                    seq_id,
                )
                break
            if not chunk:
                break
            data += chunk
        return data


def _log_replies(replies: list[Message], seq_id: int) -> None:
    for reply in replies:
        logger.info("Decoded response (%d):\n%s", seq_id, reply)
        logger.debug("Raw payload (%d): %s", seq_id, reply.raw.hex(" "))
