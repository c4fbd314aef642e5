"""Protocol layer: framing, CRC, AES envelope, command types and the message codec."""

from .framing import build_frame, parse_frames
from .commands import CommandType, build_control_payload, build_query_payload
from .codec import Codec, MessageCodec, ProtocolVersion
