"""Client and MCP server for Tuya devices on the local network."""

from .device import Endpoint, TuyaDevice
from .errors import (
    BadTcpRead,
    CodecError,
    DeviceTimeoutError,
    TransportError,
    TuyaError,
)
from .models.message import Message, PayloadStruct
from .protocol.codec import MessageCodec
from .protocol.commands import CommandType
