"""MCP server entry point for Tuya devices on the local network.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import itertools
import json
import logging
import threading
from typing import Any

from mcp.server.fastmcp import FastMCP

from .device import TuyaDevice
from .errors import BadTcpRead, CodecError, TransportError
from .models.message import Message
from .protocol.codec import ProtocolVersion
from .protocol.commands import (
    CommandType,
    build_control_payload,
    build_query_payload,
    parse_dps_argument,
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "tuya-lan",
    instructions="MCP server for controlling Tuya devices over the local network",
)

# Global session state
_device: TuyaDevice | None = None
_seq_lock = threading.Lock()
_seq_counter = itertools.count(1)


def _get_device() -> TuyaDevice:
    """Get the configured device session, raising if there is none."""
    if _device is None:
        raise RuntimeError(
            "No device configured. Use the 'connect' tool first."
        )
    return _device


def _next_seq_id() -> int:
    with _seq_lock:
        return next(_seq_counter) & 0xFFFFFFFF


def _error(e: Exception) -> dict[str, Any]:
    logger.warning("%s: %s", type(e).__name__, e)
    return {"error": str(e), "error_type": type(e).__name__}


def _dps_from_replies(replies: list[Message]) -> dict[str, Any]:
    dps: dict[str, Any] = {}
    for reply in replies:
        if reply.dps:
            dps.update(reply.dps)
    return dps


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    address: str,
    version: str = ProtocolVersion.V3_3.value,
    key: str | None = None,
) -> dict[str, Any]:
    """Configure the device to talk to.

    No network traffic happens here; every command opens its own
    connection to port 6668.

    Args:
        address: Device IP address or hostname.
        version: Protocol version, "3.1" or "3.3".
        key: The device's 16-character local key.
    """
    global _device
    try:
        _device = TuyaDevice.create(version, key, address)
    except CodecError as e:
        return _error(e)

    endpoint = _device.endpoint
    logger.info("Configured device %s (protocol %s)", endpoint, version)
    return {
        "configured": True,
        "host": endpoint.host,
        "port": endpoint.port,
        "version": version,
    }


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Forget the configured device."""
    global _device
    _device = None
    return {"disconnected": True}


# ─── DEVICE TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def get_status(dev_id: str) -> dict[str, Any]:
    """Read all data points of a device.

    Args:
        dev_id: The device id (devId).
    """
    device = _get_device()
    seq_id = _next_seq_id()
    try:
        replies = device.get(build_query_payload(dev_id), seq_id)
    except (TransportError, BadTcpRead, CodecError) as e:
        return _error(e)

    return {
        "seq_id": seq_id,
        "dps": _dps_from_replies(replies),
        "messages": [reply.to_dict() for reply in replies],
    }


@mcp.tool()
def set_dps(dev_id: str, dps: dict[str, Any] | str) -> dict[str, Any]:
    """Write one or more data points.

    Args:
        dev_id: The device id (devId).
        dps: Data points keyed by index, e.g. {"1": true, "2": 50}.
    """
    try:
        values = parse_dps_argument(dps)
        payload = build_control_payload(dev_id, values)
    except ValueError as e:
        return _error(e)

    device = _get_device()
    seq_id = _next_seq_id()
    try:
        device.set(payload, seq_id)
    except (TransportError, BadTcpRead, CodecError) as e:
        return _error(e)

    return {"seq_id": seq_id, "sent": True, "dps": values}


@mcp.tool()
def send_command(payload: str, kind: str = "get") -> dict[str, Any]:
    """Send a raw JSON payload as a "set" (CONTROL) or "get" (DP_QUERY).

    Args:
        payload: The JSON text to send, unmodified.
        kind: "set" or "get".
    """
    if kind not in ("set", "get"):
        return _error(ValueError(f"kind must be 'set' or 'get', got {kind!r}"))

    device = _get_device()
    seq_id = _next_seq_id()
    try:
        if kind == "set":
            device.set(payload, seq_id)
            return {"seq_id": seq_id, "sent": True}
        replies = device.get(payload, seq_id)
    except (TransportError, BadTcpRead, CodecError) as e:
        return _error(e)

    return {"seq_id": seq_id, "messages": [reply.to_dict() for reply in replies]}


# ─── RESOURCES ────────────────────────────────────────────────────────

@mcp.resource("tuya://commands")
def command_catalog() -> str:
    """Command ids understood by Tuya devices."""
    return json.dumps({cmd.name: cmd.value for cmd in CommandType}, indent=2)


@mcp.resource("tuya://device")
def device_resource() -> str:
    """The currently configured device, if any."""
    if _device is None:
        return json.dumps({"configured": False})
    config = _device.config
    return json.dumps({
        "configured": True,
        "host": _device.endpoint.host,
        "port": _device.endpoint.port,
        "connect_timeout": config.connect_timeout,
        "read_timeout": config.read_timeout,
    }, indent=2)


# ─── PROMPTS ──────────────────────────────────────────────────────────

@mcp.prompt()
def explore_device(dev_id: str) -> str:
    """Work out what each data point of a device controls.

    Args:
        dev_id: The device id to inspect.
    """
    return f"""Read the state of device {dev_id} using the get_status tool.
For each data point (dps) index, guess what it controls from its type and value:
- Booleans are usually switches (index 1 is typically main power)
- Small integers are often modes, brightness or temperature
- Strings are often colour values or work modes

Confirm a guess by changing one value with set_dps and reading the state again."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
