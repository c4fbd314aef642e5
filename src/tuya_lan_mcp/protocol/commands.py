"""Command type constants and JSON payload builders.

Each frame carries a 32-bit command id. The same id is used for the
host-to-device request and the device's reply.
"""

from __future__ import annotations

import json
import time
from enum import IntEnum
from typing import Any

from ..models.message import PayloadStruct


class CommandType(IntEnum):
    """Tuya LAN command identifiers."""

    UDP = 0
    AP_CONFIG = 1
    ACTIVE = 2
    BINDED = 3
    RENAME_GW = 4
    RENAME_DEVICE = 5
    UNBIND = 6
    CONTROL = 7
    STATUS = 8
    HEART_BEAT = 9
    DP_QUERY = 10
    QUERY_WIFI = 11
    TOKEN_BIND = 12
    CONTROL_NEW = 13
    ENABLE_WIFI = 14
    DP_QUERY_NEW = 16
    SCENE_EXECUTE = 17
    UPDATE_DPS = 18
    UDP_NEW = 19
    AP_CONFIG_NEW = 20
    LAN_GW_ACTIVE = 240
    LAN_SUB_DEV_REQUEST = 241
    LAN_DELETE_SUB_DEV = 242
    LAN_REPORT_SUB_DEV = 243
    LAN_SCENE = 244
    LAN_PUBLISH_CLOUD_CONFIG = 245
    LAN_PUBLISH_APP_CONFIG = 246
    LAN_EXPORT_APP_CONFIG = 247
    LAN_PUBLISH_SCENE_PANEL = 248
    LAN_REMOVE_GW = 249
    LAN_CHECK_GW_UPDATE = 250
    LAN_GW_UPDATE = 251
    LAN_SET_GW_CHANNEL = 252


# Commands sent without the "3.x" version header
NO_HEADER_COMMANDS = frozenset({
    CommandType.DP_QUERY,
    CommandType.DP_QUERY_NEW,
    CommandType.UPDATE_DPS,
    CommandType.HEART_BEAT,
})


def command_from_value(value: int) -> CommandType | int:
    """Map a wire command id to :class:`CommandType`, keeping unknown ids as int."""
    try:
        return CommandType(value)
    except ValueError:
        return value


def _timestamp(t: int | None) -> int:
    return int(time.time()) if t is None else t


def build_control_payload(
    dev_id: str,
    dps: dict[str, Any],
    uid: str | None = None,
    t: int | None = None,
) -> str:
    """Build the JSON text for a CONTROL ("set") request.

    Args:
        dev_id: The device id (``devId``).
        dps: Data points to write, e.g. ``{"1": True}``.
        uid: Optional user id; defaults to ``dev_id`` as devices expect.
        t: Unix timestamp; defaults to now.
    """
    if not dps:
        raise ValueError("dps must contain at least one data point")
    payload = PayloadStruct(
        dev_id=dev_id,
        uid=uid if uid is not None else dev_id,
        t=_timestamp(t),
        dps={str(k): v for k, v in dps.items()},
    )
    return payload.to_json()


def build_query_payload(
    dev_id: str,
    uid: str | None = None,
    t: int | None = None,
) -> str:
    """Build the JSON text for a DP_QUERY ("get") request."""
    payload = PayloadStruct(
        dev_id=dev_id,
        gw_id=dev_id,
        uid=uid if uid is not None else dev_id,
        t=_timestamp(t),
    )
    return payload.to_json()


def parse_dps_argument(dps: dict[str, Any] | str) -> dict[str, Any]:
    """Accept data points either as a dict or as JSON text."""
    if isinstance(dps, str):
        try:
            dps = json.loads(dps)
        except json.JSONDecodeError as e:
            raise ValueError(f"dps is not valid JSON: {e}") from e
    if not isinstance(dps, dict):
        raise ValueError(f"dps must be a JSON object, got {type(dps).__name__}")
    return dps
