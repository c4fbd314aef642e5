"""Protocol message and JSON payload models."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from ..protocol.commands import CommandType

# Wire key name for each PayloadStruct field
_WIRE_KEYS = {
    "dev_id": "devId",
    "gw_id": "gwId",
    "uid": "uid",
    "t": "t",
    "dp_id": "dpId",
    "dps": "dps",
}


@dataclass
class PayloadStruct:
    """The JSON object carried by most requests and replies.

    Only ``devId`` is mandatory; optional keys left as ``None`` are
    omitted when serialising.
    """

    dev_id: str
    gw_id: str | None = None
    uid: str | None = None
    t: int | None = None
    dp_id: list[int] | None = None
    dps: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for attr, key in _WIRE_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                result[key] = value
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PayloadStruct:
        """Build from a decoded JSON object.

        Raises:
            ValueError: If ``devId`` is missing.
        """
        if "devId" not in data:
            raise ValueError("Payload object has no devId")
        t = data.get("t")
        return cls(
            dev_id=str(data["devId"]),
            gw_id=data.get("gwId"),
            uid=data.get("uid"),
            t=int(t) if t is not None else None,
            dp_id=data.get("dpId"),
            dps=data.get("dps"),
        )


Payload = Union[PayloadStruct, str, bytes]


def payload_to_bytes(payload: Payload) -> bytes:
    """Serialise any payload variant to the bytes that get encrypted."""
    if isinstance(payload, PayloadStruct):
        return payload.to_json().encode("utf-8")
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return bytes(payload)


def payload_from_bytes(data: bytes) -> Payload:
    """Classify decrypted bytes as a PayloadStruct, text, or raw bytes."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return bytes(data)
    try:
        obj = json.loads(text)
    except json.JSONDecodeError:
        return text
    if isinstance(obj, dict) and "devId" in obj:
        try:
            return PayloadStruct.from_dict(obj)
        except (TypeError, ValueError):
            return text
    return text


@dataclass
class Message:
    """A single protocol message, outbound or inbound.

    ``command`` is ``None`` only for hand-built messages; inbound messages
    always carry the command id from the frame, as a :class:`CommandType`
    when the id is known and as a plain int otherwise.
    """

    payload: Payload
    command: CommandType | int | None = None
    seq_nr: int | None = None
    ret_code: int | None = None
    raw: bytes = field(default=b"", repr=False, compare=False)

    @property
    def dps(self) -> dict[str, Any] | None:
        """Data points of a structured payload, if any."""
        if isinstance(self.payload, PayloadStruct):
            return self.payload.dps
        return None

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.payload, PayloadStruct):
            payload: Any = self.payload.to_dict()
        elif isinstance(self.payload, bytes):
            payload = self.payload.hex(" ")
        else:
            payload = self.payload
        command = self.command
        return {
            "command": getattr(command, "name", command),
            "seq_nr": self.seq_nr,
            "ret_code": self.ret_code,
            "payload": payload,
        }

    def __str__(self) -> str:
        command = getattr(self.command, "name", self.command)
        if isinstance(self.payload, PayloadStruct):
            body = self.payload.to_json()
        elif isinstance(self.payload, bytes):
            body = self.payload.hex(" ") if self.payload else "(empty)"
        else:
            body = self.payload or "(empty)"
        return (
            f"Message(command={command}, seq_nr={self.seq_nr}, "
            f"ret_code={self.ret_code}): {body}"
        )
