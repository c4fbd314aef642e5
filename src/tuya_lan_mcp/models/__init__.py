"""Data models for protocol messages and their JSON payloads."""

from .message import Message, Payload, PayloadStruct
