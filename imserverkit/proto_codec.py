"""Payload format names."""

from __future__ import annotations

from imserverkit.protocol import PayloadFormat
from imserverkit.util import to_lower


def parse_payload_format(value: str) -> PayloadFormat:
    """Map a configured name to a payload format; anything unknown is JSON."""
    if to_lower(value) in ("protobuf", "proto"):
        return PayloadFormat.PROTOBUF
    return PayloadFormat.JSON


def payload_format_name(payload_format: PayloadFormat) -> str:
    """Canonical lower-case name of a payload format."""
    if payload_format == PayloadFormat.PROTOBUF:
        return "protobuf"
    return "json"