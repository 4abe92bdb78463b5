"""JSON encoding and decoding of protocol messages."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, TypeVar

from imserverkit.protocol import (
    AckCode,
    BroadcastMsgNotify,
    BroadcastMsgReq,
    HeartbeatReq,
    HeartbeatResp,
    KickUserReq,
    KickUserResp,
    LoginReq,
    LoginResp,
    MessageAckReq,
    MessageAckResp,
    OfflineItem,
    P2PMsgNotify,
    P2PMsgReq,
    P2PMsgResp,
    PullOfflineReq,
    PullOfflineResp,
)

M = TypeVar("M")


class DeserializeError(ValueError):
    """Raised when a payload cannot be decoded into the requested message."""


_REQUIRED = object()


@dataclass(frozen=True)
class _Field:
    name: str
    kind: str
    default: Any = _REQUIRED


def _f(name: str, kind: str, default: Any = _REQUIRED) -> _Field:
    return _Field(name, kind, default)


_OFFLINE_ITEM_FIELDS = (
    _f("msg_id", "u64"),
    _f("server_seq", "u64"),
    _f("from_user_id", "str"),
    _f("to_user_id", "str"),
    _f("client_msg_id", "str", ""),
    _f("content", "str"),
    _f("timestamp", "i64"),
)

_SPECS: dict[type, tuple[_Field, ...]] = {
    LoginReq: (_f("user_id", "str"), _f("token", "str"), _f("device_id", "str", "")),
    LoginResp: (
        _f("result_code", "u32"),
        _f("result_msg", "str"),
        _f("session_id", "str", ""),
    ),
    HeartbeatResp: (_f("server_time", "i64"),),
    P2PMsgReq: (
        _f("from_user_id", "str"),
        _f("to_user_id", "str"),
        _f("client_msg_id", "str", ""),
        _f("content", "str"),
    ),
    P2PMsgResp: (
        _f("result_code", "u32"),
        _f("result_msg", "str"),
        _f("msg_id", "u64"),
        _f("server_seq", "u64", 0),
    ),
    P2PMsgNotify: (
        _f("msg_id", "u64"),
        _f("server_seq", "u64"),
        _f("from_user_id", "str"),
        _f("to_user_id", "str"),
        _f("client_msg_id", "str", ""),
        _f("content", "str"),
        _f("timestamp", "i64"),
    ),
    BroadcastMsgReq: (_f("from_user_id", "str"), _f("content", "str")),
    BroadcastMsgNotify: (
        _f("from_user_id", "str"),
        _f("content", "str"),
        _f("timestamp", "i64"),
    ),
    KickUserReq: (_f("target_user_id", "str"), _f("reason", "str")),
    KickUserResp: (_f("result_code", "u32"), _f("result_msg", "str")),
    MessageAckReq: (
        _f("msg_id", "u64"),
        _f("server_seq", "u64"),
        _f("ack_code", "u32", AckCode.RECEIVED),
    ),
    MessageAckResp: (
        _f("result_code", "u32"),
        _f("result_msg", "str"),
        _f("server_seq", "u64", 0),
    ),
    PullOfflineReq: (
        _f("user_id", "str"),
        _f("last_acked_seq", "u64", 0),
        _f("limit", "u32", 100),
    ),
    PullOfflineResp: (
        _f("result_code", "u32"),
        _f("result_msg", "str"),
        _f("next_begin_seq", "u64", 0),
    ),
}

_U32_MASK = (1 << 32) - 1
_U64_MASK = (1 << 64) - 1


def _wrap(value: int, kind: str) -> int:
    if kind == "u32":
        return value & _U32_MASK
    if kind == "u64":
        return value & _U64_MASK
    return ((value + (1 << 63)) & _U64_MASK) - (1 << 63)


def _convert(value: Any, field: _Field) -> Any:
    if field.kind == "str":
        if not isinstance(value, str):
            raise DeserializeError(f"field {field.name!r} must be a string")
        return value
    if isinstance(value, bool):
        number = int(value)
    elif isinstance(value, int):
        number = value
    elif isinstance(value, float):
        number = int(value)
    else:
        raise DeserializeError(f"field {field.name!r} must be a number")
    return _wrap(number, field.kind)


def _spec_for(message_type: type) -> tuple[_Field, ...]:
    try:
        return _SPECS[message_type]
    except KeyError:
        raise TypeError(f"unsupported message type: {message_type.__name__}") from None


def _to_dict(msg: Any, fields: tuple[_Field, ...]) -> dict[str, Any]:
    doc: dict[str, Any] = {}
    for field in fields:
        value = getattr(msg, field.name)
        doc[field.name] = str(value) if field.kind == "str" else _wrap(int(value), field.kind)
    return doc


def _read_fields(doc: Any, fields: tuple[_Field, ...]) -> dict[str, Any]:
    if not isinstance(doc, dict):
        raise DeserializeError("expected a JSON object")
    values: dict[str, Any] = {}
    for field in fields:
        if field.name in doc:
            values[field.name] = _convert(doc[field.name], field)
        elif field.default is _REQUIRED:
            raise DeserializeError(f"missing field {field.name!r}")
        else:
            values[field.name] = field.default
    return values


def _read_messages(doc: dict[str, Any]) -> list[OfflineItem]:
    raw = doc.get("messages")
    if raw is None:
        return []
    if isinstance(raw, dict):
        items = list(raw.values())
    elif isinstance(raw, list):
        items = raw
    else:
        raise DeserializeError("field 'messages' must be an array")
    return [OfflineItem(**_read_fields(item, _OFFLINE_ITEM_FIELDS)) for item in items]


def _reject_constant(name: str) -> Any:
    raise DeserializeError(f"invalid JSON literal {name}")


def serialize(msg: Any) -> str:
    """Encode a protocol message as compact JSON with sorted keys."""
    if isinstance(msg, HeartbeatReq):
        return "{}"
    doc = _to_dict(msg, _spec_for(type(msg)))
    if isinstance(msg, PullOfflineResp):
        doc["messages"] = [_to_dict(item, _OFFLINE_ITEM_FIELDS) for item in msg.messages]
    return json.dumps(doc, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def deserialize(data: str | bytes | bytearray, message_type: type[M]) -> M:
    """Decode JSON ``data`` into an instance of ``message_type``.

    Raises ``DeserializeError`` when the payload is malformed or a required
    field is missing or has the wrong type, and ``TypeError`` for a type
    that is not a protocol message.
    """
    if message_type is HeartbeatReq:
        return HeartbeatReq()  # type: ignore[return-value]
    fields = _spec_for(message_type)
    try:
        doc = json.loads(data, parse_constant=_reject_constant)
    except DeserializeError:
        raise
    except (ValueError, TypeError) as exc:
        raise DeserializeError(f"invalid JSON: {exc}") from exc
    values = _read_fields(doc, fields)
    if message_type is PullOfflineResp:
        values["messages"] = _read_messages(doc)
    return message_type(**values)