"""Wire-protocol constants, message types and checksum."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, IntFlag

MAGIC_NUMBER = 0xABCD1234
PROTOCOL_VERSION_V1 = 1
HEADER_SIZE = 44
MAX_MESSAGE_SIZE = 64 * 1024 * 1024


class PayloadFormat(IntEnum):
    JSON = 0
    PROTOBUF = 1


class PacketFlags(IntFlag):
    NONE = 0x0000
    REQUEST = 0x0001
    RESPONSE = 0x0002
    ACK = 0x0004
    RETRY = 0x0008
    COMPRESSED = 0x0010
    ENCRYPTED = 0x0020


class ErrorCode(IntEnum):
    OK = 0
    INVALID_PACKET = 1001
    UNSUPPORTED_VERSION = 1002
    CHECKSUM_MISMATCH = 1003
    PAYLOAD_TOO_LARGE = 1004
    AUTH_FAILED = 2001
    USER_OFFLINE = 3001
    ACK_TIMEOUT = 3002
    SERVER_BUSY = 5001


class Command(IntEnum):
    LOGIN_REQ = 0x0001
    LOGIN_RESP = 0x0002
    HEARTBEAT_REQ = 0x0003
    HEARTBEAT_RESP = 0x0004
    P2P_MSG_REQ = 0x0005
    P2P_MSG_RESP = 0x0006
    P2P_MSG_NOTIFY = 0x0007
    BROADCAST_MSG_REQ = 0x0008
    BROADCAST_MSG_NOTIFY = 0x0009
    KICK_USER_REQ = 0x000A
    KICK_USER_RESP = 0x000B
    MESSAGE_ACK_REQ = 0x000C
    MESSAGE_ACK_RESP = 0x000D
    PULL_OFFLINE_REQ = 0x000E
    PULL_OFFLINE_RESP = 0x000F


class DeliveryStatus(IntEnum):
    CREATED = 0
    PERSISTED = 1
    DELIVERING = 2
    DELIVERED = 3
    FAILED = 4
    READ = 5


class AckCode(IntEnum):
    RECEIVED = 0
    READ = 1


@dataclass
class PacketHeader:
    """Fixed 44-byte packet header."""

    magic: int = MAGIC_NUMBER
    version: int = PROTOCOL_VERSION_V1
    header_len: int = HEADER_SIZE
    total_len: int = HEADER_SIZE
    command: int = 0
    flags: int = PacketFlags.NONE
    request_id: int = 0
    client_seq: int = 0
    server_seq: int = 0
    error_code: int = ErrorCode.OK
    checksum: int = 0


@dataclass
class LoginReq:
    user_id: str = ""
    token: str = ""
    device_id: str = ""


@dataclass
class LoginResp:
    result_code: int = 0
    result_msg: str = ""
    session_id: str = ""


@dataclass
class HeartbeatReq:
    pass


@dataclass
class HeartbeatResp:
    server_time: int = 0


@dataclass
class P2PMsgReq:
    from_user_id: str = ""
    to_user_id: str = ""
    client_msg_id: str = ""
    content: str = ""


@dataclass
class P2PMsgResp:
    result_code: int = 0
    result_msg: str = ""
    msg_id: int = 0
    server_seq: int = 0


@dataclass
class P2PMsgNotify:
    msg_id: int = 0
    server_seq: int = 0
    from_user_id: str = ""
    to_user_id: str = ""
    client_msg_id: str = ""
    content: str = ""
    timestamp: int = 0


@dataclass
class BroadcastMsgReq:
    from_user_id: str = ""
    content: str = ""


@dataclass
class BroadcastMsgNotify:
    from_user_id: str = ""
    content: str = ""
    timestamp: int = 0


@dataclass
class KickUserReq:
    target_user_id: str = ""
    reason: str = ""


@dataclass
class KickUserResp:
    result_code: int = 0
    result_msg: str = ""


@dataclass
class MessageAckReq:
    msg_id: int = 0
    server_seq: int = 0
    ack_code: int = AckCode.RECEIVED


@dataclass
class MessageAckResp:
    result_code: int = 0
    result_msg: str = ""
    server_seq: int = 0


@dataclass
class PullOfflineReq:
    user_id: str = ""
    last_acked_seq: int = 0
    limit: int = 100


@dataclass
class OfflineItem:
    msg_id: int = 0
    server_seq: int = 0
    from_user_id: str = ""
    to_user_id: str = ""
    client_msg_id: str = ""
    content: str = ""
    timestamp: int = 0


@dataclass
class PullOfflineResp:
    result_code: int = 0
    result_msg: str = ""
    next_begin_seq: int = 0
    messages: list[OfflineItem] = field(default_factory=list)


_RESPONSE_COMMANDS = frozenset(
    {
        Command.LOGIN_RESP,
        Command.HEARTBEAT_RESP,
        Command.P2P_MSG_RESP,
        Command.KICK_USER_RESP,
        Command.MESSAGE_ACK_RESP,
        Command.PULL_OFFLINE_RESP,
    }
)


def is_response_command(command: int) -> bool:
    """Whether the command code is a response to a request."""
    return command in _RESPONSE_COMMANDS


def guess_flags_from_command(command: int) -> PacketFlags:
    """Default header flags for a command code."""
    if command in (Command.P2P_MSG_NOTIFY, Command.BROADCAST_MSG_NOTIFY):
        return PacketFlags.NONE
    if command == Command.MESSAGE_ACK_REQ:
        return PacketFlags.REQUEST | PacketFlags.ACK
    if command == Command.MESSAGE_ACK_RESP:
        return PacketFlags.RESPONSE | PacketFlags.ACK
    return PacketFlags.RESPONSE if is_response_command(command) else PacketFlags.REQUEST


def calc_crc16(data: bytes | bytearray | memoryview) -> int:
    """CRC-16/CCITT (polynomial 0x1021, initial value 0xFFFF)."""
    crc = 0xFFFF
    for byte in bytes(data):
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return crc