"""Packet framing: header encoding and a stream decoder for TCP input."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, Callable, Optional

from imserverkit.buffer import Buffer
from imserverkit.protocol import (
    HEADER_SIZE,
    MAGIC_NUMBER,
    MAX_MESSAGE_SIZE,
    PROTOCOL_VERSION_V1,
    ErrorCode,
    PacketHeader,
    calc_crc16,
    guess_flags_from_command,
)

_log = logging.getLogger(__name__)

# magic, version, header_len, total_len, command, flags, request_id,
# client_seq, server_seq, error_code, checksum
_HEADER_STRUCT = struct.Struct(">IHHIHHIQQII")

MessageCallback = Callable[[Any, int, int, bytes], None]
PacketCallback = Callable[[Any, "DecodedPacket"], None]
ErrorCallback = Callable[[Any, int], None]


@dataclass
class DecodedPacket:
    """A complete packet: its header and payload."""

    header: PacketHeader = field(default_factory=PacketHeader)
    payload: bytes = b""


def encode_header(header: PacketHeader) -> bytes:
    """Encode a header as its 44-byte big-endian wire form."""
    return _HEADER_STRUCT.pack(
        header.magic,
        header.version,
        header.header_len,
        header.total_len,
        header.command,
        header.flags,
        header.request_id,
        header.client_seq,
        header.server_seq,
        header.error_code,
        header.checksum,
    )


def decode_header(data: bytes | bytearray | memoryview) -> PacketHeader:
    """Decode the first 44 bytes of ``data`` into a header."""
    if len(data) < HEADER_SIZE:
        raise ValueError(f"header needs {HEADER_SIZE} bytes, got {len(data)}")
    fields = _HEADER_STRUCT.unpack_from(bytes(data[:HEADER_SIZE]))
    return PacketHeader(*fields)


def _as_bytes(message: bytes | bytearray | str) -> bytes:
    return message.encode("utf-8") if isinstance(message, str) else bytes(message)


def pack(buffer: Buffer, command: int, seq_id: int, message: bytes | str) -> None:
    """Append a packet for ``command`` with default flags and sequence ids."""
    payload = _as_bytes(message)
    header = PacketHeader(
        command=command,
        flags=guess_flags_from_command(command),
        request_id=seq_id,
        client_seq=seq_id,
    )
    pack_header(buffer, header, payload)


def pack_header(buffer: Buffer, header: PacketHeader, message: bytes | str) -> None:
    """Append a packet built from ``header``.

    Magic, version, lengths and checksum are always filled in here.
    """
    payload = _as_bytes(message)
    final = replace(
        header,
        magic=MAGIC_NUMBER,
        version=PROTOCOL_VERSION_V1,
        header_len=HEADER_SIZE,
        total_len=HEADER_SIZE + len(payload),
        checksum=calc_crc16(payload),
    )
    buffer.append(encode_header(final))
    buffer.append(payload)


class _ParseState(Enum):
    EXPECT_HEADER = auto()
    EXPECT_PAYLOAD = auto()


class Codec:
    """Incremental decoder turning a byte stream into packets.

    One instance per connection; not thread-safe.
    """

    def __init__(self) -> None:
        self._state = _ParseState.EXPECT_HEADER
        self._expected_length = HEADER_SIZE
        self._current_header = PacketHeader()
        self._message_callback: Optional[MessageCallback] = None
        self._packet_callback: Optional[PacketCallback] = None
        self._error_callback: Optional[ErrorCallback] = None

    def set_message_callback(self, callback: Optional[MessageCallback]) -> None:
        """Called with (conn, command, request_id, payload) per packet."""
        self._message_callback = callback

    def set_packet_callback(self, callback: Optional[PacketCallback]) -> None:
        """Called with (conn, DecodedPacket) per packet."""
        self._packet_callback = callback

    def set_error_callback(self, callback: Optional[ErrorCallback]) -> None:
        """Called with (conn or None, error code) when a packet is rejected."""
        self._error_callback = callback

    def on_message(self, conn: Any, buffer: Buffer, receive_time: Any = None) -> None:
        """Decode every complete packet currently held in ``buffer``."""
        while True:
            if self._state is _ParseState.EXPECT_HEADER:
                if buffer.readable_bytes() < HEADER_SIZE:
                    break
                if not self._parse_header(buffer):
                    break
            if self._state is _ParseState.EXPECT_PAYLOAD:
                if buffer.readable_bytes() < self._expected_length:
                    break
                if not self._parse_payload(conn, buffer):
                    break

    def _reset(self) -> None:
        self._state = _ParseState.EXPECT_HEADER
        self._expected_length = HEADER_SIZE

    def _report(self, conn: Any, code: ErrorCode) -> None:
        if self._error_callback is not None:
            self._error_callback(conn, code)

    def _parse_header(self, buffer: Buffer) -> bool:
        header = decode_header(buffer.peek()[:HEADER_SIZE])
        self._current_header = header

        error: Optional[ErrorCode] = None
        if header.magic != MAGIC_NUMBER:
            _log.error("invalid magic: 0x%08X", header.magic)
            error = ErrorCode.INVALID_PACKET
        elif header.version != PROTOCOL_VERSION_V1:
            _log.error("unsupported version: %d", header.version)
            error = ErrorCode.UNSUPPORTED_VERSION
        elif (
            header.header_len != HEADER_SIZE
            or header.total_len < HEADER_SIZE
            or header.total_len > MAX_MESSAGE_SIZE
        ):
            _log.error(
                "invalid lengths: header_len=%d, total_len=%d",
                header.header_len,
                header.total_len,
            )
            error = ErrorCode.PAYLOAD_TOO_LARGE

        if error is not None:
            self._report(None, error)
            buffer.retrieve_all()
            self._reset()
            return False

        self._expected_length = header.total_len
        self._state = _ParseState.EXPECT_PAYLOAD
        return True

    def _parse_payload(self, conn: Any, buffer: Buffer) -> bool:
        header = self._current_header
        data = buffer.peek()
        payload = data[header.header_len:header.total_len]

        calculated = calc_crc16(payload)
        if header.checksum != calculated:
            _log.error(
                "checksum mismatch: received=%d, calculated=%d",
                header.checksum,
                calculated,
            )
            self._report(conn, ErrorCode.CHECKSUM_MISMATCH)
            buffer.retrieve(self._expected_length)
            self._reset()
            return False

        packet = DecodedPacket(header=header, payload=payload)
        buffer.retrieve(self._expected_length)
        self._reset()

        if self._packet_callback is not None:
            self._packet_callback(conn, packet)
        if self._message_callback is not None:
            self._message_callback(conn, header.command, header.request_id, payload)
        return True