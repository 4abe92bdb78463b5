import pytest

from imserverkit.buffer import Buffer
from imserverkit.codec import (
    Codec,
    DecodedPacket,
    decode_header,
    encode_header,
    pack,
    pack_header,
)
from imserverkit.protocol import (
    HEADER_SIZE,
    MAGIC_NUMBER,
    Command,
    ErrorCode,
    PacketFlags,
    PacketHeader,
    calc_crc16,
)


class Recorder:
    def __init__(self, codec):
        self.messages = []
        self.packets = []
        self.errors = []
        codec.set_message_callback(lambda c, cmd, rid, p: self.messages.append((c, cmd, rid, p)))
        codec.set_packet_callback(lambda c, pkt: self.packets.append((c, pkt)))
        codec.set_error_callback(lambda c, code: self.errors.append((c, code)))


def test_encode_header_layout():
    raw = encode_header(PacketHeader())
    assert len(raw) == HEADER_SIZE
    assert raw[:4] == bytes.fromhex("abcd1234")


def test_header_round_trip():
    header = PacketHeader(
        command=Command.P2P_MSG_REQ,
        flags=PacketFlags.REQUEST,
        request_id=7,
        client_seq=2**40 + 3,
        server_seq=2**50 + 9,
        error_code=ErrorCode.SERVER_BUSY,
        checksum=0xBEEF,
        total_len=HEADER_SIZE + 10,
    )
    assert decode_header(encode_header(header)) == header


def test_decode_header_too_short():
    with pytest.raises(ValueError):
        decode_header(b"\x00" * (HEADER_SIZE - 1))


def test_pack_fills_header():
    buf = Buffer()
    pack(buf, Command.LOGIN_REQ, 42, '{"user_id":"u1"}')
    header = decode_header(buf.peek())
    payload = b'{"user_id":"u1"}'
    assert header.magic == MAGIC_NUMBER
    assert header.command == Command.LOGIN_REQ
    assert header.flags == PacketFlags.REQUEST
    assert header.request_id == 42
    assert header.client_seq == 42
    assert header.total_len == HEADER_SIZE + len(payload)
    assert header.checksum == calc_crc16(payload)
    assert buf.readable_bytes() == HEADER_SIZE + len(payload)


def test_pack_header_overrides_fixed_fields():
    buf = Buffer()
    pack_header(buf, PacketHeader(magic=1, version=9, header_len=3, command=5), b"abc")
    header = decode_header(buf.peek())
    assert header.magic == MAGIC_NUMBER
    assert header.version == 1
    assert header.header_len == HEADER_SIZE
    assert header.total_len == HEADER_SIZE + 3
    assert header.command == 5


def test_decode_single_packet():
    codec = Codec()
    rec = Recorder(codec)
    buf = Buffer()
    pack(buf, Command.HEARTBEAT_RESP, 3, b"{}")
    codec.on_message("conn", buf, None)
    assert rec.messages == [("conn", Command.HEARTBEAT_RESP, 3, b"{}")]
    assert len(rec.packets) == 1
    conn, packet = rec.packets[0]
    assert isinstance(packet, DecodedPacket)
    assert packet.payload == b"{}"
    assert packet.header.flags == PacketFlags.RESPONSE
    assert rec.errors == []
    assert buf.readable_bytes() == 0


def test_decode_split_delivery():
    codec = Codec()
    rec = Recorder(codec)
    wire = Buffer()
    pack(wire, Command.P2P_MSG_REQ, 9, b"hello world")
    data = wire.retrieve_all_as_bytes()
    buf = Buffer()
    for chunk in (data[:10], data[10:HEADER_SIZE + 2], data[HEADER_SIZE + 2:]):
        buf.append(chunk)
        codec.on_message(None, buf)
    assert [m[3] for m in rec.messages] == [b"hello world"]


def test_decode_multiple_packets_in_one_read():
    codec = Codec()
    rec = Recorder(codec)
    buf = Buffer()
    pack(buf, Command.LOGIN_REQ, 1, b"one")
    pack(buf, Command.LOGIN_REQ, 2, b"two")
    pack(buf, Command.LOGIN_REQ, 3, b"")
    codec.on_message(None, buf)
    assert [(m[2], m[3]) for m in rec.messages] == [(1, b"one"), (2, b"two"), (3, b"")]


def test_bad_magic_reports_and_clears():
    codec = Codec()
    rec = Recorder(codec)
    buf = Buffer()
    pack(buf, Command.LOGIN_REQ, 1, b"x")
    raw = bytearray(buf.retrieve_all_as_bytes())
    raw[0] ^= 0xFF
    buf.append(bytes(raw))
    codec.on_message("conn", buf)
    assert rec.errors == [(None, ErrorCode.INVALID_PACKET)]
    assert rec.messages == []
    assert buf.readable_bytes() == 0


def test_bad_version_reports():
    codec = Codec()
    rec = Recorder(codec)
    header = PacketHeader(version=2, total_len=HEADER_SIZE)
    buf = Buffer()
    buf.append(encode_header(header))
    codec.on_message("conn", buf)
    assert rec.errors == [(None, ErrorCode.UNSUPPORTED_VERSION)]
    assert buf.readable_bytes() == 0


def test_bad_length_reports():
    codec = Codec()
    rec = Recorder(codec)
    buf = Buffer()
    buf.append(encode_header(PacketHeader(total_len=HEADER_SIZE - 1)))
    codec.on_message("conn", buf)
    assert rec.errors == [(None, ErrorCode.PAYLOAD_TOO_LARGE)]
    assert buf.readable_bytes() == 0


def test_checksum_mismatch_skips_packet_and_continues():
    codec = Codec()
    rec = Recorder(codec)
    wire = Buffer()
    pack(wire, Command.LOGIN_REQ, 1, b"payload")
    bad = bytearray(wire.retrieve_all_as_bytes())
    bad[-1] ^= 0x01
    buf = Buffer()
    buf.append(bytes(bad))
    pack(buf, Command.LOGIN_REQ, 2, b"good")
    codec.on_message("conn", buf)
    assert rec.errors == [("conn", ErrorCode.CHECKSUM_MISMATCH)]
    assert rec.messages == []
    codec.on_message("conn", buf)
    assert [(m[2], m[3]) for m in rec.messages] == [(2, b"good")]
    assert buf.readable_bytes() == 0