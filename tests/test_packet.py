"""Tests for the packet wire format.

Covers:

1. Field-by-field construction over an unchecked view, compared against
   frames captured from firmware.
2. Parsing and validation order (header, checksum room, ID length,
   payload room, checksum, type code).
3. Setter bounds and bit isolation between fields sharing a byte.
4. Offset metadata layout.
5. The packet builder helpers.
"""
from __future__ import annotations

import struct

import pytest

from eui_protocol.core.errors import (
    IncompletePayload,
    InvalidChecksum,
    InvalidDataLength,
    InvalidMessageId,
    InvalidMessageIdLength,
    MissingChecksum,
    MissingHeader,
    UnknownMessageType,
)
from eui_protocol.core.types import MessageId, MessageType
from eui_protocol.wire.builder import build_packet, encode_packet
from eui_protocol.wire.framing import Framing
from eui_protocol.wire.packet import Packet, crc16_ccitt_false

# ---------------------------------------------------------------------------
# Captured frames
# ---------------------------------------------------------------------------

MSG_I8 = bytes(
    [
        0x0A,  # framing
        0x01, 0x14, 0x63,  # header
        0x61, 0x62, 0x63,  # msgid
        0x2A,  # payload
        0xB8, 0xA3,  # crc
        0x00,  # framing
    ]
)

MSG_F32 = bytes(
    [
        0x0D,  # framing
        0x04, 0x2C, 0x03,  # header
        0x61, 0x62, 0x63,  # msgid
        0x14, 0xAE, 0x29, 0x42,  # payload
        0x8B, 0x1D,  # crc
        0x00,  # framing
    ]
)


# =========================================================================
# Construction
# =========================================================================


class TestConstruct:
    """Building packets field by field."""

    def test_construct_i8(self) -> None:
        buf = bytearray(b"\xff" * 9)
        p = Packet.new_unchecked(buf)
        p.check_len()
        p.set_data_length(1)
        p.set_typ(MessageType.INT8)
        p.set_internal(False)
        p.set_offset(False)
        p.set_id_length(3)
        p.set_response(False)
        p.set_acknum(3)
        p.msg_id_mut()[:] = b"abc"
        p.payload_mut()[0] = 0x2A
        p.set_checksum(0xA3B8)
        p.check_payload_length()
        p.check_checksum()
        assert p.wire_size() == 9
        assert bytes(p.into_inner()) == MSG_I8[1:10]

        out = bytearray(b"\xff" * 11)
        assert len(out) == Framing.max_encoded_len(9)
        assert Framing.encode_buf(buf, out) == 11
        assert bytes(out) == MSG_I8

    def test_construct_f32(self) -> None:
        buf = bytearray(b"\xff" * 12)
        p = Packet.new_unchecked(buf)
        p.set_data_length(4)
        p.set_typ(MessageType.FLOAT32)
        p.set_internal(False)
        p.set_offset(False)
        p.set_id_length(3)
        p.set_response(False)
        p.set_acknum(0)
        p.msg_id_mut()[:] = b"abc"
        struct.pack_into("<f", p.payload_mut(), 0, 42.42)
        p.set_checksum(0x1D8B)
        p.check_payload_length()
        p.check_checksum()
        assert p.wire_size() == 12
        assert bytes(buf) == MSG_F32[1:13]
        assert Framing.encode(buf) == MSG_F32

    def test_computed_checksum_matches_capture(self) -> None:
        p = Packet.new_unchecked(bytearray(MSG_I8[1:10]))
        assert p.compute_checksum() == 0xA3B8

    def test_crc_check_value(self) -> None:
        """CRC-16/CCITT-FALSE standard check value."""
        assert crc16_ccitt_false(b"123456789") == 0x29B1

    def test_buffer_len(self) -> None:
        assert Packet.buffer_len(1, 0) == Packet.BASE_PACKET_SIZE + 1
        assert Packet.buffer_len(3, 4) == Packet.BASE_PACKET_SIZE + 3 + 4
        assert Packet.buffer_len(3, 4, offset=True) == Packet.BASE_PACKET_SIZE + 9

    def test_constants(self) -> None:
        assert Packet.HEADER_SIZE == 3
        assert Packet.CHECKSUM_SIZE == 2
        assert Packet.MAX_PAYLOAD_SIZE == 1024
        assert Packet.MAX_MSG_ID_SIZE == 15
        assert Packet.MAX_PACKET_SIZE == 5 + 15 + 1024

    def test_set_msg_id(self) -> None:
        buf = bytearray(Packet.buffer_len(4, 0))
        p = Packet.new_unchecked(buf)
        p.set_msg_id(MessageId.BOARD_NAME)
        assert p.id_length() == 4
        assert p.msg_id() == b"name"

    def test_set_msg_id_validates(self) -> None:
        p = Packet.new_unchecked(bytearray(8))
        with pytest.raises(InvalidMessageId):
            p.set_msg_id(b"\x00")


# =========================================================================
# Parsing
# =========================================================================


class TestParse:
    """Validating and reading captured packets."""

    def test_deconstruct_i8(self) -> None:
        buf = bytearray(9)
        assert Framing.decode_buf(MSG_I8, buf) == 9
        assert Packet.buffer_len(3, 1) == len(buf)

        p = Packet.new(bytes(buf))
        assert p.data_length == 1
        assert p.typ() is MessageType.INT8
        assert p.typ_raw == 5
        assert p.internal is False
        assert p.offset is False
        assert p.id_length() == 3
        assert p.response is False
        assert p.acknum == 3
        assert p.msg_id() == b"abc"
        assert bytes(p.payload()) == b"\x2a"
        assert p.checksum() == 0xA3B8
        assert p.compute_checksum() == 0xA3B8
        assert p.wire_size() == 9
        assert p.offset_raw() is None

    def test_deconstruct_f32(self) -> None:
        p = Packet.new(Framing.decode(MSG_F32))
        assert p.data_length == 4
        assert p.typ() is MessageType.FLOAT32
        assert p.id_length() == 3
        assert p.acknum == 0
        assert p.msg_id() == MessageId(b"abc")
        assert bytes(p.payload()) == bytes([0x14, 0xAE, 0x29, 0x42])
        (value,) = MessageType.FLOAT32.unpack(p.payload())
        assert value == pytest.approx(42.42, rel=1e-6)
        assert p.checksum() == 0x1D8B
        assert p.wire_size() == 12

    def test_payload_is_zero_copy(self) -> None:
        buf = bytearray(MSG_I8[1:10])
        p = Packet.new(buf)
        buf[6] = 0x2B
        assert bytes(p.payload()) == b"\x2b"

    def test_copy_is_independent(self) -> None:
        buf = bytearray(MSG_I8[1:10])
        snapshot = Packet.new(buf).copy()
        buf[6] = 0x2B
        assert bytes(snapshot.payload()) == b"\x2a"
        assert bytes(snapshot) == MSG_I8[1:10]

    def test_trailing_bytes_ignored(self) -> None:
        p = Packet.new(MSG_I8[1:10] + b"\xee\xee")
        assert p.wire_size() == 9
        assert len(p) == 11

    def test_missing_header(self) -> None:
        with pytest.raises(MissingHeader):
            Packet.new(b"\xff" * 2)

    def test_missing_checksum(self) -> None:
        with pytest.raises(MissingChecksum):
            Packet.new(b"\xff" * 4)

    def test_incomplete_payload(self) -> None:
        with pytest.raises(IncompletePayload):
            Packet.new(bytes([0x04, 0x2C, 0x03, 0xFF, 0xFF]))

    def test_invalid_checksum(self) -> None:
        raw = bytes([0x01, 0x14, 0x63, 0x61, 0x62, 0x63, 0x2A, 0xB8, 0xA3 + 1])
        with pytest.raises(InvalidChecksum) as exc_info:
            Packet.new(raw)
        assert exc_info.value.details == {"provided": 0xA4B8, "computed": 0xA3B8}

    def test_invalid_msg_id_len(self) -> None:
        buf = bytearray(MSG_I8[1:10])
        p = Packet.new(buf)
        with pytest.raises(InvalidMessageIdLength):
            p.set_id_length(0)
        with pytest.raises(InvalidMessageIdLength):
            p.set_id_length(Packet.MAX_MSG_ID_SIZE + 1)
        buf[2] &= ~0x0F & 0xFF
        with pytest.raises(InvalidMessageIdLength):
            Packet.new(buf)

    def test_invalid_msg_id(self) -> None:
        buf = bytearray(b"\xff" * 7)
        p = Packet.new_unchecked(buf)
        p.check_len()
        p.set_data_length(0)
        p.set_typ(MessageType.CUSTOM)
        p.set_internal(False)
        p.set_offset(False)
        p.set_id_length(1)
        p.set_response(False)
        p.set_acknum(0)
        p.msg_id_mut()[:] = b"\x00"
        p.set_checksum(p.compute_checksum())

        p = Packet.new(bytes(buf))
        assert bytes(p.msg_id_raw()) == b"\x00"
        with pytest.raises(InvalidMessageId):
            p.msg_id()

    def test_unknown_type_passes_by_default(self) -> None:
        raw = build_packet(b"abc", typ=MessageType(13))
        p = Packet.new(raw)
        assert p.typ().is_unknown
        assert int(p.typ()) == 13

    def test_unknown_type_rejected_when_strict(self) -> None:
        raw = build_packet(b"abc", typ=14)
        with pytest.raises(UnknownMessageType) as exc_info:
            Packet.new(raw, strict_types=True)
        assert exc_info.value.code_value == 14

    def test_strict_types_accepts_defined_type(self) -> None:
        assert Packet.new(MSG_I8[1:10], strict_types=True).typ() is MessageType.INT8

    def test_unchecked_accessor_on_short_buffer(self) -> None:
        p = Packet.new_unchecked(bytes([0x04, 0x2C, 0x03, 0x61]))
        with pytest.raises(IncompletePayload):
            p.payload()

    def test_str(self) -> None:
        p = Packet.new(MSG_I8[1:10])
        assert str(p) == (
            "{ DataLen(1), Type(5), Int(0), Offset(0), IdLen(3), Resp(0), Acknum(3) }"
        )


# =========================================================================
# Setters
# =========================================================================


class TestSetters:
    """Bounds checking and bit isolation."""

    def test_invalid_data_len(self) -> None:
        p = Packet.new_unchecked(bytearray(b"\xff" * 32))
        with pytest.raises(InvalidDataLength):
            p.set_data_length(Packet.MAX_PAYLOAD_SIZE + 1)
        with pytest.raises(InvalidDataLength):
            p.set_data_length(-1)

    def test_data_len_must_fit_ten_bits(self) -> None:
        """1024 cannot be represented in the 10-bit field."""
        p = Packet.new_unchecked(bytearray(8))
        with pytest.raises(InvalidDataLength):
            p.set_data_length(1024)
        p.set_data_length(1023)
        assert p.data_length == 1023

    def test_data_len_preserves_sibling_bits(self) -> None:
        p = Packet.new_unchecked(bytearray(b"\xff" * 8))
        p.set_data_length(1)
        assert p.data_length == 1
        assert p.typ_raw == 0x0F
        assert p.internal is True
        assert p.offset is True

    def test_type_preserves_sibling_bits(self) -> None:
        p = Packet.new_unchecked(bytearray(b"\xff" * 8))
        p.set_typ(MessageType.INT8)
        assert p.typ() is MessageType.INT8
        assert p.data_length == 0x3FF
        assert p.internal is True
        assert p.offset is True

    def test_set_typ_rejects_wide_code(self) -> None:
        p = Packet.new_unchecked(bytearray(8))
        with pytest.raises(UnknownMessageType):
            p.set_typ(16)

    def test_flags_toggle_independently(self) -> None:
        p = Packet.new_unchecked(bytearray(8))
        p.set_internal(True)
        p.set_offset(True)
        p.set_response(True)
        assert (p.internal, p.offset, p.response) == (True, True, True)
        p.set_offset(False)
        assert (p.internal, p.offset, p.response) == (True, False, True)
        p.set_internal(False)
        assert (p.internal, p.offset, p.response) == (False, False, True)
        assert p.typ_raw == 0
        assert p.id_length_raw == 0
        assert p.acknum == 0

    def test_id_length_preserves_sibling_bits(self) -> None:
        p = Packet.new_unchecked(bytearray(b"\xff" * 20))
        p.set_id_length(3)
        assert p.id_length() == 3
        assert p.response is True
        assert p.acknum == 7

    @pytest.mark.parametrize("acknum", range(8))
    def test_acknum(self, acknum: int) -> None:
        p = Packet.new_unchecked(bytearray(b"\xff" * 8))
        p.set_acknum(acknum)
        assert p.acknum == acknum
        assert p.response is True
        assert p.id_length_raw == 0x0F

    def test_acknum_masked_to_three_bits(self) -> None:
        p = Packet.new_unchecked(bytearray(8))
        p.set_acknum(9)
        assert p.acknum == 1

    def test_set_msg_id_short_buffer_leaves_buffer_unchanged(self) -> None:
        buf = bytearray(b"\x01\x14\x63\x61\x62")
        p = Packet.new_unchecked(buf)
        with pytest.raises(IncompletePayload):
            p.set_msg_id(b"abcdefgh")
        assert buf == b"\x01\x14\x63\x61\x62"
        assert p.id_length() == 3

    def test_read_only_buffer(self) -> None:
        p = Packet.new(MSG_I8[1:10])
        with pytest.raises(TypeError):
            p.set_acknum(1)
        with pytest.raises(TypeError):
            p.payload_mut()


# =========================================================================
# Offset metadata
# =========================================================================


class TestOffset:
    """The reserved two bytes after the message ID."""

    def test_offset_layout(self) -> None:
        raw = build_packet(b"abc", b"\x2a", typ=MessageType.INT8, offset=True)
        assert len(raw) == Packet.buffer_len(3, 1, offset=True)
        p = Packet.new(raw)
        assert p.offset is True
        assert p.offset_raw() == 0
        assert bytes(p.payload()) == b"\x2a"
        assert p.wire_size() == 11

    def test_offset_bytes_covered_by_checksum(self) -> None:
        raw = build_packet(b"abc", b"\x2a", typ=MessageType.INT8, offset=True)
        p = Packet.new_unchecked(raw)
        p.set_offset_raw(0x0102)
        with pytest.raises(InvalidChecksum):
            Packet.new(raw)
        p.set_checksum(p.compute_checksum())
        assert Packet.new(raw).offset_raw() == 0x0102

    def test_set_offset_raw_short_buffer(self) -> None:
        buf = bytearray(b"\x00\x80\x03\x61\x62")
        p = Packet.new_unchecked(buf)
        with pytest.raises(IncompletePayload):
            p.set_offset_raw(7)
        assert buf == b"\x00\x80\x03\x61\x62"

    def test_set_offset_raw_requires_flag(self) -> None:
        p = Packet.new_unchecked(build_packet(b"abc", typ=MessageType.CALLBACK))
        with pytest.raises(ValueError):
            p.set_offset_raw(1)


# =========================================================================
# Builder
# =========================================================================


class TestBuilder:
    """Tests for build_packet and encode_packet."""

    def test_matches_capture(self) -> None:
        raw = build_packet(b"abc", b"\x2a", typ=MessageType.INT8, acknum=3)
        assert bytes(raw) == MSG_I8[1:10]
        assert encode_packet(b"abc", b"\x2a", typ=MessageType.INT8, acknum=3) == MSG_I8

    def test_heartbeat_request(self) -> None:
        raw = build_packet(
            MessageId.INTERNAL_HEARTBEAT,
            MessageType.UINT8.pack([3]),
            typ=MessageType.UINT8,
            internal=True,
            response=True,
        )
        p = Packet.new(raw)
        assert p.internal is True
        assert p.response is True
        assert p.msg_id() == MessageId.INTERNAL_HEARTBEAT
        assert MessageType.UINT8.unpack(p.payload()) == (3,)

    def test_empty_payload(self) -> None:
        raw = build_packet(MessageId.INTERNAL_BOARD_ID, typ=MessageType.UINT16)
        assert len(raw) == 6
        p = Packet.new(raw)
        assert p.data_length == 0
        assert bytes(p.payload()) == b""

    def test_payload_too_large(self) -> None:
        with pytest.raises(InvalidDataLength):
            build_packet(b"abc", bytes(1024), typ=MessageType.CUSTOM)

    def test_invalid_id(self) -> None:
        with pytest.raises(InvalidMessageId):
            build_packet(b"", typ=MessageType.CALLBACK)
