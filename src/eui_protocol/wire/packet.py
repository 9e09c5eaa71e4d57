"""Zero-copy view over a de-framed ElectricUI packet.

Wire layout (offsets relative to the start of the de-framed buffer)::

    byte 0-1 (LE)  bits 0-9   data_length (payload bytes)
    byte 1         bits 2-5   type (MessageType wire code)
    byte 1         bit 6      internal
    byte 1         bit 7      offset
    byte 2         bits 0-3   id_length (1-15)
    byte 2         bit 4      response
    byte 2         bits 5-7   acknum
    3..            id_length  message ID
    [2 bytes]                 reserved offset metadata, only if offset is set
    next           data_length payload
    last 2 (LE)               CRC-16/CCITT-FALSE over every preceding byte

Several fields share a byte, so every setter read-modify-writes only its
own bit mask.  A :class:`Packet` never owns its storage: it wraps a
caller-supplied ``bytes``/``bytearray``/``memoryview`` and hands out
``memoryview`` slices of it.
"""
from __future__ import annotations

import binascii
import struct

from eui_protocol.core.errors import (
    IncompletePayload,
    InvalidChecksum,
    InvalidDataLength,
    InvalidMessageIdLength,
    MissingChecksum,
    MissingHeader,
    UnknownMessageType,
)
from eui_protocol.core.types import MessageId, MessageType

_Buffer = bytes | bytearray | memoryview

# Header byte indices
_DATA_LEN = 0
_TYPE = 1
_INTERNAL = 1
_OFFSET = 1
_ID_LEN = 2
_RESPONSE = 2
_ACKNUM = 2
# Message ID, then maybe offset metadata, then payload
_REST = 3

_DATA_LEN_MASK = 0x3FF
_TYPE_MASK = 0x3C
_INTERNAL_BIT = 1 << 6
_OFFSET_BIT = 1 << 7
_ID_LEN_MASK = 0x0F
_RESPONSE_BIT = 1 << 4
_ACKNUM_MASK = 0xE0

_CRC_INIT = 0xFFFF


def crc16_ccitt_false(data: _Buffer) -> int:
    """CRC-16/CCITT-FALSE: poly 0x1021, init 0xFFFF, no reflection, no xorout."""
    return binascii.crc_hqx(data, _CRC_INIT)


class Packet:
    """Structural view over a packet buffer.

    Build one with :meth:`new` to validate length, ID length, payload
    length and checksum up front, or with :meth:`new_unchecked` while
    filling in fields of a packet under construction.

    Header fields that are read straight from their bit mask and cannot
    fail (``data_length``, ``typ_raw``, ``internal``, ``offset``,
    ``id_length_raw``, ``response``, ``acknum``) are properties.  Reads
    that validate, convert or locate data past the header (``typ()``,
    ``id_length()``, ``msg_id()``, ``payload()``, ``checksum()`` and so
    on) are methods.

    Setters need a writable buffer (``bytearray`` or a writable
    ``memoryview``) and raise ``TypeError`` otherwise.  A setter that
    raises leaves the buffer unchanged.

    Parameters
    ----------
    buffer:
        Storage holding the de-framed packet.  It must outlive the view.
    """

    HEADER_SIZE: int = 3
    CHECKSUM_SIZE: int = 2
    OFFSET_SIZE: int = 2
    MAX_PAYLOAD_SIZE: int = 1024
    MAX_MSG_ID_SIZE: int = MessageId.MAX_SIZE

    BASE_PACKET_SIZE: int = HEADER_SIZE + CHECKSUM_SIZE
    MAX_PACKET_SIZE: int = BASE_PACKET_SIZE + MAX_MSG_ID_SIZE + MAX_PAYLOAD_SIZE

    __slots__ = ("_buffer", "_view")

    def __init__(self, buffer: _Buffer) -> None:
        self._buffer = buffer
        self._view = memoryview(buffer).cast("B")

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def new_unchecked(cls, buffer: _Buffer) -> Packet:
        """Wrap *buffer* without any validation."""
        return cls(buffer)

    @classmethod
    def new(cls, buffer: _Buffer, *, strict_types: bool = False) -> Packet:
        """Wrap *buffer* after checking that it holds a complete packet.

        Checks run in order: header and checksum room, ID length and
        payload room, checksum, then (only with *strict_types*) the
        message type code.

        Raises
        ------
        MissingHeader
            Fewer than :attr:`HEADER_SIZE` bytes.
        MissingChecksum
            Fewer than :attr:`BASE_PACKET_SIZE` bytes.
        InvalidMessageIdLength
            The ID length field is zero.
        IncompletePayload
            The buffer cannot hold the ID, offset metadata and payload.
        InvalidChecksum
            The stored checksum differs from the computed one.
        UnknownMessageType
            *strict_types* is set and the type code is undefined.
        """
        packet = cls(buffer)
        packet.check_len()
        packet.check_payload_length()
        packet.check_checksum()
        if strict_types:
            packet.check_type()
        return packet

    def check_len(self) -> None:
        size = len(self._view)
        if size < _REST:
            raise MissingHeader(details={"length": size})
        if size < _REST + self.CHECKSUM_SIZE:
            raise MissingChecksum(details={"length": size})

    def check_payload_length(self) -> None:
        """Check the buffer holds the message ID and payload bytes."""
        required = self.wire_size()
        if len(self._view) < required:
            raise IncompletePayload(
                details={"length": len(self._view), "required": required},
            )

    def check_checksum(self) -> None:
        provided = self.checksum()
        computed = self.compute_checksum()
        if computed != provided:
            raise InvalidChecksum(
                details={"provided": provided, "computed": computed},
            )

    def check_type(self) -> None:
        typ = self.typ()
        if typ.is_unknown:
            raise UnknownMessageType(int(typ))

    @classmethod
    def buffer_len(
        cls,
        n_msg_id_bytes: int,
        n_payload_bytes: int,
        offset: bool = False,
    ) -> int:
        """Return the buffer length needed for a packet of the given sizes."""
        size = cls.BASE_PACKET_SIZE + n_msg_id_bytes + n_payload_bytes
        if offset:
            size += cls.OFFSET_SIZE
        return size

    def wire_size(self) -> int:
        """Return the de-framed size of this packet as its header describes it."""
        return self.buffer_len(self.id_length(), self.data_length, self.offset)

    def into_inner(self) -> _Buffer:
        """Return the wrapped buffer."""
        return self._buffer

    def copy(self) -> Packet:
        """Return an unchecked view over an owned ``bytes`` copy of this packet."""
        return type(self)(bytes(self._view[: self.wire_size()]))

    # ------------------------------------------------------------------
    # Header fields
    # ------------------------------------------------------------------

    @property
    def data_length(self) -> int:
        (raw,) = struct.unpack_from("<H", self._view, _DATA_LEN)
        return raw & _DATA_LEN_MASK

    @property
    def typ_raw(self) -> int:
        return (self._view[_TYPE] & _TYPE_MASK) >> 2

    def typ(self) -> MessageType:
        """Return the message type; undefined codes give ``UNKNOWN_<n>``."""
        return MessageType.from_wire(self.typ_raw)

    @property
    def internal(self) -> bool:
        return bool(self._view[_INTERNAL] & _INTERNAL_BIT)

    @property
    def offset(self) -> bool:
        return bool(self._view[_OFFSET] & _OFFSET_BIT)

    @property
    def id_length_raw(self) -> int:
        return self._view[_ID_LEN] & _ID_LEN_MASK

    def id_length(self) -> int:
        """Return the message ID length, rejecting the invalid value 0."""
        id_len = self.id_length_raw
        if id_len == 0:
            raise InvalidMessageIdLength(details={"id_length": 0})
        return id_len

    @property
    def response(self) -> bool:
        return bool(self._view[_RESPONSE] & _RESPONSE_BIT)

    @property
    def acknum(self) -> int:
        return (self._view[_ACKNUM] & _ACKNUM_MASK) >> 5

    # ------------------------------------------------------------------
    # Body
    # ------------------------------------------------------------------

    def _payload_start(self) -> int:
        start = _REST + self.id_length()
        if self.offset:
            start += self.OFFSET_SIZE
        return start

    def _span(self, start: int, end: int) -> memoryview:
        if end > len(self._view):
            raise IncompletePayload(
                details={"length": len(self._view), "required": end},
            )
        return self._view[start:end]

    def msg_id_raw(self) -> memoryview:
        """Return the message ID bytes without validating them."""
        return self._span(_REST, _REST + self.id_length())

    def msg_id(self) -> MessageId:
        """Return the validated message ID.

        Raises
        ------
        InvalidMessageId
            If the ID bytes are not a valid identifier (e.g. a lone null).
        """
        return MessageId(self.msg_id_raw())

    def offset_raw(self) -> int | None:
        """Return the reserved offset metadata, or ``None`` without the flag.

        The value is not interpreted; split packet reassembly is not
        supported.
        """
        if not self.offset:
            return None
        start = _REST + self.id_length()
        (raw,) = struct.unpack("<H", self._span(start, start + self.OFFSET_SIZE))
        return raw

    def payload(self) -> memoryview:
        start = self._payload_start()
        return self._span(start, start + self.data_length)

    def checksum(self) -> int:
        start = self._payload_start() + self.data_length
        (crc,) = struct.unpack("<H", self._span(start, start + self.CHECKSUM_SIZE))
        return crc

    def compute_checksum(self) -> int:
        """Compute the CRC over the header, ID, offset metadata and payload."""
        end = self._payload_start() + self.data_length
        return crc16_ccitt_false(self._span(0, end))

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def _writable(self) -> memoryview:
        if self._view.readonly:
            raise TypeError("packet buffer is read-only")
        return self._view

    def set_data_length(self, value: int) -> None:
        """Set the payload length.

        Raises
        ------
        InvalidDataLength
            If *value* is negative or does not fit the 10-bit field.
        """
        if not 0 <= value <= _DATA_LEN_MASK:
            raise InvalidDataLength(
                details={"data_length": value, "max": _DATA_LEN_MASK},
            )
        data = self._writable()
        data[_DATA_LEN] = value & 0xFF
        data[_DATA_LEN + 1] = (data[_DATA_LEN + 1] & ~0x03 & 0xFF) | (value >> 8)

    def set_typ(self, value: MessageType | int) -> None:
        code = int(value)
        if not 0 <= code <= 0x0F:
            raise UnknownMessageType(code)
        data = self._writable()
        data[_TYPE] = (data[_TYPE] & ~_TYPE_MASK & 0xFF) | (code << 2)

    def set_internal(self, value: bool) -> None:
        self._set_bit(_INTERNAL, _INTERNAL_BIT, value)

    def set_offset(self, value: bool) -> None:
        self._set_bit(_OFFSET, _OFFSET_BIT, value)

    def set_id_length(self, value: int) -> None:
        """Set the message ID length.

        Raises
        ------
        InvalidMessageIdLength
            If *value* is 0 or greater than :attr:`MAX_MSG_ID_SIZE`.
        """
        if not 1 <= value <= self.MAX_MSG_ID_SIZE:
            raise InvalidMessageIdLength(details={"id_length": value})
        data = self._writable()
        data[_ID_LEN] = (data[_ID_LEN] & ~_ID_LEN_MASK & 0xFF) | value

    def set_response(self, value: bool) -> None:
        self._set_bit(_RESPONSE, _RESPONSE_BIT, value)

    def set_acknum(self, value: int) -> None:
        """Set the acknowledgement number; only the low 3 bits are kept."""
        data = self._writable()
        data[_ACKNUM] = (data[_ACKNUM] & ~_ACKNUM_MASK & 0xFF) | ((value & 0x07) << 5)

    def set_msg_id(self, msg_id: MessageId | bytes) -> None:
        """Set the ID length field and copy *msg_id* into place.

        The buffer is left unchanged if it cannot hold the identifier.
        """
        if not isinstance(msg_id, MessageId):
            msg_id = MessageId(msg_id)
        raw = bytes(msg_id)
        self._writable()
        self._span(_REST, _REST + len(raw))
        self.set_id_length(len(raw))
        self.msg_id_mut()[:] = raw

    def set_offset_raw(self, value: int) -> None:
        """Write the reserved offset metadata; the offset flag must be set."""
        if not self.offset:
            raise ValueError("offset flag is not set")
        start = _REST + self.id_length()
        data = self._writable()
        self._span(start, start + self.OFFSET_SIZE)
        struct.pack_into("<H", data, start, value & 0xFFFF)

    def msg_id_mut(self) -> memoryview:
        self._writable()
        return self.msg_id_raw()

    def payload_mut(self) -> memoryview:
        self._writable()
        return self.payload()

    def set_checksum(self, value: int) -> None:
        start = self._payload_start() + self.data_length
        data = self._writable()
        self._span(start, start + self.CHECKSUM_SIZE)
        struct.pack_into("<H", data, start, value & 0xFFFF)

    def _set_bit(self, index: int, bit: int, value: bool) -> None:
        data = self._writable()
        if value:
            data[index] |= bit
        else:
            data[index] &= ~bit & 0xFF

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __bytes__(self) -> bytes:
        return bytes(self._view)

    def __len__(self) -> int:
        return len(self._view)

    def __str__(self) -> str:
        return (
            f"{{ DataLen({self.data_length}), Type({self.typ_raw}), "
            f"Int({int(self.internal)}), Offset({int(self.offset)}), "
            f"IdLen({self.id_length_raw}), Resp({int(self.response)}), "
            f"Acknum({self.acknum}) }}"
        )

    def __repr__(self) -> str:
        return f"Packet({bytes(self._view)!r})"
