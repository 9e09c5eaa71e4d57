"""ElectricUI protocol value types.

This module defines the two leaf value types every other part of the codec
depends on: the message identity carried in each packet header and the
wire-level message type tag.

Key design decisions:
* ``MessageId`` is a plain Python class with ``__slots__`` holding an
  immutable ``bytes`` copy.  Identifiers are at most 15 bytes, so copying
  them out of a packet buffer is cheaper than pinning the whole buffer.
* ``MessageId`` compares equal to plain ``bytes`` so that
  ``packet.msg_id() == b"abc"`` reads naturally.
* ``MessageType`` is an ``IntEnum`` whose value *is* the 4-bit wire code.
  Codes without a defined member become ``UNKNOWN_<n>`` pseudo-members,
  so conversion in either direction is lossless.
"""
from __future__ import annotations

import enum
import functools
import struct
from collections.abc import Iterable
from typing import Any, ClassVar

from eui_protocol.core.errors import (
    InvalidDataLength,
    InvalidMessageId,
    UnknownMessageType,
)

# ---------------------------------------------------------------------------
# MessageId
# ---------------------------------------------------------------------------

@functools.total_ordering
class MessageId:
    """Validated protocol message identifier.

    A message ID is 1 to 15 bytes long and is never the single byte
    ``0x00``.  Equality, ordering and hashing are byte-wise; the UTF-8
    view exposed by :meth:`as_str` and ``str()`` is for display only.

    Raises
    ------
    InvalidMessageId
        If *data* is empty, longer than :attr:`MAX_SIZE`, or a lone null byte.
    """

    __slots__ = ("_id",)

    MAX_SIZE: ClassVar[int] = 15

    INTERNAL_LIB_VER: ClassVar[MessageId]
    INTERNAL_BOARD_ID: ClassVar[MessageId]
    INTERNAL_HEARTBEAT: ClassVar[MessageId]
    INTERNAL_AM: ClassVar[MessageId]
    """Announce writable IDs."""
    INTERNAL_AM_LIST: ClassVar[MessageId]
    """Delimit writable IDs."""
    INTERNAL_AM_END: ClassVar[MessageId]
    """End of writable IDs."""
    INTERNAL_AV: ClassVar[MessageId]
    """Send writable variables."""
    BOARD_NAME: ClassVar[MessageId]

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        raw = bytes(data)
        if not raw or len(raw) > self.MAX_SIZE or raw == b"\x00":
            raise InvalidMessageId(details={"id": raw.hex(), "length": len(raw)})
        self._id = raw

    @classmethod
    def from_utf8(cls, text: str) -> MessageId:
        """Build an identifier from the UTF-8 encoding of *text*."""
        return cls(text.encode("utf-8"))

    def as_bytes(self) -> bytes:
        return self._id

    def as_str(self) -> str:
        """Decode the identifier as UTF-8.

        Raises
        ------
        UnicodeDecodeError
            If the identifier bytes are not valid UTF-8.
        """
        return self._id.decode("utf-8")

    def __bytes__(self) -> bytes:
        return self._id

    def __len__(self) -> int:
        return len(self._id)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, MessageId):
            return self._id == other._id
        if isinstance(other, (bytes, bytearray, memoryview)):
            return self._id == bytes(other)
        return NotImplemented

    def __lt__(self, other: object) -> bool:
        if isinstance(other, MessageId):
            return self._id < other._id
        if isinstance(other, (bytes, bytearray, memoryview)):
            return self._id < bytes(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._id)

    def __str__(self) -> str:
        try:
            return self.as_str()
        except UnicodeDecodeError:
            return "[" + ", ".join(f"{b:X}" for b in self._id) + "]"

    def __repr__(self) -> str:
        return f"MessageId({self._id!r})"


MessageId.INTERNAL_LIB_VER = MessageId(b"o")
MessageId.INTERNAL_BOARD_ID = MessageId(b"i")
MessageId.INTERNAL_HEARTBEAT = MessageId(b"h")
MessageId.INTERNAL_AM = MessageId(b"t")
MessageId.INTERNAL_AM_LIST = MessageId(b"u")
MessageId.INTERNAL_AM_END = MessageId(b"v")
MessageId.INTERNAL_AV = MessageId(b"w")
MessageId.BOARD_NAME = MessageId(b"name")


# ---------------------------------------------------------------------------
# MessageType
# ---------------------------------------------------------------------------

class MessageType(enum.IntEnum):
    """Wire-level data kind of a packet payload.

    The member value is the 4-bit wire code.  ``MessageType(code)`` for a
    code with no defined member returns an ``UNKNOWN_<code>`` pseudo-member
    that round-trips through ``int()`` unchanged, keeping the codec
    forward compatible with newer firmware.

    Note that ``CALLBACK`` has value 0 and is therefore falsy.
    """

    CALLBACK = 0
    CUSTOM = 1
    OFFSET_METADATA = 2
    BYTE = 3
    CHAR = 4
    INT8 = 5
    UINT8 = 6
    INT16 = 7
    UINT16 = 8
    INT32 = 9
    UINT32 = 10
    FLOAT32 = 11
    FLOAT64 = 12

    @classmethod
    def _missing_(cls, value: object) -> MessageType | None:
        if not isinstance(value, int) or not 0 <= value <= 0xFF:
            return None
        member = int.__new__(cls, value)
        member._name_ = f"UNKNOWN_{value}"
        member._value_ = value
        return cls._value2member_map_.setdefault(value, member)

    @classmethod
    def from_wire(cls, code: int) -> MessageType:
        """Return the member for a wire code, including unknown codes."""
        return cls(code)

    @classmethod
    def unknown(cls, code: int) -> MessageType:
        """Return the ``UNKNOWN_<code>`` member for an undefined code.

        Raises
        ------
        ValueError
            If *code* names a defined message type.
        """
        member = cls(code)
        if not member.is_unknown:
            raise ValueError(f"{code} is the wire code of {member.name}")
        return member

    @property
    def wire_code(self) -> int:
        return int(self)

    @property
    def is_unknown(self) -> bool:
        return self._name_.startswith("UNKNOWN_")

    def wire_size_hint(self) -> int:
        """Return the wire size of one element of this type.

        Only data-carrying types have a size; ``CALLBACK``, ``CUSTOM``,
        ``OFFSET_METADATA`` and unknown types report 0.
        """
        return _ELEMENT_SIZES.get(self, 0)

    def array_wire_size_hint(self, num_elements: int) -> int:
        """Return the wire size of an array of *num_elements* elements."""
        return num_elements * self.wire_size_hint()

    def array_wire_length_hint(self, data_size: int) -> int:
        """Return the number of elements held in *data_size* payload bytes."""
        wire_size = self.wire_size_hint()
        if wire_size == 0:
            return 0
        return data_size // wire_size

    def data_wire_size(self, num_elements: int) -> int:
        """Like :meth:`array_wire_size_hint`, counting at least one element."""
        return self.array_wire_size_hint(max(1, num_elements))

    def struct_format(self, num_elements: int = 1) -> str | None:
        """Return the little-endian :mod:`struct` format for *num_elements*.

        Returns ``None`` for types that do not carry typed scalar data.
        """
        code = _STRUCT_CODES.get(self)
        if code is None:
            return None
        return f"<{num_elements}{code}"

    def pack(self, values: Iterable[Any]) -> bytes:
        """Encode typed scalar *values* as a little-endian payload.

        Raises
        ------
        UnknownMessageType
            If this is an unknown type.
        ValueError
            If this type does not carry typed scalar data.
        """
        items = list(values)
        fmt = self._require_format(len(items))
        return struct.pack(fmt, *items)

    def unpack(self, data: bytes | bytearray | memoryview) -> tuple[Any, ...]:
        """Decode a little-endian payload into a tuple of typed scalars.

        Raises
        ------
        InvalidDataLength
            If the payload is not a whole number of elements.
        UnknownMessageType
            If this is an unknown type.
        ValueError
            If this type does not carry typed scalar data.
        """
        size = self.wire_size_hint()
        if size and len(data) % size:
            raise InvalidDataLength(
                f"{len(data)} payload bytes is not a multiple of the "
                f"{self.name} element size {size}",
                details={"data_length": len(data), "element_size": size},
            )
        fmt = self._require_format(self.array_wire_length_hint(len(data)))
        return struct.unpack(fmt, data)

    def _require_format(self, num_elements: int) -> str:
        if self.is_unknown:
            raise UnknownMessageType(int(self))
        fmt = self.struct_format(num_elements)
        if fmt is None:
            raise ValueError(f"{self.name} payloads carry no typed scalar data")
        return fmt

    def __str__(self) -> str:
        return self._name_


_ELEMENT_SIZES: dict[MessageType, int] = {
    MessageType.BYTE: 1,
    MessageType.CHAR: 1,
    MessageType.INT8: 1,
    MessageType.UINT8: 1,
    MessageType.INT16: 2,
    MessageType.UINT16: 2,
    MessageType.INT32: 4,
    MessageType.UINT32: 4,
    MessageType.FLOAT32: 4,
    MessageType.FLOAT64: 8,
}

_STRUCT_CODES: dict[MessageType, str] = {
    MessageType.BYTE: "B",
    MessageType.CHAR: "c",
    MessageType.INT8: "b",
    MessageType.UINT8: "B",
    MessageType.INT16: "h",
    MessageType.UINT16: "H",
    MessageType.INT32: "i",
    MessageType.UINT32: "I",
    MessageType.FLOAT32: "f",
    MessageType.FLOAT64: "d",
}
