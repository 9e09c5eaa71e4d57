"""Outgoing packet construction helpers.

Packets are built field by field over an unchecked :class:`Packet` view,
the checksum is computed last, and the result is framed with
:class:`Framing`.  These helpers wrap that sequence for the common case::

    frame = encode_packet(
        MessageId.INTERNAL_HEARTBEAT,
        MessageType.UINT8.pack([3]),
        typ=MessageType.UINT8,
        internal=True,
        response=True,
    )
    port.write(frame)
"""
from __future__ import annotations

from eui_protocol.core.types import MessageId, MessageType
from eui_protocol.wire.framing import Framing
from eui_protocol.wire.packet import Packet


def build_packet(
    msg_id: MessageId | bytes,
    payload: bytes | bytearray | memoryview = b"",
    *,
    typ: MessageType | int,
    internal: bool = False,
    response: bool = False,
    acknum: int = 0,
    offset: bool = False,
) -> bytearray:
    """Return a de-framed packet buffer with a valid checksum.

    With *offset* set the reserved offset metadata is written as zero.

    Raises
    ------
    InvalidMessageId
        If *msg_id* is not a valid identifier.
    InvalidDataLength
        If *payload* does not fit the 10-bit length field.
    """
    if not isinstance(msg_id, MessageId):
        msg_id = MessageId(msg_id)

    buffer = bytearray(Packet.buffer_len(len(msg_id), len(payload), offset))
    packet = Packet.new_unchecked(buffer)
    packet.set_data_length(len(payload))
    packet.set_typ(typ)
    packet.set_internal(internal)
    packet.set_offset(offset)
    packet.set_msg_id(msg_id)
    packet.set_response(response)
    packet.set_acknum(acknum)
    packet.payload_mut()[:] = payload
    packet.set_checksum(packet.compute_checksum())
    return buffer


def encode_packet(
    msg_id: MessageId | bytes,
    payload: bytes | bytearray | memoryview = b"",
    *,
    typ: MessageType | int,
    internal: bool = False,
    response: bool = False,
    acknum: int = 0,
    offset: bool = False,
) -> bytes:
    """Build a packet like :func:`build_packet` and return it framed for the wire."""
    return Framing.encode(
        build_packet(
            msg_id,
            payload,
            typ=typ,
            internal=internal,
            response=response,
            acknum=acknum,
            offset=offset,
        )
    )
