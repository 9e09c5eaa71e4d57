"""Streaming frame decoder.

The :class:`Decoder` consumes a serial byte stream one byte at a time.  It
undoes COBS framing online and parses the packet header as bytes arrive,
so a frame never needs more storage than its de-framed size and no byte
is looked at twice.

Pipeline per byte
-----------------

1. **Delimiter** -- ``0x00`` aborts any partial frame and re-arms the
   machine for the next one.
2. **De-framing** -- a countdown tracks the distance to the next COBS code
   byte.  When it expires the incoming byte becomes the new countdown and
   stands in for the zero that encoding removed.
3. **Parsing** -- the reconstructed byte is stored and drives the state
   machine::

       FRAME_OFFSET -> HEADER_B0 -> HEADER_B1 -> HEADER_B2 -> MSG_ID (x id_length)
           -> [OFFSET_B0 -> OFFSET_B1] -> PAYLOAD (x data_length) -> CRC_B0 -> CRC_B1

4. **Validation** -- on ``CRC_B1`` the machine resets itself, then
   validates the accumulated bytes with :meth:`Packet.new`.

Usage
-----
::

    decoder = Decoder(bytearray(512))
    for byte in serial_port.read(64):
        try:
            packet = decoder.decode(byte)
        except ElectricUIError:
            continue
        if packet is not None:
            handle(packet.msg_id(), bytes(packet.payload()))
"""
from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Iterator

from eui_protocol.core.config import DecoderConfig
from eui_protocol.core.errors import (
    ElectricUIError,
    InsufficientBufferSize,
    PacketError,
)
from eui_protocol.wire.framing import Framing
from eui_protocol.wire.packet import Packet

logger = logging.getLogger(__name__)

_MAX_COBS_CODE = 0xFF


class _State(enum.StrEnum):
    FRAME_OFFSET = "frame_offset"
    HEADER_B0 = "header_b0"
    HEADER_B1 = "header_b1"
    HEADER_B2 = "header_b2"
    MSG_ID = "msg_id"
    OFFSET_B0 = "offset_b0"
    OFFSET_B1 = "offset_b1"
    PAYLOAD = "payload"
    CRC_B0 = "crc_b0"
    CRC_B1 = "crc_b1"


class Decoder:
    """Byte-at-a-time packet decoder over caller-supplied storage.

    Parameters
    ----------
    buffer:
        Writable accumulation storage, at least
        :attr:`Packet.BASE_PACKET_SIZE` bytes.  The decoder uses it
        exclusively for its lifetime and never grows it.
    strict_types:
        Reject packets whose type code is not a defined
        :class:`~eui_protocol.core.types.MessageType`.

    Raises
    ------
    ValueError
        If *buffer* is smaller than :attr:`Packet.BASE_PACKET_SIZE`.
    TypeError
        If *buffer* is read-only.
    """

    def __init__(
        self,
        buffer: bytearray | memoryview,
        *,
        strict_types: bool = False,
    ) -> None:
        storage = memoryview(buffer).cast("B")
        if storage.readonly:
            raise TypeError("decoder buffer must be writable")
        if len(storage) < Packet.BASE_PACKET_SIZE:
            raise ValueError(
                f"decoder buffer must hold at least {Packet.BASE_PACKET_SIZE} "
                f"bytes, got {len(storage)}"
            )
        self._storage = storage
        self._strict_types = strict_types

        self._state = _State.FRAME_OFFSET
        self._frame_offset = 0
        self._full_block = False
        self._discarding = False
        self._id_bytes_read = 0
        self._data_bytes_read = 0
        self._bytes_read = 0
        self._valid_pkt_count = 0
        self._invalid_pkt_count = 0

        self._data_len = 0
        self._offset = False
        self._id_len = 0

    @classmethod
    def from_config(cls, config: DecoderConfig | None = None) -> Decoder:
        """Build a decoder with freshly allocated storage."""
        config = config or DecoderConfig()
        return cls(bytearray(config.buffer_size), strict_types=config.strict_types)

    @property
    def capacity(self) -> int:
        return len(self._storage)

    def reset(self) -> None:
        """Drop any partial frame and wait for the next frame's first byte.

        The cumulative packet counters are left untouched.
        """
        self._state = _State.FRAME_OFFSET
        self._frame_offset = 0
        self._full_block = False
        self._discarding = False
        self._bytes_read = 0

    def count(self) -> int:
        """Return the number of valid packets decoded so far."""
        return self._valid_pkt_count

    def invalid_count(self) -> int:
        """Return the number of complete frames that failed validation."""
        return self._invalid_pkt_count

    def decode(self, byte: int) -> Packet | None:
        """Consume one byte from the wire.

        Returns
        -------
        Packet | None
            The validated packet when *byte* completes a frame, otherwise
            ``None``.  The packet is a view into the decoder storage and is
            only valid until the next call; use :meth:`Packet.copy` to keep
            it.

        Raises
        ------
        PacketError
            The completed frame failed validation.  It is counted in
            :meth:`invalid_count`.
        InsufficientBufferSize
            The frame outgrew the storage.  The rest of it is skipped up to
            the next delimiter.
        """
        if byte == Framing.ZERO:
            if self._bytes_read:
                logger.debug(
                    "Delimiter after %d bytes of an incomplete frame; resynchronising",
                    self._bytes_read,
                )
            self.reset()
            return None

        if self._frame_offset > 1:
            self._frame_offset -= 1
        else:
            # Code byte: it replaces an elided zero unless the previous
            # block was a maximal run with no zero after it.
            elided_zero = not self._full_block
            self._full_block = byte == _MAX_COBS_CODE
            self._frame_offset = byte
            if not elided_zero:
                return None
            byte = 0x00

        if self._discarding:
            return None

        state = self._state
        if state is _State.FRAME_OFFSET:
            # The first byte of a frame is the first COBS code
            self._state = _State.HEADER_B0
        elif state is _State.HEADER_B0:
            self._feed(byte)
            self._data_len = byte
            self._state = _State.HEADER_B1
        elif state is _State.HEADER_B1:
            self._feed(byte)
            self._data_len |= (byte << 8) & 0x0300
            self._offset = bool(byte & 0x80)
            self._state = _State.HEADER_B2
        elif state is _State.HEADER_B2:
            self._feed(byte)
            self._id_len = byte & 0x0F
            self._id_bytes_read = 0
            self._state = _State.MSG_ID
        elif state is _State.MSG_ID:
            self._feed(byte)
            self._id_bytes_read += 1
            if self._id_bytes_read >= self._id_len:
                if self._offset:
                    self._state = _State.OFFSET_B0
                else:
                    self._state = self._payload_or_crc()
        elif state is _State.OFFSET_B0:
            # TODO: interpret the offset metadata once split packets are reassembled
            self._feed(byte)
            self._state = _State.OFFSET_B1
        elif state is _State.OFFSET_B1:
            self._feed(byte)
            self._state = self._payload_or_crc()
        elif state is _State.PAYLOAD:
            self._feed(byte)
            self._data_bytes_read += 1
            if self._data_bytes_read >= self._data_len:
                self._state = _State.CRC_B0
        elif state is _State.CRC_B0:
            self._feed(byte)
            self._state = _State.CRC_B1
        elif state is _State.CRC_B1:
            self._feed(byte)
            return self._finish_frame()

        return None

    def decode_all(self, data: Iterable[int]) -> Iterator[Packet]:
        """Feed every byte of *data*, yielding an owned copy of each valid packet.

        Frames that fail validation or overflow the storage are logged and
        skipped; they still show up in :meth:`invalid_count` as usual.
        """
        for byte in data:
            try:
                packet = self.decode(byte)
            except InsufficientBufferSize as exc:
                logger.warning("Frame dropped: %s", exc.message)
                continue
            except ElectricUIError as exc:
                logger.debug("Invalid frame skipped: %s", exc)
                continue
            if packet is not None:
                yield packet.copy()

    def _payload_or_crc(self) -> _State:
        if self._data_len > 0:
            self._data_bytes_read = 0
            return _State.PAYLOAD
        return _State.CRC_B0

    def _feed(self, byte: int) -> None:
        if self._bytes_read >= len(self._storage):
            self._discarding = True
            raise InsufficientBufferSize(
                details={"capacity": len(self._storage), "state": str(self._state)},
            )
        self._storage[self._bytes_read] = byte
        self._bytes_read += 1

    def _finish_frame(self) -> Packet:
        size = self._bytes_read
        self.reset()
        try:
            packet = Packet.new(self._storage[:size], strict_types=self._strict_types)
        except PacketError as exc:
            self._invalid_pkt_count += 1
            logger.debug("Invalid %d byte frame: %s", size, exc)
            raise
        self._valid_pkt_count += 1
        return packet

    def __repr__(self) -> str:
        return (
            f"Decoder(capacity={len(self._storage)}, state={self._state.value}, "
            f"count={self._valid_pkt_count}, invalid_count={self._invalid_pkt_count})"
        )
