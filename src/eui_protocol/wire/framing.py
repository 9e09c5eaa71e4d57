"""COBS framing for the serial byte stream.

A thin wrapper around the :mod:`cobs` package.  Encoding removes every
``0x00`` from a packet buffer and appends a single ``0x00`` terminator,
so the zero byte can delimit frames on the wire unambiguously.

The streaming :class:`~eui_protocol.decoder.Decoder` reverses this
encoding online, one byte at a time; the bulk helpers here are for
building outgoing frames and for decoding whole frames held in memory.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Iterator

from cobs import cobs

from eui_protocol.core.errors import CobsDecodeError

logger = logging.getLogger(__name__)

_Buffer = bytes | bytearray | memoryview


class Framing:
    """COBS encode/decode helpers.

    All methods are static; the class only groups them and carries the
    :attr:`ZERO` delimiter constant.
    """

    ZERO: int = 0x00

    @staticmethod
    def max_encoded_len(raw_len: int) -> int:
        """Return a safe output size for encoding *raw_len* bytes.

        One code byte per started 254-byte block (at least one, even for
        an empty input) plus the terminator.
        """
        return raw_len + max(1, math.ceil(raw_len / 254)) + 1

    @staticmethod
    def encode(data: _Buffer) -> bytes:
        """Return the COBS encoding of *data* followed by the terminator."""
        return cobs.encode(bytes(data)) + bytes([Framing.ZERO])

    @staticmethod
    def encode_buf(data: _Buffer, output: bytearray | memoryview) -> int:
        """Encode *data* into *output* and return the number of bytes written.

        Raises
        ------
        ValueError
            If *output* is shorter than the encoded frame.  Sizing it with
            :meth:`max_encoded_len` always suffices.
        """
        encoded = Framing.encode(data)
        size = len(encoded)
        if size > len(output):
            raise ValueError(
                f"output buffer holds {len(output)} bytes, frame needs {size}"
            )
        output[:size] = encoded
        return size

    @staticmethod
    def encode_iter(data: _Buffer) -> Iterator[int]:
        """Yield the encoded frame one byte at a time, terminator last.

        The whole frame is encoded before the first byte is yielded, so
        this saves no memory over :meth:`encode`; it suits byte-wise
        writers and feeding a :class:`~eui_protocol.decoder.Decoder`.
        """
        yield from cobs.encode(bytes(data))
        yield Framing.ZERO

    @staticmethod
    def decode(data: _Buffer) -> bytes:
        """Decode the first frame in *data*, up to its terminator.

        Raises
        ------
        CobsDecodeError
            If *data* has no terminator, the frame is empty, or the bytes
            before the terminator are not a valid COBS encoding.
        """
        raw = bytes(data)
        end = raw.find(Framing.ZERO)
        if end < 0:
            raise CobsDecodeError(
                "Frame is missing its delimiter",
                details={"length": len(raw)},
            )
        if end == 0:
            raise CobsDecodeError("Empty frame")
        try:
            return cobs.decode(raw[:end])
        except cobs.DecodeError as exc:
            logger.debug("COBS decode failed on %d byte frame: %s", end, exc)
            raise CobsDecodeError(
                f"Invalid COBS encoding: {exc}",
                details={"length": end},
            ) from exc

    @staticmethod
    def decode_buf(data: _Buffer, output: bytearray | memoryview) -> int:
        """Decode the first frame in *data* into *output*.

        Returns the number of decoded bytes written to the start of
        *output*.

        Raises
        ------
        CobsDecodeError
            On an invalid frame (see :meth:`decode`) or when *output* is too
            small for the decoded bytes.
        """
        decoded = Framing.decode(data)
        size = len(decoded)
        if size > len(output):
            raise CobsDecodeError(
                "Output buffer too small for the decoded frame",
                details={"decoded": size, "output": len(output)},
            )
        output[:size] = decoded
        return size

    @staticmethod
    def decode_in_place(buffer: bytearray | memoryview) -> int:
        """Decode the first frame in *buffer*, writing the result over it.

        Returns the decoded length; bytes past it are left as they were.
        """
        return Framing.decode_buf(buffer, buffer)
