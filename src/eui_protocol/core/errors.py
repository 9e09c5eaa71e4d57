"""ElectricUI binary protocol error hierarchy.

Every failure the codec can report is a concrete exception class with a
stable error code.  None of them is fatal: the offending buffer is left
untouched and the decoder has already resynchronised by the time one is
raised.

Hierarchy
---------
::

    ElectricUIError
    +-- PacketError     (EUI-E1xx)
    +-- FramingError    (EUI-E2xx)
    +-- DecoderError    (EUI-E3xx)

Usage
-----
Raise concrete subclasses directly::

    raise InvalidChecksum(details={"provided": 0x1234, "computed": 0xA3B8})

Catch by category::

    try:
        packet = Packet.new(buf)
    except PacketError:
        # handles MissingHeader, IncompletePayload, InvalidChecksum, etc.
        ...
"""
from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class ElectricUIError(Exception):
    """Base exception for all codec errors.

    Attributes
    ----------
    code : str
        Error code, e.g. ``"EUI-E103"``.
    message : str
        Human-readable description.
    details : dict[str, Any]
        Machine-readable context specific to the error instance.
    resolution : str
        Suggested action for the caller.
    """

    code: str = "EUI-E000"
    message: str = "Unknown ElectricUI protocol error"
    resolution: str = ""

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        resolution: str | None = None,
    ) -> None:
        self.details: dict[str, Any] = details or {}
        if message is not None:
            self.message = message
        if resolution is not None:
            self.resolution = resolution
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the error for structured logging."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["detail"] = self.details
        if self.resolution:
            payload["resolution"] = self.resolution
        return {"error": payload}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# ===================================================================
# Category base classes
# ===================================================================

class PacketError(ElectricUIError):
    """EUI-E1xx -- Packet structure and integrity errors."""

    code = "EUI-E1XX"


class FramingError(ElectricUIError):
    """EUI-E2xx -- Frame encoding errors."""

    code = "EUI-E2XX"


class DecoderError(ElectricUIError):
    """EUI-E3xx -- Streaming decoder errors."""

    code = "EUI-E3XX"


# ===================================================================
# EUI-E1xx  Packet Errors
# ===================================================================

class MissingHeader(PacketError):
    """EUI-E100 -- Not enough bytes for a valid header."""

    code = "EUI-E100"
    message = "Not enough bytes for a valid header"


class MissingChecksum(PacketError):
    """EUI-E101 -- Not enough bytes for a valid header and checksum."""

    code = "EUI-E101"
    message = "Not enough bytes for a valid header and checksum"


class IncompletePayload(PacketError):
    """EUI-E102 -- The buffer cannot hold the message ID and payload."""

    code = "EUI-E102"
    message = "Not enough bytes for a valid payload according to the data length"
    resolution = "Supply the complete frame, including the trailing checksum."


class InvalidChecksum(PacketError):
    """EUI-E103 -- Stored checksum does not match the computed CRC."""

    code = "EUI-E103"
    message = "Invalid checksum"
    resolution = "The frame was corrupted in transit; wait for the next one."


class InvalidMessageIdLength(PacketError):
    """EUI-E104 -- Message ID length is zero or exceeds 15 bytes."""

    code = "EUI-E104"
    message = "Invalid message ID length"


class InvalidMessageId(PacketError):
    """EUI-E105 -- Message ID bytes do not form a valid identifier."""

    code = "EUI-E105"
    message = "Invalid message ID"
    resolution = "Use 1 to 15 bytes, and never a lone null byte."


class InvalidDataLength(PacketError):
    """EUI-E106 -- Payload length does not fit the 10-bit field."""

    code = "EUI-E106"
    message = "Invalid data length"


class UnknownMessageType(PacketError):
    """EUI-E107 -- The 4-bit type code is not a defined message type."""

    code = "EUI-E107"
    message = "Unknown message type"

    def __init__(self, code_value: int, **kwargs: Any) -> None:
        self.code_value = code_value
        kwargs.setdefault("details", {"type": code_value})
        super().__init__(f"Unknown message type ({code_value})", **kwargs)


# ===================================================================
# EUI-E2xx  Framing Errors
# ===================================================================

class CobsDecodeError(FramingError):
    """EUI-E200 -- Byte sequence is not a valid COBS encoding."""

    code = "EUI-E200"
    message = "Invalid COBS encoding"


# ===================================================================
# EUI-E3xx  Decoder Errors
# ===================================================================

class InsufficientBufferSize(DecoderError):
    """EUI-E300 -- Decoder storage is too small for the arriving frame."""

    code = "EUI-E300"
    message = "Not enough bytes in the decoder buffer to store the frame"
    resolution = (
        "Size the decoder buffer with Framing.max_encoded_len("
        "Packet.MAX_PACKET_SIZE)."
    )


# ---------------------------------------------------------------------------
# Lookup helper
# ---------------------------------------------------------------------------

_CODE_MAP: dict[str, type[ElectricUIError]] = {
    cls.code: cls
    for cls in [
        # E1xx
        MissingHeader,
        MissingChecksum,
        IncompletePayload,
        InvalidChecksum,
        InvalidMessageIdLength,
        InvalidMessageId,
        InvalidDataLength,
        # E2xx
        CobsDecodeError,
        # E3xx
        InsufficientBufferSize,
    ]
}


def error_from_code(code: str, message: str | None = None) -> ElectricUIError:
    """Instantiate the correct exception class for an error code.

    ``UnknownMessageType`` is not in the table because it needs the
    offending type code; construct it directly.

    Raises
    ------
    KeyError
        If *code* is not a recognised error code.
    """
    cls = _CODE_MAP[code]
    return cls(message) if message else cls()
