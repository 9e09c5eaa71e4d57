"""ElectricUI binary protocol codec.

Packets, COBS framing and a streaming decoder for talking to
ElectricUI-enabled microcontrollers over a serial link.

Components
----------
1. Message identity and type (:mod:`eui_protocol.core.types`)
2. Packet wire format (:mod:`eui_protocol.wire.packet`)
3. Framing (:mod:`eui_protocol.wire.framing`)
4. Streaming decoder (:mod:`eui_protocol.decoder`)
"""
from __future__ import annotations

__version__ = "0.1.5"

# ---------------------------------------------------------------------------
# Core types, errors, config
# ---------------------------------------------------------------------------
from eui_protocol.core.errors import (
    CobsDecodeError,
    DecoderError,
    ElectricUIError,
    FramingError,
    IncompletePayload,
    InsufficientBufferSize,
    InvalidChecksum,
    InvalidDataLength,
    InvalidMessageId,
    InvalidMessageIdLength,
    MissingChecksum,
    MissingHeader,
    PacketError,
    UnknownMessageType,
)
from eui_protocol.core.types import MessageId, MessageType

# ---------------------------------------------------------------------------
# Wire format
# ---------------------------------------------------------------------------
from eui_protocol.wire import (
    Framing,
    Packet,
    build_packet,
    crc16_ccitt_false,
    encode_packet,
)

# ---------------------------------------------------------------------------
# Streaming decoder
# ---------------------------------------------------------------------------
from eui_protocol.core.config import DecoderConfig
from eui_protocol.decoder import Decoder

__all__ = [
    # Meta
    "__version__",
    # Core types
    "MessageId",
    "MessageType",
    # Config
    "DecoderConfig",
    # Error hierarchy
    "ElectricUIError",
    "PacketError",
    "FramingError",
    "DecoderError",
    "MissingHeader",
    "MissingChecksum",
    "IncompletePayload",
    "InvalidChecksum",
    "InvalidMessageIdLength",
    "InvalidMessageId",
    "InvalidDataLength",
    "UnknownMessageType",
    "CobsDecodeError",
    "InsufficientBufferSize",
    # Wire
    "Framing",
    "Packet",
    "crc16_ccitt_false",
    "build_packet",
    "encode_packet",
    # Decoder
    "Decoder",
]
