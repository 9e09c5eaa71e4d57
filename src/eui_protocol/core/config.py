"""Streaming decoder configuration.

Defines the validated configuration model used to build a
:class:`~eui_protocol.decoder.Decoder` with its own storage.  Defaults
accept any frame the wire format can describe.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from eui_protocol.wire.framing import Framing
from eui_protocol.wire.packet import Packet

DEFAULT_BUFFER_SIZE: int = Framing.max_encoded_len(Packet.MAX_PACKET_SIZE)
"""Decoder storage large enough for the biggest possible frame."""


class DecoderConfig(BaseModel):
    """Configuration for a streaming decoder.

    A bare ``DecoderConfig()`` gives a decoder that never drops a
    well-formed frame for lack of space and passes unknown message type
    codes through to the caller.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    buffer_size: int = Field(
        default=DEFAULT_BUFFER_SIZE,
        ge=Packet.BASE_PACKET_SIZE,
        description=(
            "Bytes of accumulation storage.  Frames that de-frame to more "
            "than this are dropped with InsufficientBufferSize."
        ),
    )
    strict_types: bool = Field(
        default=False,
        description=(
            "When True, packets whose type code is not a defined "
            "MessageType are rejected with UnknownMessageType and counted "
            "as invalid."
        ),
    )
