"""Wire format subpackage -- packet layout, framing, and construction helpers.

This subpackage provides:

* **Packet** -- zero-copy structural view over a de-framed packet buffer
  (:mod:`~eui_protocol.wire.packet`).
* **Framing** -- COBS encode/decode with a ``0x00`` frame delimiter
  (:mod:`~eui_protocol.wire.framing`).
* **Builders** -- one-call construction of checksummed, framed packets
  (:mod:`~eui_protocol.wire.builder`).
"""
from __future__ import annotations

# -- Framing ----------------------------------------------------------------
from eui_protocol.wire.framing import Framing

# -- Packet -----------------------------------------------------------------
from eui_protocol.wire.packet import Packet, crc16_ccitt_false

# -- Builders ---------------------------------------------------------------
from eui_protocol.wire.builder import build_packet, encode_packet

__all__ = [
    # Framing
    "Framing",
    # Packet
    "Packet",
    "crc16_ccitt_false",
    # Builders
    "build_packet",
    "encode_packet",
]
