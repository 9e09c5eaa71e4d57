"""Shared fixtures for ElectricUI protocol conformance tests.

Provides captured firmware frames, a decoder with full-size storage,
and a deterministic random source for property-style checks.
"""
from __future__ import annotations

import random

import pytest

from eui_protocol.core.config import DecoderConfig
from eui_protocol.decoder import Decoder

# ---------------------------------------------------------------------------
# Frames captured from firmware
# ---------------------------------------------------------------------------
FRAME_I8 = bytes.fromhex("0a 01 14 63 61 62 63 2a b8 a3 00")
FRAME_F32 = bytes.fromhex("0d 04 2c 03 61 62 63 14 ae 29 42 8b 1d 00")


@pytest.fixture()
def frame_i8() -> bytes:
    """INT8 packet, id ``abc``, payload ``0x2A``, acknum 3."""
    return FRAME_I8


@pytest.fixture()
def frame_f32() -> bytes:
    """FLOAT32 packet, id ``abc``, payload ``42.42``."""
    return FRAME_F32


# ---------------------------------------------------------------------------
# Decoder fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def decoder() -> Decoder:
    return Decoder.from_config(DecoderConfig())


@pytest.fixture()
def strict_decoder() -> Decoder:
    return Decoder.from_config(DecoderConfig(strict_types=True))


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(0xE17)
