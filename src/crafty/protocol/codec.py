"""Wire codecs for Crafty characteristic values."""

from __future__ import annotations

import struct

from ..exceptions import MalformedPayloadError, ValidationError

U16_MAX = 0xFFFF


def decode_fixed_point_u16(data: bytes) -> int:
    """Decode a 2-byte little-endian unsigned value.

    Temperatures come back in tenths of a degree Celsius, battery and LED
    brightness in whole percent. Scaling is left to the caller.

    Args:
        data: Raw characteristic payload

    Returns:
        Unsigned integer value

    Raises:
        MalformedPayloadError: If the payload is not exactly 2 bytes
    """
    if len(data) != 2:
        raise MalformedPayloadError(
            f"Expected 2 bytes for uint16 value, got {len(data)}: {bytes(data).hex()}"
        )
    return struct.unpack("<H", data)[0]


def encode_fixed_point_u16(value: int) -> bytes:
    """Encode an unsigned value as 2 bytes little-endian.

    Raises:
        ValidationError: If value does not fit in 16 bits unsigned
    """
    if not 0 <= value <= U16_MAX:
        raise ValidationError(f"Value {value} does not fit in uint16 (0-{U16_MAX})")
    return struct.pack("<H", value)


def decode_text(data: bytes) -> str:
    """Decode a NUL-terminated ASCII buffer.

    Returns everything before the first zero byte, or the whole buffer when
    there is none.
    """
    raw = bytes(data)
    end = raw.find(b"\x00")
    if end != -1:
        raw = raw[:end]
    return raw.decode("ascii", errors="replace")


def decode_flag(data: bytes) -> bool:
    """Decode a boolean flag from its first byte."""
    if len(data) < 1:
        raise MalformedPayloadError("Expected at least 1 byte for flag value, got 0")
    return data[0] != 0


def encode_flag(on: bool) -> bytes:
    return b"\x01" if on else b"\x00"
