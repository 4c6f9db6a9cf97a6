"""SCALE compact integer encoding.

The two low bits of the first byte select the size class:

    0b00  single byte,  values < 2**6
    0b01  two bytes,    values < 2**14
    0b10  four bytes,   values < 2**30
    0b11  big integer,  upper six bits hold (payload length - 4)
"""

from ..errors import DecodeError, NumericOverflow, SignMismatch, UnexpectedEnd

MAX_COMPACT = (1 << (8 * 67)) - 1


def encode_compact(value: int) -> bytes:
    """Encode a non-negative integer in the smallest compact size class."""
    if value < 0:
        raise SignMismatch(value, "compact")
    if value < 1 << 6:
        return bytes([value << 2])
    if value < 1 << 14:
        return ((value << 2) | 0b01).to_bytes(2, "little")
    if value < 1 << 30:
        return ((value << 2) | 0b10).to_bytes(4, "little")
    if value > MAX_COMPACT:
        raise NumericOverflow(value, "compact")

    length = max(4, (value.bit_length() + 7) // 8)
    return bytes([((length - 4) << 2) | 0b11]) + value.to_bytes(length, "little")


def decode_compact(data: bytes | memoryview, offset: int = 0) -> tuple[int, int]:
    """Decode a compact integer.

    Args:
        data: The bytes to decode from.
        offset: Starting offset in data.

    Returns:
        Tuple of (value, bytes_consumed).

    Raises:
        DecodeError: if the data is truncated or not canonically encoded.
    """
    remaining = len(data) - offset
    if remaining < 1:
        raise UnexpectedEnd(1, remaining)

    mode = data[offset] & 0b11
    if mode == 0b00:
        return data[offset] >> 2, 1

    if mode in (0b01, 0b10):
        size = 2 if mode == 0b01 else 4
        if remaining < size:
            raise UnexpectedEnd(size, remaining)
        value = int.from_bytes(bytes(data[offset : offset + size]), "little") >> 2
        lower = 1 << 6 if mode == 0b01 else 1 << 14
        if value < lower:
            raise DecodeError(f"Non-canonical compact encoding of {value}")
        return value, size

    length = (data[offset] >> 2) + 4
    if remaining < 1 + length:
        raise UnexpectedEnd(1 + length, remaining)
    value = int.from_bytes(bytes(data[offset + 1 : offset + 1 + length]), "little")
    if value < 1 << 30 or (length > 4 and value >> (8 * (length - 1)) == 0):
        raise DecodeError(f"Non-canonical compact encoding of {value}")
    return value, 1 + length
