"""Selector derivation and hex helpers."""

import hashlib

from ..errors import OddLengthHex, ParseError

SELECTOR_SIZE = 4


def selector_for(label: str) -> bytes:
    """Derive a 4-byte selector: the first bytes of BLAKE2b-256 of the label."""
    return hashlib.blake2b(label.encode("utf-8"), digest_size=32).digest()[:SELECTOR_SIZE]


def to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def from_hex(text: str) -> bytes:
    """Decode hex text with an optional ``0x`` prefix.

    Raises:
        OddLengthHex: if the digit count is odd.
        ParseError: on a character that is not a hex digit.
    """
    offset = 2 if text[:2] in ("0x", "0X") else 0
    digits = text[offset:]
    for i, ch in enumerate(digits):
        if ch not in "0123456789abcdefABCDEF":
            pos = offset + i
            raise ParseError(pos, "hex digit", f"Invalid hex digit {ch!r} at position {pos}")
    if len(digits) % 2:
        raise OddLengthHex(0, len(digits))
    return bytes.fromhex(digits)
