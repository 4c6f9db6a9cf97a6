"""Exception hierarchy for contract_transcode.

Every error raised by the parser, the codec and the message resolver derives
from TranscodeError so callers can report any failure uniformly. Errors keep
their structured details as attributes; ``str(error)`` gives the full message,
including suggestions and the location inside a nested value.
"""

from __future__ import annotations

from collections.abc import Sequence


class TranscodeError(RuntimeError):
    """Base exception for all contract_transcode errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.path: list[str] = []

    def at(self, segment: str) -> TranscodeError:
        """Prepend a location segment (outermost last) and return self."""
        self.path.insert(0, segment)
        return self

    def __str__(self) -> str:
        if not self.path:
            return self.message
        return f"{self.message} (at {' -> '.join(self.path)})"


def _did_you_mean(suggestions: Sequence[str]) -> str:
    if not suggestions:
        return ""
    quoted = ", ".join(f"'{s}'" for s in suggestions)
    return f", did you mean {quoted}?"


class ParseError(TranscodeError):
    """Raised when literal text cannot be parsed.

    ``position`` is the byte offset into the input where parsing failed and
    ``expected`` describes what the parser wanted to see there.
    """

    def __init__(self, position: int, expected: str, message: str | None = None) -> None:
        self.position = position
        self.expected = expected
        super().__init__(message or f"Parse error at position {position}: expected {expected}")


class InvalidEscape(ParseError):
    """Raised for a malformed backslash escape inside a string or char literal."""

    def __init__(self, position: int, escape: str) -> None:
        self.escape = escape
        super().__init__(
            position,
            "valid escape sequence",
            f"Invalid escape sequence {escape!r} at position {position}",
        )


class OddLengthHex(ParseError):
    """Raised when a 0x byte literal has an odd number of hex digits."""

    def __init__(self, position: int, digits: int) -> None:
        self.digits = digits
        super().__init__(
            position,
            "even number of hex digits",
            f"Byte literal at position {position} has an odd number of hex digits ({digits})",
        )


class UnknownTypeId(TranscodeError):
    """Raised when a type id is not present in the registry."""

    def __init__(self, type_id: int) -> None:
        self.type_id = type_id
        super().__init__(f"Type id {type_id} not found in registry")


class EncodeError(TranscodeError):
    """Raised when a value cannot be encoded against a type."""


class TypeMismatch(EncodeError):
    """Raised when the shape of a value does not fit the target type."""

    def __init__(self, expected: str, got: str) -> None:
        self.expected = expected
        self.got = got
        super().__init__(f"Expected {expected}, got {got}")


class NumericOverflow(EncodeError):
    """Raised when a number does not fit the target primitive width."""

    def __init__(self, value: int, target: str) -> None:
        self.value = value
        self.target = target
        super().__init__(f"Value {value} out of range for {target}")


class SignMismatch(EncodeError):
    """Raised when a negative number targets an unsigned type."""

    def __init__(self, value: int, target: str) -> None:
        self.value = value
        self.target = target
        super().__init__(f"Negative value {value} cannot be encoded as unsigned {target}")


class ArityMismatch(EncodeError):
    """Raised when the number of supplied items differs from the declared count."""

    def __init__(self, expected: int, got: int, what: str = "values") -> None:
        self.expected = expected
        self.got = got
        super().__init__(f"Expected {expected} {what}, got {got}")


class MissingField(EncodeError):
    """Raised when a declared field has no supplied value."""

    def __init__(self, name: str, suggestions: Sequence[str] = ()) -> None:
        self.name = name
        self.suggestions = list(suggestions)
        super().__init__(f"Missing field '{name}'{_did_you_mean(self.suggestions)}")


class UnknownField(EncodeError):
    """Raised when a supplied field name is not declared by the type."""

    def __init__(self, name: str, suggestions: Sequence[str] = ()) -> None:
        self.name = name
        self.suggestions = list(suggestions)
        super().__init__(f"Unknown field '{name}'{_did_you_mean(self.suggestions)}")


class UnknownVariant(EncodeError):
    """Raised when a variant name is not declared by the type."""

    def __init__(self, name: str, suggestions: Sequence[str] = ()) -> None:
        self.name = name
        self.suggestions = list(suggestions)
        super().__init__(f"Unknown variant '{name}'{_did_you_mean(self.suggestions)}")


class LengthMismatch(EncodeError):
    """Raised when a fixed-length array receives the wrong number of elements."""

    def __init__(self, expected: int, got: int) -> None:
        self.expected = expected
        self.got = got
        super().__init__(f"Expected array of length {expected}, got {got}")


class DecodeError(TranscodeError):
    """Raised when binary data cannot be decoded against a type."""


class UnexpectedEnd(DecodeError):
    """Raised when the input ends before the type is fully decoded."""

    def __init__(self, needed: int, remaining: int) -> None:
        self.needed = needed
        self.remaining = remaining
        super().__init__(f"Unexpected end of input: needed {needed} bytes, {remaining} remaining")


class MessageNotFound(TranscodeError):
    """Raised when no catalog entry matches a name or selector."""

    def __init__(self, name: str, suggestions: Sequence[str] = (), kind: str = "message") -> None:
        self.name = name
        self.kind = kind
        self.suggestions = list(suggestions)
        super().__init__(f"No {kind} named '{name}' found{_did_you_mean(self.suggestions)}")
