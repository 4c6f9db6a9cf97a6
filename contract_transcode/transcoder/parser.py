"""Literal notation parser using Lark.

Turns argument text such as ``{to: 0x01, amount: 100}`` into a Value tree.
The parser never looks at the type registry: integers without a known width
stay unresolved Literal values until the encoder meets their target type.
"""

import os
import re
from typing import Any

from lark import Lark, Token
from lark.exceptions import UnexpectedInput, VisitError
from lark.lexer import PatternStr
from lark.visitors import Transformer_NonRecursive

from ..codec.value import (
    Bool,
    Bytes,
    Char,
    Literal,
    Map,
    Option,
    Seq,
    Str,
    Tuple,
    Unit,
    Value,
    Variant,
)
from ..errors import InvalidEscape, OddLengthHex, ParseError, TranscodeError

_g_parser: Lark | None = None

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
    "\\": "\\",
    '"': '"',
    "'": "'",
}
_UNICODE_ESCAPE = re.compile(r"\\u\{([0-9a-fA-F]{1,6})\}")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

# Readable names for the regexp terminals in literal.lark
_TERMINAL_NAMES = {
    "IDENT": "identifier",
    "INT": "integer",
    "HEX": "byte literal",
    "STRING": "string",
    "CHAR": "char",
    "$END": "end of input",
}


def byte_offset(text: str, pos: int) -> int:
    """Convert a character index into text to a UTF-8 byte offset."""
    return len(text[:pos].encode("utf-8", "surrogatepass"))


def unescape(body: str, offset: int = 0) -> str:
    """Resolve backslash escapes in the body of a quoted literal.

    Args:
        body: Text between the quotes.
        offset: Byte offset of ``body`` in the parsed input, for error reporting.

    Raises:
        InvalidEscape: on an unknown or malformed escape.
    """
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue

        nxt = body[i + 1 : i + 2]
        if nxt and nxt in _ESCAPES:
            out.append(_ESCAPES[nxt])
            i += 2
            continue

        if nxt == "u":
            m = _UNICODE_ESCAPE.match(body, i)
            if m:
                code = int(m.group(1), 16)
                if code <= 0x10FFFF and not 0xD800 <= code <= 0xDFFF:
                    out.append(chr(code))
                    i = m.end()
                    continue
            escape = m.group(0) if m else body[i : body.find("}", i) + 1 or i + 2]
            raise InvalidEscape(offset + byte_offset(body, i), escape)

        raise InvalidEscape(offset + byte_offset(body, i), body[i : i + 2])
    return "".join(out)


class TreeTransformer(Transformer_NonRecursive):
    """Transform the parse tree into values.

    Works without recursion so nesting depth is bounded by memory only.
    """

    def __init__(self, text: str) -> None:
        super().__init__()
        self._text = text

    def _offset(self, pos: int) -> int:
        return byte_offset(self._text, pos)

    def integer(self, args: list[Any]) -> Literal:
        return Literal(str(args[0]))

    def bytes(self, args: list[Any]) -> Bytes:
        tok: Token = args[0]
        digits = str(tok)[2:]
        for i, ch in enumerate(digits):
            if ch not in _HEX_DIGITS:
                pos = self._offset(tok.start_pos + 2 + i)
                raise ParseError(pos, "hex digit", f"Invalid hex digit {ch!r} at position {pos}")
        if len(digits) % 2:
            raise OddLengthHex(self._offset(tok.start_pos), len(digits))
        return Bytes(bytes.fromhex(digits))

    def string(self, args: list[Any]) -> Str:
        tok: Token = args[0]
        return Str(unescape(str(tok)[1:-1], self._offset(tok.start_pos + 1)))

    def char(self, args: list[Any]) -> Char:
        tok: Token = args[0]
        text = unescape(str(tok)[1:-1], self._offset(tok.start_pos + 1))
        if len(text) != 1:
            raise ParseError(self._offset(tok.start_pos), "a single character between quotes")
        return Char(text)

    def true(self, _args: list[Any]) -> Bool:
        return Bool(True)

    def false(self, _args: list[Any]) -> Bool:
        return Bool(False)

    def none(self, _args: list[Any]) -> Option:
        return Option.none()

    def some(self, args: list[Any]) -> Option:
        return Option.some(args[0])

    def field(self, args: list[Any]) -> tuple[str, Value]:
        return (args[0], args[1])

    def ident_key(self, args: list[Any]) -> str:
        return str(args[0])

    def string_key(self, args: list[Any]) -> str:
        tok: Token = args[0]
        return unescape(str(tok)[1:-1], self._offset(tok.start_pos + 1))

    def map(self, args: list[Any]) -> Map:
        return Map(args)

    def seq(self, args: list[Any]) -> Seq:
        return Seq(args)

    def tuple(self, args: list[Any]) -> Tuple | Unit:
        if not args:
            return Unit()
        return Tuple(args)

    def variant(self, args: list[Any]) -> Variant:
        name = str(args[0])
        payload = args[1] if len(args) > 1 else None
        match payload:
            case Tuple(items=items):
                return Variant(name, tuple(enumerate(items)))
            case Map(fields=fields):
                return Variant(name, fields)
        return Variant(name)


def _get_parser() -> Lark:
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/literal.lark", encoding="utf-8") as f:
            grammar = f.read()
        _g_parser = Lark(grammar, parser="lalr")
    return _g_parser


def _describe_expected(parser: Lark, names: set[str]) -> str:
    described: set[str] = set()
    for name in names:
        if name in _TERMINAL_NAMES:
            described.add(_TERMINAL_NAMES[name])
            continue
        try:
            pattern = parser.get_terminal(name).pattern
        except KeyError:
            described.add(name.lower())
            continue
        if isinstance(pattern, PatternStr):
            described.add(f"'{pattern.value}'")
        else:
            described.add(name.lower())
    return " or ".join(sorted(described)) or "valid literal"


def _parse_error(parser: Lark, text: str, exc: UnexpectedInput) -> ParseError:
    expected = getattr(exc, "expected", None) or getattr(exc, "allowed", None) or set()
    token = getattr(exc, "token", None)
    position = exc.pos_in_stream
    if position is None or position < 0 or (token is not None and token.type == "$END"):
        position = len(text)
    return ParseError(byte_offset(text, position), _describe_expected(parser, set(expected)))


def parse(text: str) -> Value:
    """Parse literal text into a value.

    Raises:
        ParseError: with the position of the failure and what was expected
            there. InvalidEscape and OddLengthHex are raised for malformed
            strings and byte literals.
    """
    parser = _get_parser()
    try:
        tree = parser.parse(text)
    except UnexpectedInput as exc:
        raise _parse_error(parser, text, exc) from None

    try:
        return TreeTransformer(text).transform(tree)
    except VisitError as exc:
        if isinstance(exc.orig_exc, TranscodeError):
            raise exc.orig_exc from None
        raise
