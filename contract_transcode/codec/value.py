"""Dynamic value model shared by the literal parser, the encoder and the decoder.

A Value is a typed datum whose static type is unknown until it meets a type
from the registry. Containers keep their items in declaration order because
position decides the on-wire order of positional fields.
"""

import re
from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "Bool",
    "Bytes",
    "Char",
    "FieldKey",
    "Int",
    "Literal",
    "Map",
    "Option",
    "Seq",
    "Str",
    "Tuple",
    "UInt",
    "Unit",
    "Value",
    "Variant",
    "kind_name",
    "to_document",
    "to_text",
]

FieldKey = str | int

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_KEYWORDS = frozenset(["true", "false", "None", "Some"])


def _fields(items: Any) -> tuple[tuple[FieldKey, "Value"], ...]:
    if isinstance(items, dict):
        items = items.items()
    return tuple((key, value) for key, value in items)


@dataclass(frozen=True, slots=True)
class Unit:
    pass


@dataclass(frozen=True, slots=True)
class Bool:
    value: bool


@dataclass(frozen=True, slots=True)
class UInt:
    value: int


@dataclass(frozen=True, slots=True)
class Int:
    value: int


@dataclass(frozen=True, slots=True)
class Str:
    value: str


@dataclass(frozen=True, slots=True)
class Bytes:
    value: bytes


@dataclass(frozen=True, slots=True)
class Char:
    value: str


@dataclass(frozen=True, slots=True)
class Literal:
    """Integer text not yet bound to a width, e.g. ``"255"``, ``"-1"`` or ``"7u16"``."""

    text: str


@dataclass(frozen=True, slots=True)
class Seq:
    items: tuple["Value", ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))


@dataclass(frozen=True, slots=True)
class Tuple:
    """Positional values; ``name`` is the decoded type name, ignored by equality."""

    items: tuple["Value", ...] = ()
    name: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))


@dataclass(frozen=True, slots=True)
class Map:
    """Ordered fields keyed by name or position; ``name`` is ignored by equality."""

    fields: tuple[tuple[FieldKey, "Value"], ...] = ()
    name: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", _fields(self.fields))

    @property
    def is_positional(self) -> bool:
        return bool(self.fields) and all(isinstance(k, int) for k, _ in self.fields)

    def get(self, key: FieldKey) -> "Value | None":
        for k, v in self.fields:
            if k == key:
                return v
        return None

    def keys(self) -> list[FieldKey]:
        return [k for k, _ in self.fields]


@dataclass(frozen=True, slots=True)
class Variant:
    name: str
    fields: tuple[tuple[FieldKey, "Value"], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", _fields(self.fields))

    @property
    def is_positional(self) -> bool:
        return all(isinstance(k, int) for k, _ in self.fields)


@dataclass(frozen=True, slots=True)
class Option:
    present: bool
    inner: "Value | None" = None

    def __post_init__(self) -> None:
        if self.present != (self.inner is not None):
            raise ValueError("Option needs an inner value exactly when present")

    @classmethod
    def some(cls, inner: "Value") -> "Option":
        return cls(True, inner)

    @classmethod
    def none(cls) -> "Option":
        return cls(False, None)


Value = (
    Unit | Bool | UInt | Int | Str | Bytes | Char | Literal | Seq | Tuple | Map | Variant | Option
)


def kind_name(value: Value) -> str:
    """Short name of a value's variant, used in mismatch messages."""
    if isinstance(value, Literal):
        return f"integer {value.text}"
    return type(value).__name__.lower()


# Rendering to text


def _escape(text: str, quote: str) -> str:
    out: list[str] = []
    for ch in text:
        if ch == "\\":
            out.append("\\\\")
        elif ch == quote:
            out.append("\\" + quote)
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\t":
            out.append("\\t")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\0":
            out.append("\\0")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{{{ord(ch):x}}}")
        else:
            out.append(ch)
    return "".join(out)


def _render_key(key: FieldKey) -> str:
    if isinstance(key, str) and _IDENT_RE.fullmatch(key) and key not in _KEYWORDS:
        return key
    return '"' + _escape(str(key), '"') + '"'


def _join(parts: list[str], open_: str, close: str, indent: int | None, level: int) -> str:
    if not parts:
        return open_ + close
    if indent is None:
        return open_ + ", ".join(parts) + close
    pad = " " * (indent * (level + 1))
    inner = ",\n".join(pad + p for p in parts)
    return f"{open_}\n{inner}\n{' ' * (indent * level)}{close}"


def _render_fields(
    name: str | None,
    fields: tuple[tuple[FieldKey, Value], ...],
    indent: int | None,
    level: int,
) -> str:
    prefix = name or ""
    if fields and all(isinstance(k, int) for k, _ in fields):
        parts = [_render(v, indent, level + 1) for _, v in fields]
        return prefix + _join(parts, "(", ")", indent, level)
    parts = [f"{_render_key(k)}: {_render(v, indent, level + 1)}" for k, v in fields]
    if indent is None and parts:
        body = "{ " + ", ".join(parts) + " }" if name else "{" + ", ".join(parts) + "}"
    else:
        body = _join(parts, "{", "}", indent, level)
    return f"{prefix} {body}" if name else body


def _render(value: Value, indent: int | None, level: int) -> str:
    match value:
        case Unit():
            return "()"
        case Bool(value=b):
            return "true" if b else "false"
        case UInt(value=n) | Int(value=n):
            return str(n)
        case Literal(text=text):
            return text
        case Str(value=s):
            return '"' + _escape(s, '"') + '"'
        case Bytes(value=b):
            return "0x" + b.hex()
        case Char(value=c):
            return "'" + _escape(c, "'") + "'"
        case Seq(items=items):
            parts = [_render(v, indent, level + 1) for v in items]
            return _join(parts, "[", "]", indent, level)
        case Tuple(items=items, name=name):
            parts = [_render(v, indent, level + 1) for v in items]
            return (name or "") + _join(parts, "(", ")", indent, level)
        case Map(fields=fields, name=name):
            return _render_fields(name, fields, indent, level)
        case Variant(name=name, fields=fields):
            if not fields:
                return name
            return _render_fields(name, fields, indent, level)
        case Option(present=False):
            return "None"
        case Option(inner=inner):
            return f"Some({_render(inner, indent, level)})"
    raise TypeError(f"Not a value: {value!r}")


def to_text(value: Value, indent: int | None = None) -> str:
    """Render a value in the literal notation accepted by the parser.

    With ``indent`` set, containers are spread over multiple lines.
    """
    return _render(value, indent, 0)


# Rendering to a JSON-shaped document


def _fields_document(fields: tuple[tuple[FieldKey, Value], ...]) -> Any:
    if fields and all(isinstance(k, int) for k, _ in fields):
        return [to_document(v) for _, v in fields]
    return {str(k): to_document(v) for k, v in fields}


def to_document(value: Value) -> Any:
    """Convert a value into plain dicts, lists, strings, numbers, booleans and None."""
    match value:
        case Unit():
            return None
        case Bool(value=b):
            return b
        case UInt(value=n) | Int(value=n):
            return n
        case Literal(text=text):
            return text
        case Str(value=s) | Char(value=s):
            return s
        case Bytes(value=b):
            return "0x" + b.hex()
        case Seq(items=items) | Tuple(items=items):
            return [to_document(v) for v in items]
        case Map(fields=fields):
            return _fields_document(fields)
        case Variant(name=name, fields=fields):
            if not fields:
                return name
            if len(fields) == 1 and isinstance(fields[0][0], int):
                return {name: to_document(fields[0][1])}
            return {name: _fields_document(fields)}
        case Option(present=False):
            return None
        case Option(inner=inner):
            return to_document(inner)
    raise TypeError(f"Not a value: {value!r}")
