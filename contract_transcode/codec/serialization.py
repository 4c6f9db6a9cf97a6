"""Registry driven SCALE encoding and decoding of dynamic values.

The encoder walks a Value and a type id in lock-step, the decoder walks a type
id over a byte cursor. Both dispatch on the type shape and recurse into the
ids it references.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from ..errors import (
    ArityMismatch,
    DecodeError,
    LengthMismatch,
    MissingField,
    NumericOverflow,
    SignMismatch,
    TranscodeError,
    TypeMismatch,
    UnexpectedEnd,
    UnknownField,
    UnknownVariant,
)
from ..suggest import suggest
from .compact import decode_compact, encode_compact
from .types import (
    ArrayDef,
    BitOrder,
    BitSequenceDef,
    CompactDef,
    CompositeDef,
    Field,
    PrimitiveDef,
    PrimitiveKind,
    RegisteredType,
    SequenceDef,
    TupleDef,
    TypeRegistry,
    VariantDef,
    is_option,
)
from .value import (
    Bool,
    Bytes,
    Char,
    FieldKey,
    Int,
    Literal,
    Map,
    Option,
    Seq,
    Str,
    Tuple,
    UInt,
    Unit,
    Value,
    Variant,
    kind_name,
)

log = logging.getLogger(__name__)

BIT_STORE_KINDS = (PrimitiveKind.U8, PrimitiveKind.U16, PrimitiveKind.U32, PrimitiveKind.U64)
# Upper bound on decoded sequences of zero-sized elements
MAX_ZERO_SIZED_COUNT = 1 << 16


@contextmanager
def _at(segment: str) -> Iterator[None]:
    """Record where a nested error happened."""
    try:
        yield
    except TranscodeError as exc:
        exc.at(segment)
        raise


def _segment(key: FieldKey) -> str:
    return f"field '{key}'" if isinstance(key, str) else f"[{key}]"


def parse_integer_literal(text: str) -> tuple[int, str | None]:
    """Split integer literal text into its value and optional width suffix.

    ``"1_000u32"`` gives ``(1000, "u32")``; ``"-5"`` gives ``(-5, None)``.
    """
    body = text.replace("_", "")
    suffix = None
    for marker in ("u", "i"):
        pos = body.find(marker)
        if pos > 0:
            body, suffix = body[:pos], body[pos:]
            break
    try:
        return int(body, 10), suffix
    except ValueError:
        raise TypeMismatch("integer", f"'{text}'") from None


def _check_range(n: int, kind: PrimitiveKind) -> int:
    if n < 0 and not kind.signed:
        raise SignMismatch(n, kind.value)
    if n < kind.min_value or n > kind.max_value:
        raise NumericOverflow(n, kind.value)
    return n


def resolve_integer(value: Value, kind: PrimitiveKind) -> int:
    """Bind a numeric value to an integer primitive, checking width and sign."""
    match value:
        case UInt(value=n) | Int(value=n):
            return _check_range(n, kind)
        case Literal(text=text):
            n, suffix = parse_integer_literal(text)
            if suffix is not None and suffix != kind.value:
                raise TypeMismatch(kind.value, f"{suffix} literal {text}")
            return _check_range(n, kind)
    raise TypeMismatch(kind.value, kind_name(value))


def _supplied_fields(value: Value) -> tuple[tuple[FieldKey, Value], ...] | None:
    """Field pairs carried by a struct-like value, or None if it carries none."""
    match value:
        case Map(fields=fields) | Variant(fields=fields):
            return fields
        case Tuple(items=items) | Seq(items=items):
            return tuple(enumerate(items))
        case Unit():
            return ()
    return None


@dataclass(frozen=True, slots=True)
class Decoded:
    """Result of a top-level decode.

    ``trailing`` holds the bytes left after the value; callers decide whether
    that is an error.
    """

    value: Value
    trailing: bytes = b""

    @property
    def has_trailing(self) -> bool:
        return bool(self.trailing)


class ByteCursor:
    """Read position over an immutable byte buffer."""

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = memoryview(bytes(data))
        self.position = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self.position

    def read(self, size: int) -> bytes:
        if size > self.remaining:
            raise UnexpectedEnd(size, self.remaining)
        chunk = bytes(self._data[self.position : self.position + size])
        self.position += size
        return chunk

    def read_byte(self) -> int:
        return self.read(1)[0]

    def read_compact(self) -> int:
        value, consumed = decode_compact(self._data, self.position)
        self.position += consumed
        return value

    def rest(self) -> bytes:
        """Consume and return everything left."""
        return self.read(self.remaining)


class Encoder:
    """Encode dynamic values against registry types."""

    def __init__(self, registry: TypeRegistry, max_suggestions: int = 3) -> None:
        self.registry = registry
        self.max_suggestions = max_suggestions

    def encode(self, value: Value, type_id: int) -> bytes:
        out = bytearray()
        self.encode_into(value, type_id, out)
        return bytes(out)

    def encode_into(self, value: Value, type_id: int, out: bytearray) -> None:
        ty = self.registry.resolve(type_id)
        match ty.definition:
            case PrimitiveDef(kind=kind):
                self._encode_primitive(value, kind, out)
            case CompactDef(type_id=inner):
                self._encode_compact(value, inner, out)
            case CompositeDef(fields=fields):
                self._encode_composite(value, fields, ty, out)
            case VariantDef():
                self._encode_variant(value, ty.definition, ty, out)
            case TupleDef(type_ids=ids):
                self._encode_tuple(value, ids, out)
            case ArrayDef(type_id=elem, length=length):
                self._encode_array(value, elem, length, out)
            case SequenceDef(type_id=elem):
                self._encode_sequence(value, elem, out)
            case BitSequenceDef(store_type_id=store, order=order):
                self._encode_bits(value, store, order, out)

    def _is_u8(self, type_id: int) -> bool:
        definition = self.registry.definition(type_id)
        return isinstance(definition, PrimitiveDef) and definition.kind == PrimitiveKind.U8

    def _encode_primitive(self, value: Value, kind: PrimitiveKind, out: bytearray) -> None:
        if kind.is_integer:
            n = resolve_integer(value, kind)
            out.extend(n.to_bytes(kind.size, "little", signed=kind.signed))
            return

        match kind, value:
            case PrimitiveKind.BOOL, Bool(value=b):
                out.append(1 if b else 0)
            case PrimitiveKind.CHAR, (Char(value=c) | Str(value=c)) if len(c) == 1:
                if 0xD800 <= ord(c) <= 0xDFFF:
                    raise TypeMismatch("char", f"surrogate code point 0x{ord(c):x}")
                out.extend(ord(c).to_bytes(4, "little"))
            case PrimitiveKind.STR, Str(value=s):
                try:
                    data = s.encode("utf-8")
                except UnicodeEncodeError as exc:
                    code = ord(s[exc.start])
                    raise TypeMismatch("str", f"text with surrogate 0x{code:x}") from None
                out.extend(encode_compact(len(data)))
                out.extend(data)
            case _:
                raise TypeMismatch(kind.value, kind_name(value))

    def _encode_compact(self, value: Value, inner_id: int, out: bytearray) -> None:
        inner = self.registry.resolve(inner_id)
        match inner.definition:
            case PrimitiveDef(kind=kind) if kind.is_integer and not kind.signed:
                out.extend(encode_compact(resolve_integer(value, kind)))
            case CompositeDef(fields=(only,)):
                if isinstance(value, (Map, Variant, Tuple)):
                    fields = _supplied_fields(value) or ()
                    if len(fields) != 1:
                        raise ArityMismatch(1, len(fields), "fields")
                    key, value = fields[0]
                    if isinstance(key, str) and key != only.name:
                        if only.name is None:
                            raise TypeMismatch("positional fields", "named fields")
                        raise UnknownField(key, suggest(key, [only.name], self.max_suggestions))
                self._encode_compact(value, only.type_id, out)
            case TupleDef(type_ids=()) | CompositeDef(fields=()):
                out.extend(encode_compact(0))
            case _:
                raise TypeMismatch("unsigned integer type inside compact", inner.display_name())

    def _encode_composite(
        self, value: Value, fields: tuple[Field, ...], ty: RegisteredType, out: bytearray
    ) -> None:
        if not fields:
            supplied = _supplied_fields(value)
            if supplied is None or supplied:
                raise TypeMismatch(f"unit struct {ty.display_name()}", kind_name(value))
            return

        transparent = len(fields) == 1 and (
            not isinstance(value, (Map, Variant, Tuple, Unit))
            or (isinstance(value, Variant) and value.name != ty.name)
        )
        if transparent:
            with _at(_segment(fields[0].name or 0)):
                self.encode_into(value, fields[0].type_id, out)
            return

        supplied = _supplied_fields(value)
        if supplied is None:
            raise TypeMismatch(ty.display_name(), kind_name(value))
        self._encode_fields(fields, supplied, out)

    def _encode_fields(
        self,
        declared: tuple[Field, ...],
        supplied: tuple[tuple[FieldKey, Value], ...],
        out: bytearray,
    ) -> None:
        """Encode supplied field values in declared order."""
        positional = all(isinstance(k, int) for k, _ in supplied)
        named = bool(declared) and all(f.name is not None for f in declared)

        if positional:
            if len(supplied) != len(declared):
                raise ArityMismatch(len(declared), len(supplied), "fields")
            for i, (decl, (_, item)) in enumerate(zip(declared, supplied)):
                with _at(_segment(decl.name or i)):
                    self.encode_into(item, decl.type_id, out)
            return

        if not named:
            raise TypeMismatch("positional fields", "named fields")

        by_name: dict[str, Value] = {}
        for key, item in supplied:
            if str(key) in by_name:
                raise TypeMismatch("unique field names", f"duplicate field '{key}'")
            by_name[str(key)] = item

        declared_names = [f.name for f in declared if f.name is not None]
        unused = [n for n in declared_names if n not in by_name]
        for key in by_name:
            if key not in declared_names:
                raise UnknownField(key, suggest(key, unused, self.max_suggestions))

        for decl in declared:
            assert decl.name is not None
            if decl.name not in by_name:
                others = [n for n in unused if n != decl.name]
                raise MissingField(decl.name, suggest(decl.name, others, self.max_suggestions))
            with _at(_segment(decl.name)):
                self.encode_into(by_name[decl.name], decl.type_id, out)

    def _encode_variant(
        self, value: Value, definition: VariantDef, ty: RegisteredType, out: bytearray
    ) -> None:
        match value:
            case Option(present=False):
                name, fields = "None", ()
            case Option(inner=inner) if inner is not None:
                name, fields = "Some", ((0, inner),)
            case Variant(name=name, fields=fields):
                pass
            case Map(name=str() as name, fields=fields):
                pass
            case Tuple(name=str() as name, items=items):
                fields = tuple(enumerate(items))
            case _:
                raise TypeMismatch(f"variant of {ty.display_name()}", kind_name(value))

        case_ = definition.by_name(name)
        if case_ is None:
            names = [v.name for v in definition.variants]
            raise UnknownVariant(name, suggest(name, names, self.max_suggestions))

        out.append(case_.index)
        with _at(f"variant '{name}'"):
            self._encode_fields(case_.fields, fields, out)

    def _encode_items(self, items: tuple[Value, ...], type_ids: list[int], out: bytearray) -> None:
        for i, (item, type_id) in enumerate(zip(items, type_ids)):
            with _at(f"[{i}]"):
                self.encode_into(item, type_id, out)

    def _encode_tuple(self, value: Value, type_ids: tuple[int, ...], out: bytearray) -> None:
        match value:
            case Tuple(items=items) | Seq(items=items):
                pass
            case Unit():
                items = ()
            case Map() if value.is_positional or not value.fields:
                items = tuple(v for _, v in value.fields)
            case _:
                raise TypeMismatch(f"tuple of {len(type_ids)}", kind_name(value))

        if len(items) != len(type_ids):
            raise ArityMismatch(len(type_ids), len(items), "tuple elements")
        self._encode_items(items, list(type_ids), out)

    def _sequence_items(self, value: Value, elem: int) -> tuple[Value, ...] | bytes:
        match value:
            case Bytes(value=data) if self._is_u8(elem):
                return data
            case Seq(items=items) | Tuple(items=items):
                return items
        raise TypeMismatch("sequence", kind_name(value))

    def _encode_array(self, value: Value, elem: int, length: int, out: bytearray) -> None:
        items = self._sequence_items(value, elem)
        if len(items) != length:
            raise LengthMismatch(length, len(items))
        if isinstance(items, bytes):
            out.extend(items)
        else:
            self._encode_items(items, [elem] * length, out)

    def _encode_sequence(self, value: Value, elem: int, out: bytearray) -> None:
        items = self._sequence_items(value, elem)
        out.extend(encode_compact(len(items)))
        if isinstance(items, bytes):
            out.extend(items)
        else:
            self._encode_items(items, [elem] * len(items), out)

    def _store_kind(self, store: int) -> PrimitiveKind:
        definition = self.registry.definition(store)
        if not isinstance(definition, PrimitiveDef) or definition.kind not in BIT_STORE_KINDS:
            raise TypeMismatch(
                "u8, u16, u32 or u64 bit store", self.registry.resolve(store).display_name()
            )
        return definition.kind

    def _encode_bits(self, value: Value, store: int, order: BitOrder, out: bytearray) -> None:
        kind = self._store_kind(store)
        if not isinstance(value, Seq):
            raise TypeMismatch("sequence of bools", kind_name(value))

        bits: list[bool] = []
        for i, item in enumerate(value.items):
            if not isinstance(item, Bool):
                raise TypeMismatch("bool", kind_name(item)).at(f"[{i}]")
            bits.append(item.value)

        width = kind.bits
        words = [0] * ((len(bits) + width - 1) // width)
        for i, bit in enumerate(bits):
            if bit:
                pos = i % width if order == BitOrder.LSB0 else width - 1 - i % width
                words[i // width] |= 1 << pos

        out.extend(encode_compact(len(bits)))
        for word in words:
            out.extend(word.to_bytes(kind.size, "little"))


class Decoder:
    """Decode bytes into dynamic values against registry types."""

    def __init__(self, registry: TypeRegistry) -> None:
        self.registry = registry

    def decode(self, data: bytes, type_id: int) -> Decoded:
        cursor = ByteCursor(data)
        value = self.decode_from(cursor, type_id)
        trailing = cursor.rest()
        if trailing:
            log.debug("%d trailing bytes after decoding type %d", len(trailing), type_id)
        return Decoded(value, trailing)

    def decode_from(self, cursor: ByteCursor, type_id: int) -> Value:
        ty = self.registry.resolve(type_id)
        match ty.definition:
            case PrimitiveDef(kind=kind):
                return self._decode_primitive(cursor, kind)
            case CompactDef(type_id=inner):
                return self._decode_compact(cursor, inner)
            case CompositeDef(fields=fields):
                return self._decode_composite(cursor, fields, ty)
            case VariantDef():
                return self._decode_variant(cursor, ty.definition, ty)
            case TupleDef(type_ids=ids):
                if not ids:
                    return Unit()
                return Tuple(self._decode_items(cursor, list(ids)))
            case ArrayDef(type_id=elem, length=length):
                return self._decode_elements(cursor, elem, length)
            case SequenceDef(type_id=elem):
                count = cursor.read_compact()
                if self._zero_sized(elem, set()):
                    return self._decode_zero_sized(cursor, elem, count)
                if count > cursor.remaining:
                    raise UnexpectedEnd(count, cursor.remaining)
                return self._decode_elements(cursor, elem, count)
            case BitSequenceDef(store_type_id=store, order=order):
                return self._decode_bits(cursor, store, order)
        raise DecodeError(f"Unsupported type definition {ty.definition!r}")

    def _decode_primitive(self, cursor: ByteCursor, kind: PrimitiveKind) -> Value:
        if kind.is_integer:
            n = int.from_bytes(cursor.read(kind.size), "little", signed=kind.signed)
            return Int(n) if kind.signed else UInt(n)

        if kind == PrimitiveKind.BOOL:
            byte = cursor.read_byte()
            if byte > 1:
                raise DecodeError(f"Invalid bool byte 0x{byte:02x}")
            return Bool(byte == 1)

        if kind == PrimitiveKind.CHAR:
            code = int.from_bytes(cursor.read(4), "little")
            if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
                raise DecodeError(f"Invalid char code point 0x{code:x}")
            return Char(chr(code))

        length = cursor.read_compact()
        try:
            return Str(cursor.read(length).decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Invalid UTF-8 in string: {exc.reason}") from None

    def _decode_compact(self, cursor: ByteCursor, inner_id: int) -> Value:
        inner = self.registry.resolve(inner_id)
        match inner.definition:
            case PrimitiveDef(kind=kind) if kind.is_integer and not kind.signed:
                n = cursor.read_compact()
                if n > kind.max_value:
                    raise DecodeError(f"Compact value {n} out of range for {kind.value}")
                return UInt(n)
            case CompositeDef(fields=(only,)):
                value = self._decode_compact(cursor, only.type_id)
                if only.name is not None:
                    return Map(((only.name, value),), name=inner.name)
                return Tuple((value,), name=inner.name)
            case TupleDef(type_ids=()) | CompositeDef(fields=()):
                cursor.read_compact()
                return Unit()
        raise DecodeError(f"Unsupported compact inner type {inner.display_name()}")

    def _decode_composite(
        self, cursor: ByteCursor, fields: tuple[Field, ...], ty: RegisteredType
    ) -> Value:
        if not fields:
            return Unit()
        values = self._decode_fields(cursor, fields)
        if all(isinstance(k, int) for k, _ in values):
            return Tuple([v for _, v in values], name=ty.name)
        return Map(values, name=ty.name)

    def _decode_fields(
        self, cursor: ByteCursor, fields: tuple[Field, ...]
    ) -> list[tuple[FieldKey, Value]]:
        values: list[tuple[FieldKey, Value]] = []
        for i, f in enumerate(fields):
            key: FieldKey = f.name if f.name is not None else i
            with _at(_segment(key)):
                values.append((key, self.decode_from(cursor, f.type_id)))
        return values

    def _decode_variant(
        self, cursor: ByteCursor, definition: VariantDef, ty: RegisteredType
    ) -> Value:
        index = cursor.read_byte()
        case_ = definition.by_index(index)
        if case_ is None:
            raise DecodeError(f"Variant index {index} not found in {ty.display_name()}")

        with _at(f"variant '{case_.name}'"):
            fields = self._decode_fields(cursor, case_.fields)
        if is_option(definition):
            return Option(True, fields[0][1]) if fields else Option(False)
        return Variant(case_.name, fields)

    def _decode_items(self, cursor: ByteCursor, type_ids: list[int]) -> list[Value]:
        items: list[Value] = []
        for i, type_id in enumerate(type_ids):
            with _at(f"[{i}]"):
                items.append(self.decode_from(cursor, type_id))
        return items

    def _decode_elements(self, cursor: ByteCursor, elem: int, count: int) -> Value:
        definition = self.registry.definition(elem)
        if isinstance(definition, PrimitiveDef) and definition.kind == PrimitiveKind.U8:
            return Bytes(cursor.read(count))
        return Seq(self._decode_items(cursor, [elem] * count))

    def _decode_zero_sized(self, cursor: ByteCursor, elem: int, count: int) -> Value:
        """Decode a sequence whose elements occupy no bytes on the wire."""
        if count > MAX_ZERO_SIZED_COUNT:
            raise DecodeError(
                f"Sequence of {count} zero-sized elements exceeds limit of {MAX_ZERO_SIZED_COUNT}"
            )
        if not count:
            return Seq()
        with _at("[0]"):
            item = self.decode_from(cursor, elem)
        return Seq((item,) * count)

    def _zero_sized(self, type_id: int, seen: set[int]) -> bool:
        """Check if a type always encodes to zero bytes."""
        if type_id in seen:
            return False
        seen.add(type_id)
        match self.registry.definition(type_id):
            case TupleDef(type_ids=ids):
                return all(self._zero_sized(t, seen) for t in ids)
            case CompositeDef(fields=fields):
                return all(self._zero_sized(f.type_id, seen) for f in fields)
            case ArrayDef(type_id=elem, length=length):
                return length == 0 or self._zero_sized(elem, seen)
        return False

    def _decode_bits(self, cursor: ByteCursor, store: int, order: BitOrder) -> Value:
        definition = self.registry.definition(store)
        if not isinstance(definition, PrimitiveDef) or definition.kind not in BIT_STORE_KINDS:
            raise DecodeError(f"Unsupported bit store type {definition!r}")
        kind = definition.kind
        width = kind.bits

        count = cursor.read_compact()
        n_words = (count + width - 1) // width
        if n_words * kind.size > cursor.remaining:
            raise UnexpectedEnd(n_words * kind.size, cursor.remaining)

        bits: list[Value] = []
        for _ in range(n_words):
            word = int.from_bytes(cursor.read(kind.size), "little")
            for j in range(min(width, count - len(bits))):
                pos = j if order == BitOrder.LSB0 else width - 1 - j
                bits.append(Bool(bool(word >> pos & 1)))
        return Seq(bits)


def encode(registry: TypeRegistry, value: Value, type_id: int) -> bytes:
    """Encode a value against a registry type id."""
    return Encoder(registry).encode(value, type_id)


def decode(registry: TypeRegistry, data: bytes, type_id: int) -> Decoded:
    """Decode a value of the given type id, returning it with any trailing bytes."""
    return Decoder(registry).decode(data, type_id)
