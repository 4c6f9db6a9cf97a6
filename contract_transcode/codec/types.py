"""Type registry for dynamic SCALE transcoding.

These dataclasses describe the shape of every type a contract uses, keyed by
an opaque integer id. The registry is built once and only read afterwards, so
it can be shared freely between encode and decode calls.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum

from ..errors import UnknownTypeId

__all__ = [
    "ArrayDef",
    "BitOrder",
    "BitSequenceDef",
    "CompactDef",
    "CompositeDef",
    "Field",
    "PrimitiveDef",
    "PrimitiveKind",
    "RegisteredType",
    "SequenceDef",
    "TupleDef",
    "TypeDef",
    "TypeRegistry",
    "VariantCase",
    "VariantDef",
    "is_option",
]


class PrimitiveKind(StrEnum):
    """Primitive wire types."""

    BOOL = "bool"
    CHAR = "char"
    STR = "str"
    U8 = "u8"
    U16 = "u16"
    U32 = "u32"
    U64 = "u64"
    U128 = "u128"
    U256 = "u256"
    I8 = "i8"
    I16 = "i16"
    I32 = "i32"
    I64 = "i64"
    I128 = "i128"
    I256 = "i256"

    @property
    def is_integer(self) -> bool:
        return self.value[0] in "ui"

    @property
    def signed(self) -> bool:
        return self.value[0] == "i"

    @property
    def bits(self) -> int:
        """Bit width of an integer kind, 0 for the others."""
        return int(self.value[1:]) if self.is_integer else 0

    @property
    def size(self) -> int:
        """Fixed encoded size in bytes, 0 for variable length ``str``."""
        if self.is_integer:
            return self.bits // 8
        return {"bool": 1, "char": 4}.get(self.value, 0)

    @property
    def min_value(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max_value(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1


class BitOrder(StrEnum):
    """Order of bits inside a bit sequence storage word."""

    LSB0 = "Lsb0"
    MSB0 = "Msb0"


@dataclass(frozen=True, slots=True)
class Field:
    """A field of a composite or variant; ``name`` is None for positional fields."""

    name: str | None
    type_id: int
    type_name: str | None = None


@dataclass(frozen=True, slots=True)
class PrimitiveDef:
    kind: PrimitiveKind


@dataclass(frozen=True, slots=True)
class CompactDef:
    type_id: int


@dataclass(frozen=True, slots=True)
class CompositeDef:
    """Struct-like type with named fields, or a tuple struct with positional ones."""

    fields: tuple[Field, ...] = ()

    @property
    def is_named(self) -> bool:
        return bool(self.fields) and all(f.name is not None for f in self.fields)


@dataclass(frozen=True, slots=True)
class VariantCase:
    """One case of a variant type; ``index`` is the explicit discriminant byte."""

    name: str
    index: int
    fields: tuple[Field, ...] = ()

    @property
    def is_named(self) -> bool:
        return bool(self.fields) and all(f.name is not None for f in self.fields)


@dataclass(frozen=True, slots=True)
class VariantDef:
    variants: tuple[VariantCase, ...] = ()

    def by_name(self, name: str) -> VariantCase | None:
        for case in self.variants:
            if case.name == name:
                return case
        return None

    def by_index(self, index: int) -> VariantCase | None:
        for case in self.variants:
            if case.index == index:
                return case
        return None


@dataclass(frozen=True, slots=True)
class TupleDef:
    type_ids: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class ArrayDef:
    type_id: int
    length: int


@dataclass(frozen=True, slots=True)
class SequenceDef:
    type_id: int


@dataclass(frozen=True, slots=True)
class BitSequenceDef:
    store_type_id: int
    order: BitOrder = BitOrder.LSB0


TypeDef = (
    PrimitiveDef
    | CompactDef
    | CompositeDef
    | VariantDef
    | TupleDef
    | ArrayDef
    | SequenceDef
    | BitSequenceDef
)


@dataclass(frozen=True, slots=True)
class RegisteredType:
    """A type definition with its id and optional path, e.g. ``("erc20", "Error")``."""

    id: int
    definition: TypeDef
    path: tuple[str, ...] = ()
    params: tuple[int | None, ...] = field(default=(), compare=False)

    @property
    def name(self) -> str | None:
        return self.path[-1] if self.path else None

    def display_name(self) -> str:
        """Human readable name used in error messages."""
        if self.path:
            return "::".join(self.path)
        match self.definition:
            case PrimitiveDef(kind=kind):
                return kind.value
            case CompactDef():
                return "Compact"
            case CompositeDef():
                return "composite"
            case VariantDef():
                return "variant"
            case TupleDef(type_ids=ids):
                return "()" if not ids else "tuple"
            case ArrayDef(length=length):
                return f"array[{length}]"
            case SequenceDef():
                return "sequence"
            case BitSequenceDef():
                return "bit sequence"
        return f"type {self.id}"


def is_option(definition: TypeDef) -> bool:
    """Check if a variant has the ``Option<T>`` shape: None = 0 and Some(T) = 1."""
    if not isinstance(definition, VariantDef) or len(definition.variants) != 2:
        return False
    none, some = definition.by_name("None"), definition.by_name("Some")
    return (
        none is not None
        and some is not None
        and none.index == 0
        and not none.fields
        and some.index == 1
        and len(some.fields) == 1
    )


class TypeRegistry:
    """Read-only index of registered types by id."""

    def __init__(self, types: Iterable[RegisteredType]) -> None:
        self._types: dict[int, RegisteredType] = {t.id: t for t in types}

    def resolve(self, type_id: int) -> RegisteredType:
        """Look up a type by id.

        Raises:
            UnknownTypeId: if the id is not registered.
        """
        try:
            return self._types[type_id]
        except KeyError:
            raise UnknownTypeId(type_id) from None

    def definition(self, type_id: int) -> TypeDef:
        return self.resolve(type_id).definition

    def find_by_path(self, *path: str) -> RegisteredType | None:
        """Find the first type whose path ends with ``path``."""
        for t in self._types.values():
            if t.path[-len(path) :] == path:
                return t
        return None

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._types

    def __iter__(self) -> Iterator[RegisteredType]:
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)
