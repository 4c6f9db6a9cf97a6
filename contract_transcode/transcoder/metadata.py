"""Build a registry and catalog from parsed ink! contract metadata.

The input is the JSON document (already loaded into dicts and lists) that
ink! emits as ``<contract>.json`` or inside a ``.contract`` bundle. Only the
``types`` and ``spec`` sections are read.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..codec.types import (
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
    TypeDef,
    TypeRegistry,
    VariantCase,
    VariantDef,
)
from ..errors import TranscodeError
from .messages import (
    ArgSpec,
    ContractCatalog,
    ContractTranscoder,
    EventField,
    EventSpec,
    MessageSpec,
)
from .selector import from_hex, selector_for


class MetadataError(TranscodeError):
    """Raised when the metadata document does not have the expected shape."""


@dataclass(frozen=True, slots=True)
class ContractMetadata:
    """Registry and catalog of one contract."""

    name: str | None
    registry: TypeRegistry
    catalog: ContractCatalog

    def transcoder(self, max_suggestions: int = 3) -> ContractTranscoder:
        return ContractTranscoder(self.registry, self.catalog, max_suggestions=max_suggestions)


def _fields(raw: list[dict[str, Any]] | None) -> tuple[Field, ...]:
    return tuple(
        Field(name=f.get("name"), type_id=f["type"], type_name=f.get("typeName"))
        for f in raw or []
    )


def _type_def(raw: dict[str, Any], raw_types: dict[int, dict[str, Any]]) -> TypeDef:
    if "primitive" in raw:
        return PrimitiveDef(PrimitiveKind(raw["primitive"]))
    if "composite" in raw:
        return CompositeDef(_fields(raw["composite"].get("fields")))
    if "variant" in raw:
        return VariantDef(
            tuple(
                VariantCase(name=v["name"], index=v["index"], fields=_fields(v.get("fields")))
                for v in raw["variant"].get("variants") or []
            )
        )
    if "tuple" in raw:
        return TupleDef(tuple(raw["tuple"]))
    if "array" in raw:
        return ArrayDef(type_id=raw["array"]["type"], length=raw["array"]["len"])
    if "sequence" in raw:
        return SequenceDef(raw["sequence"]["type"])
    if "compact" in raw:
        return CompactDef(raw["compact"]["type"])
    if "bitsequence" in raw:
        bits = raw["bitsequence"]
        order_path = raw_types.get(bits["bit_order_type"], {}).get("path") or []
        order = BitOrder.MSB0 if order_path[-1:] == ["Msb0"] else BitOrder.LSB0
        return BitSequenceDef(store_type_id=bits["bit_store_type"], order=order)
    raise MetadataError(f"Unknown type definition {sorted(raw)}")


def parse_registry(raw: list[dict[str, Any]]) -> TypeRegistry:
    """Build a registry from the portable ``types`` array."""
    raw_types = {entry["id"]: entry["type"] for entry in raw}
    types: list[RegisteredType] = []
    for type_id, ty in raw_types.items():
        try:
            definition = _type_def(ty["def"], raw_types)
        except (KeyError, ValueError) as exc:
            raise MetadataError(f"Malformed definition of type {type_id}: {exc}") from exc
        types.append(
            RegisteredType(
                id=type_id,
                definition=definition,
                path=tuple(ty.get("path") or ()),
                params=tuple(p.get("type") for p in ty.get("params") or ()),
            )
        )
    return TypeRegistry(types)


def _type_ref(raw: dict[str, Any] | None) -> tuple[int | None, str | None]:
    if not raw:
        return None, None
    display = raw.get("displayName") or []
    return raw["type"], "::".join(display) or None


def _arg_type(arg: dict[str, Any]) -> tuple[int, str | None]:
    type_id, type_name = _type_ref(arg.get("type"))
    if type_id is None:
        raise MetadataError(f"Argument {arg.get('label')!r} has no type")
    return type_id, type_name


def _message(raw: dict[str, Any], is_constructor: bool) -> MessageSpec:
    args = []
    for arg in raw.get("args") or []:
        type_id, type_name = _arg_type(arg)
        args.append(ArgSpec(name=arg["label"], type_id=type_id, type_name=type_name))
    return_type, _ = _type_ref(raw.get("returnType"))
    selector = raw.get("selector")
    return MessageSpec(
        label=raw["label"],
        selector=from_hex(selector) if selector else selector_for(raw["label"]),
        args=tuple(args),
        return_type=return_type,
        mutates=raw.get("mutates", False),
        payable=raw.get("payable", False),
        default=raw.get("default", False),
        is_constructor=is_constructor,
        docs=tuple(raw.get("docs") or ()),
    )


def _event(raw: dict[str, Any]) -> EventSpec:
    fields = []
    for arg in raw.get("args") or []:
        type_id, type_name = _arg_type(arg)
        fields.append(
            EventField(
                name=arg["label"],
                type_id=type_id,
                indexed=arg.get("indexed", False),
                type_name=type_name,
            )
        )
    topic = raw.get("signature_topic")
    return EventSpec(
        label=raw["label"],
        fields=tuple(fields),
        signature_topic=from_hex(topic) if topic else None,
        docs=tuple(raw.get("docs") or ()),
    )


def parse_catalog(spec: dict[str, Any]) -> ContractCatalog:
    """Build a catalog from the ``spec`` section."""
    try:
        return ContractCatalog(
            messages=tuple(_message(m, False) for m in spec.get("messages") or []),
            constructors=tuple(_message(c, True) for c in spec.get("constructors") or []),
            events=tuple(_event(e) for e in spec.get("events") or []),
        )
    except KeyError as exc:
        raise MetadataError(f"Malformed contract spec, missing {exc}") from exc


def parse_metadata(doc: dict[str, Any]) -> ContractMetadata:
    """Build registry and catalog from a parsed metadata document."""
    if "types" not in doc or "spec" not in doc:
        raise MetadataError("Metadata must contain 'types' and 'spec' sections")
    name = (doc.get("contract") or {}).get("name")
    return ContractMetadata(
        name=name,
        registry=parse_registry(doc["types"]),
        catalog=parse_catalog(doc["spec"]),
    )


def load_metadata(path: str | Path) -> ContractMetadata:
    """Read a metadata JSON file or .contract bundle."""
    with open(path, encoding="utf-8") as f:
        try:
            doc = json.load(f)
        except json.JSONDecodeError as exc:
            raise MetadataError(f"{path} is not valid JSON: {exc}") from exc
    return parse_metadata(doc)
