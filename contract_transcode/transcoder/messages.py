"""Contract message, constructor and event transcoding.

A ContractTranscoder ties the type registry to the contract's catalog. Calls
are framed as the 4-byte selector followed by the SCALE encoded arguments in
declared order. Events carry no selector: the caller says which event the
payload belongs to.

Example:
    transcoder = ContractTranscoder(registry, catalog)
    data = transcoder.encode_call("transfer", ["0x01", "100"])
    call = transcoder.decode_call(data)
    call.name    # "transfer"
    call.args    # (("to", Bytes(b"\\x01")), ("value", UInt(100)))
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..codec.serialization import ByteCursor, Decoded, Decoder, Encoder
from ..codec.types import TypeRegistry
from ..codec.value import Map, Unit, Value, Variant
from ..errors import ArityMismatch, MessageNotFound, TranscodeError, UnexpectedEnd
from ..suggest import suggest
from .parser import parse
from .selector import SELECTOR_SIZE, from_hex, to_hex

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ArgSpec:
    """A declared message or constructor argument."""

    name: str
    type_id: int
    type_name: str | None = None


@dataclass(frozen=True, slots=True)
class MessageSpec:
    """A callable entry point: a message, or a constructor when ``is_constructor``."""

    label: str
    selector: bytes
    args: tuple[ArgSpec, ...] = ()
    return_type: int | None = None
    mutates: bool = False
    payable: bool = False
    default: bool = False
    is_constructor: bool = False
    docs: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class EventField:
    name: str
    type_id: int
    indexed: bool = False
    type_name: str | None = None


@dataclass(frozen=True, slots=True)
class EventSpec:
    label: str
    fields: tuple[EventField, ...] = ()
    signature_topic: bytes | None = None
    docs: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ContractCatalog:
    """Messages, constructors and events declared by a contract."""

    messages: tuple[MessageSpec, ...] = ()
    constructors: tuple[MessageSpec, ...] = ()
    events: tuple[EventSpec, ...] = ()


@dataclass(frozen=True, slots=True)
class DecodedCall:
    """A decoded call: the matched entry and its arguments in declared order."""

    spec: MessageSpec
    args: tuple[tuple[str, Value], ...]
    trailing: bytes = b""

    @property
    def name(self) -> str:
        return self.spec.label

    @property
    def values(self) -> list[Value]:
        return [v for _, v in self.args]

    def as_value(self) -> Variant:
        """The call as a named variant, e.g. ``transfer { to: 0x01, value: 100 }``."""
        return Variant(self.spec.label, self.args)


class ContractTranscoder:
    """Encode and decode contract calls and events against a type registry."""

    def __init__(
        self,
        registry: TypeRegistry,
        catalog: ContractCatalog,
        max_suggestions: int = 3,
    ) -> None:
        self.registry = registry
        self.catalog = catalog
        self.max_suggestions = max_suggestions
        self._encoder = Encoder(registry, max_suggestions=max_suggestions)
        self._decoder = Decoder(registry)

    # Resolution

    def _resolve(
        self, entries: tuple[MessageSpec, ...], name_or_selector: str, kind: str
    ) -> MessageSpec:
        for entry in entries:
            if entry.label == name_or_selector:
                return entry

        try:
            selector = from_hex(name_or_selector)
        except TranscodeError:
            selector = b""
        if len(selector) == SELECTOR_SIZE:
            for entry in entries:
                if entry.selector == selector:
                    return entry

        labels = [e.label for e in entries]
        raise MessageNotFound(
            name_or_selector, suggest(name_or_selector, labels, self.max_suggestions), kind
        )

    def resolve_message(self, name_or_selector: str) -> MessageSpec:
        """Find a message by exact label, else by hex selector.

        Raises:
            MessageNotFound: with the closest labels as suggestions.
        """
        return self._resolve(self.catalog.messages, name_or_selector, "message")

    def resolve_constructor(self, name_or_selector: str) -> MessageSpec:
        return self._resolve(self.catalog.constructors, name_or_selector, "constructor")

    def resolve_event(self, event: EventSpec | str | int) -> EventSpec:
        """Find an event by spec, label or position in the catalog."""
        if isinstance(event, EventSpec):
            return event
        if isinstance(event, int):
            if 0 <= event < len(self.catalog.events):
                return self.catalog.events[event]
            raise MessageNotFound(str(event), kind="event")
        for spec in self.catalog.events:
            if spec.label == event:
                return spec
        labels = [e.label for e in self.catalog.events]
        raise MessageNotFound(event, suggest(event, labels, self.max_suggestions), "event")

    # Encoding

    def encode_args(self, spec: MessageSpec, args: Sequence[str]) -> bytes:
        """Parse and encode argument texts, prefixed with the selector."""
        if len(args) != len(spec.args):
            raise ArityMismatch(len(spec.args), len(args), "arguments")

        out = bytearray(spec.selector)
        for arg, text in zip(spec.args, args):
            try:
                value = parse(text)
                self._encoder.encode_into(value, arg.type_id, out)
            except TranscodeError as exc:
                raise exc.at(f"argument '{arg.name}'")
        return bytes(out)

    def encode_call(self, message: MessageSpec | str, args: Sequence[str]) -> bytes:
        """Encode a message call from its name (or selector) and argument texts."""
        spec = message if isinstance(message, MessageSpec) else self.resolve_message(message)
        log.debug("Encoding call to %s (%s)", spec.label, to_hex(spec.selector))
        return self.encode_args(spec, args)

    def encode_constructor(self, constructor: MessageSpec | str, args: Sequence[str]) -> bytes:
        spec = (
            constructor
            if isinstance(constructor, MessageSpec)
            else self.resolve_constructor(constructor)
        )
        log.debug("Encoding constructor %s (%s)", spec.label, to_hex(spec.selector))
        return self.encode_args(spec, args)

    # Decoding

    def _decode_framed(
        self, entries: tuple[MessageSpec, ...], data: bytes, kind: str
    ) -> DecodedCall:
        if len(data) < SELECTOR_SIZE:
            raise UnexpectedEnd(SELECTOR_SIZE, len(data))

        selector = bytes(data[:SELECTOR_SIZE])
        spec = next((e for e in entries if e.selector == selector), None)
        if spec is None:
            raise MessageNotFound(to_hex(selector), kind=kind)

        cursor = ByteCursor(data[SELECTOR_SIZE:])
        args: list[tuple[str, Value]] = []
        for arg in spec.args:
            try:
                args.append((arg.name, self._decoder.decode_from(cursor, arg.type_id)))
            except TranscodeError as exc:
                raise exc.at(f"argument '{arg.name}'")

        trailing = cursor.rest()
        if trailing:
            log.debug("%d trailing bytes after %s %s", len(trailing), kind, spec.label)
        return DecodedCall(spec, tuple(args), trailing)

    def decode_call(self, data: bytes) -> DecodedCall:
        """Decode selector-framed message call data."""
        return self._decode_framed(self.catalog.messages, data, "message")

    def decode_constructor(self, data: bytes) -> DecodedCall:
        return self._decode_framed(self.catalog.constructors, data, "constructor")

    def decode_return(self, data: bytes, message: MessageSpec | str) -> Decoded:
        """Decode the return payload of a message.

        A message without a return type decodes to Unit; any bytes are
        reported as trailing.
        """
        spec = message if isinstance(message, MessageSpec) else self.resolve_message(message)
        if spec.return_type is None:
            return Decoded(Unit(), bytes(data))
        try:
            return self._decoder.decode(data, spec.return_type)
        except TranscodeError as exc:
            raise exc.at(f"return value of '{spec.label}'")

    def decode_event(self, data: bytes, event: EventSpec | str | int) -> Decoded:
        """Decode an event payload into a map named after the event."""
        spec = self.resolve_event(event)
        cursor = ByteCursor(data)
        fields: list[tuple[str, Value]] = []
        for f in spec.fields:
            try:
                fields.append((f.name, self._decoder.decode_from(cursor, f.type_id)))
            except TranscodeError as exc:
                raise exc.at(f"event '{spec.label}' field '{f.name}'")

        trailing = cursor.rest()
        if trailing:
            log.debug("%d trailing bytes after event %s", len(trailing), spec.label)
        return Decoded(Map(fields, name=spec.label), trailing)
