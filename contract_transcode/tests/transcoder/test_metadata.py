"""Tests for reading contract metadata"""

import json

from pytest import raises

from contract_transcode.codec.types import (
    ArrayDef,
    BitOrder,
    BitSequenceDef,
    CompactDef,
    CompositeDef,
    PrimitiveDef,
    PrimitiveKind,
    VariantDef,
    is_option,
)
from contract_transcode.errors import UnknownTypeId
from contract_transcode.transcoder.metadata import (
    MetadataError,
    load_metadata,
    parse_catalog,
    parse_metadata,
    parse_registry,
)
from contract_transcode.transcoder.selector import selector_for


def describe_load_metadata():
    def reads_contract_name(expect, erc20):
        expect(erc20.name) == "erc20"

    def builds_registry(expect, erc20):
        registry = erc20.registry
        expect(len(registry)) == 22
        expect(registry.definition(0)) == PrimitiveDef(PrimitiveKind.U128)
        expect(registry.definition(1)) == ArrayDef(type_id=2, length=32)
        expect(registry.definition(13)) == CompactDef(0)

    def keeps_type_paths(expect, erc20):
        account = erc20.registry.resolve(3)
        expect(account.name) == "AccountId"
        expect(account.display_name()) == "ink_primitives::types::AccountId"
        expect(erc20.registry.find_by_path("erc20", "Error").id) == 5

    def reads_field_type_names(expect, erc20):
        definition = erc20.registry.definition(11)
        expect(isinstance(definition, CompositeDef)) == True
        expect([f.name for f in definition.fields]) == ["name", "decimals", "tags"]
        expect(definition.fields[2].type_name) == "Vec<String>"

    def reads_variant_indices(expect, erc20):
        definition = erc20.registry.definition(21)
        expect(isinstance(definition, VariantDef)) == True
        expect(definition.by_name("Empty").index) == 5
        expect(definition.by_index(1).name) == "Rect"

    def recognizes_option_shape(expect, erc20):
        expect(is_option(erc20.registry.definition(10))) == True
        expect(is_option(erc20.registry.definition(6))) == False

    def resolves_bit_order_from_order_type(expect, erc20):
        expect(erc20.registry.definition(14)) == BitSequenceDef(2, BitOrder.LSB0)

    def reads_messages(expect, erc20):
        transfer = erc20.catalog.messages[2]
        expect(transfer.label) == "transfer"
        expect(transfer.selector) == bytes.fromhex("84a15da1")
        expect([a.name for a in transfer.args]) == ["to", "value"]
        expect(transfer.args[0].type_name) == "AccountId"
        expect(transfer.return_type) == 6
        expect(transfer.mutates) == True
        expect(transfer.is_constructor) == False

    def reads_missing_return_type(expect, erc20):
        set_metadata = erc20.catalog.messages[4]
        expect(set_metadata.return_type) == None
        expect(set_metadata.payable) == True

    def reads_constructors(expect, erc20):
        (new,) = erc20.catalog.constructors
        expect(new.is_constructor) == True
        expect(new.docs) == ("Creates a new ERC-20 contract with the specified initial supply.",)

    def reads_events(expect, erc20):
        transfer, approval = erc20.catalog.events
        expect([f.indexed for f in transfer.fields]) == [True, True, False]
        expect(len(transfer.signature_topic)) == 32
        expect(approval.signature_topic) == None

    def rejects_invalid_json(expect, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with raises(MetadataError):
            load_metadata(path)


def describe_parse_metadata():
    def requires_types_and_catalog_sections(expect):
        with raises(MetadataError):
            parse_metadata({"types": []})

    def allows_missing_contract_section(expect, erc20_path):
        with open(erc20_path, encoding="utf-8") as f:
            doc = json.load(f)
        del doc["contract"]
        expect(parse_metadata(doc).name) == None


def describe_parse_registry():
    def resolves_msb0_order(expect):
        registry = parse_registry(
            [
                {"id": 0, "type": {"def": {"primitive": "u16"}}},
                {"id": 1, "type": {"path": ["bitvec", "order", "Msb0"], "def": {"composite": {}}}},
                {
                    "id": 2,
                    "type": {"def": {"bitsequence": {"bit_store_type": 0, "bit_order_type": 1}}},
                },
            ]
        )
        expect(registry.definition(2)) == BitSequenceDef(0, BitOrder.MSB0)

    def rejects_unknown_definition(expect):
        with raises(MetadataError):
            parse_registry([{"id": 0, "type": {"def": {"float": "f32"}}}])

    def rejects_unknown_primitive(expect):
        with raises(MetadataError):
            parse_registry([{"id": 0, "type": {"def": {"primitive": "f64"}}}])

    def leaves_dangling_references_to_lookup(expect):
        registry = parse_registry([{"id": 0, "type": {"def": {"sequence": {"type": 9}}}}])
        with raises(UnknownTypeId):
            registry.resolve(9)


def describe_parse_catalog():
    def rejects_message_without_label(expect):
        with raises(MetadataError):
            parse_catalog({"messages": [{"selector": "0x00000000", "args": []}]})

    def accepts_empty_catalog_section(expect):
        catalog = parse_catalog({})
        expect(catalog.messages) == ()
        expect(catalog.events) == ()

    def derives_missing_selector_from_label(expect):
        catalog = parse_catalog({"messages": [{"label": "flip", "args": []}]})
        expect(catalog.messages[0].selector) == selector_for("flip")

    def rejects_argument_without_type(expect):
        with raises(MetadataError) as exc:
            parse_catalog({"messages": [{"label": "flip", "args": [{"label": "to"}]}]})
        expect(str(exc.value)) == "Argument 'to' has no type"

    def rejects_event_field_without_type(expect):
        with raises(MetadataError):
            parse_catalog({"events": [{"label": "Flipped", "args": [{"label": "to", "type": {}}]}]})
