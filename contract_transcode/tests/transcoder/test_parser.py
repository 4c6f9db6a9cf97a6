"""Tests for the literal parser"""

from pytest import raises

from contract_transcode.codec.value import (
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
    Variant,
)
from contract_transcode.errors import InvalidEscape, OddLengthHex, ParseError
from contract_transcode.transcoder.parser import parse, unescape


def describe_scalars():
    def keeps_integers_unresolved(expect):
        expect(parse("255")) == Literal("255")
        expect(parse("-1")) == Literal("-1")
        expect(parse("1_000_000")) == Literal("1_000_000")
        expect(parse("7u16")) == Literal("7u16")

    def parses_booleans(expect):
        expect(parse("true")) == Bool(True)
        expect(parse("false")) == Bool(False)

    def parses_bytes(expect):
        expect(parse("0x")) == Bytes(b"")
        expect(parse("0xDEADbeef")) == Bytes(b"\xde\xad\xbe\xef")

    def parses_strings(expect):
        expect(parse('"hello"')) == Str("hello")
        expect(parse('""')) == Str("")

    def parses_chars(expect):
        expect(parse("'a'")) == Char("a")
        expect(parse("'\\n'")) == Char("\n")

    def parses_unit(expect):
        expect(parse("()")) == Unit()

    def ignores_surrounding_whitespace(expect):
        expect(parse("  42\n")) == Literal("42")


def describe_containers():
    def parses_map_with_nested_sequence(expect):
        expect(parse("{a: 1, b: [true, false]}")) == Map(
            {"a": Literal("1"), "b": Seq([Bool(True), Bool(False)])}
        )

    def parses_quoted_keys(expect):
        expect(parse('{"two words": 1}')) == Map({"two words": Literal("1")})

    def parses_empty_containers(expect):
        expect(parse("{}")) == Map()
        expect(parse("[]")) == Seq()

    def accepts_trailing_commas(expect):
        expect(parse("[1, 2,]")) == Seq([Literal("1"), Literal("2")])
        expect(parse("{a: 1,}")) == Map({"a": Literal("1")})

    def parses_tuples(expect):
        expect(parse('(1, "x")')) == Tuple([Literal("1"), Str("x")])
        expect(parse("(1)")) == Tuple([Literal("1")])

    def keeps_field_order(expect):
        value = parse("{b: 1, a: 2}")
        expect(value.keys()) == ["b", "a"]

    def parses_deep_nesting(expect):
        depth = 5000
        value = parse("[" * depth + "]" * depth)
        for _ in range(depth - 1):
            (value,) = value.items
        expect(value) == Seq([])


def describe_variants():
    def parses_bare_name(expect):
        expect(parse("Empty")) == Variant("Empty")

    def parses_positional_payload(expect):
        expect(parse("Rect(1, 2)")) == Variant("Rect", [(0, Literal("1")), (1, Literal("2"))])

    def parses_named_payload(expect):
        expect(parse("Circle { radius: 2 }")) == Variant("Circle", {"radius": Literal("2")})

    def parses_options(expect):
        expect(parse("None")) == Option.none()
        expect(parse("Some(5)")) == Option.some(Literal("5"))
        expect(parse("Some(None)")) == Option.some(Option.none())

    def treats_keyword_prefix_as_identifier(expect):
        expect(parse("Nonexistent")) == Variant("Nonexistent")

    def rejects_bare_some(expect):
        with raises(ParseError):
            parse("Some")


def describe_escapes():
    def resolves_simple_escapes(expect):
        expect(parse('"a\\tb\\\\c\\"d"')) == Str('a\tb\\c"d')

    def resolves_unicode_escapes(expect):
        expect(parse('"\\u{48}\\u{1F600}"')) == Str("H\U0001f600")

    def rejects_unknown_escape(expect):
        with raises(InvalidEscape) as exc:
            parse('"ab\\q"')
        expect(exc.value.position) == 3
        expect(exc.value.escape) == "\\q"

    def rejects_surrogate_code_point(expect):
        with raises(InvalidEscape):
            parse('"\\u{D800}"')

    def rejects_code_point_beyond_unicode(expect):
        with raises(InvalidEscape):
            unescape("\\u{110000}")

    def rejects_unterminated_unicode_escape(expect):
        with raises(InvalidEscape):
            unescape("\\u{12")

    def rejects_multi_character_char(expect):
        with raises(ParseError):
            parse("'ab'")


def describe_errors():
    def reports_invalid_hex_digit_position(expect):
        with raises(ParseError) as exc:
            parse("0xag")
        expect(exc.value.position) == 3

    def reports_odd_hex_length(expect):
        with raises(OddLengthHex) as exc:
            parse("[0x123]")
        expect(exc.value.position) == 1
        expect(exc.value.digits) == 3

    def reports_unexpected_end(expect):
        with raises(ParseError) as exc:
            parse("[1, 2")
        expect(exc.value.position) == 5
        expect("']'" in exc.value.expected) == True

    def reports_unexpected_character(expect):
        with raises(ParseError) as exc:
            parse("{a: 1 @}")
        expect(exc.value.position) == 6

    def reports_missing_value(expect):
        with raises(ParseError) as exc:
            parse("{a: }")
        expect(exc.value.position) == 4

    def rejects_empty_input(expect):
        with raises(ParseError) as exc:
            parse("")
        expect(exc.value.position) == 0

    def rejects_dangling_suffix(expect):
        with raises(ParseError):
            parse("5u7")

    def counts_positions_in_utf8_bytes(expect):
        with raises(ParseError) as exc:
            parse('["éé", @]')
        expect(exc.value.position) == 9

    def counts_escape_positions_in_utf8_bytes(expect):
        with raises(InvalidEscape) as exc:
            parse('"é\\q"')
        expect(exc.value.position) == 3

    def counts_hex_digit_positions_in_utf8_bytes(expect):
        with raises(ParseError) as exc:
            parse('("é", 0xag)')
        expect(exc.value.position) == 10
