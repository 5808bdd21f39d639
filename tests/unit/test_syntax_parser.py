"""
Tests for the item parser: types, patterns, expressions, attributes and
function signatures.
"""

from __future__ import annotations

import re

import pytest

from fluentattr.core.errors import GrammarError
from fluentattr.core.lexer import TokenType, tokenize, tokens_to_source
from fluentattr.core.syntax import (
    ArrayExpr,
    ArrayType,
    BinaryExpr,
    CallExpr,
    IdentPat,
    ImplTraitType,
    InferType,
    LitExpr,
    LitKind,
    MacroExpr,
    MetaKind,
    MethodCallExpr,
    NeverType,
    ParenType,
    PathExpr,
    PathType,
    Receiver,
    ReferenceType,
    RefPat,
    SliceType,
    StructPat,
    TupleExpr,
    TuplePat,
    TupleStructPat,
    TupleType,
    TypedParam,
    UnaryExpr,
    WildPat,
)
from fluentattr.core.syntax_parser import (
    ParseStream,
    parse_attribute,
    parse_expr,
    parse_function,
    parse_ident,
    parse_pat,
    parse_path,
    parse_str,
    parse_type,
    parse_visibility,
)


class TestParseStream:
    """Token navigation helpers."""

    def test_take_until_top_level_skips_nested_commas(self) -> None:
        stream = ParseStream(tokenize("f(a, b), c"))
        taken = stream.take_until_top_level(TokenType.COMMA)
        assert tokens_to_source(list(taken)) == "f(a, b)"
        assert stream.peek(TokenType.COMMA)

    def test_parse_group_returns_inner_tokens(self) -> None:
        stream = ParseStream(tokenize("(a, [b])"))
        opener, inner, closer = stream.parse_group(TokenType.LPAREN)
        assert opener.type is TokenType.LPAREN
        assert closer.type is TokenType.RPAREN
        assert tokens_to_source(list(inner)) == "a, [b]"
        assert stream.is_empty()

    def test_error_at_end_of_input(self) -> None:
        stream = ParseStream(tokenize("a"))
        stream.advance()
        error = stream.error("expected `=`")
        assert error.message == "unexpected end of input, expected `=`"

    def test_error_names_found_token(self) -> None:
        stream = ParseStream(tokenize("a"))
        assert stream.error("expected `=`").message == "expected `=`, found `a`"

    def test_group_stream_ends_at_closer(self) -> None:
        stream = ParseStream(tokenize("(a)"))
        _, inner = stream.group_stream(TokenType.LPAREN)
        inner.advance()
        assert inner.end is not None
        assert inner.end.column == 3


class TestIdentifiersAndPaths:
    def test_keyword_is_not_an_identifier(self) -> None:
        with pytest.raises(GrammarError, match=re.escape("expected identifier, found `type`")):
            parse_str(parse_ident, "type")

    def test_raw_identifier_is_accepted(self) -> None:
        ident = parse_str(parse_ident, "r#type")
        assert ident.name == "r#type"
        assert ident.display == "type"

    def test_generic_path(self) -> None:
        path = parse_str(parse_path, "::std::collections::HashMap<String, Vec<u8>>")
        assert path.leading_colon
        assert len(path.segments) == 3
        assert str(path) == "::std::collections::HashMap<String, Vec<u8>>"
        assert path.get_ident() is None

    def test_single_ident_path(self) -> None:
        path = parse_str(parse_path, "field")
        assert path.is_ident("field")
        assert path.location is not None

    def test_turbofish_in_expression_position(self) -> None:
        path = parse_str(lambda s: parse_path(s, expr_style=True), "Vec::<u8>::new")
        assert str(path) == "Vec::<u8>::new"


class TestParseType:
    @pytest.mark.parametrize(
        "source",
        [
            "u8",
            "&'a mut Vec<u8>",
            "&str",
            "*const u8",
            "*mut T",
            "()",
            "(u8,)",
            "(u8, String)",
            "[u8; 4]",
            "[u8]",
            "impl Fn(u8) -> bool + Send",
            "dyn Iterator<Item = u8> + 'a",
            "fn(u8) -> u8",
            "Option<Box<dyn Fn()>>",
            "T<'a, 3>",
        ],
    )
    def test_renders_canonically(self, source: str) -> None:
        assert str(parse_str(parse_type, source)) == source

    def test_node_kinds(self) -> None:
        assert isinstance(parse_str(parse_type, "u8"), PathType)
        assert isinstance(parse_str(parse_type, "&u8"), ReferenceType)
        assert isinstance(parse_str(parse_type, "(u8)"), ParenType)
        assert isinstance(parse_str(parse_type, "(u8,)"), TupleType)
        assert isinstance(parse_str(parse_type, "[u8; 2]"), ArrayType)
        assert isinstance(parse_str(parse_type, "[u8]"), SliceType)
        assert isinstance(parse_str(parse_type, "!"), NeverType)
        assert isinstance(parse_str(parse_type, "_"), InferType)
        assert isinstance(parse_str(parse_type, "impl Clone"), ImplTraitType)

    def test_reference_fields(self) -> None:
        ty = parse_str(parse_type, "&'a mut T")
        assert isinstance(ty, ReferenceType)
        assert ty.mutable
        assert ty.lifetime is not None and ty.lifetime.name == "'a"

    def test_equality_ignores_location(self) -> None:
        assert parse_str(parse_type, "Vec<u8>") == parse_str(parse_type, "  Vec < u8 >")

    def test_qualified_path_rejected(self) -> None:
        with pytest.raises(GrammarError, match="qualified paths are not supported"):
            parse_str(parse_type, "<T as Trait>::Output")

    def test_empty_input(self) -> None:
        with pytest.raises(GrammarError, match="unexpected end of input, expected type"):
            parse_str(parse_type, "")

    def test_trailing_tokens_rejected(self) -> None:
        with pytest.raises(GrammarError, match=re.escape("unexpected token, found `u16`")):
            parse_str(parse_type, "u8 u16")


class TestParsePattern:
    def test_ident_patterns(self) -> None:
        pat = parse_str(parse_pat, "ref mut x")
        assert pat == IdentPat(parse_str(parse_ident, "x"), by_ref=True, mutable=True)
        assert str(pat) == "ref mut x"

    def test_destructuring_patterns(self) -> None:
        assert isinstance(parse_str(parse_pat, "(a, b)"), TuplePat)
        assert isinstance(parse_str(parse_pat, "_"), WildPat)
        assert isinstance(parse_str(parse_pat, "&mut x"), RefPat)
        assert isinstance(parse_str(parse_pat, "Some(v)"), TupleStructPat)
        assert isinstance(parse_str(parse_pat, "Point { x, y: (a, b), .. }"), StructPat)

    @pytest.mark.parametrize("source", ["(a, b)", "(a,)", "Point { x, .. }", "Some(_)", "&x"])
    def test_renders_canonically(self, source: str) -> None:
        assert str(parse_str(parse_pat, source)) == source

    def test_multi_segment_path_rejected(self) -> None:
        with pytest.raises(GrammarError, match="expected identifier pattern"):
            parse_str(parse_pat, "a::b")


class TestParseExpr:
    def test_array_of_paths(self) -> None:
        expr = parse_str(parse_expr, "[x, y]")
        assert isinstance(expr, ArrayExpr)
        assert all(isinstance(elem, PathExpr) for elem in expr.elems)
        assert expr.location is not None and expr.location.column == 1

    def test_binary_operators_left_associative(self) -> None:
        expr = parse_str(parse_expr, "1 + 2 * 3")
        assert isinstance(expr, BinaryExpr)
        assert expr.op == "*"
        assert isinstance(expr.left, BinaryExpr)
        assert str(expr) == "1 + 2 * 3"

    def test_postfix_chain(self) -> None:
        expr = parse_str(parse_expr, "foo.bar::<u8>(1)?")
        assert isinstance(expr, UnaryExpr) and expr.op == "?"
        assert isinstance(expr.expr, MethodCallExpr)
        assert str(expr) == "foo.bar::<u8>(1)?"

    def test_call_and_macro(self) -> None:
        assert isinstance(parse_str(parse_expr, "Some(1)"), CallExpr)
        macro = parse_str(parse_expr, "vec![1, 2]")
        assert isinstance(macro, MacroExpr)
        assert str(macro) == "vec![1, 2]"

    def test_tuple_and_unit(self) -> None:
        assert isinstance(parse_str(parse_expr, "(1, 2)"), TupleExpr)
        assert str(parse_str(parse_expr, "(1,)")) == "(1,)"
        assert parse_str(parse_expr, "()") == TupleExpr()

    @pytest.mark.parametrize(
        ("source", "kind", "value"),
        [
            ("42", LitKind.INT, 42),
            ("1_000u32", LitKind.INT, 1000),
            ("10usize", LitKind.INT, 10),
            ("0x1F", LitKind.INT, 31),
            ("0b1010", LitKind.INT, 10),
            ("1.5", LitKind.FLOAT, 1.5),
            ("2f64", LitKind.FLOAT, 2.0),
            ("1e3", LitKind.FLOAT, 1000.0),
            ("true", LitKind.BOOL, True),
            ('"a\\nb"', LitKind.STR, "a\nb"),
            ('r#"say "hi""#', LitKind.STR, 'say "hi"'),
            ("'x'", LitKind.CHAR, "x"),
        ],
    )
    def test_literal_values(self, source: str, kind: LitKind, value: object) -> None:
        expr = parse_str(parse_expr, source)
        assert isinstance(expr, LitExpr)
        assert expr.kind is kind
        assert expr.value == value
        assert str(expr) == source

    def test_missing_expression(self) -> None:
        with pytest.raises(GrammarError, match=re.escape("expected expression, found `,`")):
            parse_str(parse_expr, ",")


class TestParseAttribute:
    def test_list_attribute(self) -> None:
        attr = parse_str(parse_attribute, "#[builder(setter(into), default)]")
        assert attr.kind is MetaKind.LIST
        assert attr.path.is_ident("builder")
        assert tokens_to_source(list(attr.tokens)) == "setter(into), default"
        assert attr.body_location is not None and attr.body_location.column == 10
        assert str(attr) == "#[builder(setter(into), default)]"

    def test_name_value_attribute(self) -> None:
        attr = parse_str(parse_attribute, '#[doc = "text"]')
        assert attr.kind is MetaKind.NAME_VALUE
        assert str(attr) == '#[doc = "text"]'

    def test_path_attribute(self) -> None:
        attr = parse_str(parse_attribute, "#[inline]")
        assert attr.kind is MetaKind.PATH
        assert attr.tokens == ()

    def test_inner_attribute_rejected(self) -> None:
        with pytest.raises(GrammarError, match="inner attributes are not supported"):
            parse_str(parse_attribute, "#![allow(dead_code)]")

    def test_visibility(self) -> None:
        assert str(parse_str(parse_visibility, "pub")) == "pub"
        assert str(parse_str(parse_visibility, "pub(crate)")) == "pub(crate)"


class TestParseFunction:
    def test_signature_parts(self) -> None:
        fun = parse_str(
            parse_function,
            "#[inline] pub fn get<T: Clone>(&self, x: T) -> T where T: Copy { x }",
        )
        assert [str(attr) for attr in fun.attrs] == ["#[inline]"]
        assert str(fun.visibility) == "pub"
        assert str(fun.sig) == "fn get<T: Clone>(&self, x: T) -> T where T: Copy"
        assert tokens_to_source(list(fun.body)) == "x"

    def test_qualifiers(self) -> None:
        fun = parse_str(parse_function, "const unsafe fn f() {}")
        assert fun.sig.qualifiers == ("const", "unsafe")
        assert str(fun.sig) == "const unsafe fn f()"

    @pytest.mark.parametrize(
        ("source", "reference", "mutable", "rendered"),
        [
            ("fn f(&self) {}", True, False, "&self"),
            ("fn f(&mut self) {}", True, True, "&mut self"),
            ("fn f(&'a mut self) {}", True, True, "&'a mut self"),
            ("fn f(self) {}", False, False, "self"),
            ("fn f(mut self) {}", False, True, "mut self"),
            ("fn f(self: Box<Self>) {}", False, False, "self: Box<Self>"),
        ],
    )
    def test_receivers(self, source: str, reference: bool, mutable: bool, rendered: str) -> None:
        receiver = parse_str(parse_function, source).sig.inputs[0]
        assert isinstance(receiver, Receiver)
        assert receiver.reference is reference
        assert receiver.mutable is mutable
        assert str(receiver) == rendered

    def test_typed_reference_receiver(self) -> None:
        receiver = parse_str(parse_function, "fn f(self: &mut Self) {}").sig.inputs[0]
        assert isinstance(receiver, Receiver)
        assert receiver.is_reference

    def test_parameter_attributes(self) -> None:
        param = parse_str(parse_function, "fn f(#[allow(unused)] x: u8) {}").sig.inputs[0]
        assert isinstance(param, TypedParam)
        assert str(param) == "#[allow(unused)] x: u8"

    def test_self_after_first_parameter(self) -> None:
        with pytest.raises(GrammarError, match="only allowed as the first parameter"):
            parse_str(parse_function, "fn f(x: u8, &self) {}")

    def test_missing_body(self) -> None:
        with pytest.raises(GrammarError, match="unexpected end of input"):
            parse_str(parse_function, "fn f()")
