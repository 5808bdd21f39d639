"""Tests for the shared token-level helpers."""

from __future__ import annotations

import pytest

from fluentattr.core.errors import InvalidValueError
from fluentattr.core.primitives import (
    empty_type,
    expr_to_lit_string,
    first_visibility,
    identifier_to_type_reference,
    modify_generic_args,
    path_to_single_string,
    public_visibility,
    strip_raw_identifier_prefix,
    type_tuple,
)
from fluentattr.core.syntax import GenericArgs, Ident, TupleType, Visibility
from fluentattr.core.syntax_parser import parse_expr, parse_path, parse_str, parse_type


class TestPathToSingleString:
    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ("field", "field"),
            ("r#type", "r#type"),
            ("a::b", None),
            ("::a", None),
            ("a<T>", None),
        ],
    )
    def test_single_segment_only(self, source: str, expected: str | None) -> None:
        assert path_to_single_string(parse_str(parse_path, source)) == expected


class TestTypeBuilders:
    def test_identifier_to_type_reference(self) -> None:
        ty = identifier_to_type_reference(Ident("Foo"))
        assert str(ty) == "Foo"
        assert ty == parse_str(parse_type, "Foo")

    def test_empty_type_is_unit(self) -> None:
        assert str(empty_type()) == "()"
        assert empty_type() == TupleType()

    def test_type_tuple_single_element_keeps_comma(self) -> None:
        tup = type_tuple([parse_str(parse_type, "u8")])
        assert str(tup) == "(u8,)"
        assert tup == parse_str(parse_type, "(u8,)")

    def test_type_tuple_many(self) -> None:
        tup = type_tuple(parse_str(parse_type, src) for src in ("u8", "String"))
        assert str(tup) == "(u8, String,)"
        assert len(tup.elems) == 2

    def test_type_tuple_empty(self) -> None:
        assert type_tuple([]) == empty_type()


class TestModifyGenericArgs:
    def test_appends_to_existing(self) -> None:
        original = GenericArgs((parse_str(parse_type, "T"),))
        result = modify_generic_args(original, lambda args: args.append(parse_str(parse_type, "U")))
        assert str(result) == "<T, U>"
        assert str(original) == "<T>"

    def test_starts_from_nothing(self) -> None:
        result = modify_generic_args(None, lambda args: args.insert(0, parse_str(parse_type, "u8")))
        assert str(result) == "<u8>"


class TestNamesAndVisibility:
    def test_strip_raw_identifier_prefix(self) -> None:
        assert strip_raw_identifier_prefix("r#type") == "type"
        assert strip_raw_identifier_prefix("rate") == "rate"

    def test_first_visibility(self) -> None:
        restricted = Visibility(tuple(parse_str(lambda s: s.take_rest(), "crate")))
        assert first_visibility([None, restricted, public_visibility()]) == restricted

    def test_first_visibility_requires_one(self) -> None:
        with pytest.raises(ValueError, match="need at least one visibility"):
            first_visibility([None])

    def test_public_visibility(self) -> None:
        assert str(public_visibility()) == "pub"


class TestExprToLitString:
    def test_string_literal(self) -> None:
        assert expr_to_lit_string(parse_str(parse_expr, '"with \\"quotes\\""')) == 'with "quotes"'

    def test_non_string_rejected(self) -> None:
        with pytest.raises(InvalidValueError, match="attribute only allows str values") as exc_info:
            expr_to_lit_string(parse_str(parse_expr, "42", file="lib.rs"))
        assert exc_info.value.location is not None
        assert exc_info.value.location.file == "lib.rs"
