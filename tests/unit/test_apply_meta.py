"""
Tests for the ApplyMeta configuration protocol, using a small builder-style
field configuration as the consumer.
"""

from __future__ import annotations

import re

import pytest

from fluentattr.core.apply_meta import EMPTY_BODY_MESSAGE, ApplyMeta
from fluentattr.core.attr_args import AttrArg
from fluentattr.core.errors import GrammarError, ShapeMismatchError, UnknownKeyError, make_error
from fluentattr.core.lexer import tokenize, tokens_to_source
from fluentattr.core.primitives import expr_to_lit_string
from fluentattr.core.syntax import Ident
from fluentattr.core.syntax_parser import parse_attribute, parse_expr, parse_str


class SetterSettings(ApplyMeta):
    def __init__(self) -> None:
        self.into: Ident | None = None
        self.strip_option: Ident | None = None
        self.prefix: str | None = None

    def apply_one(self, arg: AttrArg) -> None:
        name = arg.name.name
        if name == "into":
            self.into = arg.apply_flag_to_field(self.into, "into")
        elif name == "strip_option":
            self.strip_option = arg.apply_flag_to_field(self.strip_option, "stripped")
        elif name == "prefix":
            kv = arg.key_value_or_not()
            self.prefix = expr_to_lit_string(kv.parse_value(parse_expr)) if kv else None
        else:
            raise make_error(UnknownKeyError, f"unknown setter setting `{name}`", arg.location)


class FieldSettings(ApplyMeta):
    def __init__(self) -> None:
        self.skip: Ident | None = None
        self.default: str | None = None
        self.setter = SetterSettings()

    def apply_one(self, arg: AttrArg) -> None:
        name = arg.name.name
        if name == "skip":
            self.skip = arg.apply_flag_to_field(self.skip, "skipped")
        elif name == "default":
            kv = arg.key_value_or_not()
            self.default = tokens_to_source(list(kv.value)) if kv else None
        elif name == "setter":
            self.setter.apply_nested(arg)
        else:
            raise make_error(UnknownKeyError, f"unknown field setting `{name}`", arg.location)


class TestApplyFromAttributeBody:
    def test_applies_every_argument(self, tokens_of) -> None:
        settings = FieldSettings()
        settings.apply_from_attribute_body(
            tokens_of('skip, default = Vec::new(), setter(into, prefix = "with")')
        )
        assert settings.skip == Ident("skip")
        assert settings.default == "Vec::new()"
        assert settings.setter.into == Ident("into")
        assert settings.setter.prefix == "with"

    def test_first_failure_wins(self, tokens_of) -> None:
        settings = FieldSettings()
        with pytest.raises(UnknownKeyError, match="unknown field setting `bogus`") as exc_info:
            settings.apply_from_attribute_body(tokens_of("skip, default = 5, bogus, setter(into)"))
        assert exc_info.value.location is not None
        assert exc_info.value.location.column == 20
        # no rollback, nothing after the failure
        assert settings.skip is not None
        assert settings.default == "5"
        assert settings.setter.into is None

    def test_grammar_error_applies_nothing(self, tokens_of) -> None:
        settings = FieldSettings()
        with pytest.raises(GrammarError):
            settings.apply_from_attribute_body(tokens_of("skip, = 5"))
        assert settings.skip is None

    def test_negation_resets(self, tokens_of) -> None:
        settings = FieldSettings()
        settings.apply_from_attribute_body(tokens_of("skip, default = 1, !skip, !default"))
        assert settings.skip is None
        assert settings.default is None

    def test_flag_set_twice(self, tokens_of) -> None:
        settings = FieldSettings()
        with pytest.raises(ShapeMismatchError, match="field is already skipped"):
            settings.apply_from_attribute_body(tokens_of("skip, skip"))

    def test_wrong_shape(self, tokens_of) -> None:
        with pytest.raises(ShapeMismatchError, match='"setter" is not supported as a flag'):
            FieldSettings().apply_from_attribute_body(tokens_of("setter"))

    def test_nested_unknown_name(self, tokens_of) -> None:
        settings = FieldSettings()
        with pytest.raises(UnknownKeyError, match="unknown setter setting `each`"):
            settings.apply_from_attribute_body(tokens_of("setter(into, each = \"x\")"))
        assert settings.setter.into is not None

    def test_empty_body(self) -> None:
        location = tokenize("x", file="lib.rs")[0].location
        with pytest.raises(GrammarError, match=re.escape(EMPTY_BODY_MESSAGE)) as exc_info:
            FieldSettings().apply_from_attribute_body([], location=location)
        assert exc_info.value.location == location

    def test_eof_only_body_is_empty(self) -> None:
        with pytest.raises(GrammarError, match=re.escape(EMPTY_BODY_MESSAGE)) as exc_info:
            FieldSettings().apply_from_attribute_body(tokenize("", file="lib.rs"))
        assert exc_info.value.location is not None
        assert exc_info.value.location.file == "lib.rs"


class TestApplyAttribute:
    def test_list_attribute(self) -> None:
        settings = FieldSettings()
        settings.apply_attribute(parse_str(parse_attribute, "#[builder(skip)]"))
        assert settings.skip is not None

    @pytest.mark.parametrize("source", ["#[builder]", '#[builder = "skip"]'])
    def test_other_forms_rejected(self, source: str) -> None:
        with pytest.raises(GrammarError, match=re.escape("as in `builder(…)`")):
            FieldSettings().apply_attribute(parse_str(parse_attribute, source))

    def test_empty_parentheses(self) -> None:
        attr = parse_str(parse_attribute, "#[builder()]")
        with pytest.raises(GrammarError, match=re.escape(EMPTY_BODY_MESSAGE)) as exc_info:
            FieldSettings().apply_attribute(attr)
        assert exc_info.value.location == attr.body_location
