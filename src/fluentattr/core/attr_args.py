"""
Attribute argument grammar.

One comma-separated element of an attribute body parses into one of four
shapes:

    name            Flag
    name = tokens   KeyValue (value tokens run to the next top-level comma)
    name(tokens)    SubAttr  (nested argument list, parsed on demand)
    !name           Not      (reset to default)

Value and nested payloads stay as opaque tokens until a consumer asks for a
concrete parse, so unknown nested grammars never fail eagerly.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from .errors import InvalidValueError, ShapeMismatchError, make_error
from .lexer import Token, TokenType, tokens_to_source
from .location import SourceLocation
from .syntax import Ident
from .syntax_parser import ParseStream, parse_ident, parse_terminated, parse_tokens

T = TypeVar("T")

EXPECTED_ARG_MESSAGE = "expected `!<name>`, `<name>=<value>`, or `<name>(…)`"


def _ident_token(ident: Ident) -> Token:
    return Token(TokenType.IDENTIFIER, ident.name, ident.location)


class AttrArg:
    """Base class of the four argument shapes; every shape carries ``name``."""

    name: Ident

    @property
    def location(self) -> SourceLocation | None:
        return self.name.location

    def to_tokens(self) -> list[Token]:
        raise NotImplementedError

    def incorrect_type(self) -> ShapeMismatchError:
        """The error for using this argument in an unsupported shape."""
        name = self.name.display
        if isinstance(self, Flag):
            message = f'"{name}" is not supported as a flag'
        elif isinstance(self, KeyValue):
            message = f'"{name}" is not supported as key-value'
        elif isinstance(self, SubAttr):
            message = f'"{name}" is not supported as nested attribute'
        else:
            message = f'"{name}" cannot be nullified'
        return make_error(ShapeMismatchError, message, self.location)

    def flag(self) -> Ident:
        if isinstance(self, Flag):
            return self.name
        raise self.incorrect_type()

    def key_value(self) -> KeyValue:
        if isinstance(self, KeyValue):
            return self
        raise self.incorrect_type()

    def key_value_or_not(self) -> KeyValue | None:
        """The key-value payload, or None when the argument is `!name`."""
        if isinstance(self, KeyValue):
            return self
        if isinstance(self, Not):
            return None
        raise self.incorrect_type()

    def sub_attr(self) -> SubAttr:
        if isinstance(self, SubAttr):
            return self
        raise self.incorrect_type()

    def apply_flag_to_field(self, field: Ident | None, caption: str) -> Ident | None:
        """
        Apply a flag / negation to a setting that may only be turned on once.

        Args:
            field: Identifier that previously set the setting, or None
            caption: Description used in the error, e.g. "skipped"

        Returns:
            The new value of the setting
        """
        if isinstance(self, Flag):
            if field is None:
                return self.name
            raise make_error(
                ShapeMismatchError,
                f"Illegal setting - field is already {caption}",
                self.location,
            )
        if isinstance(self, Not):
            return None
        raise self.incorrect_type()

    def __str__(self) -> str:
        return tokens_to_source(self.to_tokens())


@dataclass(frozen=True)
class Flag(AttrArg):
    name: Ident

    def to_tokens(self) -> list[Token]:
        return [_ident_token(self.name)]


@dataclass(frozen=True)
class Not(AttrArg):
    bang: Token
    name: Ident

    def to_tokens(self) -> list[Token]:
        return [self.bang, _ident_token(self.name)]


@dataclass(frozen=True)
class KeyValue(AttrArg):
    name: Ident
    eq: Token
    value: tuple[Token, ...]

    def parse_value(self, parser: Callable[[ParseStream], T]) -> T:
        """
        Parse the value tokens with ``parser``.

        Raises:
            InvalidValueError: If the value does not parse or is not fully consumed
        """
        end = self.value[-1].location if self.value else self.eq.location
        return parse_tokens(parser, self.value, end=end, error_type=InvalidValueError)

    def to_tokens(self) -> list[Token]:
        return [_ident_token(self.name), self.eq, *self.value]


@dataclass(frozen=True)
class SubAttr(AttrArg):
    name: Ident
    paren: Token
    tokens: tuple[Token, ...]
    close: Token

    def args(self, parser: Callable[[ParseStream], T] | None = None) -> list[T]:
        """Parse the nested tokens as a comma-separated list (of `AttrArg` by default)."""
        item_parser = parser if parser is not None else parse_attr_arg
        return parse_tokens(
            lambda stream: parse_terminated(stream, item_parser),  # type: ignore[arg-type]
            self.tokens,
            end=self.close.location,
        )

    def undelimited(self, parser: Callable[[ParseStream], T]) -> list[T]:
        """Parse the nested tokens as back-to-back items with no separator."""

        def parse_all(stream: ParseStream) -> list[T]:
            items = []
            while not stream.is_empty():
                items.append(parser(stream))
            return items

        return parse_tokens(parse_all, self.tokens, end=self.close.location)

    def to_tokens(self) -> list[Token]:
        return [_ident_token(self.name), self.paren, *self.tokens, self.close]


def parse_attr_arg(stream: ParseStream) -> AttrArg:
    """Parse one attribute argument."""
    if stream.peek(TokenType.BANG):
        bang = stream.advance()
        return Not(bang, parse_ident(stream))

    name = parse_ident(stream)

    if stream.is_empty() or stream.peek(TokenType.COMMA):
        return Flag(name)

    if stream.peek(TokenType.LPAREN):
        paren, tokens, close = stream.parse_group(TokenType.LPAREN)
        return SubAttr(name, paren, tokens, close)

    if stream.peek(TokenType.EQUALS):
        eq = stream.advance()
        value = stream.take_until_top_level(TokenType.COMMA)
        if not value:
            raise stream.error("expected value after `=`")
        return KeyValue(name, eq, value)

    raise stream.error(EXPECTED_ARG_MESSAGE)


def parse_attr_args(
    tokens: list[Token] | tuple[Token, ...],
    end: SourceLocation | None = None,
) -> list[AttrArg]:
    """Parse a comma-separated attribute body (a trailing comma is allowed)."""
    return parse_tokens(lambda stream: parse_terminated(stream, parse_attr_arg), tokens, end=end)
