"""
Configuration protocol for attribute consumers.

A configuration record subclasses ``ApplyMeta`` and implements
``apply_one``; the base class supplies the plumbing for whole attribute
bodies and nested `name(…)` groups. Arguments are applied left to right
and the first error propagates unchanged. Nothing is rolled back, so a
record that raised must be discarded by the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from .attr_args import AttrArg, parse_attr_args
from .errors import GrammarError, make_error
from .lexer import Token, TokenType
from .location import SourceLocation
from .syntax import Attribute, MetaKind

EMPTY_BODY_MESSAGE = "expected a parenthesized argument list"


class ApplyMeta(ABC):
    """Capability of consuming parsed attribute arguments."""

    @abstractmethod
    def apply_one(self, arg: AttrArg) -> None:
        """
        Apply a single argument.

        Implementations must raise for any name they do not recognize,
        typically via ``arg.incorrect_type()`` or an ``UnknownKeyError``.
        """

    def apply_nested(self, arg: AttrArg) -> None:
        """Apply every argument inside a `name(…)` group."""
        for nested in arg.sub_attr().args():
            self.apply_one(nested)

    def apply_from_attribute_body(
        self,
        tokens: Sequence[Token],
        location: SourceLocation | None = None,
    ) -> None:
        """
        Parse an attribute body and apply its arguments in order.

        Args:
            tokens: Tokens inside the attribute's parentheses
            location: Where to report an empty body
        """
        body = [token for token in tokens if token.type is not TokenType.EOF]
        if not body:
            if location is None and tokens:
                location = tokens[-1].location
            raise make_error(GrammarError, EMPTY_BODY_MESSAGE, location)
        for arg in parse_attr_args(body):
            self.apply_one(arg)

    def apply_attribute(self, attr: Attribute) -> None:
        """Apply a `#[name(…)]` attribute; other attribute forms are rejected."""
        if attr.kind is not MetaKind.LIST:
            raise make_error(
                GrammarError,
                f"{EMPTY_BODY_MESSAGE}, as in `{attr.path}(…)`",
                attr.location,
            )
        self.apply_from_attribute_body(attr.tokens, attr.body_location or attr.location)
