"""
Mutator methods.

A mutator is a method written against the builder's field storage,

    #[mutator(requires = [x, y])]
    fn shift(&mut self, dx: i32, (a, b): (i32, i32)) { … }

that the generator re-exposes on the builder as a chainable method. This
module parses such a method, strips its `#[mutator(…)]` attributes into a
required-field set, normalizes the receiver to `&mut self`, and derives the
outward signature plus the argument list for forwarding to the original
body. Both are keyed by parameter position: parameters whose pattern is not
a plain identifier get the synthesized name `__<position>`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from functools import partial

from .apply_meta import ApplyMeta
from .attr_args import AttrArg
from .errors import InvalidValueError, StructuralError, UnknownKeyError, make_error
from .lexer import DEFAULT_FILE, tokenize
from .syntax import (
    ArrayExpr,
    FunctionDecl,
    Ident,
    IdentPat,
    PathExpr,
    Receiver,
    Signature,
    TypedParam,
    TypeNode,
    expr_location,
)
from .syntax_parser import ParseStream, parse_expr, parse_function, parse_tokens

logger = logging.getLogger(__name__)

DEFAULT_MUTATOR_ATTRIBUTE = "mutator"
RECEIVER_MESSAGE = "mutator must take a reference to the receiver"


class MutatorAttribute(ApplyMeta):
    """Configuration carried by `#[mutator(…)]`; only `requires` is recognized."""

    def __init__(self) -> None:
        self.requires: set[Ident] = set()

    def apply_one(self, arg: AttrArg) -> None:
        if arg.name.name != "requires":
            raise make_error(UnknownKeyError, "only `requires` is supported", arg.location)

        value = arg.key_value().parse_value(parse_expr)
        if not isinstance(value, ArrayExpr):
            raise make_error(
                InvalidValueError,
                "only a list of field names [field1, field2, …] is supported",
                expr_location(value),
            )

        fields = []
        for elem in value.elems:
            ident = elem.path.get_ident() if isinstance(elem, PathExpr) else None
            if ident is None:
                raise make_error(InvalidValueError, "expected field name", expr_location(elem))
            fields.append(ident)
        self.requires.update(fields)


def _param_ident(position: int, param: TypedParam) -> Ident:
    """Forwarding name of a typed parameter at ``position`` (receiver included)."""
    if isinstance(param.pat, IdentPat):
        return Ident(param.pat.ident.name, param.pat.ident.location)
    return Ident(f"__{position}", param.location)


@dataclass(frozen=True)
class Mutator:
    """A parsed mutator method and the fields it requires."""

    fun: FunctionDecl
    required_fields: frozenset[Ident]

    @classmethod
    def parse(cls, stream: ParseStream, attribute_name: str = DEFAULT_MUTATOR_ATTRIBUTE) -> Mutator:
        """
        Parse a mutator method.

        Args:
            stream: Tokens of the annotated function
            attribute_name: Name of the attribute holding mutator settings

        Raises:
            GrammarError: If the function or an attribute body does not parse
            UnknownKeyError / InvalidValueError: For bad `#[mutator(…)]` settings
            StructuralError: If the method has no reference receiver
        """
        fun = parse_function(stream)

        attribute = MutatorAttribute()
        kept = []
        for attr in fun.attrs:
            if attr.path.is_ident(attribute_name):
                attribute.apply_attribute(attr)
            else:
                kept.append(attr)

        inputs = fun.sig.inputs
        first = inputs[0] if inputs else None
        if not isinstance(first, Receiver) or not first.is_reference:
            location = first.location if first is not None else fun.sig.paren_location
            raise make_error(StructuralError, RECEIVER_MESSAGE, location)

        receiver = Receiver(reference=True, mutable=True, location=first.location)
        sig = replace(fun.sig, inputs=(receiver, *inputs[1:]))
        fun = replace(fun, attrs=tuple(kept), sig=sig)

        mutator = cls(fun=fun, required_fields=frozenset(attribute.requires))
        logger.debug(
            "Parsed mutator %s requiring %s",
            mutator.name.display,
            mutator.required_field_names(),
        )
        return mutator

    @property
    def name(self) -> Ident:
        return self.fun.sig.ident

    def required_field_names(self) -> list[str]:
        """Display names of the required fields, sorted."""
        return sorted(field.display for field in self.required_fields)

    def outer_signature(self, output_type: TypeNode) -> Signature:
        """Signature for the builder-side method: `self` by value, positional names."""
        inputs = []
        for position, arg in enumerate(self.fun.sig.inputs):
            if isinstance(arg, Receiver):
                inputs.append(Receiver(location=arg.location))
            else:
                inputs.append(replace(arg, pat=IdentPat(_param_ident(position, arg))))
        return replace(self.fun.sig, inputs=tuple(inputs), output=output_type)

    def arguments(self) -> list[Ident]:
        """Arguments for calling the original method from the builder-side method."""
        return [
            _param_ident(position, arg)
            for position, arg in enumerate(self.fun.sig.inputs)
            if isinstance(arg, TypedParam)
        ]


def parse_mutator(
    text: str,
    file: str = DEFAULT_FILE,
    attribute_name: str = DEFAULT_MUTATOR_ATTRIBUTE,
) -> Mutator:
    """
    Convenience function to parse a mutator from source text.

    Args:
        text: Source of one annotated function
        file: Source file name (for error reporting)
        attribute_name: Name of the attribute holding mutator settings

    Returns:
        Parsed Mutator
    """
    parser = partial(Mutator.parse, attribute_name=attribute_name)
    return parse_tokens(parser, tokenize(text, file))
