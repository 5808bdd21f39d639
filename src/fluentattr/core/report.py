"""
Serializable summaries of parsed attributes and mutators.

Used by the CLI for `--json` output.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .attr_args import AttrArg, Flag, KeyValue, Not, SubAttr
from .lexer import tokens_to_source
from .location import SourceLocation
from .mutator import Mutator
from .syntax import TypeNode


class ArgReport(BaseModel):
    """One parsed attribute argument."""

    kind: str
    name: str
    payload: str | None = None
    location: SourceLocation | None = None

    model_config = ConfigDict(frozen=True)


class MutatorReport(BaseModel):
    """Outward view of a mutator method.

    Attributes:
        name: Method name
        outer_signature: Signature of the builder-side method
        arguments: Forwarding argument names, in call order
        required_fields: Fields that must be set before the mutator is callable
    """

    name: str
    outer_signature: str
    arguments: list[str] = Field(default_factory=list)
    required_fields: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


def describe_arg(arg: AttrArg) -> ArgReport:
    if isinstance(arg, Flag):
        kind, payload = "flag", None
    elif isinstance(arg, KeyValue):
        kind, payload = "key-value", tokens_to_source(list(arg.value))
    elif isinstance(arg, SubAttr):
        kind, payload = "nested", tokens_to_source(list(arg.tokens))
    elif isinstance(arg, Not):
        kind, payload = "negation", None
    else:
        raise TypeError(f"Unknown attribute argument: {arg!r}")
    return ArgReport(kind=kind, name=arg.name.display, payload=payload, location=arg.location)


def describe_mutator(mutator: Mutator, output_type: TypeNode) -> MutatorReport:
    return MutatorReport(
        name=mutator.name.display,
        outer_signature=str(mutator.outer_signature(output_type)),
        arguments=[ident.name for ident in mutator.arguments()],
        required_fields=mutator.required_field_names(),
    )
