"""
Token-level helpers shared by attribute consumers and code generation.

Turns identifiers and paths into type references, builds placeholder
types, and handles raw-identifier display names.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from .errors import InvalidValueError, make_error
from .syntax import (
    Expr,
    GenericArg,
    GenericArgs,
    Ident,
    LitExpr,
    LitKind,
    Path,
    PathSegment,
    PathType,
    TupleType,
    TypeNode,
    Visibility,
    expr_location,
)

RAW_IDENTIFIER_PREFIX = "r#"


def path_to_single_string(path: Path) -> str | None:
    """
    Return the name of a plain single-segment path.

    Multi-segment (`a::b`), globally qualified (`::a`) and generic (`a<T>`)
    paths yield None.
    """
    if path.leading_colon:
        return None
    if len(path.segments) != 1:
        return None
    segment = path.segments[0]
    if segment.arguments is not None:
        return None
    return segment.ident.name


def identifier_to_type_reference(ident: Ident) -> PathType:
    """Wrap an identifier as a single-segment path type without generics."""
    return PathType(Path((PathSegment(ident),)))


def empty_type() -> TypeNode:
    """The unit type `()`."""
    return empty_type_tuple()


def empty_type_tuple() -> TupleType:
    return TupleType()


def type_tuple(elements: Iterable[TypeNode]) -> TupleType:
    """
    Build a tuple type from ``elements``.

    A non-empty tuple always ends in a trailing comma, so a single element
    renders as `(T,)` rather than the parenthesized type `(T)`.
    """
    elems = tuple(elements)
    return TupleType(elems, trailing_comma=bool(elems))


def modify_generic_args(
    args: GenericArgs | None,
    mutator: Callable[[list[GenericArg]], None],
) -> GenericArgs:
    """
    Copy ``args`` (or start from `<>`), let ``mutator`` edit the argument list
    in place, and return the result.
    """
    editable = list(args.args) if args is not None else []
    mutator(editable)
    return GenericArgs(tuple(editable))


def strip_raw_identifier_prefix(name: str) -> str:
    """Remove a leading `r#`. Display only; never use the result for lookups."""
    if name.startswith(RAW_IDENTIFIER_PREFIX):
        return name[len(RAW_IDENTIFIER_PREFIX) :]
    return name


def first_visibility(visibilities: Sequence[Visibility | None]) -> Visibility:
    """Return the first explicit visibility in ``visibilities``."""
    for visibility in visibilities:
        if visibility is not None:
            return visibility
    raise ValueError("need at least one visibility in the list")


def public_visibility() -> Visibility:
    return Visibility()


def expr_to_lit_string(expr: Expr) -> str:
    """Return the value of a string literal expression."""
    if isinstance(expr, LitExpr) and expr.kind is LitKind.STR:
        value = expr.value
        assert isinstance(value, str)
        return value
    raise make_error(InvalidValueError, "attribute only allows str values", expr_location(expr))

