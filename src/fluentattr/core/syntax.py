"""
Syntax tree for annotated items.

Covers the slice of item syntax the attribute core consumes: identifiers,
paths, types, patterns, a small value-expression subset, outer attributes
and function items. Nodes are frozen dataclasses; source locations are
carried for diagnostics but never take part in equality. ``str(node)``
renders canonical source text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from .lexer import Token, TokenType, tokens_to_source
from .location import SourceLocation

# =============================================================================
# Identifiers and paths
# =============================================================================


@dataclass(frozen=True)
class Ident:
    """An identifier. Raw identifiers keep their `r#` prefix in ``name``."""

    name: str
    location: SourceLocation | None = field(default=None, compare=False)

    @property
    def display(self) -> str:
        """Name for messages and generated labels, without the `r#` prefix."""
        from .primitives import strip_raw_identifier_prefix

        return strip_raw_identifier_prefix(self.name)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Lifetime:
    """A lifetime such as `'a` (``name`` includes the quote)."""

    name: str
    location: SourceLocation | None = field(default=None, compare=False)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class AssocBinding:
    """`Item = Type` inside generic arguments."""

    ident: Ident
    ty: TypeNode

    def __str__(self) -> str:
        return f"{self.ident} = {self.ty}"


@dataclass(frozen=True)
class ConstArg:
    """A const generic argument (literal or braced block)."""

    expr: Expr

    def __str__(self) -> str:
        return str(self.expr)


GenericArg = Union["TypeNode", Lifetime, AssocBinding, ConstArg]


@dataclass(frozen=True)
class GenericArgs:
    """Angle-bracketed arguments: `<T, 'a>` or turbofish `::<T>`."""

    args: tuple[GenericArg, ...] = ()
    turbofish: bool = False

    def __str__(self) -> str:
        inner = ", ".join(str(arg) for arg in self.args)
        prefix = "::" if self.turbofish else ""
        return f"{prefix}<{inner}>"


@dataclass(frozen=True)
class ParenthesizedArgs:
    """`Fn(A, B) -> C` style arguments on a path segment."""

    inputs: tuple[TypeNode, ...] = ()
    output: TypeNode | None = None

    def __str__(self) -> str:
        inner = ", ".join(str(ty) for ty in self.inputs)
        if self.output is not None:
            return f"({inner}) -> {self.output}"
        return f"({inner})"


@dataclass(frozen=True)
class PathSegment:
    ident: Ident
    arguments: GenericArgs | ParenthesizedArgs | None = None

    def __str__(self) -> str:
        if self.arguments is None:
            return str(self.ident)
        return f"{self.ident}{self.arguments}"


@dataclass(frozen=True)
class Path:
    """A (possibly qualified, possibly generic) path like `::std::vec::Vec<T>`."""

    segments: tuple[PathSegment, ...]
    leading_colon: bool = False

    def get_ident(self) -> Ident | None:
        """The identifier, if this path is a single plain identifier."""
        if self.leading_colon or len(self.segments) != 1:
            return None
        segment = self.segments[0]
        if segment.arguments is not None:
            return None
        return segment.ident

    def is_ident(self, name: str) -> bool:
        ident = self.get_ident()
        return ident is not None and ident.name == name

    @property
    def location(self) -> SourceLocation | None:
        return self.segments[0].ident.location if self.segments else None

    def __str__(self) -> str:
        text = "::".join(str(segment) for segment in self.segments)
        return f"::{text}" if self.leading_colon else text


# =============================================================================
# Types
# =============================================================================


@dataclass(frozen=True)
class PathType:
    path: Path

    def __str__(self) -> str:
        return str(self.path)


@dataclass(frozen=True)
class ReferenceType:
    elem: TypeNode
    mutable: bool = False
    lifetime: Lifetime | None = None

    def __str__(self) -> str:
        parts = ["&"]
        if self.lifetime is not None:
            parts.append(f"{self.lifetime} ")
        if self.mutable:
            parts.append("mut ")
        parts.append(str(self.elem))
        return "".join(parts)


@dataclass(frozen=True)
class PointerType:
    elem: TypeNode
    mutable: bool = False

    def __str__(self) -> str:
        qualifier = "mut" if self.mutable else "const"
        return f"*{qualifier} {self.elem}"


@dataclass(frozen=True)
class TupleType:
    """A tuple type. ``trailing_comma`` distinguishes `(T,)` from `(T)`."""

    elems: tuple[TypeNode, ...] = ()
    trailing_comma: bool = False

    def __str__(self) -> str:
        inner = ", ".join(str(elem) for elem in self.elems)
        if self.elems and self.trailing_comma:
            inner += ","
        return f"({inner})"


@dataclass(frozen=True)
class ParenType:
    elem: TypeNode

    def __str__(self) -> str:
        return f"({self.elem})"


@dataclass(frozen=True)
class SliceType:
    elem: TypeNode

    def __str__(self) -> str:
        return f"[{self.elem}]"


@dataclass(frozen=True)
class ArrayType:
    elem: TypeNode
    length: Expr

    def __str__(self) -> str:
        return f"[{self.elem}; {self.length}]"


@dataclass(frozen=True)
class NeverType:
    def __str__(self) -> str:
        return "!"


@dataclass(frozen=True)
class InferType:
    def __str__(self) -> str:
        return "_"


@dataclass(frozen=True)
class TraitBound:
    path: Path
    maybe: bool = False

    def __str__(self) -> str:
        return f"?{self.path}" if self.maybe else str(self.path)


Bound = Union[TraitBound, Lifetime]


@dataclass(frozen=True)
class ImplTraitType:
    bounds: tuple[Bound, ...]

    def __str__(self) -> str:
        return "impl " + " + ".join(str(bound) for bound in self.bounds)


@dataclass(frozen=True)
class TraitObjectType:
    bounds: tuple[Bound, ...]
    dyn: bool = True

    def __str__(self) -> str:
        text = " + ".join(str(bound) for bound in self.bounds)
        return f"dyn {text}" if self.dyn else text


@dataclass(frozen=True)
class BareFnType:
    inputs: tuple[TypeNode, ...] = ()
    output: TypeNode | None = None

    def __str__(self) -> str:
        inner = ", ".join(str(ty) for ty in self.inputs)
        if self.output is not None:
            return f"fn({inner}) -> {self.output}"
        return f"fn({inner})"


TypeNode = Union[
    PathType,
    ReferenceType,
    PointerType,
    TupleType,
    ParenType,
    SliceType,
    ArrayType,
    NeverType,
    InferType,
    ImplTraitType,
    TraitObjectType,
    BareFnType,
]


# =============================================================================
# Patterns
# =============================================================================


@dataclass(frozen=True)
class IdentPat:
    ident: Ident
    by_ref: bool = False
    mutable: bool = False

    def __str__(self) -> str:
        prefix = ("ref " if self.by_ref else "") + ("mut " if self.mutable else "")
        return f"{prefix}{self.ident}"


@dataclass(frozen=True)
class WildPat:
    def __str__(self) -> str:
        return "_"


@dataclass(frozen=True)
class RestPat:
    def __str__(self) -> str:
        return ".."


@dataclass(frozen=True)
class TuplePat:
    elems: tuple[Pattern, ...] = ()

    def __str__(self) -> str:
        inner = ", ".join(str(elem) for elem in self.elems)
        if len(self.elems) == 1 and not isinstance(self.elems[0], RestPat):
            inner += ","
        return f"({inner})"


@dataclass(frozen=True)
class RefPat:
    pat: Pattern
    mutable: bool = False

    def __str__(self) -> str:
        return f"&mut {self.pat}" if self.mutable else f"&{self.pat}"


@dataclass(frozen=True)
class TupleStructPat:
    path: Path
    elems: tuple[Pattern, ...] = ()

    def __str__(self) -> str:
        inner = ", ".join(str(elem) for elem in self.elems)
        return f"{self.path}({inner})"


@dataclass(frozen=True)
class StructPat:
    """`Point { x, y: (a, b), .. }`; the field list is kept as tokens."""

    path: Path
    fields: tuple[Token, ...] = ()

    def __str__(self) -> str:
        inner = tokens_to_source(list(self.fields))
        return f"{self.path} {{ {inner} }}" if inner else f"{self.path} {{}}"


Pattern = Union[IdentPat, WildPat, RestPat, TuplePat, RefPat, TupleStructPat, StructPat]


# =============================================================================
# Expressions
# =============================================================================


class LitKind(Enum):
    STR = "str"
    CHAR = "char"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"


_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", "'": "'", '"': '"'}


@dataclass(frozen=True)
class LitExpr:
    """A literal. ``text`` is the exact source text."""

    kind: LitKind
    text: str
    location: SourceLocation | None = field(default=None, compare=False)

    @property
    def value(self) -> str | int | float | bool:
        """The decoded literal value."""
        if self.kind is LitKind.BOOL:
            return self.text == "true"
        if self.kind is LitKind.INT:
            return _decode_int(self.text)
        if self.kind is LitKind.FLOAT:
            return float(_strip_suffix(self.text, _FLOAT_SUFFIXES).replace("_", ""))
        return _decode_quoted(self.text)

    def __str__(self) -> str:
        return self.text


_INT_SUFFIXES = ("usize", "isize", "u128", "i128", "u64", "i64", "u32", "i32", "u16", "i16", "u8", "i8")
_FLOAT_SUFFIXES = ("f32", "f64")


def _strip_suffix(text: str, suffixes: tuple[str, ...]) -> str:
    for suffix in suffixes:
        if text.endswith(suffix):
            return text[: -len(suffix)]
    return text


def _decode_int(text: str) -> int:
    digits = _strip_suffix(text, _INT_SUFFIXES).replace("_", "")
    if digits[:2].lower() in ("0x", "0o", "0b"):
        return int(digits, 0)
    return int(digits, 10)


def _decode_quoted(text: str) -> str:
    body = text[1:] if text.startswith("b") else text
    if body.startswith("r"):
        hashes = len(body) - len(body[1:].lstrip("#")) - 1
        return body[2 + hashes : len(body) - 1 - hashes]
    inner = body[1:-1]
    chars: list[str] = []
    i = 0
    while i < len(inner):
        c = inner[i]
        if c == "\\" and i + 1 < len(inner):
            chars.append(_ESCAPES.get(inner[i + 1], inner[i + 1]))
            i += 2
            continue
        chars.append(c)
        i += 1
    return "".join(chars)


@dataclass(frozen=True)
class PathExpr:
    path: Path

    def __str__(self) -> str:
        return str(self.path)


@dataclass(frozen=True)
class ArrayExpr:
    elems: tuple[Expr, ...] = ()
    location: SourceLocation | None = field(default=None, compare=False)

    def __str__(self) -> str:
        return "[" + ", ".join(str(elem) for elem in self.elems) + "]"


@dataclass(frozen=True)
class TupleExpr:
    elems: tuple[Expr, ...] = ()

    def __str__(self) -> str:
        inner = ", ".join(str(elem) for elem in self.elems)
        if len(self.elems) == 1:
            inner += ","
        return f"({inner})"


@dataclass(frozen=True)
class ParenExpr:
    expr: Expr

    def __str__(self) -> str:
        return f"({self.expr})"


@dataclass(frozen=True)
class UnaryExpr:
    op: str
    expr: Expr

    def __str__(self) -> str:
        if self.op == "?":
            return f"{self.expr}?"
        return f"{self.op}{self.expr}"


@dataclass(frozen=True)
class BinaryExpr:
    """Binary operation, kept left-associative in source order."""

    left: Expr
    op: str
    right: Expr

    def __str__(self) -> str:
        return f"{self.left} {self.op} {self.right}"


@dataclass(frozen=True)
class CallExpr:
    func: Expr
    args: tuple[Expr, ...] = ()

    def __str__(self) -> str:
        return f"{self.func}(" + ", ".join(str(arg) for arg in self.args) + ")"


@dataclass(frozen=True)
class FieldExpr:
    base: Expr
    member: Ident | str

    def __str__(self) -> str:
        return f"{self.base}.{self.member}"


@dataclass(frozen=True)
class MethodCallExpr:
    receiver: Expr
    method: Ident
    turbofish: GenericArgs | None = None
    args: tuple[Expr, ...] = ()

    def __str__(self) -> str:
        generics = str(self.turbofish) if self.turbofish is not None else ""
        return f"{self.receiver}.{self.method}{generics}(" + ", ".join(str(arg) for arg in self.args) + ")"


@dataclass(frozen=True)
class MacroExpr:
    """`name!(…)`, `name![…]` or `name!{…}` with opaque contents."""

    path: Path
    delimiter: TokenType
    tokens: tuple[Token, ...] = ()

    def __str__(self) -> str:
        close = {TokenType.LPAREN: ")", TokenType.LBRACKET: "]", TokenType.LBRACE: "}"}[self.delimiter]
        return f"{self.path}!{self.delimiter.value}{tokens_to_source(list(self.tokens))}{close}"


@dataclass(frozen=True)
class BlockExpr:
    tokens: tuple[Token, ...] = ()

    def __str__(self) -> str:
        inner = tokens_to_source(list(self.tokens))
        return f"{{ {inner} }}" if inner else "{}"


Expr = Union[
    LitExpr,
    PathExpr,
    ArrayExpr,
    TupleExpr,
    ParenExpr,
    UnaryExpr,
    BinaryExpr,
    CallExpr,
    FieldExpr,
    MethodCallExpr,
    MacroExpr,
    BlockExpr,
]


# =============================================================================
# Attributes and items
# =============================================================================


class MetaKind(Enum):
    """Shape of an attribute's body."""

    PATH = "path"  # #[inline]
    LIST = "list"  # #[builder(…)]
    NAME_VALUE = "name_value"  # #[doc = "…"]


@dataclass(frozen=True)
class Attribute:
    """An outer attribute `#[…]`.

    ``tokens`` holds the list body (inside the parentheses) for
    ``MetaKind.LIST`` and the value tokens for ``MetaKind.NAME_VALUE``.
    ``body_location`` points at the opening delimiter of a list body.
    """

    path: Path
    kind: MetaKind = MetaKind.PATH
    tokens: tuple[Token, ...] = ()
    location: SourceLocation | None = field(default=None, compare=False)
    body_location: SourceLocation | None = field(default=None, compare=False)

    def __str__(self) -> str:
        body = tokens_to_source(list(self.tokens))
        if self.kind is MetaKind.LIST:
            return f"#[{self.path}({body})]"
        if self.kind is MetaKind.NAME_VALUE:
            return f"#[{self.path} = {body}]"
        return f"#[{self.path}]"


@dataclass(frozen=True)
class Visibility:
    """`pub`, or a restricted form such as `pub(crate)` (tokens inside the parens)."""

    restriction: tuple[Token, ...] | None = None

    def __str__(self) -> str:
        if self.restriction is None:
            return "pub"
        return f"pub({tokens_to_source(list(self.restriction))})"


def _attrs_prefix(attrs: tuple[Attribute, ...]) -> str:
    return "".join(f"{attr} " for attr in attrs)


@dataclass(frozen=True)
class Receiver:
    """A `self` parameter.

    ``reference`` covers `&self` / `&'a mut self`; a typed receiver such as
    `self: Box<Self>` has ``ty`` set instead.
    """

    reference: bool = False
    mutable: bool = False
    lifetime: Lifetime | None = None
    ty: TypeNode | None = None
    attrs: tuple[Attribute, ...] = ()
    location: SourceLocation | None = field(default=None, compare=False)

    @property
    def is_reference(self) -> bool:
        """True for `&self`-style receivers, explicit or typed (`self: &mut Self`)."""
        if self.reference:
            return True
        return isinstance(self.ty, ReferenceType) and str(self.ty.elem) == "Self"

    def __str__(self) -> str:
        prefix = _attrs_prefix(self.attrs)
        if self.ty is not None:
            return f"{prefix}{'mut ' if self.mutable else ''}self: {self.ty}"
        if self.reference:
            lifetime = f"{self.lifetime} " if self.lifetime is not None else ""
            return f"{prefix}&{lifetime}{'mut ' if self.mutable else ''}self"
        return f"{prefix}{'mut ' if self.mutable else ''}self"


@dataclass(frozen=True)
class TypedParam:
    pat: Pattern
    ty: TypeNode
    attrs: tuple[Attribute, ...] = ()
    location: SourceLocation | None = field(default=None, compare=False)

    def __str__(self) -> str:
        return f"{_attrs_prefix(self.attrs)}{self.pat}: {self.ty}"


FnArg = Union[Receiver, TypedParam]


@dataclass(frozen=True)
class Signature:
    """Function signature.

    Generic parameters (angle brackets included) and the where-clause are
    kept as tokens; nothing in the attribute core inspects them.
    """

    ident: Ident
    inputs: tuple[FnArg, ...] = ()
    output: TypeNode | None = None
    qualifiers: tuple[str, ...] = ()
    abi: str | None = None
    generics: tuple[Token, ...] = ()
    where_clause: tuple[Token, ...] = ()
    paren_location: SourceLocation | None = field(default=None, compare=False)

    def __str__(self) -> str:
        parts = list(self.qualifiers)
        if self.abi is not None:
            parts.append(f"extern {self.abi}")
        parts.append("fn")
        head = " ".join(parts)
        generics = tokens_to_source(list(self.generics))
        inputs = ", ".join(str(arg) for arg in self.inputs)
        text = f"{head} {self.ident}{generics}({inputs})"
        if self.output is not None:
            text += f" -> {self.output}"
        if self.where_clause:
            text += " " + tokens_to_source(list(self.where_clause))
        return text


@dataclass(frozen=True)
class FunctionDecl:
    """A function item: attributes, visibility, signature and body tokens."""

    sig: Signature
    attrs: tuple[Attribute, ...] = ()
    visibility: Visibility | None = None
    body: tuple[Token, ...] = ()

    def __str__(self) -> str:
        lines = [str(attr) for attr in self.attrs]
        vis = f"{self.visibility} " if self.visibility is not None else ""
        body = tokens_to_source(list(self.body))
        lines.append(f"{vis}{self.sig} {{ {body} }}" if body else f"{vis}{self.sig} {{}}")
        return "\n".join(lines)


def expr_location(expr: Expr) -> SourceLocation | None:
    """Best available source location for an expression."""
    if isinstance(expr, (LitExpr, ArrayExpr)):
        return expr.location
    if isinstance(expr, (PathExpr, MacroExpr)):
        return expr.path.location
    if isinstance(expr, (UnaryExpr, ParenExpr)):
        return expr_location(expr.expr)
    if isinstance(expr, BinaryExpr):
        return expr_location(expr.left)
    if isinstance(expr, CallExpr):
        return expr_location(expr.func)
    if isinstance(expr, FieldExpr):
        return expr_location(expr.base)
    if isinstance(expr, MethodCallExpr):
        return expr_location(expr.receiver)
    if isinstance(expr, TupleExpr) and expr.elems:
        return expr_location(expr.elems[0])
    if isinstance(expr, BlockExpr) and expr.tokens:
        return expr.tokens[0].location
    return None
