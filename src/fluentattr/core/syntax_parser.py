"""
Recursive descent parser for annotated items.

Provides ``ParseStream`` (token navigation, matching, and error generation)
and the parse functions for every node in ``syntax``. A parse function takes
a ``ParseStream`` and returns one node; ``parse_tokens`` and ``parse_str``
run one to completion over a token list or source text.

Grammar (subset):
    item_fn     → attr* visibility? qualifier* "fn" IDENT generics? "(" fn_args ")" ("->" type)? where? block
    fn_arg      → attr* (receiver | pattern ":" type)
    receiver    → "&" LIFETIME? "mut"? "self" | "mut"? "self" (":" type)?
    attr        → "#" "[" path ( "(" tokens ")" | "=" tokens )? "]"
    type        → path_type | "&" LIFETIME? "mut"? type | "*" ("const"|"mut") type
                | "(" (type ("," type)* ","?)? ")" | "[" type (";" expr)? "]"
                | "!" | "_" | "impl" bounds | "dyn" bounds | "fn" "(" types ")" ("->" type)?
    pattern     → "_" | ".." | "&" "mut"? pattern | "(" patterns ")"
                | "ref"? "mut"? IDENT | path ("(" patterns ")" | "{" tokens "}")?
    expr        → unary (binop unary)*
    unary       → ("-" | "!") unary | postfix
    postfix     → primary ("(" exprs ")" | "." IDENT ("(" exprs ")")?)*
    primary     → literal | path | path "!" group | "[" exprs "]" | "(" exprs ")" | "{" tokens "}"
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from .errors import FluentAttrError, GrammarError, make_error
from .lexer import CLOSE_DELIMITERS, DEFAULT_FILE, OPEN_DELIMITERS, Token, TokenType, tokenize
from .location import SourceLocation
from .syntax import (
    ArrayExpr,
    ArrayType,
    AssocBinding,
    Attribute,
    BareFnType,
    BinaryExpr,
    BlockExpr,
    Bound,
    CallExpr,
    ConstArg,
    Expr,
    FieldExpr,
    FnArg,
    FunctionDecl,
    GenericArg,
    GenericArgs,
    Ident,
    IdentPat,
    ImplTraitType,
    InferType,
    Lifetime,
    LitExpr,
    LitKind,
    MacroExpr,
    MetaKind,
    MethodCallExpr,
    NeverType,
    ParenExpr,
    ParenthesizedArgs,
    ParenType,
    Path,
    PathExpr,
    PathSegment,
    PathType,
    Pattern,
    PointerType,
    Receiver,
    ReferenceType,
    RefPat,
    RestPat,
    Signature,
    SliceType,
    StructPat,
    TraitBound,
    TraitObjectType,
    TupleExpr,
    TuplePat,
    TupleStructPat,
    TupleType,
    TypedParam,
    TypeNode,
    UnaryExpr,
    Visibility,
    WildPat,
)

T = TypeVar("T")

# Reserved words that cannot be used as plain identifiers (raw identifiers
# like `r#type` are always accepted).
KEYWORDS = frozenset(
    {
        "_", "abstract", "as", "async", "await", "become", "box", "break", "const",
        "continue", "crate", "do", "dyn", "else", "enum", "extern", "false", "final",
        "fn", "for", "if", "impl", "in", "let", "loop", "macro", "match", "mod", "move",
        "mut", "override", "priv", "pub", "ref", "return", "Self", "self", "static",
        "struct", "super", "trait", "true", "try", "type", "typeof", "unsafe",
        "unsized", "use", "virtual", "where", "while", "yield",
    }
)  # fmt: skip

# Keywords that may still start a path segment
PATH_SEGMENT_KEYWORDS = frozenset({"self", "Self", "super", "crate"})

FN_QUALIFIERS = ("const", "async", "unsafe")

_BINARY_OPERATORS = {
    TokenType.PLUS,
    TokenType.MINUS,
    TokenType.STAR,
    TokenType.SLASH,
    TokenType.PERCENT,
    TokenType.CARET,
    TokenType.PIPE,
    TokenType.EQ_EQ,
    TokenType.NOT_EQ,
    TokenType.LT,
    TokenType.GT,
}


class ParseStream:
    """
    Cursor over a token list with recursive descent helpers.

    The stream never crosses its own end: a stream over the inside of a
    delimited group stops at the group's closing delimiter, whose location
    is used when reporting "unexpected end of input".
    """

    def __init__(self, tokens: list[Token] | tuple[Token, ...], end: SourceLocation | None = None):
        """
        Initialize stream.

        Args:
            tokens: Tokens to parse (a trailing EOF token is optional)
            end: Location reported for errors at end of input
        """
        token_list = list(tokens)
        if token_list and token_list[-1].type is TokenType.EOF:
            eof = token_list.pop()
            end = end or eof.location
        if end is None and token_list:
            end = token_list[-1].location
        self.tokens = token_list
        self.end = end
        self.pos = 0
        self._eof = Token(TokenType.EOF, "", end)

    def current_token(self) -> Token:
        """Get current token (EOF once the stream is exhausted)."""
        if self.pos >= len(self.tokens):
            return self._eof
        return self.tokens[self.pos]

    def peek_token(self, offset: int = 1) -> Token:
        """Peek ahead at token."""
        pos = self.pos + offset
        if pos >= len(self.tokens):
            return self._eof
        return self.tokens[pos]

    def advance(self) -> Token:
        """Consume and return current token."""
        token = self.current_token()
        if token.type is not TokenType.EOF:
            self.pos += 1
        return token

    def is_empty(self) -> bool:
        return self.pos >= len(self.tokens)

    def peek(self, token_type: TokenType, offset: int = 0) -> bool:
        return self.peek_token(offset).type is token_type

    def peek_keyword(self, word: str, offset: int = 0) -> bool:
        token = self.peek_token(offset)
        return token.type is TokenType.IDENTIFIER and token.value == word

    def match(self, *token_types: TokenType) -> Token | None:
        """Consume the current token if it has one of the given types."""
        if self.current_token().type in token_types:
            return self.advance()
        return None

    def match_keyword(self, word: str) -> Token | None:
        if self.peek_keyword(word):
            return self.advance()
        return None

    def expect(self, token_type: TokenType) -> Token:
        """
        Expect a specific token type and consume it.

        Raises:
            GrammarError: If token doesn't match
        """
        if self.current_token().type is not token_type:
            raise self.error(f"expected `{token_type.value}`")
        return self.advance()

    def expect_keyword(self, word: str) -> Token:
        if not self.peek_keyword(word):
            raise self.error(f"expected `{word}`")
        return self.advance()

    def error(self, message: str, error_type: type[FluentAttrError] = GrammarError) -> FluentAttrError:
        """Build an error located at the current token (or the end of input)."""
        token = self.current_token()
        if token.type is TokenType.EOF:
            message = f"unexpected end of input, {message}"
        else:
            message = f"{message}, found `{token.value}`"
        return make_error(error_type, message, token.location)

    def parse_group(self, open_type: TokenType) -> tuple[Token, tuple[Token, ...], Token]:
        """
        Consume a balanced delimited group.

        Returns:
            Tuple of (opening token, inner tokens verbatim, closing token)
        """
        opener = self.expect(open_type)
        close_type = OPEN_DELIMITERS[open_type]
        depth = 0
        inner: list[Token] = []
        while True:
            token = self.current_token()
            if token.type is TokenType.EOF:
                raise make_error(GrammarError, f"unclosed delimiter `{opener.value}`", opener.location)
            if token.type in OPEN_DELIMITERS:
                depth += 1
            elif token.type in CLOSE_DELIMITERS:
                if depth == 0:
                    if token.type is not close_type:
                        raise self.error(f"expected `{close_type.value}`")
                    self.advance()
                    return opener, tuple(inner), token
                depth -= 1
            inner.append(self.advance())

    def group_stream(self, open_type: TokenType) -> tuple[Token, ParseStream]:
        """Consume a delimited group and return a stream over its contents."""
        opener, inner, closer = self.parse_group(open_type)
        return opener, ParseStream(inner, end=closer.location)

    def take_until_top_level(self, *stop_types: TokenType) -> tuple[Token, ...]:
        """Consume tokens up to (not including) a top-level stop token or the end."""
        taken: list[Token] = []
        while not self.is_empty() and self.current_token().type not in stop_types:
            token = self.current_token()
            if token.type in OPEN_DELIMITERS:
                opener, inner, closer = self.parse_group(token.type)
                taken.append(opener)
                taken.extend(inner)
                taken.append(closer)
            else:
                taken.append(self.advance())
        return tuple(taken)

    def take_rest(self) -> tuple[Token, ...]:
        rest = tuple(self.tokens[self.pos :])
        self.pos = len(self.tokens)
        return rest


# =============================================================================
# Running parsers
# =============================================================================


def parse_tokens(
    parser: Callable[[ParseStream], T],
    tokens: list[Token] | tuple[Token, ...],
    end: SourceLocation | None = None,
    error_type: type[FluentAttrError] = GrammarError,
) -> T:
    """
    Run ``parser`` over ``tokens``, requiring it to consume all of them.

    Grammar errors raised inside the parser are re-raised as ``error_type``
    (same message and location) so callers can classify the failure.
    """
    stream = ParseStream(tokens, end=end)
    try:
        result = parser(stream)
        if not stream.is_empty():
            raise stream.error("unexpected token")
    except GrammarError as e:
        if error_type is GrammarError:
            raise
        raise error_type(e.message, e.context) from e
    return result


def parse_str(parser: Callable[[ParseStream], T], text: str, file: str = DEFAULT_FILE) -> T:
    """Tokenize ``text`` and run ``parser`` over all of it."""
    return parse_tokens(parser, tokenize(text, file))


def parse_terminated(
    stream: ParseStream,
    parser: Callable[[ParseStream], T],
    separator: TokenType = TokenType.COMMA,
) -> list[T]:
    """Parse `item (sep item)* sep?` until the stream is exhausted."""
    items: list[T] = []
    while not stream.is_empty():
        items.append(parser(stream))
        if stream.is_empty():
            break
        stream.expect(separator)
    return items


# =============================================================================
# Identifiers and paths
# =============================================================================


def parse_ident(stream: ParseStream) -> Ident:
    """Parse a non-keyword identifier."""
    token = stream.current_token()
    if token.type is not TokenType.IDENTIFIER or token.value in KEYWORDS:
        raise stream.error("expected identifier")
    stream.advance()
    return Ident(token.value, token.location)


def parse_any_ident(stream: ParseStream) -> Ident:
    """Parse an identifier, keywords included."""
    token = stream.expect(TokenType.IDENTIFIER)
    return Ident(token.value, token.location)


def parse_lifetime(stream: ParseStream) -> Lifetime:
    token = stream.expect(TokenType.LIFETIME)
    return Lifetime(token.value, token.location)


def _parse_path_segment_ident(stream: ParseStream) -> Ident:
    token = stream.current_token()
    if token.type is TokenType.IDENTIFIER and token.value in PATH_SEGMENT_KEYWORDS:
        stream.advance()
        return Ident(token.value, token.location)
    return parse_ident(stream)


def parse_path(stream: ParseStream, expr_style: bool = False) -> Path:
    """
    Parse a path.

    In type position generic arguments follow a segment directly (`Vec<T>`);
    in expression position they need a turbofish (`Vec::<T>::new`).
    """
    leading_colon = stream.match(TokenType.PATH_SEP) is not None
    segments = [_parse_path_segment(stream, expr_style)]
    while stream.peek(TokenType.PATH_SEP):
        stream.advance()
        segments.append(_parse_path_segment(stream, expr_style))
    return Path(tuple(segments), leading_colon)


def _parse_path_segment(stream: ParseStream, expr_style: bool) -> PathSegment:
    ident = _parse_path_segment_ident(stream)
    if expr_style:
        if stream.peek(TokenType.PATH_SEP) and stream.peek(TokenType.LT, 1):
            stream.advance()
            return PathSegment(ident, parse_generic_args(stream, turbofish=True))
        return PathSegment(ident)
    if stream.peek(TokenType.LT):
        return PathSegment(ident, parse_generic_args(stream))
    if stream.peek(TokenType.PATH_SEP) and stream.peek(TokenType.LT, 1):
        stream.advance()
        return PathSegment(ident, parse_generic_args(stream, turbofish=True))
    if stream.peek(TokenType.LPAREN) and ident.name in ("Fn", "FnMut", "FnOnce"):
        return PathSegment(ident, _parse_parenthesized_args(stream))
    return PathSegment(ident)


def parse_generic_args(stream: ParseStream, turbofish: bool = False) -> GenericArgs:
    """Parse `<arg, arg, …>` (the turbofish `::` is consumed by the caller)."""
    stream.expect(TokenType.LT)
    args: list[GenericArg] = []
    while not stream.peek(TokenType.GT):
        args.append(_parse_generic_arg(stream))
        if not stream.match(TokenType.COMMA):
            break
    stream.expect(TokenType.GT)
    return GenericArgs(tuple(args), turbofish)


def _parse_generic_arg(stream: ParseStream) -> GenericArg:
    token = stream.current_token()
    if token.type is TokenType.LIFETIME:
        return parse_lifetime(stream)
    if token.type in (TokenType.NUMBER, TokenType.STRING, TokenType.CHAR, TokenType.MINUS):
        return ConstArg(_parse_unary(stream))
    if token.type is TokenType.LBRACE:
        return ConstArg(_parse_primary(stream))
    if (
        token.type is TokenType.IDENTIFIER
        and token.value not in KEYWORDS
        and stream.peek(TokenType.EQUALS, 1)
    ):
        ident = parse_ident(stream)
        stream.advance()
        return AssocBinding(ident, parse_type(stream))
    return parse_type(stream)


def _parse_parenthesized_args(stream: ParseStream) -> ParenthesizedArgs:
    _, inner = stream.group_stream(TokenType.LPAREN)
    inputs = parse_terminated(inner, parse_type)
    output = parse_type(stream) if stream.match(TokenType.ARROW) else None
    return ParenthesizedArgs(tuple(inputs), output)


# =============================================================================
# Types
# =============================================================================


def parse_type(stream: ParseStream) -> TypeNode:
    """Parse a type."""
    token = stream.current_token()

    if token.type is TokenType.AMP:
        stream.advance()
        lifetime = parse_lifetime(stream) if stream.peek(TokenType.LIFETIME) else None
        mutable = stream.match_keyword("mut") is not None
        return ReferenceType(parse_type(stream), mutable, lifetime)

    if token.type is TokenType.STAR:
        stream.advance()
        if stream.match_keyword("mut"):
            return PointerType(parse_type(stream), mutable=True)
        stream.expect_keyword("const")
        return PointerType(parse_type(stream), mutable=False)

    if token.type is TokenType.LPAREN:
        _, inner = stream.group_stream(TokenType.LPAREN)
        elems: list[TypeNode] = []
        trailing = False
        while not inner.is_empty():
            elems.append(parse_type(inner))
            trailing = False
            if inner.is_empty():
                break
            inner.expect(TokenType.COMMA)
            trailing = True
        if len(elems) == 1 and not trailing:
            return ParenType(elems[0])
        return TupleType(tuple(elems), trailing)

    if token.type is TokenType.LBRACKET:
        _, inner = stream.group_stream(TokenType.LBRACKET)
        elem = parse_type(inner)
        if inner.match(TokenType.SEMICOLON):
            length = parse_expr(inner)
            _expect_end(inner)
            return ArrayType(elem, length)
        _expect_end(inner)
        return SliceType(elem)

    if token.type is TokenType.BANG:
        stream.advance()
        return NeverType()

    if token.type is TokenType.LT:
        raise stream.error("qualified paths are not supported")

    if token.type is TokenType.IDENTIFIER:
        if token.value == "_":
            stream.advance()
            return InferType()
        if token.value == "impl":
            stream.advance()
            return ImplTraitType(_parse_bounds(stream))
        if token.value == "dyn":
            stream.advance()
            return TraitObjectType(_parse_bounds(stream), dyn=True)
        if token.value == "fn":
            stream.advance()
            _, inner = stream.group_stream(TokenType.LPAREN)
            inputs = parse_terminated(inner, parse_type)
            output = parse_type(stream) if stream.match(TokenType.ARROW) else None
            return BareFnType(tuple(inputs), output)

    if token.type in (TokenType.IDENTIFIER, TokenType.PATH_SEP):
        return PathType(parse_path(stream))

    raise stream.error("expected type")


def _parse_bounds(stream: ParseStream) -> tuple[Bound, ...]:
    bounds: list[Bound] = [_parse_bound(stream)]
    while stream.match(TokenType.PLUS):
        bounds.append(_parse_bound(stream))
    return tuple(bounds)


def _parse_bound(stream: ParseStream) -> Bound:
    if stream.peek(TokenType.LIFETIME):
        return parse_lifetime(stream)
    maybe = stream.match(TokenType.QUESTION) is not None
    return TraitBound(parse_path(stream), maybe)


def _expect_end(stream: ParseStream) -> None:
    if not stream.is_empty():
        raise stream.error("unexpected token")


# =============================================================================
# Patterns
# =============================================================================


def parse_pat(stream: ParseStream) -> Pattern:
    """Parse an irrefutable parameter pattern."""
    token = stream.current_token()

    if token.type is TokenType.DOT_DOT:
        stream.advance()
        return RestPat()

    if token.type is TokenType.AMP:
        stream.advance()
        mutable = stream.match_keyword("mut") is not None
        return RefPat(parse_pat(stream), mutable)

    if token.type is TokenType.LPAREN:
        _, inner = stream.group_stream(TokenType.LPAREN)
        return TuplePat(tuple(parse_terminated(inner, parse_pat)))

    if token.type is TokenType.IDENTIFIER and token.value == "_":
        stream.advance()
        return WildPat()

    if token.type is TokenType.IDENTIFIER and token.value in ("ref", "mut"):
        by_ref = stream.match_keyword("ref") is not None
        mutable = stream.match_keyword("mut") is not None
        return IdentPat(parse_ident(stream), by_ref, mutable)

    if token.type in (TokenType.IDENTIFIER, TokenType.PATH_SEP):
        path = parse_path(stream, expr_style=True)
        if stream.peek(TokenType.LPAREN):
            _, inner = stream.group_stream(TokenType.LPAREN)
            return TupleStructPat(path, tuple(parse_terminated(inner, parse_pat)))
        if stream.peek(TokenType.LBRACE):
            _, fields, _ = stream.parse_group(TokenType.LBRACE)
            return StructPat(path, fields)
        ident = path.get_ident()
        if ident is None or ident.name in KEYWORDS:
            raise make_error(GrammarError, "expected identifier pattern", token.location)
        return IdentPat(ident)

    raise stream.error("expected pattern")


# =============================================================================
# Expressions
# =============================================================================


def parse_expr(stream: ParseStream) -> Expr:
    """Parse a value expression (binary operators kept in source order)."""
    expr = _parse_unary(stream)
    while stream.current_token().type in _BINARY_OPERATORS:
        op = stream.advance().value
        expr = BinaryExpr(expr, op, _parse_unary(stream))
    return expr


def _parse_unary(stream: ParseStream) -> Expr:
    token = stream.match(TokenType.MINUS, TokenType.BANG, TokenType.STAR)
    if token is not None:
        return UnaryExpr(token.value, _parse_unary(stream))
    return _parse_postfix(stream)


def _parse_postfix(stream: ParseStream) -> Expr:
    expr = _parse_primary(stream)
    while True:
        if stream.peek(TokenType.LPAREN):
            expr = CallExpr(expr, _parse_call_args(stream))
        elif stream.peek(TokenType.DOT):
            stream.advance()
            if stream.peek(TokenType.NUMBER):
                expr = FieldExpr(expr, stream.advance().value)
                continue
            member = parse_any_ident(stream)
            turbofish = None
            if stream.peek(TokenType.PATH_SEP) and stream.peek(TokenType.LT, 1):
                stream.advance()
                turbofish = parse_generic_args(stream, turbofish=True)
            if stream.peek(TokenType.LPAREN):
                expr = MethodCallExpr(expr, member, turbofish, _parse_call_args(stream))
            else:
                expr = FieldExpr(expr, member)
        elif stream.peek(TokenType.QUESTION):
            stream.advance()
            expr = UnaryExpr("?", expr)
        else:
            return expr


def _parse_call_args(stream: ParseStream) -> tuple[Expr, ...]:
    _, inner = stream.group_stream(TokenType.LPAREN)
    return tuple(parse_terminated(inner, parse_expr))


_LITERAL_KINDS = {
    TokenType.STRING: LitKind.STR,
    TokenType.CHAR: LitKind.CHAR,
}


def _number_kind(text: str) -> LitKind:
    lowered = text.lower()
    if lowered.startswith(("0x", "0o", "0b")):
        return LitKind.INT
    if lowered.endswith(("f32", "f64")):
        return LitKind.FLOAT
    # integer suffixes start with `u` or `i`, neither of which is a digit
    mantissa = lowered.split("u", 1)[0].split("i", 1)[0]
    if "." in mantissa or "e" in mantissa:
        return LitKind.FLOAT
    return LitKind.INT


def _parse_primary(stream: ParseStream) -> Expr:
    token = stream.current_token()

    if token.type in _LITERAL_KINDS:
        stream.advance()
        return LitExpr(_LITERAL_KINDS[token.type], token.value, token.location)

    if token.type is TokenType.NUMBER:
        stream.advance()
        return LitExpr(_number_kind(token.value), token.value, token.location)

    if token.type is TokenType.IDENTIFIER and token.value in ("true", "false"):
        stream.advance()
        return LitExpr(LitKind.BOOL, token.value, token.location)

    if token.type is TokenType.LBRACKET:
        opener, inner = stream.group_stream(TokenType.LBRACKET)
        return ArrayExpr(tuple(parse_terminated(inner, parse_expr)), opener.location)

    if token.type is TokenType.LPAREN:
        _, inner = stream.group_stream(TokenType.LPAREN)
        elems: list[Expr] = []
        trailing = False
        while not inner.is_empty():
            elems.append(parse_expr(inner))
            trailing = False
            if inner.is_empty():
                break
            inner.expect(TokenType.COMMA)
            trailing = True
        if len(elems) == 1 and not trailing:
            return ParenExpr(elems[0])
        return TupleExpr(tuple(elems))

    if token.type is TokenType.LBRACE:
        _, inner_tokens, _ = stream.parse_group(TokenType.LBRACE)
        return BlockExpr(inner_tokens)

    if token.type in (TokenType.IDENTIFIER, TokenType.PATH_SEP):
        path = parse_path(stream, expr_style=True)
        if stream.peek(TokenType.BANG) and stream.peek_token(1).type in OPEN_DELIMITERS:
            stream.advance()
            delimiter = stream.current_token().type
            _, inner_tokens, _ = stream.parse_group(delimiter)
            return MacroExpr(path, delimiter, inner_tokens)
        return PathExpr(path)

    raise stream.error("expected expression")


# =============================================================================
# Attributes and items
# =============================================================================


def parse_outer_attributes(stream: ParseStream) -> list[Attribute]:
    attrs = []
    while stream.peek(TokenType.POUND):
        attrs.append(parse_attribute(stream))
    return attrs


def parse_attribute(stream: ParseStream) -> Attribute:
    """Parse `#[path]`, `#[path(…)]` or `#[path = …]`."""
    pound = stream.expect(TokenType.POUND)
    if stream.peek(TokenType.BANG):
        raise stream.error("inner attributes are not supported here")
    _, inner = stream.group_stream(TokenType.LBRACKET)
    path = parse_path(inner, expr_style=True)
    if inner.peek(TokenType.LPAREN):
        opener, body, _ = inner.parse_group(TokenType.LPAREN)
        _expect_end(inner)
        return Attribute(path, MetaKind.LIST, body, pound.location, opener.location)
    if inner.match(TokenType.EQUALS):
        value = inner.take_rest()
        if not value:
            raise inner.error("expected attribute value")
        return Attribute(path, MetaKind.NAME_VALUE, value, pound.location)
    _expect_end(inner)
    return Attribute(path, MetaKind.PATH, (), pound.location)


def parse_visibility(stream: ParseStream) -> Visibility | None:
    if not stream.match_keyword("pub"):
        return None
    if stream.peek(TokenType.LPAREN):
        _, restriction, _ = stream.parse_group(TokenType.LPAREN)
        return Visibility(restriction)
    return Visibility()


def parse_fn_arg(stream: ParseStream) -> FnArg:
    """Parse one function parameter: a receiver or `pattern: Type`."""
    attrs = tuple(parse_outer_attributes(stream))
    start = stream.current_token().location

    if stream.peek(TokenType.AMP):
        offset = 1
        if stream.peek(TokenType.LIFETIME, offset):
            offset += 1
        if stream.peek_keyword("mut", offset):
            offset += 1
        if stream.peek_keyword("self", offset):
            stream.advance()
            lifetime = parse_lifetime(stream) if stream.peek(TokenType.LIFETIME) else None
            mutable = stream.match_keyword("mut") is not None
            stream.expect_keyword("self")
            return Receiver(
                reference=True, mutable=mutable, lifetime=lifetime, attrs=attrs, location=start
            )

    offset = 1 if stream.peek_keyword("mut") else 0
    if stream.peek_keyword("self", offset) and not stream.peek(TokenType.PATH_SEP, offset + 1):
        mutable = stream.match_keyword("mut") is not None
        stream.expect_keyword("self")
        ty = parse_type(stream) if stream.match(TokenType.COLON) else None
        return Receiver(mutable=mutable, ty=ty, attrs=attrs, location=start)

    pat = parse_pat(stream)
    stream.expect(TokenType.COLON)
    return TypedParam(pat, parse_type(stream), attrs, start)


def _take_generic_params(stream: ParseStream) -> tuple[Token, ...]:
    """Consume `<…>` after a function name, balancing angle brackets."""
    if not stream.peek(TokenType.LT):
        return ()
    taken = [stream.advance()]
    depth = 1
    while depth:
        token = stream.current_token()
        if token.type is TokenType.EOF:
            raise stream.error("expected `>`")
        if token.type in OPEN_DELIMITERS:
            opener, inner, closer = stream.parse_group(token.type)
            taken.extend((opener, *inner, closer))
            continue
        if token.type is TokenType.LT:
            depth += 1
        elif token.type is TokenType.GT:
            depth -= 1
        taken.append(stream.advance())
    return tuple(taken)


def parse_signature(stream: ParseStream) -> Signature:
    qualifiers = []
    for word in FN_QUALIFIERS:
        if stream.match_keyword(word):
            qualifiers.append(word)
    abi = None
    if stream.match_keyword("extern"):
        abi = stream.expect(TokenType.STRING).value if stream.peek(TokenType.STRING) else '"C"'
    stream.expect_keyword("fn")
    ident = parse_ident(stream)
    generics = _take_generic_params(stream)

    opener, inner = stream.group_stream(TokenType.LPAREN)
    inputs: list[FnArg] = parse_terminated(inner, parse_fn_arg)
    for arg in inputs[1:]:
        if isinstance(arg, Receiver):
            raise make_error(
                GrammarError, "`self` is only allowed as the first parameter", arg.location
            )

    output = parse_type(stream) if stream.match(TokenType.ARROW) else None
    where_clause: tuple[Token, ...] = ()
    if stream.peek_keyword("where"):
        where_clause = stream.take_until_top_level(TokenType.LBRACE, TokenType.SEMICOLON)

    return Signature(
        ident=ident,
        inputs=tuple(inputs),
        output=output,
        qualifiers=tuple(qualifiers),
        abi=abi,
        generics=generics,
        where_clause=where_clause,
        paren_location=opener.location,
    )


def parse_function(stream: ParseStream) -> FunctionDecl:
    """Parse a function item with a block body."""
    attrs = tuple(parse_outer_attributes(stream))
    visibility = parse_visibility(stream)
    sig = parse_signature(stream)
    _, body, _ = stream.parse_group(TokenType.LBRACE)
    return FunctionDecl(sig=sig, attrs=attrs, visibility=visibility, body=body)
