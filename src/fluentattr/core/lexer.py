"""
Lexer/Tokenizer for annotation bodies and annotated items.

Converts raw source text into a flat stream of tokens with source location
tracking. Delimiters (`()`, `[]`, `{}`) are checked for balance while
lexing, so every later stage can treat a delimited group as well formed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .errors import make_grammar_error
from .location import SourceLocation

DEFAULT_FILE = "<input>"


class TokenType(Enum):
    """Token types of the item and attribute surface syntax."""

    # Literals
    IDENTIFIER = "IDENTIFIER"
    LIFETIME = "LIFETIME"
    STRING = "STRING"
    CHAR = "CHAR"
    NUMBER = "NUMBER"

    # Punctuation
    BANG = "!"
    EQUALS = "="
    EQ_EQ = "=="
    NOT_EQ = "!="
    COMMA = ","
    SEMICOLON = ";"
    COLON = ":"
    PATH_SEP = "::"
    ARROW = "->"
    FAT_ARROW = "=>"
    POUND = "#"
    AMP = "&"
    STAR = "*"
    LT = "<"
    GT = ">"
    DOT = "."
    DOT_DOT = ".."
    QUESTION = "?"
    PLUS = "+"
    MINUS = "-"
    SLASH = "/"
    PERCENT = "%"
    CARET = "^"
    PIPE = "|"
    AT = "@"
    DOLLAR = "$"
    TILDE = "~"

    # Delimiters
    LPAREN = "("
    RPAREN = ")"
    LBRACKET = "["
    RBRACKET = "]"
    LBRACE = "{"
    RBRACE = "}"

    EOF = "EOF"


OPEN_DELIMITERS = {
    TokenType.LPAREN: TokenType.RPAREN,
    TokenType.LBRACKET: TokenType.RBRACKET,
    TokenType.LBRACE: TokenType.RBRACE,
}
CLOSE_DELIMITERS = {close: open_ for open_, close in OPEN_DELIMITERS.items()}

_TWO_CHAR_PUNCT = {
    "::": TokenType.PATH_SEP,
    "->": TokenType.ARROW,
    "=>": TokenType.FAT_ARROW,
    "==": TokenType.EQ_EQ,
    "!=": TokenType.NOT_EQ,
    "..": TokenType.DOT_DOT,
}

_SINGLE_CHAR_PUNCT = {
    t.value: t
    for t in TokenType
    if len(t.value) == 1
}


@dataclass(frozen=True)
class Token:
    """
    A single token.

    Literal tokens keep their exact source text in ``value`` (quotes and
    escapes included) so a token sequence renders back verbatim.

    Attributes:
        type: Type of token
        value: Source text of the token
        location: Where the token was read (ignored by equality)
    """

    type: TokenType
    value: str
    location: SourceLocation | None = field(default=None, compare=False)

    @property
    def line(self) -> int:
        return self.location.line if self.location else 0

    @property
    def column(self) -> int:
        return self.location.column if self.location else 0

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


class Lexer:
    """
    Lexer for item and attribute source text.

    Converts source text into a token list terminated by an EOF token.
    """

    def __init__(self, text: str, file: str = DEFAULT_FILE):
        """
        Initialize lexer.

        Args:
            text: Source text to tokenize
            file: Source file name (for error reporting)
        """
        self.text = text
        self.file = file
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []
        self.delimiter_stack: list[Token] = []

    def current_char(self) -> str | None:
        """Get current character or None if at end."""
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def peek_char(self, offset: int = 1) -> str | None:
        """Peek ahead at character."""
        pos = self.pos + offset
        if pos >= len(self.text):
            return None
        return self.text[pos]

    def advance(self) -> None:
        """Move to next character, updating line/column."""
        if self.pos < len(self.text):
            if self.text[self.pos] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def location(self) -> SourceLocation:
        return SourceLocation(file=self.file, line=self.line, column=self.column)

    def skip_whitespace_and_comments(self) -> None:
        """Skip whitespace, `// line` comments and `/* block */` comments."""
        while True:
            current = self.current_char()
            if current is not None and current.isspace():
                self.advance()
            elif current == "/" and self.peek_char() == "/":
                while self.current_char() and self.current_char() != "\n":
                    self.advance()
            elif current == "/" and self.peek_char() == "*":
                self.skip_block_comment()
            else:
                return

    def skip_block_comment(self) -> None:
        """Skip a (possibly nested) block comment."""
        start = self.location()
        depth = 0
        while self.current_char() is not None:
            if self.current_char() == "/" and self.peek_char() == "*":
                depth += 1
                self.advance()
                self.advance()
            elif self.current_char() == "*" and self.peek_char() == "/":
                depth -= 1
                self.advance()
                self.advance()
                if depth == 0:
                    return
            else:
                self.advance()
        raise make_grammar_error("Unterminated block comment", start)

    def read_while(self, predicate) -> str:
        chars = []
        current = self.current_char()
        while current is not None and predicate(current):
            chars.append(current)
            self.advance()
            current = self.current_char()
        return "".join(chars)

    def read_identifier(self) -> str:
        """Read an identifier or keyword."""
        return self.read_while(lambda c: c.isalnum() or c == "_")

    def read_number(self) -> str:
        """Read an integer or float literal, including any type suffix."""
        text = self.read_while(lambda c: c.isalnum() or c == "_")
        next_char = self.peek_char()
        if self.current_char() == "." and next_char is not None and next_char.isdigit():
            self.advance()
            text += "." + self.read_while(lambda c: c.isalnum() or c == "_")
        return text

    def read_quoted(self, quote: str) -> str:
        """Read a quoted literal, returning its source text with escapes intact."""
        start = self.location()
        chars = [quote]
        self.advance()  # opening quote
        while True:
            current = self.current_char()
            if current is None:
                raise make_grammar_error("Unterminated string literal", start)
            if current == "\\":
                chars.append(current)
                self.advance()
                escaped = self.current_char()
                if escaped is None:
                    raise make_grammar_error("Unterminated string literal", start)
                chars.append(escaped)
                self.advance()
                continue
            chars.append(current)
            self.advance()
            if current == quote:
                return "".join(chars)

    def read_raw_string(self) -> str:
        """Read `r"…"` or `r#"…"#`, starting at the `r`."""
        start = self.location()
        chars = ["r"]
        self.advance()
        hashes = self.read_while(lambda c: c == "#")
        chars.append(hashes)
        if self.current_char() != '"':
            raise make_grammar_error("Expected `\"` in raw string literal", self.location())
        terminator = '"' + hashes
        chars.append('"')
        self.advance()
        while True:
            if self.current_char() is None:
                raise make_grammar_error("Unterminated raw string literal", start)
            if self.text.startswith(terminator, self.pos):
                for _ in terminator:
                    self.advance()
                chars.append(terminator)
                return "".join(chars)
            chars.append(self.current_char() or "")
            self.advance()

    def is_raw_string_start(self) -> bool:
        if self.current_char() != "r":
            return False
        offset = 1
        while self.peek_char(offset) == "#":
            offset += 1
        return self.peek_char(offset) == '"'

    def is_raw_identifier_start(self) -> bool:
        if self.current_char() != "r" or self.peek_char() != "#":
            return False
        after = self.peek_char(2)
        return after is not None and (after.isalpha() or after == "_")

    def add(self, token_type: TokenType, value: str, location: SourceLocation) -> Token:
        token = Token(token_type, value, location)
        self.tokens.append(token)
        return token

    def add_punct(self, token_type: TokenType, location: SourceLocation) -> None:
        token = self.add(token_type, token_type.value, location)

        if token_type in OPEN_DELIMITERS:
            self.delimiter_stack.append(token)
        elif token_type in CLOSE_DELIMITERS:
            if not self.delimiter_stack:
                raise make_grammar_error(f"Unexpected closing delimiter `{token.value}`", location)
            opener = self.delimiter_stack.pop()
            if OPEN_DELIMITERS[opener.type] != token_type:
                raise make_grammar_error(
                    f"Mismatched closing delimiter `{token.value}` for `{opener.value}` "
                    f"opened at {opener.location}",
                    location,
                )

    def tokenize(self) -> list[Token]:
        """
        Tokenize the entire source text.

        Returns:
            List of tokens ending with an EOF token
        """
        while True:
            self.skip_whitespace_and_comments()
            current = self.current_char()
            if current is None:
                break

            start = self.location()

            if self.is_raw_string_start():
                self.add(TokenType.STRING, self.read_raw_string(), start)
                continue

            if self.is_raw_identifier_start():
                self.advance()
                self.advance()
                self.add(TokenType.IDENTIFIER, "r#" + self.read_identifier(), start)
                continue

            if current == "b" and self.peek_char() in ('"', "'"):
                self.advance()
                quote = self.current_char() or '"'
                token_type = TokenType.STRING if quote == '"' else TokenType.CHAR
                self.add(token_type, "b" + self.read_quoted(quote), start)
                continue

            if current.isalpha() or current == "_":
                self.add(TokenType.IDENTIFIER, self.read_identifier(), start)
                continue

            if current.isdigit():
                self.add(TokenType.NUMBER, self.read_number(), start)
                continue

            if current == '"':
                self.add(TokenType.STRING, self.read_quoted('"'), start)
                continue

            if current == "'":
                self.read_char_or_lifetime(start)
                continue

            two = self.text[self.pos : self.pos + 2]
            if two in _TWO_CHAR_PUNCT:
                self.advance()
                self.advance()
                self.add_punct(_TWO_CHAR_PUNCT[two], start)
                continue

            if current in _SINGLE_CHAR_PUNCT:
                self.advance()
                self.add_punct(_SINGLE_CHAR_PUNCT[current], start)
                continue

            raise make_grammar_error(f"Unexpected character: {current!r}", start)

        if self.delimiter_stack:
            opener = self.delimiter_stack[-1]
            raise make_grammar_error(f"Unclosed delimiter `{opener.value}`", opener.location)

        self.tokens.append(Token(TokenType.EOF, "", self.location()))
        return self.tokens

    def read_char_or_lifetime(self, start: SourceLocation) -> None:
        """Distinguish `'a'` / `'\\n'` (char) from `'a` (lifetime)."""
        next_char = self.peek_char()
        if next_char == "\\" or self.peek_char(2) == "'":
            self.add(TokenType.CHAR, self.read_quoted("'"), start)
            return
        if next_char is not None and (next_char.isalpha() or next_char == "_"):
            self.advance()
            self.add(TokenType.LIFETIME, "'" + self.read_identifier(), start)
            return
        raise make_grammar_error("Expected lifetime or character literal", start)


def tokenize(text: str, file: str = DEFAULT_FILE) -> list[Token]:
    """
    Convenience function to tokenize source text.

    Args:
        text: Source text
        file: Source file name

    Returns:
        List of tokens
    """
    lexer = Lexer(text, file)
    return lexer.tokenize()


def tokens_to_source(tokens: list[Token]) -> str:
    """Render a token sequence as readable source text.

    Spacing is cosmetic; re-tokenizing the result yields the same
    token sequence.
    """
    parts: list[str] = []
    previous: Token | None = None
    for token in tokens:
        if token.type is TokenType.EOF:
            continue
        if previous is not None and _needs_space(previous, token):
            parts.append(" ")
        parts.append(token.value)
        previous = token
    return "".join(parts)


_NO_SPACE_BEFORE = {
    TokenType.COMMA,
    TokenType.SEMICOLON,
    TokenType.COLON,
    TokenType.PATH_SEP,
    TokenType.DOT,
    TokenType.QUESTION,
    TokenType.GT,
    TokenType.RPAREN,
    TokenType.RBRACKET,
}
_NO_SPACE_AFTER = {
    TokenType.PATH_SEP,
    TokenType.DOT,
    TokenType.AMP,
    TokenType.STAR,
    TokenType.POUND,
    TokenType.LT,
    TokenType.LPAREN,
    TokenType.LBRACKET,
}
_CALLABLE = {TokenType.IDENTIFIER, TokenType.BANG, TokenType.GT}


def _needs_space(previous: Token, token: Token) -> bool:
    if previous.type is TokenType.BANG and token.type is TokenType.IDENTIFIER:
        return False
    if token.type is TokenType.BANG and previous.type is TokenType.IDENTIFIER:
        return False
    if token.type in (TokenType.LPAREN, TokenType.LBRACKET) and previous.type in _CALLABLE:
        return False
    if token.type is TokenType.LT and previous.type in (TokenType.IDENTIFIER, TokenType.PATH_SEP):
        return False
    if token.type in _NO_SPACE_BEFORE or previous.type in _NO_SPACE_AFTER:
        return False
    return True
