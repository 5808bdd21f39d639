"""
Error types for attribute parsing, configuration application, and mutator
validation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeVar

from .location import SourceLocation


class FluentAttrError(Exception):
    """Base exception for all fluentattr errors."""

    def __init__(self, message: str, context: ErrorContext | None = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message

    @property
    def location(self) -> SourceLocation | None:
        """Where the error was reported, if known."""
        if self.context is None:
            return None
        return SourceLocation(
            file=self.context.file,
            line=self.context.line,
            column=self.context.column,
        )


class GrammarError(FluentAttrError):
    """
    Raised when a token stream matches none of the expected shapes.

    Examples:
    - `= value` with no leading name
    - `name value` (missing `=`)
    - Unbalanced delimiters or unknown characters in the input
    """

    pass


class ShapeMismatchError(FluentAttrError):
    """
    Raised when an argument is used with the wrong shape.

    Examples:
    - A flag where a key-value is expected
    - A negation on a setting that cannot be reset
    """

    pass


class UnknownKeyError(FluentAttrError):
    """Raised when a configuration record receives a name it does not know."""

    pass


class InvalidValueError(FluentAttrError):
    """
    Raised when a value payload does not parse as its expected target.

    Examples:
    - `requires = a` instead of `requires = [a]`
    - `requires = [a::b]` (not a bare field name)
    - A string-only setting given a number
    """

    pass


class StructuralError(FluentAttrError):
    """
    Raised when a declaration violates a structural precondition.

    Examples:
    - A mutator without a reference receiver
    """

    pass


class ConfigError(FluentAttrError):
    """Raised when a configuration file cannot be loaded."""

    pass


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        file: Source the error occurred in
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional code snippet showing the error location
    """

    file: str
    line: int
    column: int
    snippet: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "lib.rs:10:5"
        """
        location = f"{self.file}:{self.line}:{self.column}"
        if self.snippet:
            return f"{location}\n{self._format_snippet()}"
        return location

    def _format_snippet(self) -> str:
        """Format code snippet with line numbers and error marker."""
        if not self.snippet:
            return ""

        lines = self.snippet.split("\n")
        formatted = []

        # Snippet shows up to 2 lines before the error line
        start_line = max(1, self.line - 2)

        for i, line in enumerate(lines):
            line_num = start_line + i
            prefix = f"{line_num:4d} | "
            formatted.append(prefix + line)

            if line_num == self.line:
                marker_pos = len(prefix) + self.column - 1
                formatted.append(" " * marker_pos + "^^^")

        return "\n".join(formatted)


E = TypeVar("E", bound=FluentAttrError)


def make_error(
    error_type: type[E],
    message: str,
    location: SourceLocation | None = None,
    snippet: str | None = None,
) -> E:
    """
    Helper to create an error with context.

    Args:
        error_type: FluentAttrError subclass to instantiate
        message: Error description
        location: Where to report the error, if known
        snippet: Optional code snippet

    Returns:
        Error instance with context attached when a location is given
    """
    if location is None:
        return error_type(message)
    context = ErrorContext(
        file=location.file,
        line=location.line,
        column=location.column,
        snippet=snippet,
    )
    return error_type(message, context)


def make_grammar_error(message: str, location: SourceLocation | None = None) -> GrammarError:
    """Helper to create a GrammarError at a location."""
    return make_error(GrammarError, message, location)
