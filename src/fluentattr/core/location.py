"""Source location tracking for tokens and syntax nodes.

Records the file, line, and column where a token was read, enabling
source-mapped error messages for every "reported at" diagnostic.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class SourceLocation(BaseModel):
    """Source position of a token.

    Attributes:
        file: Path to the source (or ``<input>`` for in-memory text)
        line: 1-indexed line number
        column: 1-indexed column number
    """

    file: str
    line: int
    column: int

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"
