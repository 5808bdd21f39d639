"""Shared pytest fixtures for fluentattr tests."""

from pathlib import Path

import pytest

from fluentattr.core.lexer import Token, tokenize


def body_tokens(text: str) -> list[Token]:
    """Tokens of an attribute body, without the trailing EOF."""
    return tokenize(text)[:-1]


@pytest.fixture
def tokens_of():
    """Return a helper turning attribute-body text into tokens."""
    return body_tokens


@pytest.fixture
def mutator_source() -> str:
    """Return a mutator with a tuple-pattern parameter and two required fields."""
    return """
#[inline]
#[mutator(requires = [x, y])]
fn shift(&mut self, dx: i32, (a, b): (i32, i32)) {
    self.x += dx + a;
    self.y += b;
}
"""


@pytest.fixture
def mutator_file(tmp_path: Path, mutator_source: str) -> Path:
    """Write the mutator fixture to a file."""
    path = tmp_path / "shift.rs"
    path.write_text(mutator_source)
    return path
