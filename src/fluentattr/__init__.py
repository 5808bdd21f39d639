"""
fluentattr - annotation arguments and mutator rewrites for fluent builders.

Parses the small configuration language found in `#[name(…)]` attributes,
applies it to configuration records, and rewrites annotated mutator methods
into chainable, forwarding builder methods.
"""

from __future__ import annotations

from ._version import get_version
from .core.apply_meta import ApplyMeta
from .core.attr_args import AttrArg, Flag, KeyValue, Not, SubAttr, parse_attr_arg, parse_attr_args
from .core.errors import (
    ConfigError,
    FluentAttrError,
    GrammarError,
    InvalidValueError,
    ShapeMismatchError,
    StructuralError,
    UnknownKeyError,
)
from .core.mutator import Mutator, MutatorAttribute, parse_mutator

__version__ = get_version()

__all__ = [
    "__version__",
    "ApplyMeta",
    "AttrArg",
    "Flag",
    "KeyValue",
    "Not",
    "SubAttr",
    "parse_attr_arg",
    "parse_attr_args",
    "Mutator",
    "MutatorAttribute",
    "parse_mutator",
    "FluentAttrError",
    "GrammarError",
    "ShapeMismatchError",
    "UnknownKeyError",
    "InvalidValueError",
    "StructuralError",
    "ConfigError",
]
