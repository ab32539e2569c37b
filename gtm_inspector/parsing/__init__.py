"""Reverse-parsing of served GTM container JavaScript.

This package locates the embedded container configuration object inside
obfuscated container JavaScript, extracts balanced object literals and
evaluates them without executing any code.
"""

from .extractor import extract_balanced_object, iter_brace_positions
from .evaluator import (
    LiteralEvaluationError,
    LiteralSyntaxError,
    LooseLiteralParser,
    evaluate_object_literal,
    normalize_to_json
)
from .locator import (
    ContainerLocator,
    LocatorLimits,
    locate_container,
    looks_like_container
)

__all__ = [
    "extract_balanced_object",
    "iter_brace_positions",
    "evaluate_object_literal",
    "normalize_to_json",
    "LooseLiteralParser",
    "LiteralEvaluationError",
    "LiteralSyntaxError",
    "ContainerLocator",
    "LocatorLimits",
    "locate_container",
    "looks_like_container",
]
