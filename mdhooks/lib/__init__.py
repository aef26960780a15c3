"""Core library - parsing, trigger matching, generation and invocation.

Nothing in lib/ reads ambient configuration. Entry points in hooks/ and
cli.py build a HooksConfig and pass values down explicitly.
"""

from mdhooks.lib.errors import (
    AggregationError,
    ChildInvocationError,
    GenerationError,
    HookError,
    HookValidationError,
    OracleError,
    ParseError,
    RoutingError,
)
from mdhooks.lib.generator import generate, slugify
from mdhooks.lib.parser import parse_markdown, parse_markdown_file, validate_hook_definition
from mdhooks.lib.trigger import should_trigger

__all__ = [
    "AggregationError",
    "ChildInvocationError",
    "GenerationError",
    "HookError",
    "HookValidationError",
    "OracleError",
    "ParseError",
    "RoutingError",
    "generate",
    "parse_markdown",
    "parse_markdown_file",
    "should_trigger",
    "slugify",
    "validate_hook_definition",
]
