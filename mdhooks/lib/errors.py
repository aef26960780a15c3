"""Error taxonomy for hook compilation and execution.

Parse/validation/generation errors propagate to the caller. Oracle, child
and aggregation errors are raised inside the runtimes and converted into a
fail-mode verdict there, so a running hook always emits one JSON document.
"""

from __future__ import annotations


class HookError(Exception):
    """Base class for all mdhooks errors."""

    message: str

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class ParseError(HookError):
    """Raised when a definition lacks its name header or prompt section."""


class HookValidationError(HookError):
    """Collected constraint violations for a parsed definition."""

    errors: list[str]

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(f"Invalid hook definition: {', '.join(self.errors)}")


class GenerationError(HookError):
    """Raised when the generator is handed an invalid definition."""

    errors: list[str]

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = list(errors or [])
        super().__init__(message)


class OracleError(HookError):
    """The decision service returned no usable text."""


class RoutingError(OracleError):
    """The routing response did not contain a JSON array of names."""


class ChildInvocationError(HookError):
    """A validator process could not be started or produced unusable output."""

    hook_name: str

    def __init__(self, hook_name: str, message: str):
        self.hook_name = hook_name
        super().__init__(f"[{hook_name}] {message}")


class AggregationError(HookError):
    """Invocation results are inconsistent with the selected validators."""
