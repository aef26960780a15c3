from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mdhooks.hooks.schemas import HookOutput


class HookDecision(Enum):
    """Verdict of a single check. Only BLOCK is ever written to the wire."""

    ALLOW = "allow"
    BLOCK = "block"


@dataclass
class ValidationResult:
    """Outcome of validate_hook_definition(); lists every violation."""

    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class HookInvocationResult:
    """Result of running one validator as a child process."""

    hook_name: str
    output: HookOutput
    success: bool
    error: str | None = None
    elapsed_ms: float = 0.0
    exit_code: int | None = None
    timed_out: bool = False

    @property
    def blocked(self) -> bool:
        return self.output.decision == "block"

    def to_json(self) -> dict[str, Any]:
        """Serialize for logs and debugging."""
        return {
            "hook_name": self.hook_name,
            "output": self.output.model_dump(exclude_none=True),
            "success": self.success,
            "error": self.error,
            "elapsed_ms": self.elapsed_ms,
            "exit_code": self.exit_code,
            "timed_out": self.timed_out,
        }
