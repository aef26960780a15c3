from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# --- Input Schema ---


class HookInput(BaseModel):
    """
    Input document received on stdin from Claude Code (or from a router).

    Only the fields hooks read are declared; everything else is kept so a
    router can forward the document to its children unchanged.
    """

    model_config = ConfigDict(extra="allow")

    hook_event_name: str | None = None
    tool_name: str | None = None
    tool_input: dict[str, Any] = Field(default_factory=dict)
    tool_result: Any = None
    prompt: str | None = None
    reason: str | None = None

    @property
    def file_path(self) -> str | None:
        value = self.tool_input.get("file_path")
        return value if isinstance(value, str) and value else None


# --- Output Schemas ---


class HookSpecificOutput(BaseModel):
    """
    Nested output structure carrying the event name and extra context.
    """

    model_config = ConfigDict(extra="allow")

    hookEventName: str
    additionalContext: str | None = None


class HookOutput(BaseModel):
    """
    Verdict written to stdout by every validator and by the router.

    There is no explicit allow value: a missing `decision` IS the allow.
    Serialize with to_json() so that None fields are dropped.
    """

    model_config = ConfigDict(extra="allow")

    decision: Literal["block"] | None = None
    reason: str | None = None
    hookSpecificOutput: HookSpecificOutput | None = None

    @property
    def blocked(self) -> bool:
        return self.decision == "block"

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)
