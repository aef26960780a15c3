from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class LifecycleEvent(StrEnum):
    """Claude Code lifecycle events a hook can be attached to."""

    PRE_TOOL_USE = "PreToolUse"
    POST_TOOL_USE = "PostToolUse"
    STOP = "Stop"
    USER_PROMPT_SUBMIT = "UserPromptSubmit"
    SESSION_START = "SessionStart"


class FailMode(StrEnum):
    """Verdict to fall back to when a decision cannot be obtained.

    OPEN allows the operation (fail-safe), CLOSED blocks it (fail-secure).
    """

    OPEN = "open"
    CLOSED = "closed"


VALID_EVENTS: tuple[str, ...] = tuple(e.value for e in LifecycleEvent)

DEFAULT_EVENT = LifecycleEvent.POST_TOOL_USE.value
DEFAULT_TOOLS: tuple[str, ...] = ("Edit", "Write")
DEFAULT_SKIP: tuple[str, ...] = ("node_modules/**", "**/*.test.ts", "**/*.spec.ts")

MAX_PROMPT_LENGTH = 5000
MIN_TURNS = 1
MAX_TURNS = 10


class HookTrigger(BaseModel):
    """When a hook should run.

    `event` is kept as a plain string so that out-of-range values survive
    until validate_hook_definition() reports them. None for tools/files means
    "no filter", never "match nothing".
    """

    model_config = ConfigDict(frozen=True)

    event: str = DEFAULT_EVENT
    tools: list[str] | None = None
    files: list[str] | None = None
    skip: list[str] | None = None


class HookOptions(BaseModel):
    """Execution options. Ranges are enforced by validation, not here."""

    model_config = ConfigDict(frozen=True)

    fail_mode: FailMode = FailMode.OPEN
    max_turns: int = 1


class RouterConfig(BaseModel):
    """Marks a definition as a router.

    An empty callable_hooks means "discover every validator"; a non-empty
    list restricts discovery to those names.
    """

    model_config = ConfigDict(frozen=True)

    callable_hooks: list[str] = Field(default_factory=list)


class HookDefinition(BaseModel):
    """A hook parsed from a markdown definition. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    name: str
    trigger: HookTrigger = Field(default_factory=HookTrigger)
    prompt: str
    options: HookOptions = Field(default_factory=HookOptions)
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    router: RouterConfig | None = None

    @property
    def is_router(self) -> bool:
        return self.router is not None


class HookMetadata(BaseModel):
    """Discovery record written next to each generated validator.

    `name` is the slug shared with the artifact file name.
    """

    name: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    event: str = DEFAULT_EVENT
    tools: list[str] | None = None
    files: list[str] | None = None
    skip: list[str] | None = None

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, exclude_none=True)
