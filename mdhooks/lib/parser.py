"""
Markdown parser for hook definitions.

Format:

    # Hook: <name>

    ## Trigger
    - event: PostToolUse
    - tools: Edit, Write
    - files: **/*.ts
    - skip: **/*.test.ts

    ## Prompt
    <validation instructions>

    ## Options
    - fail mode: closed
    - max turns: 1

    ## Router            (optional; presence makes this a router)
    - callable: security-check, code-quality

    ## Description       (optional; first paragraph is used)
    ## Tags              (optional; comma separated)

Malformed field lines are ignored rather than rejected so that older
runtimes keep accepting definitions written for newer ones.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from mdhooks.lib.errors import HookValidationError, ParseError
from mdhooks.lib.hook_model import ValidationResult
from mdhooks.lib.hook_types import (
    DEFAULT_EVENT,
    DEFAULT_SKIP,
    DEFAULT_TOOLS,
    MAX_PROMPT_LENGTH,
    MAX_TURNS,
    MIN_TURNS,
    VALID_EVENTS,
    FailMode,
    HookDefinition,
    HookOptions,
    HookTrigger,
    RouterConfig,
)

logger = logging.getLogger(__name__)

KNOWN_SECTIONS = ("trigger", "prompt", "options", "router", "description", "tags")

_NAME_RE = re.compile(r"^#\s+Hook:[ \t]*(.+)$", re.MULTILINE | re.IGNORECASE)
_NAME_LINE_RE = re.compile(r"^#\s+Hook:", re.IGNORECASE)
_SECTION_RE = re.compile(r"^##(?!#)\s*([a-z]*)", re.IGNORECASE)
_FIELD_RE = re.compile(r"^-\s*([a-z][a-z _-]*?)\s*:\s*(.*)$", re.IGNORECASE)
_PARAGRAPH_BREAK_RE = re.compile(r"\n[ \t]*\n")


def parse_markdown_file(file_path: str | Path) -> HookDefinition:
    """Parse a markdown file into a hook definition."""
    content = Path(file_path).read_text(encoding="utf-8")
    return parse_markdown(content)


def parse_markdown(content: str) -> HookDefinition:
    """Parse markdown content into a hook definition.

    Raises:
        ParseError: If the `# Hook:` header or the prompt section is missing
            or empty.
    """
    name = _parse_name(content)
    sections, present = _extract_sections(content)

    trigger = _parse_trigger(sections.get("trigger"))
    prompt = _parse_prompt(sections.get("prompt"))
    options = _parse_options(sections.get("options"))
    router = _parse_router(sections.get("router"), "router" in present)
    description = _parse_description(sections.get("description"))
    tags = _parse_tags(sections.get("tags"))

    return HookDefinition(
        name=name,
        trigger=trigger,
        prompt=prompt,
        options=options,
        description=description,
        tags=tags,
        router=router,
    )


def _parse_name(content: str) -> str:
    match = _NAME_RE.search(content)
    if not match or not match.group(1).strip():
        raise ParseError("Missing hook name. Expected: # Hook: <name>")
    return match.group(1).strip()


def _extract_sections(content: str) -> tuple[dict[str, str], set[str]]:
    """Split the body into known sections.

    Returns the non-empty section bodies and the set of section names that
    appeared at all (an empty ## Router still makes a router).
    """
    sections: dict[str, str] = {}
    present: set[str] = set()
    current: str | None = None
    buffer: list[str] = []

    def flush() -> None:
        if current is None:
            return
        body = "\n".join(buffer).strip()
        if body:
            sections[current] = body

    for line in content.splitlines():
        stripped = line.strip()
        header = _SECTION_RE.match(stripped)
        if header or _NAME_LINE_RE.match(stripped):
            name = (header.group(1) or "").lower() if header else ""
            if name in KNOWN_SECTIONS:
                flush()
                buffer = []
                current = name
                present.add(name)
            else:
                # Only the header line is dropped; its body stays in the current section
                logger.debug("Ignoring unknown header: %r", stripped)
            continue
        if current is not None:
            buffer.append(line)

    flush()
    return sections, present


def _iter_fields(content: str):
    for raw in content.splitlines():
        line = raw.strip()
        if not line:
            continue
        match = _FIELD_RE.match(line)
        if not match:
            logger.debug("Ignoring unrecognized line: %r", line)
            continue
        key = re.sub(r"[\s_-]+", " ", match.group(1).strip().lower())
        yield key, match.group(2).strip()


def _parse_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _normalize_event(value: str) -> str | None:
    lower = value.strip().lower()
    for event in VALID_EVENTS:
        if event.lower() == lower:
            return event
    return None


def _parse_trigger(content: str | None) -> HookTrigger:
    fields: dict[str, object] = {
        "event": DEFAULT_EVENT,
        "tools": list(DEFAULT_TOOLS),
        "skip": list(DEFAULT_SKIP),
    }
    if not content:
        return HookTrigger(**fields)

    for key, value in _iter_fields(content):
        if key == "event":
            event = _normalize_event(value)
            if event:
                fields["event"] = event
            else:
                logger.debug("Unknown event %r, keeping %s", value, fields["event"])
        elif key in ("tools", "files", "skip"):
            fields[key] = _parse_list(value)
        else:
            logger.debug("Ignoring unknown trigger field %r", key)

    return HookTrigger(**fields)


def _parse_prompt(content: str | None) -> str:
    if not content or not content.strip():
        raise ParseError("Missing prompt section. Expected: ## Prompt")
    return content.strip()


def _parse_options(content: str | None) -> HookOptions:
    fail_mode = FailMode.OPEN
    max_turns = 1
    if not content:
        return HookOptions(fail_mode=fail_mode, max_turns=max_turns)

    for key, value in _iter_fields(content):
        if key in ("fail mode", "failmode"):
            lowered = value.lower()
            if lowered in (FailMode.OPEN, FailMode.CLOSED):
                fail_mode = FailMode(lowered)
        elif key in ("max turns", "maxturns"):
            match = re.match(r"-?\d+", value)
            if match and int(match.group(0)) > 0:
                max_turns = int(match.group(0))

    return HookOptions(fail_mode=fail_mode, max_turns=max_turns)


def _parse_router(content: str | None, section_exists: bool) -> RouterConfig | None:
    if content is None and not section_exists:
        return None

    callable_hooks: list[str] = []
    if content:
        for key, value in _iter_fields(content):
            if key == "callable":
                callable_hooks = _parse_list(value)

    return RouterConfig(callable_hooks=callable_hooks)


def _parse_description(content: str | None) -> str | None:
    if not content or not content.strip():
        return None
    return _PARAGRAPH_BREAK_RE.split(content.strip(), maxsplit=1)[0].strip()


def _parse_tags(content: str | None) -> list[str]:
    if not content:
        return []
    tags: list[str] = []
    for token in re.split(r"[,\n]", content):
        tag = token.strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def validate_hook_definition(definition: HookDefinition) -> ValidationResult:
    """Check every constraint and report all violations (no fail-fast)."""
    errors: list[str] = []

    if not definition.name or not definition.name.strip():
        errors.append("Hook name is required")

    if definition.trigger.event not in VALID_EVENTS:
        errors.append(
            f"Invalid event: {definition.trigger.event}. Valid: {', '.join(VALID_EVENTS)}"
        )

    if not definition.prompt or not definition.prompt.strip():
        errors.append("Prompt is required")
    elif len(definition.prompt) > MAX_PROMPT_LENGTH:
        errors.append(f"Prompt too long (max {MAX_PROMPT_LENGTH} characters)")

    if not MIN_TURNS <= definition.options.max_turns <= MAX_TURNS:
        errors.append(f"Max turns must be between {MIN_TURNS} and {MAX_TURNS}")

    return ValidationResult(valid=not errors, errors=errors)


def require_valid(definition: HookDefinition) -> HookDefinition:
    """Return the definition unchanged, or raise with every violation.

    Raises:
        HookValidationError: If any constraint is violated
    """
    result = validate_hook_definition(definition)
    if not result.valid:
        raise HookValidationError(result.errors)
    return definition
