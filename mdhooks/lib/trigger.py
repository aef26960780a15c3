"""Trigger matching shared by every generated validator and the router.

Glob patterns are matched in one of three deliberately different modes:

- ``**/x`` patterns may match any suffix of the path (no start anchor).
- Patterns without a ``/`` are matched against the base name only,
  anchored at both ends (``*.ts`` matches ``src/app.ts`` via ``app.ts``).
- Every other pattern is anchored at the end of the full path only.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any

from mdhooks.lib.hook_types import HookTrigger

_GLOBSTAR_DIR = "\x00GLOBSTAR_DIR\x00"
_GLOBSTAR = "\x00GLOBSTAR\x00"


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> str:
    """Translate a glob into an (unanchored) regex body.

    Only ``.`` is escaped; other regex metacharacters pass through as-is.
    """
    regex = pattern.replace(".", r"\.")
    regex = regex.replace("**/", _GLOBSTAR_DIR).replace("**", _GLOBSTAR)
    regex = regex.replace("*", "[^/]*").replace("?", ".")
    # Zero or more whole path segments
    regex = regex.replace(_GLOBSTAR_DIR, "(?:.*/)?").replace(_GLOBSTAR, ".*")
    return regex


def matches_pattern(file_path: str, pattern: str) -> bool:
    regex = glob_to_regex(pattern)

    if pattern.startswith("**/"):
        return re.search(f"{regex}$", file_path) is not None

    if "/" not in pattern:
        file_name = file_path.rsplit("/", 1)[-1] or file_path
        return re.fullmatch(regex, file_name) is not None

    return re.search(f"{regex}$", file_path) is not None


def matches_any_pattern(file_path: str, patterns: list[str] | tuple[str, ...]) -> bool:
    return any(matches_pattern(file_path, p) for p in patterns)


def _extract_file_path(event_context: dict[str, Any]) -> str | None:
    tool_input = event_context.get("tool_input")
    if not isinstance(tool_input, dict):
        return None
    file_path = tool_input.get("file_path")
    if isinstance(file_path, str) and file_path:
        return file_path
    return None


def should_trigger(event_context: dict[str, Any], trigger: HookTrigger) -> bool:
    """Decide whether a hook with `trigger` applies to this input document.

    Args:
        event_context: Raw hook input (tool_name, tool_input, hook_event_name...)
        trigger: The hook's trigger configuration

    Returns:
        True if the hook should run
    """
    event_name = event_context.get("hook_event_name")
    if event_name and event_name != trigger.event:
        return False

    if trigger.tools:
        if event_context.get("tool_name") not in trigger.tools:
            return False

    file_path = _extract_file_path(event_context)
    if file_path:
        # Skip wins over include
        if trigger.skip and matches_any_pattern(file_path, trigger.skip):
            return False
        if trigger.files and not matches_any_pattern(file_path, trigger.files):
            return False

    return True
