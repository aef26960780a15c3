"""Shared utilities for hook runtimes.

Provides the pieces both the validator and the router need:
- Reading and normalizing the stdin input document
- Building the change context appended to oracle prompts
- Writing the single JSON verdict to stdout
"""

from __future__ import annotations

import json
import sys
from typing import Any, TextIO

from mdhooks.hooks.schemas import HookOutput, HookSpecificOutput

# Tool results can be huge; only a prefix is shown to the oracle
TOOL_RESULT_LIMIT = 500
# Raw oracle text echoed back in additionalContext
RESPONSE_PREVIEW_LIMIT = 300


def _normalize_json_field(value: Any) -> Any:
    """Normalize a field that may be a JSON string to its parsed form."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def read_hook_input(raw: str | None) -> dict[str, Any] | None:
    """Decode a hook input document.

    Returns None for empty, malformed or non-object input; callers answer
    that with an empty verdict.
    """
    if not raw or not raw.strip():
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    tool_input = _normalize_json_field(data.get("tool_input", {}))
    data["tool_input"] = tool_input if isinstance(tool_input, dict) else {}
    return data


def read_stdin(stream: TextIO | None = None) -> str:
    """Read the raw input document; undecodable bytes become U+FFFD."""
    stream = stream or sys.stdin
    if stream.isatty():
        return ""
    buffer = getattr(stream, "buffer", None)
    if buffer is None:
        return stream.read()
    return buffer.read().decode("utf-8", errors="replace")


def build_change_context(input_data: dict[str, Any], include_tool_result: bool = True) -> str:
    """Render the file path, written content and tool result as prompt context."""
    context = ""
    tool_input = input_data.get("tool_input") or {}

    file_path = tool_input.get("file_path")
    if file_path:
        context += f"File: {file_path}\n\n"

    content = tool_input.get("content")
    if content:
        context += f"Content:\n```\n{content}\n```\n\n"

    new_string = tool_input.get("new_string")
    if new_string:
        context += f"New content:\n```\n{new_string}\n```\n\n"

    tool_result = input_data.get("tool_result")
    if include_tool_result and tool_result:
        rendered = json.dumps(tool_result, default=str)[:TOOL_RESULT_LIMIT]
        context += f"Tool result: {rendered}\n\n"

    return context


def fail_mode_output(
    hook_name: str,
    event: str,
    fail_mode: str,
    message: str,
    label: str = "Error",
    context_label: str = "Hook error",
) -> HookOutput:
    """Turn an error into a verdict governed by the hook's fail mode.

    closed -> block, open -> allow (no decision) with the error as reason.
    """
    if fail_mode == "closed":
        return HookOutput(
            decision="block",
            reason=f"[{hook_name}] {label} (fail-closed): {message}",
            hookSpecificOutput=HookSpecificOutput(
                hookEventName=event,
                additionalContext=f"{context_label}: {message}",
            ),
        )
    return HookOutput(
        reason=f"[{hook_name}] {label} (fail-open): {message}",
        hookSpecificOutput=HookSpecificOutput(
            hookEventName=event,
            additionalContext=f"{context_label} (allowed): {message}",
        ),
    )


def emit_output(output: HookOutput, stream: TextIO | None = None) -> None:
    """Print the verdict as a single JSON line."""
    print(output.to_json(), file=stream or sys.stdout, flush=True)
