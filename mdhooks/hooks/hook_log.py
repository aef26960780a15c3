"""
Hook event logger.

When a log directory is configured, every validator and router run appends
one line to `<log_dir>/mdhooks-YYYY-MM-DD.jsonl`. Logging never affects the
verdict: failures are reported on stderr and swallowed.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from mdhooks.hooks.schemas import HookInput, HookOutput


def get_log_path(log_dir: Path, now: datetime | None = None) -> Path:
    now = now or datetime.now(timezone.utc)
    return log_dir / f"mdhooks-{now.strftime('%Y-%m-%d')}.jsonl"


def log_hook_event(
    log_dir: Path | None,
    hook_name: str,
    input_data: dict[str, Any] | None,
    output: HookOutput,
    extra: dict[str, Any] | None = None,
) -> None:
    """Append a single JSONL entry describing this run."""
    if log_dir is None:
        return

    try:
        hook_input = HookInput.model_validate(input_data or {})
    except ValidationError:
        hook_input = HookInput()
    now = datetime.now(timezone.utc)
    entry = {
        "ts": now.isoformat(),
        "hook": hook_name,
        "event": hook_input.hook_event_name,
        "tool_name": hook_input.tool_name,
        "file_path": hook_input.file_path,
        "decision": output.decision or "allow",
        "reason": output.reason,
        **(extra or {}),
    }

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        with get_log_path(log_dir, now).open("a", encoding="utf-8") as f:
            f.write(json.dumps(entry, default=str) + "\n")
    except OSError as e:
        print(f"WARNING: Failed to log hook event: {e}", file=sys.stderr)
