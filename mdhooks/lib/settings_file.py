"""Claude Code settings file handling.

Registers generated hooks in a host settings.json:

    {"hooks": {"PostToolUse": [{"matcher": "Edit|Write",
                                "hooks": [{"type": "command", "command": "..."}]}]}}

Read-modify-write happens under a FileLock and the file is replaced
atomically, so concurrent installs cannot interleave or truncate it.
Hook runtimes never read this file.
"""

from __future__ import annotations

import json
import logging
import os
import shlex
import sys
import tempfile
from pathlib import Path
from typing import Any

from filelock import FileLock

from mdhooks.lib.hook_types import HookDefinition, HookMetadata

logger = logging.getLogger(__name__)

LOCK_TIMEOUT = 10


def _lock_for(path: Path) -> FileLock:
    path.parent.mkdir(parents=True, exist_ok=True)
    return FileLock(path.with_suffix(path.suffix + ".lock"), timeout=LOCK_TIMEOUT)


def load_settings(path: str | Path) -> dict[str, Any]:
    """Read a settings file; a missing or empty file is an empty mapping.

    Raises:
        ValueError: If the file is not a JSON object
    """
    path = Path(path)
    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Settings file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a JSON object")
    return data


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    """Atomically write JSON file using temp file + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path_str = tempfile.mkstemp(suffix=".json", prefix="settings-", dir=str(path.parent))
    temp_path = Path(temp_path_str)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        temp_path.replace(path)
    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def save_settings(path: str | Path, settings: dict[str, Any]) -> None:
    path = Path(path)
    with _lock_for(path):
        _atomic_write_json(path, settings)


def hook_command(hook_path: str | Path, python: str = sys.executable) -> str:
    return shlex.join([python, str(Path(hook_path).resolve())])


def settings_entry(
    hook: HookDefinition | HookMetadata,
    hook_path: str | Path,
    python: str = sys.executable,
) -> dict[str, Any]:
    """Build the matcher group registering one hook script."""
    tools = hook.trigger.tools if isinstance(hook, HookDefinition) else hook.tools
    entry: dict[str, Any] = {}
    if tools:
        entry["matcher"] = "|".join(tools)
    entry["hooks"] = [{"type": "command", "command": hook_command(hook_path, python)}]
    return entry


def hook_event(hook: HookDefinition | HookMetadata) -> str:
    return hook.trigger.event if isinstance(hook, HookDefinition) else hook.event


def _references(group: dict[str, Any], script_name: str) -> bool:
    for handler in group.get("hooks", []):
        command = handler.get("command", "") if isinstance(handler, dict) else ""
        try:
            argv = shlex.split(command)
        except ValueError:
            # Unbalanced quotes in a hand-written entry
            continue
        if argv and Path(argv[-1]).name == script_name:
            return True
    return False


def merge_entry(
    settings: dict[str, Any], event: str, entry: dict[str, Any], script_name: str
) -> dict[str, Any]:
    """Insert entry under event, replacing any group that runs the same script."""
    hooks = settings.setdefault("hooks", {})
    groups = [g for g in hooks.get(event, []) if not _references(g, script_name)]
    groups.append(entry)
    hooks[event] = groups
    return settings


def install_hook(
    settings_path: str | Path,
    hook: HookDefinition | HookMetadata,
    hook_path: str | Path,
    python: str = sys.executable,
) -> dict[str, Any]:
    """Register hook_path in the settings file and return the new settings."""
    settings_path = Path(settings_path)
    with _lock_for(settings_path):
        settings = load_settings(settings_path)
        merge_entry(
            settings,
            hook_event(hook),
            settings_entry(hook, hook_path, python),
            Path(hook_path).name,
        )
        _atomic_write_json(settings_path, settings)
    logger.info("Registered %s in %s", hook_path, settings_path)
    return settings


def build_settings_snippet(
    hooks: list[tuple[HookMetadata, Path]], python: str = sys.executable
) -> dict[str, Any]:
    """Group (metadata, artifact) pairs by event into a settings fragment."""
    snippet: dict[str, Any] = {"hooks": {}}
    for metadata, hook_path in hooks:
        merge_entry(
            snippet, metadata.event, settings_entry(metadata, hook_path, python), hook_path.name
        )
    return snippet


def list_installed(settings: dict[str, Any]) -> dict[str, list[tuple[str, str]]]:
    """Return {event: [(matcher, command), ...]} for every registered handler."""
    installed: dict[str, list[tuple[str, str]]] = {}
    for event, groups in (settings.get("hooks") or {}).items():
        if not isinstance(groups, list):
            continue
        for group in groups:
            if not isinstance(group, dict):
                continue
            matcher = group.get("matcher", "*")
            for handler in group.get("hooks", []):
                if isinstance(handler, dict) and handler.get("command"):
                    installed.setdefault(event, []).append((matcher, handler["command"]))
    return installed
