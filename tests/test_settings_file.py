"""Tests for registering hooks in a Claude Code settings file."""

import json
import shlex
import sys
from pathlib import Path

import pytest
from conftest import NO_CONSOLE_LOGS_MD

from mdhooks.lib.hook_types import HookDefinition, HookMetadata, HookTrigger
from mdhooks.lib.parser import parse_markdown
from mdhooks.lib.settings_file import (
    build_settings_snippet,
    install_hook,
    list_installed,
    load_settings,
    save_settings,
    settings_entry,
)


def test_settings_entry_uses_tools_as_matcher(tmp_path) -> None:
    definition = parse_markdown(NO_CONSOLE_LOGS_MD)
    entry = settings_entry(definition, tmp_path / "no-console-logs.py", python="python3")

    assert entry == {
        "matcher": "Edit|Write",
        "hooks": [
            {"type": "command", "command": f"python3 {(tmp_path / 'no-console-logs.py').resolve()}"}
        ],
    }


def test_settings_entry_without_tools_has_no_matcher(tmp_path) -> None:
    definition = HookDefinition(name="stop", prompt="p", trigger=HookTrigger(event="Stop"))

    assert "matcher" not in settings_entry(definition, tmp_path / "stop.py")


def test_install_creates_file_and_replaces_same_script(tmp_path) -> None:
    settings_path = tmp_path / ".claude" / "settings.json"
    definition = parse_markdown(NO_CONSOLE_LOGS_MD)
    hook_path = tmp_path / "generated" / "no-console-logs.py"

    install_hook(settings_path, definition, hook_path)
    install_hook(settings_path, definition, hook_path)

    settings = json.loads(settings_path.read_text())
    groups = settings["hooks"]["PostToolUse"]
    assert len(groups) == 1
    assert groups[0]["hooks"][0]["command"].startswith(sys.executable)
    assert list(settings_path.parent.glob("settings-*")) == []


def test_install_preserves_unrelated_settings(tmp_path) -> None:
    settings_path = tmp_path / "settings.json"
    save_settings(
        settings_path,
        {
            "model": "sonnet",
            "hooks": {
                "PostToolUse": [
                    {"matcher": "Bash", "hooks": [{"type": "command", "command": "echo hi"}]}
                ]
            },
        },
    )

    install_hook(settings_path, parse_markdown(NO_CONSOLE_LOGS_MD), tmp_path / "x.py")

    settings = load_settings(settings_path)
    assert settings["model"] == "sonnet"
    assert [g.get("matcher") for g in settings["hooks"]["PostToolUse"]] == ["Bash", "Edit|Write"]


def test_load_settings_missing_and_empty(tmp_path) -> None:
    assert load_settings(tmp_path / "absent.json") == {}
    empty = tmp_path / "empty.json"
    empty.write_text("  \n")
    assert load_settings(empty) == {}


@pytest.mark.parametrize("content", ["{oops", "[1, 2]"])
def test_load_settings_rejects_invalid_content(tmp_path, content) -> None:
    path = tmp_path / "settings.json"
    path.write_text(content)

    with pytest.raises(ValueError):
        load_settings(path)


def test_build_snippet_groups_by_event() -> None:
    pairs = [
        (HookMetadata(name="a", tools=["Edit"]), Path("/g/a.py")),
        (HookMetadata(name="b", event="Stop"), Path("/g/b.py")),
        (HookMetadata(name="c", tools=["Write"]), Path("/g/c.py")),
    ]
    snippet = build_settings_snippet(pairs, python="py")

    assert list(snippet["hooks"]) == ["PostToolUse", "Stop"]
    assert [g["matcher"] for g in snippet["hooks"]["PostToolUse"]] == ["Edit", "Write"]
    assert snippet["hooks"]["Stop"][0]["hooks"][0]["command"].endswith("b.py")


def test_list_installed() -> None:
    settings = {
        "hooks": {
            "PostToolUse": [
                {"matcher": "Edit|Write", "hooks": [{"type": "command", "command": "py /g/a.py"}]}
            ],
            "Stop": [{"hooks": [{"type": "command", "command": "py /g/b.py"}]}],
        }
    }

    assert list_installed(settings) == {
        "PostToolUse": [("Edit|Write", "py /g/a.py")],
        "Stop": [("*", "py /g/b.py")],
    }


def test_paths_with_spaces_are_quoted_and_replaced_on_reinstall(tmp_path) -> None:
    settings_path = tmp_path / "settings.json"
    definition = parse_markdown(NO_CONSOLE_LOGS_MD)
    hook_path = tmp_path / "my hooks" / "no-console-logs.py"
    python = "/opt/My Python/bin/python3"

    install_hook(settings_path, definition, hook_path, python=python)
    install_hook(settings_path, definition, hook_path, python=python)

    groups = load_settings(settings_path)["hooks"]["PostToolUse"]
    assert len(groups) == 1
    command = groups[0]["hooks"][0]["command"]
    assert shlex.split(command) == [python, str(hook_path.resolve())]
