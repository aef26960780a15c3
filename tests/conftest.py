"""Shared fixtures: stub oracles, fake invokers and sample definitions."""

import os
import stat
import sys
from pathlib import Path

import pytest

from mdhooks.hooks.schemas import HookOutput
from mdhooks.lib.config import ENV_VARS
from mdhooks.lib.errors import OracleError
from mdhooks.lib.hook_model import HookInvocationResult

REPO_ROOT = Path(__file__).resolve().parent.parent

NO_CONSOLE_LOGS_MD = """# Hook: no-console-logs

## Trigger
- event: PostToolUse
- tools: Edit, Write
- files: **/*.ts, **/*.js

## Prompt
Check the change for console.log statements.
Block if any are present.

## Options
- fail mode: closed
- max turns: 1

## Description
Blocks console.log calls in TypeScript and JavaScript.

## Tags
quality, logging
"""

CODE_ROUTER_MD = """# Hook: code-router

## Trigger
- event: PostToolUse
- tools: Edit, Write

## Prompt
Decide which validators apply to this change.

## Router
- callable: security-check, code-quality

## Options
- fail mode: open
"""


class StubOracle:
    """Oracle that returns canned responses and records every prompt."""

    def __init__(self, responses=None, error: Exception | None = None):
        if isinstance(responses, str):
            responses = [responses]
        self.responses = list(responses or [])
        self.error = error
        self.prompts: list[str] = []
        self.max_turns: list[int] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def ask(self, prompt: str, max_turns: int = 1) -> str:
        self.prompts.append(prompt)
        self.max_turns.append(max_turns)
        if self.error is not None:
            raise self.error
        if not self.responses:
            raise OracleError("No response from Claude")
        return self.responses.pop(0)


class FakeInvoker:
    """Invoker returning preset outputs per hook name."""

    def __init__(self, outputs: dict[str, HookOutput] | None = None, errors=None):
        self.outputs = outputs or {}
        self.errors = errors or {}
        self.calls: list[list[str]] = []

    def invoke_all(self, hook_names, input_data):
        self.calls.append(list(hook_names))
        return [
            HookInvocationResult(
                hook_name=name,
                output=self.outputs.get(name, HookOutput()),
                success=name not in self.errors,
                error=self.errors.get(name),
            )
            for name in hook_names
        ]


def write_executable(path: Path, body: str) -> Path:
    path.write_text(f"#!{sys.executable}\n{body}", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def write_fake_claude(directory: Path, result: str, exit_code: int = 0, **envelope) -> Path:
    """Write an executable that mimics `claude -p --output-format json`.

    The prompt read on stdin is saved next to it as prompt.txt.
    """
    payload = {"type": "result", "subtype": "success", "is_error": False, "result": result}
    payload.update(envelope)
    body = (
        "import sys, json, pathlib\n"
        "prompt = sys.stdin.read()\n"
        f"pathlib.Path({str(directory / 'prompt.txt')!r}).write_text(prompt)\n"
        f"print(json.dumps({payload!r}))\n"
        f"sys.exit({exit_code})\n"
    )
    return write_executable(directory / "fake-claude", body)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep MDHOOKS_* settings from the developer's shell out of tests."""
    for var in [*ENV_VARS.values(), "MDHOOKS_CONFIG"]:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def child_env(monkeypatch):
    """Make the source tree importable from child processes."""
    existing = os.environ.get("PYTHONPATH")
    value = str(REPO_ROOT) if not existing else f"{REPO_ROOT}{os.pathsep}{existing}"
    monkeypatch.setenv("PYTHONPATH", value)


@pytest.fixture
def post_tool_input() -> dict:
    return {
        "hook_event_name": "PostToolUse",
        "tool_name": "Write",
        "tool_input": {"file_path": "src/app.ts", "content": "console.log('debug');"},
    }


@pytest.fixture
def hook_md(tmp_path) -> Path:
    path = tmp_path / "no-console-logs.md"
    path.write_text(NO_CONSOLE_LOGS_MD, encoding="utf-8")
    return path


@pytest.fixture
def router_md(tmp_path) -> Path:
    path = tmp_path / "code-router.md"
    path.write_text(CODE_ROUTER_MD, encoding="utf-8")
    return path
