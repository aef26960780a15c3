"""Tests for the standard validator runtime."""

import io
import json
import subprocess
import sys

from conftest import NO_CONSOLE_LOGS_MD, StubOracle, write_fake_claude

from mdhooks.hooks.validator import ValidatorHook, run_validator
from mdhooks.lib.config import HooksConfig
from mdhooks.lib.errors import OracleError
from mdhooks.lib.generator import generate_hook_file
from mdhooks.lib.hook_types import FailMode, HookOptions, HookTrigger
from mdhooks.lib.hook_utils import read_stdin
from mdhooks.lib.parser import parse_markdown


def _hook(oracle, fail_mode=FailMode.CLOSED) -> ValidatorHook:
    definition = parse_markdown(NO_CONSOLE_LOGS_MD)
    hook = ValidatorHook.from_definition(definition, oracle)
    hook.options = HookOptions(fail_mode=fail_mode, max_turns=1)
    return hook


def test_blocks_console_log(post_tool_input) -> None:
    """A blocking oracle verdict is labeled with the hook name."""
    oracle = StubOracle("DECISION: BLOCK\nREASON: console.log on line 1")
    output = _hook(oracle).evaluate(post_tool_input)

    assert output.decision == "block"
    assert output.reason == "[no-console-logs] console.log on line 1"
    assert output.hookSpecificOutput.hookEventName == "PostToolUse"
    assert output.hookSpecificOutput.additionalContext.startswith(
        "Hook: no-console-logs. Claude response: DECISION: BLOCK"
    )
    assert oracle.calls == 1


def test_prompt_includes_change_context(post_tool_input) -> None:
    oracle = StubOracle("DECISION: ALLOW\nREASON: fine")
    post_tool_input["tool_result"] = {"success": True}
    _hook(oracle).evaluate(post_tool_input)

    prompt = oracle.prompts[0]
    assert prompt.startswith("Check the change for console.log statements.")
    assert "File: src/app.ts" in prompt
    assert "Content:\n```\nconsole.log('debug');\n```" in prompt
    assert 'Tool result: {"success": true}' in prompt


def test_tool_result_is_truncated() -> None:
    oracle = StubOracle("DECISION: ALLOW")
    input_data = {
        "tool_name": "Edit",
        "tool_input": {"file_path": "a.ts", "new_string": "x"},
        "tool_result": "y" * 2000,
    }
    _hook(oracle).evaluate(input_data)

    prompt = oracle.prompts[0]
    assert "New content:\n```\nx\n```" in prompt
    tool_result_line = prompt.split("Tool result: ", 1)[1].split("\n", 1)[0]
    assert len(tool_result_line) == 500


def test_allow_has_no_decision(post_tool_input) -> None:
    output = _hook(StubOracle("DECISION: ALLOW\nREASON: clean")).evaluate(post_tool_input)

    assert output.decision is None
    assert json.loads(output.to_json())["reason"] == "[no-console-logs] clean"
    assert "decision" not in json.loads(output.to_json())


def test_trigger_mismatch_skips_without_oracle_call(post_tool_input) -> None:
    oracle = StubOracle()
    post_tool_input["tool_input"]["file_path"] = "docs/readme.md"
    output = _hook(oracle).evaluate(post_tool_input)

    assert output.reason == "[no-console-logs] Skipped - trigger conditions not met"
    assert output.decision is None
    assert oracle.calls == 0


def test_missing_input_yields_empty_output() -> None:
    oracle = StubOracle()
    hook = _hook(oracle)

    assert hook.evaluate(None).to_json() == "{}"
    assert hook.run("not json").to_json() == "{}"
    assert hook.run("").to_json() == "{}"
    assert oracle.calls == 0


def test_oracle_failure_fail_closed_blocks(post_tool_input) -> None:
    oracle = StubOracle(error=OracleError("No response from Claude"))
    output = _hook(oracle, FailMode.CLOSED).evaluate(post_tool_input)

    assert output.decision == "block"
    assert output.reason == "[no-console-logs] Error (fail-closed): No response from Claude"
    assert output.hookSpecificOutput.additionalContext == "Hook error: No response from Claude"


def test_oracle_failure_fail_open_allows(post_tool_input) -> None:
    oracle = StubOracle(error=OracleError("No response from Claude"))
    output = _hook(oracle, FailMode.OPEN).evaluate(post_tool_input)

    assert output.decision is None
    assert output.reason == "[no-console-logs] Error (fail-open): No response from Claude"


def test_max_turns_is_passed_to_oracle(post_tool_input) -> None:
    oracle = StubOracle("DECISION: ALLOW")
    hook = ValidatorHook(
        name="multi",
        trigger=HookTrigger(),
        options=HookOptions(max_turns=4),
        prompt="p",
        oracle=oracle,
    )
    hook.evaluate(post_tool_input)

    assert oracle.max_turns == [4]


def test_run_validator_prints_one_document_and_logs(post_tool_input, tmp_path) -> None:
    definition = parse_markdown(NO_CONSOLE_LOGS_MD)
    stdout = io.StringIO()
    log_dir = tmp_path / "logs"

    code = run_validator(
        definition.name,
        definition.trigger.model_dump(mode="json"),
        definition.options.model_dump(mode="json"),
        definition.prompt,
        stdin=io.StringIO(json.dumps(post_tool_input)),
        stdout=stdout,
        oracle=StubOracle("DECISION: BLOCK\nREASON: console.log on line 1"),
        config=HooksConfig(log_dir=log_dir),
    )

    assert code == 0
    lines = stdout.getvalue().splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0])["decision"] == "block"

    log_files = list(log_dir.glob("mdhooks-*.jsonl"))
    assert len(log_files) == 1
    entry = json.loads(log_files[0].read_text().splitlines()[0])
    assert entry["hook"] == "no-console-logs"
    assert entry["decision"] == "block"
    assert entry["file_path"] == "src/app.ts"


def test_run_validator_with_broken_embedded_options_uses_fail_mode() -> None:
    stdout = io.StringIO()
    code = run_validator(
        "broken",
        {"event": "PostToolUse"},
        {"fail_mode": "closed", "max_turns": "many"},
        "p",
        stdin=io.StringIO("{}"),
        stdout=stdout,
        oracle=StubOracle(),
        config=HooksConfig(),
    )

    assert code == 0
    output = json.loads(stdout.getvalue())
    assert output["decision"] == "block"
    assert output["reason"].startswith("[broken] Error (fail-closed):")


def test_generated_artifact_end_to_end(hook_md, tmp_path, post_tool_input, child_env, monkeypatch) -> None:
    """The generated script runs standalone against a fake claude CLI."""
    fake = write_fake_claude(tmp_path, "DECISION: BLOCK\nREASON: console.log on line 1")
    monkeypatch.setenv("MDHOOKS_ORACLE_COMMAND", str(fake))
    written = generate_hook_file(hook_md, tmp_path / "generated")

    completed = subprocess.run(
        [sys.executable, str(written.output_path)],
        input=json.dumps(post_tool_input),
        capture_output=True,
        text=True,
        timeout=60,
        cwd=str(tmp_path),
    )

    assert completed.returncode == 0, completed.stderr
    output = json.loads(completed.stdout)
    assert output["decision"] == "block"
    assert output["reason"] == "[no-console-logs] console.log on line 1"
    assert "console.log('debug');" in (tmp_path / "prompt.txt").read_text()


def test_undecodable_stdin_still_prints_one_document() -> None:
    stdin = io.TextIOWrapper(io.BytesIO(b'\xff\xfe{"tool_name": "Write"}'), encoding="utf-8")
    stdout = io.StringIO()
    oracle = StubOracle()

    code = run_validator(
        "no-console-logs",
        {"event": "PostToolUse"},
        {"fail_mode": "closed"},
        "p",
        stdin=stdin,
        stdout=stdout,
        oracle=oracle,
        config=HooksConfig(),
    )

    assert code == 0
    assert json.loads(stdout.getvalue()) == {}
    assert oracle.calls == 0


def test_read_stdin_replaces_undecodable_bytes() -> None:
    stdin = io.TextIOWrapper(io.BytesIO(b'{"file_path": "a\xff.ts"}'), encoding="utf-8")

    assert read_stdin(stdin) == '{"file_path": "a\ufffd.ts"}'
