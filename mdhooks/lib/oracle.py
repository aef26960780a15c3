"""Validation oracle client.

The oracle is an external text-in/text-out decision service. The default
adapter runs the `claude` CLI in print mode with every tool disabled, so the
model can only reason over the text it is given.

Decision parsing is a best-effort natural-language contract defined entirely
by the precedence rules in parse_decision().
"""

from __future__ import annotations

import json
import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Protocol

from mdhooks.lib.errors import OracleError
from mdhooks.lib.hook_model import HookDecision

logger = logging.getLogger(__name__)

VALIDATION_SYSTEM_PROMPT = """You are a code validation hook for Claude Code.

Your job is to review code changes and provide a decision:
- If the code is acceptable, respond with: DECISION: ALLOW
- If the code has issues that should block the change, respond with: DECISION: BLOCK
- Provide a brief reason for your decision

Format your response as:
DECISION: ALLOW or BLOCK
REASON: <brief explanation>

Be concise and focus on the specific validation criteria provided."""

ROUTING_SYSTEM_PROMPT = """You are a code quality router. Your job is to analyze code and decide which validators should run.

Return ONLY a JSON array of validator names. No other text.
Example: ["validate-security", "validate-yagni"]

If no validators apply, return an empty array: []"""

# The oracle gets no file, shell, web or agent access
DISALLOWED_TOOLS = (
    "Read",
    "Write",
    "Edit",
    "MultiEdit",
    "Bash",
    "Glob",
    "Grep",
    "WebFetch",
    "WebSearch",
    "TodoRead",
    "TodoWrite",
    "Task",
    "NotebookEdit",
)

DEFAULT_REASON = "Validation completed"

_EXPLICIT_BLOCK_RE = re.compile(r"DECISION:\s*BLOCK")
_REASON_RE = re.compile(r"REASON:\s*(.+)", re.IGNORECASE)


class Oracle(Protocol):
    """Anything that can answer a prompt with free text."""

    def ask(self, prompt: str, max_turns: int = 1) -> str: ...


@dataclass
class OracleDecision:
    decision: HookDecision
    reason: str

    @property
    def blocked(self) -> bool:
        return self.decision == HookDecision.BLOCK


def parse_decision(response: str) -> OracleDecision:
    """Extract a decision and reason from free oracle text.

    Precedence:
    1. An explicit "DECISION: BLOCK" token blocks.
    2. A bare "BLOCK" with no "ALLOW" anywhere also blocks. This heuristic
       is kept for compatibility with responses that skip the formal token.
    3. Anything else allows.
    4. Reason is the text after "REASON:", else the first non-blank line,
       else a generic fallback.
    """
    upper = response.upper()

    if _EXPLICIT_BLOCK_RE.search(upper):
        decision = HookDecision.BLOCK
    elif "BLOCK" in upper and "ALLOW" not in upper:
        decision = HookDecision.BLOCK
    else:
        decision = HookDecision.ALLOW

    match = _REASON_RE.search(response)
    if match and match.group(1).strip():
        reason = match.group(1).strip()
    else:
        lines = [line.strip() for line in response.splitlines() if line.strip()]
        reason = lines[0] if lines else DEFAULT_REASON

    return OracleDecision(decision=decision, reason=reason)


class ClaudeCliOracle:
    """Oracle backed by `claude -p` (Claude Code print mode).

    Uses the existing Claude Code login; no API key handling here.
    """

    def __init__(
        self,
        system_prompt: str = VALIDATION_SYSTEM_PROMPT,
        command: str = "claude",
        timeout: float | None = 120.0,
    ):
        self.system_prompt = system_prompt
        self.command = command
        self.timeout = timeout

    def build_command(self, max_turns: int) -> list[str]:
        return [
            self.command,
            "-p",
            "--output-format",
            "json",
            "--max-turns",
            str(max_turns),
            "--system-prompt",
            self.system_prompt,
            "--disallowedTools",
            ",".join(DISALLOWED_TOOLS),
        ]

    def ask(self, prompt: str, max_turns: int = 1) -> str:
        cmd = self.build_command(max_turns)
        try:
            result = subprocess.run(
                cmd,
                input=prompt,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise OracleError(f"Oracle command not found: {self.command}") from e
        except subprocess.TimeoutExpired as e:
            raise OracleError(f"Oracle call timed out after {self.timeout} seconds") from e

        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()[:500]
            raise OracleError(
                f"Claude call failed (exit {result.returncode}): {detail or 'no output'}"
            )

        text = self._extract_text(result.stdout)
        if not text.strip():
            raise OracleError("No response from Claude")
        return text

    @staticmethod
    def _extract_text(stdout: str) -> str:
        """Pull the final result out of the JSON envelope; fall back to raw text."""
        try:
            envelope = json.loads(stdout)
        except json.JSONDecodeError:
            return stdout

        if not isinstance(envelope, dict):
            return stdout

        if envelope.get("is_error") or envelope.get("subtype", "success") != "success":
            raise OracleError(
                f"Claude returned an error result: {envelope.get('subtype') or envelope.get('result')}"
            )

        result = envelope.get("result")
        if isinstance(result, str):
            return result
        logger.debug("Unexpected oracle envelope keys: %s", sorted(envelope))
        return ""
