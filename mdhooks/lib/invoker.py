"""Hook invoker - runs generated validators as isolated child processes.

Each child gets its own copy of the input document on stdin and writes one
JSON verdict to stdout. Children never share state; the router joins all of
them before aggregating and never cancels the rest when one blocks.

Crash-as-block: a child that exits non-zero without an explicit decision is
treated as a block, independent of the router's own fail mode. A child that
outlives the timeout is killed and treated the same way.
"""

from __future__ import annotations

import json
import logging
import re
import subprocess
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from mdhooks.hooks.schemas import HookOutput
from mdhooks.lib.catalog import ARTIFACT_SUFFIX
from mdhooks.lib.errors import ChildInvocationError
from mdhooks.lib.hook_model import HookInvocationResult

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


class Invoker(Protocol):
    def invoke_all(
        self, hook_names: list[str], input_data: dict[str, Any]
    ) -> list[HookInvocationResult]: ...


def parse_child_output(stdout: str) -> HookOutput:
    """Find and decode the JSON verdict in a child's stdout.

    Children may print other text around the document; the outermost
    brace-delimited span is used.

    Raises:
        ValueError: If no valid verdict object is present
    """
    match = _JSON_OBJECT_RE.search(stdout)
    if not match:
        raise ValueError("no JSON object in output")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON output: {e}") from e
    try:
        return HookOutput.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"invalid verdict: {e.errors()[0]['msg']}") from e


class HookInvoker:
    """Runs `<generated_dir>/<hook>.py` with the current interpreter."""

    def __init__(
        self,
        generated_dir: str | Path,
        timeout: float | None = 120.0,
        python: str = sys.executable,
    ):
        self.generated_dir = Path(generated_dir)
        self.timeout = timeout
        self.python = python

    def artifact_path(self, hook_name: str) -> Path:
        return self.generated_dir / f"{hook_name}{ARTIFACT_SUFFIX}"

    def _run_child(self, hook_name: str, payload: str) -> tuple[int, str, str]:
        """Run one child and return (returncode, stdout, stderr).

        Output is decoded leniently; undecodable bytes become U+FFFD.
        """
        hook_path = self.artifact_path(hook_name)
        if not hook_path.exists():
            raise ChildInvocationError(hook_name, f"Hook file not found: {hook_path}")
        try:
            completed = subprocess.run(
                [self.python, str(hook_path.resolve())],
                input=payload.encode("utf-8"),
                capture_output=True,
                timeout=self.timeout,
                cwd=str(self.generated_dir),
                check=False,
            )
        except OSError as e:
            raise ChildInvocationError(hook_name, f"Failed to start: {e}") from e
        return (
            completed.returncode,
            completed.stdout.decode("utf-8", errors="replace"),
            completed.stderr.decode("utf-8", errors="replace"),
        )

    def invoke(self, hook_name: str, input_data: dict[str, Any]) -> HookInvocationResult:
        """Invoke a single hook and convert every outcome into a result."""
        start_time = time.monotonic()

        def elapsed() -> float:
            return (time.monotonic() - start_time) * 1000

        try:
            returncode, stdout, stderr = self._run_child(hook_name, json.dumps(input_data))
        except ChildInvocationError as e:
            logger.warning("%s", e)
            return HookInvocationResult(
                hook_name=hook_name,
                output=HookOutput(),
                success=False,
                error=e.message,
                elapsed_ms=elapsed(),
            )
        except subprocess.TimeoutExpired:
            # subprocess.run has already killed the child
            logger.warning("Hook %s timed out after %ss", hook_name, self.timeout)
            return HookInvocationResult(
                hook_name=hook_name,
                output=HookOutput(decision="block"),
                success=False,
                error=f"Timed out after {self.timeout} seconds",
                elapsed_ms=elapsed(),
                timed_out=True,
            )

        errors: list[str] = []
        try:
            output = parse_child_output(stdout)
        except ValueError as e:
            output = HookOutput()
            if stdout.strip():
                errors.append(f"Unparseable output: {e}")

        if returncode != 0 and not output.decision:
            output = output.model_copy(update={"decision": "block"})
            if not stderr.strip():
                errors.append(f"Exited with status {returncode}")

        if stderr.strip():
            errors.insert(0, stderr.strip())

        return HookInvocationResult(
            hook_name=hook_name,
            output=output,
            success=returncode == 0,
            error="\n".join(errors) or None,
            elapsed_ms=elapsed(),
            exit_code=returncode,
        )

    def invoke_all(
        self, hook_names: list[str], input_data: dict[str, Any]
    ) -> list[HookInvocationResult]:
        """Invoke hooks in parallel; results follow the order of hook_names."""
        if not hook_names:
            return []
        with ThreadPoolExecutor(max_workers=len(hook_names)) as pool:
            return list(pool.map(lambda name: self.invoke(name, input_data), hook_names))
