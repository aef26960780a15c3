#!/usr/bin/env python3
"""
Standard validator runtime.

Every generated (non-router) hook script calls run_validator() with its
embedded configuration. One run:

    read input -> trigger check -> build prompt -> one oracle call
    -> parse decision -> print exactly one JSON verdict

Errors after the input is read never escape: they become a verdict decided
by the hook's fail mode.
"""

import logging
import sys
from typing import Any, TextIO

from mdhooks.hooks.hook_log import log_hook_event
from mdhooks.hooks.schemas import HookOutput, HookSpecificOutput
from mdhooks.lib.config import HooksConfig, load_config
from mdhooks.lib.hook_types import HookDefinition, HookOptions, HookTrigger
from mdhooks.lib.hook_utils import (
    RESPONSE_PREVIEW_LIMIT,
    build_change_context,
    emit_output,
    fail_mode_output,
    read_hook_input,
    read_stdin,
)
from mdhooks.lib.oracle import VALIDATION_SYSTEM_PROMPT, ClaudeCliOracle, Oracle, parse_decision
from mdhooks.lib.trigger import should_trigger

logger = logging.getLogger(__name__)


class ValidatorHook:
    """A single prompt-based check bound to an oracle."""

    def __init__(
        self,
        name: str,
        trigger: HookTrigger,
        options: HookOptions,
        prompt: str,
        oracle: Oracle,
    ):
        self.name = name
        self.trigger = trigger
        self.options = options
        self.prompt = prompt
        self.oracle = oracle

    @classmethod
    def from_definition(cls, definition: HookDefinition, oracle: Oracle) -> "ValidatorHook":
        return cls(
            name=definition.name,
            trigger=definition.trigger,
            options=definition.options,
            prompt=definition.prompt,
            oracle=oracle,
        )

    def build_prompt(self, input_data: dict[str, Any]) -> str:
        return f"{self.prompt}\n\n{build_change_context(input_data)}"

    def evaluate(self, input_data: dict[str, Any] | None) -> HookOutput:
        """Judge one input document. None (malformed/absent input) yields {}."""
        if input_data is None:
            return HookOutput()

        try:
            if not should_trigger(input_data, self.trigger):
                return HookOutput(reason=f"[{self.name}] Skipped - trigger conditions not met")

            prompt = self.build_prompt(input_data)
            response = self.oracle.ask(prompt, max_turns=self.options.max_turns)
            verdict = parse_decision(response)

            return HookOutput(
                decision="block" if verdict.blocked else None,
                reason=f"[{self.name}] {verdict.reason}",
                hookSpecificOutput=HookSpecificOutput(
                    hookEventName=self.trigger.event,
                    additionalContext=(
                        f"Hook: {self.name}. Claude response: "
                        f"{response[:RESPONSE_PREVIEW_LIMIT]}"
                    ),
                ),
            )
        except Exception as e:
            logger.warning("Hook %s failed: %s", self.name, e)
            return fail_mode_output(
                self.name, self.trigger.event, self.options.fail_mode, str(e)
            )

    def run(self, raw_input: str | None) -> HookOutput:
        return self.evaluate(read_hook_input(raw_input))


def run_validator(
    hook_name: str,
    trigger: dict[str, Any],
    options: dict[str, Any],
    prompt: str,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    oracle: Oracle | None = None,
    config: HooksConfig | None = None,
) -> int:
    """Entry point for generated validator scripts. Always returns 0."""
    logging.basicConfig(
        level=logging.WARNING, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    input_data = read_hook_input(read_stdin(stdin))

    if config is None:
        try:
            config = load_config()
        except RuntimeError as e:
            print(f"WARNING: {e}; using defaults", file=sys.stderr)
            config = HooksConfig()

    try:
        hook = ValidatorHook(
            name=hook_name,
            trigger=HookTrigger.model_validate(trigger),
            options=HookOptions.model_validate(options),
            prompt=prompt,
            oracle=oracle
            or ClaudeCliOracle(
                system_prompt=VALIDATION_SYSTEM_PROMPT,
                command=config.oracle_command,
                timeout=config.oracle_timeout,
            ),
        )
        output = hook.evaluate(input_data)
    except Exception as e:
        # Embedded configuration itself is broken
        print(f"CRITICAL: Hook {hook_name} could not start: {e}", file=sys.stderr)
        output = fail_mode_output(
            hook_name,
            str(trigger.get("event", "PostToolUse")),
            str(options.get("fail_mode", "open")),
            str(e),
        )

    emit_output(output, stdout)
    log_hook_event(config.log_dir, hook_name, input_data, output)
    return 0


if __name__ == "__main__":
    print("Run a generated hook script instead of this module.", file=sys.stderr)
    sys.exit(2)
