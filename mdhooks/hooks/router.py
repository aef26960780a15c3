#!/usr/bin/env python3
"""
Router runtime.

A router is a hook whose job is to pick which validators apply to a change
and run them. One run:

    trigger check -> discovery -> one routing oracle call
    -> parallel fan-out to children -> aggregate into one verdict

Terminal states:
- Skipped: trigger did not match
- Allowed: nothing discovered, nothing selected, or no child blocked
- Blocked: any child blocked (or fail-closed on a router error)

Routing and aggregation errors are resolved by the router's own fail mode.
Child crashes are not: a child that crashes counts as a block.
"""

import json
import logging
import re
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, TextIO

from mdhooks.hooks.hook_log import log_hook_event
from mdhooks.hooks.schemas import HookOutput, HookSpecificOutput
from mdhooks.lib.catalog import DirectoryCatalog, ValidatorCatalog
from mdhooks.lib.config import HooksConfig, load_config
from mdhooks.lib.errors import AggregationError, RoutingError
from mdhooks.lib.generator import slugify
from mdhooks.lib.hook_model import HookInvocationResult
from mdhooks.lib.hook_types import HookMetadata, HookOptions, HookTrigger
from mdhooks.lib.hook_utils import (
    build_change_context,
    emit_output,
    fail_mode_output,
    read_hook_input,
    read_stdin,
)
from mdhooks.lib.invoker import HookInvoker, Invoker
from mdhooks.lib.oracle import ROUTING_SYSTEM_PROMPT, ClaudeCliOracle, Oracle
from mdhooks.lib.trigger import should_trigger

logger = logging.getLogger(__name__)

# First bracketed span; routers are told to answer with a bare JSON array
_JSON_ARRAY_RE = re.compile(r"\[.*?\]", re.DOTALL)

ROUTING_INSTRUCTION = (
    "Return ONLY a JSON array of validator names from the list above. "
    "No explanation needed."
)


class RouterState(Enum):
    SKIPPED = "Skipped"
    ALLOWED = "Allowed"
    BLOCKED = "Blocked"


@dataclass
class RouterRun:
    """Terminal state of one router run and the verdict to print."""

    state: RouterState
    output: HookOutput
    selected: list[str] | None = None


def parse_hook_list(response: str, valid_names: list[str]) -> list[str]:
    """Extract the selected validator names from a routing response.

    Names not in valid_names are dropped, as are duplicates; order is kept.

    Raises:
        RoutingError: If no JSON array of strings is present
    """
    match = _JSON_ARRAY_RE.search(response)
    if not match:
        raise RoutingError(f"No JSON array in routing response: {response[:200]}")
    try:
        names = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise RoutingError(f"Invalid JSON array in routing response: {e}") from e
    if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
        raise RoutingError("Routing response must be a JSON array of strings")

    allowed = set(valid_names)
    selected: list[str] = []
    for name in names:
        if name in allowed and name not in selected:
            selected.append(name)
    return selected


class HookRouter:
    """Selects validators with one oracle call and runs them in parallel."""

    def __init__(
        self,
        name: str,
        trigger: HookTrigger,
        options: HookOptions,
        base_prompt: str,
        catalog: ValidatorCatalog,
        oracle: Oracle,
        invoker: Invoker,
        allowlist: list[str] | None = None,
        discovery_label: str = "generated directory",
    ):
        self.name = name
        self.trigger = trigger
        self.options = options
        self.base_prompt = base_prompt
        self.catalog = catalog
        self.oracle = oracle
        self.invoker = invoker
        self.allowlist = list(allowlist) if allowlist else None
        self.discovery_label = discovery_label
        self._discovered: list[HookMetadata] | None = None

    # --- Discovery ---

    def _is_self_or_router(self, record: HookMetadata) -> bool:
        return (
            record.name == self.name
            or record.name == slugify(self.name)
            or "router" in record.name.lower()
        )

    def discover(self) -> list[HookMetadata]:
        """List callable validators. The catalog is read once per instance."""
        if self._discovered is None:
            hooks = [h for h in self.catalog.list_validators() if not self._is_self_or_router(h)]
            if self.allowlist:
                hooks = [h for h in hooks if h.name in self.allowlist]
            self._discovered = hooks
            logger.debug("Router %s discovered: %s", self.name, [h.name for h in hooks])
        return self._discovered

    # --- Routing ---

    def build_routing_prompt(self, hooks: list[HookMetadata], input_data: dict[str, Any]) -> str:
        lines = []
        for hook in hooks:
            line = f"- {hook.name}: {hook.description}"
            if hook.tags:
                line += f" [tags: {', '.join(hook.tags)}]"
            lines.append(line)

        prompt = self.base_prompt
        prompt += "\n\nAvailable validators:\n" + "\n".join(lines)
        prompt += f"\n\n{ROUTING_INSTRUCTION}\n\n"
        prompt += build_change_context(input_data, include_tool_result=False)
        return prompt

    def route(self, hooks: list[HookMetadata], input_data: dict[str, Any]) -> list[str]:
        """Make exactly one oracle call and return the selected names."""
        prompt = self.build_routing_prompt(hooks, input_data)
        response = self.oracle.ask(prompt, max_turns=1)
        return parse_hook_list(response, [h.name for h in hooks])

    # --- Aggregation ---

    def aggregate(
        self,
        selected: list[str],
        results: list[HookInvocationResult],
        discovered_count: int | None = None,
    ) -> HookOutput:
        """Fold child results into one verdict.

        Raises:
            AggregationError: If results do not line up with selected
        """
        if [r.hook_name for r in results] != selected:
            raise AggregationError(
                f"Expected results for {selected}, got {[r.hook_name for r in results]}"
            )

        reasons: list[str] = []
        blocked = False
        for result in results:
            label = f"[{result.hook_name}]"
            reason = result.output.reason
            if result.blocked:
                blocked = True
                if not reason:
                    reason = f"{label} Blocked"
            if reason:
                reasons.append(reason if reason.startswith(label) else f"{label} {reason}")
            if result.error:
                reasons.append(f"{label} Error: {result.error}")

        if discovered_count is None:
            discovered_count = len(self.discover())

        summary = f"[{self.name}] Ran {', '.join(selected)}"
        if reasons:
            summary += ":\n\n" + "\n\n".join(reasons)

        return HookOutput(
            decision="block" if blocked else None,
            reason=summary,
            hookSpecificOutput=HookSpecificOutput(
                hookEventName=self.trigger.event,
                additionalContext=(
                    f"Router discovered {discovered_count} hooks, "
                    f"invoked: {', '.join(selected)}"
                ),
            ),
        )

    # --- Protocol ---

    def _router_error(self, message: str) -> RouterRun:
        output = fail_mode_output(
            self.name,
            self.trigger.event,
            self.options.fail_mode,
            message,
            label="Router error",
            context_label="Router error",
        )
        state = RouterState.BLOCKED if output.blocked else RouterState.ALLOWED
        return RouterRun(state=state, output=output)

    def run(self, input_data: dict[str, Any] | None) -> RouterRun:
        """Drive one event through the router protocol."""
        if input_data is None:
            return RouterRun(state=RouterState.ALLOWED, output=HookOutput())

        try:
            if not should_trigger(input_data, self.trigger):
                return RouterRun(
                    state=RouterState.SKIPPED,
                    output=HookOutput(
                        reason=f"[{self.name}] Skipped - trigger conditions not met"
                    ),
                )

            hooks = self.discover()
            if not hooks:
                return RouterRun(
                    state=RouterState.ALLOWED,
                    output=HookOutput(
                        reason=f"[{self.name}] No validators discovered in {self.discovery_label}"
                    ),
                )

            selected = self.route(hooks, input_data)
            if not selected:
                return RouterRun(
                    state=RouterState.ALLOWED,
                    output=HookOutput(reason=f"[{self.name}] No validators needed for this file"),
                    selected=[],
                )

            results = self.invoker.invoke_all(selected, input_data)
            logger.debug("Router %s child results: %s", self.name, [r.to_json() for r in results])
            output = self.aggregate(selected, results, discovered_count=len(hooks))
        except Exception as e:
            logger.warning("Router %s failed: %s", self.name, e)
            return self._router_error(str(e))

        state = RouterState.BLOCKED if output.blocked else RouterState.ALLOWED
        return RouterRun(state=state, output=output, selected=selected)


def run_router(
    hook_name: str,
    trigger: dict[str, Any],
    options: dict[str, Any],
    base_prompt: str,
    allowlist: list[str] | None,
    generated_dir: str | Path,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    oracle: Oracle | None = None,
    config: HooksConfig | None = None,
) -> int:
    """Entry point for generated router scripts. Always returns 0."""
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

    run: RouterRun | None = None
    try:
        router = HookRouter(
            name=hook_name,
            trigger=HookTrigger.model_validate(trigger),
            options=HookOptions.model_validate(options),
            base_prompt=base_prompt,
            catalog=DirectoryCatalog(generated_dir),
            oracle=oracle
            or ClaudeCliOracle(
                system_prompt=ROUTING_SYSTEM_PROMPT,
                command=config.oracle_command,
                timeout=config.oracle_timeout,
            ),
            invoker=HookInvoker(generated_dir, timeout=config.child_timeout),
            allowlist=allowlist,
            discovery_label=str(generated_dir),
        )
        run = router.run(input_data)
        output = run.output
    except Exception as e:
        print(f"CRITICAL: Router {hook_name} could not start: {e}", file=sys.stderr)
        output = fail_mode_output(
            hook_name,
            str(trigger.get("event", "PostToolUse")),
            str(options.get("fail_mode", "open")),
            str(e),
            label="Router error",
            context_label="Router error",
        )

    emit_output(output, stdout)
    extra = None
    if run is not None:
        extra = {"state": run.state.value, "selected": run.selected}
    log_hook_event(config.log_dir, hook_name, input_data, output, extra=extra)
    return 0


if __name__ == "__main__":
    print("Run a generated router script instead of this module.", file=sys.stderr)
    sys.exit(2)
