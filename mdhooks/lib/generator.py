"""
Hook generator.

Compiles a validated HookDefinition into an executable Python script plus a
`.meta.json` discovery record. Both files are keyed by the slug of the hook
name, so regenerating a hook overwrites it in place.

Generated scripts embed their whole configuration as Python literals and
hand off to the runtime in mdhooks.hooks; the oracle is never imported by
this module.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from pprint import pformat

from mdhooks.lib.catalog import ARTIFACT_SUFFIX, METADATA_SUFFIX
from mdhooks.lib.errors import GenerationError, HookError, HookValidationError
from mdhooks.lib.hook_types import HookDefinition, HookMetadata
from mdhooks.lib.parser import parse_markdown_file, require_valid

logger = logging.getLogger(__name__)

STANDARD_TEMPLATE = '''#!/usr/bin/env python3
"""
Generated Claude Hook: {name}
Source: {source}
Generated: {timestamp}

Reads one hook input document on stdin, asks Claude to judge the change
and prints one JSON verdict on stdout.
"""

import sys

from mdhooks.hooks.validator import run_validator

HOOK_NAME = {name_literal}

TRIGGER = {trigger}

OPTIONS = {options}

VALIDATION_PROMPT = """{prompt}"""

if __name__ == "__main__":
    sys.exit(run_validator(HOOK_NAME, TRIGGER, OPTIONS, VALIDATION_PROMPT))
'''

ROUTER_TEMPLATE = '''#!/usr/bin/env python3
"""
Generated Claude Router Hook: {name}
Source: {source}
Generated: {timestamp}

Discovers validators from the .meta.json files next to this script, asks
Claude which ones apply and runs them in parallel.
"""

import sys
from pathlib import Path

from mdhooks.hooks.router import run_router

HOOK_NAME = {name_literal}

TRIGGER = {trigger}

OPTIONS = {options}

# Hook descriptions are appended at run time
BASE_ROUTING_PROMPT = """{prompt}"""

# None = discover all
HOOK_ALLOWLIST = {allowlist}

GENERATED_DIR = Path(__file__).resolve().parent

if __name__ == "__main__":
    sys.exit(
        run_router(
            HOOK_NAME,
            TRIGGER,
            OPTIONS,
            BASE_ROUTING_PROMPT,
            HOOK_ALLOWLIST,
            GENERATED_DIR,
        )
    )
'''


@dataclass
class GeneratedHook:
    """In-memory result of generate()."""

    slug: str
    source: str
    metadata: HookMetadata
    definition: HookDefinition


@dataclass
class WrittenHook:
    output_path: Path
    metadata_path: Path
    definition: HookDefinition


@dataclass
class GenerationOutcome:
    """Per-file result of generate_hook_files()."""

    source_path: Path
    written: WrittenHook | None = None
    error: str | None = None


def slugify(name: str) -> str:
    """Convert a hook name to a filesystem-safe slug."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def escape_python_string(text: str) -> str:
    """Escape text for a triple-quoted string literal.

    Backslashes must be escaped first so the escapes added for quotes are not
    themselves doubled.
    """
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\r", "\\r")


def build_metadata(definition: HookDefinition) -> HookMetadata:
    trigger = definition.trigger
    return HookMetadata(
        name=slugify(definition.name),
        description=definition.description or f"Validation hook: {definition.name}",
        tags=list(definition.tags),
        event=trigger.event,
        tools=trigger.tools,
        files=trigger.files,
        skip=trigger.skip,
    )


def generate(
    definition: HookDefinition,
    source_name: str | None = None,
    now: datetime | None = None,
) -> GeneratedHook:
    """Compile a definition into artifact source and a metadata record.

    Raises:
        GenerationError: If the definition fails validation
    """
    try:
        require_valid(definition)
    except HookValidationError as e:
        raise GenerationError(e.message, e.errors) from e

    slug = slugify(definition.name)
    if not slug:
        raise GenerationError(f"Hook name {definition.name!r} has no usable characters")

    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    fields = {
        "name": escape_python_string(definition.name),
        "source": escape_python_string(source_name or "<string>"),
        "timestamp": timestamp,
        "name_literal": repr(definition.name),
        "trigger": pformat(definition.trigger.model_dump(mode="json"), sort_dicts=False),
        "options": pformat(definition.options.model_dump(mode="json"), sort_dicts=False),
        "prompt": escape_python_string(definition.prompt),
    }

    if definition.router is not None:
        allowlist = list(definition.router.callable_hooks) or None
        source = ROUTER_TEMPLATE.format(allowlist=repr(allowlist), **fields)
    else:
        source = STANDARD_TEMPLATE.format(**fields)

    return GeneratedHook(
        slug=slug,
        source=source,
        metadata=build_metadata(definition),
        definition=definition,
    )


def write_hook(
    definition: HookDefinition,
    output_dir: str | Path,
    source_path: str | Path | None = None,
) -> WrittenHook:
    """Generate and write `<slug>.py` and `<slug>.meta.json` into output_dir."""
    source_name = Path(source_path).name if source_path else None
    generated = generate(definition, source_name=source_name)

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    output_path = out / f"{generated.slug}{ARTIFACT_SUFFIX}"
    output_path.write_text(generated.source, encoding="utf-8")
    os.chmod(output_path, 0o755)

    metadata_path = out / f"{generated.slug}{METADATA_SUFFIX}"
    metadata_path.write_text(generated.metadata.to_json() + "\n", encoding="utf-8")

    logger.info("Generated %s -> %s", definition.name, output_path)
    return WrittenHook(output_path=output_path, metadata_path=metadata_path, definition=definition)


def generate_hook_file(md_path: str | Path, output_dir: str | Path) -> WrittenHook:
    """Parse, validate and generate a hook from a markdown file."""
    definition = parse_markdown_file(md_path)
    return write_hook(definition, output_dir, source_path=md_path)


def generate_hook_files(
    md_paths: list[str | Path], output_dir: str | Path
) -> list[GenerationOutcome]:
    """Generate several hooks; a failing file is reported, not raised."""
    outcomes: list[GenerationOutcome] = []
    for md_path in md_paths:
        path = Path(md_path)
        try:
            outcomes.append(GenerationOutcome(path, written=generate_hook_file(path, output_dir)))
        except (HookError, OSError) as e:
            outcomes.append(GenerationOutcome(path, error=str(e)))
    return outcomes
