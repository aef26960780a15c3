#!/usr/bin/env python3
"""
mdhooks command line interface.

Usage:
    mdhooks generate hooks/*.md -o generated/
    mdhooks install hooks/no-console-logs.md --settings ~/.claude/settings.json
    mdhooks settings generated/*.py
    mdhooks validate hooks/*.md
    mdhooks list

Exit codes:
    0 - Success
    1 - One or more files failed, or the settings file could not be used
"""

import argparse
import glob
import json
import logging
import sys
from pathlib import Path

from mdhooks import __version__
from mdhooks.lib.catalog import METADATA_SUFFIX
from mdhooks.lib.config import HooksConfig, load_config
from mdhooks.lib.errors import HookError
from mdhooks.lib.generator import generate_hook_file, generate_hook_files
from mdhooks.lib.hook_types import HookMetadata
from mdhooks.lib.parser import parse_markdown_file, validate_hook_definition
from mdhooks.lib.settings_file import (
    build_settings_snippet,
    install_hook,
    list_installed,
    load_settings,
)

logger = logging.getLogger("mdhooks")


def expand_paths(patterns: list[str]) -> list[Path]:
    """Expand shell-style globs; a pattern with no matches is kept literally."""
    paths: list[Path] = []
    for pattern in patterns:
        matches = sorted(glob.glob(pattern, recursive=True))
        paths.extend(Path(m) for m in (matches or [pattern]))
    return paths


def cmd_generate(args: argparse.Namespace, config: HooksConfig) -> int:
    output_dir = Path(args.output) if args.output else config.generated_dir
    outcomes = generate_hook_files(expand_paths(args.files), output_dir)

    failed = 0
    for outcome in outcomes:
        if outcome.written is not None:
            print(f"✓ {outcome.source_path} → {outcome.written.output_path}")
        else:
            failed += 1
            print(f"✗ {outcome.source_path}: {outcome.error}", file=sys.stderr)

    print(f"\nGenerated {len(outcomes) - failed} of {len(outcomes)} hooks in {output_dir}")
    return 1 if failed else 0


def cmd_install(args: argparse.Namespace, config: HooksConfig) -> int:
    output_dir = Path(args.output) if args.output else config.generated_dir
    settings_path = Path(args.settings).expanduser() if args.settings else config.settings_path

    try:
        written = generate_hook_file(args.file, output_dir)
    except (HookError, OSError) as e:
        print(f"✗ {args.file}: {e}", file=sys.stderr)
        return 1

    try:
        install_hook(settings_path, written.definition, written.output_path)
    except (OSError, ValueError) as e:
        print(f"✗ Failed to update {settings_path}: {e}", file=sys.stderr)
        return 1

    print(f"✓ Installed {written.definition.name} ({written.definition.trigger.event})")
    print(f"  Script:   {written.output_path}")
    print(f"  Settings: {settings_path}")
    return 0


def _metadata_for(hook_path: Path) -> HookMetadata:
    meta_path = hook_path.with_name(f"{hook_path.stem}{METADATA_SUFFIX}")
    return HookMetadata.model_validate_json(meta_path.read_text(encoding="utf-8"))


def cmd_settings(args: argparse.Namespace, config: HooksConfig) -> int:
    pairs: list[tuple[HookMetadata, Path]] = []
    failed = 0
    for hook_path in expand_paths(args.hooks):
        if hook_path.name.endswith(METADATA_SUFFIX):
            continue
        try:
            pairs.append((_metadata_for(hook_path), hook_path))
        except (OSError, ValueError) as e:
            failed += 1
            print(f"✗ {hook_path}: no usable metadata ({e})", file=sys.stderr)

    print(json.dumps(build_settings_snippet(pairs), indent=2))
    return 1 if failed else 0


def cmd_validate(args: argparse.Namespace, config: HooksConfig) -> int:
    failed = 0
    for path in expand_paths(args.files):
        try:
            definition = parse_markdown_file(path)
        except (HookError, OSError) as e:
            failed += 1
            print(f"✗ {path}: {e}")
            continue

        result = validate_hook_definition(definition)
        if result.valid:
            print(f"✓ {path}: Valid")
            print(f"  Name: {definition.name}")
            print(f"  Event: {definition.trigger.event}")
            if definition.trigger.tools:
                print(f"  Tools: {', '.join(definition.trigger.tools)}")
            if definition.is_router:
                callable_hooks = definition.router.callable_hooks
                print(f"  Router: {', '.join(callable_hooks) if callable_hooks else 'all'}")
        else:
            failed += 1
            print(f"✗ {path}:")
            for error in result.errors:
                print(f"  - {error}")

    return 1 if failed else 0


def cmd_list(args: argparse.Namespace, config: HooksConfig) -> int:
    settings_path = Path(args.settings).expanduser() if args.settings else config.settings_path
    try:
        installed = list_installed(load_settings(settings_path))
    except (OSError, ValueError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    if not installed:
        print(f"No hooks registered in {settings_path}")
        return 0

    for event, handlers in installed.items():
        print(f"{event}:")
        for matcher, command in handlers:
            print(f"  [{matcher}] {command}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdhooks",
        description="Compile markdown hook definitions into Claude Code hooks",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to mdhooks.yaml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_generate = subparsers.add_parser("generate", help="Generate hook scripts from markdown")
    p_generate.add_argument("files", nargs="+", help="Markdown files (globs allowed)")
    p_generate.add_argument("-o", "--output", help="Output directory")
    p_generate.set_defaults(func=cmd_generate)

    p_install = subparsers.add_parser("install", help="Generate a hook and register it")
    p_install.add_argument("file", help="Markdown hook definition")
    p_install.add_argument("-o", "--output", help="Output directory")
    p_install.add_argument("--settings", help="Claude Code settings.json to update")
    p_install.set_defaults(func=cmd_install)

    p_settings = subparsers.add_parser("settings", help="Print a settings.json snippet")
    p_settings.add_argument("hooks", nargs="+", help="Generated hook scripts (globs allowed)")
    p_settings.set_defaults(func=cmd_settings)

    p_validate = subparsers.add_parser("validate", help="Validate markdown definitions")
    p_validate.add_argument("files", nargs="+", help="Markdown files (globs allowed)")
    p_validate.set_defaults(func=cmd_validate)

    p_list = subparsers.add_parser("list", help="List registered hooks")
    p_list.add_argument("--settings", help="Claude Code settings.json to read")
    p_list.set_defaults(func=cmd_list)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    try:
        config = load_config(args.config)
    except RuntimeError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
