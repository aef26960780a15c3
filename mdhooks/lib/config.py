"""Runtime configuration.

Resolution order (highest first):
1. Explicit overrides passed to load_config()
2. MDHOOKS_* environment variables
3. YAML file: $MDHOOKS_CONFIG, else ./mdhooks.yaml
4. Defaults

Only entry points (cli.py, generated hook scripts) call load_config(); the
library receives plain values.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "mdhooks.yaml"

ENV_VARS = {
    "generated_dir": "MDHOOKS_GENERATED_DIR",
    "settings_path": "MDHOOKS_SETTINGS_PATH",
    "oracle_command": "MDHOOKS_ORACLE_COMMAND",
    "oracle_timeout": "MDHOOKS_ORACLE_TIMEOUT",
    "child_timeout": "MDHOOKS_CHILD_TIMEOUT",
    "log_dir": "MDHOOKS_LOG_DIR",
}


def default_settings_path() -> Path:
    return Path.home() / ".claude" / "settings.json"


class HooksConfig(BaseModel):
    """Settings shared by the CLI and the hook runtimes."""

    generated_dir: Path = Field(default=Path("./generated"))
    settings_path: Path = Field(default_factory=default_settings_path)
    oracle_command: str = "claude"
    # Seconds; None disables the bound
    oracle_timeout: float | None = 120.0
    child_timeout: float | None = 120.0
    # Per-run JSONL event log is written only when set
    log_dir: Path | None = None


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise RuntimeError(f"Failed to read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise RuntimeError(f"Config file {path} must contain a mapping")
    return data


def _env_values(environ: dict[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for field_name, var in ENV_VARS.items():
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        if field_name.endswith("_timeout") and raw.lower() in ("none", "off", "0"):
            values[field_name] = None
        else:
            values[field_name] = raw
    return values


def find_config_file(environ: dict[str, str] | None = None) -> Path | None:
    environ = os.environ if environ is None else environ
    explicit = environ.get("MDHOOKS_CONFIG")
    if explicit:
        return Path(explicit).expanduser()
    candidate = Path.cwd() / CONFIG_FILE_NAME
    return candidate if candidate.exists() else None


def load_config(
    config_file: str | Path | None = None,
    environ: dict[str, str] | None = None,
    **overrides: Any,
) -> HooksConfig:
    """Build a HooksConfig from file, environment and explicit overrides.

    Raises:
        RuntimeError: If the config file is unreadable or values are invalid
    """
    environ = dict(os.environ) if environ is None else environ

    values: dict[str, Any] = {}
    path = Path(config_file).expanduser() if config_file else find_config_file(environ)
    if path is not None:
        if not path.exists():
            raise RuntimeError(f"Config file not found: {path}")
        values.update(_read_yaml(path))

    values.update(_env_values(environ))
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        config = HooksConfig.model_validate(values)
    except ValidationError as e:
        raise RuntimeError(f"Invalid mdhooks configuration: {e}") from e

    logger.debug("Loaded config: %s", config.model_dump())
    return config
