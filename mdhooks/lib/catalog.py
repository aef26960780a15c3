"""Validator discovery.

A catalog lists the validators a router may delegate to. DirectoryCatalog
reads the `<slug>.meta.json` records the generator writes; InMemoryCatalog
serves fixed records (tests, embedding).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from mdhooks.lib.hook_types import HookMetadata

logger = logging.getLogger(__name__)

METADATA_SUFFIX = ".meta.json"
ARTIFACT_SUFFIX = ".py"


class ValidatorCatalog(Protocol):
    def list_validators(self) -> list[HookMetadata]: ...


class InMemoryCatalog:
    def __init__(self, records: list[HookMetadata] | None = None):
        self.records = list(records or [])
        self.calls = 0

    def list_validators(self) -> list[HookMetadata]:
        self.calls += 1
        return list(self.records)


class DirectoryCatalog:
    """Scans a generated-hooks directory for metadata records.

    Unreadable or malformed records are skipped with a warning; a missing
    directory yields an empty catalog.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def metadata_path(self, slug: str) -> Path:
        return self.directory / f"{slug}{METADATA_SUFFIX}"

    def artifact_path(self, slug: str) -> Path:
        return self.directory / f"{slug}{ARTIFACT_SUFFIX}"

    def list_validators(self) -> list[HookMetadata]:
        if not self.directory.is_dir():
            logger.warning("Discovery directory not found: %s", self.directory)
            return []

        records: list[HookMetadata] = []
        for meta_file in sorted(self.directory.glob(f"*{METADATA_SUFFIX}")):
            try:
                data = json.loads(meta_file.read_text(encoding="utf-8"))
                records.append(HookMetadata.model_validate(data))
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                logger.warning("Skipping invalid metadata file %s: %s", meta_file.name, e)
        return records

    def get(self, slug: str) -> HookMetadata | None:
        path = self.metadata_path(slug)
        if not path.exists():
            return None
        try:
            return HookMetadata.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning("Invalid metadata file %s: %s", path.name, e)
            return None
