"""Where a materialized plugin came from.

The record is written next to the plugin directory as
``<plugins_dir>/<id>.fetch.json``. It is kept for diagnostics and
re-fetching and never takes part in identity checks.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict

from nativeplug.core.references import GitSource, LocalPath, PluginReference, RegistryId

PROVENANCE_SUFFIX = ".fetch.json"


class SourceType(str, Enum):
    GIT = "git"
    LOCAL = "local"
    REGISTRY = "registry"


class ProvenanceRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_type: SourceType
    url: Optional[str] = None
    path: Optional[str] = None
    id: Optional[str] = None
    subdir: Optional[str] = None
    ref: Optional[str] = None

    @classmethod
    def for_reference(
        cls, reference: PluginReference, directory: Optional[Path] = None
    ) -> "ProvenanceRecord":
        if isinstance(reference, GitSource):
            return cls(
                source_type=SourceType.GIT,
                url=reference.url,
                subdir=reference.subdir,
                ref=reference.ref,
            )
        if isinstance(reference, LocalPath):
            return cls(source_type=SourceType.LOCAL, path=str(reference.path))
        if isinstance(reference, RegistryId):
            return cls(
                source_type=SourceType.REGISTRY,
                id=reference.spec,
                path=str(directory) if directory is not None else None,
            )
        raise TypeError(f"Unknown plugin reference: {reference!r}")


def provenance_path(plugins_dir: Path, plugin_id: str) -> Path:
    return plugins_dir / f"{plugin_id}{PROVENANCE_SUFFIX}"


def save_provenance(plugins_dir: Path, plugin_id: str, record: ProvenanceRecord) -> Path:
    path = provenance_path(plugins_dir, plugin_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(record.model_dump_json(indent=2, exclude_none=True) + "\n", encoding="utf-8")
    return path


def load_provenance(plugins_dir: Path, plugin_id: str) -> Optional[ProvenanceRecord]:
    path = provenance_path(plugins_dir, plugin_id)
    if not path.exists():
        return None
    return ProvenanceRecord.model_validate_json(path.read_text(encoding="utf-8"))


__all__ = [
    "SourceType",
    "ProvenanceRecord",
    "provenance_path",
    "save_provenance",
    "load_provenance",
]
