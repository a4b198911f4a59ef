"""Installed plugin ledger.

Every change an install makes to a platform project is appended to the
ledger as it happens, so an uninstall can replay the changes in reverse
even when the install stopped half-way. Entries are keyed by
``(plugin_id, platform)`` and are ``pending`` until the install commits.

The ledger is stored as JSON at ``<project_root>/.nativeplug/ledger.json``.
Without a path it lives in memory only.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError

from nativeplug.utils.log import get_logger

logger = get_logger()

LEDGER_DIR = ".nativeplug"
LEDGER_FILE = "ledger.json"

STATUS_PENDING = "pending"
STATUS_COMMITTED = "committed"


class FileCopied(BaseModel):
    kind: Literal["file_copied"] = "file_copied"
    src: str
    dst: str


class FileLinked(BaseModel):
    kind: Literal["file_linked"] = "file_linked"
    src: str
    dst: str


class DirectoryCreated(BaseModel):
    kind: Literal["directory_created"] = "directory_created"
    path: str


class DocumentPatched(BaseModel):
    """A child element added under ``parent`` in the XML document ``file``."""

    kind: Literal["document_patched"] = "document_patched"
    file: str
    parent: str
    tag: str
    # Attributes that identify the added element, prefixed form.
    key: Dict[str, str] = Field(default_factory=dict)
    xml: str = ""


Mutation = Annotated[
    Union[FileCopied, FileLinked, DirectoryCreated, DocumentPatched],
    Field(discriminator="kind"),
]


class InstallationRecord(BaseModel):
    plugin_id: str
    platform: str
    version: Optional[str] = None
    status: Literal["pending", "committed"] = STATUS_PENDING
    mutations: List[Mutation] = Field(default_factory=list)


class _LedgerDocument(BaseModel):
    version: int = 1
    records: List[InstallationRecord] = Field(default_factory=list)


def default_ledger_path(project_root: Path) -> Path:
    return project_root / LEDGER_DIR / LEDGER_FILE


class InstalledPluginLedger:
    """Per-project record of what each plugin install changed."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path
        self._records: Optional[Dict[Tuple[str, str], InstallationRecord]] = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> Dict[Tuple[str, str], InstallationRecord]:
        if self._records is not None:
            return self._records
        self._records = {}
        if self.path is None or not self.path.exists():
            return self._records
        try:
            document = _LedgerDocument.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            logger.warning(
                "Error loading plugin ledger: %s: %s",
                type(e).__name__,
                e,
                extra={"path": str(self.path)},
            )
            return self._records
        for record in document.records:
            self._records[(record.plugin_id, record.platform)] = record
        logger.debug(
            "[ledger] Loaded %d installation record(s)",
            len(self._records),
            extra={"path": str(self.path)},
        )
        return self._records

    def _save(self) -> None:
        if self.path is None:
            return
        records = sorted(self._load().values(), key=lambda item: (item.platform, item.plugin_id))
        document = _LedgerDocument(records=records)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(document.model_dump_json(indent=2) + "\n", encoding="utf-8")
        os.replace(tmp_path, self.path)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def begin(self, plugin_id: str, platform: str, version: Optional[str] = None) -> InstallationRecord:
        """Open a pending entry.

        Mutations left by an earlier aborted install are kept, so a later
        uninstall still reverses them.
        """
        records = self._load()
        record = records.get((plugin_id, platform))
        if record is None:
            record = InstallationRecord(plugin_id=plugin_id, platform=platform, version=version)
            records[(plugin_id, platform)] = record
        else:
            record.status = STATUS_PENDING
            if version is not None:
                record.version = version
        self._save()
        return record

    def append(self, plugin_id: str, platform: str, mutation: Mutation) -> None:
        record = self._load().get((plugin_id, platform))
        if record is None:
            record = self.begin(plugin_id, platform)
        record.mutations.append(mutation)
        self._save()

    def commit(self, plugin_id: str, platform: str) -> None:
        record = self._load().get((plugin_id, platform))
        if record is None:
            raise KeyError(f"No installation in progress for {plugin_id} on {platform}")
        record.status = STATUS_COMMITTED
        self._save()
        logger.debug(
            "[ledger] Committed %s on %s",
            plugin_id,
            platform,
            extra={"mutations": len(record.mutations)},
        )

    def record(
        self,
        plugin_id: str,
        platform: str,
        mutations: List[Mutation],
        version: Optional[str] = None,
    ) -> InstallationRecord:
        """Store a complete, committed entry in one step."""
        entry = InstallationRecord(
            plugin_id=plugin_id,
            platform=platform,
            version=version,
            status=STATUS_COMMITTED,
            mutations=list(mutations),
        )
        self._load()[(plugin_id, platform)] = entry
        self._save()
        return entry

    def clear(self, plugin_id: str, platform: str) -> bool:
        removed = self._load().pop((plugin_id, platform), None) is not None
        if removed:
            self._save()
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, plugin_id: str, platform: str) -> Optional[InstallationRecord]:
        return self._load().get((plugin_id, platform))

    def mutations_for(self, plugin_id: str, platform: str) -> List[Mutation]:
        """Mutations in the order they were applied."""
        record = self.get(plugin_id, platform)
        return list(record.mutations) if record is not None else []

    def is_installed(self, plugin_id: str, platform: str) -> bool:
        record = self.get(plugin_id, platform)
        return record is not None and record.status == STATUS_COMMITTED

    def records_for(self, platform: str) -> List[InstallationRecord]:
        return sorted(
            (record for record in self._load().values() if record.platform == platform),
            key=lambda item: item.plugin_id,
        )

    def installed_plugins(self, platform: str) -> List[str]:
        return [
            record.plugin_id
            for record in self.records_for(platform)
            if record.status == STATUS_COMMITTED
        ]


__all__ = [
    "FileCopied",
    "FileLinked",
    "DirectoryCreated",
    "DocumentPatched",
    "Mutation",
    "InstallationRecord",
    "InstalledPluginLedger",
    "default_ledger_path",
    "STATUS_PENDING",
    "STATUS_COMMITTED",
]
