"""Copy or link a resolved plugin into the project's plugin store."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from typing import Optional

from nativeplug.core.descriptor import load_descriptor
from nativeplug.core.provenance import ProvenanceRecord, SourceType, save_provenance
from nativeplug.utils.fs_utils import copy_tree_contents, remove_path, symlink_dir
from nativeplug.utils.log import get_logger

logger = get_logger()

GIT_DIR_NAME = ".git"


class Materializer:
    """Places plugin sources at ``<plugins_dir>/<id>``.

    Any previous contents of the destination are removed first, so the
    result never mixes files from two fetches. Two materializations of the
    same plugin id must not run at the same time.
    """

    async def materialize(
        self,
        source_dir: Path,
        plugins_dir: Path,
        link: bool = False,
        provenance: Optional[ProvenanceRecord] = None,
    ) -> Path:
        return await asyncio.to_thread(self._materialize, source_dir, plugins_dir, link, provenance)

    def _materialize(
        self,
        source_dir: Path,
        plugins_dir: Path,
        link: bool,
        provenance: Optional[ProvenanceRecord],
    ) -> Path:
        descriptor = load_descriptor(source_dir)
        destination = plugins_dir / descriptor.id
        plugins_dir.mkdir(parents=True, exist_ok=True)
        record = provenance or ProvenanceRecord(source_type=SourceType.LOCAL, path=str(source_dir))

        if not destination.is_symlink() and destination.resolve() == source_dir.resolve():
            logger.debug("[materialize] %s is already in place", descriptor.id)
        else:
            remove_path(destination)
            if link:
                logger.debug('[materialize] Linking plugin "%s" => "%s"', source_dir, destination)
                symlink_dir(source_dir, destination)
            else:
                logger.debug('[materialize] Copying plugin "%s" => "%s"', source_dir, destination)
                ignore = None
                if record.source_type == SourceType.GIT:
                    # Git checkouts are copied without their repository metadata.
                    ignore = shutil.ignore_patterns(GIT_DIR_NAME)
                copy_tree_contents(source_dir, destination, ignore=ignore)

        save_provenance(plugins_dir, descriptor.id, record)
        return destination


__all__ = ["Materializer"]
