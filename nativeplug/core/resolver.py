"""Turn a parsed plugin reference into a local source directory.

Git sources are cloned into a temporary staging directory. Everything else
is looked up in this order: an existing local directory, the search-path
index, then the plugin registry (unless disabled).
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Sequence

from nativeplug.core.config import FetchOptions
from nativeplug.core.errors import NotFoundError, UnsupportedOperationError
from nativeplug.core.local_index import LocalPluginIndex
from nativeplug.core.provenance import ProvenanceRecord, SourceType
from nativeplug.core.references import GitSource, LocalPath, PluginReference, RegistryId
from nativeplug.core.registry import fetch_from_registry
from nativeplug.utils.git_utils import clone_and_checkout
from nativeplug.utils.log import get_logger

logger = get_logger()

GitCloneFn = Callable[[str, Path, Optional[str], str], Path]
RegistryFetchFn = Callable[[Sequence[str], Any], Awaitable[Path]]


@dataclass(frozen=True)
class ResolvedSource:
    directory: Path
    provenance: ProvenanceRecord
    # Registry downloads live in a shared cache and must be copied.
    linkable: bool
    # Temporary directory to delete once the source has been materialized.
    cleanup_dir: Optional[Path] = None

    def cleanup(self) -> None:
        if self.cleanup_dir is not None:
            shutil.rmtree(self.cleanup_dir, ignore_errors=True)


class SourceResolver:
    def __init__(
        self,
        index: Optional[LocalPluginIndex] = None,
        *,
        git_clone: GitCloneFn = clone_and_checkout,
        registry_fetch: RegistryFetchFn = fetch_from_registry,
        staging_root: Optional[Path] = None,
    ) -> None:
        self.index = index if index is not None else LocalPluginIndex()
        self._git_clone = git_clone
        self._registry_fetch = registry_fetch
        self._staging_root = staging_root

    async def resolve(self, reference: PluginReference, options: FetchOptions) -> ResolvedSource:
        if isinstance(reference, GitSource):
            return await self._resolve_git(reference, options)
        if isinstance(reference, LocalPath):
            return self._resolve_local(reference)
        if isinstance(reference, RegistryId):
            return await self._resolve_id(reference, options)
        raise TypeError(f"Unknown plugin reference: {reference!r}")

    async def _resolve_git(self, reference: GitSource, options: FetchOptions) -> ResolvedSource:
        if options.link:
            raise UnsupportedOperationError("--link is not supported for git URLs")
        logger.info('[resolver] Fetching plugin "%s" via git clone', reference.url)
        if self._staging_root is not None:
            self._staging_root.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix="nativeplug-git-", dir=self._staging_root))
        try:
            directory = await asyncio.to_thread(
                self._git_clone, reference.url, staging, reference.ref, reference.subdir
            )
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        return ResolvedSource(
            directory=directory,
            provenance=ProvenanceRecord.for_reference(reference),
            linkable=False,
            cleanup_dir=staging,
        )

    @staticmethod
    def _resolve_local(reference: LocalPath) -> ResolvedSource:
        return ResolvedSource(
            directory=reference.path,
            provenance=ProvenanceRecord.for_reference(reference),
            linkable=True,
        )

    async def _resolve_id(self, reference: RegistryId, options: FetchOptions) -> ResolvedSource:
        found = self.index.resolve(reference.id, options.search_path)
        if found is not None and reference.version_spec not in (None, found.version):
            logger.debug(
                "[resolver] Ignoring local %s@%s, %s was requested",
                found.id,
                found.version,
                reference.spec,
            )
            found = None
        if found is not None:
            logger.debug("[resolver] Found %s at %s", reference.id, found.directory)
            return ResolvedSource(
                directory=found.directory,
                provenance=ProvenanceRecord(source_type=SourceType.LOCAL, path=str(found.directory)),
                linkable=True,
            )

        if options.no_registry:
            raise NotFoundError(
                f"Plugin {reference.spec} not found locally. "
                "Note, plugin registry was disabled by --noregistry flag."
            )

        logger.info('[resolver] Fetching plugin "%s" via plugin registry', reference.spec)
        directory = await self._registry_fetch([reference.spec], options.registry_client)
        return ResolvedSource(
            directory=directory,
            provenance=ProvenanceRecord.for_reference(reference, directory),
            linkable=False,
        )


__all__ = ["ResolvedSource", "SourceResolver"]
