"""Shared abstractions for native platform projects.

A :class:`PlatformProject` knows where a platform keeps its web assets and
configuration, how to refresh itself from the project ``config.xml``, and
how to apply (and undo) the file copies and document edits a plugin
declares. Install and uninstall go through an
:class:`~nativeplug.core.ledger.InstalledPluginLedger` so that the undo
replays exactly what was done.
"""

from __future__ import annotations

import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Set

from nativeplug.core.descriptor import FILE_KIND_ASSET, DeclaredFile, PluginDescriptor
from nativeplug.core.errors import DescriptorError, DocumentPatchError, PlatformError
from nativeplug.core.ledger import (
    DirectoryCreated,
    DocumentPatched,
    FileCopied,
    FileLinked,
    InstalledPluginLedger,
    Mutation,
)
from nativeplug.core.project_config import AppConfig
from nativeplug.utils.fs_utils import delete_named_dirs, prune_empty_dirs, remove_path
from nativeplug.utils.log import get_logger
from nativeplug.utils.xml_utils import (
    add_child,
    element_to_string,
    find_children_matching,
    find_element,
    key_attributes,
    parse_document,
    remove_children_matching,
    write_document,
)

logger = get_logger()


class PlatformProject(ABC):
    """A native project for one platform, rooted at ``platform_dir``."""

    name: str = ""

    def __init__(self, platform_dir: Path, project_root: Optional[Path] = None) -> None:
        self.platform_dir = Path(platform_dir)
        # <root>/platforms/<name>
        self.project_root = Path(project_root) if project_root else self.platform_dir.parent.parent

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def www_dir(self) -> Path:
        """Directory the platform serves web assets from."""

    @property
    @abstractmethod
    def config_xml(self) -> Path:
        """The platform's copy of config.xml."""

    @property
    def source_roots(self) -> List[Path]:
        """Directories that must survive an uninstall even when empty."""
        return [self.platform_dir, self.www_dir]

    @property
    def project_www_dir(self) -> Path:
        return self.project_root / "www"

    @property
    def merges_dir(self) -> Path:
        return self.project_root / "merges" / self.name

    def target_path(self, declared: DeclaredFile) -> Path:
        if declared.kind == FILE_KIND_ASSET:
            return self.www_dir / declared.target_path
        return self.platform_dir / declared.target_path

    def document_path(self, target_file: str) -> Path:
        """Map a config-file ``target`` attribute to a document on disk."""
        if target_file == "config.xml":
            return self.config_xml
        return self.platform_dir / target_file

    # ------------------------------------------------------------------
    # Project refresh
    # ------------------------------------------------------------------

    @abstractmethod
    def update_from_config(self, config: AppConfig) -> None:
        """Push name, package, version and preferences into the native project."""

    def update_web_assets(self) -> None:
        """Replace the platform's web assets with the project's ``www``."""
        if not self.project_www_dir.is_dir():
            raise PlatformError(f"Project web directory not found: {self.project_www_dir}")
        remove_path(self.www_dir)
        self.www_dir.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(self.project_www_dir, self.www_dir, symlinks=True)
        logger.debug(
            "[%s] Copied web assets",
            self.name,
            extra={"from": str(self.project_www_dir), "to": str(self.www_dir)},
        )

    def apply_overrides(self) -> None:
        """Copy ``merges/<platform>`` over the web assets when it exists."""
        if not self.merges_dir.is_dir():
            return
        shutil.copytree(self.merges_dir, self.www_dir, symlinks=True, dirs_exist_ok=True)
        logger.debug("[%s] Applied platform overrides from %s", self.name, self.merges_dir)

    def run_full_update(self, config: AppConfig) -> None:
        self.update_from_config(config)
        self.update_web_assets()
        self.apply_overrides()
        removed = delete_named_dirs(self.www_dir, ".svn")
        if removed:
            logger.debug("[%s] Removed %d .svn folder(s)", self.name, len(removed))

    # ------------------------------------------------------------------
    # Plugin install
    # ------------------------------------------------------------------

    def install_plugin(
        self,
        descriptor: PluginDescriptor,
        ledger: InstalledPluginLedger,
        *,
        link: bool = False,
    ) -> None:
        """Apply the plugin's files and document edits for this platform.

        Each change is appended to a pending ledger entry as it happens and
        the entry is committed once everything succeeded. On failure the
        changes made so far stay on disk and in the pending entry.
        """
        plugin_id = descriptor.id
        ledger.begin(plugin_id, self.name, descriptor.version)
        owned: Set[str] = {
            mutation.dst
            for mutation in ledger.mutations_for(plugin_id, self.name)
            if isinstance(mutation, (FileCopied, FileLinked))
        }

        for declared in descriptor.files_for(self.name):
            self._install_file(descriptor, declared, ledger, owned, link)

        for edit in descriptor.edits_for(self.name):
            document = self.document_path(edit.target_file)
            if not document.is_file():
                raise DocumentPatchError(
                    f"Plugin {plugin_id} edits {edit.target_file}, which does not exist",
                    document=document,
                )
            tree = parse_document(document)
            parent = find_element(tree.getroot(), edit.parent)
            if parent is None:
                raise DocumentPatchError(
                    f'No element matches "{edit.parent}" in {document}', document=document
                )
            for child in edit.children:
                key = key_attributes(child)
                if find_children_matching(parent, child.tag, key):
                    logger.debug(
                        "[%s] %s already present in %s",
                        self.name,
                        child.tag,
                        document.name,
                        extra={"key": key},
                    )
                    continue
                add_child(parent, child)
                write_document(tree, document)
                ledger.append(
                    plugin_id,
                    self.name,
                    DocumentPatched(
                        file=str(document),
                        parent=edit.parent,
                        tag=child.tag,
                        key=key,
                        xml=element_to_string(child),
                    ),
                )

        ledger.commit(plugin_id, self.name)
        logger.info("[%s] Installed plugin %s", self.name, descriptor.spec)

    def _install_file(
        self,
        descriptor: PluginDescriptor,
        declared: DeclaredFile,
        ledger: InstalledPluginLedger,
        owned: Set[str],
        link: bool,
    ) -> None:
        source = descriptor.directory / declared.source_path
        if not source.exists():
            raise DescriptorError(
                f"Plugin {descriptor.id} declares {declared.source_path}, which does not exist",
                path=source,
            )
        destination = self.target_path(declared)
        if (destination.exists() or destination.is_symlink()) and str(destination) not in owned:
            raise PlatformError(f"Target destination {destination} already exists")

        missing: List[Path] = []
        parent = destination.parent
        while not parent.exists():
            missing.append(parent)
            parent = parent.parent
        for directory in reversed(missing):
            directory.mkdir()
            ledger.append(descriptor.id, self.name, DirectoryCreated(path=str(directory)))

        remove_path(destination)
        if link:
            os.symlink(source.resolve(), destination, target_is_directory=source.is_dir())
            ledger.append(
                descriptor.id, self.name, FileLinked(src=str(source), dst=str(destination))
            )
        else:
            if source.is_dir():
                shutil.copytree(source, destination, symlinks=True)
            else:
                shutil.copy2(source, destination)
            ledger.append(
                descriptor.id, self.name, FileCopied(src=str(source), dst=str(destination))
            )

    # ------------------------------------------------------------------
    # Plugin uninstall
    # ------------------------------------------------------------------

    def _derived_mutations(self, descriptor: PluginDescriptor) -> List[Mutation]:
        """What an install of ``descriptor`` would have recorded, minus directories."""
        mutations: List[Mutation] = [
            FileCopied(
                src=str(descriptor.directory / declared.source_path),
                dst=str(self.target_path(declared)),
            )
            for declared in descriptor.files_for(self.name)
        ]
        for edit in descriptor.edits_for(self.name):
            document = self.document_path(edit.target_file)
            for child in edit.children:
                mutations.append(
                    DocumentPatched(
                        file=str(document),
                        parent=edit.parent,
                        tag=child.tag,
                        key=key_attributes(child),
                        xml=element_to_string(child),
                    )
                )
        return mutations

    def uninstall_plugin(self, descriptor: PluginDescriptor, ledger: InstalledPluginLedger) -> None:
        """Undo an install by replaying its recorded changes in reverse.

        Without a ledger entry the changes are derived from the descriptor.
        Targets that are already gone are logged and skipped.
        """
        plugin_id = descriptor.id
        record = ledger.get(plugin_id, self.name)
        if record is None:
            logger.debug("[%s] No ledger entry for %s; using plugin.xml", self.name, plugin_id)
            mutations = self._derived_mutations(descriptor)
        else:
            mutations = list(record.mutations)

        for mutation in reversed(mutations):
            if isinstance(mutation, (FileCopied, FileLinked)):
                self._undo_file(Path(mutation.dst))
            elif isinstance(mutation, DirectoryCreated):
                self._undo_directory(Path(mutation.path))
            elif isinstance(mutation, DocumentPatched):
                self._undo_patch(mutation)

        ledger.clear(plugin_id, self.name)
        logger.info("[%s] Uninstalled plugin %s", self.name, plugin_id)

    def _undo_file(self, destination: Path) -> None:
        if not remove_path(destination):
            logger.warning("[%s] File to remove is already gone: %s", self.name, destination)
        prune_empty_dirs(destination.parent, self.platform_dir, protected=self.source_roots)

    def _undo_directory(self, directory: Path) -> None:
        if not directory.is_dir():
            return
        if any(directory.iterdir()):
            logger.debug("[%s] Keeping non-empty directory %s", self.name, directory)
            return
        directory.rmdir()

    def _undo_patch(self, mutation: DocumentPatched) -> None:
        document = Path(mutation.file)
        if not document.is_file():
            logger.warning("[%s] Document to edit is gone: %s", self.name, document)
            return
        tree = parse_document(document)
        parent = find_element(tree.getroot(), mutation.parent)
        if parent is None:
            logger.warning(
                '[%s] No element matches "%s" in %s', self.name, mutation.parent, document
            )
            return
        if remove_children_matching(parent, mutation.tag, mutation.key) == 0:
            logger.warning(
                "[%s] %s not found in %s",
                self.name,
                mutation.tag,
                document.name,
                extra={"key": mutation.key},
            )
            return
        write_document(tree, document)


__all__ = ["PlatformProject"]
