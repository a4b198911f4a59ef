"""Install and uninstall plugins for one platform of a project.

Project layout::

    <project_root>/
      config.xml
      www/
      merges/<platform>/
      plugins/<plugin id>/plugin.xml
      platforms/<platform>/
      .nativeplug/ledger.json
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Set

from nativeplug.core.config import FetchOptions
from nativeplug.core.descriptor import PLUGIN_MANIFEST_FILE, PluginDescriptor, load_descriptor
from nativeplug.core.errors import NotFoundError
from nativeplug.core.fetch import fetch_plugin, fetch_reference
from nativeplug.core.ledger import InstalledPluginLedger, default_ledger_path
from nativeplug.core.local_index import LocalPluginIndex
from nativeplug.core.materializer import Materializer
from nativeplug.core.project_config import PROJECT_CONFIG_FILE, AppConfig
from nativeplug.core.provenance import provenance_path
from nativeplug.core.registry import RegistryClient
from nativeplug.core.resolver import SourceResolver
from nativeplug.platforms import PlatformProject, get_platform_project
from nativeplug.utils.fs_utils import remove_path
from nativeplug.utils.log import get_logger

logger = get_logger()

PLUGINS_DIR_NAME = "plugins"
PLATFORMS_DIR_NAME = "platforms"


class PluginInstaller:
    """Fetches plugins into ``<project_root>/plugins`` and applies them to a platform."""

    def __init__(
        self,
        project_root: Path,
        platform: str,
        options: Optional[FetchOptions] = None,
        index: Optional[LocalPluginIndex] = None,
        registry: Optional[RegistryClient] = None,
        *,
        resolver: Optional[SourceResolver] = None,
        materializer: Optional[Materializer] = None,
        ledger: Optional[InstalledPluginLedger] = None,
    ) -> None:
        self.project_root = Path(project_root)
        self.platform = platform
        self.options = options or FetchOptions()
        if registry is not None:
            self.options = self.options.model_copy(update={"registry_client": registry})
        self.index = index if index is not None else LocalPluginIndex()
        self.resolver = resolver or SourceResolver(self.index)
        self.materializer = materializer or Materializer()
        self.ledger = ledger or InstalledPluginLedger(default_ledger_path(self.project_root))
        self._project: Optional[PlatformProject] = None

    @property
    def plugins_dir(self) -> Path:
        return self.project_root / PLUGINS_DIR_NAME

    @property
    def platform_dir(self) -> Path:
        return self.project_root / PLATFORMS_DIR_NAME / self.platform

    @property
    def project(self) -> PlatformProject:
        if self._project is None:
            self._project = get_platform_project(self.platform, self.platform_dir, self.project_root)
        return self._project

    # ------------------------------------------------------------------
    # Install
    # ------------------------------------------------------------------

    async def install(self, reference: str) -> PluginDescriptor:
        """Fetch ``reference``, install its dependencies, then install it."""
        # Fail on a bad platform before anything is fetched.
        project = self.project
        plugin_dir = await fetch_plugin(
            reference,
            self.plugins_dir,
            self.options,
            resolver=self.resolver,
            materializer=self.materializer,
        )
        descriptor = load_descriptor(plugin_dir)
        await self._install_descriptor(descriptor, project, visiting=set())
        return descriptor

    async def _install_descriptor(
        self, descriptor: PluginDescriptor, project: PlatformProject, visiting: Set[str]
    ) -> None:
        visiting.add(descriptor.id)
        for dependency in descriptor.dependencies:
            if dependency.id in visiting:
                logger.debug(
                    "[install] Dependency cycle through %s; skipping", dependency.id
                )
                continue
            dependency_dir = self.plugins_dir / dependency.id
            if (dependency_dir / PLUGIN_MANIFEST_FILE).is_file():
                logger.debug("[install] Dependency %s already fetched", dependency.id)
            else:
                logger.info(
                    "[install] Fetching dependency %s of %s", dependency.id, descriptor.id
                )
                options = self.options.model_copy(
                    update={"expected_id": dependency.id, "link": False}
                )
                dependency_dir = await fetch_reference(
                    dependency.reference,
                    self.plugins_dir,
                    options,
                    resolver=self.resolver,
                    materializer=self.materializer,
                )
            await self._install_descriptor(load_descriptor(dependency_dir), project, visiting)

        if self.ledger.is_installed(descriptor.id, project.name):
            logger.info(
                "[install] Plugin %s is already installed on %s", descriptor.id, project.name
            )
            return
        project.install_plugin(descriptor, self.ledger, link=self.options.link)

    # ------------------------------------------------------------------
    # Uninstall
    # ------------------------------------------------------------------

    async def uninstall(self, plugin_id: str, keep_files: bool = False) -> None:
        """Reverse the plugin's platform changes and optionally drop it from the store."""
        project = self.project
        plugin_dir = self.plugins_dir / plugin_id
        record = self.ledger.get(plugin_id, project.name)
        if (plugin_dir / PLUGIN_MANIFEST_FILE).is_file():
            descriptor = load_descriptor(plugin_dir)
        elif record is not None:
            descriptor = PluginDescriptor(
                id=plugin_id, version=record.version or "", directory=plugin_dir
            )
        else:
            raise NotFoundError(f"Plugin {plugin_id} is not installed on {project.name}")

        project.uninstall_plugin(descriptor, self.ledger)

        if not keep_files:
            remove_path(plugin_dir)
            remove_path(provenance_path(self.plugins_dir, plugin_id))
            logger.debug("[uninstall] Removed %s from the plugin store", plugin_id)

    # ------------------------------------------------------------------
    # Prepare
    # ------------------------------------------------------------------

    def prepare(self, config: Optional[AppConfig] = None) -> None:
        """Refresh the platform project from config.xml, www and merges."""
        project = self.project
        if config is None:
            config = AppConfig.load(self.project_root / PROJECT_CONFIG_FILE)
        project.run_full_update(config)


__all__ = ["PluginInstaller", "PLUGINS_DIR_NAME", "PLATFORMS_DIR_NAME"]
