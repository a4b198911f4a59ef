"""Plugin descriptor (plugin.xml) parsing.

A plugin directory is recognised by a ``plugin.xml`` at its root::

    <plugin id="org.example.browser" version="1.2.3"
            xmlns:android="http://schemas.android.com/apk/res/android">
      <name>Browser</name>
      <dependency id="org.example.core"/>
      <asset src="www/browser.js" target="browser.js"/>
      <platform name="android">
        <source-file src="src/android/Browser.java" target-dir="src/org/example/browser"/>
        <resource-file src="res/values/browser.xml" target="res/values/browser.xml"/>
        <config-file target="res/xml/config.xml" parent="/cordova/plugins">
          <plugin name="Browser" value="org.example.browser.Browser"/>
        </config-file>
      </platform>
    </plugin>
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple

from nativeplug.core.errors import DescriptorError
from nativeplug.core.references import GitSource, PluginReference, RegistryId, normalize_subdir
from nativeplug.utils.log import get_logger
from nativeplug.utils.xml_utils import parse_document

logger = get_logger()

PLUGIN_MANIFEST_FILE = "plugin.xml"

FILE_KIND_ASSET = "asset"
FILE_KIND_SOURCE = "source-file"
FILE_KIND_RESOURCE = "resource-file"


@dataclass(frozen=True)
class DeclaredFile:
    """A file the plugin places into the platform project.

    ``target_path`` is relative to the platform's web-asset directory for
    assets and to the platform project root otherwise. ``platform`` is
    ``None`` for platform-agnostic assets.
    """

    source_path: str
    target_path: str
    platform: Optional[str]
    kind: str = FILE_KIND_SOURCE


@dataclass(frozen=True)
class ConfigEdit:
    target_file: str
    parent: str
    platform: str
    children: Tuple[ET.Element, ...] = ()


@dataclass(frozen=True)
class PluginDependency:
    id: str
    reference: PluginReference


@dataclass(frozen=True)
class PluginDescriptor:
    id: str
    version: str
    directory: Path
    name: str = ""
    declared_files: Tuple[DeclaredFile, ...] = ()
    config_edits: Tuple[ConfigEdit, ...] = ()
    dependencies: Tuple[PluginDependency, ...] = ()
    platforms: Tuple[str, ...] = ()

    @property
    def spec(self) -> str:
        return f"{self.id}@{self.version}"

    def files_for(self, platform: str) -> List[DeclaredFile]:
        """Declared files that apply to ``platform`` (assets included)."""
        return [item for item in self.declared_files if item.platform in (None, platform)]

    def edits_for(self, platform: str) -> List[ConfigEdit]:
        return [item for item in self.config_edits if item.platform == platform]


def _require(element: ET.Element, attribute: str, manifest: Path) -> str:
    value = (element.get(attribute) or "").strip()
    if not value:
        raise DescriptorError(
            f"<{element.tag}> is missing required attribute '{attribute}' in {manifest}",
            path=manifest,
        )
    return value


def _parse_dependency(element: ET.Element, manifest: Path) -> PluginDependency:
    plugin_id = _require(element, "id", manifest)
    url = (element.get("url") or "").strip()
    reference: PluginReference
    if url:
        reference = GitSource(
            url=url,
            ref=(element.get("commit") or "").strip() or None,
            subdir=normalize_subdir(element.get("subdir")),
        )
    else:
        version = (element.get("version") or "").strip() or None
        reference = RegistryId(id=plugin_id, version_spec=version)
    return PluginDependency(id=plugin_id, reference=reference)


def _parse_files(
    container: ET.Element, platform: Optional[str], manifest: Path
) -> List[DeclaredFile]:
    files: List[DeclaredFile] = []
    for asset in container.findall(FILE_KIND_ASSET):
        src = _require(asset, "src", manifest)
        files.append(
            DeclaredFile(
                source_path=src,
                target_path=_require(asset, "target", manifest),
                platform=None,
                kind=FILE_KIND_ASSET,
            )
        )
    if platform is None:
        return files
    for source in container.findall(FILE_KIND_SOURCE):
        src = _require(source, "src", manifest)
        target_dir = (source.get("target-dir") or "").strip().strip("/")
        target = PurePosixPath(target_dir) / PurePosixPath(src).name if target_dir else PurePosixPath(src).name
        files.append(
            DeclaredFile(
                source_path=src,
                target_path=str(target),
                platform=platform,
                kind=FILE_KIND_SOURCE,
            )
        )
    for resource in container.findall(FILE_KIND_RESOURCE):
        files.append(
            DeclaredFile(
                source_path=_require(resource, "src", manifest),
                target_path=_require(resource, "target", manifest),
                platform=platform,
                kind=FILE_KIND_RESOURCE,
            )
        )
    return files


def _parse_config_edits(platform_el: ET.Element, platform: str, manifest: Path) -> List[ConfigEdit]:
    edits: List[ConfigEdit] = []
    for config_file in platform_el.findall("config-file"):
        edits.append(
            ConfigEdit(
                target_file=_require(config_file, "target", manifest),
                parent=_require(config_file, "parent", manifest),
                platform=platform,
                children=tuple(child for child in config_file if isinstance(child.tag, str)),
            )
        )
    return edits


def load_descriptor(plugin_dir: Path) -> PluginDescriptor:
    """Read ``plugin_dir/plugin.xml`` into a :class:`PluginDescriptor`."""
    manifest = plugin_dir / PLUGIN_MANIFEST_FILE
    if not manifest.is_file():
        raise DescriptorError(f"No {PLUGIN_MANIFEST_FILE} found in {plugin_dir}", path=manifest)
    try:
        root = parse_document(manifest).getroot()
    except (ET.ParseError, OSError, UnicodeDecodeError) as exc:
        raise DescriptorError(
            f"Invalid {PLUGIN_MANIFEST_FILE} at {manifest}: {type(exc).__name__}: {exc}",
            path=manifest,
        ) from exc
    if root.tag != "plugin":
        raise DescriptorError(f"Root element of {manifest} must be <plugin>", path=manifest)

    plugin_id = _require(root, "id", manifest)
    version = _require(root, "version", manifest)
    name = (root.findtext("name") or "").strip()

    declared_files = _parse_files(root, None, manifest)
    config_edits: List[ConfigEdit] = []
    platforms: List[str] = []
    for platform_el in root.findall("platform"):
        platform = _require(platform_el, "name", manifest)
        platforms.append(platform)
        declared_files.extend(
            item for item in _parse_files(platform_el, platform, manifest) if item.platform
        )
        # Assets nested under <platform> only apply to that platform.
        declared_files.extend(
            DeclaredFile(
                source_path=item.source_path,
                target_path=item.target_path,
                platform=platform,
                kind=FILE_KIND_ASSET,
            )
            for item in _parse_files(platform_el, None, manifest)
        )
        config_edits.extend(_parse_config_edits(platform_el, platform, manifest))

    dependencies = [_parse_dependency(dep, manifest) for dep in root.findall("dependency")]

    return PluginDescriptor(
        id=plugin_id,
        version=version,
        directory=plugin_dir,
        name=name,
        declared_files=tuple(declared_files),
        config_edits=tuple(config_edits),
        dependencies=tuple(dependencies),
        platforms=tuple(platforms),
    )


def load_plugins_dir(directory: Path) -> List[PluginDescriptor]:
    """Load every plugin found directly beneath ``directory``.

    Entries without a plugin.xml are ignored. Broken descriptors are logged
    and skipped.
    """
    if not directory.is_dir():
        return []
    plugins: List[PluginDescriptor] = []
    for child in sorted(directory.iterdir()):
        if not child.is_dir() or not (child / PLUGIN_MANIFEST_FILE).is_file():
            continue
        try:
            plugins.append(load_descriptor(child))
        except DescriptorError as exc:
            logger.warning("[plugins] Skipping %s: %s", child, exc)
    return plugins


__all__ = [
    "PLUGIN_MANIFEST_FILE",
    "DeclaredFile",
    "ConfigEdit",
    "PluginDependency",
    "PluginDescriptor",
    "load_descriptor",
    "load_plugins_dir",
]
