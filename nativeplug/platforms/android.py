"""Android platform project."""

from __future__ import annotations

import re
import shutil
from pathlib import Path
from typing import List, Optional

from nativeplug.core.errors import PlatformError
from nativeplug.core.project_config import AppConfig
from nativeplug.platforms.base import PlatformProject
from nativeplug.utils.fs_utils import prune_empty_dirs
from nativeplug.utils.log import get_logger
from nativeplug.utils.xml_utils import (
    find_element,
    parse_document,
    remove_attribute,
    set_attribute,
    write_document,
)

logger = get_logger()

MANIFEST_FILE = "AndroidManifest.xml"
ORIENTATION_PREFERENCE = "Orientation"
ORIENTATION_ATTRIBUTE = "android:screenOrientation"
ORIENTATION_DEFAULT = "default"
ORIENTATIONS = ("portrait", "landscape")
SPLASH_FILE_NAME = "screen.png"

_PACKAGE_RE = re.compile(r"^[ \t]*package\s+([\w.]+)\s*;", re.MULTILINE)
_ACTIVITY_RE = re.compile(r"\bclass\s+\w+\s+extends\s+\w*Activity\b")


class AndroidProject(PlatformProject):
    name = "android"

    def __init__(self, platform_dir: Path, project_root: Optional[Path] = None) -> None:
        super().__init__(platform_dir, project_root)
        if not self.manifest.is_file():
            raise PlatformError(
                f'The provided path "{self.platform_dir}" is not an Android project.'
            )

    @property
    def manifest(self) -> Path:
        return self.platform_dir / MANIFEST_FILE

    @property
    def strings_xml(self) -> Path:
        return self.platform_dir / "res" / "values" / "strings.xml"

    @property
    def config_xml(self) -> Path:
        return self.platform_dir / "res" / "xml" / "config.xml"

    @property
    def www_dir(self) -> Path:
        return self.platform_dir / "assets" / "www"

    @property
    def src_dir(self) -> Path:
        return self.platform_dir / "src"

    @property
    def source_roots(self) -> List[Path]:
        return [
            self.platform_dir,
            self.src_dir,
            self.platform_dir / "res",
            self.platform_dir / "assets",
            self.www_dir,
            self.platform_dir / "libs",
        ]

    def document_path(self, target_file: str) -> Path:
        if target_file == MANIFEST_FILE:
            return self.manifest
        return super().document_path(target_file)

    # ------------------------------------------------------------------
    # config.xml -> native project
    # ------------------------------------------------------------------

    def update_from_config(self, config: AppConfig) -> None:
        self._update_app_name(config.name)
        old_package = self._update_manifest(config)
        self._copy_splash_screens(config)
        if config.package_name and config.package_name != old_package:
            self._relocate_main_activity(config.package_name)
        logger.info('[android] Wrote out Android application name to "%s"', config.name)

    def _update_app_name(self, app_name: str) -> None:
        if not self.strings_xml.is_file():
            logger.warning("[android] strings.xml not found at %s", self.strings_xml)
            return
        tree = parse_document(self.strings_xml)
        root = tree.getroot()
        entry = next(
            (el for el in root.findall("string") if el.get("name") == "app_name"),
            None,
        )
        if entry is None:
            entry = root.makeelement("string", {"name": "app_name"})
            root.append(entry)
        entry.text = app_name
        write_document(tree, self.strings_xml)

    def _update_manifest(self, config: AppConfig) -> Optional[str]:
        """Write package, version and orientation; return the previous package."""
        tree = parse_document(self.manifest)
        root = tree.getroot()
        old_package = root.get("package")
        if config.package_name:
            root.set("package", config.package_name)
        if config.version:
            set_attribute(root, "android:versionName", config.version)
        if config.android_version_code:
            set_attribute(root, "android:versionCode", config.android_version_code)

        orientation = config.get_preference(ORIENTATION_PREFERENCE, self.name)
        application = find_element(root, "application")
        activities = application.findall("activity") if application is not None else []
        for activity in activities:
            if orientation == ORIENTATION_DEFAULT:
                remove_attribute(activity, ORIENTATION_ATTRIBUTE)
            elif orientation in ORIENTATIONS:
                set_attribute(activity, ORIENTATION_ATTRIBUTE, orientation)
            elif orientation:
                logger.warning(
                    '[android] Unknown orientation "%s"; leaving activities unchanged', orientation
                )
                break
        write_document(tree, self.manifest)
        return old_package

    def _copy_splash_screens(self, config: AppConfig) -> None:
        for splash in config.splash_screens(self.name):
            source = self.project_root / splash.src
            if not source.is_file():
                logger.warning("[android] Splash screen not found: %s", source)
                continue
            destination = self.platform_dir / "res" / f"drawable-{splash.density}" / SPLASH_FILE_NAME
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, destination)
            logger.debug("[android] Copied splash screen for %s", splash.density)

    def _find_main_activity(self) -> Optional[Path]:
        if not self.src_dir.is_dir():
            return None
        for candidate in sorted(self.src_dir.rglob("*.java")):
            if _ACTIVITY_RE.search(candidate.read_text(encoding="utf-8")):
                return candidate
        return None

    def _relocate_main_activity(self, package_name: str) -> None:
        """Move the main activity source under ``src/<package path>`` and fix its package line."""
        source = self._find_main_activity()
        if source is None:
            logger.debug("[android] No main activity found under %s", self.src_dir)
            return
        contents = source.read_text(encoding="utf-8")
        declaration = f"package {package_name};"
        if _PACKAGE_RE.search(contents):
            contents = _PACKAGE_RE.sub(declaration, contents, count=1)
        else:
            contents = f"{declaration}\n{contents}"

        destination = self.src_dir.joinpath(*package_name.split(".")) / source.name
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(contents, encoding="utf-8")
        if destination.resolve() != source.resolve():
            source.unlink()
            prune_empty_dirs(source.parent, self.src_dir)
        logger.debug("[android] Main activity is now %s", destination)


__all__ = ["AndroidProject"]
