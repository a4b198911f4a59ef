"""Reader for a project's top-level ``config.xml``.

::

    <widget id="org.example.app" version="1.0.0" android-versionCode="7">
      <name>Example</name>
      <preference name="Orientation" value="portrait"/>
      <platform name="android">
        <preference name="Orientation" value="landscape"/>
        <splash src="res/screen/android/land-hdpi.png" density="land-hdpi"/>
      </platform>
    </widget>
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from nativeplug.core.errors import NativeplugError
from nativeplug.utils.xml_utils import parse_document

PROJECT_CONFIG_FILE = "config.xml"


@dataclass(frozen=True)
class SplashScreen:
    src: str
    density: str


class AppConfig:
    """Read-only view of a project ``config.xml``."""

    def __init__(self, root: ET.Element, path: Optional[Path] = None) -> None:
        self.root = root
        self.path = path

    @classmethod
    def load(cls, path: Path) -> "AppConfig":
        try:
            root = parse_document(path).getroot()
        except (ET.ParseError, OSError, UnicodeDecodeError) as exc:
            raise NativeplugError(f"Cannot read project config {path}: {exc}") from exc
        return cls(root, path)

    @classmethod
    def from_string(cls, text: str) -> "AppConfig":
        return cls(ET.fromstring(text))

    @property
    def name(self) -> str:
        return (self.root.findtext("name") or "").strip()

    @property
    def package_name(self) -> str:
        return (self.root.get("id") or "").strip()

    @property
    def version(self) -> str:
        return (self.root.get("version") or "").strip()

    @property
    def android_version_code(self) -> Optional[str]:
        value = (self.root.get("android-versionCode") or "").strip()
        return value or None

    def _platform_elements(self, platform: str) -> List[ET.Element]:
        return [el for el in self.root.findall("platform") if el.get("name") == platform]

    def get_preference(self, name: str, platform: Optional[str] = None) -> Optional[str]:
        """Value of preference ``name``; platform-scoped values win over global ones."""
        wanted = name.lower()
        scopes = [self.root]
        if platform:
            scopes = self._platform_elements(platform) + scopes
        for scope in scopes:
            for pref in scope.findall("preference"):
                if (pref.get("name") or "").lower() == wanted:
                    return pref.get("value")
        return None

    def splash_screens(self, platform: str) -> List[SplashScreen]:
        screens: List[SplashScreen] = []
        for scope in self._platform_elements(platform):
            for splash in scope.findall("splash"):
                src = (splash.get("src") or "").strip()
                density = (splash.get("density") or "").strip()
                if src and density:
                    screens.append(SplashScreen(src=src, density=density))
        return screens


__all__ = ["PROJECT_CONFIG_FILE", "SplashScreen", "AppConfig"]
