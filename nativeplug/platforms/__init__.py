"""Platform project registry."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Type

from nativeplug.core.errors import PlatformError
from nativeplug.platforms.android import AndroidProject
from nativeplug.platforms.base import PlatformProject

PLATFORMS: Dict[str, Type[PlatformProject]] = {
    AndroidProject.name: AndroidProject,
}


def supported_platforms() -> List[str]:
    return sorted(PLATFORMS)


def get_platform_project(
    name: str, platform_dir: Path, project_root: Optional[Path] = None
) -> PlatformProject:
    """Return the project object for ``name`` rooted at ``platform_dir``."""
    project_cls = PLATFORMS.get(name.lower())
    if project_cls is None:
        raise PlatformError(
            f'Platform "{name}" is not supported. Supported platforms: '
            f"{', '.join(supported_platforms())}"
        )
    return project_cls(platform_dir, project_root)


__all__ = ["PlatformProject", "AndroidProject", "get_platform_project", "supported_platforms"]
