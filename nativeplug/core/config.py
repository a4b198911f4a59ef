"""Configuration management for nativeplug.

Global settings live in ``~/.nativeplug.json``. Per-invocation fetch
settings are carried by :class:`FetchOptions`.
"""

import json
import os
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from nativeplug.utils.log import get_logger


logger = get_logger()

SEARCHPATH_ENV_VAR = "NATIVEPLUG_SEARCHPATH"
DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"


def _split_search_path(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, (str, Path)):
        return [item for item in str(value).split(os.pathsep) if item.strip()]
    return value


class GlobalConfig(BaseModel):
    """Global configuration stored in ~/.nativeplug.json"""

    search_path: List[str] = Field(default_factory=list)
    no_registry: bool = False
    registry_url: str = DEFAULT_REGISTRY_URL
    # Seconds; applied to every registry HTTP request.
    registry_timeout: float = 60.0
    cache_dir: Optional[str] = None

    @field_validator("search_path", mode="before")
    @classmethod
    def _coerce_search_path(cls, value: Any) -> Any:
        return _split_search_path(value)

    def resolved_cache_dir(self) -> Path:
        if self.cache_dir:
            return Path(self.cache_dir).expanduser()
        return Path.home() / ".nativeplug" / "cache"


class FetchOptions(BaseModel):
    """Options controlling how a single plugin reference is fetched."""

    model_config = {"arbitrary_types_allowed": True}

    link: bool = False
    subdir: str = "."
    git_ref: Optional[str] = None
    search_path: List[Path] = Field(default_factory=list)
    no_registry: bool = False
    expected_id: Optional[str] = None
    # Registry collaborator handed to the registry fetch; opaque to the resolver.
    registry_client: Any = None

    @field_validator("search_path", mode="before")
    @classmethod
    def _coerce_search_path(cls, value: Any) -> Any:
        return _split_search_path(value)

    @field_validator("subdir", mode="before")
    @classmethod
    def _default_subdir(cls, value: Any) -> Any:
        return value or "."


class ConfigManager:
    """Loads and saves the global configuration."""

    def __init__(self, config_path: Optional[Path] = None) -> None:
        self.config_path = config_path or Path.home() / ".nativeplug.json"
        self._global_config: Optional[GlobalConfig] = None

    def get_global_config(self) -> GlobalConfig:
        """Load and return global configuration."""
        if self._global_config is None:
            if self.config_path.exists():
                try:
                    data = json.loads(self.config_path.read_text(encoding="utf-8"))
                    self._global_config = GlobalConfig(**data)
                    logger.debug(
                        "[config] Loaded global configuration",
                        extra={"path": str(self.config_path)},
                    )
                except (
                    json.JSONDecodeError,
                    OSError,
                    UnicodeDecodeError,
                    ValueError,
                    TypeError,
                ) as e:
                    logger.warning(
                        "Error loading global config: %s: %s",
                        type(e).__name__,
                        e,
                        extra={"error": str(e), "path": str(self.config_path)},
                    )
                    self._global_config = GlobalConfig()
            else:
                self._global_config = GlobalConfig()
                logger.debug(
                    "[config] Global config not found; using defaults",
                    extra={"path": str(self.config_path)},
                )
        return self._global_config

    def save_global_config(self, config: GlobalConfig) -> None:
        """Save global configuration."""
        self._global_config = config
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        logger.debug("[config] Saved global configuration", extra={"path": str(self.config_path)})

    def effective_search_path(self) -> List[Path]:
        """Configured search path followed by entries from NATIVEPLUG_SEARCHPATH."""
        entries = list(self.get_global_config().search_path)
        entries.extend(_split_search_path(os.getenv(SEARCHPATH_ENV_VAR, "")))
        resolved = [Path(item).expanduser() for item in entries]
        return list(dict.fromkeys(resolved))


# Shared instance used by the CLI
config_manager = ConfigManager()
