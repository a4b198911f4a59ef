"""Plugin reference parsing.

A reference is what a user types to name a plugin: a git URL (optionally
followed by ``#ref[:subdir]``), a local directory, or a registry id
(optionally ``id@version``). Parsing happens in two phases: the fragment
is split off first, then the remaining string is classified once into a
:data:`PluginReference` variant.
"""

from __future__ import annotations

import re
import urllib.parse
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from nativeplug.core.config import FetchOptions
from nativeplug.core.errors import InvalidReferenceError

_FRAGMENT_RE = re.compile(r"^([^:]*)(?::(.*))?$")
_WINDOWS_DRIVE_RE = re.compile(r"^\w+:\\")
_SCP_LIKE_RE = re.compile(r"^[\w.-]+@[\w.-]+:(?!\\)")
_SEPARATORS = "/\\"


@dataclass(frozen=True)
class GitSource:
    url: str
    ref: Optional[str] = None
    subdir: str = "."


@dataclass(frozen=True)
class LocalPath:
    path: Path


@dataclass(frozen=True)
class RegistryId:
    id: str
    version_spec: Optional[str] = None

    @property
    def spec(self) -> str:
        """The ``id[@version]`` string handed to the registry."""
        return f"{self.id}@{self.version_spec}" if self.version_spec else self.id


PluginReference = Union[GitSource, LocalPath, RegistryId]


@dataclass(frozen=True)
class FragmentDelta:
    ref: Optional[str] = None
    subdir: Optional[str] = None

    @property
    def empty(self) -> bool:
        return self.ref is None and self.subdir is None


def normalize_subdir(subdir: Optional[str]) -> str:
    value = (subdir or "").strip().strip(_SEPARATORS)
    return value or "."


def parse_fragment(raw: str) -> Tuple[str, FragmentDelta]:
    """Split a trailing ``#ref[:subdir]`` fragment off ``raw``.

    Returns the truncated reference and the options it implies. A string
    without a fragment comes back unchanged with an empty delta.
    """
    if "#" not in raw:
        return raw, FragmentDelta()
    truncated, fragment = raw.split("#", 1)
    if "#" in fragment:
        raise InvalidReferenceError(f"Plugin reference has more than one '#' fragment: {raw}")
    match = _FRAGMENT_RE.match(fragment)
    if match is None:
        raise InvalidReferenceError(f"Malformed plugin reference fragment: #{fragment}")
    ref, subdir = match.groups()
    return truncated, FragmentDelta(
        ref=ref or None,
        subdir=normalize_subdir(subdir) if subdir else None,
    )


def apply_fragment(options: FetchOptions, delta: FragmentDelta) -> FetchOptions:
    """Return a copy of ``options`` updated with the fragment's ref/subdir."""
    if delta.empty:
        return options
    update = {}
    if delta.ref is not None:
        update["git_ref"] = delta.ref
    if delta.subdir is not None:
        update["subdir"] = delta.subdir
    return options.model_copy(update=update)


def is_network_url(value: str) -> bool:
    """Whether ``value`` names a remote repository rather than a path or id."""
    if _WINDOWS_DRIVE_RE.match(value):
        return False
    if _SCP_LIKE_RE.match(value):
        return True
    scheme = urllib.parse.urlparse(value).scheme
    # Single-letter schemes are drive letters such as "c:".
    return bool(scheme) and scheme != "file" and len(scheme) > 1


def split_plugin_spec(spec: str) -> Tuple[str, Optional[str]]:
    """Split ``id[@version]``. A leading ``@`` (scoped names) is part of the id."""
    at = spec.rfind("@")
    if at <= 0:
        return spec, None
    return spec[:at], spec[at + 1 :] or None


def parse_reference(
    raw: str,
    options: Optional[FetchOptions] = None,
    *,
    base_dir: Optional[Path] = None,
) -> Tuple[PluginReference, FetchOptions]:
    """Classify ``raw`` into a reference variant and the effective options."""
    value = raw.strip()
    if not value:
        raise InvalidReferenceError("Plugin reference is empty")
    truncated, delta = parse_fragment(value)
    effective = apply_fragment(options or FetchOptions(), delta)
    subdir = normalize_subdir(effective.subdir)

    if is_network_url(truncated):
        return GitSource(url=truncated, ref=effective.git_ref, subdir=subdir), effective

    base = base_dir or Path.cwd()
    candidate = Path(truncated).expanduser()
    if not candidate.is_absolute():
        candidate = base / candidate
    if subdir != ".":
        candidate = candidate / subdir
    if candidate.exists():
        return LocalPath(path=candidate), effective

    plugin_id, version = split_plugin_spec(truncated)
    return RegistryId(id=plugin_id, version_spec=version), effective


__all__ = [
    "GitSource",
    "LocalPath",
    "RegistryId",
    "PluginReference",
    "FragmentDelta",
    "normalize_subdir",
    "parse_fragment",
    "apply_fragment",
    "is_network_url",
    "split_plugin_spec",
    "parse_reference",
]
