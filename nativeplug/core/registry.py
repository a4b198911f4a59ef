"""Plugin registry client.

Plugins published to an npm-style registry are described by a document at
``<registry>/<id>`` listing versions and their tarball URLs. Fetched
tarballs are unpacked into a per-version cache directory which then serves
as the plugin's source directory.
"""

from __future__ import annotations

import io
import shutil
import tarfile
import tempfile
import urllib.parse
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Optional, Sequence

import httpx

from nativeplug import __version__
from nativeplug.core.config import DEFAULT_REGISTRY_URL
from nativeplug.core.errors import NetworkError, NotFoundError
from nativeplug.core.references import split_plugin_spec
from nativeplug.utils.log import get_logger

logger = get_logger()

_TARBALL_PREFIX = "package"


def _extract_error_message(response: httpx.Response) -> str:
    text = response.text
    try:
        payload = response.json()
    except ValueError:
        return text or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        for field in ("error", "reason", "message"):
            value = payload.get(field)
            if isinstance(value, str) and value:
                return value
    return text or f"HTTP {response.status_code}"


def _safe_member_path(name: str) -> Optional[PurePosixPath]:
    parts = PurePosixPath(name).parts
    if parts and parts[0] == _TARBALL_PREFIX:
        parts = parts[1:]
    if not parts or any(part in ("..", "") for part in parts) or parts[0].startswith("/"):
        return None
    return PurePosixPath(*parts)


def _unpack_tarball(payload: bytes, destination: Path) -> None:
    destination.mkdir(parents=True, exist_ok=True)
    with tarfile.open(fileobj=io.BytesIO(payload), mode="r:*") as archive:
        for member in archive.getmembers():
            relative = _safe_member_path(member.name)
            if relative is None or not (member.isfile() or member.isdir()):
                continue
            target = destination / relative
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            source = archive.extractfile(member)
            if source is None:
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with source, open(target, "wb") as handle:
                shutil.copyfileobj(source, handle)


class RegistryClient:
    """Async client for an npm-style plugin registry."""

    def __init__(
        self,
        base_url: str = DEFAULT_REGISTRY_URL,
        cache_dir: Optional[Path] = None,
        *,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.cache_dir = cache_dir or Path.home() / ".nativeplug" / "cache"
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
            headers={"User-Agent": f"nativeplug/{__version__}"},
        )

    async def _get(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        try:
            response = await client.get(url)
        except httpx.HTTPError as exc:
            raise NetworkError(f"Request to {url} failed: {type(exc).__name__}: {exc}") from exc
        if response.status_code == 404:
            raise NotFoundError(f"Not found in registry: {url}")
        if response.status_code >= 400:
            raise NetworkError(
                f"Registry request to {url} failed ({response.status_code}): "
                f"{_extract_error_message(response)}"
            )
        return response

    async def get_metadata(self, plugin_id: str) -> Dict[str, Any]:
        url = f"{self.base_url}/{urllib.parse.quote(plugin_id, safe='@')}"
        async with self._client() as client:
            response = await self._get(client, url)
        try:
            payload = response.json()
        except ValueError as exc:
            raise NetworkError(f"Registry returned invalid JSON for {plugin_id}") from exc
        if not isinstance(payload, dict):
            raise NetworkError(f"Registry returned unexpected metadata for {plugin_id}")
        return payload

    @staticmethod
    def _select_version(plugin_id: str, metadata: Dict[str, Any], version: Optional[str]) -> str:
        versions = metadata.get("versions")
        if not isinstance(versions, dict) or not versions:
            raise NotFoundError(f"Plugin {plugin_id} has no published versions")
        if version is None:
            tags = metadata.get("dist-tags") or {}
            version = tags.get("latest") if isinstance(tags, dict) else None
        if not version or version not in versions:
            raise NotFoundError(f"Version {version or 'latest'} of {plugin_id} not found in registry")
        return str(version)

    async def fetch_plugin(self, spec: str) -> Path:
        """Download ``id[@version]`` into the cache and return its directory."""
        plugin_id, requested = split_plugin_spec(spec)
        metadata = await self.get_metadata(plugin_id)
        version = self._select_version(plugin_id, metadata, requested)
        destination = self.cache_dir / plugin_id / version / _TARBALL_PREFIX
        if destination.is_dir():
            logger.debug("[registry] Using cached %s@%s at %s", plugin_id, version, destination)
            return destination

        dist = metadata["versions"][version].get("dist") or {}
        tarball_url = dist.get("tarball") if isinstance(dist, dict) else None
        if not tarball_url:
            raise NotFoundError(f"Registry entry for {plugin_id}@{version} has no tarball")

        logger.info("[registry] Downloading %s@%s", plugin_id, version)
        async with self._client() as client:
            response = await self._get(client, tarball_url)

        destination.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix="unpack-", dir=destination.parent))
        try:
            _unpack_tarball(response.content, staging)
        except (tarfile.TarError, OSError) as exc:
            shutil.rmtree(staging, ignore_errors=True)
            raise NetworkError(f"Could not unpack {tarball_url}: {exc}") from exc
        staging.rename(destination)
        return destination


async def fetch_from_registry(identifiers: Sequence[str], client: Optional[RegistryClient]) -> Path:
    """Fetch every identifier and return the directory of the first one."""
    if not identifiers:
        raise NotFoundError("No plugin identifiers given to the registry")
    registry = client or RegistryClient()
    directories = [await registry.fetch_plugin(spec) for spec in identifiers]
    return directories[0]


__all__ = ["RegistryClient", "fetch_from_registry"]
