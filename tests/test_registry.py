"""Tests for the registry client using httpx.MockTransport."""

import io
import tarfile

import httpx
import pytest

from nativeplug.core.errors import NetworkError, NotFoundError
from nativeplug.core.registry import RegistryClient, fetch_from_registry

BASE_URL = "https://registry.test"


def _tarball(files):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def _metadata(plugin_id, versions, latest):
    return {
        "name": plugin_id,
        "dist-tags": {"latest": latest},
        "versions": {
            version: {"dist": {"tarball": f"{BASE_URL}/{plugin_id}/-/{plugin_id}-{version}.tgz"}}
            for version in versions
        },
    }


class _Registry:
    """In-memory registry answering metadata and tarball requests."""

    def __init__(self):
        self.requests = []
        self.packages = {}
        self.tarballs = {}

    def publish(self, plugin_id, version, files, latest=None):
        versions = list(self.packages.get(plugin_id, {}).get("versions", {}))
        versions.append(version)
        self.packages[plugin_id] = _metadata(plugin_id, versions, latest or version)
        self.tarballs[f"/{plugin_id}/-/{plugin_id}-{version}.tgz"] = _tarball(files)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request.url.path)
        path = request.url.path
        if path in self.tarballs:
            return httpx.Response(200, content=self.tarballs[path])
        plugin_id = path.lstrip("/")
        if plugin_id in self.packages:
            return httpx.Response(200, json=self.packages[plugin_id])
        return httpx.Response(404, json={"error": "Not found"})

    def client(self, cache_dir):
        return RegistryClient(BASE_URL, cache_dir, transport=httpx.MockTransport(self.handler))


@pytest.fixture
def registry():
    reg = _Registry()
    reg.publish(
        "org.example.a",
        "1.0.0",
        {"package/plugin.xml": '<plugin id="org.example.a" version="1.0.0"/>'},
    )
    reg.publish(
        "org.example.a",
        "1.1.0",
        {
            "package/plugin.xml": '<plugin id="org.example.a" version="1.1.0"/>',
            "package/www/a.js": "a",
            "package/../escape.txt": "nope",
        },
    )
    return reg


@pytest.mark.asyncio
async def test_fetch_latest_strips_package_prefix(tmp_path, registry):
    client = registry.client(tmp_path / "cache")

    directory = await client.fetch_plugin("org.example.a")

    assert directory == tmp_path / "cache" / "org.example.a" / "1.1.0" / "package"
    assert 'version="1.1.0"' in (directory / "plugin.xml").read_text()
    assert (directory / "www" / "a.js").read_text() == "a"
    assert not (tmp_path / "cache" / "org.example.a" / "1.1.0" / "escape.txt").exists()
    assert not (tmp_path / "escape.txt").exists()


@pytest.mark.asyncio
async def test_fetch_specific_version(tmp_path, registry):
    client = registry.client(tmp_path / "cache")

    directory = await client.fetch_plugin("org.example.a@1.0.0")

    assert directory.parent.name == "1.0.0"
    assert 'version="1.0.0"' in (directory / "plugin.xml").read_text()


@pytest.mark.asyncio
async def test_cached_version_skips_download(tmp_path, registry):
    client = registry.client(tmp_path / "cache")
    await client.fetch_plugin("org.example.a@1.0.0")
    registry.requests.clear()

    await client.fetch_plugin("org.example.a@1.0.0")

    assert registry.requests == ["/org.example.a"]


@pytest.mark.asyncio
async def test_unknown_plugin_is_not_found(tmp_path, registry):
    with pytest.raises(NotFoundError):
        await registry.client(tmp_path / "cache").fetch_plugin("org.example.none")


@pytest.mark.asyncio
async def test_unknown_version_is_not_found(tmp_path, registry):
    with pytest.raises(NotFoundError, match="9.9.9"):
        await registry.client(tmp_path / "cache").fetch_plugin("org.example.a@9.9.9")


@pytest.mark.asyncio
async def test_server_error_is_network_error(tmp_path):
    def handler(request):
        return httpx.Response(503, json={"error": "maintenance"})

    client = RegistryClient(BASE_URL, tmp_path, transport=httpx.MockTransport(handler))
    with pytest.raises(NetworkError, match="maintenance"):
        await client.get_metadata("org.example.a")


@pytest.mark.asyncio
async def test_transport_error_is_network_error(tmp_path):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = RegistryClient(BASE_URL, tmp_path, transport=httpx.MockTransport(handler))
    with pytest.raises(NetworkError, match="ConnectError"):
        await client.get_metadata("org.example.a")


@pytest.mark.asyncio
async def test_fetch_from_registry_returns_first_directory(tmp_path, registry):
    client = registry.client(tmp_path / "cache")

    directory = await fetch_from_registry(["org.example.a@1.0.0", "org.example.a@1.1.0"], client)

    assert directory.parent.name == "1.0.0"
    assert (tmp_path / "cache" / "org.example.a" / "1.1.0" / "package").is_dir()


@pytest.mark.asyncio
async def test_fetch_from_registry_requires_identifiers(tmp_path):
    with pytest.raises(NotFoundError):
        await fetch_from_registry([], RegistryClient(BASE_URL, tmp_path))
