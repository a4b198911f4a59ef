"""Tests for plugin reference parsing.

Tests cover:
- parse_fragment: splitting ``#ref[:subdir]`` off a reference
- is_network_url: telling git URLs from paths and ids
- split_plugin_spec: ``id[@version]`` handling
- parse_reference: classification into git / local / registry references
"""

from pathlib import Path

import pytest

from nativeplug.core.config import FetchOptions
from nativeplug.core.errors import InvalidReferenceError
from nativeplug.core.references import (
    FragmentDelta,
    GitSource,
    LocalPath,
    RegistryId,
    is_network_url,
    parse_fragment,
    parse_reference,
    split_plugin_spec,
)


class TestParseFragment:
    """Tests for parse_fragment."""

    def test_no_fragment_returns_input_unchanged(self):
        assert parse_fragment("https://host/repo.git") == ("https://host/repo.git", FragmentDelta())

    def test_ref_and_subdir(self):
        truncated, delta = parse_fragment("https://host/repo.git#v1.2:plugins/child")
        assert truncated == "https://host/repo.git"
        assert delta == FragmentDelta(ref="v1.2", subdir="plugins/child")

    def test_subdir_only(self):
        truncated, delta = parse_fragment("https://host/repo.git#:/plugins/child/")
        assert truncated == "https://host/repo.git"
        assert delta.ref is None
        assert delta.subdir == "plugins/child"

    def test_ref_only(self):
        _, delta = parse_fragment("https://host/repo.git#main")
        assert delta == FragmentDelta(ref="main", subdir=None)

    def test_empty_fragment_is_empty_delta(self):
        truncated, delta = parse_fragment("https://host/repo.git#")
        assert truncated == "https://host/repo.git"
        assert delta.empty

    def test_fragment_parsing_is_idempotent(self):
        truncated, _ = parse_fragment("https://host/repo.git#v1:sub")
        again, delta = parse_fragment(truncated)
        assert again == truncated
        assert delta.empty

    def test_two_fragments_rejected(self):
        with pytest.raises(InvalidReferenceError):
            parse_fragment("https://host/repo.git#a#b")


class TestIsNetworkUrl:
    """Tests for is_network_url."""

    @pytest.mark.parametrize(
        "value",
        [
            "https://github.com/example/plugin.git",
            "git://example.com/plugin.git",
            "ssh://git@example.com/plugin.git",
            "git@github.com:example/plugin.git",
        ],
    )
    def test_remote_urls(self, value):
        assert is_network_url(value) is True

    @pytest.mark.parametrize(
        "value",
        [
            "org.example.plugin",
            "org.example.plugin@1.2.3",
            "./plugins/child",
            "/abs/path/plugin",
            "C:\\plugins\\child",
            "c:relative",
            "file:///tmp/plugin",
        ],
    )
    def test_local_values(self, value):
        assert is_network_url(value) is False


class TestSplitPluginSpec:
    def test_plain_id(self):
        assert split_plugin_spec("org.example.plugin") == ("org.example.plugin", None)

    def test_id_with_version(self):
        assert split_plugin_spec("org.example.plugin@1.2.3") == ("org.example.plugin", "1.2.3")

    def test_scoped_name_keeps_leading_at(self):
        assert split_plugin_spec("@scope/plugin") == ("@scope/plugin", None)
        assert split_plugin_spec("@scope/plugin@2.0.0") == ("@scope/plugin", "2.0.0")

    def test_trailing_at_means_no_version(self):
        assert split_plugin_spec("org.example.plugin@") == ("org.example.plugin", None)


class TestParseReference:
    """Tests for parse_reference."""

    def test_git_url_with_fragment(self):
        reference, options = parse_reference("https://host/repo.git#v2:src/plugin")
        assert reference == GitSource(url="https://host/repo.git", ref="v2", subdir="src/plugin")
        assert options.git_ref == "v2"
        assert options.subdir == "src/plugin"

    def test_fragment_overrides_options(self):
        base = FetchOptions(git_ref="old", subdir="old")
        reference, options = parse_reference("https://host/repo.git#new", base)
        assert reference == GitSource(url="https://host/repo.git", ref="new", subdir="old")
        assert base.git_ref == "old"

    def test_git_url_without_fragment_uses_options(self):
        reference, _ = parse_reference(
            "https://host/repo.git", FetchOptions(git_ref="tag", subdir="/nested/")
        )
        assert reference == GitSource(url="https://host/repo.git", ref="tag", subdir="nested")

    def test_existing_relative_directory(self, tmp_path):
        (tmp_path / "plugins" / "child").mkdir(parents=True)
        reference, _ = parse_reference("plugins/child", base_dir=tmp_path)
        assert reference == LocalPath(path=tmp_path / "plugins" / "child")

    def test_local_directory_with_subdir_fragment(self, tmp_path):
        (tmp_path / "repo" / "inner").mkdir(parents=True)
        reference, _ = parse_reference("repo#:inner", base_dir=tmp_path)
        assert reference == LocalPath(path=tmp_path / "repo" / "inner")

    def test_absolute_directory(self, tmp_path):
        reference, _ = parse_reference(str(tmp_path))
        assert isinstance(reference, LocalPath)
        assert reference.path == Path(str(tmp_path))

    def test_registry_id_with_version(self, tmp_path):
        reference, _ = parse_reference("org.example.plugin@1.2.3", base_dir=tmp_path)
        assert reference == RegistryId(id="org.example.plugin", version_spec="1.2.3")
        assert reference.spec == "org.example.plugin@1.2.3"

    def test_registry_id_without_version(self, tmp_path):
        reference, _ = parse_reference("org.example.plugin", base_dir=tmp_path)
        assert reference == RegistryId(id="org.example.plugin")
        assert reference.spec == "org.example.plugin"

    def test_empty_reference_rejected(self):
        with pytest.raises(InvalidReferenceError):
            parse_reference("   ")
