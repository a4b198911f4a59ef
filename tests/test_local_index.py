"""Tests for the search-path plugin index."""

from nativeplug.core.descriptor import load_plugins_dir
from nativeplug.core.local_index import LocalPluginIndex


def test_index_is_built_lazily_on_first_resolve(tmp_path, make_plugin):
    make_plugin(tmp_path / "search" / "a", "org.example.a")
    index = LocalPluginIndex()
    assert index.is_built is False

    found = index.resolve("org.example.a", [tmp_path / "search"])

    assert index.is_built is True
    assert found is not None
    assert found.directory == tmp_path / "search" / "a"
    assert "org.example.a" in index
    assert len(index) == 1


def test_later_search_path_entry_wins(tmp_path, make_plugin):
    make_plugin(tmp_path / "first" / "dup", "org.example.dup", version="1.0.0")
    make_plugin(tmp_path / "second" / "dup", "org.example.dup", version="2.0.0")

    index = LocalPluginIndex()
    index.build([tmp_path / "first", tmp_path / "second"])

    found = index.resolve("org.example.dup")
    assert found is not None
    assert found.version == "2.0.0"
    assert found.directory == tmp_path / "second" / "dup"


def test_build_happens_at_most_once(tmp_path, make_plugin):
    make_plugin(tmp_path / "one" / "a", "org.example.a")
    make_plugin(tmp_path / "two" / "b", "org.example.b")

    index = LocalPluginIndex()
    assert index.build([tmp_path / "one"]) is True
    assert index.build([tmp_path / "two"]) is False

    assert index.resolve("org.example.b", [tmp_path / "two"]) is None
    assert index.search_path == [tmp_path / "one"]


def test_missing_identifier_and_missing_directories(tmp_path):
    index = LocalPluginIndex()
    assert index.resolve("org.example.none", [tmp_path / "does-not-exist"]) is None
    assert index.is_built is True
    assert len(index) == 0


def test_broken_descriptors_are_skipped(tmp_path, make_plugin, write_file):
    make_plugin(tmp_path / "search" / "good", "org.example.good")
    write_file(tmp_path / "search" / "broken" / "plugin.xml", "<plugin id=")
    write_file(tmp_path / "search" / "noid" / "plugin.xml", '<plugin version="1.0.0"/>')
    (tmp_path / "search" / "not-a-plugin").mkdir()

    plugins = load_plugins_dir(tmp_path / "search")

    assert [plugin.id for plugin in plugins] == ["org.example.good"]
