"""Tests for filesystem helpers."""

from nativeplug.utils.fs_utils import (
    copy_tree_contents,
    delete_named_dirs,
    prune_empty_dirs,
    remove_path,
    symlink_dir,
)


def test_remove_path_handles_files_dirs_and_links(tmp_path):
    file_path = tmp_path / "f.txt"
    file_path.write_text("x")
    directory = tmp_path / "d"
    (directory / "nested").mkdir(parents=True)
    link = tmp_path / "link"
    symlink_dir(directory, link)

    assert remove_path(link) is True
    assert directory.is_dir()
    assert remove_path(file_path) is True
    assert remove_path(directory) is True
    assert remove_path(tmp_path / "missing") is False


def test_copy_tree_contents_overwrites(tmp_path):
    source = tmp_path / "src"
    (source / "sub").mkdir(parents=True)
    (source / "sub" / "a.txt").write_text("new")
    destination = tmp_path / "dst"
    (destination / "sub").mkdir(parents=True)
    (destination / "sub" / "a.txt").write_text("old")
    (destination / "keep.txt").write_text("keep")

    copy_tree_contents(source, destination)

    assert (destination / "sub" / "a.txt").read_text() == "new"
    assert (destination / "keep.txt").read_text() == "keep"


def test_prune_empty_dirs_stops_at_protected_and_non_empty(tmp_path):
    root = tmp_path / "platform"
    deep = root / "src" / "com" / "example" / "plugin"
    deep.mkdir(parents=True)
    (root / "src" / "com" / "keep.txt").write_text("k")

    removed = prune_empty_dirs(deep, root, protected=[root / "src"])

    assert removed == [deep.resolve(), (root / "src" / "com" / "example").resolve()]
    assert (root / "src" / "com").is_dir()


def test_prune_empty_dirs_never_removes_boundary(tmp_path):
    root = tmp_path / "platform"
    (root / "a" / "b").mkdir(parents=True)

    prune_empty_dirs(root / "a" / "b", root)

    assert root.is_dir()
    assert not (root / "a").exists()


def test_prune_empty_dirs_skips_missing_start(tmp_path):
    root = tmp_path / "platform"
    (root / "a").mkdir(parents=True)

    removed = prune_empty_dirs(root / "a" / "gone" / "deeper", root)

    assert removed == [(root / "a").resolve()]


def test_delete_named_dirs(tmp_path):
    (tmp_path / ".svn").mkdir()
    (tmp_path / "js" / ".svn" / "inner" / ".svn").mkdir(parents=True)
    (tmp_path / "js" / "app.js").write_text("x")

    removed = delete_named_dirs(tmp_path, ".svn")

    assert len(removed) == 2
    assert list(tmp_path.rglob(".svn")) == []
    assert (tmp_path / "js" / "app.js").is_file()
