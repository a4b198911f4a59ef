"""Filesystem primitives used by the materializer and platform mutators."""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Callable, Iterable, List, Optional


def remove_path(path: Path) -> bool:
    """Remove a file, symlink or directory tree. Returns False if nothing was there."""
    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if path.is_dir():
        shutil.rmtree(path)
        return True
    return False


def copy_tree_contents(
    source: Path,
    destination: Path,
    ignore: Optional[Callable[[str, List[str]], Iterable[str]]] = None,
) -> None:
    """Copy everything inside ``source`` into ``destination``, overwriting files.

    ``ignore`` is passed to :func:`shutil.copytree`.
    """
    destination.mkdir(parents=True, exist_ok=True)
    shutil.copytree(source, destination, symlinks=True, ignore=ignore, dirs_exist_ok=True)


def symlink_dir(source: Path, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    os.symlink(source.resolve(), destination, target_is_directory=True)


def _is_within(path: Path, boundary: Path) -> bool:
    try:
        path.relative_to(boundary)
    except ValueError:
        return False
    return True


def prune_empty_dirs(start: Path, boundary: Path, protected: Iterable[Path] = ()) -> List[Path]:
    """Delete ``start`` and its ancestors while they are empty.

    Stops at ``boundary``, at any ``protected`` directory, and at the first
    non-empty directory. None of those are ever deleted.
    """
    stop = {boundary.resolve(), *(p.resolve() for p in protected)}
    removed: List[Path] = []
    current = start.resolve()
    boundary = boundary.resolve()
    while current not in stop and _is_within(current, boundary):
        if current.is_dir() and not current.is_symlink():
            if any(current.iterdir()):
                break
            current.rmdir()
            removed.append(current)
        elif current.exists():
            break
        current = current.parent
    return removed


def delete_named_dirs(root: Path, name: str) -> List[Path]:
    """Recursively delete every directory called ``name`` below ``root``."""
    if not root.is_dir():
        return []
    matches = sorted(
        (path for path in root.rglob(name) if path.is_dir() and not path.is_symlink()),
        key=lambda item: len(item.parts),
    )
    removed: List[Path] = []
    for path in matches:
        if any(path.is_relative_to(parent) for parent in removed):
            continue
        shutil.rmtree(path)
        removed.append(path)
    return removed


__all__ = [
    "remove_path",
    "copy_tree_contents",
    "symlink_dir",
    "prune_empty_dirs",
    "delete_named_dirs",
]
