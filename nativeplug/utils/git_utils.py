"""Git utilities for fetching plugins."""

import subprocess
from pathlib import Path
from typing import List, Optional

from nativeplug.core.errors import GitError, NotFoundError
from nativeplug.utils.log import get_logger

logger = get_logger()


def _run_git(args: List[str], cwd: Optional[Path] = None) -> str:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as exc:
        raise GitError("git command not found. Please install git.") from exc
    if result.returncode != 0:
        detail = (result.stderr or result.stdout).strip()
        raise GitError(f"git {args[0]} failed: {detail}")
    return result.stdout


def clone_and_checkout(
    url: str,
    destination_root: Path,
    ref: Optional[str] = None,
    subdir: str = ".",
) -> Path:
    """Clone ``url`` below ``destination_root`` and return the plugin directory.

    A full clone is made so that ``ref`` may name a branch, tag or commit.
    """
    repo_dir = destination_root / "repo"
    destination_root.mkdir(parents=True, exist_ok=True)
    logger.debug("[git] Cloning %s into %s", url, repo_dir)
    _run_git(["clone", url, str(repo_dir)])
    if ref:
        logger.debug("[git] Checking out %s", ref)
        _run_git(["checkout", ref], cwd=repo_dir)

    plugin_dir = (repo_dir / subdir).resolve() if subdir and subdir != "." else repo_dir
    if not plugin_dir.is_dir():
        raise NotFoundError(f"Plugin subdirectory not found in {url}: {subdir}")
    return plugin_dir


__all__ = ["clone_and_checkout"]
