"""Check that a fetched plugin is the one that was asked for."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from nativeplug.core.descriptor import load_descriptor
from nativeplug.core.errors import IdentityMismatchError


def verify_identity(expected_id: Optional[str], directory: Path) -> None:
    """Compare ``expected_id`` (``id`` or ``id@version``) with the plugin at ``directory``.

    Versions are compared as exact strings. Does nothing when no id is expected.
    """
    if not expected_id:
        return
    descriptor = load_descriptor(directory)
    actual = descriptor.id
    if "@" in expected_id.lstrip("@"):
        actual = descriptor.spec
    if expected_id != actual:
        raise IdentityMismatchError(expected_id, actual)


__all__ = ["verify_identity"]
