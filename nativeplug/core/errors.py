"""Exception types raised by nativeplug."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class NativeplugError(RuntimeError):
    """Base class for all nativeplug failures."""


class UnsupportedOperationError(NativeplugError):
    """Raised when an option cannot be combined with the requested source kind."""


class NotFoundError(NativeplugError):
    """Raised when a plugin reference resolves to nothing."""


class InvalidReferenceError(NativeplugError, ValueError):
    """Raised when a plugin reference string cannot be parsed."""


class NetworkError(NativeplugError):
    """Raised for registry transport failures."""


class GitError(NativeplugError):
    """Raised when a git command fails."""


class DescriptorError(NativeplugError):
    """Raised when a plugin.xml is missing or malformed."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        super().__init__(message)


class IdentityMismatchError(NativeplugError):
    """Raised when a fetched plugin does not carry the expected id/version."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f'Expected fetched plugin to have ID "{expected}" but got "{actual}".'
        )


class DocumentPatchError(NativeplugError):
    """Raised when a structured-document edit cannot find its target."""

    def __init__(self, message: str, document: Optional[Path] = None):
        self.document = document
        super().__init__(message)


class PlatformError(NativeplugError):
    """Raised for unknown platforms or directories that are not platform projects."""


__all__ = [
    "NativeplugError",
    "UnsupportedOperationError",
    "NotFoundError",
    "InvalidReferenceError",
    "NetworkError",
    "GitError",
    "DescriptorError",
    "IdentityMismatchError",
    "DocumentPatchError",
    "PlatformError",
]
