"""Fetch a plugin into a project's plugin store.

``fetch_plugin`` is the entry point used by the CLI and the installer:
parse the reference, resolve it to a source directory, place that
directory under ``plugins_dir`` and check the result's identity.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from nativeplug.core.config import FetchOptions
from nativeplug.core.identity import verify_identity
from nativeplug.core.materializer import Materializer
from nativeplug.core.references import PluginReference, parse_reference
from nativeplug.core.resolver import SourceResolver
from nativeplug.utils.log import get_logger

logger = get_logger()


async def fetch_plugin(
    raw_reference: str,
    plugins_dir: Path,
    options: Optional[FetchOptions] = None,
    *,
    resolver: Optional[SourceResolver] = None,
    materializer: Optional[Materializer] = None,
    base_dir: Optional[Path] = None,
) -> Path:
    """Fetch ``raw_reference`` and return the materialized plugin directory."""
    plugins_dir.mkdir(parents=True, exist_ok=True)
    reference, effective = parse_reference(raw_reference, options, base_dir=base_dir)
    logger.debug(
        "[fetch] Resolving plugin reference",
        extra={"reference": raw_reference, "kind": type(reference).__name__},
    )
    return await fetch_reference(
        reference, plugins_dir, effective, resolver=resolver, materializer=materializer
    )


async def fetch_reference(
    reference: PluginReference,
    plugins_dir: Path,
    options: FetchOptions,
    *,
    resolver: Optional[SourceResolver] = None,
    materializer: Optional[Materializer] = None,
) -> Path:
    """Fetch an already parsed reference.

    Temporary git clones are removed whether or not the fetch succeeds.
    """
    plugins_dir.mkdir(parents=True, exist_ok=True)
    resolver = resolver or SourceResolver()
    materializer = materializer or Materializer()

    resolved = await resolver.resolve(reference, options)
    try:
        final_dir = await materializer.materialize(
            resolved.directory,
            plugins_dir,
            link=options.link and resolved.linkable,
            provenance=resolved.provenance,
        )
        verify_identity(options.expected_id, final_dir)
    finally:
        resolved.cleanup()

    logger.info("[fetch] Fetched plugin into %s", final_dir)
    return final_dir


__all__ = ["fetch_plugin", "fetch_reference"]
