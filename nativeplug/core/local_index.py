"""Index of plugins available on the local search path.

The index is built at most once. Calling :meth:`LocalPluginIndex.build`
again, even with a different search path, leaves the existing entries in
place: an index built before the search path changed is stale for the
rest of its lifetime. Create a new index object when the search path
changes.

The index is not synchronized. Callers that install plugins concurrently
must build it before starting the parallel work.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional

from nativeplug.core.descriptor import PluginDescriptor, load_plugins_dir
from nativeplug.utils.log import get_logger

logger = get_logger()


class LocalPluginIndex:
    """Maps plugin ids to descriptors found beneath search-path directories."""

    def __init__(self) -> None:
        self._plugins: Optional[Dict[str, PluginDescriptor]] = None
        self._search_path: List[Path] = []

    @property
    def is_built(self) -> bool:
        return self._plugins is not None

    @property
    def search_path(self) -> List[Path]:
        """The search path the index was built from."""
        return list(self._search_path)

    def build(self, search_path: Iterable[Path]) -> bool:
        """Scan ``search_path`` in order. Returns False if already built."""
        requested = [Path(item) for item in search_path]
        if self._plugins is not None:
            if requested != self._search_path:
                logger.debug(
                    "[index] Already built; ignoring new search path",
                    extra={
                        "built_from": [str(p) for p in self._search_path],
                        "requested": [str(p) for p in requested],
                    },
                )
            return False

        plugins: Dict[str, PluginDescriptor] = {}
        for directory in requested:
            for descriptor in load_plugins_dir(directory):
                previous = plugins.get(descriptor.id)
                if previous is not None:
                    logger.debug(
                        "[index] %s in %s overrides %s",
                        descriptor.id,
                        descriptor.directory,
                        previous.directory,
                    )
                plugins[descriptor.id] = descriptor
        self._plugins = plugins
        self._search_path = requested
        logger.debug("[index] Indexed %d local plugin(s)", len(plugins))
        return True

    def resolve(
        self, identifier: str, search_path: Optional[Iterable[Path]] = None
    ) -> Optional[PluginDescriptor]:
        """Look up ``identifier``, building the index from ``search_path`` on first use."""
        if self._plugins is None:
            self.build(search_path or [])
        assert self._plugins is not None
        return self._plugins.get(identifier)

    def __contains__(self, identifier: object) -> bool:
        return self._plugins is not None and identifier in self._plugins

    def __len__(self) -> int:
        return len(self._plugins or {})


__all__ = ["LocalPluginIndex"]
