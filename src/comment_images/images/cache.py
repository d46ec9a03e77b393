"""
Resolution cache.

Maps remote image URLs to the local files they were downloaded to.
"""

import threading
from pathlib import Path

from loguru import logger


class ResolutionCache:
    """Thread-safe URL to local path mapping for the life of the process.

    Entries never expire: remote images are assumed not to change for a given
    URL within one editing session. Nothing is persisted across restarts.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Path] = {}
        self._lock = threading.Lock()

    def get(self, url: str) -> Path | None:
        """Return the cached local path for ``url``, or None."""
        with self._lock:
            return self._entries.get(url)

    def put(self, url: str, local_path: Path | str) -> None:
        """Record that ``url`` is available at ``local_path``."""
        with self._lock:
            self._entries[url] = Path(local_path)
        logger.debug("Cached {} -> {}", url, local_path)

    def items(self) -> list[tuple[str, Path]]:
        """Return a snapshot of all entries."""
        with self._lock:
            return list(self._entries.items())

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
