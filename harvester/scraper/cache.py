"""In-memory page cache shared by the fetcher and the artifact store.

Keys are the exact URL strings handed to the fetcher; no normalisation is
applied.  Entries have no individual TTL.  The whole cache is dropped once
``reset_interval`` seconds have passed since the last reset, which bounds
memory without a background timer: the check runs lazily on every access
against an injected clock.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class PageCache:
    """Key-value store of raw page bodies keyed by exact URL."""

    def __init__(
        self,
        reset_interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: dict[str, str] = {}
        self._reset_interval = reset_interval
        self._clock = clock
        self._last_reset = clock()

    def _maybe_reset(self) -> None:
        if self._reset_interval is None:
            return
        now = self._clock()
        if now - self._last_reset >= self._reset_interval:
            if self._entries:
                logger.info("Cleared page cache (%d entries)", len(self._entries))
            self._entries.clear()
            self._last_reset = now

    def get(self, url: str) -> str | None:
        self._maybe_reset()
        return self._entries.get(url)

    def put(self, url: str, body: str) -> None:
        self._maybe_reset()
        self._entries[url] = body

    def invalidate(self, url: str) -> None:
        """Drop the entry for *url*, if any."""
        self._entries.pop(url, None)

    def clear(self) -> None:
        self._entries.clear()
        self._last_reset = self._clock()

    def __contains__(self, url: object) -> bool:
        self._maybe_reset()
        return url in self._entries

    def __len__(self) -> int:
        self._maybe_reset()
        return len(self._entries)
