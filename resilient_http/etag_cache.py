"""In-memory ETag cache for conditional requests"""

from collections import OrderedDict
from typing import Optional

from loguru import logger

from .config import ETAG_CACHE_MAX_ENTRIES
from .models import CacheEntry


class ETagCache:
    """
    Maps request URLs to the validator and body of their last 2xx response.

    Keys are the URL strings exactly as requested; no normalization is done,
    so ``/a?x=1&y=2`` and ``/a?y=2&x=1`` are different entries. When
    max_entries is set, the least recently used entry is evicted first.
    """

    def __init__(self, max_entries: Optional[int] = ETAG_CACHE_MAX_ENTRIES):
        """
        Initialize ETag cache.

        Args:
            max_entries: Maximum number of URLs kept, or None for no bound
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def get(self, url: str) -> Optional[CacheEntry]:
        entry = self._entries.get(url)
        if entry is not None:
            self._entries.move_to_end(url)
        return entry

    def put(
        self,
        url: str,
        etag: str,
        body: bytes,
        last_modified: Optional[str] = None,
    ) -> None:
        """Store (or overwrite) the entry for url. Empty ETags are ignored."""
        if not etag:
            return

        self._entries[url] = CacheEntry(
            etag=etag, body=bytes(body), last_modified=last_modified
        )
        self._entries.move_to_end(url)
        logger.debug(f"Cached {url} (etag={etag}, {len(body)} bytes)")

        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted {evicted} from ETag cache")

    def reconstruct(self, url: str) -> Optional[bytes]:
        """Cached body for url, used to answer a 304"""
        entry = self.get(url)
        return entry.body if entry is not None else None

    def invalidate(self, url: str) -> bool:
        return self._entries.pop(url, None) is not None

    def clear(self, pattern: Optional[str] = None) -> int:
        """
        Drop cached entries.

        Args:
            pattern: Only drop URLs containing this substring (all if None)

        Returns:
            Number of entries dropped
        """
        if pattern is None:
            dropped = len(self._entries)
            self._entries.clear()
            return dropped

        doomed = [url for url in self._entries if pattern in url]
        for url in doomed:
            del self._entries[url]
        return len(doomed)
