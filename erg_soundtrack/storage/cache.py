"""Durable catalog cache: album lookups keyed by collection id or search text.

The whole store lives in one JSON file, read once by ``load()`` and rewritten
after every successful ``put``. Entries older than the TTL, and entries whose
value is missing (a failed resolution), are never returned.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from ..config import CACHE_TTL_MS
from ..errors import CacheIOError
from ..models.types import CacheEntry, CatalogAlbum

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def cache_key(artist: str, album: str, collection_id: Optional[int] = None) -> str:
    """``id:<n>`` when a collection id is known, else ``search:<artist>:<album>`` lower-cased."""
    if collection_id:
        return f"id:{collection_id}"
    return f"search:{artist.lower()}:{album.lower()}"


class CatalogCache:
    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        ttl_ms: int = CACHE_TTL_MS,
        clock: Callable[[], int] = _now_ms,
    ):
        # path=None keeps the cache in memory only
        self.path = Path(path) if path is not None else None
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def load(self) -> "CatalogCache":
        """Read the store from disk. A missing or unreadable file leaves the cache empty."""
        self._entries = {}
        if self.path is None or not self.path.exists():
            return self
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ValueError("cache root is not an object")
            for key, value in raw.items():
                self._entries[key] = CacheEntry.from_dict(key, value)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Could not load catalog cache {self.path}, starting fresh: {e}")
            self._entries = {}
            return self
        logger.info(f"Loaded catalog cache: {len(self._entries)} entries")
        return self

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return (self._clock() - entry.timestamp_ms) < self.ttl_ms

    def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None or entry.is_absent or not self._is_fresh(entry):
            return None
        return entry

    def put(self, key: str, album: Optional[CatalogAlbum]) -> None:
        """Store a resolved album and flush. Failed resolutions (None) are not stored."""
        if album is None:
            logger.debug(f"Not caching failed resolution for {key}")
            return
        self._entries[key] = CacheEntry(key=key, timestamp_ms=self._clock(), value=album)
        self.flush()

    def purge_expired(self) -> int:
        stale = [k for k, e in self._entries.items() if e.is_absent or not self._is_fresh(e)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def flush(self) -> None:
        """Rewrite the whole store. Write failures are logged, never raised."""
        if self.path is None:
            return
        try:
            self._write()
        except CacheIOError as e:
            logger.warning(f"Could not save catalog cache: {e}")

    def _write(self) -> None:
        payload = {key: entry.to_dict() for key, entry in self._entries.items()}
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".cache-", suffix=".json", dir=str(self.path.parent))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise CacheIOError(f"{self.path}: {e}") from e
