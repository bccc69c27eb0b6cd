import asyncio
import fnmatch
import json
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class CacheError(Exception):
    """Raised when the cache backend cannot serve or store a value."""


class CacheBackend:
    """
    In-process key/TTL store with the same surface as an external cache.

    Values are stored JSON-encoded, so whatever goes in must be JSON
    serializable and comes back as plain dicts/lists/strings.
    """

    def __init__(self):
        self._entries: Dict[str, Tuple[float, str, Optional[int]]] = {}
        self._lock = asyncio.Lock()

    def _expired(self, entry: Tuple[float, str, Optional[int]]) -> bool:
        ts, _, ttl = entry
        return ttl is not None and time.time() - ts > ttl

    async def get(self, key: str) -> Any:
        async with self._lock:
            entry = self._entries.get(key)
            if not entry:
                return None
            if self._expired(entry):
                del self._entries[key]
                return None
            raw = entry[1]
        try:
            return json.loads(raw)
        except ValueError as e:
            raise CacheError(f"Corrupt cache entry for {key}: {e}") from e

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            raw = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise CacheError(f"Value for {key} is not JSON serializable: {e}") from e
        async with self._lock:
            self._entries[key] = (time.time(), raw, ttl)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def keys(self, pattern: str = "*") -> List[str]:
        """Return live keys matching a glob pattern, e.g. ``jobs:*``."""
        async with self._lock:
            for key in [k for k, entry in self._entries.items() if self._expired(entry)]:
                del self._entries[key]
            return [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]

    async def flush_by_pattern(self, pattern: str) -> int:
        keys = await self.keys(pattern)
        for key in keys:
            await self.delete(key)
        if keys:
            logger.info("Cleared %d keys matching pattern: %s", len(keys), pattern)
        return len(keys)
