"""Time-bounded key/value cache persisted to a json file.

Every mutation is written through to disk. There is no capacity bound.
"""

import json
import logging
from pathlib import Path
import time
from typing import Any, Callable, Self

from ajolt import in_thread
import config
from domain.models import CacheEntry


logger = logging.getLogger(__name__)


def read_entries(path: Path) -> dict[str, CacheEntry]:
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"Expected a json object in {path}.")
    return {key: CacheEntry.from_dict(entry) for key, entry in raw.items()}


def write_entries(path: Path, entries: dict[str, CacheEntry]) -> None:
    data = {key: entry.to_dict() for key, entry in entries.items()}
    tmp_path = path.with_name(f"{path.name}.tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(data, f)
    tmp_path.replace(path)


class CacheStore:
    def __init__(
        self,
        path: Path,
        *,
        default_ttl: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = path
        self.default_ttl = default_ttl
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @classmethod
    def from_config(cls, cfg: config.Config) -> Self:
        return cls(cfg.cache_path, default_ttl=cfg.cache_ttl)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    async def init(self) -> None:
        """Load persisted entries. A missing or unreadable file means empty."""
        if not self.path.exists():
            logger.info("No cache at %s, starting empty.", self.path)
            self._entries = {}
            return

        try:
            self._entries = await in_thread(read_entries, self.path)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Could not load cache %s, starting empty: %r", self.path, e)
            self._entries = {}
        else:
            logger.info("Loaded %d cache entries from %s.", len(self), self.path)

    def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def is_fresh(self, entry: CacheEntry) -> bool:
        return not entry.expired(self.clock())

    async def put(self, key: str, value: Any, ttl: float | None = None) -> CacheEntry:
        # Round trip through json so in-memory values match what a reload gives.
        value = json.loads(json.dumps(value))
        entry = CacheEntry(
            key=key,
            value=value,
            stored_at=self.clock(),
            ttl=self.default_ttl if ttl is None else ttl,
        )
        self._entries[key] = entry
        await self._persist()
        return entry

    async def evict_expired(self) -> int:
        now = self.clock()
        expired = [k for k, entry in self._entries.items() if entry.expired(now)]
        for key in expired:
            del self._entries[key]
        await self._persist()
        logger.info("Evicted %d expired cache entries.", len(expired))
        return len(expired)

    async def _persist(self) -> None:
        """Write every entry to disk. On failure keep serving from memory."""
        try:
            await in_thread(write_entries, self.path, dict(self._entries))
        except OSError as e:
            logger.error("Could not write cache %s: %r", self.path, e)

