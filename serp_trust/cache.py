"""Score cache with lazy TTL expiry."""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from serp_trust.config import DEFAULT_CACHE_TTL_SECONDS, CacheConfig
from serp_trust.models import CacheEntry, ScoreResult

logger = logging.getLogger(__name__)

CACHE_PREFIX = "cc_score_"
CACHE_SCHEMA_VERSION = 1


class Cache(ABC):
    """Key/value store mapping a subject URL to its last computed score.

    Entries expire lazily: ``get`` treats an entry at least ``ttl`` seconds
    old as absent but never removes it. ``put`` always overwrites, and a
    failed write is logged rather than raised.

    Parameters
    ----------
    ttl : float
        Entry lifetime in seconds.
    clock : Callable[[], float]
        Returns the current time in seconds since the epoch.
    """

    def __init__(
        self,
        *,
        ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl = ttl
        self._clock = clock

    @property
    def ttl(self) -> float:
        return self._ttl

    async def get(self, key: str) -> ScoreResult | None:
        """Return the cached result for *key*, or ``None`` if absent or stale.

        Parameters
        ----------
        key : str
            Subject URL.

        Returns
        -------
        ScoreResult | None
            Result with ``from_cache=True``, or ``None``.
        """
        entry = await self._read(CACHE_PREFIX + key)
        if entry is None:
            logger.debug("Cache miss %s", key)
            return None
        if entry.schema_version != CACHE_SCHEMA_VERSION:
            logger.debug("Ignoring cache entry for %s with schema v%s", key, entry.schema_version)
            return None
        if not entry.is_fresh(self._clock(), self._ttl):
            logger.debug("Cache expired %s", key)
            return None
        logger.info("Cache hit %s", key)
        return entry.to_result()

    async def put(self, key: str, result: ScoreResult) -> None:
        """Store the score and summary of *result* under *key*.

        Parameters
        ----------
        key : str
            Subject URL.
        result : ScoreResult
            Freshly computed result.
        """
        entry = CacheEntry(
            key=key,
            score=result.score,
            summary=result.summary,
            timestamp=self._clock(),
            schema_version=CACHE_SCHEMA_VERSION,
        )
        try:
            await self._write(CACHE_PREFIX + key, entry)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Caching failed for %s: %s", key, exc)
            return
        logger.info("Result saved in cache: %s", key)

    @abstractmethod
    async def _read(self, storage_key: str) -> CacheEntry | None:
        """Return the raw entry stored under *storage_key*, fresh or not."""

    @abstractmethod
    async def _write(self, storage_key: str, entry: CacheEntry) -> None:
        """Persist *entry* under *storage_key*, replacing any previous one."""


class MemoryCache(Cache):
    """Process-lifetime in-memory cache."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._entries: dict[str, CacheEntry] = {}

    async def _read(self, storage_key: str) -> CacheEntry | None:
        return self._entries.get(storage_key)

    async def _write(self, storage_key: str, entry: CacheEntry) -> None:
        self._entries[storage_key] = entry

    def __len__(self) -> int:
        return len(self._entries)


class JsonFileCache(Cache):
    """File-backed cache storing one JSON document per key.

    Parameters
    ----------
    directory : str | Path
        Directory holding the cache files. Created on first write.
    **kwargs
        Forwarded to :class:`Cache` (``ttl``, ``clock``).
    """

    def __init__(self, directory: str | Path, **kwargs) -> None:
        super().__init__(**kwargs)
        self.directory = Path(directory)
        self._lock = asyncio.Lock()

    def _path(self, storage_key: str) -> Path:
        name = hashlib.sha256(storage_key.encode()).hexdigest()
        return self.directory / f"{name}.json"

    async def _read(self, storage_key: str) -> CacheEntry | None:
        async with self._lock:
            return await asyncio.to_thread(self._read_file, self._path(storage_key))

    async def _write(self, storage_key: str, entry: CacheEntry) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write_file, self._path(storage_key), entry)

    @staticmethod
    def _read_file(path: Path) -> CacheEntry | None:
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
            return CacheEntry(
                key=data["key"],
                score=int(data["data"]["score"]),
                summary=str(data["data"]["summary"]),
                timestamp=float(data["timestamp"]),
                schema_version=int(data.get("schema_version", 0)),
            )
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Unreadable cache file %s: %s", path, exc)
            return None

    def _write_file(self, path: Path, entry: CacheEntry) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        data = {
            "schema_version": entry.schema_version,
            "key": entry.key,
            "data": {"score": entry.score, "summary": entry.summary},
            "timestamp": entry.timestamp,
        }
        with path.open("w", encoding="utf-8") as fh:
            json.dump(data, fh)


def create_cache(config: CacheConfig) -> Cache:
    """Build the cache described by *config*.

    Parameters
    ----------
    config : CacheConfig
        Cache settings.

    Returns
    -------
    Cache
    """
    if config.type == "file":
        return JsonFileCache(config.directory, ttl=config.ttl_seconds)
    return MemoryCache(ttl=config.ttl_seconds)
