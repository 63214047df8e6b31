"""Analysis cache keyed by content hash.

:class:`AnalysisCache` stores each :class:`PoemAnalysis` as a JSON
``{hash, timestamp, analysis}`` record under ``prefix + hash`` in a
:class:`CacheStore`. Expired or unreadable records are treated as misses and
deleted when they are read or swept.
"""

from __future__ import annotations

import json
import os
import sqlite3
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Generator, Iterable, List, Optional, Protocol

from ghost_note.core.models import CachedAnalysisEntry, PoemAnalysis
from ghost_note.utils.observability import StructuredLoggerAdapter, get_logger

DEFAULT_PREFIX = "ghost-note-analysis-"
DEFAULT_TTL_SECONDS = 24 * 60 * 60
# A stored analysis without these sections is treated as corrupt.
REQUIRED_ANALYSIS_KEYS = frozenset({"meta", "prosody"})


class CacheError(Exception):
    """Raised by cache stores when the backing medium fails."""


class CacheWriteError(CacheError):
    """Raised when a value cannot be persisted (full store, I/O failure)."""


class CacheStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...

    def enumerate_keys(self, prefix: str) -> Iterable[str]:
        ...


class MemoryCacheStore:
    """In-process store; ``max_entries`` emulates a storage quota."""

    def __init__(self, *, max_entries: Optional[int] = None) -> None:
        self._values: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._max_entries = max_entries

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            if (
                self._max_entries is not None
                and key not in self._values
                and len(self._values) >= self._max_entries
            ):
                raise CacheWriteError(f"Cache quota of {self._max_entries} entries exceeded")
            self._values[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def enumerate_keys(self, prefix: str) -> List[str]:
        with self._lock:
            return [key for key in self._values if key.startswith(prefix)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


class NullCacheStore:
    """Store that keeps nothing; every read is a miss."""

    def get(self, key: str) -> Optional[str]:
        return None

    def set(self, key: str, value: str) -> None:
        return None

    def remove(self, key: str) -> None:
        return None

    def enumerate_keys(self, prefix: str) -> List[str]:
        return []


def _ensure_parent_directory(path: str) -> None:
    directory = os.path.dirname(os.path.abspath(path))
    if directory and not os.path.exists(directory):
        os.makedirs(directory, exist_ok=True)


class SQLiteCacheStore:
    """File-backed store holding one ``key -> value`` table."""

    def __init__(self, db_path: str, *, table: str = "analysis_cache") -> None:
        if not table.isidentifier():
            raise ValueError(f"Invalid cache table name: {table!r}")
        self.db_path = db_path
        self.table = table
        self._logger = get_logger(__name__).bind(component="sqlite_cache", db_path=db_path)
        _ensure_parent_directory(db_path)
        with self._connect() as connection:
            connection.execute(
                f"CREATE TABLE IF NOT EXISTS {self.table} "
                "(key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )
        self._logger.info("SQLite cache store initialised", context={"table": table})

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            connection = sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise CacheError(f"Cannot open cache database: {exc}") from exc
        try:
            yield connection
            if connection.in_transaction:
                connection.commit()
        except Exception as exc:
            if connection.in_transaction:
                connection.rollback()
            self._logger.error("SQLite cache operation failed", context={"error": str(exc)})
            raise
        finally:
            connection.close()

    def get(self, key: str) -> Optional[str]:
        try:
            with self._connect() as connection:
                row = connection.execute(
                    f"SELECT value FROM {self.table} WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise CacheError(str(exc)) from exc
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            with self._connect() as connection:
                connection.execute(
                    f"INSERT OR REPLACE INTO {self.table} (key, value) VALUES (?, ?)",
                    (key, value),
                )
        except sqlite3.Error as exc:
            raise CacheWriteError(str(exc)) from exc

    def remove(self, key: str) -> None:
        try:
            with self._connect() as connection:
                connection.execute(f"DELETE FROM {self.table} WHERE key = ?", (key,))
        except sqlite3.Error as exc:
            raise CacheWriteError(str(exc)) from exc

    def enumerate_keys(self, prefix: str) -> List[str]:
        try:
            with self._connect() as connection:
                rows = connection.execute(f"SELECT key FROM {self.table}").fetchall()
        except sqlite3.Error as exc:
            raise CacheError(str(exc)) from exc
        # filtered in Python so LIKE wildcards in the prefix stay literal
        return [row[0] for row in rows if row[0].startswith(prefix)]


class AnalysisCache:
    """TTL-bound cache of analyses in front of a :class:`CacheStore`.

    ``get`` and ``set`` never raise: store failures are logged and turn into
    misses or skipped writes. Timestamps are milliseconds since the epoch.
    """

    def __init__(
        self,
        store: Optional[CacheStore] = None,
        *,
        prefix: str = DEFAULT_PREFIX,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Optional[Callable[[], float]] = None,
        logger: Optional[StructuredLoggerAdapter] = None,
    ) -> None:
        self.store: CacheStore = store if store is not None else MemoryCacheStore()
        self.prefix = prefix
        self.ttl = float(ttl)
        self._clock = clock or time.time
        self._logger = logger or get_logger(__name__).bind(component="analysis_cache")

    def key_for(self, content_hash: str) -> str:
        return f"{self.prefix}{content_hash}"

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def _expired(self, entry: CachedAnalysisEntry, ttl: float) -> bool:
        return self._now_ms() - entry.timestamp > ttl * 1000.0

    def _discard(self, key: str) -> None:
        try:
            self.store.remove(key)
        except CacheError as exc:
            self._logger.warning("Cache entry removal failed", context={"key": key, "error": str(exc)})

    @staticmethod
    def _parse(raw: str, content_hash: str) -> CachedAnalysisEntry:
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise ValueError("Cache entry is not an object")
        if payload.get("hash") != content_hash:
            raise ValueError("Cache entry belongs to another text")
        timestamp = payload.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise ValueError("Cache entry has no numeric timestamp")
        analysis = payload.get("analysis")
        if not isinstance(analysis, dict) or not REQUIRED_ANALYSIS_KEYS.issubset(analysis):
            raise ValueError("Cache entry has no analysis payload")
        return CachedAnalysisEntry.from_dict(payload)

    def _hash_of(self, key: str) -> str:
        return key[len(self.prefix):]

    def get(self, content_hash: str, ttl: Optional[float] = None) -> Optional[PoemAnalysis]:
        """Cached analysis for ``content_hash`` or ``None`` on a miss."""

        key = self.key_for(content_hash)
        try:
            raw = self.store.get(key)
        except CacheError as exc:
            self._logger.warning("Cache read failed", context={"key": key, "error": str(exc)})
            return None
        if raw is None:
            return None

        try:
            entry = self._parse(raw, content_hash)
            expired = self._expired(entry, self.ttl if ttl is None else ttl)
        except (TypeError, ValueError, KeyError, AttributeError) as exc:
            self._logger.warning("Discarding unreadable cache entry", context={"key": key, "error": str(exc)})
            self._discard(key)
            return None

        if expired:
            self._logger.info("Discarding expired cache entry", context={"key": key})
            self._discard(key)
            return None
        return entry.analysis

    def set(self, content_hash: str, analysis: PoemAnalysis) -> bool:
        """Store ``analysis``; returns ``False`` when the write was skipped.

        A failed write sweeps expired entries so a later write has room.
        """

        key = self.key_for(content_hash)
        entry = CachedAnalysisEntry(hash=content_hash, timestamp=self._now_ms(), analysis=analysis)
        try:
            self.store.set(key, json.dumps(entry.to_dict()))
        except CacheError as exc:
            self._logger.warning("Cache write failed", context={"key": key, "error": str(exc)})
            self.clear_expired()
            return False
        return True

    def clear_expired(self, ttl: Optional[float] = None) -> int:
        """Remove expired or unreadable entries; returns how many went."""

        limit = self.ttl if ttl is None else ttl
        try:
            keys = list(self.store.enumerate_keys(self.prefix))
        except CacheError as exc:
            self._logger.warning("Cache sweep failed", context={"error": str(exc)})
            return 0

        removed = 0
        for key in keys:
            try:
                raw = self.store.get(key)
                if raw is None:
                    continue
                expired = self._expired(self._parse(raw, self._hash_of(key)), limit)
            except CacheError:
                continue
            except (TypeError, ValueError, KeyError, AttributeError):
                expired = True
            if expired:
                self._discard(key)
                removed += 1

        if removed:
            self._logger.info("Expired cache entries removed", context={"removed": removed})
        return removed

    def clear(self) -> int:
        """Remove every entry under this cache's prefix."""

        try:
            keys = list(self.store.enumerate_keys(self.prefix))
        except CacheError as exc:
            self._logger.warning("Cache clear failed", context={"error": str(exc)})
            return 0
        for key in keys:
            self._discard(key)
        return len(keys)


def create_store(cache_path: Optional[str]) -> CacheStore:
    """SQLite store for ``cache_path``, or a memory store when it is unset."""

    if cache_path:
        return SQLiteCacheStore(cache_path)
    return MemoryCacheStore()


__all__ = [
    "DEFAULT_PREFIX",
    "DEFAULT_TTL_SECONDS",
    "AnalysisCache",
    "CacheError",
    "CacheStore",
    "CacheWriteError",
    "MemoryCacheStore",
    "NullCacheStore",
    "SQLiteCacheStore",
    "create_store",
]
