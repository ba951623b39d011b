"""
Local cache store for the region directory pipeline.
Persists timestamped JSON envelopes in a key/value backend.
"""

import json
import logging
import sqlite3
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger('nms_glyphs.cache')

# Cache keys
FINAL_CACHE_KEY = 'nmsCivilizationsData'
PARTIAL_CACHE_KEY = 'nmsCivilizationsPartial'
OFFSET_CACHE_KEY = 'nmsCivilizationsOffset'


class MemoryKeyValueStore:
    """In-process key/value store (used by the snapshot builder and tests)."""

    def __init__(self):
        self._items: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set(self, key: str, value: str):
        with self._lock:
            self._items[key] = value

    def delete(self, key: str):
        with self._lock:
            self._items.pop(key, None)

    def keys(self) -> list:
        with self._lock:
            return list(self._items)


class SqliteKeyValueStore:
    """Key/value store backed by a local SQLite file."""

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize the store.

        Args:
            db_path: Path to the database file (default: data/cache.db)
        """
        if db_path is None:
            db_path = Path(__file__).resolve().parent.parent / 'data' / 'cache.db'

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_db()

    def _init_db(self):
        """Initialize database tables."""
        with self._get_connection() as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS kv_cache (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            ''')
            conn.commit()
            logger.debug(f"Cache database initialized at {self.db_path}")

    @contextmanager
    def _get_connection(self):
        """Get a database connection with context manager."""
        conn = sqlite3.connect(str(self.db_path))
        try:
            yield conn
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        with self._get_connection() as conn:
            row = conn.execute('SELECT value FROM kv_cache WHERE key = ?', (key,)).fetchone()
            return row[0] if row else None

    def set(self, key: str, value: str):
        with self._get_connection() as conn:
            conn.execute('''
                INSERT INTO kv_cache (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
            ''', (key, value))
            conn.commit()

    def delete(self, key: str):
        with self._get_connection() as conn:
            conn.execute('DELETE FROM kv_cache WHERE key = ?', (key,))
            conn.commit()

    def keys(self) -> list:
        with self._get_connection() as conn:
            return [row[0] for row in conn.execute('SELECT key FROM kv_cache ORDER BY key')]


@dataclass
class CacheEnvelope:
    """A cached value and the time (epoch milliseconds) it was captured."""
    payload: Any
    timestamp: int


class CacheStore:
    """
    Envelope layer over a key/value store.

    Directory caches are stored as {"data": ..., "timestamp": ...} and the
    resumption offset as {"offset": ..., "timestamp": ...}. Unreadable or
    expired envelopes are treated as a miss and removed.
    """

    def __init__(self, store=None, ttl_seconds: Optional[float] = None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize the cache.

        Args:
            store: Key/value backend (default: MemoryKeyValueStore)
            ttl_seconds: Envelope lifetime, None to never expire
            clock: Wall clock in seconds
        """
        self.store = store if store is not None else MemoryKeyValueStore()
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _read_envelope(self, key: str, field: str) -> Optional[CacheEnvelope]:
        raw = self.store.get(key)
        if raw is None:
            return None

        try:
            envelope = json.loads(raw)
            payload = envelope[field]
            timestamp = int(envelope['timestamp'])
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Discarding corrupt cache entry {key}: {e}")
            self.store.delete(key)
            return None

        if self.ttl_seconds is not None:
            age = self._now_ms() - timestamp
            if age > self.ttl_seconds * 1000:
                logger.info(f"Cache entry {key} expired ({age // 1000}s old)")
                self.store.delete(key)
                return None

        return CacheEnvelope(payload=payload, timestamp=timestamp)

    def _write_envelope(self, key: str, field: str, payload: Any):
        envelope = {field: payload, 'timestamp': self._now_ms()}
        self.store.set(key, json.dumps(envelope))

    def get_envelope(self, key: str) -> Optional[CacheEnvelope]:
        """Return the data envelope stored under ``key``, if any."""
        return self._read_envelope(key, 'data')

    def read(self, key: str) -> Any:
        """Return the cached payload for ``key`` or None on a miss."""
        envelope = self._read_envelope(key, 'data')
        return envelope.payload if envelope else None

    def write(self, key: str, payload: Any):
        self._write_envelope(key, 'data', payload)

    def read_offset(self, key: str = OFFSET_CACHE_KEY) -> Optional[int]:
        """Return the stored resumption offset or None."""
        envelope = self._read_envelope(key, 'offset')
        if envelope is None:
            return None
        try:
            return int(envelope.payload)
        except (TypeError, ValueError):
            logger.warning(f"Discarding non-numeric offset in {key}")
            self.store.delete(key)
            return None

    def write_offset(self, offset: int, key: str = OFFSET_CACHE_KEY):
        self._write_envelope(key, 'offset', int(offset))

    def remove(self, *keys: str):
        for key in keys:
            self.store.delete(key)

    def clear_progress(self):
        """Drop the partial crawl state."""
        self.remove(PARTIAL_CACHE_KEY, OFFSET_CACHE_KEY)
