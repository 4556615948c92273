"""In-memory TTL cache for schema contexts, keyed by connection id."""

import logging
import threading
import time
from typing import Any, Optional

from .constants import SCHEMA_CACHE_SWEEP_MINUTES, SCHEMA_CACHE_TTL_MINUTES

logger = logging.getLogger(__name__)


class SchemaCache:
    """Thread-safe TTL cache with an owned background sweep.

    Create one per application (or per test) and pass it to
    ``get_schema_context``; ``start()`` launches the periodic sweep and
    ``stop()`` tears it down. Also usable as a context manager.
    """

    def __init__(
        self,
        ttl_minutes: float = SCHEMA_CACHE_TTL_MINUTES,
        sweep_minutes: float = SCHEMA_CACHE_SWEEP_MINUTES,
    ):
        self.ttl = ttl_minutes * 60
        self.sweep_interval = sweep_minutes * 60
        self._store: dict[str, tuple[float, float, Any]] = {}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        now = time.time()
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                logger.debug(f"Schema cache MISS for connection: {key}")
                return None

            _, expires_at, value = entry
            if now > expires_at:
                del self._store[key]
                logger.debug(f"Schema cache EXPIRED for connection: {key}")
                return None

        logger.debug(f"Schema cache HIT for connection: {key}")
        return value

    def set(self, key: str, value: Any) -> None:
        """Store value with the configured TTL."""
        now = time.time()
        with self._lock:
            self._store[key] = (now, now + self.ttl, value)
        logger.debug(f"Schema cache STORED for connection: {key} (expires in {self.ttl / 60:g} minutes)")

    def invalidate(self, key: str) -> bool:
        """Drop one entry; call when connection details change.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            removed = self._store.pop(key, None) is not None
        if removed:
            logger.info(f"Schema cache INVALIDATED for connection: {key}")
        return removed

    def clear(self) -> int:
        """Drop every entry and return how many there were."""
        with self._lock:
            size = len(self._store)
            self._store.clear()
        logger.info(f"Schema cache CLEARED {size} entries")
        return size

    def sweep(self) -> int:
        """Remove expired entries and return how many were removed."""
        now = time.time()
        with self._lock:
            expired = [key for key, (_, expires_at, _) in self._store.items() if now > expires_at]
            for key in expired:
                del self._store[key]
        if expired:
            logger.info(f"Schema cache cleaned up {len(expired)} expired entries")
        return len(expired)

    def stats(self) -> dict:
        now = time.time()
        with self._lock:
            entries = list(self._store.values())
        stored = [stored_at for stored_at, _, _ in entries]
        expired = sum(1 for _, expires_at, _ in entries if now > expires_at)
        return {
            "total_entries": len(entries),
            "valid_entries": len(entries) - expired,
            "expired_entries": expired,
            "oldest_entry": min(stored) if stored else None,
            "newest_entry": max(stored) if stored else None,
        }

    @property
    def running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def start(self) -> None:
        """Start the background sweep thread (no-op if already running)."""
        if self.running:
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(target=self._sweep_loop, name="schema-cache-sweep", daemon=True)
        self._sweeper.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the sweep thread and wait for it to exit."""
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout)
            self._sweeper = None

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.sweep_interval):
            self.sweep()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
