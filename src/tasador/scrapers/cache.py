"""
Cache de resultados por scraper.

Cada entrada es un snapshot inmutable de una búsqueda; un put reemplaza
la entrada completa. La expiración se calcula al leer.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from tasador.models import ListingCandidate, SearchOptions


@dataclass(frozen=True)
class CacheEntry:
    """Snapshot de una búsqueda."""

    listings: tuple[ListingCandidate, ...]
    timestamp: float

    def age_seconds(self, now: float) -> float:
        return now - self.timestamp


class ResultCache:
    """
    Cache en memoria con TTL, segura para acceso concurrente.

    La clave es (fuente, query, opciones).
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def make_key(source: str, query: str, options: Optional[SearchOptions] = None) -> str:
        token = options.cache_token() if options else "{}"
        return f"{source}:{query}:{token}"

    def get(self, key: str) -> Optional[list[ListingCandidate]]:
        """Devuelve la entrada si existe y sigue vigente."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.age_seconds(self._clock()) >= self.ttl_seconds:
                del self._entries[key]
                return None
            return list(entry.listings)

    def put(self, key: str, listings: list[ListingCandidate]) -> None:
        entry = CacheEntry(listings=tuple(listings), timestamp=self._clock())
        with self._lock:
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
