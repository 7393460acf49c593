"""
Cache dei risultati di ricerca con TTL e capacità limitata.

Thread-safe: le ricerche concorrenti di un'esecuzione (e di esecuzioni
diverse) condividono la stessa istanza.
"""
from collections import OrderedDict
from threading import Lock
from time import monotonic
from typing import Callable, Dict, List, Optional
import logging

from core.models import CacheEntry, SearchResult

logger = logging.getLogger(__name__)


class SearchCache:
    """
    Store query -> risultati con scadenza e capacità massima.

    La scadenza viene verificata in lettura (nessuno sweep in background):
    una voce scaduta è trattata come assente e rimossa al primo accesso.

    In overflow viene eliminata la voce inserita per prima. È eviction
    FIFO, non LRU: una lettura non rinnova la posizione della voce.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_entries: int = 1000,
        clock: Callable[[], float] = monotonic,
    ):
        """
        Inizializza la cache.

        Args:
            ttl_seconds: Durata di validità delle voci
            max_entries: Numero massimo di voci
            clock: Sorgente del tempo (sostituibile nei test)
        """
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.ttl = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[List[SearchResult]]:
        """
        Restituisce i risultati in cache se presenti e non scaduti.

        Args:
            key: Chiave della query

        Returns:
            Lista di risultati o None
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if not entry.is_valid(self._clock()):
                del self._entries[key]
                self._misses += 1
                logger.debug(f"Cache entry expired: {key}")
                return None
            self._hits += 1
            return list(entry.results)

    def put(self, key: str, results: List[SearchResult]) -> None:
        """
        Salva i risultati con stored_at = adesso.

        Args:
            key: Chiave della query
            results: Risultati da salvare
        """
        with self._lock:
            # Una riscrittura conta come nuovo inserimento
            self._entries.pop(key, None)
            while len(self._entries) >= self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Cache full, evicted oldest entry: {evicted}")
            self._entries[key] = CacheEntry(
                key=key,
                results=list(results),
                stored_at=self._clock(),
                ttl=self.ttl,
            )

    def clear(self) -> None:
        """Svuota la cache e azzera le statistiche."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> Dict[str, float]:
        """Statistiche di hit/miss dall'ultima clear()."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate_pct": (self._hits / lookups * 100) if lookups else 0.0,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Singleton instance
_search_cache: Optional[SearchCache] = None


def get_search_cache(ttl_seconds: float = 300, max_entries: int = 1000) -> SearchCache:
    """
    Restituisce l'istanza singleton della cache.

    I parametri sono usati solo alla prima creazione.

    Returns:
        SearchCache singleton
    """
    global _search_cache
    if _search_cache is None:
        _search_cache = SearchCache(ttl_seconds=ttl_seconds, max_entries=max_entries)
    return _search_cache
