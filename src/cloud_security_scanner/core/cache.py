"""
Source cache shared by all checks during one scan

Every provider API response is stored once per (service, operation, scope)
key. Checks read the cache; only the engine populates it through ensure().
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .errors import FetchCancelled, FetchError, classify

logger = logging.getLogger(__name__)

GLOBAL_SCOPE = "global"


@dataclass(frozen=True)
class CacheKey:
    """Identifies one provider fetch"""
    service: str
    operation: str
    scope: str = GLOBAL_SCOPE

    def __str__(self) -> str:
        return f"{self.service}:{self.operation}:{self.scope}"


@dataclass(frozen=True)
class CacheEntry:
    """Outcome of one fetch: data or a classified error"""
    key: CacheKey
    data: Any = None
    error: Optional[FetchError] = None
    fetched: bool = True

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"error": self.error.to_dict()}
        return {"data": self.data}


class Fetcher(ABC):
    """Performs a single provider API call (list/get)"""

    provider: str = ""

    @abstractmethod
    def fetch(self, service: str, operation: str, scope: str,
              params: Optional[Dict[str, Any]] = None) -> Any:
        """Return the response data or raise a FetchError"""
        pass

    def metadata(self) -> Dict[str, Any]:
        """Account details for the report header"""
        return {}


FetchFn = Callable[[], Any]


class SourceCache:
    """Fetch-once store of provider responses for a single scan"""

    def __init__(self, fetcher: Optional[Fetcher] = None,
                 cancel_event: Optional[threading.Event] = None):
        self.fetcher = fetcher
        self.cancel_event = cancel_event or threading.Event()
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._key_locks: Dict[CacheKey, threading.Lock] = {}
        self._guard = threading.Lock()
        self._fetch_counts: Counter = Counter()

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        """Return the stored entry, or None if the key was never fetched"""
        return self._entries.get(key)

    def ensure(self, key: CacheKey, fetch_fn: Optional[FetchFn] = None,
               params: Optional[Dict[str, Any]] = None) -> CacheEntry:
        """Return the entry for key, fetching it first if needed.

        Callers racing on the same key wait on that key's lock and all get
        the one stored entry. Fetch failures are stored as error entries.
        """
        entry = self._entries.get(key)
        if entry is not None:
            return entry

        with self._guard:
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        with key_lock:
            entry = self._entries.get(key)
            if entry is not None:
                return entry

            if self.cancel_event.is_set():
                return CacheEntry(key=key, error=FetchCancelled(
                    "scan cancelled before fetch"), fetched=False)

            entry = self._fetch(key, fetch_fn, params)
            with self._guard:
                self._entries[key] = entry
            return entry

    def _fetch(self, key: CacheKey, fetch_fn: Optional[FetchFn],
               params: Optional[Dict[str, Any]]) -> CacheEntry:
        logger.debug(f"Cache miss for {key}, fetching")
        with self._guard:
            self._fetch_counts[key] += 1

        try:
            if fetch_fn is not None:
                data = fetch_fn()
            elif self.fetcher is not None:
                data = self.fetcher.fetch(key.service, key.operation,
                                          key.scope, dict(params or {}))
            else:
                raise FetchError(f"No fetcher available for {key}")
        except Exception as e:
            error = classify(e)
            logger.debug(f"Fetch for {key} failed: {error}")
            return CacheEntry(key=key, error=error)

        return CacheEntry(key=key, data=data)

    def fetch_count(self, key: CacheKey) -> int:
        return self._fetch_counts.get(key, 0)

    def fetch_counts(self) -> Dict[CacheKey, int]:
        with self._guard:
            return dict(self._fetch_counts)

    def snapshot(self) -> Dict[CacheKey, CacheEntry]:
        """Copy of every stored entry"""
        with self._guard:
            return dict(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
