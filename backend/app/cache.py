"""
Text response cache for POST /text.

Entries are keyed by the normalized prompt together with the provider,
model and options that served it, so a pinned or re-resolved selection
never sees another provider's output. Least-recently-used entries go when
the cache is full; entries past their deadline count as misses.
"""

import json
import threading
import time
from collections import OrderedDict
from typing import Any, NamedTuple, Optional

from backend.app.models import TextResponse

DEFAULT_CAPACITY = 100
DEFAULT_TTL_SECONDS = 1800.0


class CacheKey(NamedTuple):
    prompt: str
    provider: str
    model: str
    options: str


class ResponseCache:
    """Thread-safe LRU + TTL cache of TextResponse objects."""

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
    ) -> None:
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        # key -> (deadline, response), oldest use first
        self._entries: OrderedDict[CacheKey, tuple[float, TextResponse]] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def make_key(
        prompt: str,
        provider: str,
        model: str,
        options: Optional[dict[str, Any]] = None,
    ) -> CacheKey:
        return CacheKey(
            prompt=" ".join(prompt.lower().split()),
            provider=provider,
            model=model,
            options=json.dumps(options or {}, sort_keys=True, default=str),
        )

    def get(self, key: CacheKey) -> Optional[TextResponse]:
        now = time.monotonic()
        with self._lock:
            found = self._entries.get(key)
            if found is not None and found[0] < now:
                del self._entries[key]
                found = None
            if found is None:
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return found[1]

    def put(self, key: CacheKey, response: TextResponse) -> None:
        deadline = time.monotonic() + self.ttl_seconds
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (deadline, response)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = self._misses = 0

    def stats(self) -> dict[str, Any]:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "size": len(self._entries),
                "capacity": self.capacity,
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate_percent": round(self._hits / lookups * 100, 2) if lookups else 0.0,
            }
