"""Lazy-expiring cache of normalized responses.

Entries are keyed by ``<definition key>:<canonical params JSON>`` and hold
an absolute expiry in clock milliseconds. Nothing sweeps in the
background; an expired entry is evicted the next time it is read, or by
an explicit ``sweep()``.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, Optional

Clock = Callable[[], float]


def monotonic_ms() -> float:
    return time.monotonic() * 1000


def canonical_params(params: Optional[Mapping[str, Any]]) -> str:
    return json.dumps(params or {}, sort_keys=True, separators=(",", ":"), default=str)


@dataclass
class CacheEntry:
    data: Any
    expiry: float


class ResponseCache:
    def __init__(self, clock: Clock = monotonic_ms):
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @staticmethod
    def make_key(api_key: str, params: Optional[Mapping[str, Any]]) -> str:
        return f"{api_key}:{canonical_params(params)}"

    def get(self, cache_key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(cache_key)
        if entry is None:
            return None
        if entry.expiry > self.clock():
            return entry
        del self._entries[cache_key]
        return None

    def set(self, cache_key: str, data: Any, cache_time_ms: int) -> None:
        if cache_time_ms <= 0:
            return
        self._entries[cache_key] = CacheEntry(data=data, expiry=self.clock() + cache_time_ms)

    def purge(self, api_key: Optional[str] = None) -> int:
        """Drop every entry for ``api_key``, or everything when omitted."""
        if api_key is None:
            count = len(self._entries)
            self._entries.clear()
            return count
        prefix = f"{api_key}:"
        stale = [k for k in self._entries if k.startswith(prefix)]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def sweep(self) -> int:
        now = self.clock()
        expired = [k for k, entry in self._entries.items() if entry.expiry <= now]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def keys(self, api_key: Optional[str] = None) -> Iterator[str]:
        prefix = f"{api_key}:" if api_key is not None else ""
        return (k for k in list(self._entries) if k.startswith(prefix))

    def __len__(self) -> int:
        return len(self._entries)
