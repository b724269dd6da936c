"""In-memory TTL cache for generated summaries."""

from __future__ import annotations

import hashlib
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

DEFAULT_TTL_SECONDS = 3600.0
DEFAULT_MAX_ENTRIES = 50


def summary_cache_key(text: str, style: str) -> str:
    digest = hashlib.sha256()
    digest.update(style.encode("utf-8"))
    digest.update(b"\x00")
    digest.update(text.encode("utf-8"))
    return digest.hexdigest()


@dataclass(slots=True)
class SummaryCache:
    """
    Bounded cache of ``(summary, provider)`` pairs keyed by input hash.

    Entries expire ``ttl`` seconds after insertion. When the cache is full the
    oldest insertion is evicted.
    """

    ttl: float = DEFAULT_TTL_SECONDS
    max_entries: int = DEFAULT_MAX_ENTRIES
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    _entries: "OrderedDict[str, Tuple[float, str, str]]" = field(default_factory=OrderedDict, init=False, repr=False)

    def get(self, key: str) -> Optional[Tuple[str, str]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, summary, provider = entry
        if self.clock() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        return summary, provider

    def put(self, key: str, summary: str, provider: str) -> None:
        if key in self._entries:
            del self._entries[key]
        while self._entries and len(self._entries) >= self.max_entries:
            self._entries.popitem(last=False)
        self._entries[key] = (self.clock(), summary, provider)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
