"""In-memory lookup caches for TaxonStore.

Each cache distinguishes "computed, and the answer is None/empty" from "not
computed yet", so negative lookups are memoized too. Keys are typed tuples
rather than concatenated strings.
"""

from dataclasses import dataclass
from typing import Dict, Generic, Hashable, NamedTuple, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class NameKey(NamedTuple):
    """Cache key for a scientific-name lookup (trimmed, case preserved)."""
    name: str


class ComponentKey(NamedTuple):
    """Cache key for a component lookup (trimmed, lower-cased)."""
    genus: str
    species: str
    infra_epithet: str


@dataclass(frozen=True)
class CacheLookup(Generic[V]):
    """Result of probing a cache: ``found`` is False when nothing was computed."""
    found: bool
    value: Optional[V] = None


class LookupCache(Generic[K, V]):
    """A dictionary cache with explicit present/absent state and hit counters."""

    def __init__(self, name: str):
        self.name = name
        self._entries: Dict[K, V] = {}
        self.hits = 0
        self.misses = 0

    def lookup(self, key: K) -> "CacheLookup[V]":
        if key in self._entries:
            self.hits += 1
            return CacheLookup(True, self._entries[key])
        self.misses += 1
        return CacheLookup(False, None)

    def put(self, key: K, value: V) -> None:
        self._entries[key] = value

    def setdefault(self, key: K, value: V) -> V:
        """Store ``value`` unless the key is already cached; return the cached value."""
        return self._entries.setdefault(key, value)

    def fill(self, key: K, value: V) -> V:
        """Store ``value`` unless a non-None value is already cached; return the cached value."""
        current = self._entries.get(key)
        if current is None:
            self._entries[key] = value
            return value
        return current

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, int]:
        return {"size": len(self._entries), "hits": self.hits, "misses": self.misses}
