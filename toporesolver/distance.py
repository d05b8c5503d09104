"""Memoized pairwise distances between candidate locations."""

from __future__ import annotations

from toporesolver.topo import Location


class DistanceTable:
    """
    Cache of great-circle distances in km, keyed by the unordered pair of
    locations. Two locations sharing an id but not a region get separate
    entries. Grows for the lifetime of the table; there is no eviction.
    """

    def __init__(self):
        self._cache: dict[frozenset[Location], float] = {}
        self.hits = 0
        self.misses = 0

    def distance(self, a: Location, b: Location) -> float:
        key = frozenset((a, b))
        dist = self._cache.get(key)
        if dist is None:
            self.misses += 1
            dist = a.distance_in_km(b)
            self._cache[key] = dist
        else:
            self.hits += 1
        return dist

    def __len__(self) -> int:
        return len(self._cache)
