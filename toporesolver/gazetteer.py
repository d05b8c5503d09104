"""
Gazetteer lookup interface.

Resolvers never touch the gazetteer directly; it is only used by the corpus
loader to attach candidates to toponyms that arrive without them. The
in-memory implementation maps normalized surface forms to the ordered list
of locations sharing that name, preserving insertion order so that every
mention of a form sees its candidates in the same order.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Protocol

from toporesolver.topo import Location


class Gazetteer(Protocol):
    def lookup(self, name: str) -> Optional[list[Location]]: ...


def normalize_name(name: str) -> str:
    """
    Normalize a surface form for lookup.
    Rules:
      1. Lowercase and strip whitespace
      2. Collapse internal whitespace
      3. Drop trailing punctuation ("Paris," -> "paris")
    """
    normalized = re.sub(r"\s+", " ", name.strip().lower())
    return normalized.rstrip(".,;:")


class InMemoryGazetteer:
    """Name -> candidates index built from already-loaded locations."""

    def __init__(self, entries: Iterable[tuple[str, Location]] = ()):
        self._index: dict[str, list[Location]] = {}
        for name, location in entries:
            self.add(name, location)

    @classmethod
    def from_locations(cls, locations: Iterable[Location]) -> "InMemoryGazetteer":
        return cls((loc.name, loc) for loc in locations)

    def add(self, name: str, location: Location) -> None:
        bucket = self._index.setdefault(normalize_name(name), [])
        if all(existing.id != location.id for existing in bucket):
            bucket.append(location)

    def lookup(self, name: str) -> Optional[list[Location]]:
        found = self._index.get(normalize_name(name))
        return list(found) if found else None

    def __len__(self) -> int:
        return len(self._index)
