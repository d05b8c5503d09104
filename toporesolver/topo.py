"""
Geometry primitives for candidate locations.

Coordinates are stored in radians. Regions expose a center and a list of
"representative" coordinates; distances between regions are the minimum
great-circle distance over all pairs of representatives.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

EARTH_RADIUS_KM = 6372.8


# ── Coordinates ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class Coordinate:
    lat: float  # radians
    lng: float  # radians

    @classmethod
    def from_degrees(cls, lat: float, lng: float) -> "Coordinate":
        return cls(math.radians(lat), math.radians(lng))

    @classmethod
    def from_radians(cls, lat: float, lng: float) -> "Coordinate":
        return cls(lat, lng)

    @property
    def lat_degrees(self) -> float:
        return math.degrees(self.lat)

    @property
    def lng_degrees(self) -> float:
        return math.degrees(self.lng)

    def distance(self, other: "Coordinate") -> float:
        """Great-circle angle to `other`, in radians (haversine)."""
        dlat = other.lat - self.lat
        dlng = other.lng - self.lng
        a = (math.sin(dlat / 2.0) ** 2
             + math.cos(self.lat) * math.cos(other.lat) * math.sin(dlng / 2.0) ** 2)
        return 2.0 * math.asin(math.sqrt(min(1.0, a)))

    def distance_in_km(self, other: "Coordinate") -> float:
        return EARTH_RADIUS_KM * self.distance(other)

    def __str__(self) -> str:
        return f"{self.lat_degrees:.4f},{self.lng_degrees:.4f}"


# ── Regions ───────────────────────────────────────────────────────────

class Region(ABC):
    @property
    @abstractmethod
    def center(self) -> Coordinate: ...

    @property
    @abstractmethod
    def representatives(self) -> list[Coordinate]: ...

    @abstractmethod
    def contains(self, coord: Coordinate) -> bool: ...

    def distance(self, other: "Region | Coordinate") -> float:
        """Minimum angular distance between representative points."""
        others = [other] if isinstance(other, Coordinate) else other.representatives
        return min(
            (rep.distance(o) for rep in self.representatives for o in others),
            default=math.inf,
        )

    def distance_in_km(self, other: "Region | Coordinate") -> float:
        if isinstance(other, Coordinate):
            return EARTH_RADIUS_KM * self.distance(other)
        # Two single points: skip the pairwise search
        if len(self.representatives) == 1 and len(other.representatives) == 1:
            return self.center.distance_in_km(other.center)
        return EARTH_RADIUS_KM * self.distance(other)


@dataclass(frozen=True)
class PointRegion(Region):
    point: Coordinate

    @property
    def center(self) -> Coordinate:
        return self.point

    @property
    def representatives(self) -> list[Coordinate]:
        return [self.point]

    def contains(self, coord: Coordinate) -> bool:
        return coord == self.point


@dataclass(frozen=True)
class RectRegion(Region):
    min_lat: float  # radians
    max_lat: float
    min_lng: float
    max_lng: float

    @classmethod
    def from_degrees(cls, min_lat: float, max_lat: float, min_lng: float, max_lng: float) -> "RectRegion":
        return cls(math.radians(min_lat), math.radians(max_lat),
                   math.radians(min_lng), math.radians(max_lng))

    @classmethod
    def from_coordinates(cls, sw: Coordinate, ne: Coordinate) -> "RectRegion":
        return cls(sw.lat, ne.lat, sw.lng, ne.lng)

    @property
    def center(self) -> Coordinate:
        lng = (self.max_lng + self.min_lng) / 2.0
        if self.min_lng > self.max_lng:
            # Box wrapping the antimeridian
            lng = lng + math.pi if lng <= 0.0 else lng - math.pi
        return Coordinate((self.max_lat + self.min_lat) / 2.0, lng)

    @property
    def representatives(self) -> list[Coordinate]:
        return [
            Coordinate(self.min_lat, self.min_lng),
            Coordinate(self.max_lat, self.min_lng),
            Coordinate(self.max_lat, self.max_lng),
            Coordinate(self.min_lat, self.max_lng),
        ]

    def contains(self, coord: Coordinate) -> bool:
        if not (self.min_lat <= coord.lat <= self.max_lat):
            return False
        if self.min_lng <= self.max_lng:
            return self.min_lng <= coord.lng <= self.max_lng
        # Box wrapping the antimeridian
        return self.min_lng <= coord.lng <= math.pi or -math.pi <= coord.lng <= self.max_lng

    def __str__(self) -> str:
        return (f"lat: [{math.degrees(self.min_lat)}, {math.degrees(self.max_lat)}] "
                f"lon: [{math.degrees(self.min_lng)}, {math.degrees(self.max_lng)}]")


@dataclass(frozen=True)
class PointSetRegion(Region):
    """A region described by several representative points (e.g. a state's cities)."""
    points: tuple[Coordinate, ...]

    def __post_init__(self):
        if not self.points:
            raise ValueError("PointSetRegion needs at least one point")

    @property
    def center(self) -> Coordinate:
        n = len(self.points)
        return Coordinate(sum(p.lat for p in self.points) / n,
                          sum(p.lng for p in self.points) / n)

    @property
    def representatives(self) -> list[Coordinate]:
        return list(self.points)

    def contains(self, coord: Coordinate) -> bool:
        lats = [p.lat for p in self.points]
        lngs = [p.lng for p in self.points]
        return min(lats) <= coord.lat <= max(lats) and min(lngs) <= coord.lng <= max(lngs)


# ── Locations ─────────────────────────────────────────────────────────

class LocationType(str, Enum):
    STATE = "state"
    CITY = "city"
    OTHER = "other"


@dataclass(frozen=True)
class Location:
    id: str
    name: str
    region: Region
    population: int = 0
    admin1_code: Optional[str] = None
    type: LocationType = LocationType.OTHER

    def __post_init__(self):
        if self.population < 0:
            raise ValueError(f"population must be non-negative, got {self.population}")

    @property
    def center(self) -> Coordinate:
        return self.region.center

    def distance(self, other: "Location | Coordinate") -> float:
        target = other.region if isinstance(other, Location) else other
        return self.region.distance(target)

    def distance_in_km(self, other: "Location | Coordinate") -> float:
        target = other.region if isinstance(other, Location) else other
        return self.region.distance_in_km(target)

    def __str__(self) -> str:
        return f"{self.name} ({self.region.center})"
