"""Tile addressing and simple GeoJSON-like feature geometry."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Iterator

GEOMETRY_TYPES = frozenset(
    {
        "Point",
        "MultiPoint",
        "LineString",
        "MultiLineString",
        "Polygon",
        "MultiPolygon",
    }
)


class FeatureType(IntEnum):
    """Geometry type codes used inside vector tiles."""

    UNKNOWN = 0
    POINT = 1
    LINESTRING = 2
    POLYGON = 3


@dataclass(frozen=True, order=True)
class TileID:
    """A tile address in the XYZ scheme."""

    x: int
    y: int
    z: int


@dataclass(frozen=True)
class Extrema:
    """A bounding box given by its west, south, east and north edges."""

    w: float
    s: float
    e: float
    n: float


def _longitude(x: float, tiles: float) -> float:
    return x / tiles * 360.0 - 180.0


def _latitude(y: float, tiles: float) -> float:
    return math.degrees(math.atan(math.sinh(math.pi * (1.0 - 2.0 * y / tiles))))


def tile_bounds(tile: TileID) -> Extrema:
    """Return the geographic bounds (degrees) of a web-mercator tile."""
    tiles = float(2**tile.z)
    return Extrema(
        w=_longitude(tile.x, tiles),
        s=_latitude(tile.y + 1, tiles),
        e=_longitude(tile.x + 1, tiles),
        n=_latitude(tile.y, tiles),
    )


def _positions(coordinates: Any) -> Iterator[Any]:
    if not coordinates:
        return
    if isinstance(coordinates[0], (int, float)):
        yield coordinates
        return
    for part in coordinates:
        yield from _positions(part)


@dataclass
class Geometry:
    """A geometry with a GeoJSON type name and nested coordinate lists."""

    type: str
    coordinates: Any

    def __post_init__(self) -> None:
        if self.type not in GEOMETRY_TYPES:
            raise ValueError(f"unknown geometry type: {self.type!r}")

    def bounding_box(self) -> tuple[tuple[float, float], tuple[float, float]]:
        """Return ((min_x, min_y), (max_x, max_y)) over all positions."""
        xs: list[float] = []
        ys: list[float] = []
        for position in _positions(self.coordinates):
            xs.append(position[0])
            ys.append(position[1])
        if not xs:
            raise ValueError("geometry has no coordinates")
        return (min(xs), min(ys)), (max(xs), max(ys))


@dataclass
class Feature:
    """A geometry with properties and an optional identifier."""

    geometry: Geometry | None = None
    properties: dict[str, Any] = field(default_factory=dict)
    id: Any = None