"""Encoding of geographic geometry into vector-tile command streams."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

from mapboxkit.geometry import Extrema, TileID, tile_bounds

MERCATOR_POLE = 20037508.34
CLOCKWISE = "clockwise"
COUNTER = "counter"
START_BDS = Extrema(w=180.0, s=90.0, e=-180.0, n=-90.0)

_UINT32_MASK = 0xFFFFFFFF

IntPoint = tuple[int, int]


def _command(command_id: int, count: int) -> int:
    return ((command_id & 0x7) | (count << 3)) & _UINT32_MASK


def _move_to(count: int) -> int:
    return _command(1, count)


def _line_to(count: int) -> int:
    return _command(2, count)


def _close_path(count: int) -> int:
    return _command(7, count)


def _zigzag(value: int) -> int:
    return ((value << 1) ^ (value >> 31)) & _UINT32_MASK


def _round(value: float) -> int:
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def _orientation(weight: float) -> str:
    return CLOCKWISE if weight > 0 else COUNTER


def convert_point(point: Sequence[float]) -> tuple[float, float]:
    """Project a lon/lat point to web-mercator metres, clamping y to the pole."""
    x = MERCATOR_POLE / 180.0 * point[0]
    t = math.tan((90.0 + point[1]) * math.pi / 360.0)
    if t > 0:
        y = math.log(t) / math.pi * MERCATOR_POLE
        y = max(-MERCATOR_POLE, min(y, MERCATOR_POLE))
    elif t == 0:
        y = -MERCATOR_POLE
    else:
        y = math.nan
    return x, y


def trim_polygon(lines: Sequence[Sequence[Sequence[float]]]) -> list[list]:
    """Close every ring whose last point differs from its first."""
    trimmed = []
    for line in lines:
        if not line:
            raise ValueError("ring has no points")
        first, last = line[0], line[-1]
        ring = list(line)
        if not (first[0] == last[0] and first[1] == last[1]):
            ring.append(first)
        trimmed.append(ring)
    return trimmed


def trim_multi_polygon(polygons: Sequence[Sequence[Sequence[Sequence[float]]]]) -> list[list]:
    return [trim_polygon(polygon) for polygon in polygons]


def signed_area_int(ring: Sequence[Sequence[int]]) -> float:
    """Shoelace sum of a ring; positive means clockwise in tile coordinates."""
    ring = list(ring)
    previous = ring[-1:] + ring[:-1]
    return float(
        sum((p2[0] - p1[0]) * (p1[1] + p2[1]) for p1, p2 in zip(ring, previous))
    )


def _assert_winding_order(ring: Sequence[Sequence[int]], expected: str) -> list:
    ring = list(ring)
    following = ring[1:] + ring[:1]
    weight = float(sum((b[0] - a[0]) * (b[1] + a[1]) for a, b in zip(ring, following)))
    if _orientation(weight) != expected:
        return ring[::-1]
    return ring


@dataclass
class Cursor:
    """Builds a command stream, tracking the last point written."""

    bounds: Extrema
    delta_x: float
    delta_y: float
    extent: int = 4096
    geometry: list[int] = field(default_factory=list)
    last_point: IntPoint = (0, 0)
    count: int = 0
    bds: Extrema = START_BDS
    extent_bool: bool = False

    def _branch(self) -> Cursor:
        return Cursor(
            bounds=self.bounds,
            delta_x=self.delta_x,
            delta_y=self.delta_y,
            extent=self.extent,
            last_point=self.last_point,
        )

    def reset(self) -> None:
        self.count = 0
        self.last_point = (0, 0)
        self.geometry = []
        self.bds = START_BDS

    def move_point(self, point: Sequence[int]) -> None:
        self.geometry.append(_move_to(1))
        self.geometry.append(_zigzag(point[0] - self.last_point[0]))
        self.geometry.append(_zigzag(point[1] - self.last_point[1]))
        self.last_point = (point[0], point[1])
        self.count = 0

    def line_point(self, point: Sequence[int]) -> None:
        dx = point[0] - self.last_point[0]
        dy = point[1] - self.last_point[1]
        if dx != 0 or dy != 0:
            self.geometry.append(_zigzag(dx))
            self.geometry.append(_zigzag(dy))
            self.count += 1
        self.last_point = (point[0], point[1])

    def single_point(self, point: Sequence[float]) -> IntPoint:
        """Convert a lon/lat point to integer tile coordinates."""
        x, y = convert_point(point)
        factor_x = (x - self.bounds.w) / self.delta_x
        factor_y = (self.bounds.n - y) / self.delta_y
        xval = _round(factor_x * self.extent)
        yval = _round(factor_y * self.extent)
        if self.extent_bool:
            xval = max(0, min(xval, self.extent))
            yval = max(0, min(yval, self.extent))
        return xval, yval

    def make_line(self, coords: Sequence[Sequence[int]]) -> None:
        if not coords:
            raise ValueError("line has no points")
        start = len(self.geometry)
        self.move_point(coords[0])
        self.geometry.append(_line_to(len(coords) - 1))
        for point in coords[1:]:
            self.line_point(point)
        self.geometry[start + 3] = _line_to(self.count)

    def make_line_float(self, coords: Sequence[Sequence[float]]) -> None:
        self.make_line([self.single_point(point) for point in coords])

    def _append_ring(self, ring: Sequence[Sequence[int]]) -> None:
        sub = self._branch()
        sub.make_line(ring)
        self.geometry.extend(sub.geometry)
        self.geometry.append(_close_path(1))
        last = ring[-1]
        self.last_point = (last[0], last[1])

    def assert_convert(self, coords: Sequence[Sequence[float]], orientation: str) -> None:
        """Convert a ring, orient it and append it as a closed path."""
        points = [self.single_point(point) for point in coords]
        if _orientation(signed_area_int(points)) != orientation:
            points.reverse()
        self._append_ring(points)

    def make_polygon(self, rings: Sequence[Sequence[Sequence[int]]]) -> list[int]:
        rings = trim_polygon(rings)
        self.make_line(_assert_winding_order(rings[0], CLOCKWISE))
        self.geometry.append(_close_path(1))
        for ring in rings[1:]:
            self._append_ring(_assert_winding_order(ring, COUNTER))
        return self.geometry

    def make_polygon_float(self, rings: Sequence[Sequence[Sequence[float]]]) -> None:
        rings = trim_polygon(rings)
        self.assert_convert(rings[0], CLOCKWISE)
        for ring in rings[1:]:
            self.assert_convert(ring, COUNTER)

    def make_point(self, point: Sequence[int]) -> None:
        self.geometry = [_move_to(1)]
        self.line_point(point)

    def make_point_float(self, point: Sequence[float]) -> None:
        self.make_point(self.single_point(point))

    def make_multi_point(self, points: Sequence[Sequence[int]]) -> None:
        self.geometry = [_move_to(len(points))]
        for point in points:
            self.line_point(point)

    def make_multi_point_float(self, points: Sequence[Sequence[float]]) -> None:
        self.geometry = [_move_to(len(points))]
        for point in points:
            self.line_point(self.single_point(point))

    def make_multi_line(self, lines: Sequence[Sequence[Sequence[int]]]) -> None:
        for line in lines:
            self.make_line(line)

    def make_multi_line_float(self, lines: Sequence[Sequence[Sequence[float]]]) -> None:
        for line in lines:
            self.make_line_float(line)

    def make_multi_polygon(self, polygons: Sequence) -> None:
        for polygon in polygons:
            self.make_polygon(polygon)

    def make_multi_polygon_float(self, polygons: Sequence) -> None:
        for polygon in polygons:
            self.make_polygon_float(polygon)


def new_cursor(tile: TileID, extent: int = 4096) -> Cursor:
    """Create a cursor for a tile with its bounds projected to web-mercator."""
    bounds = tile_bounds(tile)
    east, north = convert_point((bounds.e, bounds.n))
    west, south = convert_point((bounds.w, bounds.s))
    return Cursor(
        bounds=Extrema(w=west, s=south, e=east, n=north),
        delta_x=east - west,
        delta_y=north - south,
        extent=extent,
    )