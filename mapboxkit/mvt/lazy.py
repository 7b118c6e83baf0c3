"""Lazy vector-tile reading: layers are indexed up front, features decoded on demand."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Sequence

from mapboxkit.geometry import Feature, Geometry, TileID
from mapboxkit.mvt.proto import (
    PbfReader,
    Proto,
    ProtoType,
    ProtoValue,
    WireType,
    encode_varint,
    get_proto,
)

DEFAULT_EXTENT = 4096
_LAYER_TAG = 0x1A
_TYPE_NAMES = {1: "Point", 2: "LineString", 3: "Polygon"}
_DECODE_ERRORS = (ValueError, IndexError, struct.error)

Line = list[list[float]]


class TileDecodeError(ValueError):
    """Raised when tile bytes cannot be decoded."""


def delta_dim(num: int) -> float:
    """Decode a zigzag-encoded coordinate delta."""
    if num % 2 == 1:
        return float(-((num + 1) // 2))
    return float(num // 2)


def signed_area(ring: Sequence[Sequence[float]]) -> float:
    """Shoelace sum of a ring; positive marks an exterior ring in tile coordinates."""
    points = list(ring)
    previous = points[-1:] + points[:-1]
    return float(
        sum((p2[0] - p1[0]) * (p1[1] + p2[1]) for p1, p2 in zip(points, previous))
    )


def project(line: Sequence[Sequence[float]], x0: float, y0: float, size: float) -> Line:
    """Project tile-space points to lon/lat using the tile's origin and world size."""
    projected = []
    for point in line:
        y2 = 180.0 - (point[1] + y0) * 360.0 / size
        projected.append(
            [
                (point[0] + x0) * 360.0 / size - 180.0,
                360.0 / math.pi * math.atan(math.exp(y2 * math.pi / 180.0)) - 90.0,
            ]
        )
    return projected


def _map_lines(geometry: Geometry, transform: Callable[[Line], Line]) -> Geometry:
    coords = geometry.coordinates
    kind = geometry.type
    if kind == "Point":
        new = transform([coords])[0]
    elif kind in ("MultiPoint", "LineString"):
        new = transform(coords)
    elif kind in ("MultiLineString", "Polygon"):
        new = [transform(line) for line in coords]
    else:
        new = [[transform(ring) for ring in polygon] for polygon in coords]
    return Geometry(kind, new)


def _pair(commands: Sequence[int], pos: int) -> tuple[float, float]:
    if pos + 1 >= len(commands):
        raise ValueError("geometry command stream ends inside a point")
    return delta_dim(commands[pos]), delta_dim(commands[pos + 1])


def decode_geometry(commands: Sequence[int], geom_type: int) -> Geometry | None:
    """Turn a command stream into tile-space geometry; unknown types give None."""
    commands = list(commands)
    n = len(commands)
    lines: list[Line] = []
    current: list[float] | None = None
    pos = 0
    while pos < n:
        if commands[pos] != 9:
            pos += 1
            continue
        pos += 1
        dx, dy = _pair(commands, pos)
        if pos != 1 and geom_type in (2, 3):
            if current is None:
                raise ValueError("relative move without a starting point")
            current = [current[0] + dx, current[1] + dy]
        else:
            current = [dx, dy]
        pos += 2
        if n == 3:
            lines = [[current]]
        if pos >= n:
            pos += 1
            continue
        length = commands[pos] >> 3
        pos += 1
        end = pos + length * 2
        line = [current]
        while pos < end and pos + 1 < n:
            current = [
                current[0] + delta_dim(commands[pos]),
                current[1] + delta_dim(commands[pos + 1]),
            ]
            line.append(current)
            pos += 2
        lines.append(line)

    if geom_type == 3:
        rings = [line if line[0] == line[-1] else line + [line[0]] for line in lines]
        if len(rings) == 1:
            polygons = [rings]
        else:
            polygons = []
            for ring in rings:
                if signed_area(ring) > 0 or not polygons:
                    polygons.append([ring])
                else:
                    polygons[-1].append(ring)
    else:
        polygons = [lines]

    if geom_type == 1:
        if not lines:
            raise ValueError("point geometry has no coordinates")
        points = lines[0]
        if len(points) == 1:
            return Geometry("Point", points[0])
        return Geometry("MultiPoint", points)
    if geom_type == 2:
        if len(lines) == 1:
            return Geometry("LineString", lines[0])
        return Geometry("MultiLineString", lines)
    if geom_type == 3:
        if len(polygons) == 1:
            return Geometry("Polygon", polygons[0])
        return Geometry("MultiPolygon", polygons)
    return None


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def convert_geometry(geometry: Geometry | None, dim: float) -> Geometry | None:
    """Divide every coordinate by ``dim`` and round to whole units."""
    if geometry is None:
        return None

    def scale(line: Line) -> Line:
        return [[_round_half_up(p[0] / dim), _round_half_up(p[1] / dim)] for p in line]

    return _map_lines(geometry, scale)


def _skip(buf: PbfReader, wire: int) -> None:
    if wire == WireType.VARINT:
        buf.read_varint()
    elif wire == WireType.FIXED64:
        buf.pos += 8
    elif wire == WireType.BYTES:
        size = buf.read_varint()
        buf.pos += size
    elif wire == WireType.FIXED32:
        buf.pos += 4
    else:
        raise ValueError(f"unsupported wire type {wire}")


def _read_value(buf: PbfReader, fields: ProtoValue) -> tuple[bool, Any]:
    size = buf.read_varint()
    end = buf.pos + size
    key, _ = buf.read_tag()
    readers = {
        fields.string_value: buf.read_string,
        fields.float_value: buf.read_float,
        fields.double_value: buf.read_double,
        fields.int_value: buf.read_int64,
        fields.uint_value: buf.read_uint64,
        fields.sint_value: buf.read_uint64,
        fields.bool_value: buf.read_bool,
    }
    reader = readers.get(key)
    value = reader() if reader is not None else None
    buf.pos = end
    return reader is not None, value


@dataclass
class LazyFeature:
    """A feature whose geometry is decoded only when asked for."""

    buf: PbfReader
    extent: int = DEFAULT_EXTENT
    id: int = 0
    type: str = ""
    geom_int: int = 0
    geometry_pos: int = 0
    properties: dict[str, Any] = field(default_factory=dict)

    def load_geometry_raw(self) -> list[int]:
        """Return the undecoded geometry command stream."""
        self.buf.pos = self.geometry_pos
        try:
            return self.buf.read_packed_uint32()
        except _DECODE_ERRORS as exc:
            raise TileDecodeError("malformed feature geometry") from exc

    def load_geometry(self) -> Geometry | None:
        """Return the geometry in tile coordinates."""
        commands = self.load_geometry_raw()
        try:
            return decode_geometry(commands, self.geom_int)
        except _DECODE_ERRORS as exc:
            raise TileDecodeError("malformed feature geometry") from exc

    def load_geometry_scaled(self, dim: float) -> Geometry | None:
        """Return the tile-space geometry divided by ``dim`` and rounded."""
        return convert_geometry(self.load_geometry(), dim)

    def to_geojson(self, tile: TileID) -> Feature:
        """Return the feature with lon/lat coordinates for the given tile."""
        size = float(self.extent) * 2.0**tile.z
        x0 = float(self.extent) * tile.x
        y0 = float(self.extent) * tile.y
        geometry = self.load_geometry()
        if geometry is None:
            raise TileDecodeError(f"unknown geometry type {self.geom_int}")
        projected = _map_lines(geometry, lambda line: project(line, x0, y0, size))
        return Feature(geometry=projected, properties=dict(self.properties), id=self.id)


@dataclass
class Layer:
    """One layer of a tile with its key and value tables and feature offsets."""

    buf: PbfReader
    proto: Proto
    start_pos: int
    end_pos: int
    name: str = ""
    extent: int = 0
    version: int = 0
    keys: list[str] = field(default_factory=list)
    values: list[Any] = field(default_factory=list)
    feature_positions: list[int] = field(default_factory=list)
    position: int = 0

    @property
    def number_features(self) -> int:
        return len(self.feature_positions)

    def __iter__(self) -> Iterator[LazyFeature]:
        while self.has_next():
            yield self.feature()

    def has_next(self) -> bool:
        return self.position < self.number_features

    def reset(self) -> None:
        self.position = 0

    def feature(self) -> LazyFeature:
        """Decode the next feature's header and advance."""
        if not self.has_next():
            raise IndexError("no more features in layer")
        start = self.feature_positions[self.position]
        self.position += 1
        try:
            return self._decode_feature(start)
        except _DECODE_ERRORS as exc:
            raise TileDecodeError(f"malformed feature in layer {self.name!r}") from exc

    def _property(self, key_index: int, value_index: int) -> tuple[str, Any]:
        key = self.keys[key_index] if key_index < len(self.keys) else ""
        value = self.values[value_index] if value_index < len(self.values) else ""
        return key, value

    def _decode_feature(self, start: int) -> LazyFeature:
        buf = self.buf
        fields = self.proto.feature
        buf.pos = start
        size = buf.read_varint()
        end = buf.pos + size
        feature = LazyFeature(buf=buf, extent=self.extent)
        while buf.pos < end:
            key, wire = buf.read_tag()
            if key == fields.id and wire == WireType.VARINT:
                feature.id = buf.read_uint64()
            elif key == fields.tags and wire == WireType.BYTES:
                tags = buf.read_packed_uint32()
                if len(tags) % 2:
                    raise ValueError("odd number of feature tags")
                for key_index, value_index in zip(tags[::2], tags[1::2]):
                    name, value = self._property(key_index, value_index)
                    feature.properties[name] = value
            elif key == fields.type and wire == WireType.VARINT:
                feature.geom_int = buf.read_varint()
                feature.type = _TYPE_NAMES.get(feature.geom_int, "")
            elif key == fields.geometry and wire == WireType.BYTES:
                feature.geometry_pos = buf.pos
                length = buf.read_varint()
                buf.pos += length
            else:
                _skip(buf, wire)
        return feature


@dataclass
class Tile:
    """An indexed tile whose layers share one reader over the tile bytes."""

    buf: PbfReader
    proto: Proto
    layer_map: dict[str, Layer] = field(default_factory=dict)
    layers: list[str] = field(default_factory=list)
    tile_id: TileID | None = None

    def render(self) -> bytes:
        """Re-encode the indexed layers as tile bytes."""
        out = bytearray()
        for layer in self.layer_map.values():
            body = self.buf.data[layer.start_pos:layer.end_pos]
            out.append(_LAYER_TAG)
            out += encode_varint(len(body))
            out += body
        return bytes(out)

    def _read_layer(self, end: int) -> None:
        buf = self.buf
        fields = self.proto.layer
        layer = Layer(buf=buf, proto=self.proto, start_pos=buf.pos, end_pos=end)
        key, wire = buf.read_tag()
        while buf.pos < end:
            matched = False
            if key == fields.name and wire == WireType.BYTES:
                layer.name = buf.read_string()
                self.layers.append(layer.name)
                key, wire = buf.read_tag()
                matched = True
            while key == fields.features and wire == WireType.BYTES:
                layer.feature_positions.append(buf.pos)
                size = buf.read_varint()
                buf.pos += size
                key, wire = buf.read_tag()
                matched = True
            while key == fields.keys and wire == WireType.BYTES:
                layer.keys.append(buf.read_string())
                key, wire = buf.read_tag()
                matched = True
            while key == fields.values and wire == WireType.BYTES:
                found, value = _read_value(buf, self.proto.value)
                if found:
                    layer.values.append(value)
                key, wire = buf.read_tag()
                matched = True
            if key == fields.extent and wire == WireType.VARINT:
                layer.extent = buf.read_varint()
                key, wire = buf.read_tag()
                matched = True
            if key == fields.version and wire == WireType.VARINT:
                layer.version = buf.read_varint()
                key, wire = buf.read_tag()
                matched = True
            if not matched:
                _skip(buf, wire)
                key, wire = buf.read_tag()

        if layer.extent == 0:
            layer.extent = DEFAULT_EXTENT
        self.layer_map[layer.name] = layer
        buf.pos = end


def new_tile(data: bytes, proto_type: ProtoType | int = ProtoType.MAPBOX) -> Tile:
    """Index the layers of encoded tile bytes."""
    proto = get_proto(proto_type)
    tile = Tile(buf=PbfReader(data), proto=proto)
    buf = tile.buf
    try:
        while buf.pos < buf.length:
            key, wire = buf.read_tag()
            if key == proto.layers and wire == WireType.BYTES:
                size = buf.read_varint()
                if size:
                    tile._read_layer(buf.pos + size)
    except _DECODE_ERRORS as exc:
        raise TileDecodeError("malformed vector tile") from exc
    return tile