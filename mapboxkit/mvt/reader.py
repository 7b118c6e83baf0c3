"""Eager vector-tile reading: every feature of every layer decoded at once."""

from __future__ import annotations

import struct
from typing import Iterator

from mapboxkit.geometry import Feature, Geometry, TileID
from mapboxkit.mvt.lazy import (
    DEFAULT_EXTENT,
    Layer,
    TileDecodeError,
    new_tile,
    project,
)
from mapboxkit.mvt.proto import (
    PbfReader,
    Proto,
    ProtoType,
    WireType,
    encode_varint,
    get_proto,
    tag_and_type,
)

_DECODE_ERRORS = (ValueError, IndexError, struct.error)

Bounds = list[list[float]]


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


def _layer_bodies(data: bytes, proto: Proto) -> Iterator[bytes]:
    buf = PbfReader(data)
    while buf.pos < buf.length:
        key, wire = buf.read_tag()
        if key == proto.layers and wire == WireType.BYTES:
            size = buf.read_varint()
            start = buf.pos
            end = start + size
            if end > buf.length:
                raise ValueError("layer runs past the end of the tile")
            buf.pos = end
            yield buf.data[start:end]
        else:
            _skip(buf, wire)


def _layers(data: bytes, proto_type: ProtoType | int) -> Iterator[Layer]:
    """Yield each non-empty layer of the tile, in the order it appears."""
    proto = get_proto(proto_type)
    head = bytes([tag_and_type(proto.layers, WireType.BYTES)])
    for body in _layer_bodies(bytes(data), proto):
        if not body:
            continue
        single = new_tile(head + encode_varint(len(body)) + body, proto_type)
        yield from single.layer_map.values()


def _project_geometry(geometry: Geometry, x0: float, y0: float, size: float) -> Geometry:
    coords = geometry.coordinates
    kind = geometry.type
    if kind == "Point":
        new = project([coords], x0, y0, size)[0]
    elif kind in ("MultiPoint", "LineString"):
        new = project(coords, x0, y0, size)
    elif kind in ("MultiLineString", "Polygon"):
        new = [project(line, x0, y0, size) for line in coords]
    else:
        new = [[project(ring, x0, y0, size) for ring in polygon] for polygon in coords]
    return Geometry(kind, new)


def _layer_features(layer: Layer, tile: TileID | None) -> list[Feature]:
    features = []
    size = float(layer.extent) * 2.0 ** (tile.z if tile else 0)
    x0 = float(layer.extent) * (tile.x if tile else 0)
    y0 = float(layer.extent) * (tile.y if tile else 0)
    for lazy in layer:
        geometry = lazy.load_geometry()
        if geometry is not None and tile is not None:
            geometry = _project_geometry(geometry, x0, y0, size)
        properties = dict(lazy.properties)
        properties["layer"] = layer.name
        features.append(
            Feature(geometry=geometry, properties=properties, id=lazy.id or None)
        )
    return features


def read_tile(
    data: bytes, tile: TileID, proto_type: ProtoType | int = ProtoType.MAPBOX
) -> list[Feature]:
    """Decode every feature of a tile into lon/lat features.

    Each feature's properties gain a ``layer`` entry naming its layer.
    Raises TileDecodeError for malformed bytes or a tile without features.
    """
    try:
        features = [
            feature
            for layer in _layers(data, proto_type)
            for feature in _layer_features(layer, tile)
        ]
    except TileDecodeError:
        raise
    except _DECODE_ERRORS as exc:
        raise TileDecodeError("error in read_tile") from exc
    if not features:
        raise TileDecodeError("no features read from given tile")
    return features


def read_raw_tile(
    data: bytes, tile: TileID, proto_type: ProtoType | int = ProtoType.MAPBOX
) -> tuple[list[Feature], Bounds]:
    """Decode every feature in tile coordinates.

    Also returns the lon/lat of the tile's corners ``[[w, n], [e, s]]``,
    computed from the extent of the last layer read.
    """
    features: list[Feature] = []
    extent = 0
    try:
        for layer in _layers(data, proto_type):
            extent = layer.extent
            features.extend(_layer_features(layer, None))
    except TileDecodeError:
        raise
    except _DECODE_ERRORS as exc:
        raise TileDecodeError("error in read_raw_tile") from exc

    extent = extent or DEFAULT_EXTENT
    size = float(extent) * 2.0**tile.z
    x0 = float(extent) * tile.x
    y0 = float(extent) * tile.y
    corners = project([[0.0, 0.0], [float(extent), float(extent)]], x0, y0, size)
    if not features:
        raise TileDecodeError("no features read from given tile")
    return features, corners