"""Writing features into encoded vector-tile layers."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Sequence

from mapboxkit.geometry import Feature, TileID, tile_bounds
from mapboxkit.mvt.cursor import Cursor, new_cursor
from mapboxkit.mvt.proto import (
    PbfWriter,
    ProtoType,
    ProtoValue,
    WireType,
    encode_varint,
    get_proto,
    tag_and_type,
)

DEFAULT_EXTENT = 4096
DEFAULT_VERSION = 2

_GEOM_TYPE_CODES = {
    "Point": 1,
    "MultiPoint": 1,
    "LineString": 2,
    "MultiLineString": 2,
    "Polygon": 3,
    "MultiPolygon": 3,
}

_ENCODERS: dict[str, Callable[[Cursor, Any], None]] = {
    "Point": Cursor.make_point_float,
    "MultiPoint": Cursor.make_multi_point_float,
    "LineString": Cursor.make_line_float,
    "MultiLineString": Cursor.make_multi_line_float,
    "Polygon": Cursor.make_polygon_float,
    "MultiPolygon": Cursor.make_multi_polygon_float,
}


@dataclass
class LayerConfig:
    """Settings for writing one layer; zero extent and version take defaults."""

    tile: TileID
    name: str = ""
    extent: int = 0
    version: int = 0
    reduce_bool: bool = False
    extent_bool: bool = False
    tolerance: float = 0.0
    proto: ProtoType = ProtoType.MAPBOX


def new_config(name: str, tile: TileID, proto_type: ProtoType = ProtoType.MAPBOX) -> LayerConfig:
    """Return the usual configuration: clamped coordinates and a tolerance of 3."""
    return LayerConfig(
        tile=tile, name=name, extent_bool=True, tolerance=3.0, proto=proto_type
    )


def encode_value(value: Any, proto: ProtoValue) -> tuple[int, WireType, bytes]:
    """Return the field number, wire type and payload for a property value.

    Values of unsupported types are written as an empty string.
    """
    if isinstance(value, bool):
        return proto.bool_value, WireType.VARINT, b"\x01" if value else b"\x00"
    if isinstance(value, int):
        field = proto.uint_value if value >= 1 << 63 else proto.int_value
        return field, WireType.VARINT, encode_varint(value)
    if isinstance(value, float):
        return proto.double_value, WireType.FIXED64, struct.pack("<d", value)
    if isinstance(value, str):
        data = value.encode("utf-8")
        return proto.string_value, WireType.BYTES, encode_varint(len(data)) + data
    return proto.string_value, WireType.BYTES, encode_varint(0)


def _value_key(value: Any) -> tuple[type, Any]:
    key = (type(value), value)
    try:
        hash(key)
    except TypeError:
        raise TypeError(f"property value of type {type(value).__name__} cannot be written") from None
    return key


class LayerWriter:
    """Accumulates the features, keys and values of one layer."""

    def __init__(self, config: LayerConfig) -> None:
        self.tile = config.tile
        self.name = config.name
        self.extent = config.extent or DEFAULT_EXTENT
        self.version = config.version or DEFAULT_VERSION
        self.reduce_bool = config.reduce_bool
        self.proto = get_proto(config.proto)
        self.cursor = new_cursor(config.tile, self.extent)
        bounds = tile_bounds(config.tile)
        self.delta_x = bounds.e - bounds.w
        self.delta_y = bounds.n - bounds.s
        self.keys_map: dict[str, int] = {}
        self.values_map: dict[tuple[type, Any], int] = {}
        self.features = bytearray()
        self.keys = bytearray()
        self.values = bytearray()

    def add_key(self, key: str) -> int:
        writer = PbfWriter()
        writer.write_string(self.proto.layer.keys, key)
        self.keys += writer.finish()
        index = len(self.keys_map)
        self.keys_map[key] = index
        return index

    def add_value(self, value: Any) -> int:
        map_key = _value_key(value)
        field, wire_type, payload = encode_value(value, self.proto.value)
        inner = PbfWriter()
        inner.write_tag(field, wire_type)
        inner.write_raw(payload)
        writer = PbfWriter()
        writer.write_message(self.proto.layer.values, inner.finish())
        self.values += writer.finish()
        index = len(self.values_map)
        self.values_map[map_key] = index
        return index

    def get_tags(self, properties: Mapping[str, Any]) -> list[int]:
        """Return key/value index pairs, adding unseen keys and values."""
        tags: list[int] = []
        for key, value in properties.items():
            key_index = self.keys_map.get(key)
            if key_index is None:
                key_index = self.add_key(key)
            value_index = self.values_map.get(_value_key(value))
            if value_index is None:
                value_index = self.add_value(value)
            tags.extend((key_index, value_index))
        return tags

    def refresh_cursor(self) -> None:
        self.cursor.reset()

    def _append_feature(self, body: bytes) -> None:
        self.features.append(tag_and_type(self.proto.layer.features, WireType.BYTES))
        self.features += encode_varint(len(body))
        self.features += body

    def add_feature(self, feature: Feature) -> None:
        """Encode a feature with lon/lat coordinates into this layer."""
        self.refresh_cursor()
        writer = PbfWriter()
        fields = self.proto.feature

        feature_id = feature.id
        if isinstance(feature_id, int) and not isinstance(feature_id, bool):
            writer.write_uint64(fields.id, feature_id)

        if feature.properties:
            writer.write_packed_uint32(fields.tags, self.get_tags(feature.properties))

        geometry = feature.geometry
        if geometry is not None:
            writer.write_varint(fields.type, _GEOM_TYPE_CODES[geometry.type])
            _ENCODERS[geometry.type](self.cursor, geometry.coordinates)
            writer.write_packed_uint32(fields.geometry, self.cursor.geometry)

        self._append_feature(writer.finish())

    def add_feature_raw(
        self,
        feature_id: int,
        geom_type: int,
        geometry: Sequence[int],
        properties: Mapping[str, Any],
    ) -> None:
        """Add a feature whose geometry is already a command stream."""
        self.refresh_cursor()
        writer = PbfWriter()
        fields = self.proto.feature
        if feature_id > 0:
            writer.write_uint64(fields.id, feature_id)
        if properties:
            writer.write_packed_uint32(fields.tags, self.get_tags(properties))
        if geom_type != 0:
            writer.write_varint(fields.type, geom_type)
        if geometry:
            writer.write_packed_uint32(fields.geometry, geometry)
        self._append_feature(writer.finish())

    def flush(self) -> bytes:
        """Return the layer as a length-delimited field of a tile."""
        writer = PbfWriter()
        layer_fields = self.proto.layer
        if self.name:
            writer.write_string(layer_fields.name, self.name)
        writer.write_raw(bytes(self.features))
        writer.write_raw(bytes(self.keys))
        writer.write_raw(bytes(self.values))
        writer.write_uint64(layer_fields.extent, self.extent)
        writer.write_varint(layer_fields.version, self.version)
        body = writer.finish()
        head = bytes([tag_and_type(self.proto.layers, WireType.BYTES)])
        return head + encode_varint(len(body)) + body


def write_layer(features: Iterable[Feature], config: LayerConfig) -> bytes:
    """Encode features into a single tile layer."""
    layer = LayerWriter(config)
    if config.extent_bool:
        layer.cursor.extent_bool = True
    for feature in features:
        layer.add_feature(feature)
    return layer.flush()