"""Protocol-buffer field layouts for vector tiles and a minimal wire codec."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable

_UINT64_MASK = (1 << 64) - 1
_UINT32_MASK = (1 << 32) - 1


class ProtoType(IntEnum):
    """Which field numbering a tile uses."""

    MAPBOX = 0
    LK = 1


class WireType(IntEnum):
    """Protocol-buffer wire types."""

    VARINT = 0
    FIXED64 = 1
    BYTES = 2
    FIXED32 = 5


@dataclass(frozen=True)
class ProtoValue:
    string_value: int
    float_value: int
    double_value: int
    int_value: int
    uint_value: int
    sint_value: int
    bool_value: int


@dataclass(frozen=True)
class ProtoFeature:
    id: int
    tags: int
    type: int
    geometry: int


@dataclass(frozen=True)
class ProtoLayer:
    version: int
    name: int
    features: int
    keys: int
    values: int
    extent: int


@dataclass(frozen=True)
class Proto:
    layers: int
    layer: ProtoLayer
    feature: ProtoFeature
    value: ProtoValue


_VALUE_FIELDS = ProtoValue(
    string_value=1,
    float_value=2,
    double_value=3,
    int_value=4,
    uint_value=5,
    sint_value=6,
    bool_value=7,
)

MAPBOX_PROTO = Proto(
    layers=3,
    layer=ProtoLayer(version=15, name=1, features=2, keys=3, values=4, extent=5),
    feature=ProtoFeature(id=1, tags=2, type=3, geometry=4),
    value=_VALUE_FIELDS,
)

LK_PROTO = Proto(
    layers=2,
    layer=ProtoLayer(version=15, name=1, features=2, keys=4, values=5, extent=6),
    feature=ProtoFeature(id=1, tags=7, type=6, geometry=2),
    value=_VALUE_FIELDS,
)


def get_proto(proto_type: ProtoType | int) -> Proto:
    """Return the field layout for a proto type; unknown types get the Mapbox layout."""
    if proto_type == ProtoType.LK:
        return LK_PROTO
    return MAPBOX_PROTO


def encode_varint(value: int) -> bytes:
    """Encode an integer as a base-128 varint; negatives use 64-bit two's complement."""
    value &= _UINT64_MASK
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def tag_and_type(tag: int, wire_type: int) -> int:
    """Return the single key byte for a field number and wire type."""
    return ((tag << 3) | int(wire_type)) & 0xFF


class PbfReader:
    """Sequential reader over protocol-buffer encoded bytes."""

    def __init__(self, data: bytes) -> None:
        self.data = bytes(data)
        self.pos = 0

    @property
    def length(self) -> int:
        return len(self.data)

    def _take(self, size: int) -> bytes:
        end = self.pos + size
        if size < 0 or end > len(self.data):
            raise ValueError("unexpected end of buffer")
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def read_tag(self) -> tuple[int, int]:
        """Read a field key; at the end of the buffer (0, 0) is returned."""
        if self.pos >= len(self.data):
            return 0, 0
        key = self.read_varint()
        return key >> 3, key & 0x7

    def read_varint(self) -> int:
        result = 0
        shift = 0
        while True:
            if self.pos >= len(self.data):
                raise ValueError("truncated varint")
            byte = self.data[self.pos]
            self.pos += 1
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return result & _UINT64_MASK
            shift += 7
            if shift >= 70:
                raise ValueError("varint too long")

    def read_string(self) -> str:
        size = self.read_varint()
        return self._take(size).decode("utf-8", errors="replace")

    def read_float(self) -> float:
        return struct.unpack("<f", self._take(4))[0]

    def read_double(self) -> float:
        return struct.unpack("<d", self._take(8))[0]

    def read_int64(self) -> int:
        value = self.read_varint()
        return value - (1 << 64) if value >= 1 << 63 else value

    def read_uint64(self) -> int:
        return self.read_varint()

    def read_bool(self) -> bool:
        return self.read_varint() != 0

    def read_packed_uint32(self) -> list[int]:
        size = self.read_varint()
        end = self.pos + size
        if end > len(self.data):
            raise ValueError("unexpected end of buffer")
        values = []
        while self.pos < end:
            values.append(self.read_varint() & _UINT32_MASK)
        return values


class PbfWriter:
    """Accumulates protocol-buffer encoded fields."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def write_tag(self, tag: int, wire_type: int) -> None:
        self._buf += encode_varint((tag << 3) | int(wire_type))

    def write_varint(self, tag: int, value: int) -> None:
        self.write_tag(tag, WireType.VARINT)
        self._buf += encode_varint(value)

    def write_uint64(self, tag: int, value: int) -> None:
        self.write_varint(tag, value)

    def write_string(self, tag: int, value: str) -> None:
        self.write_message(tag, value.encode("utf-8"))

    def write_packed_uint32(self, tag: int, values: Iterable[int]) -> None:
        body = b"".join(encode_varint(v & _UINT32_MASK) for v in values)
        self.write_message(tag, body)

    def write_raw(self, data: bytes) -> None:
        self._buf += data

    def write_message(self, tag: int, data: bytes) -> None:
        self.write_tag(tag, WireType.BYTES)
        self._buf += encode_varint(len(data))
        self._buf += data

    def finish(self) -> bytes:
        return bytes(self._buf)