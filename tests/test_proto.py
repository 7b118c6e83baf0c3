import struct

import pytest

from mapboxkit.mvt.proto import (
    LK_PROTO,
    MAPBOX_PROTO,
    PbfReader,
    PbfWriter,
    ProtoType,
    WireType,
    encode_varint,
    get_proto,
    tag_and_type,
)


def test_encode_varint_documented_example():
    assert encode_varint(300) == b"\xac\x02"


def test_tag_and_type_layers_key():
    assert tag_and_type(MAPBOX_PROTO.layers, WireType.BYTES) == 26


def test_get_proto_selects_layout():
    assert get_proto(ProtoType.LK) is LK_PROTO
    assert get_proto(ProtoType.MAPBOX) is MAPBOX_PROTO
    assert get_proto(ProtoType.LK).layer.keys == 4
    assert get_proto(ProtoType.MAPBOX).feature.geometry == 4


@pytest.mark.parametrize("value", [0, 1, 127, 128, 300, 2**32 - 1, 2**63])
def test_varint_round_trip(value):
    writer = PbfWriter()
    writer.write_uint64(5, value)
    reader = PbfReader(writer.finish())
    assert reader.read_tag() == (5, WireType.VARINT)
    assert reader.read_uint64() == value
    assert reader.pos == reader.length


@pytest.mark.parametrize("value", [-1, -300, -(2**40)])
def test_negative_int64_round_trip(value):
    writer = PbfWriter()
    writer.write_varint(4, value)
    reader = PbfReader(writer.finish())
    reader.read_tag()
    assert reader.read_int64() == value


def test_string_round_trip():
    writer = PbfWriter()
    writer.write_string(1, "BIG SANDY RIVER RD")
    reader = PbfReader(writer.finish())
    assert reader.read_tag() == (1, WireType.BYTES)
    assert reader.read_string() == "BIG SANDY RIVER RD"


def test_packed_round_trip():
    values = [9, 4096, 2**32 - 1, 0, 15]
    writer = PbfWriter()
    writer.write_packed_uint32(4, values)
    reader = PbfReader(writer.finish())
    assert reader.read_tag() == (4, WireType.BYTES)
    assert reader.read_packed_uint32() == values


def test_nested_message_round_trip():
    inner = PbfWriter()
    inner.write_string(1, "Test")
    inner.write_uint64(5, 4096)
    outer = PbfWriter()
    outer.write_message(3, inner.finish())
    reader = PbfReader(outer.finish())
    assert reader.read_tag() == (3, WireType.BYTES)
    size = reader.read_varint()
    nested = PbfReader(reader.data[reader.pos:reader.pos + size])
    nested.read_tag()
    assert nested.read_string() == "Test"
    nested.read_tag()
    assert nested.read_uint64() == 4096


def test_float_and_double_and_bool():
    data = struct.pack("<f", 1.5) + struct.pack("<d", 64.1) + encode_varint(1)
    reader = PbfReader(data)
    assert reader.read_float() == 1.5
    assert reader.read_double() == 64.1
    assert reader.read_bool() is True


def test_write_raw_and_tag_bytes():
    writer = PbfWriter()
    writer.write_tag(2, WireType.BYTES)
    writer.write_raw(b"\x01\x02")
    assert writer.finish() == bytes([tag_and_type(2, WireType.BYTES), 1, 2])


def test_truncated_varint_raises():
    with pytest.raises(ValueError):
        PbfReader(b"\x80").read_varint()


def test_string_past_end_raises():
    with pytest.raises(ValueError):
        PbfReader(encode_varint(10) + b"abc").read_string()


def test_read_tag_at_end():
    reader = PbfReader(b"")
    assert reader.read_tag() == (0, 0)