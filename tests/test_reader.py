import pytest

from mapboxkit.geometry import Feature, Geometry, TileID, tile_bounds
from mapboxkit.mvt.lazy import TileDecodeError, project
from mapboxkit.mvt.proto import ProtoType
from mapboxkit.mvt.reader import read_raw_tile, read_tile
from mapboxkit.mvt.writer import new_config, write_layer

SAMPLE_TILE = bytes([0x1a, 0xc3, 0x2, 0xa, 0x4, 0x54, 0x65, 0x73, 0x74, 0x12, 0x3c, 0x12, 0x1a, 0x0, 0x0, 0x1, 0x1, 0x2, 0x2, 0x3, 0x3, 0x4, 0x4, 0x5, 0x5, 0x6, 0x6, 0x7, 0x7, 0x8, 0x8, 0x9, 0x9, 0xa, 0xa, 0xb, 0xa, 0xc, 0xb, 0x18, 0x2, 0x22, 0x1c, 0x9, 0x80, 0x41, 0xde, 0x3, 0x42, 0x75, 0x8d, 0x1, 0xab, 0x1, 0x71, 0x5d, 0x5b, 0xa9, 0x1, 0x83, 0x1, 0x8f, 0x1, 0x57, 0xdb, 0x2, 0x69, 0x43, 0x21, 0x1d, 0x19, 0x1a, 0x7, 0x52, 0x4f, 0x55, 0x54, 0x45, 0x49, 0x44, 0x1a, 0x8, 0x53, 0x75, 0x62, 0x52, 0x6f, 0x75, 0x74, 0x65, 0x1a, 0xa, 0x43, 0x6f, 0x75, 0x6e, 0x74, 0x79, 0x43, 0x6f, 0x64, 0x65, 0x1a, 0x8, 0x44, 0x69, 0x73, 0x74, 0x72, 0x69, 0x63, 0x74, 0x1a, 0x6, 0x4f, 0x4e, 0x45, 0x57, 0x41, 0x59, 0x1a, 0x5, 0x4c, 0x61, 0x62, 0x65, 0x6c, 0x1a, 0x5, 0x52, 0x6f, 0x75, 0x74, 0x65, 0x1a, 0xa, 0x53, 0x69, 0x67, 0x6e, 0x53, 0x79, 0x73, 0x74, 0x65, 0x6d, 0x1a, 0x3, 0x45, 0x4d, 0x50, 0x1a, 0xa, 0x53, 0x68, 0x61, 0x70, 0x65, 0x5f, 0x4c, 0x65, 0x6e, 0x67, 0x1a, 0x3, 0x42, 0x4d, 0x50, 0x1a, 0x8, 0x53, 0x75, 0x70, 0x70, 0x43, 0x6f, 0x64, 0x65, 0x1a, 0xa, 0x53, 0x74, 0x72, 0x65, 0x65, 0x74, 0x4e, 0x61, 0x6d, 0x65, 0x22, 0xf, 0xa, 0xd, 0x35, 0x30, 0x34, 0x30, 0x30, 0x35, 0x32, 0x36, 0x35, 0x30, 0x30, 0x30, 0x30, 0x22, 0x9, 0x19, 0x0, 0x0, 0x0, 0x0, 0x0, 0x40, 0x50, 0x40, 0x22, 0x9, 0x19, 0x0, 0x0, 0x0, 0x0, 0x0, 0x0, 0x49, 0x40, 0x22, 0x9, 0x19, 0x0, 0x0, 0x0, 0x0, 0x0, 0x0, 0x0, 0x40, 0x22, 0x2, 0x38, 0x0, 0x22, 0x7, 0xa, 0x5, 0x35, 0x32, 0x2f, 0x36, 0x35, 0x22, 0x9, 0x19, 0x0, 0x0, 0x0, 0x0, 0x0, 0x0, 0x4a, 0x40, 0x22, 0x3, 0xa, 0x1, 0x34, 0x22, 0x9, 0x19, 0x40, 0x96, 0x4f, 0xa0, 0x99, 0x99, 0xd, 0x40, 0x22, 0x9, 0x19, 0x91, 0x80, 0xf2, 0xf3, 0x68, 0xbb, 0xb6, 0x40, 0x22, 0x9, 0x19, 0x0, 0x0, 0x0, 0x0, 0x0, 0x0, 0x0, 0x0, 0x22, 0x14, 0xa, 0x12, 0x42, 0x49, 0x47, 0x20, 0x53, 0x41, 0x4e, 0x44, 0x59, 0x20, 0x52, 0x49, 0x56, 0x45, 0x52, 0x20, 0x52, 0x44, 0x78, 0x2])
SAMPLE_ID = TileID(x=1107, y=1578, z=12)

WORLD_HALF = TileID(x=0, y=0, z=1)


def _features():
    return [
        Feature(Geometry("Point", [-90.0, 45.0]), {"name": "a", "rank": 3}, id=7),
        Feature(
            Geometry("LineString", [[-150.0, 10.0], [-100.0, 40.0], [-30.0, 60.0]]),
            {"name": "b", "open": True},
        ),
        Feature(
            Geometry(
                "Polygon",
                [[[-120.0, 20.0], [-60.0, 20.0], [-60.0, 50.0], [-120.0, 50.0], [-120.0, 20.0]]],
            ),
            {"area": 1.5},
        ),
    ]


def test_sample_tile_properties():
    features = read_tile(SAMPLE_TILE, SAMPLE_ID, ProtoType.MAPBOX)
    assert len(features) == 1
    props = features[0].properties
    assert props["layer"] == "Test"
    assert props["ROUTEID"] == "5040052650000"
    assert props["SubRoute"] == 65.0
    assert props["CountyCode"] == 50.0
    assert props["District"] == 2.0
    assert props["ONEWAY"] is False
    assert props["Label"] == "52/65"
    assert props["SignSystem"] == "4"
    assert props["StreetName"] == "BIG SANDY RIVER RD"
    assert props["SuppCode"] == 0.0


def test_sample_tile_geometry_projected():
    feature = read_tile(SAMPLE_TILE, SAMPLE_ID)[0]
    assert feature.geometry.type == "LineString"
    assert len(feature.geometry.coordinates) == 9
    size = 4096.0 * 2**12
    expected = project([[4160.0, 239.0]], 4096.0 * 1107, 4096.0 * 1578, size)[0]
    assert feature.geometry.coordinates[0] == pytest.approx(expected)
    assert feature.id is None


def test_sample_raw_tile():
    features, corners = read_raw_tile(SAMPLE_TILE, SAMPLE_ID)
    assert len(features) == 1
    assert features[0].geometry.coordinates[0] == [4160.0, 239.0]
    assert corners[0][0] == -82.705078125
    bounds = tile_bounds(SAMPLE_ID)
    assert corners[0][1] == pytest.approx(bounds.n)
    assert corners[1][0] == pytest.approx(bounds.e)
    assert corners[1][1] == pytest.approx(bounds.s)


def test_round_trip_write_then_read():
    data = write_layer(_features(), new_config("new", WORLD_HALF))
    features = read_tile(data, WORLD_HALF)
    assert [f.geometry.type for f in features] == ["Point", "LineString", "Polygon"]
    point = features[0]
    assert point.id == 7
    assert point.properties == {"name": "a", "rank": 3, "layer": "new"}
    assert point.geometry.coordinates == pytest.approx([-90.0, 45.0], abs=0.1)
    line = features[1]
    assert line.properties["open"] is True
    assert line.geometry.coordinates[-1] == pytest.approx([-30.0, 60.0], abs=0.1)
    polygon = features[2]
    assert polygon.properties["area"] == 1.5
    ring = polygon.geometry.coordinates[0]
    assert ring[0] == ring[-1]
    assert len(ring) == 5


def test_round_trip_lk_proto():
    config = new_config("LK", WORLD_HALF, ProtoType.LK)
    data = write_layer(_features(), config)
    lk = read_tile(data, WORLD_HALF, ProtoType.LK)
    assert len(lk) == 3
    assert lk[1].properties["name"] == "b"
    assert lk[1].properties["layer"] == "LK"


def test_rewrite_keeps_feature_count():
    first = write_layer(_features(), new_config("LK", WORLD_HALF, ProtoType.LK))
    feats1 = read_tile(first, WORLD_HALF, ProtoType.LK)
    second = write_layer(feats1, new_config("LK", WORLD_HALF, ProtoType.MAPBOX))
    feats2 = read_tile(second, WORLD_HALF, ProtoType.MAPBOX)
    assert len(feats1) == len(feats2)
    assert [f.properties["name"] for f in feats2 if "name" in f.properties] == ["a", "b"]


def test_multiple_layers_are_named():
    data = write_layer(_features()[:1], new_config("one", WORLD_HALF)) + write_layer(
        _features()[1:], new_config("two", WORLD_HALF)
    )
    features = read_tile(data, WORLD_HALF)
    assert [f.properties["layer"] for f in features] == ["one", "two", "two"]


def test_raw_tile_coordinates_in_tile_space():
    data = write_layer(_features(), new_config("new", WORLD_HALF))
    features, corners = read_raw_tile(data, WORLD_HALF)
    x, y = features[0].geometry.coordinates
    assert 0 <= x <= 4096 and 0 <= y <= 4096
    assert x == 2048.0
    assert corners[0][0] == -180.0
    assert corners[1][0] == pytest.approx(0.0)


def test_empty_tile_raises():
    with pytest.raises(TileDecodeError):
        read_tile(b"", SAMPLE_ID)
    with pytest.raises(TileDecodeError):
        read_raw_tile(b"", SAMPLE_ID)


def test_truncated_tile_raises():
    with pytest.raises(TileDecodeError):
        read_tile(SAMPLE_TILE[:40], SAMPLE_ID)
    with pytest.raises(TileDecodeError):
        read_raw_tile(b"\x1a\x05\x0a", SAMPLE_ID)