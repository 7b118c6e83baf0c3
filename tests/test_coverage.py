import json
import struct

import pytest

from mapboxkit.font.coverage import (
    FontCoverage,
    FontParseError,
    font_codepoints,
    load_font_coverage,
)


def _ttf(groups):
    sub = struct.pack(">HHIII", 12, 0, 16 + 12 * len(groups), 0, len(groups))
    for start, end, glyph in groups:
        sub += struct.pack(">III", start, end, glyph)
    cmap = struct.pack(">HH", 0, 1) + struct.pack(">HHI", 3, 10, 12) + sub
    header = struct.pack(">IHHHH", 0x00010000, 1, 16, 0, 0)
    record = struct.pack(">4sIII", b"cmap", 0, 12 + 16, len(cmap))
    return header + record + cmap


LANGS = json.dumps(
    [
        {"id": "en", "name": "English", "codepoints": {"exemplarCharacters": [65, 66, 67, 68]}},
        {"id": "xx", "name": "Other", "codepoints": {"exemplarCharacters": [1000]}},
    ]
)


def test_font_codepoints_reads_format12():
    assert font_codepoints(_ttf([(65, 67, 1)])) == [65, 66, 67]


def test_font_codepoints_rejects_garbage():
    with pytest.raises(FontParseError):
        font_codepoints(b"\x00\x01\x00\x00\x00\x00")


def test_coverage_from_ttf_bytes():
    cov = load_font_coverage(LANGS)
    result = cov.coverage(_ttf([(65, 66, 1)]), _ttf([(66, 68, 1)]))
    en = result[0]
    assert en.total == 4
    assert en.coverages == [2, 2]
    assert en.count == 4
    assert result[1].count == 0
    assert result[1].coverages == [0, 0]


def test_coverage_fonts_does_not_double_count():
    cov = load_font_coverage(LANGS)
    result = cov.coverage_fonts([65], [65, 66])
    assert result[0].coverages == [1, 1]
    assert result[0].to_dict()["id"] == "en"


def test_load_requires_list():
    with pytest.raises(ValueError):
        load_font_coverage('{"a": 1}')


def test_empty_coverage():
    assert FontCoverage().coverage_fonts([1]) == []