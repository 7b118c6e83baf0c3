"""How far a set of fonts covers the exemplar characters of languages."""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence


class FontParseError(ValueError):
    """Raised when font bytes hold no usable character map."""


def _cmap_format4(data: bytes, offset: int) -> set[int]:
    seg_count = struct.unpack_from(">H", data, offset + 6)[0] // 2
    ends_at = offset + 14
    starts_at = ends_at + seg_count * 2 + 2
    deltas_at = starts_at + seg_count * 2
    ranges_at = deltas_at + seg_count * 2
    ends = struct.unpack_from(f">{seg_count}H", data, ends_at)
    starts = struct.unpack_from(f">{seg_count}H", data, starts_at)
    deltas = struct.unpack_from(f">{seg_count}h", data, deltas_at)
    ranges = struct.unpack_from(f">{seg_count}H", data, ranges_at)
    codes: set[int] = set()
    for seg, (start, end, delta, range_offset) in enumerate(zip(starts, ends, deltas, ranges)):
        for code in range(start, end + 1):
            if code == 0xFFFF:
                continue
            if range_offset == 0:
                glyph = (code + delta) & 0xFFFF
            else:
                at = ranges_at + seg * 2 + range_offset + (code - start) * 2
                if at + 2 > len(data):
                    continue
                glyph = struct.unpack_from(">H", data, at)[0]
                if glyph:
                    glyph = (glyph + delta) & 0xFFFF
            if glyph:
                codes.add(code)
    return codes


def _cmap_format12(data: bytes, offset: int) -> set[int]:
    groups = struct.unpack_from(">I", data, offset + 12)[0]
    codes: set[int] = set()
    for start, end, first_glyph in struct.iter_unpack(
        ">III", data[offset + 16 : offset + 16 + groups * 12]
    ):
        for code in range(start, end + 1):
            if first_glyph + (code - start):
                codes.add(code)
    return codes


def font_codepoints(ttf: bytes) -> list[int]:
    """Return the sorted Unicode code points mapped by a TrueType font."""
    data = bytes(ttf)
    try:
        num_tables = struct.unpack_from(">H", data, 4)[0]
        cmap_offset = None
        for tag, _, table_offset, _ in struct.iter_unpack(
            ">4sIII", data[12 : 12 + num_tables * 16]
        ):
            if tag == b"cmap":
                cmap_offset = table_offset
        if cmap_offset is None:
            raise FontParseError("font has no cmap table")
        count = struct.unpack_from(">H", data, cmap_offset + 2)[0]
        best: tuple[int, int] | None = None
        for platform, encoding, sub_offset in struct.iter_unpack(
            ">HHI", data[cmap_offset + 4 : cmap_offset + 4 + count * 8]
        ):
            at = cmap_offset + sub_offset
            fmt = struct.unpack_from(">H", data, at)[0]
            unicode_table = platform == 0 or (platform == 3 and encoding in (1, 10))
            if not unicode_table or fmt not in (4, 12):
                continue
            if best is None or (fmt == 12 and best[0] == 4):
                best = (fmt, at)
        if best is None:
            raise FontParseError("font has no Unicode character map")
        fmt, at = best
        codes = _cmap_format12(data, at) if fmt == 12 else _cmap_format4(data, at)
    except struct.error as exc:
        raise FontParseError("malformed font data") from exc
    return sorted(codes)


def _difference(a: Sequence[int], b: Iterable[int]) -> list[int]:
    present = set(b)
    return [item for item in a if item not in present]


@dataclass
class LanguageCoverage:
    """How many exemplar characters of a language each font adds."""

    name: str
    id: str
    total: int
    count: int
    coverages: list[int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "id": self.id,
            "total": self.total,
            "count": self.count,
            "coverages": list(self.coverages),
        }


@dataclass
class CodePoints:
    """The character sets of a language."""

    exemplar_characters: list[int] = field(default_factory=list)
    auxiliary: list[int] = field(default_factory=list)
    index: list[int] = field(default_factory=list)
    punctuation: list[int] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CodePoints:
        return cls(
            exemplar_characters=list(data.get("exemplarCharacters") or []),
            auxiliary=list(data.get("auxiliary") or []),
            index=list(data.get("index") or []),
            punctuation=list(data.get("punctuation") or []),
        )


@dataclass
class LanguageCodePoints:
    """A language and its character sets."""

    id: str
    name: str
    codepoints: CodePoints

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LanguageCodePoints:
        return cls(
            id=data.get("id", "") or "",
            name=data.get("name", "") or "",
            codepoints=CodePoints.from_dict(data.get("codepoints") or {}),
        )


@dataclass
class FontCoverage:
    """Language character sets against which fonts are measured."""

    languages: list[LanguageCodePoints] = field(default_factory=list)

    def _coverage(self, points: list[list[int]]) -> list[LanguageCoverage]:
        result = []
        for language in self.languages:
            exemplar = language.codepoints.exemplar_characters
            left = list(exemplar)
            coverages = []
            for font_points in points:
                remaining = _difference(left, font_points)
                coverages.append(len(left) - len(remaining))
                left = remaining
            result.append(
                LanguageCoverage(
                    name=language.name,
                    id=language.id,
                    total=len(exemplar),
                    count=sum(coverages),
                    coverages=coverages,
                )
            )
        return result

    def coverage(self, *args: bytes) -> list[LanguageCoverage]:
        """Measure the given TrueType font files, in fallback order."""
        return self._coverage([font_codepoints(ttf) for ttf in args])

    def coverage_fonts(self, *args: Iterable[int]) -> list[LanguageCoverage]:
        """Measure fonts given as their code point collections, in fallback order."""
        return self._coverage([list(points) for points in args])


def load_font_coverage(data: bytes | str) -> FontCoverage:
    """Load the language list from its JSON document."""
    document = json.loads(data)
    if not isinstance(document, list):
        raise ValueError("language list must be a JSON array")
    return FontCoverage([LanguageCodePoints.from_dict(item) for item in document])