"""Signed distance field glyph rendering for map label fonts."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from PIL import Image, ImageDraw, ImageFont

from mapboxkit.font.coverage import font_codepoints

INF = 1e20
DEFAULT_FONT_SIZE = 64.0
DEFAULT_BUFFER = 3.0


@dataclass
class Glyph:
    """One rendered glyph with its metrics and SDF bitmap."""

    id: int
    width: int
    height: int
    left: int
    top: int
    advance: int
    bitmap: bytes = b""


@dataclass
class Fontstack:
    """The glyphs of one font for one code point range."""

    name: str
    range: str
    glyphs: list[Glyph] = field(default_factory=list)


def _round(value: float) -> float:
    return math.floor(value + 0.5) if value >= 0 else -math.floor(-value + 0.5)


def edt1d(f: Sequence[float], n: int) -> list[float]:
    """1D squared distance transform of the first ``n`` values of ``f``."""
    d = [0.0] * n
    v = [0] * n
    z = [0.0] * (n + 1)
    z[0] = -INF
    z[1] = INF
    k = 0
    for q in range(1, n):
        while True:
            s = ((f[q] + q * q) - (f[v[k]] + v[k] * v[k])) / (2 * q - 2 * v[k])
            if s <= z[k]:
                k -= 1
                continue
            break
        k += 1
        v[k] = q
        z[k] = s
        z[k + 1] = INF
    k = 0
    for q in range(n):
        while z[k + 1] < q:
            k += 1
        d[q] = (q - v[k]) * (q - v[k]) + f[v[k]]
    return d


def edt(data: list[float], width: int, height: int) -> None:
    """2D Euclidean distance transform, in place; results are distances."""
    for x in range(width):
        column = edt1d(data[x::width], height)
        data[x::width] = column
    for y in range(height):
        row = edt1d(data[y * width : (y + 1) * width], width)
        data[y * width : (y + 1) * width] = [math.sqrt(value) for value in row]


def _alphas(img: Image.Image) -> list[float]:
    if img.mode == "L":
        channel = img
    else:
        channel = img.convert("RGBA").getchannel("A")
    return [value / 255.0 for value in channel.getdata()]


def calc_sdf(img: Image.Image, radius: float = 8.0, cutoff: float = 0.25) -> bytes:
    """Return the SDF of the image's alpha as one byte per pixel, row-major."""
    width, height = img.size
    outer: list[float] = []
    inner: list[float] = []
    for alpha in _alphas(img):
        if alpha == 1:
            outer.append(0.0)
            inner.append(INF)
        elif alpha == 0:
            outer.append(INF)
            inner.append(0.0)
        else:
            outer.append(max(0.0, 0.5 - alpha) ** 2)
            inner.append(max(0.0, alpha - 0.5) ** 2)
    edt(outer, width, height)
    edt(inner, width, height)
    out = bytearray()
    for o, i in zip(outer, inner):
        distance = o - i
        out.append(int(max(0.0, min(255.0, _round(255 - 255 * (distance / radius + cutoff))))))
    return bytes(out)


def _smoothstep_alpha(e0: float, e1: float, x: float) -> int:
    a = max(min((x - e1) / (e1 - e0), 1.0), 0.0)
    return int((a * a * (3 - 2 * a)) * x) & 0xFF


def draw_glyph(glyph: Glyph, smoothstep: bool = False) -> Image.Image:
    """Render a glyph's SDF bitmap as a black RGBA image."""
    width = glyph.width + 6
    height = glyph.height + 6
    img = Image.new("RGBA", (width, height))
    pixels = []
    for value in glyph.bitmap[: width * height]:
        alpha = _smoothstep_alpha(136, 168, float(value)) if smoothstep else value
        pixels.append((0, 0, 0, alpha))
    img.putdata(pixels)
    return img


def save_png(path: str | Path, img: Image.Image) -> None:
    """Write an image as PNG."""
    img.save(path, "PNG")


class SDFBuilder:
    """Renders SDF glyphs of one TrueType font."""

    def __init__(
        self,
        font_path: str | Path,
        font_size: float = DEFAULT_FONT_SIZE,
        buffer: float = DEFAULT_BUFFER,
    ) -> None:
        self.font_size = font_size or DEFAULT_FONT_SIZE
        self.buffer = buffer or DEFAULT_BUFFER
        self.font = ImageFont.truetype(str(font_path), size=int(round(self.font_size)))
        self.codepoints = set(font_codepoints(Path(font_path).read_bytes()))
        ascent, descent = self.font.getmetrics()
        height = ascent + descent
        fixed = int(_round((height - (ascent + descent)) / 2)) + 1
        self.dot_start_y = height + descent + fixed

    @property
    def family(self) -> str:
        return " ".join(part for part in self.font.getname() if part)

    def glyph(self, codepoint: int) -> Glyph | None:
        """Render one code point; None when the font cannot draw it."""
        if codepoint == 0 or codepoint not in self.codepoints:
            return None
        char = chr(codepoint)
        x0, y0, x1, y1 = self.font.getbbox(char, anchor="ls")
        width, height = x1 - x0, y1 - y0
        if width <= 0 or height <= 0:
            return None
        buffer = int(self.buffer)
        img = Image.new("L", (width + buffer * 2, height + buffer * 2), 0)
        ImageDraw.Draw(img).text(
            (buffer - x0, buffer - y0), char, fill=255, font=self.font, anchor="ls"
        )
        return Glyph(
            id=codepoint,
            width=width,
            height=height,
            left=x0,
            top=-(self.dot_start_y + y0),
            advance=math.floor(self.font.getlength(char)),
            bitmap=calc_sdf(img, 8, 0.25),
        )

    def glyphs(self, start: int, end: int) -> Fontstack:
        """Render the code points in [start, end)."""
        stack = Fontstack(name=self.family, range=f"{start}-{end}")
        for codepoint in range(start, end):
            glyph = self.glyph(codepoint)
            if glyph is not None:
                stack.glyphs.append(glyph)
        return stack