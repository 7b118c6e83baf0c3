"""Terrain-RGB and Terrarium elevation tiles."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import BinaryIO, Protocol, Sequence

from PIL import Image

Pixel = tuple[int, int, int, int]

UNPACK_MAPBOX = (6553.6, 25.6, 0.1, 10000.0)
UNPACK_TERRARIUM = (256.0, 1.0, 1.0 / 256.0, 32768.0)


class DEMEncoding(IntEnum):
    """How heights are packed into RGB."""

    MAPBOX = 0
    TERRARIUM = 1


@dataclass
class DEMData:
    """A square DEM with a one-pixel border around it."""

    encoding: int
    dim: int
    stride: int
    data: list[Pixel]

    def _idx(self, x: int, y: int) -> int:
        return (y + 1) * self.stride + (x + 1)

    def backfill_border(self, other: DEMData, dx: int, dy: int) -> None:
        """Copy the edge of a neighbouring tile into this tile's border."""
        if self.dim == other.dim:
            return
        x_min, x_max = dx * self.dim, dx * self.dim + self.dim
        y_min, y_max = dy * self.dim, dy * self.dim + self.dim
        if dx == -1:
            x_min = x_max - 1
        elif dx == 1:
            x_max = x_min + 1
        if dy == -1:
            y_min = y_max - 1
        elif dy == 1:
            y_max = y_min + 1
        ox, oy = -dx * self.dim, -dy * self.dim
        for y in range(y_min, y_max):
            for x in range(x_min, x_max):
                self.data[self._idx(x, y)] = other.data[self._idx(x + ox, y + oy)]

    def _unpack(self) -> tuple[float, float, float, float]:
        return UNPACK_MAPBOX if self.encoding == DEMEncoding.MAPBOX else UNPACK_TERRARIUM

    def get(self, x: int, y: int) -> float:
        """Return the height at a pixel."""
        unpack = self._unpack()
        r, g, b, _ = self.data[self._idx(x, y)]
        return r * unpack[0] + g * unpack[1] + b * unpack[2] - unpack[3]

    def get_data(self) -> list[float]:
        """Return all heights, indexed by ``x * dim + y``."""
        return [self.get(x, y) for x in range(self.dim) for y in range(self.dim)]

    def save(self, path: str | Path) -> None:
        """Write the tile (without border) as an image."""
        img = Image.new("RGBA", (self.dim, self.dim))
        img.putdata([self.data[self._idx(x, y)] for y in range(self.dim) for x in range(self.dim)])
        img.save(path)


def new_dem_data(data: Sequence[Pixel], encoding: int = DEMEncoding.MAPBOX) -> DEMData:
    """Build a bordered DEM from row-major RGBA pixels of a square tile."""
    if len(data) % 2 != 0:
        raise ValueError("pixel count must be even")
    dim = int(math.sqrt(len(data)))
    stride = dim + 2
    img: list[Pixel] = [(0, 0, 0, 0)] * (stride * stride)
    for r in range(dim):
        for c in range(dim):
            img[(r + 1) * stride + c + 1] = tuple(data[r * dim + c])  # type: ignore[assignment]
    for x in range(dim):
        row = stride * (x + 1)
        img[row] = img[row + 1]
        img[row + dim + 1] = img[row + dim]
    for r in range(stride):
        img[r] = img[stride + r]
        img[stride * (dim + 1) + r] = img[stride * dim + r]
    return DEMData(encoding=int(encoding), dim=dim, stride=stride, data=img)


def load_dem_data(source: str | Path | BinaryIO, encoding: int = DEMEncoding.MAPBOX) -> DEMData:
    """Load a square elevation image from a path or binary stream."""
    with Image.open(source) as img:
        if img.width != img.height:
            raise ValueError("image format error: DEM tiles must be square")
        pixels = list(img.convert("RGBA").getdata())
    return new_dem_data(pixels, encoding)


class DemPacker(Protocol):
    def pack(self, height: float) -> Pixel: ...


def _byte(value: float) -> int:
    return int(value) & 0xFF


@dataclass
class MapboxPacker:
    """Packs heights as Mapbox Terrain-RGB."""

    base: float = 0.0
    interval: float = 0.0

    def pack(self, height: float) -> Pixel:
        val = (height + UNPACK_MAPBOX[3]) / UNPACK_MAPBOX[2]
        f = math.floor
        r = (f(f(val / 256) / 256) / 256 - f(f(f(val / 256) / 256) / 256)) * 256
        g = (f(val / 256) / 256 - f(f(val / 256) / 256)) * 256
        b = (val / 256 - f(val / 256)) * 256
        return (_byte(r), _byte(g), _byte(b), 255)


@dataclass
class TerrariumPacker:
    """Packs heights in the Terrarium scheme."""

    def pack(self, height: float) -> Pixel:
        val = height + UNPACK_TERRARIUM[3]
        r = math.floor(val / 256)
        g = int(math.fmod(int(val), 256))
        b = int(math.fmod(int(val * 256), 25))
        return (_byte(r), _byte(g), _byte(b), 255)


def dem_encode(path: str | Path, packer: DemPacker) -> Image.Image:
    """Pack the first band of a floating-point GeoTIFF into an RGBA image."""
    with Image.open(path) as src:
        band = src.convert("F")
        width, height = band.size
        heights = list(band.getdata())
    if not heights:
        raise ValueError("tiff error: no raster data")
    img = Image.new("RGBA", (width, height))
    img.putdata([packer.pack(float(h)) for h in heights])
    return img