"""Tools for Mapbox vector tiles, SDF glyphs, font coverage, DEM tiles and tileset recipes."""

__version__ = "0.1.0"