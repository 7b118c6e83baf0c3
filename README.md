# mapboxkit

A Python toolkit for Mapbox-style map data:

- **Vector tiles** (`mapboxkit.mvt`): encode GeoJSON-like features into
  Mapbox Vector Tile layers and decode them again, either all at once or
  lazily, feature by feature. Both the standard Mapbox field layout and an
  alternative "LK" field layout (`ProtoType.LK`) are supported.
- **Fonts** (`mapboxkit.font`): render signed-distance-field glyphs from
  TrueType fonts and measure how well a set of fonts covers the exemplar
  characters of a list of languages.
- **Terrain** (`mapboxkit.raster`): load Mapbox Terrain-RGB or Terrarium
  encoded DEM tiles, read elevations, backfill borders from neighbouring
  tiles, and pack elevations into RGBA pixels.
- **Recipes** (`mapboxkit.recipe`): load and serialise tileset recipes.

## Requirements

Python 3.10 or later, and Pillow.

## Usage

### Geometry and tiles

`mapboxkit.geometry` holds the shared types: `TileID(x, y, z)`,
`Extrema(w, s, e, n)`, `Geometry(type, coordinates)` with GeoJSON type names
and nested coordinate lists, and `Feature(geometry, properties, id)`.
`tile_bounds(tile)` returns a tile's bounds in degrees, and
`Geometry.bounding_box()` returns `((min_x, min_y), (max_x, max_y))`.

### Writing vector tiles

```python
from mapboxkit.geometry import Feature, Geometry, TileID
from mapboxkit.mvt.proto import ProtoType
from mapboxkit.mvt.writer import new_config, write_layer

tile = TileID(x=0, y=0, z=0)
features = [
    Feature(Geometry("Point", [10.0, 20.0]), {"name": "a"}, id=1),
    Feature(Geometry("LineString", [[0.0, 0.0], [30.0, 40.0]]), {"name": "b"}),
]
data = write_layer(features, new_config("places", tile, ProtoType.MAPBOX))
```

`write_layer` returns one encoded layer; several encoded layers can be
concatenated to form a whole tile. For finer control, `LayerWriter` offers
`add_feature`, `add_feature_raw` (for geometry that is already a command
stream) and `flush`.

Geometry commands can also be produced directly with a `Cursor` from
`mapboxkit.mvt.cursor`: `new_cursor(tile, extent)` creates one, and its
`make_*_float` methods turn longitude/latitude coordinates into zig-zag
encoded command streams in `cursor.geometry`.

### Reading vector tiles

```python
from mapboxkit.mvt.reader import read_tile, read_raw_tile

features = read_tile(data, tile, ProtoType.MAPBOX)
raw_features, corners = read_raw_tile(data, tile, ProtoType.MAPBOX)
```

`read_tile` projects every feature to longitude and latitude and stores the
layer name in each feature's `layer` property. `read_raw_tile` keeps tile
coordinates and also returns the projected corners of the tile. Both raise
`TileDecodeError` for malformed data or a tile without features.

For lazy access, `new_tile(data, proto_type)` in `mapboxkit.mvt.lazy`
indexes the layers into `Tile.layer_map`. Iterating a `Layer` yields
`LazyFeature` objects whose geometry is decoded only on request, through
`load_geometry_raw()`, `load_geometry()`, `load_geometry_scaled(dim)` or
`to_geojson(tile)`. `Tile.render()` re-encodes the indexed layers.

### Simplifying lines

```python
from mapboxkit.mvt.simplify import simplify

# Flat list of x, y, importance triples; importance values are filled in.
coords = [0.0, 0.0, 1.0, 0.5, 0.1, 0.0, 1.0, 0.0, 1.0]
simplify(coords, 0, len(coords) - 3, 0.001 * 0.001)
```

### Signed-distance-field glyphs

```python
from mapboxkit.font.sdf import SDFBuilder, draw_glyph, save_png

builder = SDFBuilder("NotoSans-Regular.ttf", 24, 3)
stack = builder.glyphs(0, 255)        # a Fontstack of Glyph objects

glyph = builder.glyph(ord("A"))       # None when the font cannot draw it
save_png("A.png", draw_glyph(glyph, True))
```

`calc_sdf(img, radius, cutoff)` computes a distance field for any Pillow
image from its alpha channel.

### Font coverage

```python
from pathlib import Path
from mapboxkit.font.coverage import load_font_coverage

coverage = load_font_coverage(Path("languages.json").read_bytes())
for result in coverage.coverage(Path("NotoSans-Regular.ttf").read_bytes()):
    print(result.name, result.count, "/", result.total)
```

Fonts are measured in fallback order: each font is credited only with the
characters the fonts before it did not cover. `coverage_fonts` takes code
point collections instead of font files, and `font_codepoints(ttf)` lists
the code points a font maps.

### Terrain tiles

```python
from mapboxkit.raster.dem import DEMEncoding, MapboxPacker, load_dem_data

dem = load_dem_data("terrain.png", DEMEncoding.MAPBOX)
print(dem.get(0, 0))
heights = dem.get_data()

rgba = MapboxPacker().pack(200.0)
```

`dem_encode(path, packer)` packs a single-band floating-point image into an
RGBA image with `MapboxPacker` or `TerrariumPacker`.

### Recipes

```python
from mapboxkit.recipe import load_recipe

recipe = load_recipe('{"version": 1, "layers": {"roads": {"source": "src", "minzoom": 0, "maxzoom": 14}}}')
print(recipe.to_dict())
```

## What this package does not do

- It does not read or write MBTiles archives or any other tile storage; tiles
  are handled as bytes in memory.
- It does not talk to the Mapbox web API.
- Glyph ranges are returned as `Fontstack` objects; they are not serialised
  to protobuf `.pbf` files.

## Running the tests

Install the `test` extra and run `pytest` from the project directory.