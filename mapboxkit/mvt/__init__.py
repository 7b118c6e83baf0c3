"""Encoding, decoding and simplifying Mapbox Vector Tiles."""