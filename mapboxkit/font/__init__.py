"""Font coverage measurement and signed-distance-field glyph building."""