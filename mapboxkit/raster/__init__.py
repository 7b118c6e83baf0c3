"""Terrain DEM tiles in Mapbox and Terrarium encodings."""