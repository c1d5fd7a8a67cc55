"""
Raster Tile Server Test Suite

Structure:
- unit/: window resolution, compositing, encoding, pool and HTTP layer tests
  (in-memory rasters from fakes.py, no GDAL files needed)
- integration/: rasterio backend against GeoTIFFs written to a temp dir
"""
