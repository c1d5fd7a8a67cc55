from __future__ import annotations

from typing import Tuple
import math

from common.types import AffineTransform, GeoBoundingBox


# --- Spherical web-mercator (EPSG:3857) constants ---
EARTH_RADIUS_M = 6378137.0                   # WGS84 equatorial radius (m)
HALF_CIRCUMFERENCE = math.pi * EARTH_RADIUS_M  # world extent is +/- this on both axes
MAX_MERCATOR_LAT = 85.0511287798066


# -------------------------
# Tile grid
# -------------------------
def tile_bounds_3857(col: int, row: int, zoom: int, tile_size: int = 256) -> GeoBoundingBox:
    """
    Projected bounds of slippy-map tile (zoom, col, row) in EPSG:3857 metres.

    Rows count downward from the north edge. No range checks: addresses outside
    the grid produce boxes outside the world extent.
    """
    size = float(tile_size)
    total_pixels = size * (2.0 ** zoom)
    pixel_size = (2.0 * HALF_CIRCUMFERENCE) / total_pixels

    min_x = col * size * pixel_size - HALF_CIRCUMFERENCE
    max_y = HALF_CIRCUMFERENCE - row * size * pixel_size
    max_x = min_x + size * pixel_size
    min_y = max_y - size * pixel_size
    return GeoBoundingBox(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y)


def lonlat_to_3857(lon: float, lat: float) -> Tuple[float, float]:
    """WGS84 lon/lat (deg) to spherical mercator x/y (m). Latitude is clipped to the mercator limit."""
    lat = max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, lat))
    x = EARTH_RADIUS_M * math.radians(lon)
    y = EARTH_RADIUS_M * math.log(math.tan(math.pi / 4.0 + math.radians(lat) / 2.0))
    return x, y


# -------------------------
# Pixel/Geo helpers for rasters
# -------------------------
def geo_to_pixel(gx: float, gy: float, transform: AffineTransform) -> Tuple[float, float]:
    """
    Unrounded pixel coordinates of a projected point (inverse of the affine mapping).
    No bounds checking; points outside the raster give negative or out-of-range values.
    """
    x = (gx - transform.origin_x) / transform.pixel_width
    y = (gy - transform.origin_y) / transform.pixel_height
    return x, y
