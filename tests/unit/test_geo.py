"""
Unit tests for tile geolocation and pixel/geo helpers
"""

import math
import os
import sys

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.geo import (
    EARTH_RADIUS_M,
    HALF_CIRCUMFERENCE,
    geo_to_pixel,
    lonlat_to_3857,
    tile_bounds_3857,
)
from common.types import AffineTransform


class TestTileBounds:
    """Test cases for tile_bounds_3857"""

    def test_zoom_zero_spans_world(self):
        """Tile 0/0/0 covers the full web-mercator extent"""
        b = tile_bounds_3857(0, 0, 0, 256)
        assert HALF_CIRCUMFERENCE == pytest.approx(math.pi * EARTH_RADIUS_M)
        assert b.min_x == pytest.approx(-HALF_CIRCUMFERENCE)
        assert b.max_x == pytest.approx(HALF_CIRCUMFERENCE)
        assert b.min_y == pytest.approx(-HALF_CIRCUMFERENCE)
        assert b.max_y == pytest.approx(HALF_CIRCUMFERENCE)

    @pytest.mark.parametrize(
        "col,row,zoom,tile_size",
        [(0, 0, 0, 256), (1, 0, 1, 256), (3, 5, 4, 512), (1234, 987, 12, 256), (7, 7, 3, 100)],
    )
    def test_square_edges(self, col, row, zoom, tile_size):
        """Both edges equal tile_size * pixel_size"""
        b = tile_bounds_3857(col, row, zoom, tile_size)
        pixel_size = 2 * HALF_CIRCUMFERENCE / (tile_size * 2 ** zoom)
        assert b.max_x - b.min_x == pytest.approx(tile_size * pixel_size)
        assert b.max_y - b.min_y == pytest.approx(tile_size * pixel_size)

    def test_deterministic(self):
        """Same inputs give identical boxes"""
        assert tile_bounds_3857(5, 9, 6, 256) == tile_bounds_3857(5, 9, 6, 256)

    def test_zoom_one_quadrants(self):
        """Column grows eastward, row grows southward"""
        ne = tile_bounds_3857(1, 0, 1, 256)
        assert ne.min_x == pytest.approx(0.0, abs=1e-6)
        assert ne.max_x == pytest.approx(HALF_CIRCUMFERENCE)
        assert ne.min_y == pytest.approx(0.0, abs=1e-6)
        assert ne.max_y == pytest.approx(HALF_CIRCUMFERENCE)

        sw = tile_bounds_3857(0, 1, 1, 256)
        assert sw.max_x == pytest.approx(0.0, abs=1e-6)
        assert sw.max_y == pytest.approx(0.0, abs=1e-6)
        assert sw.min_y == pytest.approx(-HALF_CIRCUMFERENCE)

    def test_tile_size_does_not_change_extent(self):
        """The geographic box depends on the address only"""
        a = tile_bounds_3857(3, 2, 2, 256)
        b = tile_bounds_3857(3, 2, 2, 512)
        assert a.as_tuple() == pytest.approx(b.as_tuple())

    def test_out_of_range_is_not_validated(self):
        """Columns past the grid produce boxes east of the world"""
        b = tile_bounds_3857(2, 0, 0, 256)
        assert b.min_x > HALF_CIRCUMFERENCE


class TestProjection:
    """Test cases for lon/lat and pixel helpers"""

    def test_origin(self):
        x, y = lonlat_to_3857(0.0, 0.0)
        assert x == pytest.approx(0.0)
        assert y == pytest.approx(0.0, abs=1e-6)

    def test_antimeridian_and_limit_latitude(self):
        x, y = lonlat_to_3857(180.0, 85.0511287798066)
        assert x == pytest.approx(HALF_CIRCUMFERENCE)
        assert y == pytest.approx(HALF_CIRCUMFERENCE, rel=1e-6)

    def test_geo_to_pixel(self):
        t = AffineTransform(origin_x=500.0, pixel_width=2.0, origin_y=900.0, pixel_height=-4.0)
        assert geo_to_pixel(520.0, 820.0, t) == pytest.approx((10.0, 20.0))
        assert geo_to_pixel(490.0, 904.0, t) == pytest.approx((-5.0, -1.0))

    def test_from_gdal_rejects_rotation(self):
        with pytest.raises(ValueError, match="rotated"):
            AffineTransform.from_gdal([0.0, 1.0, 0.5, 0.0, 0.0, -1.0])

    def test_from_gdal(self):
        t = AffineTransform.from_gdal([10.0, 2.0, 0.0, 20.0, 0.0, -2.0])
        assert t == AffineTransform(10.0, 2.0, 20.0, -2.0)
