"""
Unit tests for the demo raster synthesis script
"""

import os
import sys

import numpy as np

# Add project root and scripts/ to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)
sys.path.append(os.path.join(project_root, "scripts"))

from build_demo_raster import alpha_disc, bbox_to_3857, synthesize_rgb

BBOX = (-10.0, 35.0, 30.0, 60.0)


class TestSynthesizeRgb:
    """Test cases for synthesize_rgb"""

    def test_shape_and_no_nodata(self):
        img = synthesize_rgb((320, 160), BBOX)
        assert img.shape == (160, 320, 3)
        assert img.dtype == np.uint8
        assert img.min() > 0

    def test_ramp_direction(self):
        """Red grows eastward, green northward"""
        img = synthesize_rgb((320, 160), BBOX, step_deg=90.0)
        assert img[80, 300, 0] > img[80, 20, 0]
        assert img[30, 150, 1] > img[100, 150, 1]

    def test_prime_meridian_line(self):
        """The 0 deg meridian is drawn at its projected column"""
        w = 400
        img = synthesize_rgb((w, 200), BBOX, step_deg=10.0)
        min_x, _, max_x, _ = bbox_to_3857(BBOX)
        px = int(round((0.0 - min_x) / (max_x - min_x) * (w - 1)))
        assert (img[60:140, px] == 255).all()


class TestAlphaDisc:
    """Test cases for alpha_disc"""

    def test_centre_opaque_corners_transparent(self):
        a = alpha_disc((128, 128), feather_px=8)
        assert a[64, 64] == 255
        assert a[0, 0] == 0 and a[127, 127] == 0
