"""
Unit tests for JPEG / WebP tile encoding
"""

import os
import sys

import cv2
import numpy as np
import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.types import Background, ImageFormat, OutputBuffer
from tile_engine.encoders import encode
from tile_engine.errors import EncodingError, ErrorKind


def _buffer(channels, value=(200, 100, 50, 255), size=(32, 16)):
    w, h = size
    data = np.zeros((h, w, channels), dtype=np.uint8)
    data[...] = value[:channels]
    return OutputBuffer(width=w, height=h, channels=channels, data=data)


def _decode(content):
    return cv2.imdecode(np.frombuffer(content, dtype=np.uint8), cv2.IMREAD_UNCHANGED)


class TestEncode:
    """Test cases for encode"""

    def test_jpeg_signature_and_size(self):
        content = encode(_buffer(3), ImageFormat.JPEG, 80)
        assert content[:3] == b"\xff\xd8\xff"
        assert _decode(content).shape == (16, 32, 3)

    def test_webp_signature(self):
        content = encode(_buffer(3), ImageFormat.WEBP, 80)
        assert content[:4] == b"RIFF" and content[8:12] == b"WEBP"
        assert _decode(content).shape == (16, 32, 3)

    def test_channel_order(self):
        """RGB input comes back as BGR from OpenCV"""
        img = _decode(encode(_buffer(3), ImageFormat.JPEG, 95))
        assert np.allclose(img.reshape(-1, 3).mean(axis=0), [50, 100, 200], atol=4)

    def test_webp_keeps_alpha(self):
        img = _decode(encode(_buffer(4, (0, 0, 0, 0)), ImageFormat.WEBP, 75))
        assert img.shape == (16, 32, 4)
        assert (img[..., 3] == 0).all()

    def test_jpeg_drops_alpha(self):
        img = _decode(encode(_buffer(4), ImageFormat.JPEG, 75))
        assert img.shape == (16, 32, 3)

    @pytest.mark.parametrize("quality", [0, 0.4, 100, 150, -3])
    def test_quality_is_clamped(self, quality):
        assert encode(_buffer(3), ImageFormat.WEBP, quality)
        assert encode(_buffer(3), ImageFormat.JPEG, quality)

    @pytest.mark.parametrize("quality", [float("nan"), float("inf")])
    def test_non_finite_quality(self, quality):
        with pytest.raises(EncodingError) as ei:
            encode(_buffer(3), ImageFormat.JPEG, quality)
        assert ei.value.kind == ErrorKind.ENCODING

    def test_filled_background_buffer(self):
        buf = OutputBuffer.filled(8, 8, Background.from_hex("00ff00"), 3)
        img = _decode(encode(buf, ImageFormat.JPEG, 90))
        assert np.allclose(img.reshape(-1, 3).mean(axis=0), [0, 255, 0], atol=4)
