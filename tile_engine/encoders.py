from __future__ import annotations

import math

import cv2
import numpy as np

from common.types import ImageFormat, OutputBuffer
from tile_engine.errors import EncodingError


def _to_bgr(buffer: OutputBuffer, keep_alpha: bool) -> np.ndarray:
    # OpenCV expects BGR(A) channel order
    if buffer.channels == 4:
        if keep_alpha:
            return cv2.cvtColor(buffer.data, cv2.COLOR_RGBA2BGRA)
        return cv2.cvtColor(buffer.data, cv2.COLOR_RGBA2BGR)
    return cv2.cvtColor(buffer.data, cv2.COLOR_RGB2BGR)


def _quality(quality: float, lo: int) -> int:
    if not math.isfinite(quality):
        raise EncodingError(f"quality must be finite, got {quality!r}")
    return int(min(100, max(lo, round(quality))))


def encode_jpeg(buffer: OutputBuffer, quality: float = 75.0) -> bytes:
    """
    Baseline JPEG. JPEG has no alpha: an RGBA buffer is encoded from its
    (premultiplied) colour channels, i.e. composited over black.
    """
    img = _to_bgr(buffer, keep_alpha=False)
    ok, data = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, _quality(quality, 0)])
    if not ok:
        raise EncodingError("JPEG encoder rejected the buffer")
    return data.tobytes()


def encode_webp(buffer: OutputBuffer, quality: float = 75.0) -> bytes:
    """Lossy WebP; RGBA buffers keep their alpha channel."""
    img = _to_bgr(buffer, keep_alpha=True)
    ok, data = cv2.imencode(".webp", img, [cv2.IMWRITE_WEBP_QUALITY, _quality(quality, 1)])
    if not ok:
        raise EncodingError("WebP encoder rejected the buffer")
    return data.tobytes()


_ENCODERS = {
    ImageFormat.JPEG: encode_jpeg,
    ImageFormat.WEBP: encode_webp,
}


def encode(buffer: OutputBuffer, image_format: ImageFormat, quality: float = 75.0) -> bytes:
    """Encode a finished tile buffer; failures raise EncodingError."""
    try:
        fn = _ENCODERS[image_format]
    except KeyError:
        raise EncodingError(f"no encoder for {image_format!r}") from None
    try:
        return fn(buffer, quality)
    except cv2.error as e:
        raise EncodingError(f"{image_format.value} encoding failed: {e}") from e
