from __future__ import annotations

import math
from typing import Tuple

from common.geo import geo_to_pixel
from common.types import AffineTransform, GeoBoundingBox, PixelWindow, ResolvedWindow
from common.utils import clamp
from tile_engine.errors import DegenerateWindowError


def _round(v: float) -> int:
    """Round half away from zero."""
    return int(math.copysign(math.floor(abs(v) + 0.5), v))


def _clamp_axis(origin: int, size: int, limit: int) -> Tuple[int, int]:
    """Clamp a 1-D span [origin, origin+size) to [0, limit]; returns (origin, size)."""
    adj_origin = clamp(origin, 0, limit)
    adj_size = max(min(origin + size, limit) - adj_origin, 0)
    return adj_origin, adj_size


def _offset(origin: int, adj_origin: int, size: int, limit: int, out_size: int, read_size: int) -> int:
    """
    Where the surviving part of the window starts inside the output axis.

    - not clipped on the low side: flush with the low edge
    - window wider than the raster on both sides: proportional position
    - clipped on the low side only: flush with the high edge
    """
    if origin == adj_origin:
        return 0
    if origin <= 0 and origin + size >= limit:
        return _round(-out_size * origin / size)
    return out_size - read_size


def resolve_window(
    transform: AffineTransform,
    raster_width: int,
    raster_height: int,
    bbox: GeoBoundingBox,
    out_width: int,
    out_height: int,
) -> ResolvedWindow:
    """
    Map a projected bbox onto the raster's pixel grid.

    Returns the clamped source window, the intermediate read size (the portion
    of the out_width x out_height grid backed by raster pixels) and the offsets
    of that portion inside the output buffer.

    Raises DegenerateWindowError when the box rounds to zero pixels on an axis.
    """
    px_min_x, px_min_y = geo_to_pixel(bbox.min_x, bbox.max_y, transform)
    px_max_x, px_max_y = geo_to_pixel(bbox.max_x, bbox.min_y, transform)
    window_x = _round(px_min_x)
    window_y = _round(px_min_y)
    source_width = _round(px_max_x) - window_x
    source_height = _round(px_max_y) - window_y
    if source_width <= 0 or source_height <= 0:
        raise DegenerateWindowError(source_width, source_height)

    adj_x, adj_width = _clamp_axis(window_x, source_width, raster_width)
    adj_y, adj_height = _clamp_axis(window_y, source_height, raster_height)

    read_width = int(out_width * (adj_width / source_width))
    read_height = int(out_height * (adj_height / source_height))

    off_x = _offset(window_x, adj_x, source_width, raster_width, out_width, read_width)
    off_y = _offset(window_y, adj_y, source_height, raster_height, out_height, read_height)

    window = PixelWindow(
        x=adj_x,
        y=adj_y,
        width=adj_width,
        height=adj_height,
        clamped_x=adj_x != window_x,
        clamped_y=adj_y != window_y,
    )
    return ResolvedWindow(
        window=window,
        read_width=read_width,
        read_height=read_height,
        off_x=off_x,
        off_y=off_y,
        out_width=out_width,
        out_height=out_height,
    )
