from __future__ import annotations

import logging
import time

from common.geo import tile_bounds_3857
from common.logging_setup import elapsed_ms
from common.types import EncodedTile, GeoBoundingBox, TileRequest
from tile_engine.backend import RasterHandle
from tile_engine.compositor import composite
from tile_engine.encoders import encode
from tile_engine.window import resolve_window


log = logging.getLogger(__name__)


def render_tile(handle: RasterHandle, req: TileRequest, bbox: GeoBoundingBox | None = None) -> EncodedTile:
    """
    Pool task: resolve -> composite -> encode one tile against the worker's handle.

    `bbox` defaults to the web-mercator bounds of the tile address.
    """
    t0 = time.perf_counter()
    if bbox is None:
        bbox = tile_bounds_3857(req.col, req.row, req.zoom, req.size)

    resolved = resolve_window(handle.transform, handle.width, handle.height, bbox, req.size, req.size)
    has_alpha, buffer = composite(handle, resolved, req.background)
    content = encode(buffer, req.image_format, req.quality)

    log.debug(
        "Rendered tile",
        extra={
            "extra": {
                "tile": req.describe(),
                "bbox": list(bbox.as_tuple()),
                "window": [resolved.window.x, resolved.window.y, resolved.window.width, resolved.window.height],
                "read": list(resolved.read_size),
                "offset": [resolved.off_x, resolved.off_y],
                "out": list(resolved.output_size),
                "channels": buffer.channels,
                "bytes": len(content),
                "latency_ms": elapsed_ms(t0),
            }
        },
    )
    return EncodedTile(content=content, media_type=req.image_format.media_type, has_alpha=has_alpha)
