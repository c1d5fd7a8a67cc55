from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from common.types import Background, OutputBuffer, ResolvedWindow
from tile_engine.backend import NEAREST, RasterHandle
from tile_engine.errors import BandCountError


def output_channels(band_count: int, background: Background) -> int:
    """RGBA only for a 4-band source composited over a transparent background."""
    return 4 if band_count == 4 and background.is_alpha else 3


def blend_over(src: np.ndarray, existing: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    """
    Integer alpha blend (src * a + existing * (255 - a)) // 255 on uint8 planes.
    """
    a = alpha.astype(np.uint16)
    out = (src.astype(np.uint16) * a + existing.astype(np.uint16) * (255 - a)) // 255
    return out.astype(np.uint8)


def premultiply(buffer: OutputBuffer) -> None:
    """
    Scale R,G,B by alpha/255 in place (truncating); alpha is left untouched.
    No-op for 3-channel buffers.
    """
    if buffer.channels != 4:
        return
    # one row per pixel, so the stride always equals the channel count
    px = buffer.data.reshape(-1, buffer.channels)
    a = px[:, 3:4].astype(np.uint16)
    px[:, :3] = (px[:, :3].astype(np.uint16) * a // 255).astype(np.uint8)


def composite(
    handle: RasterHandle,
    resolved: ResolvedWindow,
    background: Background,
) -> Tuple[bool, OutputBuffer]:
    """
    Read, resample and composite the resolved window into a fresh output buffer.

    Steps:
      1) allocate the buffer filled with the background
      2) RGBA output: read band 4 as the alpha plane
      3) per output band: read its validity mask and samples (nearest-neighbour,
         at the intermediate read size)
      4) write valid samples at (row + off_y, col + off_x), alpha-blended over the
         current buffer content when an alpha plane exists
      5) RGBA output: premultiply

    Returns (has_alpha, buffer). Raises BandCountError for rasters that are not
    RGB/RGBA, BackendError for any read failure.
    """
    count = int(handle.band_count)
    if count not in (3, 4):
        raise BandCountError(count)

    channels = output_channels(count, background)
    buffer = OutputBuffer.filled(resolved.out_width, resolved.out_height, background, channels)
    if resolved.is_empty:
        # nothing of the raster inside the tile
        premultiply(buffer)
        return buffer.has_alpha, buffer

    win = resolved.window
    origin = (win.x, win.y)
    size = (win.width, win.height)
    shape = (resolved.read_height, resolved.read_width)
    off_x, off_y = resolved.off_x, resolved.off_y
    rows = min(resolved.read_height, resolved.out_height - off_y)
    cols = min(resolved.read_width, resolved.out_width - off_x)

    alpha: Optional[np.ndarray] = None
    if channels == 4:
        alpha = np.zeros(shape, dtype=np.uint8)
        handle.read_window(4, origin, size, alpha, NEAREST)
        alpha = alpha[:rows, :cols]

    mask = np.zeros(shape, dtype=np.uint8)
    samples = np.zeros(shape, dtype=np.uint8)
    for band_index in range(channels):
        band = band_index + 1
        handle.mask_for_band(band).read_window(origin, size, mask, NEAREST)
        handle.read_window(band, origin, size, samples, NEAREST)

        valid = mask[:rows, :cols] != 0
        src = samples[:rows, :cols]
        target = buffer.data[off_y:off_y + rows, off_x:off_x + cols, band_index]
        if alpha is None:
            target[valid] = src[valid]
        else:
            target[valid] = blend_over(src, target, alpha)[valid]

    premultiply(buffer)
    return buffer.has_alpha, buffer
