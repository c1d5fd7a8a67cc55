"""
Tile Engine — window resolution, masked compositing and the raster worker pool

This package provides:
- resolve_window: tile bbox -> clamped source window, read size and placement
- composite: per-band mask/alpha compositing into an RGB/RGBA buffer
- encode: JPEG / WebP encoding of finished buffers (OpenCV)
- DatasetAffinityPool: bounded workers, one lazily opened raster handle each
- render_tile: the pool task tying the above together

Typical use (from the HTTP layer):
    pool = DatasetAffinityPool("data/raster/world_3857.tif")
    tile = await pool.run(render_tile, TileRequest(zoom=3, col=4, row=2, image_format=ImageFormat.JPEG))
"""
from .compositor import composite
from .encoders import encode
from .errors import (
    BackendError,
    BandCountError,
    DegenerateWindowError,
    EncodingError,
    ErrorKind,
    InvalidOptionError,
    TileError,
    UnsupportedFormatError,
)
from .pool import DatasetAffinityPool
from .render import render_tile
from .window import resolve_window

__all__ = [
    "BackendError",
    "BandCountError",
    "DatasetAffinityPool",
    "DegenerateWindowError",
    "EncodingError",
    "ErrorKind",
    "InvalidOptionError",
    "TileError",
    "UnsupportedFormatError",
    "composite",
    "encode",
    "render_tile",
    "resolve_window",
]
