from __future__ import annotations

import logging
from typing import Protocol, Tuple

import numpy as np
import rasterio
from rasterio.enums import Resampling
from rasterio.errors import RasterioError
from rasterio.windows import Window

from common.types import AffineTransform
from tile_engine.errors import BackendError


log = logging.getLogger(__name__)

NEAREST = "nearest"


class WindowSource(Protocol):
    """Anything that can fill a caller buffer from a resampled pixel window."""

    def read_window(
        self,
        origin: Tuple[int, int],
        size: Tuple[int, int],
        out: np.ndarray,
        resampling: str = NEAREST,
    ) -> None: ...


class RasterHandle(Protocol):
    """
    An opened raster. Not thread-safe: one owner at a time.

    Bands are 1-based, as in GDAL/rasterio.
    """
    band_count: int
    width: int
    height: int
    transform: AffineTransform

    def read_window(
        self,
        band: int,
        origin: Tuple[int, int],
        size: Tuple[int, int],
        out: np.ndarray,
        resampling: str = NEAREST,
    ) -> None: ...

    def mask_for_band(self, band: int) -> WindowSource: ...

    def close(self) -> None: ...


def _resampling(name: str) -> Resampling:
    try:
        return Resampling[name]
    except KeyError:
        raise BackendError(f"unknown resampling algorithm: {name!r}") from None


class _RasterioMask:
    """Validity mask of one band; 0 = no data, anything else = valid."""

    def __init__(self, ds, band: int):
        self._ds = ds
        self._band = band

    def read_window(self, origin, size, out, resampling=NEAREST) -> None:
        window = Window(origin[0], origin[1], size[0], size[1])
        try:
            out[...] = self._ds.read_masks(
                self._band, window=window, out_shape=out.shape, resampling=_resampling(resampling)
            )
        except (RasterioError, OSError, ValueError) as e:
            raise BackendError(f"mask read failed for band {self._band}: {e}") from e


class RasterioHandle:
    """
    RasterHandle over a rasterio dataset.

    Samples are read as uint8 into the caller's buffer; the buffer shape
    (rows, cols) is the resampled target size.
    """

    def __init__(self, ds):
        self._ds = ds
        self.path = ds.name
        self.band_count = int(ds.count)
        self.width = int(ds.width)
        self.height = int(ds.height)
        try:
            self.transform = AffineTransform.from_gdal(ds.transform.to_gdal())
        except ValueError as e:
            raise BackendError(f"{ds.name}: {e}") from e

    def read_window(self, band, origin, size, out, resampling=NEAREST) -> None:
        window = Window(origin[0], origin[1], size[0], size[1])
        try:
            out[...] = self._ds.read(
                band,
                window=window,
                out_shape=out.shape,
                resampling=_resampling(resampling),
                out_dtype="uint8",
            )
        except (RasterioError, OSError, ValueError, IndexError) as e:
            raise BackendError(f"read failed for band {band}: {e}") from e

    def mask_for_band(self, band: int) -> _RasterioMask:
        if not (1 <= band <= self.band_count):
            raise BackendError(f"band {band} out of range 1..{self.band_count}")
        return _RasterioMask(self._ds, band)

    @property
    def closed(self) -> bool:
        return bool(self._ds.closed)

    def close(self) -> None:
        self._ds.close()

    def __repr__(self) -> str:
        return f"RasterioHandle({self.path!r}, {self.width}x{self.height}x{self.band_count})"


def open_raster(path: str) -> RasterioHandle:
    """
    Open `path` read-only. Any failure (missing file, unknown format, unusable
    transform) raises BackendError.
    """
    try:
        ds = rasterio.open(path, "r")
    except (RasterioError, OSError) as e:
        raise BackendError(f"cannot open raster {path}: {e}") from e
    try:
        handle = RasterioHandle(ds)
    except BackendError:
        ds.close()
        raise
    log.info(
        "Opened raster",
        extra={"extra": {"path": str(path), "size": [handle.width, handle.height], "bands": handle.band_count}},
    )
    return handle
