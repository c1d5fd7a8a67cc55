from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np


RGB = Tuple[int, int, int]


@dataclass(frozen=True, slots=True)
class GeoBoundingBox:
    """Projected-coordinate rectangle (EPSG:3857 metres for tile requests)."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.min_x, self.min_y, self.max_x, self.max_y)


@dataclass(frozen=True, slots=True)
class AffineTransform:
    """
    Pixel -> projected mapping of an axis-aligned raster.

    Same layout as a GDAL geotransform without the rotation terms:
        geo_x = origin_x + col * pixel_width
        geo_y = origin_y + row * pixel_height   (pixel_height < 0 for north-up)
    """
    origin_x: float
    pixel_width: float
    origin_y: float
    pixel_height: float

    @classmethod
    def from_gdal(cls, gt) -> "AffineTransform":
        """
        Build from a 6-term GDAL geotransform [x0, dx, rx, y0, ry, dy].
        Rotated rasters are not supported.
        """
        x0, dx, rx, y0, ry, dy = (float(v) for v in gt)
        if rx != 0.0 or ry != 0.0:
            raise ValueError("rotated geotransforms are not supported")
        return cls(origin_x=x0, pixel_width=dx, origin_y=y0, pixel_height=dy)


@dataclass(frozen=True, slots=True)
class PixelWindow:
    """
    Source region to sample, already clamped to the raster extent.

    Attributes:
        x, y: clamped window origin (pixels).
        width, height: clamped size; zero when the request misses the raster.
        clamped_x, clamped_y: True if the origin moved during clamping.
    """
    x: int
    y: int
    width: int
    height: int
    clamped_x: bool = False
    clamped_y: bool = False

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True, slots=True)
class ResolvedWindow:
    """
    Result of window resolution: what to read and where it lands.

    read_width/read_height is the intermediate read size (the part of the output
    grid covered by raster data); off_x/off_y place it inside the
    out_width x out_height output buffer.
    """
    window: PixelWindow
    read_width: int
    read_height: int
    off_x: int
    off_y: int
    out_width: int
    out_height: int

    @property
    def read_size(self) -> Tuple[int, int]:
        return (self.read_width, self.read_height)

    @property
    def output_size(self) -> Tuple[int, int]:
        return (self.out_width, self.out_height)

    @property
    def is_empty(self) -> bool:
        return self.window.is_empty or self.read_width <= 0 or self.read_height <= 0


@dataclass(frozen=True, slots=True)
class Background:
    """
    Compositing base: transparent (rgb is None) or an opaque fill colour.
    """
    rgb: Optional[RGB] = None

    @classmethod
    def alpha(cls) -> "Background":
        return cls(None)

    @classmethod
    def from_hex(cls, value: str) -> "Background":
        """Parse a 6 hex-digit RRGGBB string (no leading '#')."""
        if len(value) != 6 or any(c not in "0123456789abcdefABCDEF" for c in value):
            raise ValueError(f"background must be RRGGBB hex, got {value!r}")
        return cls((int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)))

    @property
    def is_alpha(self) -> bool:
        return self.rgb is None


class ImageFormat(str, Enum):
    JPEG = "jpeg"
    WEBP = "webp"

    @property
    def media_type(self) -> str:
        return f"image/{self.value}"

    @classmethod
    def from_extension(cls, ext: str) -> Optional["ImageFormat"]:
        return _EXTENSIONS.get(ext.lower())


_EXTENSIONS = {
    "jpg": ImageFormat.JPEG,
    "jpeg": ImageFormat.JPEG,
    "webp": ImageFormat.WEBP,
}


@dataclass(slots=True)
class OutputBuffer:
    """
    Finished tile pixels.

    Attributes:
        width, height: tile dimensions in pixels.
        channels: 3 (RGB) or 4 (RGBA, alpha premultiplied).
        data: np.ndarray of shape (height, width, channels), dtype uint8.
    """
    width: int
    height: int
    channels: int
    data: np.ndarray

    def __post_init__(self) -> None:
        if self.channels not in (3, 4):
            raise ValueError("channels must be 3 or 4")
        if self.data.shape != (self.height, self.width, self.channels):
            raise ValueError("data shape does not match width/height/channels")
        if self.data.dtype != np.uint8:
            raise TypeError("data must be uint8")

    @classmethod
    def filled(cls, width: int, height: int, background: Background, channels: int) -> "OutputBuffer":
        """Allocate a buffer initialised to the background."""
        data = np.zeros((height, width, channels), dtype=np.uint8)
        if background.rgb is not None:
            data[..., :3] = background.rgb
            if channels == 4:
                data[..., 3] = 255
        return cls(width=width, height=height, channels=channels, data=data)

    @property
    def has_alpha(self) -> bool:
        return self.channels == 4

    def __len__(self) -> int:
        return self.width * self.height * self.channels


@dataclass(frozen=True, slots=True)
class TileRequest:
    """A parsed tile request, ready to be rendered on a pool worker."""
    zoom: int
    col: int
    row: int
    image_format: ImageFormat
    size: int = 256
    quality: float = 75.0
    background: Background = Background()

    def describe(self) -> str:
        return f"{self.zoom}/{self.col}/{self.row}.{self.image_format.value}"


@dataclass(frozen=True, slots=True)
class EncodedTile:
    content: bytes
    media_type: str
    has_alpha: bool
