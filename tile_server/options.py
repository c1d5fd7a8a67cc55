from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from common.types import Background, ImageFormat
from tile_engine.errors import InvalidOptionError, UnsupportedFormatError


@dataclass(frozen=True)
class TileOptions:
    background: Background
    quality: float
    size: int


def _uint(s: str) -> Optional[int]:
    return int(s) if s.isascii() and s.isdigit() else None


def parse_tile_path(zoom: str, col: str, row_ext: str) -> Optional[Tuple[int, int, int, ImageFormat]]:
    """
    Parse the `{zoom}/{col}/{row}.{ext}` path segments.

    Returns None when the address is not numeric (caller answers 404); raises
    UnsupportedFormatError for an unknown extension.
    """
    row, dot, ext = row_ext.rpartition(".")
    if not dot:
        return None
    z, x, y = _uint(zoom), _uint(col), _uint(row)
    if z is None or x is None or y is None:
        return None
    fmt = ImageFormat.from_extension(ext)
    if fmt is None:
        raise UnsupportedFormatError(ext)
    return z, x, y, fmt


def _first(query: Mapping[str, str], *keys: str) -> Tuple[Optional[str], Optional[str]]:
    for k in keys:
        v = query.get(k)
        if v is not None:
            return k, v
    return None, None


def parse_options(
    query: Mapping[str, str],
    *,
    default_size: int = 256,
    default_quality: float = 75.0,
    max_size: int = 4096,
) -> TileOptions:
    """
    Recognised query options:
      background|bg  RRGGBB fill colour (absent -> transparent)
      quality|q      encoder quality, float in [0, 100]
      size           tile edge in pixels, integer in [1, max_size]

    Malformed values raise InvalidOptionError. Unknown keys are ignored.
    """
    background = Background.alpha()
    key, raw = _first(query, "background", "bg")
    if raw is not None:
        try:
            background = Background.from_hex(raw)
        except ValueError as e:
            raise InvalidOptionError(key, raw, str(e)) from e

    quality = float(default_quality)
    key, raw = _first(query, "quality", "q")
    if raw is not None:
        try:
            quality = float(raw)
        except ValueError as e:
            raise InvalidOptionError(key, raw, "not a number") from e
        if not math.isfinite(quality) or not (0.0 <= quality <= 100.0):
            raise InvalidOptionError(key, raw, "must be within 0..100")

    size = int(default_size)
    raw = query.get("size")
    if raw is not None:
        parsed = _uint(raw)
        if parsed is None:
            raise InvalidOptionError("size", raw, "not an integer")
        if not (1 <= parsed <= max_size):
            raise InvalidOptionError("size", raw, f"must be within 1..{max_size}")
        size = parsed

    return TileOptions(background=background, quality=quality, size=size)
