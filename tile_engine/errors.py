from __future__ import annotations

"""
Error taxonomy for tile rendering.

Every failure carries an ErrorKind; the HTTP layer maps kinds to status codes
and never inspects messages.
"""

from enum import Enum


class ErrorKind(str, Enum):
    BAND_COUNT = "band_count"
    BACKEND = "backend"
    DEGENERATE_WINDOW = "degenerate_window"
    ENCODING = "encoding"
    UNSUPPORTED_FORMAT = "unsupported_format"
    INVALID_OPTION = "invalid_option"


class TileError(Exception):
    """Base class; subclasses pin `kind`."""
    kind: ErrorKind = ErrorKind.BACKEND


class BandCountError(TileError):
    kind = ErrorKind.BAND_COUNT

    def __init__(self, count: int):
        super().__init__(f"input is not rgb or rgba ({count} bands)")
        self.count = count


class BackendError(TileError):
    """Wraps any failure from the raster backend (open, transform, band/mask read)."""
    kind = ErrorKind.BACKEND


class DegenerateWindowError(TileError):
    kind = ErrorKind.DEGENERATE_WINDOW

    def __init__(self, width: int, height: int):
        super().__init__(f"source window has no extent ({width}x{height} px)")
        self.width = width
        self.height = height


class EncodingError(TileError):
    kind = ErrorKind.ENCODING


class UnsupportedFormatError(TileError):
    kind = ErrorKind.UNSUPPORTED_FORMAT

    def __init__(self, ext: str):
        super().__init__(f"unsupported image extension: {ext!r}")
        self.ext = ext


class InvalidOptionError(TileError):
    kind = ErrorKind.INVALID_OPTION

    def __init__(self, option: str, value: str, reason: str = ""):
        msg = f"invalid value for {option!r}: {value!r}"
        super().__init__(f"{msg} ({reason})" if reason else msg)
        self.option = option
        self.value = value
