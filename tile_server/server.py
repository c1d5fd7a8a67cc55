from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response

from common.logging_setup import get_logger
from common.types import EncodedTile, TileRequest
from tile_engine.errors import ErrorKind, TileError
from tile_engine.pool import DatasetAffinityPool
from tile_engine.render import render_tile
from tile_server.config import Settings
from tile_server.options import parse_options, parse_tile_path


log = get_logger("tile_server")

STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.UNSUPPORTED_FORMAT: 404,
    ErrorKind.INVALID_OPTION: 400,
    ErrorKind.BAND_COUNT: 500,
    ErrorKind.BACKEND: 500,
    ErrorKind.DEGENERATE_WINDOW: 500,
    ErrorKind.ENCODING: 500,
}

BODIES: Dict[int, str] = {
    400: "Bad request",
    404: "Not found",
    405: "Method not allowed",
    500: "Internal Server Error",
}

READ_METHODS = ("GET", "HEAD")


def _plain(status: int) -> PlainTextResponse:
    return PlainTextResponse(BODIES[status], status_code=status)


def create_app(settings: Settings, pool: Optional[DatasetAffinityPool] = None) -> FastAPI:
    """
    Build the tile API around one raster.

    Routes:
      GET /{zoom}/{col}/{row}.{jpg|jpeg|webp}?background=RRGGBB&quality=75&size=256
      GET /health
    The pool is shut down (handles closed) when the app stops.
    """
    if pool is None:
        settings.validate()
        pool = DatasetAffinityPool(settings.raster_path, settings.workers)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info(
            "Tile server ready",
            extra={"extra": {"raster": settings.raster_path, "workers": pool.size}},
        )
        try:
            yield
        finally:
            pool.shutdown()

    app = FastAPI(title="Raster Tile Server", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.pool = pool

    @app.middleware("http")
    async def read_only(request: Request, call_next):
        if request.method not in READ_METHODS:
            resp = _plain(405)
            resp.headers["Allow"] = ", ".join(READ_METHODS)
            return resp
        return await call_next(request)

    # Added last so it wraps the method guard and can answer preflights
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=list(READ_METHODS),
        allow_headers=["*"],
    )

    @app.exception_handler(TileError)
    async def tile_error(request: Request, exc: TileError):
        status = STATUS_BY_KIND.get(exc.kind, 500)
        if status >= 500:
            log.error(
                "Tile request failed",
                exc_info=exc,
                extra={"extra": {"path": request.url.path, "kind": exc.kind.value}},
            )
        else:
            log.info(
                "Tile request rejected",
                extra={"extra": {"path": request.url.path, "kind": exc.kind.value, "detail": str(exc)}},
            )
        return _plain(status)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        log.error("Unhandled error", exc_info=exc, extra={"extra": {"path": request.url.path}})
        return _plain(500)

    @app.api_route("/health", methods=list(READ_METHODS))
    def health():
        return {
            "status": "ok",
            "raster": settings.raster_path,
            "pool": pool.stats(),
        }

    @app.api_route("/{zoom}/{col}/{row_ext}", methods=list(READ_METHODS))
    async def tile(zoom: str, col: str, row_ext: str, request: Request):
        """
        Render one tile on a pool worker and return the encoded image.
        """
        addr = parse_tile_path(zoom, col, row_ext)
        if addr is None:
            return _plain(404)
        z, x, y, fmt = addr
        opts = parse_options(
            request.query_params,
            default_size=settings.default_size,
            default_quality=settings.default_quality,
            max_size=settings.max_size,
        )
        req = TileRequest(
            zoom=z,
            col=x,
            row=y,
            image_format=fmt,
            size=opts.size,
            quality=opts.quality,
            background=opts.background,
        )
        result: EncodedTile = await pool.run(render_tile, req)
        return Response(content=result.content, media_type=result.media_type)

    return app
