from __future__ import annotations

"""
Raster tile server entry point.

Examples:
  # Serve a GeoTIFF on the default address (127.0.0.1:3003), one worker per CPU
  python -m tile_server --raster-file data/raster/world_3857.tif

  # Explicit address / worker count / config file
  python -m tile_server -r data/raster/world_3857.tif -s 0.0.0.0:8080 --workers 4 \
      --config config/params.yaml --log-level DEBUG

  # Fetch a tile
  curl -o tile.webp 'http://127.0.0.1:3003/3/4/2.webp?bg=ffffff&q=90'
"""

import argparse
import sys
from typing import List, Optional

import uvicorn

from common.logging_setup import get_logger, setup_logging
from common.utils import parse_socket_addr
from tile_server.config import Settings, load_settings
from tile_server.server import create_app


log = get_logger("tile_server")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="tile_server", description="Serve XYZ tiles from a geo-referenced raster")
    ap.add_argument("-r", "--raster-file", help="Raster file (RGB or RGBA, EPSG:3857)")
    ap.add_argument("-s", "--socket-addr", help="Address to listen on, HOST:PORT (default 127.0.0.1:3003)")
    ap.add_argument("--workers", type=int, default=None, help="Raster worker threads (default: CPU count)")
    ap.add_argument("--config", default=None, help="YAML config (default config/params.yaml)")
    ap.add_argument("--log-level", default=None, help="DEBUG/INFO/WARNING/ERROR")
    return ap


def settings_from_args(args: argparse.Namespace) -> Settings:
    s = load_settings(args.config)
    if args.raster_file:
        s.raster_path = args.raster_file
    if args.socket_addr:
        s.host, s.port = parse_socket_addr(args.socket_addr)
    if args.workers is not None:
        s.workers = args.workers
    if args.log_level:
        s.log_level = args.log_level
    return s.validate()


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    try:
        settings = settings_from_args(args)
    except ValueError as e:
        ap.error(str(e))

    setup_logging(settings.log_level, force=True)
    app = create_app(settings)
    log.info("Listening", extra={"extra": {"addr": settings.socket_addr}})
    # log_config=None keeps uvicorn on our JSON root handler
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
