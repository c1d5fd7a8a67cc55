#!/usr/bin/env python3
"""
Build a demo raster for the tile server.

Writes an RGB or RGBA GeoTIFF in EPSG:3857 covering a lon/lat bbox:
- a colour ramp with a lon/lat graticule (red grows east, green north)
- RGB: a no-data notch in the lower-left corner (nodata=0 on all bands)
- RGBA: a soft-edged alpha disc, fully transparent outside it

Examples:
  python scripts/build_demo_raster.py                          # RGBA over Europe
  python scripts/build_demo_raster.py --bands 3 --bbox -125 24 -66 49 --size 4096 2048
  python -m tile_server --raster-file data/raster/world_3857.tif
"""
from __future__ import annotations

import argparse
import math
import os
import sys
from pathlib import Path
from typing import Tuple

import cv2
import numpy as np
import rasterio
from rasterio.transform import from_bounds

# Add the project root to the path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from common.geo import lonlat_to_3857  # noqa: E402


def bbox_to_3857(bbox: Tuple[float, float, float, float]) -> Tuple[float, float, float, float]:
    lon_min, lat_min, lon_max, lat_max = bbox
    min_x, min_y = lonlat_to_3857(lon_min, lat_min)
    max_x, max_y = lonlat_to_3857(lon_max, lat_max)
    return min_x, min_y, max_x, max_y


def synthesize_rgb(size: Tuple[int, int], bbox: Tuple[float, float, float, float], step_deg: float = 5.0) -> np.ndarray:
    """
    Colour-ramp image with a lon/lat graticule every `step_deg`, shape (H, W, 3).

    Red grows eastward and green northward, so tile placement is easy to check
    by eye. No sample is 0 (the RGB no-data value).
    """
    w, h = size
    lon_min, lat_min, lon_max, lat_max = bbox
    min_x, min_y, max_x, max_y = bbox_to_3857(bbox)

    base = np.empty((h, w, 3), dtype=np.uint8)
    base[..., 0] = np.linspace(40, 220, w, dtype=np.float32)[None, :].astype(np.uint8)
    base[..., 1] = np.linspace(220, 40, h, dtype=np.float32)[:, None].astype(np.uint8)
    base[..., 2] = 120

    for lon in np.arange(math.ceil(lon_min / step_deg) * step_deg, lon_max + 1e-9, step_deg):
        x, _ = lonlat_to_3857(float(lon), 0.0)
        px = int(round((x - min_x) / (max_x - min_x) * (w - 1)))
        cv2.line(base, (px, 0), (px, h - 1), (255, 255, 255), 1)
        cv2.putText(base, f"{lon:g}", (px + 4, 20), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1, cv2.LINE_AA)
    for lat in np.arange(math.ceil(lat_min / step_deg) * step_deg, lat_max + 1e-9, step_deg):
        _, y = lonlat_to_3857(0.0, float(lat))
        py = int(round((max_y - y) / (max_y - min_y) * (h - 1)))
        cv2.line(base, (0, py), (w - 1, py), (255, 255, 255), 1)
        cv2.putText(base, f"{lat:g}", (4, py - 4), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1, cv2.LINE_AA)

    cv2.putText(base, "TILE SERVER DEMO", (10, h - 15), cv2.FONT_HERSHEY_SIMPLEX, 1.0, (240, 240, 240), 2, cv2.LINE_AA)
    return base


def alpha_disc(size: Tuple[int, int], feather_px: int = 32) -> np.ndarray:
    """Opaque disc with a linear fade at its rim, shape (H, W)."""
    w, h = size
    yy, xx = np.mgrid[0:h, 0:w].astype(np.float32)
    r = np.hypot(xx - w / 2.0, yy - h / 2.0)
    radius = 0.45 * min(w, h)
    a = np.clip((radius - r) / max(1, feather_px), 0.0, 1.0)
    return (a * 255.0).astype(np.uint8)


def write_raster(out: Path, rgb: np.ndarray, bounds_3857, alpha: np.ndarray | None) -> None:
    h, w = rgb.shape[:2]
    min_x, min_y, max_x, max_y = bounds_3857
    count = 3 if alpha is None else 4
    profile = {
        "driver": "GTiff",
        "height": h,
        "width": w,
        "count": count,
        "dtype": rasterio.uint8,
        "crs": "EPSG:3857",
        "transform": from_bounds(min_x, min_y, max_x, max_y, w, h),
        "tiled": True,
        "blockxsize": 256,
        "blockysize": 256,
        "compress": "deflate",
        "photometric": "RGB",
    }
    if alpha is None:
        profile["nodata"] = 0
    else:
        profile["alpha"] = "YES"
    out.parent.mkdir(parents=True, exist_ok=True)
    with rasterio.open(out, "w", **profile) as dst:
        dst.write(np.moveaxis(rgb, -1, 0))
        if alpha is not None:
            dst.write(alpha, 4)


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--out", default="data/raster/world_3857.tif", help="Output GeoTIFF")
    ap.add_argument("--bbox", nargs=4, type=float, default=[-10.0, 35.0, 30.0, 60.0],
                    metavar=("LON_MIN", "LAT_MIN", "LON_MAX", "LAT_MAX"), help="Coverage in WGS84 degrees")
    ap.add_argument("--size", nargs=2, type=int, default=[2048, 2048], metavar=("W", "H"), help="Raster size in pixels")
    ap.add_argument("--bands", type=int, choices=[3, 4], default=4, help="3 = RGB with nodata, 4 = RGBA")
    ap.add_argument("--graticule", type=float, default=5.0, help="Graticule spacing in degrees")
    args = ap.parse_args()

    size = (args.size[0], args.size[1])
    rgb = synthesize_rgb(size, tuple(args.bbox), step_deg=args.graticule)
    alpha = None
    if args.bands == 4:
        alpha = alpha_disc(size)
    else:
        # no-data notch, lower-left eighth
        w, h = size
        rgb[h - h // 8:, : w // 8] = 0

    bounds = bbox_to_3857(tuple(args.bbox))
    out = Path(args.out)
    write_raster(out, rgb, bounds, alpha)
    print(f"[ok] wrote {out} ({size[0]}x{size[1]}, {args.bands} bands)")
    print("You can now run the tile server:")
    print(f"  python -m tile_server --raster-file {out}")


if __name__ == "__main__":
    main()
