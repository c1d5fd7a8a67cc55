#!/usr/bin/env python3
"""
Smoke client for a running tile server.

Fetches every tile of a zoom level that intersects a lon/lat bbox, writes the
images under --out/{z}/{x}/{y}.{ext} and a JSONL log with status, latency,
byte count and sha256 per tile.

Examples:
  python scripts/fetch_tiles.py --zoom 4 --bbox -10 35 30 60
  python scripts/fetch_tiles.py --zoom 6 --ext webp --param bg=ffffff --param q=90
"""
from __future__ import annotations

import argparse
import hashlib
import json
import math
import time
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

import requests


def lonlat_to_tile(lon: float, lat: float, zoom: int) -> Tuple[int, int]:
    n = 2 ** zoom
    lat = max(-85.0511287798066, min(85.0511287798066, lat))
    x = int((lon + 180.0) / 360.0 * n)
    s = math.sin(math.radians(lat))
    y = int((0.5 - math.log((1 + s) / (1 - s)) / (4 * math.pi)) * n)
    return min(max(x, 0), n - 1), min(max(y, 0), n - 1)


def tiles_for_bbox(bbox: Tuple[float, float, float, float], zoom: int) -> Iterator[Tuple[int, int]]:
    lon_min, lat_min, lon_max, lat_max = bbox
    x0, y0 = lonlat_to_tile(lon_min, lat_max, zoom)
    x1, y1 = lonlat_to_tile(lon_max, lat_min, zoom)
    for x in range(x0, x1 + 1):
        for y in range(y0, y1 + 1):
            yield x, y


def fetch_tile(session: requests.Session, base_url: str, z: int, x: int, y: int, ext: str,
               params: Dict[str, str], timeout: float = 10.0) -> Dict:
    url = f"{base_url.rstrip('/')}/{z}/{x}/{y}.{ext}"
    t0 = time.perf_counter()
    try:
        r = session.get(url, params=params, timeout=timeout)
    except requests.RequestException as e:
        return {"z": z, "x": x, "y": y, "status": "error", "error": str(e),
                "latency_ms": int((time.perf_counter() - t0) * 1000)}
    return {
        "z": z,
        "x": x,
        "y": y,
        "status": r.status_code,
        "content_type": r.headers.get("content-type", ""),
        "latency_ms": int((time.perf_counter() - t0) * 1000),
        "bytes": len(r.content),
        "sha256": hashlib.sha256(r.content).hexdigest(),
        "_content": r.content if r.status_code == 200 else b"",
    }


def parse_params(items: List[str]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for item in items:
        k, sep, v = item.partition("=")
        if not sep:
            raise SystemExit(f"--param must be KEY=VALUE, got {item!r}")
        out[k] = v
    return out


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--base-url", default="http://127.0.0.1:3003", help="Tile server root URL")
    ap.add_argument("--zoom", type=int, default=4)
    ap.add_argument("--bbox", nargs=4, type=float, default=[-10.0, 35.0, 30.0, 60.0],
                    metavar=("LON_MIN", "LAT_MIN", "LON_MAX", "LAT_MAX"))
    ap.add_argument("--ext", choices=["jpg", "jpeg", "webp"], default="jpg")
    ap.add_argument("--param", action="append", default=[], help="Extra query option KEY=VALUE (repeatable)")
    ap.add_argument("--out", default="runtime/tiles", help="Directory for fetched tiles")
    ap.add_argument("--log", default="logs/fetch_tiles.jsonl", help="JSONL results file")
    args = ap.parse_args()

    params = parse_params(args.param)
    out_dir = Path(args.out)
    log_path = Path(args.log)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    ok = failed = 0
    latencies: List[int] = []
    with requests.Session() as session, log_path.open("a", buffering=1) as log_f:
        for x, y in tiles_for_bbox(tuple(args.bbox), args.zoom):
            row = fetch_tile(session, args.base_url, args.zoom, x, y, args.ext, params)
            content = row.pop("_content", b"")
            if row["status"] == 200:
                path = out_dir / f"{args.zoom}/{x}/{y}.{args.ext}"
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(content)
                row["path"] = str(path)
                ok += 1
            else:
                failed += 1
            latencies.append(row["latency_ms"])
            log_f.write(json.dumps(row) + "\n")
            print(f"{args.zoom}/{x}/{y}: {row['status']} {row.get('bytes', 0)}B {row['latency_ms']}ms")

    if latencies:
        latencies.sort()
        p50 = latencies[len(latencies) // 2]
        print(f"done: {ok} ok, {failed} failed, p50 {p50} ms, max {latencies[-1]} ms")
    else:
        print("no tiles in bbox")


if __name__ == "__main__":
    main()
