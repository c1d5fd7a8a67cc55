from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from common.utils import parse_socket_addr


DEFAULT_CONFIG_PATH = "config/params.yaml"

DEFAULTS: Dict = {
    "raster": {"path": None},
    "server": {"host": "127.0.0.1", "port": 3003},
    "pool": {"workers": None},  # None -> os.cpu_count()
    "tiles": {"default_size": 256, "default_quality": 75.0, "max_size": 4096},
    "logging": {"level": "INFO"},
}


@dataclass
class Settings:
    raster_path: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = 3003
    workers: Optional[int] = None
    default_size: int = 256
    default_quality: float = 75.0
    max_size: int = 4096
    log_level: str = "INFO"

    @property
    def socket_addr(self) -> str:
        return f"{self.host}:{self.port}"

    def validate(self) -> "Settings":
        if not self.raster_path:
            raise ValueError("A raster file is required (--raster-file, TILES_RASTER_FILE or raster.path)")
        if self.workers is not None and self.workers < 1:
            raise ValueError("pool.workers must be >= 1")
        if not (1 <= self.default_size <= self.max_size):
            raise ValueError("tiles.default_size must be within 1..tiles.max_size")
        return self


def _merge(base: Dict, override: Mapping) -> Dict:
    out = dict(base)
    for k, v in (override or {}).items():
        if isinstance(v, Mapping) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def _load_yaml(path: str) -> Dict:
    if not Path(path).exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_settings(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from built-in defaults, the YAML file (if present) and
    environment overrides:
      TILES_CONFIG       alternate YAML path (when `path` is not given)
      TILES_RASTER_FILE  raster.path
      TILES_SOCKET_ADDR  server.host/port as HOST:PORT
      TILES_WORKERS      pool.workers
      LOG_LEVEL          logging.level
    CLI flags are applied on top by tile_server.__main__.
    """
    env = os.environ if env is None else env
    P = _merge(DEFAULTS, _load_yaml(path or env.get("TILES_CONFIG", DEFAULT_CONFIG_PATH)))

    s = Settings(
        raster_path=P["raster"].get("path"),
        host=str(P["server"].get("host", "127.0.0.1")),
        port=int(P["server"].get("port", 3003)),
        workers=int(P["pool"]["workers"]) if P["pool"].get("workers") else None,
        default_size=int(P["tiles"].get("default_size", 256)),
        default_quality=float(P["tiles"].get("default_quality", 75.0)),
        max_size=int(P["tiles"].get("max_size", 4096)),
        log_level=str(P["logging"].get("level", "INFO")),
    )

    if env.get("TILES_RASTER_FILE"):
        s.raster_path = env["TILES_RASTER_FILE"]
    if env.get("TILES_SOCKET_ADDR"):
        s.host, s.port = parse_socket_addr(env["TILES_SOCKET_ADDR"])
    if env.get("TILES_WORKERS"):
        s.workers = int(env["TILES_WORKERS"])
    if env.get("LOG_LEVEL"):
        s.log_level = env["LOG_LEVEL"]
    return s
