"""
Unit tests for settings loading (YAML defaults, env overrides, CLI flags)
"""

import os
import sys

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.utils import parse_socket_addr
from tile_server.__main__ import build_parser, settings_from_args
from tile_server.config import Settings, load_settings


@pytest.fixture
def params_yaml(tmp_path):
    path = tmp_path / "params.yaml"
    path.write_text(
        "raster:\n"
        "  path: /data/world.tif\n"
        "server:\n"
        "  port: 8080\n"
        "pool:\n"
        "  workers: 2\n"
        "tiles:\n"
        "  default_quality: 90\n"
    )
    return str(path)


class TestLoadSettings:
    """Test cases for load_settings"""

    def test_defaults_without_file(self, tmp_path):
        s = load_settings(str(tmp_path / "missing.yaml"), env={})
        assert s.raster_path is None
        assert s.socket_addr == "127.0.0.1:3003"
        assert s.workers is None
        assert (s.default_size, s.default_quality, s.max_size) == (256, 75.0, 4096)
        assert s.log_level == "INFO"

    def test_yaml_merges_over_defaults(self, params_yaml):
        s = load_settings(params_yaml, env={})
        assert s.raster_path == "/data/world.tif"
        assert s.host == "127.0.0.1"
        assert s.port == 8080
        assert s.workers == 2
        assert s.default_quality == 90.0
        assert s.default_size == 256

    def test_config_path_from_env(self, params_yaml):
        s = load_settings(env={"TILES_CONFIG": params_yaml})
        assert s.port == 8080

    def test_env_overrides(self, params_yaml):
        env = {
            "TILES_RASTER_FILE": "/other.tif",
            "TILES_SOCKET_ADDR": "0.0.0.0:9000",
            "TILES_WORKERS": "8",
            "LOG_LEVEL": "DEBUG",
        }
        s = load_settings(params_yaml, env=env)
        assert s.raster_path == "/other.tif"
        assert (s.host, s.port) == ("0.0.0.0", 9000)
        assert s.workers == 8
        assert s.log_level == "DEBUG"

    def test_validate(self):
        with pytest.raises(ValueError, match="raster"):
            Settings().validate()
        with pytest.raises(ValueError):
            Settings(raster_path="a.tif", workers=0).validate()
        with pytest.raises(ValueError):
            Settings(raster_path="a.tif", default_size=8192).validate()
        assert Settings(raster_path="a.tif").validate().raster_path == "a.tif"


class TestCli:
    """Command-line flags win over file and environment"""

    def test_flags(self, params_yaml, monkeypatch):
        for k in ("TILES_CONFIG", "TILES_RASTER_FILE", "TILES_SOCKET_ADDR", "TILES_WORKERS", "LOG_LEVEL"):
            monkeypatch.delenv(k, raising=False)
        args = build_parser().parse_args(
            ["--config", params_yaml, "-r", "cli.tif", "-s", "[::1]:4000", "--workers", "3", "--log-level", "WARNING"]
        )
        s = settings_from_args(args)
        assert s.raster_path == "cli.tif"
        assert (s.host, s.port) == ("::1", 4000)
        assert s.workers == 3
        assert s.log_level == "WARNING"

    def test_missing_raster_is_an_error(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TILES_RASTER_FILE", raising=False)
        args = build_parser().parse_args(["--config", str(tmp_path / "none.yaml")])
        with pytest.raises(ValueError):
            settings_from_args(args)


class TestSocketAddr:
    """Test cases for parse_socket_addr"""

    def test_ipv4(self):
        assert parse_socket_addr("127.0.0.1:3003") == ("127.0.0.1", 3003)

    def test_ipv6(self):
        assert parse_socket_addr("[::]:80") == ("::", 80)

    @pytest.mark.parametrize("value", ["localhost", ":3003", "host:0", "host:70000", "host:abc"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_socket_addr(value)
