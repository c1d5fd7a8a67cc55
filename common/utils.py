from __future__ import annotations

from typing import Tuple
from dataclasses import dataclass


@dataclass(slots=True)
class RunningStats:
    """
    Online mean/std using Welford's algorithm.
    """
    n: int = 0
    mean: float = 0.0
    m2: float = 0.0

    def add(self, x: float) -> None:
        self.n += 1
        d = x - self.mean
        self.mean += d / self.n
        d2 = x - self.mean
        self.m2 += d * d2

    @property
    def variance(self) -> float:
        return self.m2 / (self.n - 1) if self.n > 1 else 0.0

    @property
    def std(self) -> float:
        return self.variance ** 0.5


def clamp(v: int, lo: int, hi: int) -> int:
    return int(min(hi, max(lo, v)))


def parse_socket_addr(s: str) -> Tuple[str, int]:
    """
    Parse 'HOST:PORT' (IPv6 hosts in brackets, e.g. '[::1]:3003').
    """
    host, sep, port = s.strip().rpartition(":")
    if not sep or not host:
        raise ValueError(f"Socket address must be HOST:PORT, got {s!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    p = int(port)
    if not (0 < p < 65536):
        raise ValueError(f"Port out of range: {p}")
    return host, p
