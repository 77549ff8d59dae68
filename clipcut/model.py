from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional


def as_seconds(value: Any) -> Optional[float]:
    """Return `value` as a finite float, or None if it isn't a usable number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(v):
        return None
    return v


@dataclass(frozen=True)
class Clip:
    """
    One marked range on the loaded asset.

    Attributes:
        start/end: offsets from the asset origin (seconds)
    """

    start: float
    end: float

    @property
    def duration(self) -> float:
        return max(0.0, self.end - self.start)


@dataclass
class PendingRange:
    """Start/end being edited by the user before it is committed as a Clip."""

    start: Optional[float] = None
    end: Optional[float] = None

    def reset(self) -> None:
        self.start = None
        self.end = None

    @property
    def span(self) -> float:
        s = as_seconds(self.start)
        e = as_seconds(self.end)
        if s is None or e is None:
            return 0.0
        return e - s


@dataclass(frozen=True)
class MediaAsset:
    """Raw asset handed over by the file picker."""

    name: str
    path: str

    @staticmethod
    def from_path(path: str) -> "MediaAsset":
        p = Path(path)
        return MediaAsset(name=p.name, path=str(p))

    def read_bytes(self) -> bytes:
        return Path(self.path).read_bytes()


def parse_time(text: str) -> Optional[float]:
    """Parse seconds, `m:ss` or `h:mm:ss`. Returns None for anything else."""
    raw = str(text or "").strip()
    if not raw:
        return None
    parts = raw.split(":")
    if len(parts) > 3:
        return None
    total = 0.0
    for i, part in enumerate(parts):
        v = as_seconds(part) if part.strip() else None
        if v is None or v < 0:
            return None
        if i > 0 and v >= 60:
            return None
        total = total * 60 + v
    return total


def format_time(sec: float) -> str:
    """`m:ss`, or `h:mm:ss` once the value reaches an hour."""
    v = as_seconds(sec) or 0.0
    total = int(max(0.0, v))
    h = total // 3600
    m = (total % 3600) // 60
    s = total % 60
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def ffmpeg_seconds(sec: float) -> str:
    """Seconds as an ffmpeg time argument, to the microsecond: 2.0 -> "2", 2.5 -> "2.5"."""
    s = f"{float(sec):.6f}".rstrip("0").rstrip(".")
    return s or "0"
