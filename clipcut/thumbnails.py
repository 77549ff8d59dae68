from __future__ import annotations

import asyncio
import math
import subprocess
from typing import List, Optional, Protocol

from .errors import EngineError, SamplingInProgress, UnreadableAsset
from .model import as_seconds

THUMB_WIDTH = 160
THUMB_HEIGHT = 90


class FrameSource(Protocol):
    async def seek_to(self, sec: float) -> None: ...

    async def capture_frame(self, width: int, height: int) -> bytes: ...


def sample_points(duration: float, target_count: int = 10) -> List[float]:
    """
    Positions to sample for a timeline preview.

    Every `max(1, floor(duration / target_count))` seconds from 0, plus one
    last frame just before the end.
    """
    interval = max(1, int(math.floor(duration / max(1, int(target_count)))))
    out: List[float] = []
    t = 0
    while t < duration:
        out.append(float(t))
        t += interval
    out.append(max(0.0, duration - 0.1))
    return out


class FFmpegFrameGrabber:
    """
    Offscreen frame source backed by ffmpeg.

    Each capture decodes a single frame at the last seek position and returns
    it as PNG bytes scaled to the requested raster.
    """

    def __init__(self, ffmpeg_path: str, src: str) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.src = src
        self.position = 0.0

    async def seek_to(self, sec: float) -> None:
        # ffmpeg seeks when the frame is captured.
        self.position = max(0.0, float(sec))

    async def capture_frame(self, width: int = THUMB_WIDTH, height: int = THUMB_HEIGHT) -> bytes:
        cmd = [
            self.ffmpeg_path,
            "-hide_banner",
            "-loglevel",
            "error",
            "-ss",
            f"{self.position:.6f}",
            "-i",
            self.src,
            "-frames:v",
            "1",
            "-vf",
            f"scale={int(width)}:{int(height)}:flags=lanczos",
            "-f",
            "image2pipe",
            "-vcodec",
            "png",
            "pipe:1",
        ]
        try:
            p = await asyncio.to_thread(subprocess.run, cmd, capture_output=True, check=True)
        except (OSError, subprocess.CalledProcessError) as ex:
            raise EngineError(f"frame capture at {self.position:.3f}s failed: {ex}") from ex
        if not p.stdout:
            raise EngineError(f"frame capture at {self.position:.3f}s produced no data")
        return p.stdout


class ThumbnailSampler:
    """Samples preview frames one seek at a time. Only one pass may run."""

    def __init__(self, width: int = THUMB_WIDTH, height: int = THUMB_HEIGHT) -> None:
        self.width = width
        self.height = height
        self._active = False

    @property
    def busy(self) -> bool:
        return self._active

    async def sample(self, source: FrameSource, duration: Optional[float], target_count: int = 10) -> List[bytes]:
        dur = as_seconds(duration)
        if dur is None or dur <= 0:
            raise UnreadableAsset(f"cannot sample thumbnails for duration {duration!r}")
        if self._active:
            raise SamplingInProgress()

        self._active = True
        try:
            frames: List[bytes] = []
            for t in sample_points(dur, target_count):
                await source.seek_to(t)
                frames.append(await source.capture_frame(self.width, self.height))
            return frames
        finally:
            self._active = False
