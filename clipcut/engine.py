from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .errors import EngineError, FFmpegNotFound

log = logging.getLogger("clipcut.engine")


@dataclass(frozen=True)
class MediaInfo:
    duration: float
    has_video: bool
    has_audio: bool


def resolve_ffmpeg_bins(project_root: Path, extra_dir: Optional[str] = None) -> Tuple[str, str]:
    """Return (ffmpeg_path, ffprobe_path). Prefer `extra_dir`, then ./bin, then PATH."""
    dirs: List[Path] = []
    if extra_dir:
        dirs.append(Path(extra_dir))
    dirs.append(project_root / "bin")

    exe = ".exe" if os.name == "nt" else ""
    for d in dirs:
        ffmpeg = d / f"ffmpeg{exe}"
        ffprobe = d / f"ffprobe{exe}"
        if ffmpeg.exists() and ffprobe.exists():
            return str(ffmpeg), str(ffprobe)

    on_path = shutil.which("ffmpeg"), shutil.which("ffprobe")
    if on_path[0] and on_path[1]:
        return on_path[0], on_path[1]

    searched = ", ".join(str(d) for d in dirs)
    raise FFmpegNotFound(f"ffmpeg/ffprobe not found in {searched} or PATH")


def probe_media(ffprobe_path: str, src: str) -> MediaInfo:
    """Use ffprobe to get duration and whether streams exist."""
    cmd = [
        ffprobe_path,
        "-v",
        "error",
        "-print_format",
        "json",
        "-show_format",
        "-show_streams",
        src,
    ]
    p = subprocess.run(cmd, capture_output=True, text=True, check=True)
    data = json.loads(p.stdout)

    fmt = data.get("format", {}) or {}
    try:
        dur = float(fmt.get("duration", 0.0) or 0.0)
    except (TypeError, ValueError):
        dur = 0.0

    streams = data.get("streams", []) or []
    has_v = any(s.get("codec_type") == "video" for s in streams)
    has_a = any(s.get("codec_type") == "audio" for s in streams)

    return MediaInfo(duration=dur, has_video=has_v, has_audio=has_a)


class TranscodeEngine(ABC):
    """
    Contract for the transcoding engine.

    The engine owns one private filesystem and one execution context, so
    callers must await each operation before issuing the next.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Ready the engine. Calling it again once ready is a no-op."""

    @abstractmethod
    async def write_file(self, name: str, data: bytes) -> None:
        pass

    @abstractmethod
    async def exec(self, args: Sequence[str]) -> None:
        """Run one command. `args` are opaque tokens interpreted by the engine."""

    @abstractmethod
    async def read_file(self, name: str) -> bytes:
        pass

    @abstractmethod
    async def delete_file(self, name: str) -> None:
        """Remove `name` if present."""


class FFmpegEngine(TranscodeEngine):
    """Runs the ffmpeg binary inside a private working directory."""

    def __init__(self, ffmpeg_path: str, work_dir: Optional[Path] = None) -> None:
        self.ffmpeg_path = ffmpeg_path
        self._work_dir_arg = work_dir
        self.work_dir: Optional[Path] = None
        self._ready = False
        self._in_flight: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self._ready

    def _path(self, name: str) -> Path:
        if self.work_dir is None:
            raise EngineError("Engine is not initialized")
        n = str(name or "")
        if not n or n != Path(n).name or n in (".", ".."):
            raise EngineError(f"Invalid engine file name: {name!r}")
        return self.work_dir / n

    def _enter(self, op: str) -> None:
        if self._in_flight is not None:
            raise EngineError(f"{op} issued while {self._in_flight} is still running")
        self._in_flight = op

    def _leave(self) -> None:
        self._in_flight = None

    async def initialize(self) -> None:
        if self._ready:
            return
        self._enter("initialize")
        try:
            try:
                await asyncio.to_thread(
                    subprocess.run,
                    [self.ffmpeg_path, "-hide_banner", "-version"],
                    capture_output=True,
                    check=True,
                )
            except (OSError, subprocess.CalledProcessError) as ex:
                raise EngineError(f"ffmpeg is not usable: {ex}") from ex
            if self._work_dir_arg is not None:
                self.work_dir = Path(self._work_dir_arg)
                self.work_dir.mkdir(parents=True, exist_ok=True)
            else:
                self.work_dir = Path(tempfile.mkdtemp(prefix="clipcut-engine-"))
            self._ready = True
            log.info("ffmpeg engine ready (workdir=%s)", self.work_dir)
        finally:
            self._leave()

    async def write_file(self, name: str, data: bytes) -> None:
        p = self._path(name)
        self._enter(f"write_file({name})")
        try:
            await asyncio.to_thread(p.write_bytes, bytes(data))
        except OSError as ex:
            raise EngineError(f"write_file({name}) failed: {ex}") from ex
        finally:
            self._leave()

    async def exec(self, args: Sequence[str]) -> None:
        if self.work_dir is None:
            raise EngineError("Engine is not initialized")
        cmd = [self.ffmpeg_path, "-hide_banner", "-loglevel", "error", "-y", *[str(a) for a in args]]
        self._enter("exec")
        try:
            p = await asyncio.to_thread(
                subprocess.run,
                cmd,
                cwd=str(self.work_dir),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as ex:
            raise EngineError(f"ffmpeg could not start: {ex}") from ex
        finally:
            self._leave()
        if p.returncode != 0:
            tail = "\n".join((p.stderr or "").strip().splitlines()[-5:])
            raise EngineError(f"ffmpeg exited with {p.returncode}: {tail}")

    async def read_file(self, name: str) -> bytes:
        p = self._path(name)
        self._enter(f"read_file({name})")
        try:
            return await asyncio.to_thread(p.read_bytes)
        except OSError as ex:
            raise EngineError(f"read_file({name}) failed: {ex}") from ex
        finally:
            self._leave()

    async def delete_file(self, name: str) -> None:
        p = self._path(name)
        self._enter(f"delete_file({name})")
        try:
            await asyncio.to_thread(p.unlink, missing_ok=True)
        except OSError as ex:
            raise EngineError(f"delete_file({name}) failed: {ex}") from ex
        finally:
            self._leave()
