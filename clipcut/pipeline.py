from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import (
    AlreadyProcessing,
    EngineError,
    EngineNotReady,
    InvalidRange,
    ProcessingFailed,
    UnreadableAsset,
)
from .engine import TranscodeEngine
from .model import Clip, MediaAsset, ffmpeg_seconds
from .resources import ObjectUrl, ObjectUrlRegistry

log = logging.getLogger("clipcut.pipeline")

INPUT_NAME = "input.mp4"
MANIFEST_NAME = "concat.txt"
OUTPUT_NAME = "output.mp4"


class PipelineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    EXTRACTING = "extracting"
    CONCATENATING = "concatenating"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_IDLE_STATES = (PipelineState.READY, PipelineState.SUCCEEDED, PipelineState.FAILED)


def part_name(i: int) -> str:
    return f"part{i}.mp4"


def build_extract_args(clip: Clip, out_name: str) -> List[str]:
    """Stream-copy `clip` out of the input. Never re-encodes."""
    return [
        "-i",
        INPUT_NAME,
        "-ss",
        ffmpeg_seconds(clip.start),
        "-to",
        ffmpeg_seconds(clip.end),
        "-c",
        "copy",
        out_name,
    ]


def build_manifest(names: Sequence[str]) -> str:
    return "\n".join(f"file '{n}'" for n in names)


def build_concat_args() -> List[str]:
    return [
        "-f",
        "concat",
        "-safe",
        "0",
        "-i",
        MANIFEST_NAME,
        "-c",
        "copy",
        OUTPUT_NAME,
    ]


class TranscodePipeline:
    """
    Drives the engine through an extract-then-concatenate job.

    Only one job runs at a time; a cut requested while one is running is
    rejected, not queued. Every engine file a job creates is deleted when the
    job ends, whatever the outcome.
    """

    def __init__(self, engine: TranscodeEngine, resources: ObjectUrlRegistry) -> None:
        self.engine = engine
        self.resources = resources
        self.state = PipelineState.UNINITIALIZED
        self.progress: Optional[Tuple[int, int]] = None
        self.output: Optional[ObjectUrl] = None
        self.on_change: Optional[Callable[[PipelineState], None]] = None
        self._processing = False
        self._init_task: Optional[asyncio.Task] = None

    @property
    def ready(self) -> bool:
        return self.state in _IDLE_STATES

    @property
    def processing(self) -> bool:
        return self._processing

    def _set_state(self, state: PipelineState) -> None:
        self.state = state
        if self.on_change is not None:
            self.on_change(state)

    async def initialize(self) -> None:
        if self.ready or self._processing:
            return
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())
        try:
            await asyncio.shield(self._init_task)
        finally:
            if self._init_task is not None and self._init_task.done():
                self._init_task = None

    async def _initialize(self) -> None:
        self._set_state(PipelineState.INITIALIZING)
        try:
            await self.engine.initialize()
        except Exception as ex:
            log.exception("engine initialization failed: %s", ex)
            self._set_state(PipelineState.UNINITIALIZED)
            raise EngineNotReady() from ex
        self._set_state(PipelineState.READY)

    async def cut(self, clips: Sequence[Clip], asset: Optional[MediaAsset]) -> ObjectUrl:
        """
        Extract every clip in list order and join them into one output.

        Args:
            clips: snapshot of the clip list; later edits are not seen
            asset: the loaded source asset

        Returns:
            the new output resource; the previous one is revoked
        """
        if self._processing:
            raise AlreadyProcessing()
        if not self.ready:
            raise EngineNotReady()
        snapshot = tuple(clips)
        if not snapshot:
            raise InvalidRange("no clips to cut")
        if asset is None:
            raise UnreadableAsset("no asset loaded")

        self._processing = True
        created: List[str] = []
        try:
            out = await self._run_job(snapshot, asset, created)
        except Exception as ex:
            log.exception("cut failed (%d clips): %s", len(snapshot), ex)
            self._set_state(PipelineState.FAILED)
            raise ProcessingFailed() from ex
        finally:
            await self._cleanup(created)
            self.progress = None
            self._processing = False

        prev = self.output
        self.output = out
        self.resources.revoke(prev)
        self._set_state(PipelineState.SUCCEEDED)
        log.info("cut done: %d clips -> %s", len(snapshot), out.path)
        return out

    async def _run_job(self, clips: Tuple[Clip, ...], asset: MediaAsset, created: List[str]) -> ObjectUrl:
        n = len(clips)
        self.progress = (0, n)
        self._set_state(PipelineState.EXTRACTING)

        data = await asyncio.to_thread(asset.read_bytes)
        created.append(INPUT_NAME)
        await self.engine.write_file(INPUT_NAME, data)
        del data

        parts: List[str] = []
        for i, clip in enumerate(clips):
            self.progress = (i + 1, n)
            self._set_state(PipelineState.EXTRACTING)
            name = part_name(i)
            created.append(name)
            await self.engine.exec(build_extract_args(clip, name))
            parts.append(name)

        self._set_state(PipelineState.CONCATENATING)
        created.append(MANIFEST_NAME)
        await self.engine.write_file(MANIFEST_NAME, build_manifest(parts).encode("utf-8"))
        created.append(OUTPUT_NAME)
        await self.engine.exec(build_concat_args())

        out_bytes = await self.engine.read_file(OUTPUT_NAME)
        if not out_bytes:
            raise EngineError("engine produced an empty output")
        return await asyncio.to_thread(self.resources.create_from_bytes, out_bytes, ".mp4")

    async def _cleanup(self, names: List[str]) -> None:
        for name in names:
            try:
                await self.engine.delete_file(name)
            except EngineError as ex:
                log.warning("cleanup of %s failed: %s", name, ex)

    def release_output(self) -> None:
        self.resources.revoke(self.output)
        self.output = None
