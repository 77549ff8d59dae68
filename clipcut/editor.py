from __future__ import annotations

import asyncio
import logging
import subprocess
from typing import Callable, List, Optional

from .errors import AlreadyProcessing
from .model import Clip, MediaAsset, as_seconds
from .pipeline import TranscodePipeline
from .playhead import PlaybackElement, PlayheadTracker
from .resources import ObjectUrl, ObjectUrlRegistry
from .session import MediaSession
from .thumbnails import FrameSource, ThumbnailSampler

log = logging.getLogger("clipcut.editor")


class EditorSession:
    """
    One editor window: the loaded asset, its clips and the shared pipeline.

    UI handlers and keyboard shortcuts go through this object so they always
    see the current asset and clip list.
    """

    def __init__(
        self,
        pipeline: TranscodePipeline,
        resources: ObjectUrlRegistry,
        probe_duration: Callable[[str], float],
        frame_source_factory: Optional[Callable[[MediaAsset], FrameSource]] = None,
        auto_add: bool = True,
        thumbnail_count: int = 10,
    ) -> None:
        self.pipeline = pipeline
        self.resources = resources
        self.probe_duration = probe_duration
        self.frame_source_factory = frame_source_factory
        self.auto_add = bool(auto_add)
        self.thumbnail_count = max(1, int(thumbnail_count))
        self.media = MediaSession(resources)
        self.playhead = PlayheadTracker(lambda: self.media.playable)
        self.sampler = ThumbnailSampler()

    # ---------- asset ----------
    def attach_player(self, player: Optional[PlaybackElement]) -> None:
        self.playhead.attach(player)

    async def open(self, asset: MediaAsset) -> ObjectUrl:
        """Load `asset` and derive its duration. Raises UnreadableAsset if it has none."""
        if self.pipeline.processing:
            raise AlreadyProcessing()
        self.pipeline.release_output()
        url = self.media.load(asset)

        duration: Optional[float]
        try:
            duration = await asyncio.to_thread(self.probe_duration, asset.path)
        except (OSError, ValueError, subprocess.CalledProcessError) as ex:
            log.warning("probe failed for %s: %s", asset.name, ex)
            duration = None
        if self.media.asset is asset:
            self.media.apply_metadata(duration)
        return url

    async def refresh_thumbnails(self) -> List[ObjectUrl]:
        """Sample thumbnails for the current asset, following it if it is replaced mid-pass."""
        self.media.require_playable()
        if self.frame_source_factory is None:
            return []
        while True:
            asset = self.media.asset
            frames = await self.sampler.sample(
                self.frame_source_factory(asset),
                self.media.duration(),
                self.thumbnail_count,
            )
            if self.media.asset is asset:
                break
            # A newer asset was loaded while sampling; its own refresh is
            # refused as SamplingInProgress, so sample it here.
            if not self.media.playable:
                return []
            log.info("asset changed during sampling, resampling %s", self.media.asset.name)
        urls = [self.resources.create_from_bytes(f, ".png") for f in frames]
        self.media.set_thumbnails(urls)
        return urls

    # ---------- marking ----------
    async def mark_start(self) -> Optional[int]:
        if not self.media.playable:
            return None
        t = await self.playhead.current_position()
        self.media.pending.start = t
        return t

    async def mark_end(self) -> Optional[int]:
        if not self.media.playable:
            return None
        t = await self.playhead.current_position()
        pending = self.media.pending
        pending.end = t
        start = as_seconds(pending.start)
        if self.auto_add and start is not None and start < t:
            self.add_pending()
        return t

    def set_pending(self, start: Optional[float], end: Optional[float]) -> None:
        self.media.pending.start = start
        self.media.pending.end = end

    # ---------- clips ----------
    def add_pending(self) -> Optional[int]:
        """Commit the pending range. No-op while a cut is running."""
        self.media.require_playable()
        if self.pipeline.processing:
            return None
        return self.media.clips.add(self.media.pending)

    def remove_clip(self, index: int) -> Clip:
        return self.media.clips.remove(index)

    def can_add_pending(self) -> bool:
        return (
            self.media.playable
            and self.pipeline.ready
            and not self.pipeline.processing
            and self.media.pending.span >= 1
        )

    def can_cut(self) -> bool:
        return (
            self.media.playable
            and self.pipeline.ready
            and not self.pipeline.processing
            and len(self.media.clips) > 0
        )

    # ---------- output ----------
    async def cut(self) -> ObjectUrl:
        self.media.require_playable()
        return await self.pipeline.cut(self.media.clips.snapshot(), self.media.asset)

    @property
    def output(self) -> Optional[ObjectUrl]:
        return self.pipeline.output

    def close(self) -> None:
        self.pipeline.release_output()
        self.media.close()
