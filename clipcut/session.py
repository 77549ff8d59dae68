from __future__ import annotations

import logging
from enum import Enum
from typing import Any, List, Optional

from .clips import ClipStore
from .errors import UnreadableAsset
from .model import MediaAsset, PendingRange, as_seconds
from .resources import ObjectUrl, ObjectUrlRegistry

log = logging.getLogger("clipcut.session")


class SessionStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    UNPLAYABLE = "unplayable"


class MediaSession:
    """
    Owns the loaded asset and everything derived from it.

    Loading a new asset replaces the clip list, thumbnails and pending range
    wholesale and revokes the previous preview URL.
    """

    def __init__(self, resources: ObjectUrlRegistry) -> None:
        self.resources = resources
        self.status = SessionStatus.IDLE
        self.asset: Optional[MediaAsset] = None
        self.preview_url: Optional[ObjectUrl] = None
        self.clips = ClipStore(self.duration)
        self.pending = PendingRange()
        self.thumbnails: List[ObjectUrl] = []
        self._duration: Optional[float] = None

    @property
    def has_asset(self) -> bool:
        return self.asset is not None

    @property
    def playable(self) -> bool:
        return self.status == SessionStatus.READY

    def duration(self) -> Optional[float]:
        return self._duration

    def load(self, asset: MediaAsset) -> ObjectUrl:
        self.clear_thumbnails()
        self.resources.revoke(self.preview_url)

        self.asset = asset
        self._duration = None
        self.status = SessionStatus.LOADING
        self.clips = ClipStore(self.duration)
        self.pending.reset()
        self.preview_url = self.resources.create_for_path(asset.path)
        log.info("loaded %s", asset.name)
        return self.preview_url

    def apply_metadata(self, duration: Any) -> float:
        """Metadata-ready signal from the player/probe. Raises UnreadableAsset if unusable."""
        if self.asset is None:
            raise UnreadableAsset("no asset loaded")
        dur = as_seconds(duration)
        if dur is None or dur <= 0:
            self._duration = None
            self.status = SessionStatus.UNPLAYABLE
            log.warning("%s reports unusable duration %r", self.asset.name, duration)
            raise UnreadableAsset(f"{self.asset.name}: duration {duration!r}")
        self._duration = dur
        self.status = SessionStatus.READY
        return dur

    def require_playable(self) -> None:
        if not self.playable:
            raise UnreadableAsset(f"session is {self.status.value}")

    def set_thumbnails(self, items: List[ObjectUrl]) -> None:
        self.clear_thumbnails()
        self.thumbnails = list(items)

    def clear_thumbnails(self) -> None:
        self.resources.revoke_all(self.thumbnails)
        self.thumbnails = []

    def close(self) -> None:
        self.clear_thumbnails()
        self.resources.revoke(self.preview_url)
        self.preview_url = None
        self.asset = None
        self._duration = None
        self.clips = ClipStore(self.duration)
        self.pending.reset()
        self.status = SessionStatus.IDLE
