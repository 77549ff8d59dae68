from __future__ import annotations

import math
from typing import Callable, Optional, Protocol

from .model import as_seconds


class PlaybackElement(Protocol):
    """What the editor needs from the video player control."""

    async def current_position(self) -> float: ...


class PlayheadTracker:
    """Reads the play-head of the attached player, floored to whole seconds."""

    def __init__(self, has_asset: Callable[[], bool]) -> None:
        self._has_asset = has_asset
        self.player: Optional[PlaybackElement] = None

    def attach(self, player: Optional[PlaybackElement]) -> None:
        self.player = player

    async def current_position(self) -> int:
        if self.player is None or not self._has_asset():
            return 0
        pos = as_seconds(await self.player.current_position())
        if pos is None or pos < 0:
            return 0
        return int(math.floor(pos))
