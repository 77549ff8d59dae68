from __future__ import annotations

from typing import Any, Callable, Iterator, List, Optional, Tuple

from .errors import IndexOutOfRange, InvalidRange
from .model import Clip, as_seconds, ffmpeg_seconds


class ClipStore:
    """
    Ordered list of committed clips for the loaded asset.

    Clips keep insertion order. Overlapping, duplicated and out-of-order ranges
    are accepted; the cut joins them in list order.
    """

    def __init__(self, duration: Callable[[], Optional[float]]) -> None:
        self._duration = duration
        self._clips: List[Clip] = []

    def __len__(self) -> int:
        return len(self._clips)

    def __iter__(self) -> Iterator[Clip]:
        return iter(list(self._clips))

    def __getitem__(self, index: int) -> Clip:
        return self._clips[index]

    def validate(self, start: Any, end: Any) -> Clip:
        s = as_seconds(start)
        e = as_seconds(end)
        if s is None or e is None:
            raise InvalidRange(f"start/end must be numbers (got {start!r}, {end!r})")
        if s >= e:
            raise InvalidRange(f"start must be before end ({s} >= {e})")
        if ffmpeg_seconds(s) == ffmpeg_seconds(e):
            raise InvalidRange(f"range {s}-{e} is shorter than a microsecond")

        dur = as_seconds(self._duration())
        if dur is None or dur <= 0:
            raise InvalidRange("asset duration is unknown")
        if s < 0 or e > dur:
            raise InvalidRange(f"range {s}-{e} is outside 0-{dur}")
        return Clip(start=s, end=e)

    def add(self, rng: Any) -> int:
        """Validate `rng` (anything with .start/.end) and append it. Returns the new index."""
        clip = self.validate(getattr(rng, "start", None), getattr(rng, "end", None))
        self._clips.append(clip)
        return len(self._clips) - 1

    def remove(self, index: int) -> Clip:
        if isinstance(index, bool) or not isinstance(index, int) or not (0 <= index < len(self._clips)):
            raise IndexOutOfRange(f"no clip at index {index!r}")
        return self._clips.pop(index)

    def clear(self) -> None:
        self._clips.clear()

    def snapshot(self) -> Tuple[Clip, ...]:
        return tuple(self._clips)

    def total_duration(self) -> float:
        return sum(c.duration for c in self._clips)
