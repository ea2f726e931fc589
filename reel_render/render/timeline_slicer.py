"""Time arithmetic for chunked rendering.

Pure functions: compute a segment window from (index, length) and restrict a
timeline to a sub-range, shifting every retained entry so the result is
zero-based.
"""

import logging
from dataclasses import dataclass
from typing import TypeVar

from reel_render.exceptions import InvalidSegmentError, InvalidTimeRangeError
from reel_render.schemas.timeline import MusicEntry, TimedEntry, Timeline, Tracks

logger = logging.getLogger(__name__)

DEFAULT_MUSIC_VOLUME = 0.35

E = TypeVar("E", bound=TimedEntry)


@dataclass(frozen=True)
class SegmentWindow:
    """A [start, end) window in timeline seconds."""

    index: int
    start: float
    end: float
    requested_length: float

    @property
    def length(self) -> float:
        return self.end - self.start

    @property
    def truncated(self) -> bool:
        """True when the window is shorter than requested (last chunk)."""
        return self.length + 1e-9 < self.requested_length


def clamp_segment_length(length: float, min_length: float, max_length: float) -> float:
    return min(max_length, max(min_length, length))


def segment_window(index: int, length: float, total: float | None) -> SegmentWindow:
    """Compute the [start, end) window of chunk ``index``.

    ``end`` is capped at ``total`` when the timeline duration is known, so
    the last chunk may be shorter than ``length``. With no known duration
    the window is always the full requested length.

    Raises:
        InvalidSegmentError: negative index, non-positive length, or a
            window that starts at or past the end of the timeline.
    """
    if index < 0:
        raise InvalidSegmentError(f"Segment index must be >= 0, got {index}", index=index, length=length)
    if length <= 0:
        raise InvalidSegmentError(f"Segment length must be > 0, got {length}", index=index, length=length)

    start = index * length
    end = start + length
    if total:
        end = min(total, end)

    if end <= start:
        raise InvalidSegmentError(
            f"Segment {index} starts at {start:g}s, past the timeline end ({total:g}s)",
            index=index,
            length=length,
        )
    return SegmentWindow(index=index, start=start, end=end, requested_length=length)


def _clip_entries(entries: list[E], t0: float, t1: float) -> list[E]:
    clipped: list[E] = []
    for entry in entries:
        start = max(t0, entry.t0)
        end = min(t1, entry.t1)
        if end - start <= 0:
            continue
        clipped.append(entry.model_copy(update={"t0": start - t0, "t1": end - t0}))
    return clipped


def slice_timeline(timeline: Timeline, t0: float, t1: float) -> Timeline:
    """Restrict ``timeline`` to [t0, t1) and shift it to start at zero.

    Music has no timestamps: a non-empty music track becomes one entry
    spanning the whole new window, keeping the first entry's volume.
    """
    if t0 < 0 or t1 <= t0:
        raise InvalidTimeRangeError(start_s=t0, end_s=t1)

    tracks = timeline.tracks
    music: list[MusicEntry] = []
    if tracks.music:
        vol = tracks.music[0].vol
        music = [MusicEntry(vol=DEFAULT_MUSIC_VOLUME if vol is None else vol)]

    sliced = Timeline(
        duration_seconds=t1 - t0,
        fps=timeline.fps,
        tracks=Tracks(
            video=_clip_entries(tracks.video, t0, t1),
            voiceover=_clip_entries(tracks.voiceover, t0, t1),
            music=music,
            captions=_clip_entries(tracks.captions, t0, t1),
        ),
    )
    logger.info(
        f"[SLICE] [{t0:g}, {t1:g}) -> video={len(sliced.tracks.video)}/{len(tracks.video)} "
        f"voice={len(sliced.tracks.voiceover)}/{len(tracks.voiceover)} "
        f"captions={len(sliced.tracks.captions)}/{len(tracks.captions)}"
    )
    return sliced
