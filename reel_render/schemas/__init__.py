from reel_render.schemas.render import (
    RenderRequest,
    RenderResult,
    SegmentMeta,
    SegmentSpec,
    format_slug,
    resolution_for,
)
from reel_render.schemas.timeline import (
    CaptionEntry,
    MusicEntry,
    Timeline,
    Tracks,
    VideoEntry,
    VoiceoverEntry,
)

__all__ = [
    "Timeline",
    "Tracks",
    "VideoEntry",
    "VoiceoverEntry",
    "MusicEntry",
    "CaptionEntry",
    "RenderRequest",
    "RenderResult",
    "SegmentMeta",
    "SegmentSpec",
    "format_slug",
    "resolution_for",
]
