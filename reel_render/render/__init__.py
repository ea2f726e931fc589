from reel_render.render.audio_mixer import AudioComposer
from reel_render.render.concatenator import Concatenator
from reel_render.render.media_backend import Clip, FFmpegBackend, MediaBackend
from reel_render.render.pipeline import RenderPipeline, RenderState, select_state
from reel_render.render.segment_synthesizer import SegmentSynthesizer
from reel_render.render.timeline_slicer import segment_window, slice_timeline
from reel_render.render.track_assembler import TrackAssembler

__all__ = [
    "RenderPipeline",
    "RenderState",
    "select_state",
    "SegmentSynthesizer",
    "TrackAssembler",
    "Concatenator",
    "AudioComposer",
    "Clip",
    "MediaBackend",
    "FFmpegBackend",
    "segment_window",
    "slice_timeline",
]
