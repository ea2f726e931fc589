"""
Render pipeline: timeline in, published artifacts out.

The pipeline runs in one of three states, chosen from the request:

- fast_preview:  one labelled clip straight at the target resolution,
                 bypassing segment assembly (latency path)
- full_pipeline: segments -> concat -> audio; ``final`` also publishes
                 captions and thumbnails, ``preview`` is cut to 10s
- segment_chunk: the same stages over a sliced, zero-based sub-window

Every request gets its own working directory, removed when the request
finishes whether it succeeded or not.
"""

import logging
import shutil
import tempfile
from enum import Enum
from pathlib import Path

from reel_render.config import Settings, get_settings
from reel_render.exceptions import RenderBackendError
from reel_render.middleware.request_context import RequestContext
from reel_render.render.audio_mixer import AudioComposer
from reel_render.render.captions import write_srt_file
from reel_render.render.concatenator import Concatenator
from reel_render.render.media_backend import Clip, FFmpegBackend, MediaBackend
from reel_render.render.segment_synthesizer import SegmentSynthesizer
from reel_render.render.timeline_slicer import clamp_segment_length, segment_window, slice_timeline
from reel_render.render.track_assembler import TrackAssembler
from reel_render.schemas.render import RenderRequest, RenderResult, SegmentMeta, format_slug
from reel_render.schemas.timeline import Timeline, VideoEntry
from reel_render.services.storage_service import LocalStorageService, get_storage_service

logger = logging.getLogger(__name__)

THUMBNAIL_NAMES = ("thumb_A.jpg", "thumb_B.jpg", "thumb_C.jpg")


class RenderState(Enum):
    """Output assembler state."""

    FAST_PREVIEW = "fast_preview"
    FULL_PIPELINE = "full_pipeline"
    SEGMENT_CHUNK = "segment_chunk"


def select_state(request: RenderRequest, settings: Settings) -> RenderState:
    if request.mode == "segment":
        return RenderState.SEGMENT_CHUNK
    if request.mode == "preview" and not request.full_preview and settings.quick_preview_enabled:
        return RenderState.FAST_PREVIEW
    return RenderState.FULL_PIPELINE


def format_seconds_label(seconds: float) -> str:
    """45.0 -> "45", 7.5 -> "7.5" (for filenames)."""
    return f"{round(seconds, 3):g}"


def clamp_thumbnail_time(timestamp_s: float, duration_s: float, fps: int = 30) -> float:
    """Keep a thumbnail timestamp on a frame that exists in the clip."""
    last_frame = max(0.0, duration_s - 1.0 / fps)
    return min(max(0.0, timestamp_s), last_frame)


class RenderPipeline:
    """Turn a ``RenderRequest`` into published artifacts."""

    def __init__(
        self,
        settings: Settings | None = None,
        backend: MediaBackend | None = None,
        storage: LocalStorageService | None = None,
        synthesizer: SegmentSynthesizer | None = None,
    ):
        self.settings = settings or get_settings()
        self.backend = backend or FFmpegBackend(self.settings)
        self.synthesizer = synthesizer or SegmentSynthesizer(self.backend, self.settings)
        self.assembler = TrackAssembler(self.synthesizer, self.settings.render_max_workers)
        self.concatenator = Concatenator(self.backend, self.settings.concat_fast_path_enabled)
        self.audio = AudioComposer(self.backend, self.settings)
        self.storage = storage or get_storage_service()

    async def run(self, request: RenderRequest, context: RequestContext) -> RenderResult:
        """
        Execute the render for ``request``.

        Raises:
            InputValidationError: segment window is empty or out of range
            RenderBackendError: a stage failed with no remaining fallback
        """
        state = select_state(request, self.settings)
        width, height = request.resolution
        logger.info(
            f"[RENDER] {context.request_id} mode={request.mode} state={state.value} "
            f"format={request.format} ({width}x{height}) "
            f"video_entries={len(request.timeline.tracks.video)}"
        )

        workdir = Path(tempfile.mkdtemp(prefix=f"reel_render_{context.request_id}_"))
        try:
            if state is RenderState.FAST_PREVIEW:
                result = await self._fast_preview(request, context, workdir)
            elif state is RenderState.SEGMENT_CHUNK:
                result = await self._segment_chunk(request, context, workdir)
            else:
                result = await self._full_pipeline(request, context, workdir)
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

        result.timing = context.build_timing()
        logger.info(f"[RENDER] {context.request_id} done in {result.timing['totalMs']}ms")
        return result

    # ------------------------------------------------------------------
    # Shared stages
    # ------------------------------------------------------------------

    async def _compose(
        self,
        timeline: Timeline,
        width: int,
        height: int,
        workdir: Path,
        context: RequestContext,
        placeholder_duration_s: float | None = None,
    ) -> Clip:
        tracks = timeline.tracks

        with context.stage("voiceMs"):
            voice_path = await self.audio.synthesize_voice(tracks.voiceover, workdir)

        entries = tracks.video
        if not entries and placeholder_duration_s:
            entries = [VideoEntry(t0=0.0, t1=placeholder_duration_s, src=self.settings.fallback_label)]

        with context.stage("segmentsMs"):
            clips = await self.assembler.assemble(entries, width, height, workdir)

        with context.stage("concatMs"):
            video = await self.concatenator.concat(clips, workdir)

        with context.stage("audioMs"):
            return await self.audio.compose(
                video,
                voice_path,
                tracks.music_on,
                workdir,
                duck_volume=self.audio.duck_volume(tracks.music),
            )

    async def _publish(self, path: Path, filename: str, context: RequestContext) -> str:
        with context.stage("publishMs"):
            return await self.storage.publish(path, filename, context.base_url, namespace=context.request_id)

    def _captions_wanted(self, request: RenderRequest, timeline: Timeline) -> bool:
        return request.captions_enabled and self.settings.captions_enabled and bool(timeline.tracks.captions)

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    async def _fast_preview(self, request: RenderRequest, context: RequestContext, workdir: Path) -> RenderResult:
        width, height = request.resolution
        duration_s = self.settings.preview_duration_s

        video_track = request.timeline.tracks.video
        label = self.settings.fallback_label
        if video_track and not video_track[0].is_image and video_track[0].src:
            label = video_track[0].src
        entry = VideoEntry(t0=0.0, t1=duration_s, src=label)

        with context.stage("segmentsMs"):
            clip = await self.synthesizer.synthesize(entry, width, height, workdir)

        if self.settings.preview_requires_audio:
            with context.stage("audioMs"):
                silence = await self.backend.silence(workdir / "preview_silence.wav", duration_s)
                clip = await self.audio.compose(clip, silence, False, workdir)

        filename = f"preview_{format_seconds_label(duration_s)}s_{format_slug(request.format)}.mp4"
        url = await self._publish(clip.path, filename, context)
        return RenderResult(state=RenderState.FAST_PREVIEW.value, preview_url=url)

    async def _full_pipeline(self, request: RenderRequest, context: RequestContext, workdir: Path) -> RenderResult:
        width, height = request.resolution
        timeline = request.timeline
        slug = format_slug(request.format)

        clip = await self._compose(timeline, width, height, workdir, context)

        if request.mode == "preview":
            preview_s = self.settings.preview_duration_s
            if clip.duration_s > preview_s:
                with context.stage("trimMs"):
                    clip = await self.backend.trim(clip, preview_s, workdir / "preview_cut.mp4")
            filename = f"preview_{format_seconds_label(preview_s)}s_{slug}.mp4"
            url = await self._publish(clip.path, filename, context)
            return RenderResult(state=RenderState.FULL_PIPELINE.value, preview_url=url)

        result = RenderResult(state=RenderState.FULL_PIPELINE.value)

        if self._captions_wanted(request, timeline):
            srt_path = write_srt_file(workdir / "captions.srt", timeline.tracks.captions)
            result.captions_url = await self._publish(srt_path, "captions.srt", context)

        duration_label = format_seconds_label(timeline.duration_seconds or clip.duration_s)
        result.final_url = await self._publish(clip.path, f"video_final_{slug}_{duration_label}s.mp4", context)

        with context.stage("thumbnailsMs"):
            for name, timestamp_s in zip(THUMBNAIL_NAMES, self.settings.thumbnail_times_s):
                at = clamp_thumbnail_time(timestamp_s, clip.duration_s, self.backend.fps)
                frame = await self.backend.extract_frame(
                    clip, at, workdir / f"thumb_{name}", self.settings.thumbnail_size
                )
                result.thumbnail_urls.append(await self._publish(frame, name, context))

        return result

    async def _segment_chunk(self, request: RenderRequest, context: RequestContext, workdir: Path) -> RenderResult:
        width, height = request.resolution
        spec = request.segment
        length = clamp_segment_length(
            spec.length, self.settings.segment_min_length_s, self.settings.segment_max_length_s
        )
        window = segment_window(spec.index, length, request.timeline.duration_seconds)
        sliced = slice_timeline(request.timeline, window.start, window.end)
        logger.info(
            f"[SEGMENT] index={window.index} window=[{window.start:g}, {window.end:g}) "
            f"truncated={window.truncated}"
        )

        try:
            clip = await self._compose(
                sliced, width, height, workdir, context, placeholder_duration_s=window.length
            )
        except RenderBackendError as e:
            raise RenderBackendError(e.message, code="segment_failed") from e

        length_label = format_seconds_label(window.length)
        filename = f"segment_{window.index}_{length_label}s_{format_slug(request.format)}.mp4"
        result = RenderResult(
            state=RenderState.SEGMENT_CHUNK.value,
            segment_url=await self._publish(clip.path, filename, context),
            segment_meta=SegmentMeta(
                index=window.index,
                length=window.length,
                start=window.start,
                end=window.end,
                requested_length=window.requested_length,
                truncated=window.truncated,
            ),
        )

        if self._captions_wanted(request, sliced):
            srt_path = write_srt_file(workdir / "segment_captions.srt", sliced.tracks.captions)
            result.captions_url = await self._publish(srt_path, f"segment_{window.index}_captions.srt", context)

        return result
