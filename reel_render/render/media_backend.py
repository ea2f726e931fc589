"""
Media backend used by the render pipeline.

The pipeline never builds ffmpeg invocations itself; it asks a
``MediaBackend`` for clips. ``FFmpegBackend`` is the production
implementation: every operation is one ffmpeg process run through
``asyncio.create_subprocess_exec`` so a long encode suspends only the
request that issued it.

Encode parameters are fixed (30 fps, yuv420p, H.264, AAC) and come from
settings, not from callers.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from reel_render.config import Settings, get_settings
from reel_render.exceptions import FFmpegError
from reel_render.utils.media_info import MediaInfo, get_media_info

logger = logging.getLogger(__name__)


@dataclass
class Clip:
    """A locally produced media file and its nominal duration."""

    path: Path
    duration_s: float
    width: int
    height: int
    has_audio: bool = False


class MediaBackend(ABC):
    """Operations the pipeline needs from an encoding engine."""

    fps: int = 30

    @abstractmethod
    async def solid_clip(
        self,
        output_path: Path,
        width: int,
        height: int,
        duration_s: float,
        overlay_path: Path | None = None,
    ) -> Clip:
        """Solid background clip, optionally with a centred image overlay."""

    @abstractmethod
    async def zoom_image(self, image_path: Path, output_path: Path, width: int, height: int, duration_s: float) -> Clip:
        """Slow zoom-in motion clip from a still image."""

    @abstractmethod
    async def concat(self, clips: list[Clip], output_path: Path, reencode: bool = True) -> Clip:
        """Join same-resolution clips in order."""

    @abstractmethod
    async def mux_audio(
        self,
        video: Clip,
        voice_path: Path,
        output_path: Path,
        music_volume: float | None = None,
    ) -> Clip:
        """Attach voice (and optionally a ducked background bed) to a video."""

    @abstractmethod
    async def extract_frame(self, clip: Clip, timestamp_s: float, output_path: Path, size: str) -> Path:
        """Still frame at ``timestamp_s``."""

    @abstractmethod
    async def trim(self, clip: Clip, duration_s: float, output_path: Path) -> Clip:
        """First ``duration_s`` seconds of ``clip``."""

    @abstractmethod
    async def silence(self, output_path: Path, duration_s: float) -> Path:
        """Silent audio file of ``duration_s`` seconds."""

    @abstractmethod
    async def probe(self, path: Path) -> MediaInfo:
        """Stream information for a produced file."""


def _fmt_seconds(value: float) -> str:
    return f"{value:.3f}"


class FFmpegBackend(MediaBackend):
    """``MediaBackend`` backed by the ffmpeg binary."""

    # zoompan: +0.15% per frame, capped at 5%
    ZOOM_STEP = 0.0015
    ZOOM_MAX = 1.05

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.ffmpeg_path = self.settings.ffmpeg_path
        self.fps = self.settings.render_fps

    # ------------------------------------------------------------------
    # Command builders (pure; exercised directly by tests)
    # ------------------------------------------------------------------

    def _video_encode_args(self) -> list[str]:
        s = self.settings
        return [
            "-c:v", s.render_video_codec,
            "-preset", s.render_preset,
            "-crf", str(s.render_crf),
            "-pix_fmt", s.render_pix_fmt,
            "-r", str(self.fps),
        ]

    def build_solid_command(
        self,
        output_path: Path,
        width: int,
        height: int,
        duration_s: float,
        overlay_path: Path | None = None,
    ) -> list[str]:
        duration = _fmt_seconds(duration_s)
        cmd = [
            self.ffmpeg_path,
            "-y",
            "-f", "lavfi",
            "-i", f"color=c=black:s={width}x{height}:r={self.fps}:d={duration}",
        ]
        if overlay_path is not None:
            cmd.extend([
                "-loop", "1",
                "-i", str(overlay_path),
                "-filter_complex",
                f"[0:v][1:v]overlay=x=(main_w-overlay_w)/2:y=(main_h-overlay_h)/2:shortest=1,"
                f"format={self.settings.render_pix_fmt}[v]",
                "-map", "[v]",
            ])
        cmd.extend([
            *self._video_encode_args(),
            "-t", duration,
            "-an",
            "-movflags", "+faststart",
            str(output_path),
        ])
        return cmd

    def build_zoom_command(
        self,
        image_path: Path,
        output_path: Path,
        width: int,
        height: int,
        duration_s: float,
    ) -> list[str]:
        frames = max(1, round(duration_s * self.fps))
        vf = (
            f"scale={width}:{height}:force_original_aspect_ratio=increase,"
            f"crop={width}:{height},"
            f"zoompan=z='min(zoom+{self.ZOOM_STEP},{self.ZOOM_MAX})':d={frames}:"
            f"x='iw/2-(iw/zoom/2)':y='ih/2-(ih/zoom/2)':s={width}x{height}:fps={self.fps},"
            f"format={self.settings.render_pix_fmt}"
        )
        return [
            self.ffmpeg_path,
            "-y",
            "-i", str(image_path),
            "-vf", vf,
            "-frames:v", str(frames),
            *self._video_encode_args(),
            "-an",
            "-movflags", "+faststart",
            str(output_path),
        ]

    def build_concat_command(self, list_path: Path, output_path: Path, reencode: bool = True) -> list[str]:
        cmd = [
            self.ffmpeg_path,
            "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", str(list_path),
        ]
        if reencode:
            cmd.extend([*self._video_encode_args(), "-an"])
        else:
            cmd.extend(["-c", "copy"])
        cmd.extend(["-movflags", "+faststart", str(output_path)])
        return cmd

    def build_mux_command(
        self,
        video_path: Path,
        voice_path: Path,
        output_path: Path,
        duration_s: float,
        music_volume: float | None = None,
    ) -> list[str]:
        """Build the audio mux command.

        Video is always stream-copied; only audio is encoded. With a music
        volume, a generated background bed is mixed under the voice with
        ``normalize=0`` so the voice keeps full gain.
        """
        s = self.settings
        cmd = [
            self.ffmpeg_path,
            "-y",
            "-i", str(video_path),
            "-i", str(voice_path),
        ]
        if music_volume is not None:
            cmd.extend([
                "-f", "lavfi",
                "-i", f"anullsrc=r={s.render_audio_sample_rate}:cl=stereo",
                "-filter_complex",
                f"[1:a]volume=1.0[a1];[2:a]volume={music_volume}[a2];"
                f"[a1][a2]amix=inputs=2:duration=longest:normalize=0[aout]",
                "-map", "0:v",
                "-map", "[aout]",
            ])
        else:
            cmd.extend(["-map", "0:v", "-map", "1:a"])
        cmd.extend([
            "-c:v", "copy",
            "-c:a", s.render_audio_codec,
            "-b:a", s.render_audio_bitrate,
            "-ar", str(s.render_audio_sample_rate),
            "-t", _fmt_seconds(duration_s),
            "-movflags", "+faststart",
            str(output_path),
        ])
        return cmd

    def build_frame_command(self, video_path: Path, timestamp_s: float, output_path: Path, size: str) -> list[str]:
        width, height = size.split("x", 1)
        return [
            self.ffmpeg_path,
            "-y",
            # -ss before -i enables fast seeking (input seeking)
            "-ss", _fmt_seconds(timestamp_s),
            "-i", str(video_path),
            "-frames:v", "1",
            "-vf", f"scale={width}:{height}:force_original_aspect_ratio=decrease",
            "-q:v", "2",
            str(output_path),
        ]

    def build_trim_command(self, video_path: Path, duration_s: float, output_path: Path) -> list[str]:
        return [
            self.ffmpeg_path,
            "-y",
            "-i", str(video_path),
            "-t", _fmt_seconds(duration_s),
            "-c", "copy",
            "-movflags", "+faststart",
            str(output_path),
        ]

    def build_silence_command(self, output_path: Path, duration_s: float) -> list[str]:
        return [
            self.ffmpeg_path,
            "-y",
            "-f", "lavfi",
            "-i", f"anullsrc=r={self.settings.render_audio_sample_rate}:cl=stereo",
            "-t", _fmt_seconds(duration_s),
            "-c:a", "pcm_s16le",
            str(output_path),
        ]

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _run(self, cmd: list[str], operation: str) -> None:
        logger.debug(f"[FFMPEG] {operation}: {' '.join(cmd)}")
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await proc.communicate()
        except asyncio.CancelledError:
            # Deadline hit mid-encode: do not leave ffmpeg running
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise

        if proc.returncode != 0:
            stderr_text = stderr.decode("utf-8", errors="replace")
            logger.error(f"[FFMPEG] {operation} failed: {stderr_text[-2000:]}")
            raise FFmpegError(operation, proc.returncode, stderr_text)

    async def solid_clip(
        self,
        output_path: Path,
        width: int,
        height: int,
        duration_s: float,
        overlay_path: Path | None = None,
    ) -> Clip:
        cmd = self.build_solid_command(output_path, width, height, duration_s, overlay_path)
        await self._run(cmd, "solid_clip" if overlay_path is None else "text_clip")
        return Clip(path=output_path, duration_s=duration_s, width=width, height=height)

    async def zoom_image(self, image_path: Path, output_path: Path, width: int, height: int, duration_s: float) -> Clip:
        await self._run(self.build_zoom_command(image_path, output_path, width, height, duration_s), "zoom_image")
        return Clip(path=output_path, duration_s=duration_s, width=width, height=height)

    async def concat(self, clips: list[Clip], output_path: Path, reencode: bool = True) -> Clip:
        list_path = output_path.with_suffix(".txt")
        with open(list_path, "w") as f:
            for clip in clips:
                # FFmpeg concat requires escaped paths
                escaped = os.fspath(clip.path).replace("'", "'\\''")
                f.write(f"file '{escaped}'\n")

        await self._run(self.build_concat_command(list_path, output_path, reencode), "concat")
        first = clips[0]
        return Clip(
            path=output_path,
            duration_s=sum(c.duration_s for c in clips),
            width=first.width,
            height=first.height,
        )

    async def mux_audio(
        self,
        video: Clip,
        voice_path: Path,
        output_path: Path,
        music_volume: float | None = None,
    ) -> Clip:
        cmd = self.build_mux_command(video.path, voice_path, output_path, video.duration_s, music_volume)
        await self._run(cmd, "mux_audio")
        return Clip(
            path=output_path,
            duration_s=video.duration_s,
            width=video.width,
            height=video.height,
            has_audio=True,
        )

    async def extract_frame(self, clip: Clip, timestamp_s: float, output_path: Path, size: str) -> Path:
        await self._run(self.build_frame_command(clip.path, timestamp_s, output_path, size), "extract_frame")
        return output_path

    async def trim(self, clip: Clip, duration_s: float, output_path: Path) -> Clip:
        await self._run(self.build_trim_command(clip.path, duration_s, output_path), "trim")
        return Clip(
            path=output_path,
            duration_s=min(clip.duration_s, duration_s),
            width=clip.width,
            height=clip.height,
            has_audio=clip.has_audio,
        )

    async def silence(self, output_path: Path, duration_s: float) -> Path:
        await self._run(self.build_silence_command(output_path, duration_s), "silence")
        return output_path

    async def probe(self, path: Path) -> MediaInfo:
        return await get_media_info(str(path))
