"""Media file information utilities using FFprobe."""

import asyncio
import json
from dataclasses import dataclass

from reel_render.config import get_settings
from reel_render.exceptions import FFmpegError


def _get_settings():
    """Get settings lazily to avoid import issues in tests."""
    return get_settings()


@dataclass
class MediaInfo:
    """Media file information."""

    duration_s: float | None = None
    width: int | None = None
    height: int | None = None
    fps: float | None = None
    video_codec: str | None = None
    pix_fmt: str | None = None
    audio_codec: str | None = None
    sample_rate: int | None = None
    channels: int | None = None
    has_video: bool = False
    has_audio: bool = False

    @property
    def video_signature(self) -> tuple | None:
        """Parameters that must match for stream-copy concatenation."""
        if not self.has_video:
            return None
        return (self.video_codec, self.width, self.height, self.pix_fmt, self.fps)


async def _run_ffprobe(file_path: str, *args: str) -> dict:
    """Run ffprobe and return parsed JSON."""
    settings = _get_settings()
    cmd = [
        settings.ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        *args,
        file_path,
    ]

    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise FFmpegError("ffprobe", proc.returncode, stderr.decode("utf-8", errors="replace"))

    try:
        return json.loads(stdout.decode("utf-8", errors="replace"))
    except json.JSONDecodeError as e:
        raise FFmpegError("ffprobe", proc.returncode, f"Failed to parse ffprobe output: {e}")


def _parse_frame_rate(raw: str | None) -> float | None:
    if not raw or "/" not in raw:
        return None
    num, den = raw.split("/", 1)
    try:
        if int(den) <= 0:
            return None
        return round(int(num) / int(den), 3)
    except ValueError:
        return None


def parse_probe_output(data: dict) -> MediaInfo:
    """Build a MediaInfo from ``ffprobe -show_format -show_streams`` JSON."""
    info = MediaInfo()

    format_info = data.get("format", {})
    if "duration" in format_info:
        info.duration_s = float(format_info["duration"])

    for stream in data.get("streams", []):
        codec_type = stream.get("codec_type")

        if codec_type == "video" and not info.has_video:
            info.has_video = True
            info.width = stream.get("width")
            info.height = stream.get("height")
            info.video_codec = stream.get("codec_name")
            info.pix_fmt = stream.get("pix_fmt")
            info.fps = _parse_frame_rate(stream.get("r_frame_rate"))

        elif codec_type == "audio" and not info.has_audio:
            info.has_audio = True
            info.audio_codec = stream.get("codec_name")
            info.sample_rate = int(stream.get("sample_rate", 0)) or None
            info.channels = stream.get("channels")

    return info


async def get_media_info(file_path: str) -> MediaInfo:
    """
    Get complete media file information.

    Raises:
        FFmpegError: If ffprobe fails
    """
    data = await _run_ffprobe(file_path, "-show_format", "-show_streams")
    return parse_probe_output(data)
