"""
Tests for the ffmpeg command builders and process handling.

Builders are pure, so most tests inspect argument lists. The encode tests
at the end need real binaries and are skipped without them.
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from reel_render.exceptions import FFmpegError
from reel_render.render.media_backend import Clip, FFmpegBackend
from reel_render.utils.media_info import get_media_info

from conftest import requires_ffmpeg


class TestCommandBuilders:
    def test_solid_command(self, settings, workdir):
        cmd = FFmpegBackend(settings).build_solid_command(workdir / "out.mp4", 1080, 1920, 3.0)

        assert "color=c=black:s=1080x1920:r=30:d=3.000" in cmd
        assert cmd[cmd.index("-c:v") + 1] == "libx264"
        assert cmd[cmd.index("-pix_fmt") + 1] == "yuv420p"
        assert cmd[cmd.index("-r") + 1] == "30"
        assert "-an" in cmd
        assert "-filter_complex" not in cmd

    def test_solid_command_with_overlay(self, settings, workdir):
        overlay = workdir / "text.png"
        cmd = FFmpegBackend(settings).build_solid_command(workdir / "out.mp4", 1080, 1920, 3.0, overlay)

        assert str(overlay) in cmd
        graph = cmd[cmd.index("-filter_complex") + 1]
        assert "overlay=x=(main_w-overlay_w)/2:y=(main_h-overlay_h)/2" in graph

    def test_zoom_command(self, settings, workdir):
        cmd = FFmpegBackend(settings).build_zoom_command(workdir / "in.jpg", workdir / "out.mp4", 1920, 1080, 4.0)

        vf = cmd[cmd.index("-vf") + 1]
        assert "zoompan=z='min(zoom+0.0015,1.05)':d=120" in vf
        assert "s=1920x1080" in vf
        assert cmd[cmd.index("-frames:v") + 1] == "120"

    def test_concat_command_reencode(self, settings, workdir):
        cmd = FFmpegBackend(settings).build_concat_command(workdir / "list.txt", workdir / "out.mp4")

        assert cmd[cmd.index("-f") + 1] == "concat"
        assert "libx264" in cmd
        assert "copy" not in cmd

    def test_concat_command_stream_copy(self, settings, workdir):
        cmd = FFmpegBackend(settings).build_concat_command(workdir / "list.txt", workdir / "out.mp4", reencode=False)

        assert cmd[cmd.index("-c") + 1] == "copy"
        assert "libx264" not in cmd

    def test_frame_command_seeks_before_input(self, settings, workdir):
        cmd = FFmpegBackend(settings).build_frame_command(workdir / "v.mp4", 5.0, workdir / "t.jpg", "1280x720")

        assert cmd.index("-ss") < cmd.index("-i")
        assert cmd[cmd.index("-ss") + 1] == "5.000"
        assert "scale=1280:720:force_original_aspect_ratio=decrease" in cmd

    def test_silence_command(self, settings, workdir):
        cmd = FFmpegBackend(settings).build_silence_command(workdir / "s.wav", 7.25)

        assert "anullsrc=r=48000:cl=stereo" in cmd
        assert cmd[cmd.index("-t") + 1] == "7.250"

    def test_custom_ffmpeg_path(self, settings, workdir):
        settings.ffmpeg_path = "/opt/ffmpeg/bin/ffmpeg"

        cmd = FFmpegBackend(settings).build_trim_command(workdir / "v.mp4", 10.0, workdir / "p.mp4")

        assert cmd[0] == "/opt/ffmpeg/bin/ffmpeg"


class TestProcessHandling:
    @pytest.mark.asyncio
    async def test_nonzero_exit_raises_ffmpeg_error(self, settings, workdir):
        proc = MagicMock()
        proc.returncode = 1
        proc.communicate = AsyncMock(return_value=(b"", b"line1\nline2\nInvalid argument\n"))

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with pytest.raises(FFmpegError) as exc_info:
                await FFmpegBackend(settings).silence(workdir / "s.wav", 1.0)

        assert exc_info.value.operation == "silence"
        assert "Invalid argument" in exc_info.value.message
        assert exc_info.value.code == "render_failed"

    @pytest.mark.asyncio
    async def test_concat_writes_list_file(self, settings, workdir):
        proc = MagicMock()
        proc.returncode = 0
        proc.communicate = AsyncMock(return_value=(b"", b""))
        clips = [
            Clip(path=workdir / "a.mp4", duration_s=2, width=1080, height=1920),
            Clip(path=workdir / "it's.mp4", duration_s=3, width=1080, height=1920),
        ]

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            result = await FFmpegBackend(settings).concat(clips, workdir / "joined.mp4")

        listing = (workdir / "joined.txt").read_text()
        assert listing.splitlines()[0] == f"file '{workdir / 'a.mp4'}'"
        assert "it'\\''s.mp4" in listing
        assert result.duration_s == 5


@requires_ffmpeg
@pytest.mark.requires_ffmpeg
class TestFFmpegEncode:
    """Encode small clips with the real binary."""

    @pytest.mark.asyncio
    async def test_solid_concat_mux(self, settings, workdir):
        backend = FFmpegBackend(settings)
        a = await backend.solid_clip(workdir / "a.mp4", 320, 568, 1.0)
        b = await backend.solid_clip(workdir / "b.mp4", 320, 568, 1.5)
        joined = await backend.concat([a, b], workdir / "joined.mp4")
        voice = await backend.silence(workdir / "voice.wav", 2.5)
        final = await backend.mux_audio(joined, voice, workdir / "final.mp4", music_volume=0.35)

        info = await get_media_info(str(final.path))

        assert info.has_video and info.has_audio
        assert (info.width, info.height) == (320, 568)
        assert info.duration_s == pytest.approx(2.5, abs=0.2)

    @pytest.mark.asyncio
    async def test_extract_frame(self, settings, workdir):
        backend = FFmpegBackend(settings)
        clip = await backend.solid_clip(workdir / "a.mp4", 320, 568, 1.0)

        frame = await backend.extract_frame(clip, 0.5, workdir / "thumb.jpg", "160x90")

        assert Path(frame).stat().st_size > 0
