"""
Pytest fixtures for render service tests.

Most tests run the pipeline against ``FakeMediaBackend``, which records
every call and writes small placeholder files instead of encoding.

CI/CD Note:
Tests that shell out to real ffmpeg are marked with @pytest.mark.requires_ffmpeg
and skipped when the binaries are not on PATH.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from reel_render.config import Settings
from reel_render.exceptions import FFmpegError
from reel_render.middleware.request_context import create_request_context
from reel_render.render.media_backend import Clip, MediaBackend
from reel_render.services.storage_service import LocalStorageService
from reel_render.utils.media_info import MediaInfo


def _ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None


requires_ffmpeg = pytest.mark.skipif(
    not _ffmpeg_available(),
    reason="ffmpeg/ffprobe not available on PATH",
)


class FakeMediaBackend(MediaBackend):
    """Records calls; every operation writes a tiny file and returns a Clip.

    ``fail_ops`` names operations that raise ``FFmpegError``; for
    ``solid_clip`` the keys ``text_clip`` (with overlay) and ``solid_clip``
    (without) are distinguished.
    """

    fps = 30

    def __init__(self, fail_ops: set[str] | None = None, signature: tuple | None = ("h264", 1080, 1920, "yuv420p", 30.0)):
        self.fail_ops = set(fail_ops or ())
        self.signature = signature
        self.calls: list[tuple[str, dict]] = []

    def _record(self, op: str, **kwargs) -> None:
        self.calls.append((op, kwargs))
        if op in self.fail_ops:
            raise FFmpegError(op, 1, f"simulated {op} failure")

    def ops(self) -> list[str]:
        return [op for op, _ in self.calls]

    def calls_for(self, op: str) -> list[dict]:
        return [kwargs for name, kwargs in self.calls if name == op]

    @staticmethod
    def _touch(path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\x00fake")
        return path

    async def solid_clip(self, output_path, width, height, duration_s, overlay_path=None):
        op = "text_clip" if overlay_path is not None else "solid_clip"
        self._record(op, width=width, height=height, duration_s=duration_s, overlay_path=overlay_path)
        self._touch(output_path)
        return Clip(path=output_path, duration_s=duration_s, width=width, height=height)

    async def zoom_image(self, image_path, output_path, width, height, duration_s):
        self._record("zoom_image", image_path=image_path, width=width, height=height, duration_s=duration_s)
        self._touch(output_path)
        return Clip(path=output_path, duration_s=duration_s, width=width, height=height)

    async def concat(self, clips, output_path, reencode=True):
        self._record("concat", clips=list(clips), reencode=reencode)
        self._touch(output_path)
        return Clip(
            path=output_path,
            duration_s=sum(c.duration_s for c in clips),
            width=clips[0].width,
            height=clips[0].height,
        )

    async def mux_audio(self, video, voice_path, output_path, music_volume=None):
        self._record("mux_audio", video=video, voice_path=voice_path, music_volume=music_volume)
        self._touch(output_path)
        return Clip(path=output_path, duration_s=video.duration_s, width=video.width, height=video.height, has_audio=True)

    async def extract_frame(self, clip, timestamp_s, output_path, size):
        self._record("extract_frame", clip=clip, timestamp_s=timestamp_s, size=size)
        return self._touch(output_path)

    async def trim(self, clip, duration_s, output_path):
        self._record("trim", clip=clip, duration_s=duration_s)
        self._touch(output_path)
        return Clip(
            path=output_path,
            duration_s=min(clip.duration_s, duration_s),
            width=clip.width,
            height=clip.height,
            has_audio=clip.has_audio,
        )

    async def silence(self, output_path, duration_s):
        self._record("silence", duration_s=duration_s)
        return self._touch(output_path)

    async def probe(self, path):
        self._record("probe", path=path)
        if self.signature is None:
            return MediaInfo()
        codec, width, height, pix_fmt, fps = self.signature
        return MediaInfo(
            has_video=True,
            video_codec=codec,
            width=width,
            height=height,
            pix_fmt=pix_fmt,
            fps=fps,
        )


class FakeTextRenderer:
    """Stands in for TextCardRenderer; writes a placeholder PNG."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.labels: list[str] = []

    def render(self, text, output_path, max_width):
        from reel_render.exceptions import TextRenderError

        self.labels.append(text)
        if self.fail:
            raise TextRenderError("No usable font among 0 candidates")
        Path(output_path).write_bytes(b"\x89PNG")
        return Path(output_path)


@pytest.fixture
def temp_output_dir():
    """Temporary directory for test outputs."""
    with tempfile.TemporaryDirectory(prefix="reel_render_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_output_dir: Path) -> Settings:
    return Settings(
        files_dir=str(temp_output_dir / "files"),
        public_base_url="http://testserver",
        render_max_workers=2,
        _env_file=None,
    )


@pytest.fixture
def fake_backend() -> FakeMediaBackend:
    return FakeMediaBackend()


@pytest.fixture
def fake_text_renderer() -> FakeTextRenderer:
    return FakeTextRenderer()


@pytest.fixture
def storage(settings: Settings) -> LocalStorageService:
    return LocalStorageService(base_path=settings.files_dir)


@pytest.fixture
def request_context():
    return create_request_context(base_url="http://testserver")


@pytest.fixture
def workdir(temp_output_dir: Path) -> Path:
    path = temp_output_dir / "work"
    path.mkdir()
    return path
