"""Tests for clip concatenation."""

from pathlib import Path

import pytest

from reel_render.exceptions import NoSegmentsError
from reel_render.render.concatenator import Concatenator
from reel_render.render.media_backend import Clip

from conftest import FakeMediaBackend


def _clips(workdir: Path, durations: list[float]) -> list[Clip]:
    return [
        Clip(path=workdir / f"c{i}.mp4", duration_s=d, width=1080, height=1920)
        for i, d in enumerate(durations)
    ]


class TestConcatenator:
    @pytest.mark.asyncio
    async def test_empty_raises_no_segments(self, fake_backend, workdir):
        with pytest.raises(NoSegmentsError) as exc_info:
            await Concatenator(fake_backend).concat([], workdir)

        assert exc_info.value.to_payload()["error"] == "no_segments"

    @pytest.mark.asyncio
    async def test_single_clip_passthrough(self, fake_backend, workdir):
        clip = _clips(workdir, [4])[0]

        result = await Concatenator(fake_backend).concat([clip], workdir)

        assert result is clip
        assert fake_backend.ops() == []

    @pytest.mark.asyncio
    async def test_reencodes_by_default(self, fake_backend, workdir):
        clips = _clips(workdir, [2, 3.5, 1])

        result = await Concatenator(fake_backend).concat(clips, workdir)

        assert result.duration_s == pytest.approx(6.5)
        call = fake_backend.calls_for("concat")[0]
        assert call["reencode"] is True
        assert call["clips"] == clips
        assert "probe" not in fake_backend.ops()

    @pytest.mark.asyncio
    async def test_fast_path_when_signatures_match(self, fake_backend, workdir):
        clips = _clips(workdir, [2, 2])

        await Concatenator(fake_backend, fast_path_enabled=True).concat(clips, workdir)

        assert fake_backend.calls_for("concat")[0]["reencode"] is False

    @pytest.mark.asyncio
    async def test_fast_path_skipped_without_signature(self, workdir):
        backend = FakeMediaBackend(signature=None)
        clips = _clips(workdir, [2, 2])

        await Concatenator(backend, fast_path_enabled=True).concat(clips, workdir)

        assert [c["reencode"] for c in backend.calls_for("concat")] == [True]

    @pytest.mark.asyncio
    async def test_fast_path_failure_falls_back_to_reencode(self, workdir):
        backend = FakeMediaBackend(fail_ops={"probe"})
        clips = _clips(workdir, [1, 2])

        result = await Concatenator(backend, fast_path_enabled=True).concat(clips, workdir)

        assert result.duration_s == 3
        assert [c["reencode"] for c in backend.calls_for("concat")] == [True]
