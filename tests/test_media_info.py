"""
Tests for ffprobe output parsing.

Test cases:
1. Video and audio stream details
2. Files without audio
3. Frame rate edge cases
"""

import pytest

from reel_render.utils.media_info import _parse_frame_rate, parse_probe_output


PROBE_WITH_AUDIO = {
    "format": {"duration": "12.480000"},
    "streams": [
        {
            "codec_type": "video",
            "codec_name": "h264",
            "width": 1080,
            "height": 1920,
            "pix_fmt": "yuv420p",
            "r_frame_rate": "30/1",
        },
        {
            "codec_type": "audio",
            "codec_name": "aac",
            "sample_rate": "48000",
            "channels": 2,
        },
    ],
}


class TestParseProbeOutput:
    def test_video_and_audio(self):
        info = parse_probe_output(PROBE_WITH_AUDIO)

        assert info.duration_s == pytest.approx(12.48)
        assert (info.width, info.height) == (1080, 1920)
        assert info.fps == 30.0
        assert info.has_audio is True
        assert info.sample_rate == 48000
        assert info.channels == 2
        assert info.video_signature == ("h264", 1080, 1920, "yuv420p", 30.0)

    def test_no_audio_stream(self):
        data = {"format": {"duration": "3.0"}, "streams": [PROBE_WITH_AUDIO["streams"][0]]}

        info = parse_probe_output(data)

        assert info.has_audio is False
        assert info.audio_codec is None

    def test_audio_only_has_no_signature(self):
        data = {"format": {}, "streams": [PROBE_WITH_AUDIO["streams"][1]]}

        info = parse_probe_output(data)

        assert info.duration_s is None
        assert info.video_signature is None


class TestParseFrameRate:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("30/1", 30.0),
            ("30000/1001", 29.97),
            ("0/0", None),
            ("abc", None),
            (None, None),
        ],
    )
    def test_parse(self, raw, expected):
        assert _parse_frame_rate(raw) == expected
