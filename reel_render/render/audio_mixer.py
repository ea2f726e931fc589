"""
Audio composition for rendered videos.

This module handles:
- Voice track synthesis (placeholder silence sized to the voiceover track)
- Attaching voice to the concatenated video
- Background bed mixing with a fixed ducking volume

The video stream is always copied; only audio is encoded here.
"""

import logging
from pathlib import Path
from uuid import uuid4

from reel_render.config import Settings, get_settings
from reel_render.render.media_backend import Clip, MediaBackend
from reel_render.schemas.timeline import MusicEntry, VoiceoverEntry

logger = logging.getLogger(__name__)

DEFAULT_VOICE = "BR-M1"


def voice_duration(voiceover: list[VoiceoverEntry], default_s: float = 10.0) -> float:
    """Total speech length of the voiceover track, or ``default_s`` if empty."""
    total = sum(max(0.0, e.t1 - e.t0) for e in voiceover)
    return total or default_s


class AudioComposer:
    """Mux a voice stream, and optionally a ducked music bed, onto a video."""

    def __init__(self, backend: MediaBackend, settings: Settings | None = None):
        self.backend = backend
        self.settings = settings or get_settings()

    def duck_volume(self, music: list[MusicEntry]) -> float:
        """Background gain: the first entry's ``vol`` hint, else the default."""
        if music and music[0].vol is not None:
            return music[0].vol
        return self.settings.music_duck_volume

    async def synthesize_voice(self, voiceover: list[VoiceoverEntry], workdir: Path) -> Path:
        """Produce the voice stream.

        Speech synthesis is not wired in; the voice is silence as long as
        the voiceover track.
        """
        duration_s = voice_duration(voiceover, self.settings.default_voice_duration_s)
        voice = next((e.voice for e in voiceover if e.voice), DEFAULT_VOICE)
        output_path = workdir / f"voice_{uuid4().hex}.wav"
        logger.info(f"[AUDIO] Voice '{voice}' placeholder: {duration_s:.2f}s of silence")
        return await self.backend.silence(output_path, duration_s)

    async def compose(
        self,
        video: Clip,
        voice_path: Path,
        music_on: bool,
        workdir: Path,
        duck_volume: float | None = None,
    ) -> Clip:
        """Attach audio to ``video``.

        Args:
            video: Concatenated video clip (stream-copied)
            voice_path: Primary voice audio, mixed at full gain
            music_on: Whether to mix a background bed under the voice
            workdir: Directory for the output file
            duck_volume: Background gain; defaults to ``music_duck_volume``

        Returns:
            Clip with video and one audio stream
        """
        music_volume = None
        if music_on and self.settings.music_enabled:
            music_volume = self.settings.music_duck_volume if duck_volume is None else duck_volume

        output_path = workdir / f"mux_{uuid4().hex}.mp4"
        result = await self.backend.mux_audio(video, voice_path, output_path, music_volume)
        if music_volume is None:
            logger.info("[AUDIO] Muxed voice only")
        else:
            logger.info(f"[AUDIO] Mixed voice (1.0) with background bed ({music_volume})")
        return result
