"""Join an ordered list of clips into one continuous clip."""

import logging
from pathlib import Path
from uuid import uuid4

from reel_render.exceptions import NoSegmentsError, RenderServiceError
from reel_render.render.media_backend import Clip, MediaBackend

logger = logging.getLogger(__name__)


class Concatenator:
    """Concatenate clips, re-encoding unless stream copy is known to be safe.

    Clips produced by different fallback strategies can differ in encoder
    state, so the stream-copy fast path is opt-in and only taken when every
    clip probes to the same video signature.
    """

    def __init__(self, backend: MediaBackend, fast_path_enabled: bool = False):
        self.backend = backend
        self.fast_path_enabled = fast_path_enabled

    async def _signatures_match(self, clips: list[Clip]) -> bool:
        signatures = set()
        for clip in clips:
            info = await self.backend.probe(clip.path)
            signatures.add(info.video_signature)
        return len(signatures) == 1 and None not in signatures

    async def concat(self, clips: list[Clip], workdir: Path) -> Clip:
        """
        Raises:
            NoSegmentsError: if ``clips`` is empty
            RenderBackendError: if the re-encode fails
        """
        if not clips:
            raise NoSegmentsError()

        if len(clips) == 1:
            return clips[0]

        output_path = workdir / f"concat_{uuid4().hex}.mp4"

        if self.fast_path_enabled:
            try:
                if await self._signatures_match(clips):
                    result = await self.backend.concat(clips, output_path, reencode=False)
                    logger.info(f"[CONCAT] Stream-copied {len(clips)} clips ({result.duration_s:.2f}s)")
                    return result
                logger.info("[CONCAT] Clip parameters differ, re-encoding")
            except RenderServiceError as e:
                logger.warning(f"[CONCAT] Fast path failed, re-encoding: {e}")

        result = await self.backend.concat(clips, output_path, reencode=True)
        logger.info(f"[CONCAT] Re-encoded {len(clips)} clips ({result.duration_s:.2f}s)")
        return result
