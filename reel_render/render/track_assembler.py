"""Drive the segment synthesizer across the video track."""

import asyncio
import logging
from pathlib import Path

from reel_render.render.media_backend import Clip
from reel_render.render.segment_synthesizer import SegmentSynthesizer
from reel_render.schemas.timeline import VideoEntry

logger = logging.getLogger(__name__)


class TrackAssembler:
    """Produce one clip per video entry, in track order.

    Entries are independent, so up to ``max_workers`` are synthesized at
    once; results are gathered back into the original order.
    """

    def __init__(self, synthesizer: SegmentSynthesizer, max_workers: int = 3):
        self.synthesizer = synthesizer
        self.max_workers = max(1, max_workers)

    def placeholder_entry(self) -> VideoEntry:
        settings = self.synthesizer.settings
        return VideoEntry(t0=0.0, t1=settings.default_segment_duration_s, src=settings.fallback_label)

    async def assemble(
        self,
        entries: list[VideoEntry],
        width: int,
        height: int,
        workdir: Path,
    ) -> list[Clip]:
        if not entries:
            logger.info("[TRACK] Video track empty, using placeholder segment")
            entries = [self.placeholder_entry()]

        semaphore = asyncio.Semaphore(self.max_workers)

        async def _render(entry: VideoEntry) -> Clip:
            async with semaphore:
                return await self.synthesizer.synthesize(entry, width, height, workdir)

        tasks = [asyncio.create_task(_render(entry)) for entry in entries]
        try:
            # gather keeps argument order regardless of completion order
            clips = await asyncio.gather(*tasks)
        except BaseException:
            # No entry may outlive the call
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        logger.info(
            f"[TRACK] Synthesized {len(clips)} clips "
            f"({sum(c.duration_s for c in clips):.2f}s total, workers={self.max_workers})"
        )
        return list(clips)
