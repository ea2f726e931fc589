"""
Segment synthesis: one video track entry -> one fixed-duration clip.

Rendering walks an ordered list of strategies until one produces a clip:

1. ImageMotionStrategy  - ``image:<url>`` sources, slow zoom over the still
2. TextCardStrategy     - solid background with the sanitised label boxed
3. SolidStrategy        - solid background only (always applies)

Strategies report failure through ``StrategyResult`` instead of raising, so
the synthesizer only raises when the terminal strategy itself fails.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse
from uuid import uuid4

import httpx

from reel_render.config import Settings, get_settings
from reel_render.exceptions import RemoteFetchError, RenderBackendError, RenderServiceError
from reel_render.render.media_backend import Clip, MediaBackend
from reel_render.render.text_renderer import TextCardRenderer, sanitize_label
from reel_render.schemas.timeline import VideoEntry

logger = logging.getLogger(__name__)

_IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp"}


def clip_duration(entry: VideoEntry, default_s: float = 3.0, minimum_s: float = 0.2) -> float:
    """Duration of the clip rendered for ``entry``.

    A zero-width window renders at ``default_s``; anything else is at
    least ``minimum_s``.
    """
    width = entry.t1 - entry.t0
    if width == 0:
        return default_s
    return max(minimum_s, width)


@dataclass
class SynthesisContext:
    """Everything a strategy needs besides the entry itself."""

    width: int
    height: int
    duration_s: float
    workdir: Path
    label: str

    def new_path(self, prefix: str, suffix: str) -> Path:
        return self.workdir / f"{prefix}_{uuid4().hex}{suffix}"


@dataclass
class StrategyResult:
    clip: Clip | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.clip is not None

    @classmethod
    def success(cls, clip: Clip) -> "StrategyResult":
        return cls(clip=clip)

    @classmethod
    def failure(cls, error: str) -> "StrategyResult":
        return cls(error=error)


class ImageFetcher:
    """Download a remote image with a bounded, request-independent timeout."""

    def __init__(self, timeout_s: float, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout_s = timeout_s
        self._transport = transport

    @staticmethod
    def _suffix_for(url: str) -> str:
        suffix = os.path.splitext(urlparse(url).path)[1].lower()
        return suffix if suffix in _IMAGE_SUFFIXES else ".jpg"

    async def fetch(self, url: str, dest_dir: Path) -> Path:
        """Download ``url`` into ``dest_dir``.

        Raises:
            RemoteFetchError: bad URL, HTTP error, timeout or empty body
        """
        try:
            if urlparse(url).scheme not in ("http", "https"):
                raise RemoteFetchError(url, "unsupported URL scheme")
            suffix = self._suffix_for(url)
            async with httpx.AsyncClient(
                timeout=self.timeout_s,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await asyncio.wait_for(client.get(url), timeout=self.timeout_s)
                response.raise_for_status()
        except asyncio.TimeoutError:
            raise RemoteFetchError(url, f"timed out after {self.timeout_s:g}s")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RemoteFetchError(url, str(e) or type(e).__name__)
        except ValueError as e:
            # urlparse rejects malformed hosts such as an unclosed IPv6 bracket
            raise RemoteFetchError(url, f"malformed URL: {e}")

        if not response.content:
            raise RemoteFetchError(url, "empty response body")

        dest = dest_dir / f"img_{uuid4().hex}{suffix}"
        dest.write_bytes(response.content)
        logger.info(f"[FETCH] {url} -> {dest.name} ({len(response.content)} bytes)")
        return dest


class SegmentStrategy(ABC):
    name: str = "strategy"

    def applies(self, entry: VideoEntry) -> bool:
        return True

    @abstractmethod
    async def render(self, entry: VideoEntry, ctx: SynthesisContext) -> StrategyResult:
        """Try to produce a clip for ``entry``."""


class ImageMotionStrategy(SegmentStrategy):
    name = "image_motion"

    def __init__(self, backend: MediaBackend, fetcher: ImageFetcher):
        self.backend = backend
        self.fetcher = fetcher

    def applies(self, entry: VideoEntry) -> bool:
        return entry.is_image and bool(entry.image_url)

    async def render(self, entry: VideoEntry, ctx: SynthesisContext) -> StrategyResult:
        image_path: Path | None = None
        try:
            image_path = await self.fetcher.fetch(entry.image_url, ctx.workdir)
            clip = await self.backend.zoom_image(
                image_path,
                ctx.new_path("img", ".mp4"),
                ctx.width,
                ctx.height,
                ctx.duration_s,
            )
            return StrategyResult.success(clip)
        except RenderServiceError as e:
            return StrategyResult.failure(e.message)
        finally:
            if image_path is not None:
                image_path.unlink(missing_ok=True)


class TextCardStrategy(SegmentStrategy):
    name = "text_card"

    # Horizontal margin kept free on each side of the text box
    MARGIN_RATIO = 0.08

    def __init__(self, backend: MediaBackend, text_renderer: TextCardRenderer):
        self.backend = backend
        self.text_renderer = text_renderer

    async def render(self, entry: VideoEntry, ctx: SynthesisContext) -> StrategyResult:
        png_path = ctx.new_path("text", ".png")
        max_width = int(ctx.width * (1 - 2 * self.MARGIN_RATIO))
        try:
            await asyncio.to_thread(self.text_renderer.render, ctx.label, png_path, max_width)
            clip = await self.backend.solid_clip(
                ctx.new_path("card", ".mp4"),
                ctx.width,
                ctx.height,
                ctx.duration_s,
                overlay_path=png_path,
            )
            return StrategyResult.success(clip)
        except RenderServiceError as e:
            return StrategyResult.failure(e.message)
        finally:
            png_path.unlink(missing_ok=True)


class SolidStrategy(SegmentStrategy):
    name = "solid"

    def __init__(self, backend: MediaBackend):
        self.backend = backend

    async def render(self, entry: VideoEntry, ctx: SynthesisContext) -> StrategyResult:
        try:
            clip = await self.backend.solid_clip(
                ctx.new_path("solid", ".mp4"),
                ctx.width,
                ctx.height,
                ctx.duration_s,
            )
            return StrategyResult.success(clip)
        except RenderServiceError as e:
            return StrategyResult.failure(e.message)


class SegmentSynthesizer:
    """Render one ``VideoEntry`` into one clip, degrading through strategies."""

    def __init__(
        self,
        backend: MediaBackend,
        settings: Settings | None = None,
        fetcher: ImageFetcher | None = None,
        text_renderer: TextCardRenderer | None = None,
        strategies: list[SegmentStrategy] | None = None,
    ):
        self.backend = backend
        self.settings = settings or get_settings()
        if strategies is None:
            fetcher = fetcher or ImageFetcher(self.settings.image_fetch_timeout_s)
            text_renderer = text_renderer or TextCardRenderer()
            strategies = [
                ImageMotionStrategy(backend, fetcher),
                TextCardStrategy(backend, text_renderer),
                SolidStrategy(backend),
            ]
        self.strategies = strategies

    def duration_for(self, entry: VideoEntry) -> float:
        return clip_duration(
            entry,
            default_s=self.settings.default_segment_duration_s,
            minimum_s=self.settings.min_segment_duration_s,
        )

    def label_for(self, entry: VideoEntry) -> str:
        """Label drawn by the text card; image entries fall back to the generic label."""
        fallback = self.settings.fallback_label
        if entry.is_image:
            return fallback
        return sanitize_label(entry.src, fallback, self.settings.text_max_chars)

    async def synthesize(self, entry: VideoEntry, width: int, height: int, workdir: Path) -> Clip:
        """Render ``entry`` at ``width``x``height``.

        Raises:
            RenderBackendError: only if every applicable strategy failed,
                including the terminal solid background
        """
        ctx = SynthesisContext(
            width=width,
            height=height,
            duration_s=self.duration_for(entry),
            workdir=workdir,
            label=self.label_for(entry),
        )

        errors: list[str] = []
        for strategy in self.strategies:
            if not strategy.applies(entry):
                continue
            result = await strategy.render(entry, ctx)
            if result.ok:
                if errors:
                    logger.info(f"[SEGMENT] {entry.src!r} rendered by fallback '{strategy.name}'")
                return result.clip
            logger.warning(f"[SEGMENT] '{strategy.name}' failed for {entry.src!r}: {result.error}")
            errors.append(f"{strategy.name}: {result.error}")

        raise RenderBackendError(f"All segment strategies failed for {entry.src!r}: {'; '.join(errors)}")
