"""Render API endpoint - synchronous rendering, one request per render."""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request

from reel_render.config import get_settings
from reel_render.exceptions import RenderTimeoutError
from reel_render.middleware.request_context import create_request_context
from reel_render.render.pipeline import RenderPipeline
from reel_render.schemas.render import RenderRequest

router = APIRouter()
logger = logging.getLogger(__name__)


def get_pipeline() -> RenderPipeline:
    return RenderPipeline()


@router.post("/render_video")
async def render_video(
    render_request: RenderRequest,
    request: Request,
    pipeline: RenderPipeline = Depends(get_pipeline),
) -> dict:
    """
    Render a timeline and return the published artifact URLs.

    Errors are raised as ``RenderServiceError`` subclasses and converted to
    ``{"error", "detail"}`` bodies by the app's exception handlers.
    """
    settings = get_settings()
    context = create_request_context(request)

    try:
        result = await asyncio.wait_for(
            pipeline.run(render_request, context),
            timeout=settings.render_timeout_s,
        )
    except asyncio.TimeoutError:
        logger.error(f"[RENDER] {context.request_id} exceeded {settings.render_timeout_s}s")
        raise RenderTimeoutError(settings.render_timeout_s)

    return result.to_response()
