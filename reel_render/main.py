import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from reel_render.api import files, render
from reel_render.config import get_settings
from reel_render.exceptions import RenderServiceError
from reel_render.services.storage_service import get_storage_service

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    storage = get_storage_service()
    logger.info(f"[STARTUP] {settings.app_name} {settings.app_version}, artifacts in {storage.base_path}")
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS
_wildcard_origins = "*" in settings.cors_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=not _wildcard_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


def _cors_headers(request: Request) -> dict[str, str]:
    """CORS headers for responses built outside the CORS middleware (500s)."""
    if _wildcard_origins:
        return {"Access-Control-Allow-Origin": "*"}
    origin = request.headers.get("origin")
    if origin and origin in settings.cors_origins:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    return {}


def _error_response(status_code: int, kind: str, detail: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": kind, "detail": detail}, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies (bad mode, segment, timeline) are 400s, not 422s."""
    errors = exc.errors()
    if errors:
        first_error = errors[0]
        loc = " -> ".join(str(x) for x in first_error.get("loc", []))
        msg = first_error.get("msg", "Validation error")
        message = f"{loc}: {msg}" if loc else msg
    else:
        message = "Request validation failed"
    return _error_response(400, "invalid_request", message)


@app.exception_handler(RenderServiceError)
async def render_service_exception_handler(request: Request, exc: RenderServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"[ERROR] {exc.code}: {exc.message}")
    else:
        logger.info(f"[ERROR] {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    kind = "not_found" if exc.status_code == 404 else "http_error"
    return _error_response(exc.status_code, kind, str(exc.detail))


# Global exception handler to ensure errors return proper JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    return _error_response(500, "render_failed", str(exc) or type(exc).__name__, headers=_cors_headers(request))


# Routers
app.include_router(render.router, tags=["render"])
app.include_router(render.router, prefix="/api", tags=["render"])
app.include_router(files.router, tags=["files"])


@app.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return f"OK - {settings.app_name}"


@app.get("/health")
async def health_check() -> dict:
    return {
        "ok": True,
        "status": "healthy",
        "version": settings.app_version,
        "git_hash": settings.git_hash,
        "time": datetime.now(timezone.utc).isoformat(),
    }
