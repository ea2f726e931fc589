"""Custom exceptions for the render service.

Every exception that can reach the HTTP layer carries an error kind and a
detail string, which the exception handlers in ``main`` turn into the
``{"error": <kind>, "detail": <str>}`` response body.
"""

from reel_render.constants.error_codes import get_error_spec


class RenderServiceError(Exception):
    """Base exception for all render service errors."""

    code: str = "render_failed"
    status_code: int = 500
    message: str = "Render failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return get_error_spec(self.code).get("retryable", False)

    def to_payload(self) -> dict[str, str]:
        """Convert exception to the JSON error body."""
        return {"error": self.code, "detail": self.message}


# =============================================================================
# Input Validation Errors (400)
# =============================================================================


class InputValidationError(RenderServiceError):
    """Base class for malformed timeline/segment parameters."""

    code = "invalid_request"
    status_code = 400
    message = "Invalid request"


class InvalidSegmentError(InputValidationError):
    """Segment parameters produce no renderable window."""

    code = "invalid_segment"
    message = "Invalid segment"

    def __init__(
        self,
        message: str | None = None,
        *,
        index: int | None = None,
        length: float | None = None,
    ):
        self.index = index
        self.length = length
        super().__init__(message)


class InvalidTimeRangeError(InputValidationError):
    """Invalid time range specified."""

    code = "invalid_time_range"
    message = "Invalid time range"

    def __init__(
        self,
        message: str | None = None,
        *,
        start_s: float | None = None,
        end_s: float | None = None,
    ):
        msg = message or self.message
        if message is None and start_s is not None and end_s is not None:
            msg = f"Invalid time range: {start_s}s to {end_s}s"
        super().__init__(msg)


# =============================================================================
# Remote Fetch Errors (recovered by the fallback chain)
# =============================================================================


class RemoteFetchError(RenderServiceError):
    """A remote image could not be downloaded."""

    code = "remote_fetch_failed"
    status_code = 502
    message = "Remote fetch failed"

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


# =============================================================================
# Render Backend Errors (500)
# =============================================================================


class RenderBackendError(RenderServiceError):
    """Encoding backend failure with no remaining fallback."""

    code = "render_failed"
    message = "Render backend failed"


class FFmpegError(RenderBackendError):
    """An ffmpeg/ffprobe process exited with a non-zero status."""

    message = "FFmpeg failed"

    def __init__(self, operation: str, returncode: int | None, stderr: str = ""):
        self.operation = operation
        self.returncode = returncode
        self.stderr = stderr
        tail = "\n".join(stderr.strip().splitlines()[-5:])
        super().__init__(f"{operation} failed (exit {returncode}): {tail}")


class TextRenderError(RenderBackendError):
    """Text card could not be rasterised (e.g. no usable font)."""

    message = "Text rendering failed"


class NoSegmentsError(RenderBackendError):
    """Concatenation was asked to join zero clips."""

    code = "no_segments"
    message = "No video segments to concatenate"


class RenderTimeoutError(RenderServiceError):
    """The request exceeded its render deadline."""

    code = "render_timeout"
    message = "Render timed out"

    def __init__(self, timeout_s: float):
        self.timeout_s = timeout_s
        super().__init__(f"Render exceeded {timeout_s:g}s deadline")
