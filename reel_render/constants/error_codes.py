"""Error codes dictionary for the render API.

Single source of truth for the error kinds the service can return, their
HTTP status and whether a client may retry the same request.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    status: int
    retryable: bool
    description: str


ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Input validation (never retryable as-is)
    # ==========================================================================
    "invalid_request": {
        "status": 400,
        "retryable": False,
        "description": "Request body does not match the RenderRequest schema",
    },
    "invalid_segment": {
        "status": 400,
        "retryable": False,
        "description": "Segment index/length is negative or outside the timeline",
    },
    "invalid_time_range": {
        "status": 400,
        "retryable": False,
        "description": "Time window is empty or inverted",
    },
    # ==========================================================================
    # Pipeline failures
    # ==========================================================================
    "render_failed": {
        "status": 500,
        "retryable": False,
    },
    "segment_failed": {
        "status": 500,
        "retryable": False,
    },
    "no_segments": {
        "status": 500,
        "retryable": False,
        "description": "Concatenation received no clips",
    },
    "render_timeout": {
        "status": 500,
        "retryable": True,
        "description": "Render exceeded the configured deadline",
    },
    # ==========================================================================
    # Recovered locally, never returned to clients
    # ==========================================================================
    "remote_fetch_failed": {
        "status": 502,
        "retryable": True,
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification by code.

    Args:
        code: The error code

    Returns:
        ErrorCodeSpec with status and retryable flag
    """
    return ERROR_CODES.get(code, {"status": 500, "retryable": False})


def is_retryable(code: str) -> bool:
    spec = get_error_spec(code)
    return spec.get("retryable", False)
