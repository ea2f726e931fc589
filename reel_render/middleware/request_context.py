from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import Iterator
from uuid import uuid4

from fastapi import Request

from reel_render.config import get_settings


@dataclass
class RequestContext:
    request_id: str
    start_time: float
    base_url: str
    timings_ms: dict[str, int] = field(default_factory=dict)

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        """Time a pipeline stage; repeated stages accumulate."""
        started = perf_counter()
        try:
            yield
        finally:
            elapsed = int((perf_counter() - started) * 1000)
            self.timings_ms[name] = self.timings_ms.get(name, 0) + elapsed

    def build_timing(self) -> dict[str, int]:
        total_ms = int((perf_counter() - self.start_time) * 1000)
        return {**self.timings_ms, "totalMs": total_ms}


def guess_base_url(request: Request | None) -> str:
    """Public base URL: configured value, else the request's scheme://host."""
    configured = get_settings().public_base_url
    if configured:
        return configured.rstrip("/")
    if request is None:
        return ""
    return str(request.base_url).rstrip("/")


def create_request_context(request: Request | None = None, base_url: str | None = None) -> RequestContext:
    return RequestContext(
        request_id=uuid4().hex,
        start_time=perf_counter(),
        base_url=base_url if base_url is not None else guess_base_url(request),
    )
