from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from reel_render.schemas.timeline import Timeline

RenderMode = Literal["preview", "final", "segment"]
VideoFormat = Literal["9:16", "16:9"]

FORMAT_RESOLUTIONS: dict[str, tuple[int, int]] = {
    "9:16": (1080, 1920),
    "16:9": (1920, 1080),
}


def resolution_for(fmt: str) -> tuple[int, int]:
    """Return (width, height) for an aspect-ratio format."""
    return FORMAT_RESOLUTIONS[fmt]


def format_slug(fmt: str) -> str:
    """``9:16`` -> ``9x16`` for use in filenames."""
    return fmt.replace(":", "x")


class SegmentSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    index: int = Field(ge=0)
    length: float = Field(gt=0)


class RenderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    mode: RenderMode = "preview"
    format: VideoFormat = "9:16"
    timeline: Timeline = Field(default_factory=Timeline)
    captions_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("captionsEnabled", "captions_enabled", "captions"),
    )
    # Forces a preview through the full pipeline instead of the quick path
    full_preview: bool = Field(
        default=False,
        validation_alias=AliasChoices("fullPreview", "full_preview"),
    )
    segment: SegmentSpec | None = None

    @model_validator(mode="after")
    def _segment_required_for_segment_mode(self):
        if self.mode == "segment" and self.segment is None:
            raise ValueError("segment is required when mode is 'segment'")
        return self

    @property
    def resolution(self) -> tuple[int, int]:
        return resolution_for(self.format)


class SegmentMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    index: int
    length: float
    start: float
    end: float
    requested_length: float = Field(serialization_alias="requestedLength")
    truncated: bool = False


class RenderResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    state: str
    preview_url: str | None = Field(default=None, serialization_alias="previewUrl")
    final_url: str | None = Field(default=None, serialization_alias="finalUrl")
    captions_url: str | None = Field(default=None, serialization_alias="captionsUrl")
    thumbnail_urls: list[str] = Field(default_factory=list, serialization_alias="thumbnailUrls")
    segment_url: str | None = Field(default=None, serialization_alias="segmentUrl")
    segment_meta: SegmentMeta | None = Field(default=None, serialization_alias="segmentMeta")
    timing: dict[str, int] = Field(default_factory=dict)

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
