"""Timeline schema.

A timeline is the declarative description of a short video: one list per
track, every time-bearing entry expressed in seconds from the start.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

IMAGE_MARKER = "image:"


class TimedEntry(BaseModel):
    """Common shape of every time-bearing track entry."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    t0: float = Field(default=0.0, ge=0)
    t1: float = Field(default=0.0, ge=0)

    @model_validator(mode="after")
    def _check_window(self):
        if self.t1 < self.t0:
            raise ValueError(f"t1 ({self.t1}) must not be before t0 ({self.t0})")
        return self


class VideoEntry(TimedEntry):
    """One b-roll/image segment of the video track."""

    src: str = ""

    @property
    def is_image(self) -> bool:
        return self.src.lower().startswith(IMAGE_MARKER)

    @property
    def image_url(self) -> str | None:
        if not self.is_image:
            return None
        return self.src[len(IMAGE_MARKER):].strip()


class VoiceoverEntry(TimedEntry):
    voice: str | None = None


class CaptionEntry(TimedEntry):
    text: str = ""


class MusicEntry(BaseModel):
    """Background music hint; music has no timestamps of its own."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    vol: float | None = Field(default=None, ge=0)


class Tracks(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    video: list[VideoEntry] = Field(default_factory=list)
    voiceover: list[VoiceoverEntry] = Field(default_factory=list)
    music: list[MusicEntry] = Field(default_factory=list)
    captions: list[CaptionEntry] = Field(default_factory=list)

    @property
    def music_on(self) -> bool:
        return len(self.music) > 0


class Timeline(BaseModel):
    """Root input of a render.

    ``duration_seconds`` is advisory; entries may run past it and each
    video entry is rendered on its own.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    duration_seconds: float | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("durationSeconds", "duration_seconds", "duration"),
        serialization_alias="durationSeconds",
    )
    fps: int = Field(default=30, gt=0)
    tracks: Tracks = Field(default_factory=Tracks)
