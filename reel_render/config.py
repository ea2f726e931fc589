import json
import os
import tempfile
from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "Reel Render API"
    app_version: str = "0.1.0"
    git_hash: str = "unknown"  # Set via GIT_HASH env var at build time
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # CORS - stored as string, parsed via computed property
    cors_origins_raw: str = "*"

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from pipe/comma-separated string or JSON array."""
        v = self.cors_origins_raw
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        if "|" in v:
            return [origin.strip() for origin in v.split("|") if origin.strip()]
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # Published artifacts
    files_dir: str = os.path.join(tempfile.gettempdir(), "render-files")
    # Empty -> derived from the incoming request (scheme://host)
    public_base_url: str = ""

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    # Encode settings (fixed for playback compatibility)
    render_fps: int = 30
    render_pix_fmt: str = "yuv420p"
    render_video_codec: str = "libx264"
    render_preset: str = "veryfast"
    render_crf: int = 23
    render_audio_codec: str = "aac"
    render_audio_bitrate: str = "192k"
    render_audio_sample_rate: int = 48000

    # Concurrency / deadlines
    render_max_workers: int = 3
    render_timeout_s: float = 600.0
    image_fetch_timeout_s: float = 15.0

    # Feature flags
    quick_preview_enabled: bool = True
    preview_requires_audio: bool = False
    music_enabled: bool = True
    captions_enabled: bool = True
    concat_fast_path_enabled: bool = False

    # Pipeline constants
    music_duck_volume: float = 0.35
    preview_duration_s: float = 10.0
    default_segment_duration_s: float = 3.0
    min_segment_duration_s: float = 0.2
    segment_min_length_s: float = 2.0
    segment_max_length_s: float = 15.0
    default_voice_duration_s: float = 10.0
    thumbnail_times_s: list[float] = [2.0, 5.0, 8.0]
    thumbnail_size: str = "1280x720"

    # Text cards
    fallback_label: str = "Scene"
    text_font_size: int = 48
    text_max_chars: int = 60
    font_candidates: list[str] = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/usr/share/fonts/opentype/noto/NotoSansCJK-Bold.ttc",
        "/System/Library/Fonts/Supplemental/Arial Bold.ttf",  # macOS
    ]


@lru_cache
def get_settings() -> Settings:
    return Settings()
