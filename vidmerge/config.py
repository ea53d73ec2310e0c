from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VIDMERGE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    # Merge defaults
    default_frame_rate: int = 30
    default_quality: Literal["low", "medium", "high"] = "high"
    default_container: Literal["mov", "mp4"] = "mov"
    # Empty means ~/Documents
    output_directory_raw: str = ""

    # Export
    progress_interval_s: float = 0.5
    audio_bitrate: str = "192k"
    pixel_format: str = "yuv420p"

    @computed_field
    @property
    def output_directory(self) -> Path:
        """Resolve the default output directory."""
        if self.output_directory_raw:
            return Path(self.output_directory_raw).expanduser()
        return Path.home() / "Documents"


@lru_cache
def get_settings() -> Settings:
    return Settings()
