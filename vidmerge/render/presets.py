"""Export quality tiers and output containers."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Quality(Enum):
    """Export quality tier."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class OutputContainer(Enum):
    """Output file container."""

    MOV = "mov"
    MP4 = "mp4"

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @property
    def ffmpeg_format(self) -> str:
        return "mov" if self is OutputContainer.MOV else "mp4"


@dataclass(frozen=True)
class ExportPreset:
    """Named bundle of x264 encode parameters."""

    name: str
    x264_preset: str
    crf: int
    max_height: Optional[int] = None  # resolution ceiling, None keeps the render size


EXPORT_PRESETS: dict[Quality, ExportPreset] = {
    Quality.LOW: ExportPreset(name="low", x264_preset="veryfast", crf=30, max_height=480),
    Quality.MEDIUM: ExportPreset(name="medium", x264_preset="medium", crf=23, max_height=720),
    Quality.HIGH: ExportPreset(name="high", x264_preset="medium", crf=18),
}


def resolve_preset(quality: Union[Quality, str, None]) -> Optional[ExportPreset]:
    """Map a quality tier (enum or its value) to an export preset, None if unsupported."""
    if quality is None:
        return None
    if not isinstance(quality, Quality):
        try:
            quality = Quality(str(quality).lower())
        except ValueError:
            return None
    return EXPORT_PRESETS.get(quality)
