"""
Pytest fixtures for vidmerge tests.

Media files are synthesized with ffmpeg's lavfi sources, so no test data
needs to be checked in.

CI/CD Note:
Tests that need ffmpeg/ffprobe are marked with requires_ffmpeg and are
skipped when the binaries are not on PATH.
"""

import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

from vidmerge.config import get_settings
from vidmerge.media.asset import SourceAsset, TimeRange, Track, TrackKind
from vidmerge.media.transform import AffineTransform, Size


def _ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None


def pytest_configure(config):
    """Register custom markers for CI/CD test filtering."""
    config.addinivalue_line(
        "markers",
        "requires_ffmpeg: mark test as requiring ffmpeg/ffprobe on PATH (skipped otherwise)"
    )


def pytest_collection_modifyitems(config, items):
    if _ffmpeg_available():
        return
    skip = pytest.mark.skip(reason="ffmpeg/ffprobe not available")
    for item in items:
        if "requires_ffmpeg" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached; start and end every test with a clean cache."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def temp_output_dir():
    """Temporary directory for test outputs."""
    with tempfile.TemporaryDirectory(prefix="vidmerge_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def overlay_image() -> Image.Image:
    """Half-transparent red overlay."""
    return Image.new("RGBA", (64, 32), (255, 0, 0, 128))


@pytest.fixture
def make_track() -> Callable[..., Track]:
    """Factory for tracks without probing a file."""

    def _make(
        kind: TrackKind = TrackKind.VIDEO,
        duration_ms: int = 10000,
        start_ms: int = 0,
        index: int = 0,
        size: Size = Size(1080, 1920),
        transform: AffineTransform = AffineTransform.identity(),
    ) -> Track:
        return Track(
            kind=kind,
            index=index,
            time_range=TimeRange(start_ms, duration_ms),
            natural_size=size if kind is TrackKind.VIDEO else Size(0, 0),
            preferred_transform=transform,
        )

    return _make


@pytest.fixture
def make_asset(make_track) -> Callable[..., SourceAsset]:
    """Factory for source assets: duration plus optional video/audio tracks."""

    def _make(
        duration_ms: int = 10000,
        video_ms: int | None = 10000,
        audio_ms: int | None = None,
        transform: AffineTransform = AffineTransform.identity(),
        size: Size = Size(1080, 1920),
    ) -> SourceAsset:
        tracks = []
        if video_ms is not None:
            tracks.append(
                make_track(TrackKind.VIDEO, video_ms, index=0, size=size, transform=transform)
            )
        if audio_ms is not None:
            tracks.append(make_track(TrackKind.AUDIO, audio_ms, index=1))
        return SourceAsset(path=Path("/media/source.mov"), duration_ms=duration_ms, tracks=tuple(tracks))

    return _make


@pytest.fixture
def synth_video(temp_output_dir) -> Callable[..., Path]:
    """Create a short test video with ffmpeg (testsrc, optional sine audio)."""

    def _make(
        name: str = "source.mp4",
        width: int = 320,
        height: int = 240,
        duration_s: float = 2.0,
        with_audio: bool = True,
        with_video: bool = True,
    ) -> Path:
        output_path = temp_output_dir / name
        cmd = ["ffmpeg", "-y"]
        if with_video:
            cmd.extend([
                "-f", "lavfi",
                "-i", f"testsrc=size={width}x{height}:rate=25:duration={duration_s}",
            ])
        if with_audio:
            cmd.extend([
                "-f", "lavfi",
                "-i", f"sine=frequency=440:sample_rate=44100:duration={duration_s}",
            ])
        if with_video:
            cmd.extend(["-c:v", "libx264", "-pix_fmt", "yuv420p"])
        if with_audio:
            cmd.extend(["-c:a", "aac"])
        cmd.extend(["-t", str(duration_s), str(output_path)])
        subprocess.run(cmd, capture_output=True, check=True)
        return output_path

    return _make
