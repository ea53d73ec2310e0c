"""
Overlay a still image onto a video and export the result.

This module orchestrates one merge:
1. Pick the first video track (and first audio track, if any)
2. Build a composition covering the asset duration
3. Normalize orientation and resolve the overlay placement
4. Build the layer stack and compositing instruction
5. Export in the background, forwarding progress and the result
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union
from uuid import uuid4

from PIL import Image

from vidmerge.config import get_settings
from vidmerge.exceptions import InvalidConfigurationError, NoVideoTrackError
from vidmerge.media.asset import SourceAsset
from vidmerge.media.composition import (
    CompositionInstruction,
    LayerInstruction,
    build_composition,
)
from vidmerge.media.transform import natural_size
from vidmerge.render.exporter import (
    CompletionHandler,
    Exporter,
    ExportResult,
    ProgressHandler,
    session_unavailable_result,
)
from vidmerge.render.layers import build_layer_stack
from vidmerge.render.placement import Placement
from vidmerge.render.presets import OutputContainer, Quality
from vidmerge.render.renderer import VideoComposition

logger = logging.getLogger(__name__)

OverlayImage = Union[Image.Image, str, Path]


@dataclass(frozen=True)
class MergeConfiguration:
    """Configuration for one merge."""

    frame_rate: int
    directory: Path
    quality: Quality = Quality.HIGH
    placement: Placement = field(default_factory=Placement.stretch_fit)
    container: OutputContainer = OutputContainer.MOV
    progress_interval_s: float = 0.5

    def __post_init__(self):
        if not isinstance(self.frame_rate, int) or self.frame_rate <= 0:
            raise InvalidConfigurationError(f"frame_rate must be a positive integer: {self.frame_rate!r}")
        if self.progress_interval_s <= 0:
            raise InvalidConfigurationError(
                f"progress_interval_s must be positive: {self.progress_interval_s!r}"
            )
        try:
            quality = Quality(self.quality)
            container = OutputContainer(self.container)
        except ValueError as e:
            raise InvalidConfigurationError(str(e)) from e
        object.__setattr__(self, "quality", quality)
        object.__setattr__(self, "container", container)
        object.__setattr__(self, "directory", Path(self.directory))

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "frame_rate": self.frame_rate,
            "directory": str(self.directory),
            "quality": self.quality.value,
            "placement": self.placement.to_dict(),
            "container": self.container.value,
            "progress_interval_s": self.progress_interval_s,
        }


def default_configuration() -> MergeConfiguration:
    """30 fps, the documents directory, high quality, stretch-to-fit (overridable via settings)."""
    settings = get_settings()
    return MergeConfiguration(
        frame_rate=settings.default_frame_rate,
        directory=settings.output_directory,
        quality=Quality(settings.default_quality),
        placement=Placement.stretch_fit(),
        container=OutputContainer(settings.default_container),
        progress_interval_s=settings.progress_interval_s,
    )


class Merge:
    """Overlays an image on a video and exports it to a new file."""

    def __init__(
        self,
        config: Optional[MergeConfiguration] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.configuration = config or default_configuration()
        self.loop = loop

    def _output_path(self) -> Path:
        """Fresh, collision-free output location in the configured directory."""
        filename = f"export{uuid4()}{self.configuration.container.extension}"
        return self.configuration.directory / filename

    def overlay_video(
        self,
        video: Union[SourceAsset, str, Path],
        overlay_image: OverlayImage,
        completion: CompletionHandler,
        progress_handler: Optional[ProgressHandler] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> Optional[Exporter]:
        """
        Overlay overlay_image on video and export it in the background.

        Setup runs on the caller's thread. progress_handler is called from the
        export thread every progress interval while exporting; completion is
        called exactly once afterwards with an ExportResult, on ``loop`` when
        one is given, otherwise on a dedicated thread.

        Args:
            video: Source asset, or a path to probe
            overlay_image: PIL image or path to one
            completion: Receives the ExportResult
            progress_handler: Receives progress in [0.0, 1.0], never decreasing
            loop: Event loop to deliver completion on (defaults to self.loop)

        Returns:
            The running Exporter, or None if no export session could be created
            (completion has already received a failed result then)

        Raises:
            MediaProbeError: If video is a path ffprobe cannot read
            NoVideoTrackError: If the asset has no video track
            CompositionBuildError: If a track does not cover the asset duration
        """
        config = self.configuration
        asset = video if isinstance(video, SourceAsset) else SourceAsset.load(video)

        # No callback fires for setup failures; they raise on the caller's thread
        video_tracks = asset.video_tracks
        if not video_tracks:
            logger.warning(f"[MERGE] No video track in {asset.path}")
            raise NoVideoTrackError(str(asset.path))
        video_track = video_tracks[0]
        audio_tracks = asset.audio_tracks
        audio_track = audio_tracks[0] if audio_tracks else None

        composition = build_composition(asset.duration_ms, asset.path, video_track, audio_track)

        transform = video_track.preferred_transform
        size = natural_size(transform.is_portrait, video_track.natural_size)
        layer_instruction = LayerInstruction.for_track(
            composition.video_track, transform, asset.duration_ms
        )
        instruction = CompositionInstruction(
            time_range=composition.video_track.time_range,
            layer_instructions=[layer_instruction],
        )
        overlay_rect = config.placement.rect(size)
        layer_stack = build_layer_stack(overlay_image, size, overlay_rect)
        video_composition = VideoComposition(
            render_size=size,
            frame_rate=config.frame_rate,
            instructions=[instruction],
            layer_stack=layer_stack,
        )
        logger.info(
            f"[MERGE] {asset.path.name}: render {size.width:g}x{size.height:g} "
            f"(portrait={transform.is_portrait}), overlay {layer_stack.overlay.frame}"
        )

        exporter = Exporter.create(
            composition,
            self._output_path(),
            video_composition,
            config.quality,
            container=config.container,
            poll_interval_s=config.progress_interval_s,
            loop=loop or self.loop,
        )
        if exporter is None:
            logger.error(f"[MERGE] Could not create export session for {asset.path}")
            completion(session_unavailable_result())
            return None

        exporter.progress = progress_handler
        exporter.render(completion)
        return exporter

    async def overlay_video_async(
        self,
        video: Union[SourceAsset, str, Path],
        overlay_image: OverlayImage,
        progress_handler: Optional[ProgressHandler] = None,
    ) -> ExportResult:
        """Awaitable overlay_video: resolves with the ExportResult.

        Setup (probing, image loading) runs in a worker thread. Setup errors
        propagate as exceptions, as with overlay_video.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[ExportResult] = loop.create_future()

        def resolve(result: ExportResult) -> None:
            if not future.done():
                future.set_result(result)

        def complete(result: ExportResult) -> None:
            loop.call_soon_threadsafe(resolve, result)

        await asyncio.to_thread(
            self.overlay_video, video, overlay_image, complete, progress_handler, loop
        )
        return await future
