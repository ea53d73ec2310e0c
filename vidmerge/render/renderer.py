"""Layer rendering with FFmpeg filter_complex.

Lowers a composition plus its video composition (render size, frame rate,
instruction and layer stack) into a single ffmpeg command:

- the parent layer becomes a black canvas at the render size,
- each video segment is trimmed, oriented by its layer instruction,
  scaled into the video layer frame and laid on the canvas until the
  instruction hides it,
- the overlay layer is rasterized with Pillow to its frame size and laid on
  top for every frame.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from PIL import Image

from vidmerge.config import get_settings
from vidmerge.media.asset import TrackKind
from vidmerge.media.composition import (
    Composition,
    CompositionInstruction,
    LayerInstruction,
    Segment,
)
from vidmerge.media.transform import AffineTransform, Rect, Size
from vidmerge.render.layers import Layer, LayerStack
from vidmerge.render.presets import ExportPreset, OutputContainer

logger = logging.getLogger(__name__)


@dataclass
class VideoComposition:
    """How composition video frames are rendered during export."""

    render_size: Size
    frame_rate: int
    instructions: list[CompositionInstruction] = field(default_factory=list)
    layer_stack: Optional[LayerStack] = None

    @property
    def frame_duration_s(self) -> float:
        return 1.0 / self.frame_rate

    def layer_instruction_for(self, track_id: int) -> Optional[LayerInstruction]:
        for instruction in self.instructions:
            for layer_instruction in instruction.layer_instructions:
                if layer_instruction.track_id == track_id:
                    return layer_instruction
        return None


def _even(value: float) -> int:
    """Round up to an even pixel count (yuv420p needs even dimensions)."""
    pixels = max(2, int(round(value)))
    return pixels + pixels % 2


def orientation_filters(transform: AffineTransform) -> list[str]:
    """FFmpeg filters that apply a preferred transform to decoded frames."""
    turns = transform.quarter_turns
    if turns is None:
        logger.warning(f"[RENDER] Non-cardinal transform {transform}, rendering unrotated")
        return []
    filters = ["vflip"] if transform.decompose().mirrored else []
    if turns == 1:
        filters.append("transpose=clock")
    elif turns == 2:
        filters.extend(["hflip", "vflip"])
    elif turns == 3:
        filters.append("transpose=cclock")
    return filters


class LayerRenderer:
    """Builds the ffmpeg command that composites a layer stack over a composition."""

    def __init__(
        self,
        composition: Composition,
        video_composition: VideoComposition,
        preset: ExportPreset,
        container: OutputContainer = OutputContainer.MOV,
    ):
        self.settings = get_settings()
        self.composition = composition
        self.video_composition = video_composition
        self.preset = preset
        self.container = container

    @property
    def duration_s(self) -> float:
        return self.composition.duration_ms / 1000

    def rasterize_overlay(self, layer: Layer, work_dir: Path) -> Optional[Path]:
        """Render the overlay contents to a PNG exactly the size of its frame."""
        if layer.contents is None:
            return None
        width = max(1, int(round(layer.frame.width)))
        height = max(1, int(round(layer.frame.height)))
        image = layer.contents
        if image.size != (width, height):
            image = image.resize((width, height), Image.Resampling.LANCZOS)
        path = work_dir / "overlay.png"
        image.save(path, format="PNG")
        logger.info(f"[RENDER] Rasterized overlay {width}x{height} -> {path}")
        return path

    def build_command(self, output_path: Path, work_dir: Path) -> list[str]:
        """Build the full ffmpeg command, rasterizing overlay assets into work_dir.

        Args:
            output_path: Final output file
            work_dir: Scratch directory owned by the export

        Returns:
            FFmpeg command as list[str], with progress written to stdout
        """
        vc = self.video_composition
        fps = vc.frame_rate
        duration_s = self.duration_s
        canvas_w = _even(vc.render_size.width)
        canvas_h = _even(vc.render_size.height)

        inputs: list[str] = []
        input_index: dict[Path, int] = {}

        def add_source(path: Path) -> int:
            if path not in input_index:
                input_index[path] = len(input_index)
                inputs.extend(["-noautorotate", "-i", str(path)])
            return input_index[path]

        filters = [f"color=c=black:s={canvas_w}x{canvas_h}:r={fps}:d={duration_s:.6f}[base0]"]
        current = "base0"
        step = 0

        # L1: video segments on the parent canvas
        video_frame = vc.layer_stack.video.frame if vc.layer_stack else None
        for track in self.composition.tracks_with_kind(TrackKind.VIDEO):
            instruction = vc.layer_instruction_for(track.track_id)
            for segment in track.segments:
                idx = add_source(segment.source_path)
                label = f"v{step}"
                filters.append(
                    self._video_segment_filter(idx, segment, instruction, video_frame, fps, label)
                )
                hidden_ms = instruction.hidden_from_ms if instruction else None
                enable = f":enable='lt(t,{hidden_ms / 1000:.6f})'" if hidden_ms is not None else ""
                x = int(round(video_frame.x)) if video_frame else 0
                y = int(round(video_frame.y)) if video_frame else 0
                step += 1
                filters.append(
                    f"[{current}][{label}]overlay=x={x}:y={y}:eof_action=pass{enable}[base{step}]"
                )
                current = f"base{step}"

        # L2: static overlay
        overlay_layer = vc.layer_stack.overlay if vc.layer_stack else None
        overlay_png = self.rasterize_overlay(overlay_layer, work_dir) if overlay_layer else None
        if overlay_png is not None:
            overlay_idx = len(input_index)
            input_index[overlay_png] = overlay_idx
            inputs.extend([
                "-loop", "1",
                "-framerate", str(fps),
                "-t", f"{duration_s:.6f}",
                "-i", str(overlay_png),
            ])
            x = int(round(overlay_layer.frame.x))
            y = int(round(overlay_layer.frame.y))
            filters.append(f"[{overlay_idx}:v]format=rgba[ovl]")
            step += 1
            filters.append(f"[{current}][ovl]overlay=x={x}:y={y}:eof_action=pass[base{step}]")
            current = f"base{step}"

        final = [f"format={self.settings.pixel_format}"]
        if self.preset.max_height:
            final.insert(0, f"scale=-2:'min({self.preset.max_height},ih)'")
        filters.append(f"[{current}]{','.join(final)}[vout]")

        audio_maps: list[str] = []
        for a, track in enumerate(self.composition.tracks_with_kind(TrackKind.AUDIO)):
            if not track.segments:
                continue
            segment = track.segments[0]
            idx = add_source(segment.source_path)
            label = f"a{a}"
            filters.append(self._audio_segment_filter(idx, segment, label))
            audio_maps.extend(["-map", f"[{label}]"])

        cmd = [
            self.settings.ffmpeg_path,
            "-y",
            "-nostdin",
            *inputs,
            "-filter_complex", ";".join(filters),
            "-map", "[vout]",
            *audio_maps,
            "-c:v", "libx264",
            "-preset", self.preset.x264_preset,
            "-crf", str(self.preset.crf),
            "-r", str(fps),
        ]
        if audio_maps:
            cmd.extend(["-c:a", "aac", "-b:a", self.settings.audio_bitrate])
        cmd.extend(["-t", f"{duration_s:.6f}", "-f", self.container.ffmpeg_format])
        if self.container is OutputContainer.MP4:
            cmd.extend(["-movflags", "+faststart"])
        cmd.extend(["-progress", "pipe:1", "-nostats", str(output_path)])

        logger.debug(f"[RENDER] filter_complex:\n{';'.join(filters)}")
        return cmd

    def _video_segment_filter(
        self,
        input_idx: int,
        segment: Segment,
        instruction: Optional[LayerInstruction],
        frame: Optional[Rect],
        fps: int,
        label: str,
    ) -> str:
        start_s = segment.source_range.start_ms / 1000
        dur_s = segment.source_range.duration_ms / 1000
        at_s = segment.at_ms / 1000
        parts = [
            f"trim=start={start_s:.6f}:duration={dur_s:.6f}",
            f"setpts=PTS-STARTPTS+{at_s:.6f}/TB",
        ]
        if instruction is not None:
            parts.extend(orientation_filters(instruction.transform))
        if frame is not None:
            parts.append(f"scale={int(round(frame.width))}:{int(round(frame.height))}")
        parts.extend(["setsar=1", f"fps={fps}"])
        return f"[{input_idx}:{segment.source_track.index}]{','.join(parts)}[{label}]"

    def _audio_segment_filter(self, input_idx: int, segment: Segment, label: str) -> str:
        start_s = segment.source_range.start_ms / 1000
        dur_s = segment.source_range.duration_ms / 1000
        parts = [
            f"atrim=start={start_s:.6f}:duration={dur_s:.6f}",
            "asetpts=PTS-STARTPTS",
        ]
        if segment.at_ms > 0:
            parts.append(f"adelay={segment.at_ms}:all=1")
        return f"[{input_idx}:{segment.source_track.index}]{','.join(parts)}[{label}]"
