from vidmerge.render.exporter import Exporter, ExportOutcome, ExportResult
from vidmerge.render.layers import Layer, LayerStack, LayerType, build_layer_stack
from vidmerge.render.placement import Placement
from vidmerge.render.presets import OutputContainer, Quality, resolve_preset
from vidmerge.render.renderer import LayerRenderer, VideoComposition
from vidmerge.render.session import ExportStatus, FFmpegExportSession

__all__ = [
    "Exporter",
    "ExportOutcome",
    "ExportResult",
    "ExportStatus",
    "FFmpegExportSession",
    "Layer",
    "LayerStack",
    "LayerType",
    "build_layer_stack",
    "Placement",
    "Quality",
    "OutputContainer",
    "resolve_preset",
    "LayerRenderer",
    "VideoComposition",
]
