"""Overlay a still image onto a video and export the result."""

from vidmerge.merge import Merge, MergeConfiguration, default_configuration
from vidmerge.render.exporter import ExportOutcome, ExportResult
from vidmerge.render.placement import Placement
from vidmerge.render.presets import OutputContainer, Quality

__version__ = "0.1.0"

__all__ = [
    "Merge",
    "MergeConfiguration",
    "default_configuration",
    "ExportResult",
    "ExportOutcome",
    "Placement",
    "Quality",
    "OutputContainer",
]
