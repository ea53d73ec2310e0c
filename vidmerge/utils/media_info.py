"""Media file information utilities using FFprobe."""

import json
import logging
import subprocess
from typing import Any, Optional

from vidmerge.config import get_settings
from vidmerge.exceptions import MediaProbeError

logger = logging.getLogger(__name__)

# Display matrix coefficients are 16.16 fixed point (the last column is 2.30)
_FIXED_16_16 = 65536.0


def _run_ffprobe(file_path: str, *args) -> dict:
    """Run ffprobe and return parsed JSON."""
    settings = get_settings()
    cmd = [
        settings.ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        *args,
        file_path,
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise MediaProbeError(file_path, f"ffprobe not found: {e}") from e
    if result.returncode != 0:
        raise MediaProbeError(file_path, result.stderr.strip() or f"exit code {result.returncode}")

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise MediaProbeError(file_path, f"unparsable ffprobe output: {e}") from e


def probe(file_path: str) -> dict:
    """
    Get format and stream information for a media file.

    Args:
        file_path: Path to media file

    Returns:
        Parsed ffprobe JSON with "format" and "streams" keys

    Raises:
        MediaProbeError: If ffprobe fails
    """
    data = _run_ffprobe(file_path, "-show_format", "-show_streams")
    logger.debug(f"[PROBE] {file_path}: {len(data.get('streams', []))} streams")
    return data


def seconds_to_ms(value: Any) -> Optional[int]:
    """Convert an ffprobe seconds string to milliseconds, None if absent."""
    if value in (None, "", "N/A"):
        return None
    try:
        return int(round(float(value) * 1000))
    except (TypeError, ValueError):
        return None


def parse_display_matrix(text: str) -> Optional[tuple[float, float, float, float, float, float]]:
    """
    Parse the displaymatrix dump ffprobe prints for Display Matrix side data.

    The dump has three rows of three integers ("00000000: a b u"). Row one
    holds a, b; row two holds c, d; row three holds tx, ty.

    Returns:
        Tuple (a, b, c, d, tx, ty) or None if the text cannot be parsed
    """
    values: list[int] = []
    for line in text.strip().splitlines():
        _, sep, rest = line.partition(":")
        if not sep:
            continue
        try:
            values.extend(int(part) for part in rest.split())
        except ValueError:
            return None
    if len(values) != 9:
        return None
    a, b, _, c, d, _, tx, ty, _ = values
    return (
        a / _FIXED_16_16,
        b / _FIXED_16_16,
        c / _FIXED_16_16,
        d / _FIXED_16_16,
        tx / _FIXED_16_16,
        ty / _FIXED_16_16,
    )


def get_stream_rotation(stream: dict) -> Optional[float]:
    """
    Get the display rotation of a stream in degrees, clockwise.

    Newer ffprobe builds report a counter-clockwise "rotation" in the Display
    Matrix side data; older ones write a clockwise "rotate" tag.
    """
    for side_data in stream.get("side_data_list", []) or []:
        if "rotation" in side_data:
            try:
                return -float(side_data["rotation"])
            except (TypeError, ValueError):
                logger.warning(f"[PROBE] Ignoring rotation value: {side_data['rotation']!r}")
    rotate_tag = (stream.get("tags") or {}).get("rotate")
    if rotate_tag is not None:
        try:
            return float(rotate_tag)
        except (TypeError, ValueError):
            logger.warning(f"[PROBE] Ignoring rotate tag: {rotate_tag!r}")
    return None


def get_display_matrix(stream: dict) -> Optional[tuple[float, float, float, float, float, float]]:
    """Get the raw display matrix of a stream, if ffprobe reported one."""
    for side_data in stream.get("side_data_list", []) or []:
        text = side_data.get("displaymatrix")
        if text:
            matrix = parse_display_matrix(text)
            if matrix is not None:
                return matrix
            logger.warning(f"[PROBE] Unparsable display matrix: {text!r}")
    return None
