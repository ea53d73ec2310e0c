"""Error codes dictionary for merge failures.

This is the single source of truth for all error codes and their
retryability. Used by exceptions and export results to produce
machine-readable failure reports.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_fix: str


ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Input errors (not retryable with the same input)
    # ==========================================================================
    "MEDIA_PROBE_FAILED": {
        "retryable": False,
        "suggested_fix": "Check that the file exists and is a media container ffprobe can read",
    },
    "NO_VIDEO_TRACK": {
        "retryable": False,
        "suggested_fix": "Provide an asset with at least one video stream",
    },
    "COMPOSITION_BUILD_FAILED": {
        "retryable": False,
        "suggested_fix": "Source tracks must cover the whole asset duration",
    },
    "INVALID_CONFIGURATION": {
        "retryable": False,
    },
    # ==========================================================================
    # Export errors
    # ==========================================================================
    "EXPORT_SESSION_UNAVAILABLE": {
        "retryable": False,
        "suggested_fix": "Use one of the quality tiers low, medium or high and check the ffmpeg path",
    },
    "EXPORT_FAILED": {
        "retryable": True,
    },
    "EXPORT_CANCELLED": {
        "retryable": True,
    },
    "INTERNAL_ERROR": {
        "retryable": False,
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification by code.

    Args:
        code: The error code

    Returns:
        ErrorCodeSpec with retryable flag and optional fix suggestion
    """
    return ERROR_CODES.get(code, {"retryable": False})


def is_retryable(code: str) -> bool:
    """Check if an error code is retryable."""
    return get_error_spec(code).get("retryable", False)
