"""Custom exceptions for vidmerge.

Every exception carries a machine-readable error code registered in
``vidmerge.constants.error_codes`` so failures can be reported uniformly,
whether they are raised during setup or carried by an export result.
"""

from typing import Any

from vidmerge.constants.error_codes import get_error_spec, is_retryable


class MergeError(Exception):
    """Base exception for all vidmerge errors."""

    code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        suggested_fix: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        self.suggested_fix = suggested_fix
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return is_retryable(self.code)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        spec = get_error_spec(self.code)
        return {
            "code": self.code,
            "message": self.message,
            "retryable": is_retryable(self.code),
            "suggested_fix": self.suggested_fix or spec.get("suggested_fix"),
        }


# =============================================================================
# Input Errors
# =============================================================================


class MediaProbeError(MergeError):
    """ffprobe could not inspect a media file."""

    code = "MEDIA_PROBE_FAILED"
    message = "Failed to probe media file"

    def __init__(self, path: str | None = None, detail: str | None = None):
        message = self.message
        if path:
            message = f"Failed to probe media file: {path}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class NoVideoTrackError(MergeError):
    """The source asset has no video track."""

    code = "NO_VIDEO_TRACK"
    message = "Source asset has no video track"

    def __init__(self, path: str | None = None):
        message = f"Source asset has no video track: {path}" if path else self.message
        super().__init__(message)


class CompositionBuildError(MergeError):
    """A source track could not be copied into the composition."""

    code = "COMPOSITION_BUILD_FAILED"
    message = "Failed to build composition"

    def __init__(
        self,
        message: str | None = None,
        *,
        kind: str | None = None,
        requested: tuple[float, float] | None = None,
        available: tuple[float, float] | None = None,
    ):
        msg = message or self.message
        if kind and requested and available:
            msg = (
                f"Cannot insert {kind} range [{requested[0]:.3f}s, {requested[1]:.3f}s) "
                f"from source range [{available[0]:.3f}s, {available[1]:.3f}s)"
            )
        self.kind = kind
        super().__init__(msg)


class InvalidConfigurationError(MergeError):
    """Merge configuration values are out of range."""

    code = "INVALID_CONFIGURATION"
    message = "Invalid merge configuration"


# =============================================================================
# Export Errors
# =============================================================================


class ExportError(MergeError):
    """The encode engine reported a failure."""

    code = "EXPORT_FAILED"
    message = "Export failed"


class ExportSessionUnavailableError(ExportError):
    """No export session could be created for the composition."""

    code = "EXPORT_SESSION_UNAVAILABLE"
    message = "Export session could not be created"


class ExportCancelledError(ExportError):
    """The export was cancelled before completion."""

    code = "EXPORT_CANCELLED"
    message = "Export cancelled"
