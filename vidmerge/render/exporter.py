"""Export driver.

Owns one export session: starts it on a background thread, samples its
progress at a fixed interval while it is waiting or exporting, and delivers
exactly one ExportResult once it stops.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union

from vidmerge.config import get_settings
from vidmerge.exceptions import (
    ExportCancelledError,
    ExportError,
    ExportSessionUnavailableError,
    MergeError,
)
from vidmerge.media.composition import Composition
from vidmerge.render.presets import OutputContainer, Quality, resolve_preset
from vidmerge.render.renderer import VideoComposition
from vidmerge.render.session import ExportStatus, FFmpegExportSession

logger = logging.getLogger(__name__)

ProgressHandler = Callable[[float], None]


class ExportOutcome(Enum):
    """Terminal outcome of an export."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ExportResult:
    """Result delivered to the completion handler."""

    outcome: ExportOutcome
    location: Optional[Path] = None
    error: Optional[MergeError] = None

    @classmethod
    def succeeded(cls, location: Path) -> "ExportResult":
        return cls(ExportOutcome.SUCCEEDED, location=Path(location))

    @classmethod
    def failed(cls, reason: Union[str, MergeError]) -> "ExportResult":
        error = reason if isinstance(reason, MergeError) else ExportError(reason)
        return cls(ExportOutcome.FAILED, error=error)

    @classmethod
    def cancelled(cls) -> "ExportResult":
        return cls(ExportOutcome.CANCELLED, error=ExportCancelledError())

    @property
    def ok(self) -> bool:
        return self.outcome is ExportOutcome.SUCCEEDED

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "outcome": self.outcome.value,
            "location": str(self.location) if self.location else None,
            "error": self.error.to_dict() if self.error else None,
        }


CompletionHandler = Callable[[ExportResult], None]


class Exporter:
    """Drives one export session to completion while reporting progress."""

    def __init__(
        self,
        session: FFmpegExportSession,
        poll_interval_s: Optional[float] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.session = session
        self.poll_interval_s = (
            poll_interval_s if poll_interval_s is not None else get_settings().progress_interval_s
        )
        self.loop = loop
        self.progress: Optional[ProgressHandler] = None
        self._started = False

    @classmethod
    def create(
        cls,
        asset: Composition,
        output_path: Path,
        video_composition: VideoComposition,
        quality: Union[Quality, str],
        container: OutputContainer = OutputContainer.MOV,
        poll_interval_s: Optional[float] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> Optional["Exporter"]:
        """Create an exporter, or None when no export session can be set up.

        Returns None if the quality tier has no export preset or the engine
        refuses the composition.
        """
        preset = resolve_preset(quality)
        if preset is None:
            logger.error(f"[EXPORT] No export preset for quality {quality!r}")
            return None
        session = FFmpegExportSession.create(
            asset, video_composition, preset, Path(output_path), container
        )
        if session is None:
            return None
        return cls(session, poll_interval_s=poll_interval_s, loop=loop)

    @property
    def status(self) -> ExportStatus:
        return self.session.status

    @property
    def output_path(self) -> Path:
        return self.session.output_path

    def render(self, complete: CompletionHandler) -> None:
        """Start the export without blocking; complete fires exactly once at the end.

        The export thread is not a daemon, so the interpreter waits for the
        result to be delivered before exiting.
        """
        if self._started:
            raise RuntimeError("Exporter.render() may only be called once")
        self._started = True
        thread = threading.Thread(
            target=self._run,
            args=(complete,),
            name=f"vidmerge-export-{self.output_path.stem}",
        )
        thread.start()

    def _run(self, complete: CompletionHandler) -> None:
        try:
            finished = threading.Event()
            self.session.export_asynchronously(finished.set)
            self._poll_progress(finished)
            finished.wait()
            result = self._result()
        except Exception as e:
            logger.exception(f"[EXPORT] Export driver failed: {e}")
            result = ExportResult.failed(str(e))
        self._deliver(complete, result)

    def _poll_progress(self, finished: threading.Event) -> None:
        """Sample progress every poll interval while the session is waiting or exporting."""
        last = 0.0
        while self.session.status.is_active:
            last = max(last, self.session.progress)
            if self.progress is not None:
                try:
                    self.progress(last)
                except Exception as e:
                    logger.warning(f"[EXPORT] Progress handler raised: {e}")
            finished.wait(self.poll_interval_s)

    def _result(self) -> ExportResult:
        status = self.session.status
        if status is ExportStatus.COMPLETED:
            return ExportResult.succeeded(self.output_path)
        if status is ExportStatus.CANCELLED:
            return ExportResult.cancelled()
        return ExportResult.failed(self.session.error or f"Export ended with status {status.value}")

    def _deliver(self, complete: CompletionHandler, result: ExportResult) -> None:
        """Hand the result to the caller's event loop, or a dedicated delivery thread."""
        logger.info(f"[EXPORT] {self.output_path.name}: {result.outcome.value}")
        if self.loop is not None and not self.loop.is_closed():
            self.loop.call_soon_threadsafe(complete, result)
            return
        threading.Thread(
            target=complete,
            args=(result,),
            name=f"vidmerge-complete-{self.output_path.stem}",
        ).start()


def session_unavailable_result() -> ExportResult:
    """Result reported when no exporter could be created."""
    return ExportResult.failed(ExportSessionUnavailableError())
