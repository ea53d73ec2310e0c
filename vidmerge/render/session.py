"""FFmpeg export session.

Runs one ffmpeg encode in the background and exposes its state the way an
export session does: a status that moves idle -> waiting -> exporting ->
completed/failed/cancelled, and a progress fraction read from ffmpeg's
``-progress pipe:1`` output.
"""

import logging
import shutil
import subprocess
import tempfile
import threading
from collections import deque
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from vidmerge.config import get_settings
from vidmerge.media.composition import Composition
from vidmerge.render.presets import ExportPreset, OutputContainer
from vidmerge.render.renderer import LayerRenderer, VideoComposition

logger = logging.getLogger(__name__)

_STDERR_TAIL_LINES = 20


class ExportStatus(Enum):
    """Export status."""

    IDLE = "idle"
    WAITING = "waiting"
    EXPORTING = "exporting"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        return self in (ExportStatus.WAITING, ExportStatus.EXPORTING)

    @property
    def is_terminal(self) -> bool:
        return self in (ExportStatus.COMPLETED, ExportStatus.FAILED, ExportStatus.CANCELLED)


class FFmpegExportSession:
    """One asynchronous ffmpeg export of a composition to output_path."""

    def __init__(
        self,
        composition: Composition,
        video_composition: VideoComposition,
        preset: ExportPreset,
        output_path: Path,
        container: OutputContainer = OutputContainer.MOV,
        ffmpeg_path: Optional[str] = None,
    ):
        self.composition = composition
        self.video_composition = video_composition
        self.preset = preset
        self.output_path = Path(output_path)
        self.container = container
        self.ffmpeg_path = ffmpeg_path or get_settings().ffmpeg_path

        self._lock = threading.Lock()
        self._status = ExportStatus.IDLE
        self._progress = 0.0
        self._error: Optional[str] = None
        self._process: Optional[subprocess.Popen] = None
        self._cancel_requested = False

    @classmethod
    def create(
        cls,
        composition: Composition,
        video_composition: VideoComposition,
        preset: ExportPreset,
        output_path: Path,
        container: OutputContainer = OutputContainer.MOV,
    ) -> Optional["FFmpegExportSession"]:
        """Create a session, or None if ffmpeg is unavailable or the composition cannot be exported."""
        ffmpeg_path = shutil.which(get_settings().ffmpeg_path)
        if ffmpeg_path is None:
            logger.error(f"[EXPORT] ffmpeg not found: {get_settings().ffmpeg_path}")
            return None
        if composition.video_track is None or composition.duration_ms <= 0:
            logger.error("[EXPORT] Composition has no video to export")
            return None
        if video_composition.frame_rate <= 0:
            logger.error(f"[EXPORT] Invalid frame rate: {video_composition.frame_rate}")
            return None
        return cls(composition, video_composition, preset, output_path, container, ffmpeg_path)

    @property
    def status(self) -> ExportStatus:
        with self._lock:
            return self._status

    @property
    def progress(self) -> float:
        with self._lock:
            return self._progress

    @property
    def error(self) -> Optional[str]:
        with self._lock:
            return self._error

    def _set_status(self, status: ExportStatus, error: Optional[str] = None) -> None:
        with self._lock:
            if self._status.is_terminal:
                return
            self._status = status
            if status is ExportStatus.COMPLETED:
                self._progress = 1.0
            if error:
                self._error = error

    def _set_progress(self, value: float) -> None:
        with self._lock:
            self._progress = max(self._progress, min(1.0, max(0.0, value)))

    def export_asynchronously(self, completion: Callable[[], None]) -> None:
        """Start the export on a background thread; completion runs once it ends."""
        with self._lock:
            if self._status is not ExportStatus.IDLE:
                raise RuntimeError(f"Export already started ({self._status.value})")
            self._status = ExportStatus.WAITING
        thread = threading.Thread(
            target=self._run,
            args=(completion,),
            name=f"vidmerge-ffmpeg-{self.output_path.stem}",
        )
        thread.start()

    def cancel(self) -> None:
        """Stop a running export; the session ends in the cancelled state."""
        with self._lock:
            self._cancel_requested = True
            process = self._process
        if process is not None and process.poll() is None:
            logger.info(f"[EXPORT] Cancelling {self.output_path.name}")
            process.terminate()

    def _run(self, completion: Callable[[], None]) -> None:
        work_dir = Path(tempfile.mkdtemp(prefix="vidmerge_export_"))
        try:
            self._encode(work_dir)
        except Exception as e:
            logger.exception(f"[EXPORT] Export crashed: {e}")
            self._set_status(ExportStatus.FAILED, str(e))
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)
            if self.status is not ExportStatus.COMPLETED:
                self.output_path.unlink(missing_ok=True)
            completion()

    def _encode(self, work_dir: Path) -> None:
        renderer = LayerRenderer(self.composition, self.video_composition, self.preset, self.container)
        cmd = renderer.build_command(self.output_path, work_dir)
        cmd[0] = self.ffmpeg_path
        duration_us = max(1, self.composition.duration_ms * 1000)

        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"[EXPORT] Starting ffmpeg -> {self.output_path}")

        with self._lock:
            if self._cancel_requested:
                self._status = ExportStatus.CANCELLED
                return
            self._process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        process = self._process

        stderr_tail: deque[str] = deque(maxlen=_STDERR_TAIL_LINES)
        stderr_reader = threading.Thread(
            target=lambda: stderr_tail.extend(line.rstrip() for line in process.stderr),
            daemon=True,
        )
        stderr_reader.start()

        for raw_line in process.stdout:
            line = raw_line.strip()
            if line.startswith("out_time_us=") or line.startswith("out_time_ms="):
                # out_time_ms is in microseconds too on every ffmpeg release
                try:
                    time_us = int(line.split("=", 1)[1])
                except ValueError:
                    continue
                self._set_status(ExportStatus.EXPORTING)
                self._set_progress(time_us / duration_us)
            elif line == "progress=end":
                self._set_progress(1.0)

        returncode = process.wait()
        stderr_reader.join()

        if self._cancel_requested:
            self._set_status(ExportStatus.CANCELLED)
        elif returncode == 0:
            self._set_status(ExportStatus.COMPLETED)
            logger.info(f"[EXPORT] Completed {self.output_path}")
        else:
            detail = "\n".join(stderr_tail) or f"exit code {returncode}"
            logger.error(f"[EXPORT] ffmpeg failed ({returncode}): {detail}")
            self._set_status(ExportStatus.FAILED, f"ffmpeg exited with {returncode}: {detail}")
