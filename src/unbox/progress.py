"""Progress tracking for archive extraction.

Tracks bytes processed and renders a live display on stderr. The display
is repainted by rich's refresh thread, which only reads the task state.
"""

import logging
import time
from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)

logger = logging.getLogger(__name__)


class ExtractionProgress:
    """Tracks extraction progress and calculates ETA.

    Features:
    - Bytes processed count against an optional total
    - Name of the file currently being processed
    - Determinate bar with ETA when the total is known, spinner otherwise
    """

    def __init__(
        self,
        total_bytes: Optional[int],
        enabled: bool = True,
        refresh_per_second: float = 5.0,
        console: Optional[Console] = None
    ):
        """Initialize progress tracker.

        Args:
            total_bytes: Total number of bytes to process, None if unknown
            enabled: Whether to render a live display
            refresh_per_second: Repaint rate of the live display
            console: Console to render on, defaults to stderr
        """
        self.total_bytes = total_bytes
        self.bytes_processed = 0
        self.current_file = ""
        self.start_time = time.time()
        self._finished = False

        if total_bytes is not None:
            columns = (
                SpinnerColumn(),
                BarColumn(bar_width=16),
                TextColumn("{task.fields[filename]}", style="dim", markup=False),
                DownloadColumn(),
                TextColumn("eta"),
                TimeRemainingColumn(),
            )
        else:
            columns = (
                SpinnerColumn(),
                TextColumn("{task.fields[filename]}", style="dim", markup=False),
            )

        console = console or Console(stderr=True)
        # Live rendering only makes sense on a terminal
        self.enabled = enabled and console.is_terminal

        self._progress = Progress(
            *columns,
            console=console,
            transient=True,
            refresh_per_second=refresh_per_second,
            disable=not self.enabled,
        )
        self._task = self._progress.add_task("unpack", total=total_bytes, filename="")
        if self.enabled:
            self._progress.start()

    def set_file(self, name: str) -> None:
        """Update the displayed current-file label."""
        self.current_file = name
        self._progress.update(self._task, filename=name)

    def advance(self, count: int) -> None:
        """Add ``count`` bytes to the processed counter."""
        self.bytes_processed += count
        self._progress.advance(self._task, count)

    def finish(self) -> None:
        """Stop and clear the live display."""
        if self._finished:
            return
        self._finished = True
        if self.enabled:
            self._progress.stop()

        elapsed_time = time.time() - self.start_time
        logger.debug(
            f"Processed {self.bytes_processed} bytes "
            f"in {format_time(elapsed_time)}"
        )


def format_time(seconds: float) -> str:
    """Format seconds as human-readable time.

    Args:
        seconds: Time in seconds

    Returns:
        Formatted string (e.g., "2h 15m 30s")
    """
    if seconds <= 0:
        return "0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")

    return " ".join(parts)
