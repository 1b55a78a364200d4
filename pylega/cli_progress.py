"""CLI progress display for push operations.

This module provides a Rich-based progress bar driven by the
TransferProgressInfo events a TransferSession emits.
"""

from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from .mirror.progress import TransferEvent, TransferProgressInfo
from .utils import format_size


class TransferProgressDisplay:
    """Rich progress bar for a transfer session.

    The bar is only started once the session begins uploading, so it never
    overlaps the confirmation prompt. Use it as a context manager and pass
    :meth:`handle_event` as the session's progress callback.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        """Initialize the progress display.

        Args:
            console: Console to render on (defaults to a new stdout console)
        """
        self._console = console
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def _start(self, total: int) -> None:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self._console,
            transient=False,
        )
        self._progress.start()
        self._task = self._progress.add_task("Uploading...", total=total)

    def _stop(self, description: Optional[str] = None) -> None:
        if self._progress is None:
            return
        if description and self._task is not None:
            self._progress.update(self._task, description=description)
        self._progress.stop()
        self._progress = None
        self._task = None

    def handle_event(self, info: TransferProgressInfo) -> None:
        """Update the display for one session event."""
        if info.event == TransferEvent.SESSION_START:
            self._start(info.total_items)
            return

        if self._progress is None or self._task is None:
            return

        if info.event == TransferEvent.ITEM_START and info.item is not None:
            try:
                size = format_size(info.item.local_path.stat().st_size)
            except OSError:
                size = "?"
            self._progress.update(
                self._task,
                description=f"Uploading {info.item.local_path.name} ({size})",
            )
        elif info.event == TransferEvent.ITEM_COMPLETE:
            self._progress.update(self._task, completed=info.completed_items)
        elif info.event == TransferEvent.ITEM_ERROR:
            self._stop("Upload failed")
        elif info.event == TransferEvent.SESSION_COMPLETE:
            self._stop("Upload complete")

    def __enter__(self) -> "TransferProgressDisplay":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Stop the display if the session ended without a final event."""
        self._stop()
