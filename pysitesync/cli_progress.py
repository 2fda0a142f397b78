"""CLI progress display for publish runs.

This module provides a Rich-based progress display that works with
the SyncProgressTracker from the sync engine.
"""

import threading
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

from .sync.progress import SyncProgressEvent, SyncProgressInfo, SyncProgressTracker


class SyncProgressDisplay:
    """Rich-based progress display for publish runs.

    Shows one bar counting finished operations and, for every large file
    currently sent in blocks, a bar counting its blocks. Block bars are keyed
    by storage key, so parallel uploads each keep their own.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        """Initialize the progress display.

        Args:
            console: Console shared with other output (default console if None)
        """
        self._console = console
        self._progress: Optional[Progress] = None
        self._run_task: Optional[TaskID] = None
        self._block_tasks: dict[str, TaskID] = {}
        self._lock = threading.Lock()

    def create_tracker(self) -> SyncProgressTracker:
        """Create a SyncProgressTracker that updates this display.

        Returns:
            A configured SyncProgressTracker
        """
        return SyncProgressTracker(callback=self._handle_event)

    def _handle_event(self, info: SyncProgressInfo) -> None:
        """Handle a progress event from the tracker.

        Args:
            info: Progress information
        """
        if self._progress is None or self._run_task is None:
            return

        operation = info.operation

        if info.event == SyncProgressEvent.RUN_START:
            self._progress.update(
                self._run_task,
                description="Publishing",
                total=info.operations_total,
                completed=0,
            )

        elif info.event == SyncProgressEvent.OPERATION_START and operation:
            self._progress.update(
                self._run_task,
                description=f"{operation.kind.value.capitalize()} "
                f"{operation.logical_name}",
            )

        elif info.event == SyncProgressEvent.BLOCK_PROGRESS and operation:
            with self._lock:
                task = self._block_tasks.get(operation.storage_key)
                if task is None:
                    task = self._progress.add_task(
                        f"  blocks of {operation.logical_name}",
                        total=info.blocks_total,
                    )
                    self._block_tasks[operation.storage_key] = task
            self._progress.update(task, completed=info.block, total=info.blocks_total)

        elif info.event == SyncProgressEvent.OPERATION_RETRY and operation:
            self._progress.console.print(
                f"[yellow]Retrying[/yellow] {operation.logical_name} "
                f"(attempt {info.attempt} failed: {info.message})"
            )
            self._remove_block_task(operation.storage_key)

        elif info.event == SyncProgressEvent.OPERATION_COMPLETE:
            if operation:
                self._remove_block_task(operation.storage_key)
            self._progress.update(self._run_task, completed=info.operations_done)

        elif info.event == SyncProgressEvent.RUN_COMPLETE:
            self._progress.update(self._run_task, description="Publish complete")

    def _remove_block_task(self, storage_key: str) -> None:
        with self._lock:
            task = self._block_tasks.pop(storage_key, None)
        if self._progress is not None and task is not None:
            self._progress.remove_task(task)

    def __enter__(self) -> "SyncProgressDisplay":
        """Enter context manager - start progress display."""
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self._console,
            refresh_per_second=4,
        )
        self._progress.__enter__()
        self._run_task = self._progress.add_task("Preparing...", total=None)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None
            self._run_task = None
            self._block_tasks.clear()
