"""Progress events emitted by the sync engine.

The engine never renders anything itself; it reports events to a
:class:`SyncProgressTracker`, and the CLI decides how to display them.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .comparator import Operation


class SyncProgressEvent(str, Enum):
    """Kinds of progress events."""

    RUN_START = "run_start"
    OPERATION_START = "operation_start"
    BLOCK_PROGRESS = "block_progress"
    OPERATION_RETRY = "operation_retry"
    OPERATION_COMPLETE = "operation_complete"
    RUN_COMPLETE = "run_complete"


@dataclass
class SyncProgressInfo:
    """Snapshot passed to the progress callback."""

    event: SyncProgressEvent
    operations_total: int
    operations_done: int
    operation: Optional[Operation] = None
    block: int = 0
    blocks_total: int = 0
    attempt: int = 0
    success: Optional[bool] = None
    message: Optional[str] = None


class SyncProgressTracker:
    """Counts completed operations and forwards events to a callback."""

    def __init__(self, callback: Optional[Callable[[SyncProgressInfo], None]] = None):
        self.callback = callback
        self.operations_total = 0
        self.operations_done = 0
        self._lock = threading.Lock()

    def _emit(self, event: SyncProgressEvent, **kwargs) -> None:
        if self.callback is None:
            return
        self.callback(
            SyncProgressInfo(
                event=event,
                operations_total=self.operations_total,
                operations_done=self.operations_done,
                **kwargs,
            )
        )

    def on_run_start(self, operations_total: int) -> None:
        self.operations_total = operations_total
        self.operations_done = 0
        self._emit(SyncProgressEvent.RUN_START)

    def on_operation_start(self, operation: Operation) -> None:
        self._emit(SyncProgressEvent.OPERATION_START, operation=operation)

    def on_block_progress(self, operation: Operation, current: int, total: int) -> None:
        self._emit(
            SyncProgressEvent.BLOCK_PROGRESS,
            operation=operation,
            block=current,
            blocks_total=total,
        )

    def on_retry(self, operation: Operation, attempt: int, error: str) -> None:
        self._emit(
            SyncProgressEvent.OPERATION_RETRY,
            operation=operation,
            attempt=attempt,
            message=error,
        )

    def on_operation_complete(self, operation: Operation) -> None:
        with self._lock:
            self.operations_done += 1
        self._emit(
            SyncProgressEvent.OPERATION_COMPLETE,
            operation=operation,
            attempt=operation.attempts,
            success=operation.succeeded,
            message=operation.error,
        )

    def on_run_complete(self) -> None:
        self._emit(SyncProgressEvent.RUN_COMPLETE)
