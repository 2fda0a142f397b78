"""Sync engine for pysitesync - index, diff, transfer and retry."""

from .comparator import Operation, OperationType, Reconciler
from .engine import SyncEngine
from .operations import TransferOperations
from .progress import SyncProgressEvent, SyncProgressInfo, SyncProgressTracker
from .report import SyncResult, build_index, tally_operations
from .retry import RetryOutcome, run_with_retry
from .scanner import DirectoryScanner, LocalFile
from .state import StorageIndexStore, deserialize_index, serialize_index

__all__ = [
    "SyncEngine",
    "Operation",
    "OperationType",
    "Reconciler",
    "TransferOperations",
    "DirectoryScanner",
    "LocalFile",
    "StorageIndexStore",
    "serialize_index",
    "deserialize_index",
    "SyncResult",
    "build_index",
    "tally_operations",
    "RetryOutcome",
    "run_with_retry",
    "SyncProgressEvent",
    "SyncProgressInfo",
    "SyncProgressTracker",
]
