"""Reconciliation of the local tree against the remote storage index."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from ..utils import compute_file_hash, hashes_equal

logger = logging.getLogger(__name__)


class OperationType(str, Enum):
    """Actions that can be taken against the remote store."""

    UNCLASSIFIED = "unclassified"
    """Local file not yet compared with the remote index"""

    IGNORE = "ignore"
    """Remote content is up to date"""

    UPLOAD = "upload"
    """Local file is not in the remote index"""

    UPDATE = "update"
    """Local file differs from the indexed remote content"""

    DELETE = "delete"
    """Remote blob has no local counterpart"""


@dataclass
class Operation:
    """One intended action against the remote store."""

    kind: OperationType
    """Action to take"""

    logical_name: str
    """Root-relative path with forward slashes; identity of the entry"""

    storage_key: str
    """Blob name in the content container"""

    local_path: Optional[Path] = None
    """Absolute local path (None for deletes)"""

    content_hash: Optional[str] = None
    """Hex SHA-256 of the local content, computed lazily"""

    size: int = 0
    """Size of the local file in bytes (0 for deletes)"""

    succeeded: Optional[bool] = None
    """Execution outcome (None until executed)"""

    attempts: int = 0
    """Number of attempts spent by the executor"""

    error: Optional[str] = None
    """Last error message, if any attempt failed"""

    @property
    def failed(self) -> bool:
        return self.succeeded is False


class Reconciler:
    """Classifies local files against the remote index.

    Hashes are only computed for files that are compared with an index entry
    or that are about to be uploaded, never for remote-only entries.
    """

    def __init__(self, hasher: Optional[Callable[[Path], str]] = None):
        """Initialize reconciler.

        Args:
            hasher: Function computing the content hash of a local file
                (defaults to streaming SHA-256)
        """
        self.hasher = hasher or compute_file_hash

    def _hash(self, operation: Operation) -> str:
        if operation.local_path is None:
            raise ValueError(f"Operation {operation.logical_name} has no local file")
        operation.content_hash = self.hasher(operation.local_path)
        return operation.content_hash

    def reconcile(
        self,
        operations: list[Operation],
        remote_index: dict[str, str],
    ) -> list[Operation]:
        """Assign an operation type to every entry.

        Local operations are updated in place; a delete operation is appended
        for every index entry without a local file.

        Args:
            operations: Unclassified operations from the local scan
            remote_index: Storage key to content hash mapping of the last run

        Returns:
            The same list, classified and extended with deletes

        Raises:
            OSError: If a local file cannot be read for hashing
        """
        by_storage_key = {op.storage_key: op for op in operations}

        for storage_key, remote_hash in remote_index.items():
            operation = by_storage_key.get(storage_key)

            if operation is None:
                operations.append(
                    Operation(
                        kind=OperationType.DELETE,
                        logical_name=storage_key,
                        storage_key=storage_key,
                    )
                )
                continue

            local_hash = self._hash(operation)
            if hashes_equal(local_hash, remote_hash):
                operation.kind = OperationType.IGNORE
            else:
                operation.kind = OperationType.UPDATE
                logger.debug(f"Changed: {operation.logical_name}")

        for operation in operations:
            if operation.kind == OperationType.UNCLASSIFIED:
                operation.kind = OperationType.UPLOAD
                self._hash(operation)

        return operations
