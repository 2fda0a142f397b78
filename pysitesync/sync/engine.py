"""Core sync engine for publishing a local directory to blob storage."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional

from ..api import BlobStorageClient
from ..config import JobConfiguration
from ..exceptions import SiteSyncConfigError, StorageNotFoundError
from ..output import OutputFormatter
from ..utils import format_size
from .comparator import Operation, OperationType, Reconciler
from .operations import TransferOperations
from .progress import SyncProgressTracker
from .report import (
    SyncResult,
    build_index,
    display_plan,
    display_summary,
    tally_operations,
)
from .retry import run_with_retry
from .scanner import DirectoryScanner
from .state import StorageIndexStore

logger = logging.getLogger(__name__)


class SyncEngine:
    """Orchestrates indexing, reconciliation, transfer and index persistence."""

    def __init__(
        self,
        client: BlobStorageClient,
        config: JobConfiguration,
        output: Optional[OutputFormatter] = None,
        progress_tracker: Optional[SyncProgressTracker] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize sync engine.

        Args:
            client: Blob storage client
            config: Job configuration
            output: Output formatter for displaying progress/status
            progress_tracker: Optional receiver of progress events
            sleep: Sleep function used between retries
        """
        self.client = client
        self.config = config
        self.output = output or OutputFormatter()
        self.progress = progress_tracker or SyncProgressTracker()
        self.sleep = sleep

        self.scanner = DirectoryScanner(
            index_file_name=config.index_file_name,
            remove_extensions=config.remove_extensions,
            convert_to_lowercase=config.convert_to_lowercase,
        )
        self.reconciler = Reconciler()
        self.transfer = TransferOperations(
            client,
            config.content_container,
            content_type_map=config.content_type_map,
            cache_control_rules=config.cache_control_rules,
        )
        self.index_store = StorageIndexStore(
            client,
            config.system_container,
            config.index_blob_name,
            self.transfer,
        )

    def prepare_storage(self, dry_run: bool = False) -> None:
        """Check the content container and ensure the system container exists.

        A dry run only checks; the system container is left untouched.

        Raises:
            StorageNotFoundError: If the content container does not exist
        """
        container = self.config.content_container
        if not self.client.container_exists(container):
            raise StorageNotFoundError(f"The {container} container was not found")
        if dry_run:
            return
        if self.client.create_container_if_not_exists(self.config.system_container):
            logger.debug(f"Created container {self.config.system_container}")

    def plan(self) -> list[Operation]:
        """Index local files, load the remote index and classify everything.

        Returns:
            Classified operations

        Raises:
            SiteSyncConfigError: If the local folder is missing
            StorageKeyCollisionError: If two files share a storage key
            OSError: If a local file cannot be hashed
        """
        folder = self.config.folder_name
        if not folder.exists():
            raise SiteSyncConfigError(f"Local directory does not exist: {folder}")
        if not folder.is_dir():
            raise SiteSyncConfigError(f"Local path is not a directory: {folder}")

        scan_start = time.time()
        operations = self.scanner.build_operations(folder)
        total_size = sum(op.size for op in operations)
        self.output.info(
            f"Indexed {len(operations)} local file(s), {format_size(total_size)}"
        )
        logger.debug(f"Local scan took {time.time() - scan_start:.2f}s")

        remote_index = self.index_store.load()
        self.output.info(f"Loaded storage index, {len(remote_index)} item(s)")

        return self.reconciler.reconcile(operations, remote_index)

    def run(self, dry_run: bool = False) -> SyncResult:
        """Publish the configured folder.

        Args:
            dry_run: If True, only show what would be done

        Returns:
            SyncResult with success/failure counts
        """
        self.prepare_storage(dry_run)
        operations = self.plan()

        tallies = tally_operations(operations)
        display_plan(self.output, tallies)

        if dry_run:
            self._display_dry_run(operations)
            return SyncResult(plan=tallies)

        result = self.execute(operations)
        result.plan = tallies

        index_operation = self.save_index(operations)
        result.index_saved = bool(index_operation.succeeded)
        if index_operation.succeeded:
            result.success += 1
        else:
            result.failed += 1
            result.failures.append(index_operation)

        display_summary(self.output, result)
        return result

    def execute(self, operations: list[Operation]) -> SyncResult:
        """Execute operations, retrying each one independently.

        A failed operation never stops the remaining ones.

        Args:
            operations: Classified operations

        Returns:
            SyncResult with success/failure counts and elapsed time
        """
        start = time.time()
        actionable = []
        for operation in operations:
            if operation.kind in (OperationType.UNCLASSIFIED, OperationType.IGNORE):
                operation.succeeded = True
            else:
                actionable.append(operation)

        self.progress.on_run_start(len(actionable))
        max_workers = self.config.max_workers
        if max_workers > 1 and len(actionable) > 1:
            logger.debug(
                f"Executing {len(actionable)} operations with {max_workers} workers"
            )
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                futures = [
                    executor.submit(self.run_operation, operation)
                    for operation in actionable
                ]
                for future in as_completed(futures):
                    future.result()
        else:
            for operation in actionable:
                self.run_operation(operation)
        self.progress.on_run_complete()

        failures = [op for op in operations if op.failed]
        return SyncResult(
            success=len(operations) - len(failures),
            failed=len(failures),
            elapsed=time.time() - start,
            failures=failures,
        )

    def run_operation(self, operation: Operation) -> bool:
        """Execute a single operation with retries and record the outcome."""
        self.progress.on_operation_start(operation)
        action_start = time.time()

        outcome = run_with_retry(
            lambda: self.transfer.execute(
                operation,
                lambda current, total: self.progress.on_block_progress(
                    operation, current, total
                ),
            ),
            retry_count=self.config.retry_count,
            wait_seconds=self.config.retry_wait_milliseconds / 1000,
            on_retry=lambda attempt, error: self._report_retry(
                operation, attempt, error
            ),
            sleep=self.sleep,
        )

        operation.succeeded = outcome.success
        operation.attempts = outcome.attempts
        operation.error = outcome.error
        if not outcome.success:
            self.output.error(
                f"Failed to {operation.kind.value} {operation.logical_name}: "
                f"{outcome.error}"
            )
        logger.debug(
            f"{operation.kind.value} of {operation.logical_name} took "
            f"{time.time() - action_start:.2f}s ({outcome.attempts} attempt(s))"
        )

        self.progress.on_operation_complete(operation)
        return outcome.success

    def _report_retry(self, operation: Operation, attempt: int, error: str) -> None:
        logger.debug(f"Retrying {operation.logical_name} after: {error}")
        self.progress.on_retry(operation, attempt, error)

    def save_index(self, operations: list[Operation]) -> Operation:
        """Persist the storage index built from completed operations.

        The save is retried like any other operation.

        Returns:
            Operation describing the index upload and its outcome
        """
        index = build_index(operations)
        blob_name = self.config.index_blob_name
        index_operation = Operation(
            kind=OperationType.UPLOAD,
            logical_name=blob_name,
            storage_key=f"{self.config.system_container}/{blob_name}",
        )

        outcome = run_with_retry(
            lambda: self.index_store.save(index),
            retry_count=self.config.retry_count,
            wait_seconds=self.config.retry_wait_milliseconds / 1000,
            sleep=self.sleep,
        )
        index_operation.succeeded = outcome.success
        index_operation.attempts = outcome.attempts
        index_operation.error = outcome.error

        if outcome.success:
            self.output.info(f"Saved storage index, {len(index)} item(s)")
        else:
            self.output.error(f"Failed to save storage index: {outcome.error}")
        return index_operation

    def _display_dry_run(self, operations: list[Operation]) -> None:
        self.output.info("Dry run: no changes were made")
        for operation in operations:
            if operation.kind == OperationType.IGNORE:
                continue
            if operation.storage_key != operation.logical_name:
                self.output.info(
                    f"  {operation.kind.value:<7} {operation.logical_name} "
                    f"-> {operation.storage_key}"
                )
            else:
                self.output.info(
                    f"  {operation.kind.value:<7} {operation.logical_name}"
                )
