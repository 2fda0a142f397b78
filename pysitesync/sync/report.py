"""Statistics and index rebuilding for a publish run."""

from dataclasses import dataclass, field
from typing import Optional

from ..output import OutputFormatter
from ..utils import format_size
from .comparator import Operation, OperationType

# Operation types whose content is present remotely after a successful run
INDEXED_TYPES = (OperationType.UPLOAD, OperationType.UPDATE, OperationType.IGNORE)

# Display order of the plan table
PLAN_ORDER = (
    OperationType.DELETE,
    OperationType.UPDATE,
    OperationType.UPLOAD,
    OperationType.IGNORE,
)


@dataclass
class OperationTally:
    """Count and total size of operations of one type."""

    count: int = 0
    size: int = 0


@dataclass
class SyncResult:
    """Outcome of a publish run."""

    success: int = 0
    """Number of operations that completed"""

    failed: int = 0
    """Number of operations that failed after all retries"""

    elapsed: float = 0.0
    """Execution time in seconds"""

    failures: list[Operation] = field(default_factory=list)
    """Operations that failed"""

    index_saved: Optional[bool] = None
    """Whether the storage index was written (None for dry runs)"""

    plan: dict[OperationType, OperationTally] = field(default_factory=dict)
    """Tally of the executed plan"""

    @property
    def ok(self) -> bool:
        return self.failed == 0


def tally_operations(
    operations: list[Operation],
) -> dict[OperationType, OperationTally]:
    """Count operations and sum their sizes per operation type."""
    tallies = {kind: OperationTally() for kind in OperationType}
    for operation in operations:
        tally = tallies[operation.kind]
        tally.count += 1
        tally.size += operation.size
    return tallies


def build_index(operations: list[Operation]) -> dict[str, str]:
    """Build the storage index reflecting the remote state after a run.

    Only uploads, updates and ignored files that completed are included;
    deletes never are.

    Args:
        operations: Executed operations

    Returns:
        Mapping of storage key to content hash
    """
    return {
        op.storage_key: op.content_hash
        for op in operations
        if op.kind in INDEXED_TYPES and op.succeeded and op.content_hash is not None
    }


def display_plan(
    output: OutputFormatter, tallies: dict[OperationType, OperationTally]
) -> None:
    """Show the number of items and bytes per operation type."""
    rows = [
        (
            kind.value.capitalize(),
            str(tallies[kind].count),
            format_size(tallies[kind].size),
        )
        for kind in PLAN_ORDER
    ]
    output.print_table(("Operation", "Items", "Size"), rows)


def display_summary(output: OutputFormatter, result: SyncResult) -> None:
    """Show the final result and details of failed operations."""
    output.print("")
    if result.failed == 0:
        output.success(
            f"All {result.success} operations completed successfully "
            f"in {result.elapsed:.1f}s."
        )
        return

    output.error(
        f"Successfully completed {result.success} operations, "
        f"{result.failed} failed in {result.elapsed:.1f}s."
    )
    for operation in result.failures:
        output.error(
            f"  {operation.kind.value} {operation.logical_name} "
            f"-> {operation.storage_key} after {operation.attempts} attempt(s): "
            f"{operation.error}"
        )
