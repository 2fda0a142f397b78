"""Directory scanning utilities for publish operations."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from ..exceptions import InvalidFileNameError, StorageKeyCollisionError
from .comparator import Operation, OperationType

logger = logging.getLogger(__name__)


@dataclass
class LocalFile:
    """Represents a local file with metadata."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    size: int
    """File size in bytes"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Base path for calculating relative paths

        Returns:
            LocalFile instance
        """
        # Use as_posix() to ensure forward slashes on all platforms
        relative_path = file_path.relative_to(base_path).as_posix()
        return cls(
            path=file_path,
            relative_path=relative_path,
            size=file_path.stat().st_size,
        )


class DirectoryScanner:
    """Scans the local build output and derives storage keys.

    Examples:
        >>> scanner = DirectoryScanner(
        ...     index_file_name="index.html", remove_extensions=[".html"]
        ... )
        >>> scanner.storage_key_for("about.html")
        'about'
        >>> scanner.storage_key_for("docs/index.html")
        'docs/index.html'
    """

    def __init__(
        self,
        index_file_name: Optional[str] = None,
        remove_extensions: Optional[Iterable[str]] = None,
        convert_to_lowercase: bool = False,
    ):
        """Initialize directory scanner.

        Args:
            index_file_name: Default document name exempt from extension
                stripping (compared case-insensitively)
            remove_extensions: Extensions stripped from storage keys
                (e.g., [".html"])
            convert_to_lowercase: Whether storage keys are lowercased
        """
        self.index_file_name = index_file_name
        self.remove_extensions = {e.lower() for e in (remove_extensions or [])}
        self.convert_to_lowercase = convert_to_lowercase

    def storage_key_for(self, relative_path: str) -> str:
        """Compute the storage key for a root-relative POSIX path."""
        name = relative_path.rsplit("/", 1)[-1]
        suffix = Path(name).suffix
        is_index = (
            self.index_file_name is not None
            and name.lower() == self.index_file_name.lower()
        )

        key = relative_path
        if suffix and not is_index and suffix.lower() in self.remove_extensions:
            key = relative_path[: -len(suffix)]

        if self.convert_to_lowercase:
            key = key.lower()
        return key

    def scan_local(self, directory: Path) -> list[LocalFile]:
        """Recursively scan a local directory.

        Args:
            directory: Directory to scan

        Returns:
            List of LocalFile objects, ordered by relative path
        """
        base_path = directory.resolve()
        files = [
            LocalFile.from_path(item, base_path)
            for item in base_path.rglob("*")
            if item.is_file()
        ]
        files.sort(key=lambda f: f.relative_path)
        logger.debug(f"Found {len(files)} local file(s) in {base_path}")
        return files

    def build_operations(self, directory: Path) -> list[Operation]:
        """Scan a directory and create one unclassified operation per file.

        Args:
            directory: Root of the tree to publish

        Returns:
            List of unclassified operations

        Raises:
            InvalidFileNameError: If a path is not valid UTF-8
            StorageKeyCollisionError: If two files map to the same storage key
        """
        operations = [
            Operation(
                kind=OperationType.UNCLASSIFIED,
                logical_name=local_file.relative_path,
                storage_key=self.storage_key_for(local_file.relative_path),
                local_path=local_file.path,
                size=local_file.size,
            )
            for local_file in self.scan_local(directory)
        ]
        check_file_names(operations)
        check_storage_key_collisions(operations)
        return operations


def check_file_names(operations: list[Operation]) -> None:
    """Reject paths that cannot be sent as UTF-8 blob names.

    Undecodable bytes in POSIX file names surface as lone surrogates.

    Raises:
        InvalidFileNameError: For the first offending path
    """
    for operation in operations:
        try:
            operation.storage_key.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidFileNameError(
                operation.logical_name, "the name is not valid UTF-8"
            ) from e


def check_storage_key_collisions(operations: list[Operation]) -> None:
    """Reject operations whose storage keys are not unique.

    Raises:
        StorageKeyCollisionError: For the first colliding storage key
    """
    names_by_key: dict[str, list[str]] = defaultdict(list)
    for operation in operations:
        names_by_key[operation.storage_key].append(operation.logical_name)

    for storage_key, names in names_by_key.items():
        if len(names) > 1:
            raise StorageKeyCollisionError(storage_key, sorted(names))
