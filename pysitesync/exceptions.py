"""Exceptions raised by pysitesync."""


class SiteSyncError(Exception):
    """Base exception for all pysitesync errors."""


class SiteSyncConfigError(SiteSyncError):
    """Raised when the job configuration or connection string is invalid."""


class StorageError(SiteSyncError):
    """Base exception for remote storage failures."""


class StorageAuthenticationError(StorageError):
    """Raised when the storage service rejects the credentials."""


class StorageNotFoundError(StorageError):
    """Raised when a container or blob does not exist."""


class StorageNetworkError(StorageError):
    """Raised on transport-level failures (DNS, connection, timeout)."""


class StorageUploadError(StorageError):
    """Raised when a blob or block transfer fails."""


class StorageIndexError(StorageError):
    """Raised when the remote storage index cannot be parsed."""


class StorageKeyCollisionError(SiteSyncError):
    """Raised when two local files map to the same storage key."""

    def __init__(self, storage_key: str, logical_names: list[str]):
        self.storage_key = storage_key
        self.logical_names = logical_names
        names = ", ".join(logical_names)
        super().__init__(
            f"Storage key '{storage_key}' is produced by more than one file: {names}"
        )


class InvalidFileNameError(SiteSyncError):
    """Raised when a local file name cannot be used as a blob name."""

    def __init__(self, relative_path: str, reason: str):
        self.relative_path = relative_path
        printable = relative_path.encode("utf-8", "backslashreplace").decode("utf-8")
        super().__init__(f"Cannot publish '{printable}': {reason}")
