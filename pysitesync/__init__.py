"""pysitesync - publish a static site build to Azure Blob Storage."""

from .api import BlobStorageClient
from .config import JobConfiguration
from .exceptions import (
    SiteSyncConfigError,
    SiteSyncError,
    StorageAuthenticationError,
    StorageError,
    InvalidFileNameError,
    StorageIndexError,
    StorageKeyCollisionError,
    StorageNetworkError,
    StorageNotFoundError,
    StorageUploadError,
)
from .utils import compute_file_hash, encode_block_id

__version__ = "0.1.0"

__all__ = [
    "BlobStorageClient",
    "JobConfiguration",
    "SiteSyncError",
    "SiteSyncConfigError",
    "InvalidFileNameError",
    "StorageError",
    "StorageAuthenticationError",
    "StorageIndexError",
    "StorageKeyCollisionError",
    "StorageNetworkError",
    "StorageNotFoundError",
    "StorageUploadError",
    "compute_file_hash",
    "encode_block_id",
]
