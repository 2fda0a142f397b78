"""API client for Azure Blob Storage."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, BinaryIO, Union

from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.storage.blob import BlobBlock, BlobServiceClient, ContentSettings

from .exceptions import (
    SiteSyncConfigError,
    StorageAuthenticationError,
    StorageError,
    StorageNetworkError,
    StorageNotFoundError,
    StorageUploadError,
)

logger = logging.getLogger(__name__)

# Well-known account of the local storage emulator (Azurite)
DEV_ACCOUNT_NAME = "devstoreaccount1"
DEV_CONNECTION_STRING = (
    "DefaultEndpointsProtocol=http;"
    f"AccountName={DEV_ACCOUNT_NAME};"
    "AccountKey=Eby8vdM02xNOcqFlqUwJPLlmEtlCDXJ1OUzFT50uSRZ6IFsuFq2UVErCz4I6tq/"
    "K1SZFPTOtr/KBHBeksoGMGw==;"
    f"BlobEndpoint=http://127.0.0.1:10000/{DEV_ACCOUNT_NAME};"
)

BlobContent = Union[bytes, BinaryIO]


def expand_connection_string(connection_string: str) -> str:
    """Replace the ``UseDevelopmentStorage=true`` shortcut by the emulator account.

    Examples:
        >>> expand_connection_string("UseDevelopmentStorage=true") == (
        ...     DEV_CONNECTION_STRING
        ... )
        True
    """
    settings = {
        name.strip().lower(): value.strip()
        for name, _, value in (
            segment.partition("=") for segment in connection_string.split(";")
        )
    }
    if settings.get("usedevelopmentstorage", "").lower() == "true":
        return DEV_CONNECTION_STRING
    return connection_string


@contextmanager
def storage_errors(
    description: str, error_class: type[StorageError] = StorageError
) -> Iterator[None]:
    """Translate Azure SDK exceptions into the ``StorageError`` family.

    Authentication and network failures keep their own types; everything
    else is raised as ``error_class``.
    """
    try:
        yield
    except ClientAuthenticationError as e:
        raise StorageAuthenticationError(
            f"{description}: access denied ({e.message})"
        ) from e
    except ResourceNotFoundError as e:
        raise StorageNotFoundError(f"{description}: not found ({e.message})") from e
    except (ServiceRequestError, ServiceResponseError) as e:
        raise StorageNetworkError(f"{description}: network error ({e.message})") from e
    except HttpResponseError as e:
        if e.status_code in (401, 403):
            raise StorageAuthenticationError(
                f"{description}: access denied ({e.message})"
            ) from e
        raise error_class(f"{description} failed: {e.message}") from e
    except AzureError as e:
        raise error_class(f"{description} failed: {e.message}") from e


class BlobStorageClient:
    """Thin wrapper over ``BlobServiceClient`` used by the sync engine.

    Every method works on a container and blob name and raises
    ``StorageError`` subclasses instead of SDK exceptions.
    """

    def __init__(self, service: BlobServiceClient):
        """Initialize blob storage client.

        Args:
            service: Azure SDK service client (a mock in tests)
        """
        self.service = service

    @classmethod
    def from_connection_string(
        cls, connection_string: str, **kwargs: Any
    ) -> BlobStorageClient:
        """Create a client from an Azure storage connection string.

        Raises:
            SiteSyncConfigError: If the connection string cannot be parsed
        """
        if not connection_string or not connection_string.strip():
            raise SiteSyncConfigError("Storage connection string is empty")
        try:
            service = BlobServiceClient.from_connection_string(
                expand_connection_string(connection_string), **kwargs
            )
        except ValueError as e:
            raise SiteSyncConfigError(f"Invalid storage connection string: {e}") from e
        logger.debug(f"Connected to storage account {service.account_name}")
        return cls(service)

    def close(self) -> None:
        """Close the underlying service client."""
        self.service.close()

    def __enter__(self) -> BlobStorageClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def url_for(self, container: str, blob: str | None = None) -> str:
        """Return the URL of a container or blob."""
        if blob is None:
            return self.service.get_container_client(container).url
        return self.service.get_blob_client(container, blob).url

    # =========================
    # Container Operations
    # =========================

    def container_exists(self, container: str) -> bool:
        """Check whether a container exists."""
        with storage_errors(f"Checking container {container}"):
            return self.service.get_container_client(container).exists()

    def create_container_if_not_exists(self, container: str) -> bool:
        """Create a private container unless it already exists.

        Returns:
            True if the container was created, False if it already existed
        """
        with storage_errors(f"Creating container {container}"):
            try:
                self.service.create_container(container)
            except ResourceExistsError:
                return False
        return True

    # =========================
    # Blob Operations
    # =========================

    def download_blob(self, container: str, blob: str) -> bytes | None:
        """Download blob content.

        Returns:
            Blob content, or None if the blob does not exist
        """
        blob_client = self.service.get_blob_client(container, blob)
        with storage_errors(f"Downloading {container}/{blob}"):
            try:
                return blob_client.download_blob().readall()
            except ResourceNotFoundError:
                return None

    def put_blob(
        self,
        container: str,
        blob: str,
        content: BlobContent,
        length: int | None = None,
        content_type: str | None = None,
        cache_control: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> None:
        """Upload a block blob in a single request, replacing any existing blob.

        Args:
            container: Container name
            blob: Blob name
            content: Bytes or a readable binary stream
            length: Stream length in bytes (required for streams)
            content_type: Value for the blob's Content-Type property
            cache_control: Value for the blob's Cache-Control property
            metadata: User metadata stored with the blob
        """
        if isinstance(content, bytes):
            length = len(content)
        elif length is None:
            raise ValueError("length is required when content is a stream")

        blob_client = self.service.get_blob_client(container, blob)
        with storage_errors(f"Upload of '{blob}'", StorageUploadError):
            blob_client.upload_blob(
                content,
                length=length,
                overwrite=True,
                content_settings=ContentSettings(
                    content_type=content_type, cache_control=cache_control
                ),
                metadata=metadata,
            )

    def put_block(self, container: str, blob: str, block_id: str, data: bytes) -> None:
        """Stage a single uncommitted block of a block blob."""
        blob_client = self.service.get_blob_client(container, blob)
        with storage_errors(
            f"Upload of block {block_id} of '{blob}'", StorageUploadError
        ):
            blob_client.stage_block(block_id, data, length=len(data))

    def put_block_list(
        self,
        container: str,
        blob: str,
        block_ids: list[str],
        content_type: str | None = None,
        cache_control: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> None:
        """Commit staged blocks, in the given order, as the blob content."""
        blob_client = self.service.get_blob_client(container, blob)
        with storage_errors(f"Commit of '{blob}'", StorageUploadError):
            blob_client.commit_block_list(
                [BlobBlock(block_id=block_id) for block_id in block_ids],
                content_settings=ContentSettings(
                    content_type=content_type, cache_control=cache_control
                ),
                metadata=metadata,
            )

    def delete_blob_if_exists(self, container: str, blob: str) -> bool:
        """Delete a blob.

        Returns:
            True if the blob was deleted, False if it did not exist
        """
        blob_client = self.service.get_blob_client(container, blob)
        with storage_errors(f"Deleting {container}/{blob}"):
            try:
                blob_client.delete_blob()
            except ResourceNotFoundError:
                return False
        return True
