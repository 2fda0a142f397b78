"""Persistence of the remote storage index.

The storage index maps every blob published by the previous run to the
hash of its content. It is stored as a JSON object in the system container
of the same storage account, so a run never has to list the content
container to find out what is already published.
"""

import json
import logging
from typing import Any

from ..api import BlobStorageClient
from ..exceptions import StorageIndexError
from .operations import TransferOperations

logger = logging.getLogger(__name__)

INDEX_CONTENT_TYPE = "application/json"


def serialize_index(index: dict[str, str]) -> bytes:
    """Serialize a storage index to UTF-8 JSON with sorted keys."""
    return json.dumps(index, sort_keys=True, ensure_ascii=False).encode("utf-8")


def deserialize_index(data: bytes) -> dict[str, str]:
    """Parse a serialized storage index.

    Args:
        data: UTF-8 JSON document (a BOM is tolerated)

    Returns:
        Mapping of storage key to content hash

    Raises:
        StorageIndexError: If the document is not a JSON object of strings
    """
    try:
        parsed: Any = json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StorageIndexError(f"Storage index is not valid JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise StorageIndexError("Storage index must be a JSON object")
    for key, value in parsed.items():
        if not isinstance(value, str):
            raise StorageIndexError(f"Invalid hash for '{key}' in storage index")
    return parsed


class StorageIndexStore:
    """Loads and saves the storage index blob."""

    def __init__(
        self,
        client: BlobStorageClient,
        container: str,
        blob_name: str,
        transfer: TransferOperations,
    ):
        """Initialize index store.

        Args:
            client: Blob storage client
            container: System container holding the index
            blob_name: Name of the index blob
            transfer: Transfer operations used to write the index
        """
        self.client = client
        self.container = container
        self.blob_name = blob_name
        self.transfer = transfer

    def load(self) -> dict[str, str]:
        """Load the index, or an empty one if it was never saved."""
        data = self.client.download_blob(self.container, self.blob_name)
        if data is None:
            logger.debug(f"No storage index at {self.container}/{self.blob_name}")
            return {}

        index = deserialize_index(data)
        logger.debug(f"Loaded storage index with {len(index)} item(s)")
        return index

    def save(self, index: dict[str, str]) -> bool:
        """Replace the stored index.

        Returns:
            True once the index has been written
        """
        self.transfer.upload_bytes(
            serialize_index(index),
            self.blob_name,
            container=self.container,
            content_type=INDEX_CONTENT_TYPE,
        )
        logger.debug(f"Saved storage index with {len(index)} item(s)")
        return True
