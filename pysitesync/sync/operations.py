"""Transfer operations against the remote blob store."""

import io
import logging
import re
from pathlib import Path
from typing import BinaryIO, Callable, Optional

from ..api import BlobStorageClient
from ..utils import (
    DEFAULT_BLOCK_SIZE,
    DEFAULT_BLOCK_THRESHOLD,
    calculate_block_count,
    encode_block_id,
)
from .comparator import Operation, OperationType

logger = logging.getLogger(__name__)

# Metadata entry holding the SHA-256 of the uploaded content
HASH_METADATA_NAME = "x4w_sha256"

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_CACHE_CONTROL = "no-cache, no-store, must-revalidate"

BlockProgressCallback = Callable[[int, int], None]


class TransferOperations:
    """Executes upload, update and delete operations on a container."""

    def __init__(
        self,
        client: BlobStorageClient,
        container: str,
        content_type_map: Optional[dict[str, str]] = None,
        cache_control_rules: Optional[dict[str, str]] = None,
        block_threshold: int = DEFAULT_BLOCK_THRESHOLD,
        block_size: int = DEFAULT_BLOCK_SIZE,
    ):
        """Initialize transfer operations.

        Args:
            client: Blob storage client
            container: Content container receiving the site files
            content_type_map: Extension to MIME type table
            cache_control_rules: Ordered regex to Cache-Control table
            block_threshold: Files larger than this are sent as blocks
            block_size: Size of a single block
        """
        if block_size <= 0:
            raise ValueError("block_size must be positive")

        self.client = client
        self.container = container
        self.content_type_map = dict(content_type_map or {})
        self.cache_control_rules = [
            (re.compile(pattern), directive)
            for pattern, directive in (cache_control_rules or {}).items()
        ]
        self.block_threshold = block_threshold
        self.block_size = block_size

    def resolve_content_type(self, file_name: str) -> str:
        """Look up the MIME type of a file by its extension.

        Examples:
            >>> ops = TransferOperations(None, "$web", {".HTML": "text/html"})
            >>> ops.resolve_content_type("about.html")
            'text/html'
            >>> ops.resolve_content_type("photo.raw")
            'application/octet-stream'
        """
        extension = Path(file_name).suffix.lower()
        for key, content_type in self.content_type_map.items():
            if key.lower() == extension:
                return content_type
        return DEFAULT_CONTENT_TYPE

    def resolve_cache_control(self, logical_name: str) -> str:
        """Return the directive of the first rule matching the logical name."""
        for pattern, directive in self.cache_control_rules:
            if pattern.search(logical_name):
                return directive
        return DEFAULT_CACHE_CONTROL

    def execute(
        self,
        operation: Operation,
        progress_callback: Optional[BlockProgressCallback] = None,
    ) -> bool:
        """Execute a single operation.

        Unclassified and ignored operations are no-ops.

        Args:
            operation: Operation to execute
            progress_callback: Optional callback(current_block, total_blocks)

        Returns:
            True when the operation completed
        """
        if operation.kind in (OperationType.UPLOAD, OperationType.UPDATE):
            self.upload(operation, progress_callback)
        elif operation.kind == OperationType.DELETE:
            self.delete(operation)
        return True

    def upload(
        self,
        operation: Operation,
        progress_callback: Optional[BlockProgressCallback] = None,
    ) -> None:
        """Upload the local file of an operation, overwriting the remote blob."""
        if operation.local_path is None:
            raise ValueError(f"Operation {operation.logical_name} has no local file")

        metadata = {}
        if operation.content_hash:
            metadata[HASH_METADATA_NAME] = operation.content_hash

        logger.debug(f"Uploading {operation.logical_name} -> {operation.storage_key}")
        with open(operation.local_path, "rb") as f:
            size = operation.local_path.stat().st_size
            self.upload_stream(
                f,
                size,
                operation.storage_key,
                content_type=self.resolve_content_type(operation.local_path.name),
                cache_control=self.resolve_cache_control(operation.logical_name),
                metadata=metadata,
                progress_callback=progress_callback,
            )

    def upload_bytes(
        self,
        data: bytes,
        storage_key: str,
        container: Optional[str] = None,
        content_type: Optional[str] = None,
        cache_control: Optional[str] = None,
    ) -> None:
        """Upload in-memory content through the regular transfer path."""
        self.upload_stream(
            io.BytesIO(data),
            len(data),
            storage_key,
            container=container,
            content_type=content_type,
            cache_control=cache_control,
        )

    def upload_stream(
        self,
        stream: BinaryIO,
        size: int,
        storage_key: str,
        container: Optional[str] = None,
        content_type: Optional[str] = None,
        cache_control: Optional[str] = None,
        metadata: Optional[dict[str, str]] = None,
        progress_callback: Optional[BlockProgressCallback] = None,
    ) -> int:
        """Upload a stream as a single request or as a list of blocks.

        Streams up to ``block_threshold`` bytes are sent in one request.
        Larger ones are split into ``block_size`` blocks that are staged
        individually and committed in index order.

        Args:
            stream: Readable binary stream positioned at the start
            size: Number of bytes to upload
            storage_key: Target blob name
            container: Target container (defaults to the content container)
            content_type: Content-Type of the blob
            cache_control: Cache-Control of the blob
            metadata: User metadata of the blob
            progress_callback: Optional callback(current_block, total_blocks)

        Returns:
            Number of blocks uploaded (0 for a single request upload)
        """
        container = container or self.container

        if size <= self.block_threshold:
            self.client.put_blob(
                container,
                storage_key,
                stream,
                length=size,
                content_type=content_type,
                cache_control=cache_control,
                metadata=metadata,
            )
            return 0

        block_count = calculate_block_count(size, self.block_size)
        block_ids: list[str] = []
        for index in range(block_count):
            data = stream.read(self.block_size)
            if not data:
                raise OSError(
                    f"Unexpected end of data in block {index} of '{storage_key}'"
                )
            block_id = encode_block_id(index)
            self.client.put_block(container, storage_key, block_id, data)
            block_ids.append(block_id)
            if progress_callback:
                progress_callback(index + 1, block_count)

        self.client.put_block_list(
            container,
            storage_key,
            block_ids,
            content_type=content_type,
            cache_control=cache_control,
            metadata=metadata,
        )
        logger.debug(f"Committed {block_count} block(s) for {storage_key}")
        return block_count

    def delete(self, operation: Operation) -> bool:
        """Delete the remote blob of an operation.

        Returns:
            True if the blob existed, False if it was already gone
        """
        found = self.client.delete_blob_if_exists(self.container, operation.storage_key)
        if not found:
            logger.debug(f"Blob {operation.storage_key} was already deleted")
        return found
