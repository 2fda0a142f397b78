"""Utility functions for pysitesync."""

import base64
import hashlib
import math
import struct
from pathlib import Path
from typing import BinaryIO, Union

# =============================================================================
# Constants for file operations
# =============================================================================

MEGABYTE: int = 1024 * 1024

# Files above this size are uploaded as a list of blocks (32 MB)
DEFAULT_BLOCK_THRESHOLD: int = 32 * MEGABYTE

# Size of a single block in a chunked upload (4 MB)
DEFAULT_BLOCK_SIZE: int = 4 * MEGABYTE

# Read buffer used while hashing file content (64 KB)
HASH_BUFFER_SIZE: int = 64 * 1024

# Retry configuration for failed operations
DEFAULT_RETRY_COUNT: int = 3
DEFAULT_RETRY_WAIT_MILLISECONDS: int = 500


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# Hash calculation utilities
# =============================================================================


def hash_stream(stream: BinaryIO, buffer_size: int = HASH_BUFFER_SIZE) -> str:
    """Compute the SHA-256 digest of a binary stream.

    The stream is consumed in fixed-size buffers until EOF, so arbitrarily
    large inputs are hashed in constant memory.

    Args:
        stream: Readable binary stream
        buffer_size: Number of bytes read per iteration

    Returns:
        Lowercase hex-encoded digest

    Examples:
        >>> import io
        >>> hash_stream(io.BytesIO(b""))[:16]
        'e3b0c44298fc1c14'
    """
    digest = hashlib.sha256()
    while True:
        buffer = stream.read(buffer_size)
        if not buffer:
            break
        digest.update(buffer)
    return digest.hexdigest()


def compute_file_hash(
    file_path: Union[str, Path], buffer_size: int = HASH_BUFFER_SIZE
) -> str:
    """Compute the SHA-256 digest of a file's content.

    Args:
        file_path: Path to the file
        buffer_size: Number of bytes read per iteration

    Returns:
        Lowercase hex-encoded digest

    Raises:
        OSError: If the file cannot be opened or read
    """
    with open(file_path, "rb") as f:
        return hash_stream(f, buffer_size)


def hashes_equal(first: str, second: str) -> bool:
    """Compare two hex digests ignoring case."""
    return first.casefold() == second.casefold()


# =============================================================================
# Block upload utilities
# =============================================================================


def calculate_block_count(size: int, block_size: int = DEFAULT_BLOCK_SIZE) -> int:
    """Return the number of blocks needed to transfer ``size`` bytes.

    Examples:
        >>> calculate_block_count(10 * 1024 * 1024, 4 * 1024 * 1024)
        3
        >>> calculate_block_count(0)
        0
    """
    return math.ceil(size / block_size)


def encode_block_id(index: int) -> str:
    """Encode a sequential block index as a blob block id.

    The id is the base64 form of the index as a little-endian 32-bit
    integer, so every id of a blob has the same length.

    Examples:
        >>> encode_block_id(0)
        'AAAAAA=='
        >>> encode_block_id(1)
        'AQAAAA=='
    """
    return base64.b64encode(struct.pack("<i", index)).decode("ascii")

