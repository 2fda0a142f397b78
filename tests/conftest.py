"""Shared fixtures for pysitesync tests."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pytest

from pysitesync.config import JobConfiguration
from pysitesync.exceptions import StorageUploadError


@dataclass
class FakeBlob:
    """A blob held by FakeBlobStorage."""

    data: bytes
    content_type: Optional[str] = None
    cache_control: Optional[str] = None
    metadata: dict = field(default_factory=dict)


class FakeBlobStorage:
    """In-memory stand-in for BlobStorageClient.

    ``fail_next`` maps a blob name to the number of upcoming writes or
    deletes of that blob that should fail. ``fail_error`` optionally names the
    exception raised for a blob instead of ``StorageUploadError``.
    """

    def __init__(self, containers=("$web",)):
        self.containers = set(containers)
        self.blobs: dict[tuple[str, str], FakeBlob] = {}
        self.staged: dict[tuple[str, str], dict[str, bytes]] = {}
        self.committed_block_lists: dict[tuple[str, str], list[str]] = {}
        self.fail_next: dict[str, int] = {}
        self.fail_error: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []

    def _maybe_fail(self, blob: str) -> None:
        remaining = self.fail_next.get(blob, 0)
        if remaining > 0:
            self.fail_next[blob] = remaining - 1
            raise self.fail_error.get(
                blob, StorageUploadError(f"Injected failure for {blob}")
            )

    def container_exists(self, container):
        return container in self.containers

    def create_container_if_not_exists(self, container):
        if container in self.containers:
            return False
        self.containers.add(container)
        return True

    def download_blob(self, container, blob):
        stored = self.blobs.get((container, blob))
        return None if stored is None else stored.data

    def put_blob(
        self,
        container,
        blob,
        content,
        length=None,
        content_type=None,
        cache_control=None,
        metadata=None,
    ):
        self.calls.append(("put_blob", blob))
        self._maybe_fail(blob)
        data = content if isinstance(content, bytes) else content.read()
        self.blobs[(container, blob)] = FakeBlob(
            data, content_type, cache_control, dict(metadata or {})
        )

    def put_block(self, container, blob, block_id, data):
        self.calls.append(("put_block", blob))
        self.staged.setdefault((container, blob), {})[block_id] = data

    def put_block_list(
        self,
        container,
        blob,
        block_ids,
        content_type=None,
        cache_control=None,
        metadata=None,
    ):
        self.calls.append(("put_block_list", blob))
        self._maybe_fail(blob)
        staged = self.staged.pop((container, blob), {})
        data = b"".join(staged[block_id] for block_id in block_ids)
        self.committed_block_lists[(container, blob)] = list(block_ids)
        self.blobs[(container, blob)] = FakeBlob(
            data, content_type, cache_control, dict(metadata or {})
        )

    def delete_blob_if_exists(self, container, blob):
        self.calls.append(("delete", blob))
        self._maybe_fail(blob)
        return self.blobs.pop((container, blob), None) is not None

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


@pytest.fixture
def storage():
    """Provide an empty fake blob storage with a content container."""
    return FakeBlobStorage()


@pytest.fixture
def site_dir(tmp_path):
    """Provide an empty local site directory."""
    directory = tmp_path / "site"
    directory.mkdir()
    return directory


def write_file(root: Path, relative_path: str, content: bytes = b"content") -> Path:
    """Create a file (and its parents) below root."""
    path = root / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


@pytest.fixture
def make_file(site_dir):
    """Return a helper creating files inside site_dir."""

    def factory(relative_path: str, content: bytes = b"content") -> Path:
        return write_file(site_dir, relative_path, content)

    return factory


@pytest.fixture
def make_config(site_dir):
    """Return a factory for job configurations pointing at site_dir."""

    def factory(**overrides) -> JobConfiguration:
        values = {
            "storage_connection": "UseDevelopmentStorage=true",
            "folder_name": site_dir,
            "retry_count": 3,
            "retry_wait_milliseconds": 0,
        }
        values.update(overrides)
        return JobConfiguration(**values)

    return factory
