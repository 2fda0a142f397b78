"""Unit tests for the blob storage API client."""

import base64
import io
from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import (
    ClientAuthenticationError,
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)

from pysitesync.api import (
    DEV_ACCOUNT_NAME,
    DEV_CONNECTION_STRING,
    BlobStorageClient,
    expand_connection_string,
)
from pysitesync.exceptions import (
    SiteSyncConfigError,
    StorageAuthenticationError,
    StorageError,
    StorageNetworkError,
    StorageNotFoundError,
    StorageUploadError,
)

ACCOUNT_KEY = base64.b64encode(b"secret-key").decode("ascii")
ACCOUNT_CONNECTION = (
    "DefaultEndpointsProtocol=https;AccountName=mysite;"
    f"AccountKey={ACCOUNT_KEY};EndpointSuffix=core.windows.net"
)


@pytest.fixture
def service():
    """Provide a mocked BlobServiceClient."""
    return MagicMock()


@pytest.fixture
def client(service):
    return BlobStorageClient(service)


def http_error(message: str, status_code: int) -> HttpResponseError:
    error = HttpResponseError(message=message)
    error.status_code = status_code
    return error


class TestConnectionString:
    """Tests for creating clients from connection strings."""

    def test_development_storage(self):
        with BlobStorageClient.from_connection_string(
            "UseDevelopmentStorage=true"
        ) as client:
            assert client.service.account_name == DEV_ACCOUNT_NAME
            assert client.service.url.startswith(
                "http://127.0.0.1:10000/devstoreaccount1"
            )

    def test_account_key(self):
        client = BlobStorageClient.from_connection_string(ACCOUNT_CONNECTION)

        assert client.service.account_name == "mysite"
        assert client.url_for("site", "about") == (
            "https://mysite.blob.core.windows.net/site/about"
        )

    @pytest.mark.parametrize("connection_string", ["", "   ", "garbage"])
    def test_invalid(self, connection_string):
        with pytest.raises(SiteSyncConfigError):
            BlobStorageClient.from_connection_string(connection_string)

    @pytest.mark.parametrize(
        "connection_string",
        ["UseDevelopmentStorage=true", "usedevelopmentstorage=TRUE;"],
    )
    def test_expand_development_shortcut(self, connection_string):
        assert expand_connection_string(connection_string) == DEV_CONNECTION_STRING

    def test_expand_leaves_other_strings(self):
        assert expand_connection_string(ACCOUNT_CONNECTION) == ACCOUNT_CONNECTION

    def test_context_manager_closes_service(self, service):
        with BlobStorageClient(service):
            pass

        service.close.assert_called_once_with()


class TestContainers:
    """Tests for container operations."""

    @pytest.mark.parametrize("exists", [True, False])
    def test_container_exists(self, client, service, exists):
        service.get_container_client.return_value.exists.return_value = exists

        assert client.container_exists("$web") is exists
        service.get_container_client.assert_called_once_with("$web")

    def test_create_container(self, client, service):
        assert client.create_container_if_not_exists("xml4web") is True
        service.create_container.assert_called_once_with("xml4web")

    def test_create_existing_container(self, client, service):
        service.create_container.side_effect = ResourceExistsError("exists")

        assert client.create_container_if_not_exists("xml4web") is False

    def test_url_for_container(self, client, service):
        service.get_container_client.return_value.url = "https://a/b"

        assert client.url_for("b") == "https://a/b"


class TestBlobs:
    """Tests for blob operations."""

    def test_put_blob(self, client, service):
        client.put_blob(
            "$web",
            "about",
            b"<h1>about</h1>",
            content_type="text/html",
            cache_control="no-cache",
            metadata={"x4w_sha256": "ab"},
        )

        service.get_blob_client.assert_called_once_with("$web", "about")
        upload = service.get_blob_client.return_value.upload_blob
        upload.assert_called_once()
        args, kwargs = upload.call_args
        assert args == (b"<h1>about</h1>",)
        assert kwargs["length"] == 14
        assert kwargs["overwrite"] is True
        assert kwargs["content_settings"].content_type == "text/html"
        assert kwargs["content_settings"].cache_control == "no-cache"
        assert kwargs["metadata"] == {"x4w_sha256": "ab"}

    def test_put_blob_stream(self, client, service):
        stream = io.BytesIO(b"streamed")

        client.put_blob("$web", "a.txt", stream, length=8)

        upload = service.get_blob_client.return_value.upload_blob
        args, kwargs = upload.call_args
        assert args == (stream,)
        assert kwargs["length"] == 8

    def test_put_blob_stream_requires_length(self, client, service):
        with pytest.raises(ValueError, match="length"):
            client.put_blob("$web", "a.txt", io.BytesIO(b"x"))
        service.get_blob_client.return_value.upload_blob.assert_not_called()

    def test_put_block(self, client, service):
        client.put_block("$web", "big.bin", "AAAAAA==", b"chunk")

        service.get_blob_client.return_value.stage_block.assert_called_once_with(
            "AAAAAA==", b"chunk", length=5
        )

    def test_put_block_list(self, client, service):
        client.put_block_list(
            "$web",
            "big.bin",
            ["AAAAAA==", "AQAAAA=="],
            content_type="application/octet-stream",
            metadata={"x4w_sha256": "cd"},
        )

        commit = service.get_blob_client.return_value.commit_block_list
        args, kwargs = commit.call_args
        [blocks] = args
        assert [block.id for block in blocks] == ["AAAAAA==", "AQAAAA=="]
        assert kwargs["content_settings"].content_type == "application/octet-stream"
        assert kwargs["metadata"] == {"x4w_sha256": "cd"}

    def test_download_blob(self, client, service):
        blob_client = service.get_blob_client.return_value
        blob_client.download_blob.return_value.readall.return_value = b"{}"

        assert client.download_blob("xml4web", "storage-index.json") == b"{}"

    def test_download_missing_blob(self, client, service):
        blob_client = service.get_blob_client.return_value
        blob_client.download_blob.side_effect = ResourceNotFoundError("missing")

        assert client.download_blob("xml4web", "storage-index.json") is None

    def test_delete_blob(self, client, service):
        assert client.delete_blob_if_exists("$web", "old") is True
        service.get_blob_client.return_value.delete_blob.assert_called_once_with()

    def test_delete_missing_blob(self, client, service):
        blob_client = service.get_blob_client.return_value
        blob_client.delete_blob.side_effect = ResourceNotFoundError("missing")

        assert client.delete_blob_if_exists("$web", "old") is False


class TestErrors:
    """Tests for translating SDK exceptions."""

    def test_upload_error(self, client, service):
        blob_client = service.get_blob_client.return_value
        blob_client.upload_blob.side_effect = http_error("boom", 500)

        with pytest.raises(StorageUploadError, match="a.txt.*boom"):
            client.put_blob("$web", "a.txt", b"x")

    def test_block_error(self, client, service):
        blob_client = service.get_blob_client.return_value
        blob_client.stage_block.side_effect = HttpResponseError(message="too big")

        with pytest.raises(StorageUploadError, match="too big"):
            client.put_block("$web", "big.bin", "AAAAAA==", b"x")

    def test_authentication_error(self, client, service):
        blob_client = service.get_blob_client.return_value
        blob_client.upload_blob.side_effect = ClientAuthenticationError("bad key")

        with pytest.raises(StorageAuthenticationError, match="access denied"):
            client.put_blob("$web", "a.txt", b"x")

    def test_forbidden_status_is_authentication_error(self, client, service):
        service.get_container_client.return_value.exists.side_effect = http_error(
            "forbidden", 403
        )

        with pytest.raises(StorageAuthenticationError):
            client.container_exists("$web")

    @pytest.mark.parametrize(
        "error", [ServiceRequestError("down"), ServiceResponseError("reset")]
    )
    def test_network_error(self, client, service, error):
        blob_client = service.get_blob_client.return_value
        blob_client.download_blob.side_effect = error

        with pytest.raises(StorageNetworkError):
            client.download_blob("xml4web", "storage-index.json")

    def test_not_found_outside_blob_operations(self, client, service):
        """A missing account or container is not silently ignored."""
        service.create_container.side_effect = ResourceNotFoundError("no account")

        with pytest.raises(StorageNotFoundError):
            client.create_container_if_not_exists("xml4web")

    def test_generic_error(self, client, service):
        service.get_container_client.return_value.exists.side_effect = http_error(
            "server busy", 503
        )

        with pytest.raises(StorageError, match="server busy") as exc_info:
            client.container_exists("$web")

        assert not isinstance(exc_info.value, StorageUploadError)
