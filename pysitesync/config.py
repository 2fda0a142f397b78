"""Job configuration loading for pysitesync."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from .exceptions import SiteSyncConfigError
from .utils import DEFAULT_RETRY_COUNT, DEFAULT_RETRY_WAIT_MILLISECONDS

logger = logging.getLogger(__name__)

# Environment variable overriding the configured connection string
CONNECTION_ENV_VAR = "SITESYNC_STORAGE_CONNECTION"

DEFAULT_CONTENT_CONTAINER = "$web"
DEFAULT_SYSTEM_CONTAINER = "xml4web"
DEFAULT_INDEX_BLOB_NAME = "storage-index.json"
DEFAULT_INDEX_FILE_NAME = "index.html"


@dataclass
class JobConfiguration:
    """Settings of a single publish job."""

    storage_connection: str
    """Connection string of the target storage account"""

    folder_name: Path
    """Local directory to publish"""

    convert_to_lowercase: bool = False
    """Normalize storage keys to lowercase"""

    index_file_name: str = DEFAULT_INDEX_FILE_NAME
    """Default document name, never affected by extension stripping"""

    remove_extensions: list[str] = field(default_factory=list)
    """Extensions (with leading dot) stripped from storage keys"""

    content_type_map: dict[str, str] = field(default_factory=dict)
    """Extension to MIME type table"""

    cache_control_rules: dict[str, str] = field(default_factory=dict)
    """Ordered regex pattern to Cache-Control directive table"""

    retry_count: int = DEFAULT_RETRY_COUNT
    retry_wait_milliseconds: int = DEFAULT_RETRY_WAIT_MILLISECONDS

    content_container: str = DEFAULT_CONTENT_CONTAINER
    system_container: str = DEFAULT_SYSTEM_CONTAINER
    index_blob_name: str = DEFAULT_INDEX_BLOB_NAME

    max_workers: int = 1
    """Number of operations executed concurrently (1 = sequential)"""

    def __post_init__(self) -> None:
        self.folder_name = Path(self.folder_name)
        self.remove_extensions = [
            _normalize_extension(e) for e in self.remove_extensions
        ]
        self.content_type_map = {
            _normalize_extension(ext): mime
            for ext, mime in self.content_type_map.items()
        }
        if self.retry_count < 0:
            raise SiteSyncConfigError("retryCount must not be negative")
        if self.retry_wait_milliseconds < 0:
            raise SiteSyncConfigError("retryWaitMilliseconds must not be negative")
        if self.max_workers < 1:
            raise SiteSyncConfigError("maxWorkers must be at least 1")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobConfiguration":
        """Create a configuration from a parsed JSON document.

        Key lookup is case-insensitive, so ``FolderName`` and ``folderName``
        are equivalent. ``storageConnectionString`` is accepted as an alias
        of ``storageConnection``.

        A relative ``folderName`` is kept relative, so it resolves against the
        working directory of the process.

        Args:
            data: Parsed configuration object

        Returns:
            JobConfiguration instance

        Raises:
            SiteSyncConfigError: If required settings are missing or invalid
        """
        if not isinstance(data, dict):
            raise SiteSyncConfigError("Configuration must be a JSON object")
        values = {str(k).lower(): v for k, v in data.items()}

        def get(name: str, default: Any = None) -> Any:
            return values.get(name.lower(), default)

        connection = os.environ.get(CONNECTION_ENV_VAR) or get(
            "storageConnection", get("storageConnectionString")
        )
        if not connection:
            raise SiteSyncConfigError(
                "storageConnection is required "
                f"(or set the {CONNECTION_ENV_VAR} environment variable)"
            )

        folder = get("folderName")
        if not folder:
            raise SiteSyncConfigError("folderName is required")
        folder_path = Path(folder).expanduser()

        convert_to_lowercase = get("convertToLowercase", False)
        if not isinstance(convert_to_lowercase, bool):
            raise SiteSyncConfigError("convertToLowercase must be true or false")

        remove_extensions = get("removeExtensions", [])
        content_type_map = get("contentTypeMap", {})
        cache_control_rules = get("cacheControlRules", {})
        if not isinstance(remove_extensions, list):
            raise SiteSyncConfigError("removeExtensions must be a list")
        if not isinstance(content_type_map, dict):
            raise SiteSyncConfigError("contentTypeMap must be an object")
        if not isinstance(cache_control_rules, dict):
            raise SiteSyncConfigError("cacheControlRules must be an object")

        try:
            return cls(
                storage_connection=str(connection),
                folder_name=folder_path,
                convert_to_lowercase=convert_to_lowercase,
                index_file_name=str(get("indexFileName") or DEFAULT_INDEX_FILE_NAME),
                remove_extensions=[str(e) for e in remove_extensions],
                content_type_map={str(k): str(v) for k, v in content_type_map.items()},
                cache_control_rules={
                    str(k): str(v) for k, v in cache_control_rules.items()
                },
                retry_count=int(get("retryCount", DEFAULT_RETRY_COUNT)),
                retry_wait_milliseconds=int(
                    get("retryWaitMilliseconds", DEFAULT_RETRY_WAIT_MILLISECONDS)
                ),
                content_container=str(
                    get("contentContainer") or DEFAULT_CONTENT_CONTAINER
                ),
                system_container=str(
                    get("systemContainer") or DEFAULT_SYSTEM_CONTAINER
                ),
                index_blob_name=str(get("indexBlobName") or DEFAULT_INDEX_BLOB_NAME),
                max_workers=int(get("maxWorkers", 1)),
            )
        except (TypeError, ValueError) as e:
            raise SiteSyncConfigError(f"Invalid configuration value: {e}") from e

    @classmethod
    def load(cls, file_name: Union[str, Path]) -> "JobConfiguration":
        """Load a configuration from a JSON file.

        Args:
            file_name: Path to the configuration file

        Returns:
            JobConfiguration instance

        Raises:
            SiteSyncConfigError: If the file cannot be read or parsed
        """
        path = Path(file_name)
        try:
            with open(path, encoding="utf-8-sig") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise SiteSyncConfigError(f"File '{path}' was not found") from e
        except OSError as e:
            raise SiteSyncConfigError(f"Cannot read '{path}': {e}") from e
        except json.JSONDecodeError as e:
            raise SiteSyncConfigError(f"Invalid JSON in '{path}': {e}") from e

        config = cls.from_dict(data)
        logger.debug(f"Loaded configuration from {path}")
        return config


def _normalize_extension(extension: str) -> str:
    """Return the extension with a leading dot."""
    extension = extension.strip()
    if extension and not extension.startswith("."):
        return f".{extension}"
    return extension
