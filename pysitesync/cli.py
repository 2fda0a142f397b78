"""CLI interface for pysitesync."""

import logging
from typing import Any

import click

from . import __version__
from .api import BlobStorageClient
from .cli_progress import SyncProgressDisplay
from .config import JobConfiguration
from .exceptions import SiteSyncConfigError, SiteSyncError, StorageError
from .output import OutputFormatter
from .sync import SyncEngine

logger = logging.getLogger(__name__)


@click.command()
@click.argument("config_file", type=click.Path(dir_okay=False))
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be published without changing remote storage",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: Any,
    config_file: str,
    dry_run: bool,
    quiet: bool,
    verbose: bool,
) -> None:
    """Publish a static site build to Azure Blob Storage.

    CONFIG_FILE is a JSON job configuration naming the local folder and the
    storage account. Only files whose content changed since the last run are
    transferred; files removed locally are deleted remotely.
    """
    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pysitesync").setLevel(logging.DEBUG)
        # the azure SDK logs every request and response at INFO level
        logging.getLogger("azure").setLevel(logging.WARNING)
    else:
        logging.basicConfig(level=logging.WARNING)

    out = OutputFormatter(quiet=quiet)

    try:
        config = JobConfiguration.load(config_file)
        client = BlobStorageClient.from_connection_string(config.storage_connection)
    except SiteSyncConfigError as e:
        out.error(f"Configuration error: {e}")
        ctx.exit(1)

    target = client.url_for(config.content_container)
    out.info(f"Publishing {config.folder_name} to {target}")

    try:
        with client:
            if dry_run or quiet:
                engine = SyncEngine(client, config, out)
                result = engine.run(dry_run=dry_run)
            else:
                with SyncProgressDisplay(out.console) as display:
                    engine = SyncEngine(
                        client, config, out, progress_tracker=display.create_tracker()
                    )
                    result = engine.run()
    except KeyboardInterrupt:
        out.warning("\nPublish cancelled by user")
        ctx.exit(130)  # Standard exit code for SIGINT
    except StorageError as e:
        out.error(f"Storage error: {e}")
        ctx.exit(1)
    except SiteSyncError as e:
        out.error(str(e))
        ctx.exit(1)
    except OSError as e:
        out.error(f"Cannot read local files: {e}")
        ctx.exit(1)

    if not result.ok:
        ctx.exit(1)


if __name__ == "__main__":
    main()
