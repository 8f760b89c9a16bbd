"""
Command line for the B2CS store server.

Usage:
    b2cs setup-storage --domain example.com --account ID --appkey KEY BUCKET
    b2cs serve --config ~/b2cs/deploy/example.com/server_config.yaml
"""

import logging
import sys
from pathlib import Path

import click
import uvicorn
from dotenv import find_dotenv, load_dotenv

from . import __version__
from .config import (
    STORE_CONFIG_KEY,
    default_where,
    format_store_config,
    load_store_config,
    read_server_config,
    server_config_path,
    write_server_config,
)
from .logging_config import setup_colored_logging
from .server import create_app
from .storage.b2cs import B2S3Client
from .storage.b2cs import register as register_b2cs
from .storage.b2cs.backend import ACCOUNT_ID, APP_KEY, BACKEND_NAME, BUCKET_NAME, ENDPOINT
from .storage.b2cs.client import DEFAULT_ENDPOINT_URL
from .storage.exceptions import StorageError
from .storage.registry import StorageRegistry

log = logging.getLogger(__name__)


def error_exit(message: str) -> None:
    click.echo(click.style(message, fg="red"), err=True)
    sys.exit(1)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(__version__, "-v", "--version", help="Show the CLI version and exit.")
def cli():
    """B2CS store server tools"""
    pass


@click.command(name="setup-storage")
@click.argument("bucket_name")
@click.option(
    "--where",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory to store private configuration files (default: ~/b2cs/deploy).",
)
@click.option("--domain", required=True, help="Domain name for this installation.")
@click.option("--account", "account_id", envvar="B2CS_ACCOUNT", required=True, help="B2 Cloud Storage account ID.")
@click.option("--appkey", "app_key", envvar="B2CS_APP_KEY", required=True, help="B2 Cloud Storage application key.")
@click.option(
    "--endpoint",
    envvar="B2CS_ENDPOINT_URL",
    default=DEFAULT_ENDPOINT_URL,
    show_default=True,
    help="B2 S3-compatible endpoint URL.",
)
@click.option(
    "--clean",
    is_flag=True,
    default=False,
    help="Delete all artifacts that would be created using this command.",
)
def setup_storage(
    bucket_name: str,
    where: Path | None,
    domain: str,
    account_id: str,
    app_key: str,
    endpoint: str,
    clean: bool,
):
    """
    Set up Backblaze B2 storage for the store server.

    Creates BUCKET_NAME and updates the server configuration in
    WHERE/DOMAIN/ to use it. If something goes wrong, run the same command
    with --clean to remove what was created.
    """
    setup_colored_logging(level=logging.INFO)

    client = B2S3Client(
        account_id=account_id,
        application_key=app_key,
        bucket_name=bucket_name,
        endpoint_url=endpoint,
    )
    try:
        if clean:
            _clean(client)
            return

        cfg_path = server_config_path(where or default_where(), domain)
        try:
            cfg = read_server_config(cfg_path)
        except (OSError, ValueError) as e:
            error_exit(f"Unable to read server config {cfg_path}: {e}")

        try:
            client.create_bucket()
        except StorageError as e:
            error_exit(f"Unable to create B2 bucket: {e}")

        opts = {BUCKET_NAME: bucket_name, ACCOUNT_ID: account_id, APP_KEY: app_key}
        if endpoint != DEFAULT_ENDPOINT_URL:
            opts[ENDPOINT] = endpoint
        cfg[STORE_CONFIG_KEY] = format_store_config(BACKEND_NAME, opts)
        write_server_config(cfg_path, cfg)
    finally:
        client.close()

    click.echo("You should now deploy the store server and run 'b2cs serve'.", err=True)


def _clean(client: B2S3Client) -> None:
    """Best-effort removal of the bucket created by setup-storage."""
    log.info("Cleaning up...")
    try:
        client.delete_bucket()
    except StorageError as e:
        log.warning("Unable to delete bucket %s from B2: %s", client.bucket_name, e)


@click.command(name="serve")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Path to the server config YAML file.",
)
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind.")
@click.option("--port", default=8443, show_default=True, type=int, help="Port to listen on.")
@click.option(
    "-l",
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default="INFO",
    help="Logging level",
)
@click.option(
    "-u",
    "--system-env",
    is_flag=True,
    default=False,
    help="Use system environment variables only; do not load .env file.",
)
def serve(config_path: Path, host: str, port: int, log_level: str, system_env: bool):
    """
    Run the store server with the storage backend named in the config.
    """
    setup_colored_logging(level=getattr(logging, log_level))

    if system_env:
        log.warning("Skipping .env file loading due to --system-env flag.")
    else:
        env_path = find_dotenv(usecwd=True)
        if env_path:
            load_dotenv(dotenv_path=env_path, override=True)
            log.info("Loaded environment variables from: %s", env_path)

    registry = StorageRegistry()
    register_b2cs(registry)

    try:
        backend, opts = load_store_config(config_path)
        storage = registry.dial(backend, opts)
    except (StorageError, OSError, ValueError) as e:
        error_exit(f"Unable to set up storage backend: {e}")

    log.info("Starting store server on %s:%d", host, port)
    uvicorn.run(create_app(storage), host=host, port=port, log_config=None)


cli.add_command(setup_storage)
cli.add_command(serve)


def main():
    cli()


if __name__ == "__main__":
    main()
