"""
Command line entry point.

    mdb-users serve --port 8080
    mdb-users ping
"""

import asyncio
import json
import sys
from functools import partial

import click
import uvicorn

from ..config import ServiceConfig
from ..constants import GRACEFUL_SHUTDOWN_SECONDS
from ..database import DocumentStore
from ..exceptions import ConfigurationError, InitializationError
from ..observability import HealthChecker, check_store, configure_logging, ping_mongodb


def _load_config(**overrides) -> ServiceConfig:
    config = ServiceConfig(**{k: v for k, v in overrides.items() if v is not None})
    try:
        config.validate()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    return config


@click.group()
def cli() -> None:
    """MongoDB-backed user service."""


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="Interface to bind")
@click.option("--port", type=int, default=None, help="Port (defaults to HTTP_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: str, port: int | None, reload: bool) -> None:
    """
    Run the HTTP server.

    Configuration is read from environment variables (MONGO_URI, DB_NAME,
    HTTP_BASE_PATH, ...). The process exits if MongoDB cannot be reached
    after MONGO_CONNECT_RETRIES attempts.
    """
    config = _load_config(http_port=port)
    configure_logging(config.log_level)

    uvicorn.run(
        "mdb_users.api:create_app",
        factory=True,
        host=host,
        port=config.http_port,
        reload=reload,
        log_config=None,
        timeout_graceful_shutdown=GRACEFUL_SHUTDOWN_SECONDS,
    )


async def _ping(config: ServiceConfig) -> dict:
    store = DocumentStore(
        config.mongo_uri,
        config.db_name,
        max_pool_size=config.max_pool_size,
        min_pool_size=config.min_pool_size,
        timeout=config.timeout,
    )
    await store.connect(max_retries=config.connect_retries)
    checker = HealthChecker(timeout=config.timeout)
    checker.register("store", partial(check_store, store))
    checker.register("mongodb", partial(ping_mongodb, store.client))
    try:
        return await checker.run()
    finally:
        await store.disconnect()


@cli.command()
def ping() -> None:
    """
    Check that MongoDB is reachable with the current configuration.

    Examples:
        MONGO_URI=mongodb://localhost:27017 mdb-users ping
    """
    config = _load_config()
    configure_logging(config.log_level)

    try:
        result = asyncio.run(_ping(config))
    except InitializationError as e:
        click.echo(click.style(f"❌ {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo(json.dumps(result, indent=2))
    if result["status"] != "healthy":
        sys.exit(1)
    click.echo(click.style(f"✅ MongoDB '{config.db_name}' is reachable", fg="green"))
