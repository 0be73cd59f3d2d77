"""Command line entry point: ``nocodb-mcp [URL BASE_ID TOKEN] [--host ...] [--port ...]``."""

from typing import Any

import click
import pydantic

from nocodb_mcp.exceptions import ConfigurationError
from nocodb_mcp.settings import Settings
from nocodb_mcp.utilities.logging import configure_logging, get_logger

logger = get_logger(__name__)


def load_settings(**overrides: Any) -> Settings:
    """Build Settings from the environment, with non-None ``overrides`` on top.

    Raises:
        ConfigurationError: required values are missing or invalid.
    """
    try:
        return Settings(**{key: value for key, value in overrides.items() if value is not None})
    except pydantic.ValidationError as e:
        missing = [".".join(str(part) for part in err["loc"]).upper() for err in e.errors()]
        raise ConfigurationError(
            "Missing or invalid NocoDB configuration: "
            + ", ".join(missing)
            + ". Provide NOCODB_URL, NOCODB_BASE_ID and NOCODB_API_TOKEN via environment variables, "
            "a .env file, or command-line arguments."
        ) from e


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("url", required=False)
@click.argument("base_id", required=False)
@click.argument("api_token", required=False)
@click.option("--host", default=None, help="Interface to bind (default 0.0.0.0).")
@click.option("--port", type=int, default=None, help="Port to listen on for SSE (default 3000).")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Log level (default INFO).",
)
def main(
    url: str | None,
    base_id: str | None,
    api_token: str | None,
    host: str | None,
    port: int | None,
    log_level: str | None,
) -> None:
    """Serve a NocoDB base as MCP tools over HTTP+SSE.

    URL, BASE_ID and API_TOKEN override NOCODB_URL, NOCODB_BASE_ID and
    NOCODB_API_TOKEN from the environment.
    """
    try:
        settings = load_settings(
            nocodb_url=url,
            nocodb_base_id=base_id,
            nocodb_api_token=api_token,
            host=host,
            port=port,
            log_level=log_level.upper() if log_level else None,
        )
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    configure_logging(settings.log_level)
    logger.info("Starting NocoDB MCP server with settings %s", settings.redacted())

    import uvicorn

    from nocodb_mcp.server.app import create_app

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
