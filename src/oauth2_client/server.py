import asyncio
import logging
from pathlib import Path

import click
import httpx
from pydantic import ValidationError
from starlette.applications import Starlette
from uvicorn import Config, Server

from oauth2_client.errors import ConfigurationError, stringify_pydantic_error
from oauth2_client.grants.sender import SpecificHeaders
from oauth2_client.handlers.redirect import get_path
from oauth2_client.router import OAuth2FlowFactory
from oauth2_client.settings import AuthorizationSettings, load_settings

logger = logging.getLogger(__name__)


def create_app(
    settings: AuthorizationSettings,
    http_client: httpx.AsyncClient | None = None,
    extra_headers: SpecificHeaders | None = None,
) -> Starlette:
    """Starlette application serving the authorization endpoints of `settings`."""
    factory = OAuth2FlowFactory(
        settings, http_client=http_client, extra_headers=extra_headers
    )
    return Starlette(
        routes=factory.create_routes(),
        middleware=factory.create_middleware(),
    )


async def run_server(settings: AuthorizationSettings, host: str, port: int, log_level: str):
    config = Config(create_app(settings), host=host, port=port, log_level=log_level)
    server = Server(config)

    logger.info(f"Token endpoint: {settings.grant_sender_config().token_endpoint_url}")
    for name, endpoint in settings.endpoints.items():
        logger.info(f"  - {get_path(name)} ({endpoint.grant_type})")

    await server.serve()


@click.group()
def main() -> None:
    """Cookie based OAuth 2.0 client."""


@main.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON configuration file; OAUTH2_* environment variables otherwise",
)
@click.option("--host", default="localhost", help="Host to bind to")
@click.option("--port", default=8000, help="Port to listen on")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["critical", "error", "warning", "info", "debug"]),
    help="Logging level",
)
def serve(config_path: Path | None, host: str, port: int, log_level: str) -> None:
    """Serve the authorization endpoints."""
    logging.basicConfig(level=log_level.upper())

    try:
        settings = load_settings(config_path)
    except ValidationError as e:
        raise click.ClickException(
            f"Invalid configuration:\n{stringify_pydantic_error(e)}"
        ) from e
    except ValueError as e:
        raise click.ClickException(f"Could not read configuration: {e}") from e

    try:
        asyncio.run(run_server(settings, host, port, log_level))
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


if __name__ == "__main__":
    main()
