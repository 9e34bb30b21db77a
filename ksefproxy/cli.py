"""
Command-line interface for the KSeF proxy.
"""

from __future__ import annotations

import json
import os

import click

from ksefproxy.common.config import KSEF_ENVIRONMENTS, Config, resolve_mode
from ksefproxy.server import start_server


@click.group()
def cli() -> None:
    """KSeF proxy CLI"""


@cli.command()
@click.option(
    "--host",
    default=None,
    help="Host to bind server to (default: from KSEF_PROXY_HOST env or 127.0.0.1)",
)
@click.option(
    "--port",
    default=None,
    type=int,
    help="Port to bind server to (default: from KSEF_PROXY_PORT env or 3001)",
)
@click.option(
    "--mock/--real",
    "use_mock",
    default=None,
    help="Serve requests from the simulator or the official KSeF API",
)
@click.option(
    "--environment",
    type=click.Choice([*KSEF_ENVIRONMENTS, "production"]),
    default=None,
    help="Default KSeF environment (default: from KSEF_ENVIRONMENT env or test)",
)
def serve(
    host: str | None,
    port: int | None,
    use_mock: bool | None,  # noqa: FBT001
    environment: str | None,
) -> None:
    """Start the KSeF proxy server"""
    # Set environment variables before building the config
    if host:
        os.environ["KSEF_PROXY_HOST"] = host
    if port:
        os.environ["KSEF_PROXY_PORT"] = str(port)
    if use_mock is not None:
        os.environ["USE_MOCK_KSEF"] = "true" if use_mock else "false"
        os.environ["USE_REAL_KSEF"] = "false" if use_mock else "true"
    if environment:
        os.environ["KSEF_ENVIRONMENT"] = environment

    mode = resolve_mode()
    click.echo(
        f"Serving {'mock' if mode.use_mock else 'real'} KSeF API "
        f"({mode.environment}) via {mode.base_url}"
    )
    start_server(Config())


@cli.command()
def config() -> None:
    """Show the resolved KSeF mode"""
    click.echo(json.dumps(resolve_mode().model_dump(by_alias=True), indent=2))


if __name__ == "__main__":
    cli()
