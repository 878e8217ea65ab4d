"""CLI interface for Frontdoor.

Starts the production entrypoint and renders its process-manager descriptor.
"""

import json
import logging
import sys
from pathlib import Path

import click

from frontdoor.assets import build_rules
from frontdoor.config import Config
from frontdoor.renderer import RenderHandler, resolve_handler
from frontdoor.supervisor import ProcessPolicy

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"


@click.group()
def cli() -> None:
    """Frontdoor - production entrypoint for a web frontend."""


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: auto-discover frontdoor.toml)",
)
@click.option(
    "--host",
    default=None,
    help="Host to bind to (overrides config and HOST)",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to bind to (overrides config and PORT)",
)
@click.option(
    "--root",
    type=click.Path(exists=True, path_type=Path, file_okay=False),
    default=None,
    help="Working directory holding the static asset roots",
)
@click.option(
    "--handler",
    default=None,
    help="Rendering engine handler as module:attribute",
)
@click.option(
    "--production/--development",
    "production",
    default=None,
    help="Runtime mode (overrides config and APP_ENV)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging",
)
def serve(
    config_path: Path | None,
    host: str | None,
    port: int | None,
    root: Path | None,
    handler: str | None,
    production: bool | None,
    verbose: bool,
) -> None:
    """Start the server."""
    from frontdoor.server import StartupError, run_server

    _configure_logging(verbose)

    mode = None if production is None else ("production" if production else "development")
    try:
        config = Config.load(config_path).with_overrides(
            host=host,
            port=port,
            root=root,
            handler=handler,
            mode=mode,
        )
        build_rules(config.static)
        render_handler = _load_handler(config)
    except (FileNotFoundError, ValueError, ImportError, AttributeError, TypeError) as e:
        raise click.ClickException(str(e)) from e

    logger.info("Starting with configuration:")
    logger.info(f"  mode: {config.proxy.mode}")
    logger.info(f"  host: {config.server.host}")
    logger.info(f"  port: {config.server.port}")
    logger.info(f"  public host: {config.proxy.public_host}")
    logger.info(f"  backend URL: {config.proxy.backend_url}")
    logger.info(f"  static root: {config.static.root}")
    logger.info(f"  secure headers: {config.proxy.secure}")

    try:
        run_server(config, render_handler)
    except StartupError as e:
        logger.error(str(e))
        sys.exit(1)


@cli.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the descriptor to a file instead of stdout",
)
@click.option("--name", default="frontdoor", help="Process name")
@click.option(
    "--cwd",
    type=click.Path(exists=True, path_type=Path, file_okay=False),
    default=None,
    help="Working directory of the process (default: current directory)",
)
@click.option("--port", "-p", type=int, default=3000, help="Port the process listens on")
@click.option("--backend-url", default=None, help="Backend URL exported to the process")
@click.option(
    "--max-memory",
    default="800M",
    help="Restart the process when it exceeds this memory",
)
def ecosystem(
    output: Path | None,
    name: str,
    cwd: Path | None,
    port: int,
    backend_url: str | None,
    max_memory: str,
) -> None:
    """Print the PM2 ecosystem descriptor for the server process."""
    policy = ProcessPolicy(
        name=name,
        cwd=(cwd or Path.cwd()).resolve(),
        port=port,
        backend_url=backend_url,
        max_memory_restart=max_memory,
    )
    document = json.dumps(policy.to_ecosystem(), indent=2)

    if output is None:
        click.echo(document)
        return

    output.write_text(document + "\n", encoding="utf-8")
    click.echo(f"Wrote {output}")


def _load_handler(config: Config) -> RenderHandler | None:
    if config.renderer.handler is None:
        logger.warning("No rendering engine handler configured; non-static requests get 404")
        return None
    return resolve_handler(config.renderer.handler, config)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
