"""Init daemon entry point.

Usage:
    # Start the supervisor as PID 1 (or anywhere for testing)
    initd /etc/tormenta/init.yaml

    # Plain text logging, no cloud banner
    initd --no-color --no-banner /etc/tormenta/init.yaml

Exit codes:
    0  Terminated by SIGINT/SIGTERM
    1  Process environment could not be seeded
    2  Configuration missing, unreadable or invalid (or bad usage)
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler

from tormenta_init.config import ConfigError, load_config
from tormenta_init.launchers.supervisor import Supervisor
from tormenta_init.management.environment import EnvironmentSetupError, load_dotenv_if_available


EXIT_ENVIRONMENT = 1
EXIT_CONFIG = 2

app = typer.Typer(pretty_exceptions_enable=False, rich_markup_mode=None, add_completion=False)


def setup_logging(use_color: bool):
    """Setup logging based on color preference.

    Args:
        use_color: If True, use Rich colored logging; if False, use plain text
    """
    if not use_color:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s.%(msecs)03d [%(levelname)-5s] [%(name)-15s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    else:
        logging.basicConfig(
            level=logging.INFO,
            format='%(message)s',
            handlers=[RichHandler(
                show_time=True,
                show_level=True,
                show_path=False,
                rich_tracebacks=True,
                tracebacks_show_locals=False,
                log_time_format='%Y-%m-%d %H:%M:%S'
            )]
        )


@app.command()
def initd(
    config: Annotated[Path, typer.Argument(help="Path to init configuration file")],
    no_color: Annotated[bool, typer.Option("--no-color", help="Disable colored logging (use plain text)")] = False,
    no_banner: Annotated[bool, typer.Option("--no-banner", help="Suppress startup banner")] = False,
):
    """Start all configured services and supervise them until SIGINT/SIGTERM."""
    setup_logging(use_color=not no_color)
    logger = logging.getLogger("launch")

    env_loaded, env_file_path = load_dotenv_if_available()
    if env_loaded and env_file_path:
        logger.info(f"Loaded environment from {env_file_path}")

    try:
        init_config = load_config(config)
    except ConfigError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(EXIT_CONFIG)

    logger.info(f"Using config file: {init_config.path}")
    supervisor = Supervisor(init_config, show_banner=not no_banner)

    try:
        asyncio.run(supervisor.run())
    except EnvironmentSetupError as e:
        logger.error(f"Failed to seed environment: {e}")
        raise typer.Exit(EXIT_ENVIRONMENT)

    logger.info("Init shutdown complete")


def main():
    """Entry point for the init daemon."""
    app()


if __name__ == "__main__":
    main()
