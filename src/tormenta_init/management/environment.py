"""Environment variable management for the init process and its services.

The environment handed to services is built as an explicit mapping first and
written to ``os.environ`` by a single call, before any service is started.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from dotenv import load_dotenv


# Read-only, always written last over inherited and caller variables
DEFAULT_ENVIRONMENT = MappingProxyType({
    "PATH": "/bin:/usr/bin:/sbin:/usr/sbin",
    "CONSOLE": "/dev/console",
})


class EnvironmentSetupError(RuntimeError):
    """Seeding the process environment failed."""


def load_dotenv_if_available() -> tuple[bool, Path | None]:
    """Load .env file from current directory if it exists.

    Existing environment variables take precedence (override=False).
    Variables in DEFAULT_ENVIRONMENT are overwritten later by seeding anyway.

    Returns:
        Tuple of (loaded, absolute path of the .env file or None)
    """
    logger = logging.getLogger("env")

    env_file = Path(".env")
    if env_file.exists():
        load_dotenv(env_file, override=False)
        return True, env_file.absolute()

    logger.debug("No .env file found in current directory")
    return False, None


def build_environment(
    base: Mapping[str, str] | None = None,
    overrides: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Compose the environment services are started with.

    Args:
        base: Inherited variables (default: current ``os.environ``)
        overrides: Extra variables applied over ``base``; DEFAULT_ENVIRONMENT
            is applied after them and always wins

    Returns:
        New dict; neither argument is modified
    """
    env = dict(os.environ if base is None else base)
    if overrides is not None:
        env.update(overrides)
    env.update(DEFAULT_ENVIRONMENT)
    return env


def apply_environment(env: Mapping[str, str]) -> None:
    """Write ``env`` into the process environment.

    Raises:
        EnvironmentSetupError: If any variable cannot be set
    """
    logger = logging.getLogger("env")
    for variable, value in env.items():
        try:
            os.environ[variable] = value
        except (ValueError, TypeError, OSError) as e:
            raise EnvironmentSetupError(f"Cannot set environment variable {variable}: {e}") from e
    logger.debug(f"Applied {len(env)} environment variables")
