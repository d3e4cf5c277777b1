"""Loading of the init configuration and the service definitions it points to.

The main configuration file is YAML with a global startup timeout, start/stop
messages and a glob pattern locating one YAML file per service::

    timeout: 5
    start: "Starting initialize"
    stop: "Stopping initialize"
    services: /etc/tormenta/services/*.yaml

Loaded values are frozen dataclasses; the supervisor only ever reads them.
"""

import glob
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


DEFAULT_START_MESSAGE = "Starting initialize"
DEFAULT_STOP_MESSAGE = "Stopping initialize"
DEFAULT_DESCRIPTION = "default service description"
DEFAULT_TIMEOUT = 3  # [s]

_logger = logging.getLogger("cfg")


class ConfigError(Exception):
    """Configuration file missing, unreadable, malformed or invalid."""


@dataclass(frozen=True)
class ServiceRecord:
    """Validated description of one supervised service.

    Attributes:
        name: Service identifier, never empty
        position: Ordering key, lower values start first
        start: Shell commands run to start the service (at least one)
        stop: Declared stop commands (reported only, never executed)
        restart: Declared restart commands (reported only, never executed)
        block: Wait for each start command to finish, subject to timeout
        timeout: Optional per-service timeout override in seconds
        description: Free text shown in shutdown reports
        source: File the record was loaded from
    """
    name: str
    start: tuple[str, ...]
    position: int = 0
    stop: tuple[str, ...] = ()
    restart: tuple[str, ...] = ()
    block: bool = False
    timeout: int | None = None
    description: str = DEFAULT_DESCRIPTION
    source: Path | None = None


@dataclass(frozen=True)
class Config:
    """Process-wide init configuration."""
    path: Path
    services_pattern: str
    timeout: int = DEFAULT_TIMEOUT
    start_message: str = DEFAULT_START_MESSAGE
    stop_message: str = DEFAULT_STOP_MESSAGE
    services: tuple[ServiceRecord, ...] = field(default_factory=tuple)


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Cannot find configuration: {path}")
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse configuration {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration {path} must be a mapping, got {type(data).__name__}")
    return data


def _commands(value: Any, key: str, path: Path) -> tuple[str, ...]:
    """Normalize a command list field; a single string counts as one command."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return tuple(value)
    raise ConfigError(f"Field '{key}' in {path} must be a string or a list of strings")


def _integer(value: Any, key: str, path: Path) -> int | None:
    if value is None:
        return None
    # bool is an int subclass, reject "timeout: yes"
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"Field '{key}' in {path} must be an integer")
    return value


def load_service(path: str | Path) -> ServiceRecord:
    """Load and validate a single service definition file.

    Raises:
        ConfigError: If the file cannot be read or lacks a name or start commands
    """
    path = Path(path)
    data = _read_yaml(path)

    name = data.get("name")
    if not name or not isinstance(name, str):
        raise ConfigError(f"Not defined name for service in {path}")

    start = _commands(data.get("start"), "start", path)
    if not start:
        raise ConfigError(f"Not defined start steps for service {name}")

    block = data.get("block", False)
    if not isinstance(block, bool):
        raise ConfigError(f"Field 'block' in {path} must be a boolean")

    return ServiceRecord(
        name=name,
        start=start,
        position=_integer(data.get("position"), "position", path) or 0,
        stop=_commands(data.get("stop"), "stop", path),
        restart=_commands(data.get("restart"), "restart", path),
        block=block,
        timeout=_integer(data.get("timeout"), "timeout", path),
        description=str(data.get("description") or DEFAULT_DESCRIPTION),
        source=path,
    )


def discover_services(pattern: str) -> list[ServiceRecord]:
    """Load every service file matching a glob pattern, in sorted path order."""
    paths = sorted(glob.glob(pattern))
    if not paths:
        _logger.warning(f"No service definitions match {pattern}")
    return [load_service(p) for p in paths]


def load_config(config_file: str | Path) -> Config:
    """Load the main configuration and all services it references.

    Args:
        config_file: Path to the main YAML configuration

    Returns:
        Config with defaults applied and services in discovery order

    Raises:
        ConfigError: On any problem with the main file or a service file
    """
    path = Path(config_file)
    data = _read_yaml(path)

    pattern = data.get("services")
    if not pattern or not isinstance(pattern, str):
        raise ConfigError(f"Not defined services found in {path}")

    timeout = _integer(data.get("timeout"), "timeout", path)
    if not timeout or timeout < 0:
        timeout = DEFAULT_TIMEOUT

    services = tuple(discover_services(pattern))
    _logger.info(f"Loaded {len(services)} services from {pattern}")

    return Config(
        path=path,
        services_pattern=pattern,
        timeout=timeout,
        start_message=str(data.get("start") or DEFAULT_START_MESSAGE),
        stop_message=str(data.get("stop") or DEFAULT_STOP_MESSAGE),
        services=services,
    )
