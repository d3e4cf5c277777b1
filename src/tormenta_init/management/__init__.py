"""Process environment management components."""

from .environment import (
    DEFAULT_ENVIRONMENT,
    EnvironmentSetupError,
    apply_environment,
    build_environment,
    load_dotenv_if_available,
)


__all__ = [
    "DEFAULT_ENVIRONMENT",
    "EnvironmentSetupError",
    "apply_environment",
    "build_environment",
    "load_dotenv_if_available"
]
