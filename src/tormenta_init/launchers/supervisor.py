"""Supervisor orchestrating the whole service roster.

The supervisor orders services by position, dispatches one asyncio task per
service, then waits for SIGINT or SIGTERM and reports the shutdown.
Launch outcomes are never collected; the shutdown report covers every
configured service whether it started or not.
"""

import asyncio
import logging
import signal
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from operator import attrgetter

from tormenta_init.config import Config, ServiceRecord
from tormenta_init.launchers.service_launcher import ServiceLauncher
from tormenta_init.management.environment import apply_environment, build_environment


BANNER = "☁ Tormenta Cloud OS -> Init ☁"

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SupervisorState(Enum):
    """Supervisor lifecycle states, traversed strictly in order."""
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"

    def __str__(self) -> str:
        return self.value


def order_services(services: Iterable[ServiceRecord]) -> list[ServiceRecord]:
    """Sort by position; ``sorted`` is stable, so ties keep discovery order."""
    return sorted(services, key=attrgetter("position"))


class Supervisor:
    """Starts all configured services and hosts the termination handler."""

    def __init__(
        self,
        config: Config,
        environment: Mapping[str, str] | None = None,
        launcher_factory: Callable[..., ServiceLauncher] = ServiceLauncher,
        show_banner: bool = True
    ):
        self.config = config
        self.environment = environment
        self.launcher_factory = launcher_factory
        self.show_banner = show_banner
        self.logger = logging.getLogger("init")
        self.state = SupervisorState.IDLE
        self.received_signal: str | None = None
        self._launchers: list[ServiceLauncher] = []
        self._tasks: list[asyncio.Task] = []
        self._shutdown_event: asyncio.Event | None = None

    @property
    def services(self) -> tuple[ServiceRecord, ...]:
        return self.config.services

    def print_banner(self):
        print(BANNER, flush=True)

    def seed_environment(self) -> dict[str, str]:
        """Build the service environment and apply it to the process.

        Raises:
            EnvironmentSetupError: If the environment cannot be applied
        """
        env = build_environment(overrides=self.environment)
        apply_environment(env)
        return env

    def dispatch(self, env: Mapping[str, str]) -> list[asyncio.Task]:
        """Create one start task per service, in position order, without waiting."""
        for record in order_services(self.services):
            launcher = self.launcher_factory(record, environment=env)
            self._launchers.append(launcher)
            task = asyncio.create_task(
                launcher.start(self.config.timeout),
                name=f"start|{record.name}"
            )
            self._tasks.append(task)
            self.logger.debug(f"Dispatched {record.name} (position {record.position})")
        return self._tasks

    async def run(self):
        """Start all services and block until SIGINT/SIGTERM.

        Raises:
            EnvironmentSetupError: If seeding the environment fails
            RuntimeError: If called more than once
        """
        if self.state is not SupervisorState.IDLE:
            raise RuntimeError(f"Supervisor already {self.state}")

        self.state = SupervisorState.STARTING
        if self.show_banner:
            self.print_banner()
        self.logger.info(self.config.start_message)

        try:
            env = self.seed_environment()
        except Exception:
            self.state = SupervisorState.TERMINATED
            raise

        self._shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in HANDLED_SIGNALS:
            loop.add_signal_handler(sig, self.request_shutdown, sig.name)

        try:
            self.dispatch(env)
            self.state = SupervisorState.RUNNING
            self.logger.info(f"Dispatched {len(self._tasks)} services, waiting for SIGINT/SIGTERM")
            await self._shutdown_event.wait()

            self.state = SupervisorState.SHUTTING_DOWN
            self.stop()
        finally:
            for sig in HANDLED_SIGNALS:
                loop.remove_signal_handler(sig)
            self.state = SupervisorState.TERMINATED

    def request_shutdown(self, signame: str = "SIGTERM"):
        """Wake the supervisor so it runs the shutdown sequence."""
        self.logger.info(f"Received signal {signame}, shutting down...")
        self.received_signal = signame
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    def stop(self):
        """Report the intended stop of every configured service.

        No process is signalled; in-flight starts are left as they are.
        """
        self.logger.info(self.config.stop_message)
        for service in self.services:
            self.logger.info(
                f"Stopping service: [{service.name}] -> description: [{service.description}]"
            )

    def restart(self):
        """Report a restart of every configured service.

        Kept separate from stop() although both only report for now.
        """
        self.logger.info(self.config.stop_message)
        for service in self.services:
            self.logger.info(
                f"Stopping service: [{service.name}] -> description: [{service.description}]"
            )
