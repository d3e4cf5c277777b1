"""Launcher running the start commands of a single service.

Each start command runs as ``<shell> -c <command>`` in its own process group.
Blocking services wait for every command to finish, racing it against the
effective timeout; non-blocking services fire the first command and return.
Outcomes are reported through logging only, never returned to the caller.
"""

import asyncio
import logging
import os
import signal
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum

from tormenta_init.config import ServiceRecord


DEFAULT_SHELL = "/bin/bash"


class Outcome(Enum):
    """Result of one start command."""
    STARTED = "started"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class StartOutcome:
    """Report of a single start command, as sent to the outcome sink."""
    service: str
    command: str
    outcome: Outcome
    reason: str | None = None

    def __str__(self) -> str:
        if self.outcome is Outcome.STARTED:
            return f"{self.service}, [{self.outcome}]"
        return f"{self.service}, [{self.outcome}], reason: {self.reason}"


def effective_timeout(service_timeout: float | None, global_timeout: float) -> float:
    """Timeout applied to a blocking start command.

    A service may extend the global default but never shorten it; a missing
    or zero service timeout means the global default.
    """
    return max(service_timeout or 0, global_timeout)


def describe_exit(returncode: int) -> str:
    """Human readable reason for a non-zero return code."""
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = str(-returncode)
        return f"signal: {name}"
    return f"exit status {returncode}"


class ServiceLauncher:
    """Starts one service and enforces its blocking/timeout contract."""

    def __init__(
        self,
        record: ServiceRecord,
        environment: Mapping[str, str] | None = None,
        shell: str = DEFAULT_SHELL,
        on_outcome: Callable[[StartOutcome], None] | None = None
    ):
        self.record = record
        self.environment = environment
        self.shell = shell
        self.on_outcome = on_outcome
        self.logger = logging.getLogger(f"run|{record.name}")
        # Non-blocking children; kept so their transports stay referenced
        self.detached: list[asyncio.subprocess.Process] = []

    async def start(self, global_timeout: float) -> None:
        """Run the service's start commands in sequence.

        Args:
            global_timeout: Configured default timeout in seconds
        """
        timeout = effective_timeout(self.record.timeout, global_timeout)

        for command in self.record.start:
            if not self.record.block:
                # Single shot: remaining start commands are never run
                await self._start_detached(command)
                return
            await self._start_blocking(command, timeout)

    async def _spawn(self, command: str) -> asyncio.subprocess.Process:
        env = dict(self.environment) if self.environment is not None else None
        self.logger.debug(f"Spawning: {self.shell} -c {command!r}")
        return await asyncio.create_subprocess_exec(
            self.shell, "-c", command,
            env=env,
            process_group=0
        )

    async def _start_detached(self, command: str):
        try:
            process = await self._spawn(command)
        except OSError as e:
            self._report(command, Outcome.FAILED, str(e))
            return

        self.detached.append(process)
        self._report(command, Outcome.STARTED)

    async def _start_blocking(self, command: str, timeout: float):
        try:
            process = await self._spawn(command)
        except OSError as e:
            self._report(command, Outcome.FAILED, str(e))
            return

        waiter = asyncio.create_task(process.wait())
        try:
            done, _ = await asyncio.wait({waiter}, timeout=timeout)
        except asyncio.CancelledError:
            waiter.cancel()
            raise

        if waiter in done:
            returncode = waiter.result()
            if returncode == 0:
                self._report(command, Outcome.STARTED)
            else:
                self._report(command, Outcome.FAILED, describe_exit(returncode))
            return

        self._kill(process)
        await waiter  # drain, the killed process still has to be reaped
        self._report(command, Outcome.FAILED, f"timeout after {timeout:g} secs")

    def _kill(self, process: asyncio.subprocess.Process):
        """SIGKILL the command's process group (its pgid equals its pid)."""
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            self.logger.debug(f"Process group {process.pid} already gone")
        except PermissionError:
            try:
                process.kill()
            except ProcessLookupError:
                self.logger.debug(f"Process {process.pid} already gone")

    def _report(self, command: str, outcome: Outcome, reason: str | None = None):
        report = StartOutcome(
            service=self.record.name,
            command=command,
            outcome=outcome,
            reason=reason
        )
        if outcome is Outcome.STARTED:
            self.logger.info(str(report))
        else:
            self.logger.error(str(report))

        if self.on_outcome is not None:
            # A broken sink must not abort the remaining start commands
            try:
                self.on_outcome(report)
            except Exception as e:
                self.logger.error(f"Outcome sink failed for {self.record.name}: {e}", exc_info=True)
