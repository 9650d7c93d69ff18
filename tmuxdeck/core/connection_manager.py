"""Command execution against a target environment.

Executors never raise on process failure: a failed invocation comes back as
a CommandResult with a nonzero exit code and stderr populated. Callers own
parallelism; every call is one independent subprocess.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod

from tmuxdeck.constants import LOCAL_CONNECTION_ID
from tmuxdeck.core.models import CommandResult

logger = logging.getLogger(__name__)


class CommandExecutor(ABC):
    """Runs shell command strings in one environment."""

    @abstractmethod
    async def execute(self, command: str) -> CommandResult:
        """Run a command and capture its trimmed output."""

    def dispose(self) -> None:
        """Release executor resources (no-op by default)."""


class LocalExecutor(CommandExecutor):
    """Executes commands on this machine via the user's shell."""

    async def execute(self, command: str) -> CommandResult:
        logger.debug("exec: %s", command)
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            # ValueError: arguments the OS refuses, e.g. an embedded NUL byte
            logger.debug("exec failed to start: %s (%s)", command, e)
            return CommandResult(stdout="", stderr=str(e) or f"Command failed: {command}", exit_code=1)

        try:
            stdout_bytes, stderr_bytes = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
            raise
        except OSError as e:
            logger.debug("exec failed: %s (%s)", command, e)
            return CommandResult(stdout="", stderr=str(e) or f"Command failed: {command}", exit_code=1)

        stdout = stdout_bytes.decode("utf-8", errors="replace").strip()
        stderr = stderr_bytes.decode("utf-8", errors="replace").strip()
        exit_code = process.returncode if process.returncode is not None else 1

        if exit_code != 0 and not stderr:
            stderr = f"Command failed: {command}"
        if exit_code != 0:
            logger.debug("exec exit=%d: %s (%s)", exit_code, command, stderr)
        return CommandResult(stdout=stdout, stderr=stderr, exit_code=exit_code)


class ConnectionManager:
    """Routes commands to an executor by connection id.

    Only the local connection is registered by default; the connection id is
    threaded through every call so remote executors can be registered later.
    """

    def __init__(self, executors: dict[str, CommandExecutor] | None = None) -> None:
        self._executors: dict[str, CommandExecutor] = {LOCAL_CONNECTION_ID: LocalExecutor()}
        if executors:
            self._executors.update(executors)

    def register(self, connection_id: str, executor: CommandExecutor) -> None:
        """Register (or replace) the executor for a connection."""
        previous = self._executors.get(connection_id)
        if previous is not None and previous is not executor:
            previous.dispose()
        self._executors[connection_id] = executor

    @property
    def connection_ids(self) -> list[str]:
        return list(self._executors)

    async def execute(self, connection_id: str, command: str) -> CommandResult:
        executor = self._executors.get(connection_id)
        if executor is None:
            logger.warning("No executor registered for connection %s", connection_id)
            return CommandResult(stdout="", stderr=f"Unknown connection: {connection_id}", exit_code=1)
        return await executor.execute(command)

    def dispose(self) -> None:
        for executor in self._executors.values():
            executor.dispose()
        self._executors.clear()
