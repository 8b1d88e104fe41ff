"""Remote command execution behind a pluggable capability interface.

The prober and lifecycle controller never build ssh command lines
themselves; they talk to a ``RemoteExecutor``. ``SSHExecutor`` is the
production transport. Tests substitute an in-memory fake.

Usage:
    from clusterctl.coordination.remote_executor import SSHExecutor

    executor = SSHExecutor(env, coordinator=topology.coordinator)
    if await executor.is_reachable("hadoop-slave1"):
        result = await executor.run_command("hadoop-slave1", "jps")
"""

from __future__ import annotations

import asyncio
import logging
import socket
import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from clusterctl.config.preconditions import ClusterEnvironment
from clusterctl.utils.async_utils import SubprocessTimeoutError, run_shell, run_subprocess
from clusterctl.utils.exceptions import NETWORK_ERRORS, PROCESS_ERRORS

__all__ = [
    "CommandResult",
    "RemoteExecutor",
    "SSHExecutor",
    "TIMEOUT_EXIT_CODE",
]

logger = logging.getLogger(__name__)

# Same convention as coreutils timeout(1)
TIMEOUT_EXIT_CODE = 124
LOCAL_ALIASES = frozenset({"localhost", "127.0.0.1", "::1"})


@dataclass
class CommandResult:
    """Result of one command on one node."""

    node: str
    command: str
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    error: str | None = None
    elapsed_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out and self.error is None

    @property
    def output(self) -> str:
        """Combined output for convenience."""
        return self.stdout + self.stderr

    def __bool__(self) -> bool:
        return self.success


@runtime_checkable
class RemoteExecutor(Protocol):
    """Capability interface for talking to cluster nodes."""

    async def is_reachable(self, node: str) -> bool:
        """Bounded-timeout network-layer probe."""
        ...

    async def run_command(self, node: str, command: str, timeout: float | None = None) -> CommandResult:
        """Run a shell command on ``node``. Never raises for command failures."""
        ...


class SSHExecutor:
    """Runs coordinator commands locally and worker commands over SSH."""

    def __init__(self, env: ClusterEnvironment, coordinator: str | None = None):
        self._env = env
        self._settings = env.settings
        self._coordinator = coordinator or socket.gethostname()
        self._local_names = LOCAL_ALIASES | {self._coordinator, socket.gethostname()}

    def is_local(self, node: str) -> bool:
        return node in self._local_names

    # -------------------------------------------------------------------------
    # Reachability
    # -------------------------------------------------------------------------

    async def is_reachable(self, node: str) -> bool:
        if self.is_local(node):
            return True

        wait = max(1, int(round(self._settings.reachability_timeout)))
        try:
            result = await run_subprocess(
                ["ping", "-c", "1", "-W", str(wait), node],
                timeout=wait + 2.0,
            )
            return result.success
        except SubprocessTimeoutError:
            return False
        except PROCESS_ERRORS as e:
            logger.debug(f"[SSHExecutor] ping unavailable ({e}), falling back to TCP probe")
            return await self._tcp_probe(node)

    async def _tcp_probe(self, node: str) -> bool:
        try:
            _reader, writer = await asyncio.wait_for(
                asyncio.open_connection(node, self._settings.ssh_port),
                timeout=self._settings.reachability_timeout,
            )
        except NETWORK_ERRORS:
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except NETWORK_ERRORS:
            pass
        return True

    # -------------------------------------------------------------------------
    # Command execution
    # -------------------------------------------------------------------------

    def build_ssh_command(self, node: str, command: str) -> list[str]:
        """argv for a non-interactive, bounded-connect SSH invocation."""
        argv = [
            "ssh",
            "-o", "BatchMode=yes",
            "-o", f"ConnectTimeout={self._settings.ssh_connect_timeout}",
        ]
        if self._settings.ssh_port != 22:
            argv.extend(["-p", str(self._settings.ssh_port)])
        target = f"{self._settings.ssh_user}@{node}" if self._settings.ssh_user else node
        argv.append(target)
        argv.append(command)
        return argv

    async def run_command(self, node: str, command: str, timeout: float | None = None) -> CommandResult:
        effective_timeout = timeout or self._settings.command_timeout
        start = time.monotonic()
        local = self.is_local(node)
        try:
            if local:
                proc = await run_shell(command, timeout=effective_timeout, env=self._env.subprocess_env())
            else:
                proc = await run_subprocess(self.build_ssh_command(node, command), timeout=effective_timeout)
        except SubprocessTimeoutError:
            logger.warning(f"[SSHExecutor] '{_short(command)}' on {node} timed out after {effective_timeout}s")
            return CommandResult(
                node=node,
                command=command,
                returncode=TIMEOUT_EXIT_CODE,
                timed_out=True,
                error=f"timed out after {effective_timeout}s",
                elapsed_ms=(time.monotonic() - start) * 1000,
            )
        except PROCESS_ERRORS as e:
            return CommandResult(
                node=node,
                command=command,
                returncode=-1,
                error=f"{type(e).__name__}: {e}",
                elapsed_ms=(time.monotonic() - start) * 1000,
            )

        result = CommandResult(
            node=node,
            command=command,
            returncode=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
            elapsed_ms=(time.monotonic() - start) * 1000,
        )
        logger.debug(
            f"[SSHExecutor] {'local' if local else node}: '{_short(command)}' -> "
            f"{result.returncode} ({result.elapsed_ms:.0f}ms)"
        )
        return result


def _short(command: str, limit: int = 60) -> str:
    text = " ".join(command.split())
    return text if len(text) <= limit else text[: limit - 3] + "..."
