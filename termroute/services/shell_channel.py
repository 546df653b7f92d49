"""Shell channel: the write side of a session's shell process.

The dispatcher only ever writes to a shell; reading and rendering its output
belongs to the terminal front end. A handle is whatever the channel returns
from ``open``; the dispatcher treats it as opaque.

Example:
    channel = SubprocessShellChannel()
    handle = await channel.open("tab-1", cwd="/home/me")
    await channel.write(handle, b"ls -la\\n")
    await channel.close(handle)
"""

import asyncio
import logging
import os
from typing import Protocol

from termroute.errors.domain import ShellWriteError

logger = logging.getLogger(__name__)

DEFAULT_SHELL = "/bin/sh"


class ShellChannel(Protocol):
    """Write-only transport to a live shell."""

    async def write(self, handle: str, data: bytes) -> None:
        """Write raw bytes to the shell identified by *handle*.

        Raises:
            ShellWriteError: If the write cannot be completed.
        """
        ...


def resolve_shell(executable: str | None = None) -> str:
    """Pick the shell program: explicit value, then $SHELL, then /bin/sh."""
    return executable or os.environ.get("SHELL") or DEFAULT_SHELL


class SubprocessShellChannel:
    """Shell channel backed by one long-lived shell subprocess per handle.

    Each shell reads commands from a stdin pipe; its stdout and stderr are
    inherited from the host process so output appears in the terminal.

    Attributes:
        executable: Shell program to launch.
    """

    def __init__(self, executable: str | None = None) -> None:
        self.executable = resolve_shell(executable)
        self._processes: dict[str, asyncio.subprocess.Process] = {}

    @property
    def shell_name(self) -> str:
        """Program name of the shell, e.g. 'bash'."""
        return os.path.basename(self.executable)

    async def open(self, handle: str, cwd: str | None = None) -> str:
        """Start a shell process for *handle* and return the handle.

        Raises:
            ShellWriteError: If the shell program cannot be started.
        """
        if handle in self._processes:
            return handle
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                stdin=asyncio.subprocess.PIPE,
                cwd=cwd,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ShellWriteError(f"Failed to start shell {self.executable}: {e}") from e
        self._processes[handle] = process
        logger.info("Started shell %s for %s (PID: %s)", self.executable, handle, process.pid)
        return handle

    def is_running(self, handle: str) -> bool:
        """True if the shell for *handle* exists and has not exited."""
        process = self._processes.get(handle)
        return process is not None and process.returncode is None

    async def write(self, handle: str, data: bytes) -> None:
        """Write *data* to the shell's stdin and wait for it to drain."""
        process = self._processes.get(handle)
        if process is None or process.stdin is None:
            raise ShellWriteError(f"No shell process for handle '{handle}'")
        if process.returncode is not None:
            raise ShellWriteError(f"Shell exited with status {process.returncode}")
        try:
            process.stdin.write(data)
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise ShellWriteError(f"Shell pipe closed: {e}") from e

    async def close(self, handle: str) -> None:
        """Shut down the shell for *handle*, killing it if it does not exit."""
        process = self._processes.pop(handle, None)
        if process is None:
            return
        try:
            if process.stdin and not process.stdin.is_closing():
                process.stdin.close()
            try:
                await asyncio.wait_for(process.wait(), timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("Shell for %s did not exit gracefully, killing", handle)
                process.kill()
                await process.wait()
            logger.info("Shell for %s shut down", handle)
        except ProcessLookupError:
            logger.debug("Shell for %s already exited", handle)
