"""Library for running package manager commands using asyncio.

Used to invoke package lifecycle scripts and package manager commands in a
project directory. Commands run through the shell so that the package manager
binaries are resolved the same way as in an interactive terminal. Scripts run
`loud`, streaming their output to the terminal, while other commands have their
output captured and returned.
"""

import asyncio
from dataclasses import dataclass
import logging
import os
from pathlib import Path
import shlex
import subprocess

from .exceptions import CommandException

_LOGGER = logging.getLogger(__name__)

# Bounds the number of package manager processes running at once
_SEM = asyncio.Semaphore(4)


# No public API
__all__: list[str] = []


@dataclass
class Command:
    """A command line to run in a project directory."""

    cmd: list[str]
    """Program and arguments."""

    cwd: Path | None = None
    """Directory to run in, the current directory when unset."""

    exc: type[CommandException] = CommandException
    """Exception raised when the command fails."""

    loud: bool = False
    """Stream output to the terminal instead of capturing it."""

    env: dict[str, str] | None = None
    """Variables added to the environment of the process."""

    timeout: float | None = None
    """Seconds to wait before failing, or no limit."""

    @property
    def string(self) -> str:
        """The command line as passed to the shell."""
        return shlex.join(self.cmd)

    def __str__(self) -> str:
        """Render as a debug string."""
        if self.cwd:
            return f"{self.string} (in {self.cwd})"
        return self.string

    def _error(self, returncode: int, out: bytes | None, err: bytes | None) -> str:
        lines = [f"Command '{self}' failed with return code {returncode}"]
        lines.extend(
            stream.decode("utf-8", errors="replace") for stream in (out, err) if stream
        )
        return "\n".join(lines)

    async def run(self) -> str:
        """Run the command, returning captured stdout (empty when loud)."""
        _LOGGER.debug("Running command: %s", self)
        pipe = None if self.loud else subprocess.PIPE
        proc = await asyncio.create_subprocess_shell(
            self.string,
            stdin=subprocess.DEVNULL,
            stdout=pipe,
            stderr=pipe,
            cwd=self.cwd,
            env={**os.environ, **(self.env or {})},
        )
        try:
            out, err = await asyncio.wait_for(proc.communicate(), self.timeout)
        except asyncio.TimeoutError as error:
            proc.kill()
            raise self.exc(f"Command '{self}' timed out") from error
        if proc.returncode:
            message = self._error(proc.returncode, out, err)
            _LOGGER.debug(message)
            raise self.exc(message)
        return out.decode("utf-8") if out else ""


async def run(cmd: Command) -> str:
    """Run the command, waiting for a free slot, and return stdout."""
    async with _SEM:
        return await cmd.run()
