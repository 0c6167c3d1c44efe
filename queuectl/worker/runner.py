"""
Command runners.

A runner turns a command string into a CommandResult, or raises
RunnerError when the command cannot be started at all. Commands that start
and then fail are results with a non-zero exit code, not errors.
"""

import asyncio
import logging
from typing import Protocol

from queuectl.exceptions import RunnerError
from queuectl.types.job import CommandResult

logger = logging.getLogger(__name__)


class CommandRunner(Protocol):
    async def execute(self, command: str) -> CommandResult: ...


class ShellCommandRunner:
    """
    Runs commands through the system shell as asyncio subprocesses.

    stderr is merged into stdout so the captured output keeps the order in
    which the command wrote it. Children run in their own session, so a
    Ctrl+C aimed at the worker process does not kill in-flight commands.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    async def execute(self, command: str) -> CommandResult:
        """
        Run a command to completion.

        Args:
            command: Shell command text.

        Returns:
            CommandResult with the exit code and combined output.

        Raises:
            RunnerError: If the subprocess could not be created, including
                commands the OS rejects outright such as ones with NUL bytes.
        """
        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            logger.error(f"Failed to start command: {e}", extra={"command": command})
            raise RunnerError(f"Failed to start command: {e}") from e

        logger.debug("Command started", extra={"pid": proc.pid})

        stdout, _ = await proc.communicate()
        return CommandResult(
            exit_code=proc.returncode,
            output=stdout.decode(self.encoding, errors="replace"),
        )
