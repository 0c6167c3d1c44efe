"""
Job-related type definitions for internal use.
"""

from dataclasses import dataclass

from queuectl.constants import RUNNER_FAILURE_EXIT_CODE


@dataclass(frozen=True)
class CommandResult:
    """
    Result of running a command to completion.
    Returned by command runners.
    """

    exit_code: int
    output: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class ExecutionOutcome:
    """
    What the finalize transition needs to know about one execution.

    A command that could not be started is recorded with exit code -1 and
    the runner's error message.
    """

    exit_code: int
    output: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @classmethod
    def from_result(cls, result: CommandResult) -> "ExecutionOutcome":
        error = None if result.success else f"exited with code {result.exit_code}"
        return cls(exit_code=result.exit_code, output=result.output, error=error)

    @classmethod
    def runner_failure(cls, message: str) -> "ExecutionOutcome":
        return cls(exit_code=RUNNER_FAILURE_EXIT_CODE, output=None, error=message)
