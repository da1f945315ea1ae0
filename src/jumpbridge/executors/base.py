"""Base executor class."""

import shutil
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class CommandResult:
    """Outcome of an external command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    simulated: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class Executor(ABC):
    """Runs the external commands of a session.

    Every side effect of a session goes through one executor instance, so
    a dry run only has to swap the executor.
    """

    name: str
    dry_run: bool = False

    @abstractmethod
    def run(
        self,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
        input: str | None = None,
    ) -> CommandResult:
        """Run a command with inherited output streams.

        Raises CommandError if the command exits non-zero.
        """
        ...

    @abstractmethod
    def capture(
        self,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run a command and capture its text output. Never raises on exit code."""
        ...

    @abstractmethod
    def handoff(
        self,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> int:
        """Run the long-running terminal command and return its exit code."""
        ...

    def which(self, name: str) -> str | None:
        """Locate an executable on PATH."""
        return shutil.which(name)
