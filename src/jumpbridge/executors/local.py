"""Local executor implementation."""

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence

from jumpbridge.errors import CommandError, ToolingError
from jumpbridge.executors.base import CommandResult, Executor

logger = logging.getLogger(__name__)

INSTALL_HINTS = {
    "docker": "Install Docker Desktop or the Docker Engine with the compose plugin.",
    "adb": "Install Android platform-tools and make sure `adb` is on PATH.",
}


def _merged_env(env: Mapping[str, str] | None) -> dict[str, str] | None:
    if not env:
        return None
    return {**os.environ, **env}


def _missing_tool(args: Sequence[str]) -> ToolingError:
    tool = os.path.basename(args[0]) if args else ""
    tool = tool.removesuffix(".exe")
    return ToolingError(
        f"Executable not found: {args[0]}",
        INSTALL_HINTS.get(tool),
    )


class LocalExecutor(Executor):
    """Executor that performs commands as child processes."""

    name = "local"
    dry_run = False

    def run(
        self,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
        input: str | None = None,
    ) -> CommandResult:
        """Run a command with inherited output streams."""
        logger.debug("Running: %s", " ".join(args))
        try:
            result = subprocess.run(
                list(args),
                env=_merged_env(env),
                input=input,
                text=True,
            )
        except FileNotFoundError as e:
            raise _missing_tool(args) from e

        if result.returncode != 0:
            raise CommandError(args, result.returncode)
        return CommandResult(args=tuple(args), returncode=result.returncode)

    def capture(
        self,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run a command and capture its text output."""
        logger.debug("Capturing: %s", " ".join(args))
        try:
            result = subprocess.run(
                list(args),
                env=_merged_env(env),
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            raise _missing_tool(args) from e

        return CommandResult(
            args=tuple(args),
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )

    def handoff(
        self,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> int:
        """Run the bridge command in the foreground until it exits."""
        logger.debug("Handing off to: %s", " ".join(args))
        try:
            result = subprocess.run(list(args), env=_merged_env(env))
        except FileNotFoundError as e:
            raise _missing_tool(args) from e
        return result.returncode
