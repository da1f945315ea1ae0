"""Dry-run executor implementation."""

import shlex
from collections.abc import Mapping, Sequence

from jumpbridge.console import console
from jumpbridge.executors.base import CommandResult, Executor


class DryRunExecutor(Executor):
    """Executor that prints intended commands instead of running them.

    Every command reports success with ``simulated=True`` so query callers
    can tell a synthetic answer from a real one.
    """

    name = "dry-run"
    dry_run = True

    def __init__(self) -> None:
        self.commands: list[tuple[str, ...]] = []

    def _announce(
        self,
        args: Sequence[str],
        env: Mapping[str, str] | None,
    ) -> CommandResult:
        self.commands.append(tuple(args))
        if env:
            overrides = " ".join(f"{key}={value}" for key, value in env.items())
            console.print(f"[dry-run] env {overrides}", style="dim", markup=False)
        console.print(f"[dry-run] {shlex.join(args)}", style="dim", markup=False)
        return CommandResult(args=tuple(args), returncode=0, simulated=True)

    def run(
        self,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
        input: str | None = None,
    ) -> CommandResult:
        return self._announce(args, env)

    def capture(
        self,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        return self._announce(args, env)

    def handoff(
        self,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> int:
        self._announce(args, env)
        return 0
