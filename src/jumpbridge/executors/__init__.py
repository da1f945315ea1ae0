"""Executor registry and utilities."""

from jumpbridge.executors.base import CommandResult, Executor
from jumpbridge.executors.dry_run import DryRunExecutor
from jumpbridge.executors.local import LocalExecutor

EXECUTORS: dict[str, type[Executor]] = {
    "local": LocalExecutor,
    "dry-run": DryRunExecutor,
}

DEFAULT_EXECUTOR = "local"


def get_executor(dry_run: bool = False) -> Executor:
    """Get the executor for a session. Defaults to running real commands."""
    executor_name = "dry-run" if dry_run else DEFAULT_EXECUTOR
    return EXECUTORS[executor_name]()


__all__ = [
    "DEFAULT_EXECUTOR",
    "EXECUTORS",
    "CommandResult",
    "DryRunExecutor",
    "Executor",
    "LocalExecutor",
    "get_executor",
]
