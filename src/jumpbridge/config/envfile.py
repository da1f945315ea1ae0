"""Layered ``.env`` style configuration.

Files are parsed line by line as ``KEY=VALUE``. Blank lines and ``#``
comments are skipped, the first ``=`` splits key from value, and one pair of
matching enclosing quotes is stripped from the value. Duplicate keys are
allowed (last one wins) and recorded so callers can warn about them.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from jumpbridge.errors import ConfigurationError

logger = logging.getLogger(__name__)

PROCESS_SOURCE = "process"

HOST_IP_KEY = "NATIVEPHP_HOST_IP"
HTTP_PORT_KEY = "LAB_JUMP_HTTP_PORT"
WS_PORT_KEY = "LAB_JUMP_WS_PORT"
PROXY_PORT_KEY = "NATIVEPHP_LARAVEL_PORT"

KNOWN_KEYS = (HOST_IP_KEY, HTTP_PORT_KEY, WS_PORT_KEY, PROXY_PORT_KEY)

# Only LF and CRLF end a line; other Unicode breaks belong to the value.
_LINE_BREAK = re.compile(r"\r?\n")


@dataclass(frozen=True)
class Occurrence:
    """A single ``KEY=VALUE`` line."""

    line: int
    value: str


@dataclass(frozen=True)
class DuplicateRecord:
    """A key that appears more than once in one file."""

    key: str
    occurrences: tuple[Occurrence, ...]
    final_occurrence: Occurrence
    empty_overrides_non_empty: bool
    overridden_non_empty_occurrence: Occurrence | None


@dataclass(frozen=True)
class ConfigSnapshot:
    """Parsed contents of one env file."""

    path: Path | None
    exists: bool
    values: Mapping[str, str] = field(default_factory=dict)
    duplicates: tuple[DuplicateRecord, ...] = ()

    def get(self, key: str) -> str | None:
        return self.values.get(key)


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def parse_env_text(text: str, path: Path | None = None) -> ConfigSnapshot:
    """Parse env file text into a snapshot."""
    values: dict[str, str] = {}
    occurrences_by_key: dict[str, list[Occurrence]] = {}

    for index, raw_line in enumerate(_LINE_BREAK.split(text), start=1):
        stripped = raw_line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            continue

        raw_key, raw_value = stripped.split("=", 1)
        key = raw_key.strip()
        value = _strip_quotes(raw_value.strip())

        occurrences_by_key.setdefault(key, []).append(Occurrence(index, value))
        values[key] = value

    duplicates: list[DuplicateRecord] = []
    for key, occurrences in occurrences_by_key.items():
        if len(occurrences) < 2:
            continue
        final = occurrences[-1]
        earlier_non_empty = next(
            (entry for entry in reversed(occurrences[:-1]) if entry.value != ""),
            None,
        )
        duplicates.append(
            DuplicateRecord(
                key=key,
                occurrences=tuple(occurrences),
                final_occurrence=final,
                empty_overrides_non_empty=(
                    final.value == "" and earlier_non_empty is not None
                ),
                overridden_non_empty_occurrence=earlier_non_empty,
            )
        )

    return ConfigSnapshot(
        path=path,
        exists=True,
        values=values,
        duplicates=tuple(duplicates),
    )


def load_env_file(path: Path) -> ConfigSnapshot:
    """Load an env file; a missing file yields an empty snapshot."""
    if not path.is_file():
        logger.debug("Env file not found: %s", path)
        return ConfigSnapshot(path=path, exists=False)
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(
            f"Cannot read {path}: {e}",
            "Save the file as UTF-8 text and check its permissions.",
        ) from e
    return parse_env_text(text, path)


def _format_value(value: str) -> str:
    return "<empty>" if value == "" else value


def duplicate_warnings(label: str, snapshot: ConfigSnapshot) -> list[str]:
    """Build human-readable warnings for duplicate keys in a snapshot."""
    warnings: list[str] = []
    for duplicate in snapshot.duplicates:
        lines = ", ".join(str(entry.line) for entry in duplicate.occurrences)
        message = (
            f"{label}: duplicate key `{duplicate.key}` at lines {lines}. "
            f"Final value is {_format_value(duplicate.final_occurrence.value)}."
        )
        overridden = duplicate.overridden_non_empty_occurrence
        if duplicate.empty_overrides_non_empty and overridden is not None:
            message += (
                f" Empty value on line {duplicate.final_occurrence.line} overrides "
                f"non-empty value from line {overridden.line}."
            )
        warnings.append(message)
    return warnings


class EnvConfig:
    """Read-only view over the process environment and env files.

    Lookup precedence is process environment, then each file in order. Empty
    values fall through to the next layer.
    """

    def __init__(
        self,
        snapshots: Sequence[tuple[str, ConfigSnapshot]] = (),
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._snapshots = tuple(snapshots)
        self._environ = dict(environ) if environ is not None else {}

    @property
    def snapshots(self) -> tuple[tuple[str, ConfigSnapshot], ...]:
        """Labelled snapshots in lookup order."""
        return self._snapshots

    def _lookup(self, key: str) -> tuple[str, str] | None:
        value = self._environ.get(key)
        if value:
            return value, PROCESS_SOURCE
        for label, snapshot in self._snapshots:
            value = snapshot.get(key)
            if value:
                return value, label
        return None

    def get(self, key: str) -> str | None:
        """Return the first non-empty value for key, or None."""
        found = self._lookup(key)
        return found[0] if found else None

    def source_of(self, key: str) -> str | None:
        """Return the label of the layer that supplies key, or None."""
        found = self._lookup(key)
        return found[1] if found else None

    def warnings(self) -> list[str]:
        """Duplicate-key warnings for every loaded file."""
        result: list[str] = []
        for label, snapshot in self._snapshots:
            result.extend(duplicate_warnings(label, snapshot))
        return result


def load_env_config(
    root: Path,
    env_files: Sequence[str],
    environ: Mapping[str, str] | None = None,
) -> EnvConfig:
    """Build the layered env config for a project root.

    Args:
        root: Project root the env file paths are relative to.
        env_files: Relative file paths in precedence order.
        environ: Process environment; defaults to ``os.environ``.
    """
    snapshots = [
        (relative, load_env_file(root / relative)) for relative in env_files
    ]
    return EnvConfig(
        snapshots,
        environ=os.environ if environ is None else environ,
    )
