"""Settings file loading and merging."""

import logging
from pathlib import Path
from typing import Any, Literal

import yaml

from jumpbridge.config.schema import DEFAULT_SETTINGS, BridgeSettings

logger = logging.getLogger(__name__)

ConfigScope = Literal["home", "local"]

# Lowest precedence first.
SCOPES: tuple[ConfigScope, ...] = ("home", "local")

CONFIG_DIRNAME = ".jumpbridge"
CONFIG_FILENAME = "config.yaml"


def config_path(scope: ConfigScope) -> Path:
    """Settings file of a scope.

    ``home`` is ``~/.jumpbridge/config.yaml``, ``local`` is
    ``./.jumpbridge/config.yaml`` relative to the working directory.
    """
    base = Path.home() if scope == "home" else Path.cwd()
    return base / CONFIG_DIRNAME / CONFIG_FILENAME


def read_settings_file(path: Path) -> dict[str, Any] | None:
    """Read one settings file.

    A missing, empty or unreadable file, broken YAML and a top level that is
    not a mapping all count as "no settings" (logged, never raised).
    """
    if not path.is_file():
        return None
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.warning("Ignoring settings file %s: %s", path, e)
        return None
    if data is None:
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring settings file %s: top level is not a mapping", path)
        return None
    return data


def load_settings() -> BridgeSettings:
    """Built-in defaults overlaid by the home and then the local settings file."""
    settings = DEFAULT_SETTINGS
    for scope in SCOPES:
        data = read_settings_file(config_path(scope))
        if data:
            logger.debug("Applying %s settings from %s", scope, config_path(scope))
            settings = settings.overlay(data)
    return settings


def save_settings(settings: BridgeSettings, path: Path) -> None:
    """Save settings to a YAML file, creating parent directories if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False)


def resolve_project_root(settings: BridgeSettings) -> Path:
    """Directory the env files and compose project are resolved from."""
    if settings.project_dir:
        return Path(settings.project_dir).expanduser().resolve()
    return Path.cwd()
