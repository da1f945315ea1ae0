"""Configuration: env files, tool settings and preflight checks."""

from jumpbridge.config.envfile import (
    ConfigSnapshot,
    DuplicateRecord,
    EnvConfig,
    Occurrence,
    duplicate_warnings,
    load_env_config,
    load_env_file,
    parse_env_text,
)
from jumpbridge.config.loader import (
    config_path,
    load_settings,
    read_settings_file,
    resolve_project_root,
    save_settings,
)
from jumpbridge.config.schema import DEFAULT_SETTINGS, BridgeSettings

__all__ = [
    "DEFAULT_SETTINGS",
    "BridgeSettings",
    "ConfigSnapshot",
    "DuplicateRecord",
    "EnvConfig",
    "Occurrence",
    "config_path",
    "duplicate_warnings",
    "load_env_config",
    "load_env_file",
    "load_settings",
    "parse_env_text",
    "read_settings_file",
    "resolve_project_root",
    "save_settings",
]
