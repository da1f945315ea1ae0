"""Tool settings schema for jumpbridge."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_ROUTER_PATH = (
    "/workspace/mobile-app/vendor/nativephp/mobile/resources/jump/router.php"
)

_INT_FIELDS = {"port_range_start", "port_range_end", "ws_port", "proxy_port"}
_OPTIONAL_FIELDS = {"compose_file", "project_dir"}


@dataclass(frozen=True)
class BridgeSettings:
    """Settings that describe the local tooling and compose project.

    Values come from built-in defaults overlaid by the global
    (~/.jumpbridge/config.yaml) and local (./.jumpbridge/config.yaml) files.
    """

    # Executables
    docker_bin: str = "docker"
    adb_bin: str = "adb"

    # Compose project
    compose_file: str | None = None
    project_dir: str | None = None
    app_service: str = "backend-api"
    bridge_service: str = "mobile-web"
    router_path: str = DEFAULT_ROUTER_PATH

    # Ports
    port_range_start: int = 3000
    port_range_end: int = 3010
    ws_port: int = 8081
    proxy_port: int = 8080

    # Env files relative to the project root, highest precedence first
    env_files: tuple[str, ...] = (".env", "mobile-app/.env")

    # Jump endpoints shown in the connection summary
    info_path: str = "/jump/info"
    ping_path: str = "/jump/ping"
    download_path: str = "/jump/download"

    def overlay(self, data: dict[str, Any]) -> BridgeSettings:
        """Return new settings with the known keys of `data` applied.

        Unknown keys and values that cannot be coerced are ignored.
        """
        changes: dict[str, Any] = {}
        for f in fields(self):
            if f.name not in data:
                continue
            raw = data[f.name]
            try:
                changes[f.name] = _coerce(f.name, raw)
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid setting %s=%r", f.name, raw)
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a YAML friendly dictionary, excluding None values."""
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            result[f.name] = list(value) if isinstance(value, tuple) else value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BridgeSettings:
        """Create settings from a dictionary on top of the defaults."""
        return cls().overlay(data)


def _coerce(name: str, raw: Any) -> Any:
    if name in _INT_FIELDS:
        if isinstance(raw, bool):
            raise TypeError(name)
        return int(raw)
    if name == "env_files":
        if isinstance(raw, str):
            return (raw,)
        if not isinstance(raw, list | tuple):
            raise TypeError(name)
        return tuple(str(item) for item in raw)
    if raw is None:
        if name in _OPTIONAL_FIELDS:
            return None
        raise TypeError(name)
    return str(raw)


DEFAULT_SETTINGS = BridgeSettings()
