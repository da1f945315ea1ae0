"""Default-route interface detection.

One probe per operating system. A probe that cannot run or cannot parse the
routing table returns None; callers treat that as "no default route known".
"""

import logging
import re
import subprocess
import sys
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class DefaultRouteProbe(ABC):
    """Reports the interface the OS uses for general outbound traffic."""

    command: list[str] = []

    def current_interface_name(self) -> str | None:
        """Return the default-route interface name, or None if unknown."""
        if not self.command:
            return None
        try:
            result = subprocess.run(
                self.command,
                capture_output=True,
                text=True,
            )
        except OSError:
            logger.debug("Route probe unavailable: %s", self.command[0])
            return None
        if result.returncode != 0:
            logger.debug(
                "Route probe failed (exit %d): %s", result.returncode, result.stderr
            )
            return None
        name = self.parse(result.stdout)
        logger.debug("Default route interface: %s", name)
        return name

    @abstractmethod
    def parse(self, output: str) -> str | None:
        """Extract the interface name from the probe output."""
        ...


class LinuxRouteProbe(DefaultRouteProbe):
    """Uses ``ip route show default``."""

    command = ["ip", "route", "show", "default"]

    def parse(self, output: str) -> str | None:
        match = re.search(r"\bdev\s+(\S+)", output)
        return match.group(1) if match else None


class DarwinRouteProbe(DefaultRouteProbe):
    """Uses ``route -n get default``."""

    command = ["route", "-n", "get", "default"]

    def parse(self, output: str) -> str | None:
        match = re.search(r"^\s*interface:\s*(\S+)", output, re.MULTILINE)
        return match.group(1) if match else None


class WindowsRouteProbe(DefaultRouteProbe):
    """Uses PowerShell ``Get-NetRoute`` and picks the lowest metric route."""

    command = [
        "powershell",
        "-NoProfile",
        "-Command",
        "Get-NetRoute -DestinationPrefix 0.0.0.0/0 | "
        "Sort-Object RouteMetric | Select-Object -First 1 "
        "-ExpandProperty InterfaceAlias",
    ]

    def parse(self, output: str) -> str | None:
        name = output.strip().splitlines()[0].strip() if output.strip() else ""
        return name or None


class NullRouteProbe(DefaultRouteProbe):
    """Probe for platforms without a known routing query."""

    def parse(self, output: str) -> str | None:
        return None


def get_route_probe(platform: str | None = None) -> DefaultRouteProbe:
    """Select the route probe for a ``sys.platform`` identifier."""
    platform = platform or sys.platform
    if platform.startswith("linux"):
        return LinuxRouteProbe()
    if platform == "darwin":
        return DarwinRouteProbe()
    if platform in ("win32", "cygwin"):
        return WindowsRouteProbe()
    return NullRouteProbe()
