"""TCP port allocation on the host and inside the bridge service.

Probes run one port at a time in ascending order so the lowest free port
wins. A port reported free may still be taken before it is used; re-running
the session is the remedy.
"""

from __future__ import annotations

import logging
import socket
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from jumpbridge.containers.compose import ComposeCommand
from jumpbridge.errors import ConfigurationError, PortUnavailableError
from jumpbridge.executors.base import Executor

logger = logging.getLogger(__name__)

BIND_ADDRESS = "0.0.0.0"

CONTAINER_PROBE_SCRIPT = (
    '$s = @stream_socket_server("tcp://0.0.0.0:{port}"); '
    'if ($s) {{ fclose($s); echo "free"; }} else {{ echo "used"; }}'
)


class PortScope(str, Enum):
    """Network namespace a port was checked in."""

    HOST = "host"
    CONTAINER = "container"


@dataclass(frozen=True)
class PortSelection:
    """A port found free in a given scope."""

    port: int
    scope: PortScope


@dataclass(frozen=True)
class PortRange:
    """Inclusive range of candidate ports."""

    start: int
    end: int

    def __post_init__(self) -> None:
        for value in (self.start, self.end):
            if not 1 <= value <= 65535:
                raise ConfigurationError(f"Port out of range: {value}")
        if self.start > self.end:
            raise ConfigurationError(
                f"Invalid port range: {self.start}-{self.end}"
            )

    def __iter__(self):
        return iter(range(self.start, self.end + 1))

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


def parse_port(value: str | int, label: str = "port") -> int:
    """Parse a TCP port number (1-65535)."""
    try:
        port = int(str(value).strip())
    except ValueError:
        raise ConfigurationError(f"Invalid {label}: {value!r}") from None
    if not 1 <= port <= 65535:
        raise ConfigurationError(f"Invalid {label}: {value!r} (expected 1-65535)")
    return port


class PortProbe(ABC):
    """Answers whether a port is free in one scope."""

    scope: PortScope

    @abstractmethod
    def is_free(self, port: int) -> bool: ...


class HostPortProbe(PortProbe):
    """Tests a port by binding a TCP listener on all host interfaces."""

    scope = PortScope.HOST

    def __init__(self, bind_address: str = BIND_ADDRESS) -> None:
        self._bind_address = bind_address

    def is_free(self, port: int) -> bool:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            try:
                sock.bind((self._bind_address, port))
                sock.listen(1)
            except OSError:
                return False
        return True


class ContainerPortProbe(PortProbe):
    """Tests a port by opening a server socket inside the bridge service."""

    scope = PortScope.CONTAINER

    def __init__(
        self,
        executor: Executor,
        compose: ComposeCommand,
        service: str,
    ) -> None:
        self._executor = executor
        self._compose = compose
        self._service = service

    def is_free(self, port: int) -> bool:
        script = CONTAINER_PROBE_SCRIPT.format(port=port)
        result = self._executor.capture(
            self._compose.exec(self._service, "php", "-r", script)
        )
        if result.simulated:
            return True
        if not result.ok:
            logger.warning(
                "Container port probe for %d failed (exit %d): %s",
                port,
                result.returncode,
                result.stderr.strip(),
            )
            return False
        return result.stdout.strip() == "free"


def scan_ports(probe: PortProbe, port_range: PortRange) -> list[tuple[int, bool]]:
    """Probe every port in the range and report (port, free) pairs."""
    return [(port, probe.is_free(port)) for port in port_range]


def find_free_port(
    probe: PortProbe,
    port_range: PortRange,
    explicit: int | None = None,
    start: int | None = None,
) -> PortSelection:
    """Return the first free port, or validate an explicitly requested one.

    Args:
        probe: Probe for the scope being allocated.
        port_range: Candidate range; ``end`` is the upper bound of the scan.
        explicit: Requested port. Tested once, never substituted.
        start: First port to try instead of ``port_range.start``.

    Raises:
        PortUnavailableError: If the explicit port is busy or no port in the
            scanned range is free.
    """
    scope = probe.scope.value

    if explicit is not None:
        if probe.is_free(explicit):
            logger.info("Requested %s port %d is free", scope, explicit)
            return PortSelection(explicit, probe.scope)
        raise PortUnavailableError(
            f"Requested {scope} port {explicit} is already in use.",
            port=explicit,
            scope=scope,
            hint="Free the port or choose another with --http-port.",
        )

    first = port_range.start if start is None else start
    occupancy: list[str] = []
    for port in range(first, port_range.end + 1):
        if probe.is_free(port):
            logger.info("Selected %s port %d", scope, port)
            return PortSelection(port, probe.scope)
        occupancy.append(f"{port}:used")

    checked = f"{first}-{port_range.end}"
    raise PortUnavailableError(
        f"No free {scope} ports available in {checked}. "
        f"Occupancy: {', '.join(occupancy) or 'none checked'}",
        scope=scope,
        hint="Stop whatever holds these ports, then re-run.",
    )
