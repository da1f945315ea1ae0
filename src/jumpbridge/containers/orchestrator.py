"""Bring-up and router compatibility patching of the compose services."""

from __future__ import annotations

import logging
import re
import shlex

from jumpbridge.config.envfile import HTTP_PORT_KEY, WS_PORT_KEY
from jumpbridge.config.schema import BridgeSettings
from jumpbridge.console import console
from jumpbridge.containers.compose import ComposeCommand
from jumpbridge.errors import (
    CommandError,
    IntegrityError,
    RouterFileMissingError,
    ServiceNotRunningError,
)
from jumpbridge.executors.base import Executor

logger = logging.getLogger(__name__)

MISSING_SENTINEL = "__JUMPBRIDGE_MISSING__"
MISSING_EXIT_CODE = 3

START_HINT = "Start Docker, then run: docker compose up -d"

# Header lists are PHP arrays; the one that matters strips hop-by-hop headers.
_HEADER_LIST = re.compile(
    r"""\[[^\[\]]*(['"])transfer-encoding\1[^\[\]]*\]"""
    r"""|array\([^()]*(['"])transfer-encoding\2[^()]*\)""",
    re.IGNORECASE,
)
_HOST_AFTER_COMMA = re.compile(r"""\s*,\s*(['"])host\1""", re.IGNORECASE)
_HOST_BEFORE_COMMA = re.compile(r"""(['"])host\1\s*,\s*""", re.IGNORECASE)
_HOST_ENTRY = re.compile(r"""(['"])host\1""", re.IGNORECASE)


def _drop_host(match: re.Match[str]) -> str:
    header_list = match.group(0)
    header_list = _HOST_AFTER_COMMA.sub("", header_list)
    return _HOST_BEFORE_COMMA.sub("", header_list)


def patch_router_source(source: str) -> str:
    """Remove ``host`` from the stripped proxy header list.

    Returns the source unchanged when the header is already absent.
    """
    return _HEADER_LIST.sub(_drop_host, source)


def strips_host_header(source: str) -> bool:
    """Check whether the stripped proxy header list still names ``host``."""
    return any(
        _HOST_ENTRY.search(match.group(0))
        for match in _HEADER_LIST.finditer(source)
    )


class ContainerOrchestrator:
    """Prepares the compose services a Jump session depends on.

    Steps run in order: start services, verify the bridge service runs,
    patch the router, verify the patch. Nothing is rolled back on failure.
    """

    def __init__(
        self,
        executor: Executor,
        compose: ComposeCommand,
        settings: BridgeSettings,
    ) -> None:
        self._executor = executor
        self._compose = compose
        self._settings = settings

    @property
    def bridge_service(self) -> str:
        return self._settings.bridge_service

    def start_services(self, http_port: int, ws_port: int) -> None:
        """Start the app and bridge services with the negotiated ports."""
        services = [self._settings.app_service, self._settings.bridge_service]
        console.print(f"[dim]Starting services: {', '.join(services)}[/dim]")
        self._executor.run(
            self._compose.up(*services),
            env={HTTP_PORT_KEY: str(http_port), WS_PORT_KEY: str(ws_port)},
        )

    def verify_running(self) -> None:
        """Raise ServiceNotRunningError unless the bridge service is running."""
        args = self._compose.ps_running()
        result = self._executor.capture(args)
        if result.simulated:
            return
        if not result.ok:
            raise ServiceNotRunningError(
                f"Command failed ({' '.join(args)}), exit code {result.returncode}",
                START_HINT,
            )
        running = {line.strip() for line in result.stdout.splitlines() if line.strip()}
        if self.bridge_service not in running:
            raise ServiceNotRunningError(
                f"Service '{self.bridge_service}' is not running.",
                START_HINT,
            )
        logger.info("Service %s is running", self.bridge_service)

    def read_router(self) -> str | None:
        """Read the router file from the bridge service.

        Returns None when the executor only simulates commands.
        """
        path = shlex.quote(self._settings.router_path)
        script = (
            f"if [ -f {path} ]; then cat {path}; "
            f"else echo {MISSING_SENTINEL}; exit {MISSING_EXIT_CODE}; fi"
        )
        args = self._compose.exec(self.bridge_service, "sh", "-c", script)
        result = self._executor.capture(args)
        if result.simulated:
            return None
        if result.returncode == MISSING_EXIT_CODE and MISSING_SENTINEL in result.stdout:
            raise RouterFileMissingError(
                f"Router file not found in '{self.bridge_service}': "
                f"{self._settings.router_path}",
                "Install the mobile app dependencies inside the service "
                "(composer install) and re-run.",
            )
        if not result.ok:
            raise CommandError(args, result.returncode)
        return result.stdout

    def write_router(self, source: str) -> None:
        path = shlex.quote(self._settings.router_path)
        self._executor.run(
            self._compose.exec(self.bridge_service, "sh", "-c", f"cat > {path}"),
            input=source,
        )

    def apply_router_patch(self) -> bool:
        """Stop the router from stripping the Host header when proxying.

        Returns True if the file was rewritten, False if it already had the
        patch (or the run is simulated).
        """
        source = self.read_router()
        if source is None:
            console.print(
                f"[dry-run] would remove 'host' from stripped headers in "
                f"{self._settings.router_path}",
                style="dim",
                markup=False,
            )
            return False
        patched = patch_router_source(source)
        if patched == source:
            logger.info("Router patch already applied")
            return False
        self.write_router(patched)
        console.print("[dim]Patched Jump router host forwarding[/dim]")
        return True

    def verify_router_patch(self) -> None:
        """Raise IntegrityError if the router still strips the Host header."""
        source = self.read_router()
        if source is None:
            return
        if strips_host_header(source):
            raise IntegrityError(
                "Jump router still strips the 'host' header; proxied requests "
                "would break same-origin behaviour.",
                f"Inspect {self._settings.router_path} inside "
                f"'{self.bridge_service}' and remove 'host' from the stripped "
                "header list.",
            )
        logger.info("Router patch verified")

    def prepare(self, http_port: int, ws_port: int) -> None:
        """Start services and verify the bridge service is running."""
        self.start_services(http_port, ws_port)
        self.verify_running()

    def patch_router(self) -> None:
        """Apply and verify the router compatibility patch."""
        self.apply_router_patch()
        self.verify_router_patch()
