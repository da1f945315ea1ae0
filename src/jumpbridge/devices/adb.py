"""USB reverse tunnels through adb."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from jumpbridge.console import console
from jumpbridge.errors import (
    CommandError,
    DeviceAuthorizationError,
    DeviceError,
    ToolingError,
)
from jumpbridge.executors.base import Executor

logger = logging.getLogger(__name__)

ADB_INSTALL_HINT = (
    "Install Android platform-tools and make sure `adb` is on PATH "
    "(or set adb_bin in .jumpbridge/config.yaml)."
)


class DeviceStatus(str, Enum):
    """Connection state reported by ``adb devices``."""

    DEVICE = "device"
    UNAUTHORIZED = "unauthorized"
    OFFLINE = "offline"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str) -> DeviceStatus:
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class DeviceRecord:
    """One attached device."""

    serial: str
    status: DeviceStatus

    @property
    def ready(self) -> bool:
        return self.status is DeviceStatus.DEVICE


def parse_devices_output(output: str) -> list[DeviceRecord]:
    """Parse ``adb devices`` output into device records."""
    devices: list[DeviceRecord] = []
    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("*") or line.startswith("List of devices"):
            continue
        parts = line.split()
        if len(parts) < 2:
            continue
        devices.append(DeviceRecord(parts[0], DeviceStatus.parse(parts[1])))
    return devices


class UsbTunnelManager:
    """Sets up ``adb reverse`` mappings for every ready device."""

    def __init__(self, executor: Executor, adb_bin: str = "adb") -> None:
        self._executor = executor
        self._adb_bin = adb_bin

    def ensure_available(self) -> None:
        """Raise ToolingError if the adb executable cannot be found."""
        if self._executor.which(self._adb_bin) is None:
            raise ToolingError(
                f"adb not available: {self._adb_bin}",
                ADB_INSTALL_HINT,
            )

    def list_devices(self) -> list[DeviceRecord] | None:
        """Enumerate attached devices, or None when simulated."""
        args = [self._adb_bin, "devices"]
        result = self._executor.capture(args)
        if result.simulated:
            return None
        if not result.ok:
            raise CommandError(args, result.returncode, ADB_INSTALL_HINT)
        devices = parse_devices_output(result.stdout)
        logger.info(
            "adb devices: %s",
            ", ".join(f"{d.serial}={d.status.value}" for d in devices) or "none",
        )
        return devices

    def _reverse(self, port: int, serial: str | None = None) -> None:
        args = [self._adb_bin]
        if serial:
            args.extend(["-s", serial])
        args.extend(["reverse", f"tcp:{port}", f"tcp:{port}"])
        self._executor.run(args)

    def establish(self, http_port: int, ws_port: int) -> list[DeviceRecord]:
        """Map the HTTP and WS ports back to the host on every ready device.

        No tunnel is created for any device if one device is unauthorized.

        Raises:
            ToolingError: If adb is missing.
            DeviceAuthorizationError: If any device is unauthorized.
            DeviceError: If no device is ready.
        """
        self.ensure_available()
        devices = self.list_devices()

        if devices is None:
            for port in (http_port, ws_port):
                self._reverse(port)
            return []

        unauthorized = [d for d in devices if d.status is DeviceStatus.UNAUTHORIZED]
        if unauthorized:
            serials = ", ".join(d.serial for d in unauthorized)
            raise DeviceAuthorizationError(
                f"Device is unauthorized: {serials}",
                "Accept the USB debugging prompt on the phone and re-run.",
            )

        ready = [d for d in devices if d.ready]
        if not ready:
            raise DeviceError(
                "No authorized USB device detected.",
                "Connect a device with USB debugging enabled, or start an emulator.",
            )

        for device in ready:
            for port in (http_port, ws_port):
                self._reverse(port, device.serial)
            console.print(
                f"[green]✓[/green] USB tunnel ready on [cyan]{device.serial}[/cyan] "
                f"(tcp:{http_port}, tcp:{ws_port})"
            )
        return ready
