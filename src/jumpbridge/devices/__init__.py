"""Attached device handling."""

from jumpbridge.devices.adb import (
    DeviceRecord,
    DeviceStatus,
    UsbTunnelManager,
    parse_devices_output,
)

__all__ = [
    "DeviceRecord",
    "DeviceStatus",
    "UsbTunnelManager",
    "parse_devices_output",
]
