"""Session aggregation, connection summary and bridge launch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from jumpbridge.config.schema import BridgeSettings
from jumpbridge.console import console
from jumpbridge.containers.compose import ComposeCommand
from jumpbridge.executors.base import Executor
from jumpbridge.network.resolver import ResolvedHostIp
from jumpbridge.ports import PortSelection

Platform = Literal["android", "ios"]
PLATFORMS: tuple[str, ...] = ("android", "ios")
USB_PLATFORMS: tuple[str, ...] = ("android",)


@dataclass(frozen=True)
class SessionConfig:
    """Fully resolved parameters of one Jump session."""

    platform: Platform
    host_ip: ResolvedHostIp
    host_http: PortSelection
    container_http: PortSelection
    ws_port: int
    proxy_port: int
    usb: bool = False
    dry_run: bool = False

    @property
    def http_port(self) -> int:
        """Port the bridge listens on and the device connects to."""
        return self.container_http.port

    @property
    def transport(self) -> str:
        return "usb" if self.usb else "lan"


@dataclass(frozen=True)
class ConnectionUrls:
    info: str
    phone_test: str
    phone_download: str


def connection_urls(session: SessionConfig, settings: BridgeSettings) -> ConnectionUrls:
    """URLs for the operator (local) and the phone (resolved host IP)."""
    local = f"http://127.0.0.1:{session.http_port}"
    phone = f"http://{session.host_ip.address}:{session.http_port}"
    return ConnectionUrls(
        info=f"{local}{settings.info_path}",
        phone_test=f"{phone}{settings.ping_path}",
        phone_download=f"{phone}{settings.download_path}",
    )


def summary_lines(session: SessionConfig, settings: BridgeSettings) -> list[str]:
    """Build the connection summary, one plain-text line per entry."""
    urls = connection_urls(session, settings)
    http = str(session.http_port)
    if session.host_http.port != session.http_port:
        http += f" (host scan chose {session.host_http.port})"
    entries = [
        ("Host IP", f"{session.host_ip.address} ({session.host_ip.source.value})"),
        ("HTTP port", http),
        ("WS port", str(session.ws_port)),
        ("Proxy port", str(session.proxy_port)),
        ("Transport", session.transport),
        ("QR / info", urls.info),
        ("Phone test", urls.phone_test),
        ("Phone download", urls.phone_download),
    ]
    title = f"Jump {session.platform} session"
    return [title, *(f"  {label + ':':<16}{value}" for label, value in entries)]


def print_summary(session: SessionConfig, settings: BridgeSettings) -> None:
    lines = summary_lines(session, settings)
    console.print()
    console.print(lines[0], style="bold", markup=False)
    for line in lines[1:]:
        console.print(line, markup=False)
    console.print()


def bridge_command(
    session: SessionConfig,
    compose: ComposeCommand,
    settings: BridgeSettings,
) -> list[str]:
    """Build the native Jump invocation inside the bridge service."""
    return compose.exec(
        settings.bridge_service,
        "php",
        "artisan",
        "native:jump",
        session.platform,
        f"--ip={session.host_ip.address}",
        f"--port={session.http_port}",
        f"--ws-port={session.ws_port}",
        f"--laravel-port={session.proxy_port}",
        "--no-interaction",
    )


def launch(
    session: SessionConfig,
    executor: Executor,
    compose: ComposeCommand,
    settings: BridgeSettings,
) -> int:
    """Print the summary and hand off to the bridge process."""
    print_summary(session, settings)
    return executor.handoff(bridge_command(session, compose, settings))
