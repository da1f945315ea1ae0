"""Jump session pipeline.

Everything that can be resolved without side effects (host IP, host port,
WS and proxy ports) is resolved first. Only then are services started. The
container HTTP port is negotiated once the bridge service runs, after which
the session is fixed and handed to the remaining stages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import cast

from jumpbridge.config.envfile import (
    HTTP_PORT_KEY,
    PROXY_PORT_KEY,
    WS_PORT_KEY,
    EnvConfig,
)
from jumpbridge.config.schema import BridgeSettings
from jumpbridge.console import console
from jumpbridge.containers import ComposeCommand, ContainerOrchestrator
from jumpbridge.devices import UsbTunnelManager
from jumpbridge.errors import ConfigurationError
from jumpbridge.executors.base import Executor
from jumpbridge.network.resolver import (
    IP_MODES,
    CandidateProvider,
    Chooser,
    IpMode,
    ResolvedHostIp,
    resolve_host_ip,
)
from jumpbridge.ports import (
    ContainerPortProbe,
    HostPortProbe,
    PortProbe,
    PortRange,
    PortSelection,
    find_free_port,
    parse_port,
)
from jumpbridge.session import (
    PLATFORMS,
    USB_PLATFORMS,
    Platform,
    SessionConfig,
    launch,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JumpOptions:
    """Invocation options of ``jumpbridge jump``."""

    platform: str
    ip: str | None = None
    ip_mode: str = "auto"
    http_port: int | None = None
    usb: bool = False
    dry_run: bool = False


@dataclass(frozen=True)
class ResolvedPlan:
    """Values resolved before any external effect."""

    host_ip: ResolvedHostIp
    host_http: PortSelection
    explicit_http: bool
    ws_port: int
    proxy_port: int


def validate_options(options: JumpOptions) -> None:
    """Reject invalid option combinations before anything is resolved."""
    if options.platform not in PLATFORMS:
        raise ConfigurationError(
            f"Unsupported platform: {options.platform!r}. "
            f"Expected one of: {', '.join(PLATFORMS)}"
        )
    if options.ip_mode not in IP_MODES:
        raise ConfigurationError(
            f"Invalid IP mode: {options.ip_mode!r}. "
            f"Expected one of: {', '.join(IP_MODES)}"
        )
    if options.usb and options.platform not in USB_PLATFORMS:
        raise ConfigurationError(
            f"USB mode is not supported for {options.platform}.",
            "Drop --usb, or use --usb with android.",
        )
    if options.http_port is not None:
        parse_port(options.http_port, "--http-port")


def _explicit_http_port(options: JumpOptions, env: EnvConfig) -> int | None:
    if options.http_port is not None:
        return options.http_port
    configured = env.get(HTTP_PORT_KEY)
    if configured:
        return parse_port(configured, HTTP_PORT_KEY)
    return None


def resolve_plan(
    options: JumpOptions,
    settings: BridgeSettings,
    env: EnvConfig,
    *,
    interactive: bool = True,
    candidates: CandidateProvider | None = None,
    chooser: Chooser | None = None,
    host_probe: PortProbe | None = None,
) -> ResolvedPlan:
    """Resolve host IP and ports without touching containers or devices."""
    validate_options(options)
    port_range = PortRange(settings.port_range_start, settings.port_range_end)

    ws_raw = env.get(WS_PORT_KEY)
    ws_port = parse_port(ws_raw, WS_PORT_KEY) if ws_raw else settings.ws_port
    proxy_raw = env.get(PROXY_PORT_KEY)
    proxy_port = (
        parse_port(proxy_raw, PROXY_PORT_KEY) if proxy_raw else settings.proxy_port
    )

    host_ip = resolve_host_ip(
        env,
        explicit_ip=options.ip,
        usb=options.usb,
        mode=cast(IpMode, options.ip_mode),
        dry_run=options.dry_run,
        interactive=interactive,
        candidates=candidates,
        chooser=chooser,
    )

    explicit = _explicit_http_port(options, env)
    host_http = find_free_port(host_probe or HostPortProbe(), port_range, explicit)
    if host_http.port == ws_port:
        raise ConfigurationError(
            f"HTTP port {host_http.port} collides with the WS port.",
            f"Set {WS_PORT_KEY} to a port outside {port_range}.",
        )

    return ResolvedPlan(
        host_ip=host_ip,
        host_http=host_http,
        explicit_http=explicit is not None,
        ws_port=ws_port,
        proxy_port=proxy_port,
    )


def run_jump(
    options: JumpOptions,
    settings: BridgeSettings,
    env: EnvConfig,
    executor: Executor,
    *,
    interactive: bool = True,
    candidates: CandidateProvider | None = None,
    chooser: Chooser | None = None,
    host_probe: PortProbe | None = None,
) -> int:
    """Run a full Jump session and return the bridge exit code."""
    plan = resolve_plan(
        options,
        settings,
        env,
        interactive=interactive,
        candidates=candidates,
        chooser=chooser,
        host_probe=host_probe,
    )
    console.print(
        f"Using Jump host IP: [cyan]{plan.host_ip.address}[/cyan] "
        f"[dim]({plan.host_ip.source.value})[/dim]"
    )
    console.print(f"Using host HTTP port: [cyan]{plan.host_http.port}[/cyan]")

    compose = ComposeCommand.from_settings(settings)
    orchestrator = ContainerOrchestrator(executor, compose, settings)
    orchestrator.prepare(plan.host_http.port, plan.ws_port)

    container_probe = ContainerPortProbe(executor, compose, settings.bridge_service)
    port_range = PortRange(settings.port_range_start, settings.port_range_end)
    if plan.explicit_http:
        container_http = find_free_port(
            container_probe, port_range, explicit=plan.host_http.port
        )
    else:
        container_http = find_free_port(
            container_probe, port_range, start=plan.host_http.port
        )
    if container_http.port != plan.host_http.port:
        console.print(
            f"[yellow]Host port {plan.host_http.port} is busy inside "
            f"'{settings.bridge_service}'; using {container_http.port}.[/yellow]"
        )

    session = SessionConfig(
        platform=cast(Platform, options.platform),
        host_ip=plan.host_ip,
        host_http=plan.host_http,
        container_http=container_http,
        ws_port=plan.ws_port,
        proxy_port=plan.proxy_port,
        usb=options.usb,
        dry_run=options.dry_run,
    )
    logger.debug("Session resolved: %s", session)

    orchestrator.patch_router()

    if session.usb:
        UsbTunnelManager(executor, settings.adb_bin).establish(
            session.http_port, session.ws_port
        )

    return launch(session, executor, compose, settings)
