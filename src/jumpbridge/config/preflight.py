"""Preflight checks to validate the Jump environment."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Literal

import docker
from docker.errors import DockerException
from rich.markup import escape

from jumpbridge.config.envfile import HOST_IP_KEY, HTTP_PORT_KEY, EnvConfig
from jumpbridge.config.schema import BridgeSettings
from jumpbridge.console import console
from jumpbridge.containers.compose import ComposeCommand
from jumpbridge.devices.adb import DeviceStatus, parse_devices_output
from jumpbridge.errors import ConfigurationError, ToolingError
from jumpbridge.executors.base import Executor
from jumpbridge.network.interfaces import InterfaceCandidate, list_candidates
from jumpbridge.ports import HostPortProbe, PortProbe, PortRange, parse_port, scan_ports

Level = Literal["PASS", "WARN", "FAIL"]

_STYLES = {"PASS": "green", "WARN": "yellow", "FAIL": "red"}


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one preflight check."""

    level: Level
    name: str
    details: str


def check_env_duplicates(env: EnvConfig) -> list[CheckResult]:
    """Report duplicate keys in the env files."""
    return [CheckResult("WARN", "Env Duplicates", w) for w in env.warnings()]


def check_docker() -> list[CheckResult]:
    """Validate Docker daemon is running and accessible."""
    try:
        client = docker.from_env()
        client.ping()
        version = client.version()
    except DockerException as e:
        return [CheckResult("FAIL", "Docker", f"Cannot connect to Docker: {e}")]
    return [
        CheckResult(
            "PASS",
            "Docker",
            f"Daemon is running, version {version.get('Version', 'unknown')}",
        )
    ]


def check_compose(executor: Executor, compose: ComposeCommand) -> list[CheckResult]:
    """Validate the compose plugin answers."""
    try:
        result = executor.capture(compose.version())
    except ToolingError as e:
        return [CheckResult("FAIL", "Docker Compose", str(e))]
    if not result.ok:
        output = (result.stderr or result.stdout).strip()
        return [CheckResult("FAIL", "Docker Compose", f"Not available: {output}")]
    return [CheckResult("PASS", "Docker Compose", result.stdout.strip())]


def check_adb(executor: Executor, adb_bin: str) -> list[CheckResult]:
    """Report adb availability and attached device state."""
    try:
        result = executor.capture([adb_bin, "devices"])
    except ToolingError:
        return [
            CheckResult(
                "WARN", "ADB", f"adb not available ({adb_bin}); USB mode will fail."
            )
        ]
    if not result.ok:
        output = (result.stderr or result.stdout).strip()
        return [CheckResult("WARN", "ADB", f"adb devices failed: {output}")]

    devices = parse_devices_output(result.stdout)
    if not devices:
        return [
            CheckResult(
                "WARN", "ADB", "No devices detected. Connect device or start emulator."
            )
        ]
    if any(d.status is DeviceStatus.UNAUTHORIZED for d in devices):
        return [
            CheckResult(
                "FAIL",
                "ADB",
                "Device is unauthorized. Accept USB debugging prompt on phone "
                "and re-run.",
            )
        ]
    listed = ", ".join(f"{d.serial} ({d.status.value})" for d in devices)
    return [CheckResult("PASS", "ADB", f"Detected devices: {listed}")]


def check_host_ip(
    env: EnvConfig,
    candidates: Sequence[InterfaceCandidate],
) -> list[CheckResult]:
    """Warn when the host IP choice is ambiguous or impossible."""
    private = [c for c in candidates if c.is_private]
    pinned = env.get(HOST_IP_KEY)

    if len(private) > 1 and not pinned:
        listed = ", ".join(c.label for c in private)
        return [
            CheckResult(
                "WARN",
                "Host IP Selection",
                f"Multiple private interfaces detected ({listed}). Set "
                f"{HOST_IP_KEY} to avoid wrong adapter selection.",
            )
        ]
    if not private and not pinned:
        return [
            CheckResult(
                "WARN",
                "Host IP Selection",
                "No private IPv4 interface detected for LAN Jump testing.",
            )
        ]
    selected = pinned or private[0].address
    return [
        CheckResult("PASS", "Host IP Selection", f"Current preferred host IP: {selected}")
    ]


def check_jump_ports(
    env: EnvConfig,
    port_range: PortRange,
    probe: PortProbe,
) -> list[CheckResult]:
    """Scan the Jump port range and compare it with the pinned port."""
    occupancy = scan_ports(probe, port_range)
    summary = ", ".join(f"{port}:{'free' if free else 'used'}" for port, free in occupancy)
    selected = next((port for port, free in occupancy if free), None)

    results: list[CheckResult] = []
    if selected is None:
        results.append(
            CheckResult(
                "FAIL",
                "Jump Port",
                f"No free ports available in {port_range}. Occupancy: {summary}",
            )
        )
    else:
        results.append(
            CheckResult(
                "PASS", "Jump Port", f"Selected port {selected}. Occupancy: {summary}"
            )
        )

    configured_raw = env.get(HTTP_PORT_KEY)
    if configured_raw:
        try:
            configured = parse_port(configured_raw, HTTP_PORT_KEY)
        except ConfigurationError:
            results.append(
                CheckResult(
                    "WARN",
                    "Jump Port Config",
                    f"{HTTP_PORT_KEY} is invalid: {configured_raw}",
                )
            )
        else:
            if selected is not None and configured != selected:
                results.append(
                    CheckResult(
                        "WARN",
                        "Jump Port Config",
                        f"{HTTP_PORT_KEY}={configured} but first free port is "
                        f"{selected}.",
                    )
                )
            else:
                results.append(
                    CheckResult(
                        "PASS", "Jump Port Config", f"{HTTP_PORT_KEY}={configured}"
                    )
                )
    return results


def collect_checks(
    settings: BridgeSettings,
    env: EnvConfig,
    executor: Executor,
    candidates: Callable[[], Sequence[InterfaceCandidate]] = list_candidates,
    host_probe: PortProbe | None = None,
) -> list[CheckResult]:
    """Run every check and return the results in report order."""
    compose = ComposeCommand.from_settings(settings)
    port_range = PortRange(settings.port_range_start, settings.port_range_end)

    results: list[CheckResult] = []
    results.extend(check_env_duplicates(env))
    results.extend(check_docker())
    results.extend(check_compose(executor, compose))
    results.extend(check_adb(executor, settings.adb_bin))
    results.extend(check_host_ip(env, candidates()))
    results.extend(check_jump_ports(env, port_range, host_probe or HostPortProbe()))
    return results


def print_results(results: Sequence[CheckResult]) -> None:
    for result in results:
        style = _STYLES[result.level]
        console.print(
            f"[{style}]\\[{result.level}][/{style}] [bold]{result.name}:[/bold] "
            f"{escape(result.details)}",
            soft_wrap=True,
        )


def run_all_checks(
    settings: BridgeSettings,
    env: EnvConfig,
    executor: Executor,
    candidates: Callable[[], Sequence[InterfaceCandidate]] = list_candidates,
    host_probe: PortProbe | None = None,
) -> bool:
    """Run all preflight checks, print the report and return overall success."""
    console.print("[bold]Running preflight checks...[/bold]\n")

    results = collect_checks(settings, env, executor, candidates, host_probe)
    print_results(results)

    failures = sum(1 for r in results if r.level == "FAIL")
    if failures:
        console.print(
            f"\n[bold red]Preflight completed with {failures} failure(s).[/bold red]"
        )
        return False

    console.print("\n[bold green]Preflight completed without blocking failures.[/bold green]")
    return True
