"""Host IP resolution for Jump sessions."""

from __future__ import annotations

import ipaddress
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Literal

import click

from jumpbridge.config.envfile import HOST_IP_KEY, EnvConfig
from jumpbridge.console import console
from jumpbridge.errors import ConfigurationError, ToolingError
from jumpbridge.network.interfaces import (
    PHYSICAL_SCORE,
    PRIVATE_SCORE,
    InterfaceCandidate,
    list_candidates,
)

logger = logging.getLogger(__name__)

IpMode = Literal["auto", "manual"]
IP_MODES: tuple[str, ...] = ("auto", "manual")

USB_LOOPBACK = "127.0.0.1"

# Private, non-virtual candidates are plausible LAN addresses.
AMBIGUITY_SCORE = PRIVATE_SCORE + PHYSICAL_SCORE

NO_INTERFACE_HINT = (
    f"Connect to a network or set {HOST_IP_KEY} in the project .env file."
)


class HostIpSource(str, Enum):
    """Where a resolved host IP came from."""

    EXPLICIT_FLAG = "explicit-flag"
    CONFIGURED_ENV = "configured-env"
    USB_FORCED = "usb-forced"
    MANUAL_SELECT = "manual-select"
    AUTO_DETECT = "auto-detect"


@dataclass(frozen=True)
class ResolvedHostIp:
    """The single address handed to the device for a session."""

    address: str
    source: HostIpSource


CandidateProvider = Callable[[], Sequence[InterfaceCandidate]]
Chooser = Callable[[Sequence[InterfaceCandidate]], InterfaceCandidate]


def validate_ipv4(value: str, label: str) -> str:
    """Return value stripped if it is an IPv4 literal, else raise."""
    text = value.strip()
    try:
        ipaddress.IPv4Address(text)
    except ValueError:
        raise ConfigurationError(
            f"{label} is not a valid IPv4 address: {value!r}"
        ) from None
    return text


def prompt_for_candidate(
    candidates: Sequence[InterfaceCandidate],
) -> InterfaceCandidate:
    """Ask the operator to pick a candidate from a numbered list."""
    console.print("\n[bold]Select the host IP the device should use:[/bold]")
    for i, candidate in enumerate(candidates, 1):
        marker = " [dim](virtual)[/dim]" if candidate.is_virtual else ""
        console.print(
            f"  {i}. [cyan]{candidate.address}[/cyan] "
            f"{candidate.interface_name} score={candidate.score}{marker}"
        )
    choice: int = click.prompt(
        "Interface",
        default=1,
        type=click.IntRange(1, len(candidates)),
    )
    return candidates[choice - 1]


def _warn(message: str) -> None:
    logger.warning(message)
    console.print(f"⚠ {message}", style="yellow", markup=False)


def resolve_host_ip(
    env: EnvConfig,
    *,
    explicit_ip: str | None = None,
    usb: bool = False,
    mode: IpMode = "auto",
    dry_run: bool = False,
    interactive: bool = True,
    candidates: CandidateProvider | None = None,
    chooser: Chooser | None = None,
) -> ResolvedHostIp:
    """Resolve the host IP. The first matching strategy wins.

    1. explicit IP option
    2. configured NATIVEPHP_HOST_IP
    3. USB mode (loopback, no interface enumeration)
    4. manual selection among ranked candidates
    5. automatic pick of the top-ranked candidate

    Raises:
        ConfigurationError: If the explicit IP is not an IPv4 literal or the
            mode is unknown.
        ToolingError: If no interface candidate exists.
    """
    if mode not in IP_MODES:
        raise ConfigurationError(
            f"Invalid IP mode: {mode!r}. Expected one of: {', '.join(IP_MODES)}"
        )

    if explicit_ip:
        address = validate_ipv4(explicit_ip, "--ip")
        return ResolvedHostIp(address, HostIpSource.EXPLICIT_FLAG)

    # Passed through unchecked; a hostname such as mymac.local is allowed.
    configured = env.get(HOST_IP_KEY)
    if configured and configured.strip():
        return ResolvedHostIp(configured.strip(), HostIpSource.CONFIGURED_ENV)

    if usb:
        return ResolvedHostIp(USB_LOOPBACK, HostIpSource.USB_FORCED)

    ranked = list((candidates or list_candidates)())
    if not ranked:
        raise ToolingError("No usable network interface found.", NO_INTERFACE_HINT)
    private = [c for c in ranked if c.is_private]

    if mode == "manual":
        choices = private or ranked
        if dry_run or not interactive:
            reason = "dry-run" if dry_run else "no interactive terminal"
            _warn(
                f"Skipping interface prompt ({reason}); "
                f"using {choices[0].label}."
            )
            selected = choices[0]
        else:
            selected = (chooser or prompt_for_candidate)(choices)
        return ResolvedHostIp(selected.address, HostIpSource.MANUAL_SELECT)

    plausible = [c for c in private if c.score >= AMBIGUITY_SCORE]
    if len(plausible) > 1:
        listed = ", ".join(c.label for c in plausible)
        _warn(
            f"Multiple private interfaces detected ({listed}). Using "
            f"{plausible[0].label}; set {HOST_IP_KEY} or use --ip-mode manual "
            "to avoid wrong adapter selection."
        )

    selected = private[0] if private else ranked[0]
    return ResolvedHostIp(selected.address, HostIpSource.AUTO_DETECT)
