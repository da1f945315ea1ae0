"""Local IPv4 interface enumeration and ranking."""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

import psutil

from jumpbridge.network.routes import DefaultRouteProbe, get_route_probe

logger = logging.getLogger(__name__)

# Point values are an empirically chosen heuristic; keep them stable.
DEFAULT_ROUTE_SCORE = 100
PRIVATE_SCORE = 40
PHYSICAL_SCORE = 20
SUBNET_192_168_SCORE = 10
SUBNET_10_SCORE = 8
SUBNET_172_SCORE = 6

PRIVATE_NETWORKS = (
    ipaddress.IPv4Network("10.0.0.0/8"),
    ipaddress.IPv4Network("172.16.0.0/12"),
    ipaddress.IPv4Network("192.168.0.0/16"),
)

VIRTUAL_ADAPTER_PATTERN = re.compile(
    r"virtual|vmware|vbox|virtualbox|hyper-v|vethernet|wsl|docker|loopback"
    r"|tailscale|zerotier|hamachi|vpn",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class InterfaceCandidate:
    """An IPv4 address on a local interface, scored for reachability."""

    interface_name: str
    address: str
    is_private: bool
    is_virtual: bool
    score: int

    @property
    def label(self) -> str:
        return f"{self.interface_name}:{self.address}"


def is_private_ipv4(address: str) -> bool:
    """Check whether address is in one of the RFC 1918 ranges."""
    try:
        ip = ipaddress.IPv4Address(address)
    except ValueError:
        return False
    return any(ip in network for network in PRIVATE_NETWORKS)


def is_virtual_interface(name: str) -> bool:
    """Check whether an interface name looks like a VM, container or VPN adapter."""
    return VIRTUAL_ADAPTER_PATTERN.search(name) is not None


def _subnet_bonus(address: str) -> int:
    ip = ipaddress.IPv4Address(address)
    if ip in PRIVATE_NETWORKS[2]:
        return SUBNET_192_168_SCORE
    if ip in PRIVATE_NETWORKS[0]:
        return SUBNET_10_SCORE
    if ip in PRIVATE_NETWORKS[1]:
        return SUBNET_172_SCORE
    return 0


def score_candidate(
    interface_name: str,
    address: str,
    default_interface: str | None = None,
) -> InterfaceCandidate:
    """Classify and score one interface address."""
    is_private = is_private_ipv4(address)
    is_virtual = is_virtual_interface(interface_name)

    score = 0
    if default_interface and interface_name.lower() == default_interface.lower():
        score += DEFAULT_ROUTE_SCORE
    if is_private:
        score += PRIVATE_SCORE
    if not is_virtual:
        score += PHYSICAL_SCORE
    score += _subnet_bonus(address)

    return InterfaceCandidate(
        interface_name=interface_name,
        address=address,
        is_private=is_private,
        is_virtual=is_virtual,
        score=score,
    )


def rank_candidates(
    candidates: Iterable[InterfaceCandidate],
) -> list[InterfaceCandidate]:
    """Sort by score descending, then interface name and address ascending."""
    return sorted(
        candidates,
        key=lambda c: (-c.score, c.interface_name, ipaddress.IPv4Address(c.address)),
    )


def _read_ipv4_addresses() -> dict[str, list[str]]:
    """Read IPv4 addresses per interface from the OS interface table."""
    result: dict[str, list[str]] = {}
    for name, entries in psutil.net_if_addrs().items():
        for entry in entries:
            if entry.family == socket.AF_INET and entry.address:
                result.setdefault(name, []).append(entry.address)
    return result


def list_candidates(
    route_probe: DefaultRouteProbe | None = None,
    addresses: Mapping[str, Iterable[str]] | None = None,
) -> list[InterfaceCandidate]:
    """Enumerate non-loopback IPv4 addresses and return them ranked.

    Args:
        route_probe: Default-route probe; defaults to the one for this OS.
        addresses: Interface name to addresses mapping; defaults to the
            live interface table.
    """
    probe = route_probe or get_route_probe()
    default_interface = probe.current_interface_name()
    table = addresses if addresses is not None else _read_ipv4_addresses()

    candidates: list[InterfaceCandidate] = []
    for name, entries in table.items():
        for address in entries:
            try:
                ip = ipaddress.IPv4Address(address)
            except ValueError:
                continue
            if ip.is_loopback:
                continue
            candidates.append(score_candidate(name, address, default_interface))

    ranked = rank_candidates(candidates)
    logger.debug(
        "Interface candidates: %s",
        ", ".join(f"{c.label}={c.score}" for c in ranked),
    )
    return ranked
