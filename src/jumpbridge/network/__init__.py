"""Host network inspection: interfaces, default route and host IP."""

from jumpbridge.network.interfaces import (
    InterfaceCandidate,
    is_private_ipv4,
    is_virtual_interface,
    list_candidates,
    rank_candidates,
    score_candidate,
)
from jumpbridge.network.resolver import (
    HostIpSource,
    ResolvedHostIp,
    resolve_host_ip,
)
from jumpbridge.network.routes import DefaultRouteProbe, get_route_probe

__all__ = [
    "DefaultRouteProbe",
    "HostIpSource",
    "InterfaceCandidate",
    "ResolvedHostIp",
    "get_route_probe",
    "is_private_ipv4",
    "is_virtual_interface",
    "list_candidates",
    "rank_candidates",
    "resolve_host_ip",
    "score_candidate",
]
