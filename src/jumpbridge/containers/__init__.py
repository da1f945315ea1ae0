"""Compose service orchestration."""

from jumpbridge.containers.compose import ComposeCommand
from jumpbridge.containers.orchestrator import (
    ContainerOrchestrator,
    patch_router_source,
    strips_host_header,
)

__all__ = [
    "ComposeCommand",
    "ContainerOrchestrator",
    "patch_router_source",
    "strips_host_header",
]
