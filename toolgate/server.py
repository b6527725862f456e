"""
toolgate server assembly.

Builds the registry for a profile from the capability modules, freezes it,
and wires it to a dispatcher and the stdio transport.
"""

import logging
from typing import Dict, List, Optional, TextIO, Type

from toolgate import __version__
from toolgate.config import Settings
from toolgate.gateway.dispatcher import ToolDispatcher
from toolgate.gateway.errors import ConfigurationError
from toolgate.gateway.registry import ToolRegistry
from toolgate.gateway.transport import StdioTransport
from toolgate.tools import (
    FilesystemTools,
    GitHubTools,
    GitLabTools,
    GitTools,
    LogTools,
    NodeTools,
    PythonTools,
    ShellTools,
    TestingTools,
    ToolGroup,
)

logger = logging.getLogger(__name__)

LOCAL_GROUPS: List[Type[ToolGroup]] = [
    FilesystemTools,
    ShellTools,
    GitTools,
    NodeTools,
    PythonTools,
    TestingTools,
    LogTools,
]
GITOPS_GROUPS: List[Type[ToolGroup]] = [GitHubTools, GitLabTools]

PROFILES: Dict[str, List[Type[ToolGroup]]] = {
    "local": LOCAL_GROUPS,
    "gitops": GITOPS_GROUPS,
    "all": LOCAL_GROUPS + GITOPS_GROUPS,
}

SERVER_NAMES = {
    "local": "toolgate",
    "gitops": "toolgate-gitops",
    "all": "toolgate",
}


def build_groups(settings: Settings, profile: str) -> List[ToolGroup]:
    """Instantiate the tool groups of ``profile``."""
    if profile not in PROFILES:
        raise ConfigurationError(
            f"Unknown profile '{profile}' (expected one of: {', '.join(PROFILES)})"
        )
    return [group_cls(settings) for group_cls in PROFILES[profile]]


def build_registry(
    settings: Settings,
    profile: str = "local",
    groups: Optional[List[ToolGroup]] = None,
) -> ToolRegistry:
    """
    Register every tool of the profile's groups and freeze the registry.

    Args:
        settings: Process-wide settings, handed to each group.
        profile: One of PROFILES.
        groups: Pre-built group instances to use instead of the profile's.

    Raises:
        ConfigurationError: unknown profile, or two tools share a name.
    """
    if groups is None:
        groups = build_groups(settings, profile)

    registry = ToolRegistry()
    for group in groups:
        registry.register(group.tools())
        logger.debug("registered group %s", group.name)
    registry.freeze()
    logger.info("registry ready: %d tools (profile %s)", len(registry), profile)
    return registry


def create_server(
    settings: Settings,
    profile: str = "local",
    reader: Optional[TextIO] = None,
    writer: Optional[TextIO] = None,
) -> StdioTransport:
    """
    Assemble registry, dispatcher and stdio transport for ``profile``.

    The groups are closed when the transport stops serving.
    """
    groups = build_groups(settings, profile)
    registry = build_registry(settings, profile, groups=groups)

    def close_groups() -> None:
        for group in groups:
            group.close()

    return StdioTransport(
        ToolDispatcher(registry),
        reader=reader,
        writer=writer,
        max_workers=settings.max_workers,
        server_name=SERVER_NAMES.get(profile, "toolgate"),
        server_version=__version__,
        on_shutdown=close_groups,
    )
