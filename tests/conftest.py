"""Shared fixtures."""

import tempfile
from pathlib import Path

import pytest

from toolgate.config import Settings
from toolgate.gateway.dispatcher import ToolDispatcher
from toolgate.gateway.registry import ToolRegistry


@pytest.fixture
def workspace():
    """An empty, resolved workspace directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def settings(workspace):
    return Settings(workspace_root=workspace, command_timeout=10)


@pytest.fixture
def dispatcher_for(settings):
    """Build a dispatcher over one or more tool groups bound to ``settings``."""

    def build(*groups):
        registry = ToolRegistry()
        for group in groups:
            if isinstance(group, type):
                group = group(settings)
            registry.register(group.tools())
        return ToolDispatcher(registry.freeze())

    return build
