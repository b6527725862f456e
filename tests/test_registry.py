"""Tests for the tool registry."""

import pytest

from toolgate.gateway.errors import ConfigurationError, DuplicateToolError, ToolNotFoundError
from toolgate.gateway.registry import ToolRegistry
from toolgate.gateway.schema import ArgumentContract, ToolDef, string


def make_tool(name, group="test"):
    return ToolDef(
        name=name,
        description=f"The {name} tool",
        contract=ArgumentContract(fields={"path": string("A path", required=True)}),
        handler=lambda args: name,
        group=group,
    )


class TestToolRegistry:
    """Tests for ToolRegistry."""

    def test_register_and_lookup(self):
        registry = ToolRegistry([make_tool("read_file")])
        assert registry.lookup("read_file").name == "read_file"
        assert "read_file" in registry
        assert len(registry) == 1

    def test_registration_order_kept(self):
        registry = ToolRegistry()
        registry.register([make_tool("b"), make_tool("a")])
        registry.register([make_tool("c")])
        assert [t.name for t in registry.list()] == ["b", "a", "c"]
        assert registry.names() == ["b", "a", "c"]

    def test_unknown_name(self):
        registry = ToolRegistry([make_tool("a")])
        with pytest.raises(ToolNotFoundError):
            registry.lookup("nope")
        assert registry.get("nope") is None

    def test_duplicate_across_batches(self):
        registry = ToolRegistry([make_tool("read_file")])
        with pytest.raises(DuplicateToolError) as exc:
            registry.register([make_tool("write_file"), make_tool("read_file")])
        assert exc.value.name == "read_file"
        # nothing from the failed batch is kept
        assert registry.names() == ["read_file"]

    def test_duplicate_inside_batch(self):
        registry = ToolRegistry()
        with pytest.raises(DuplicateToolError):
            registry.register([make_tool("x"), make_tool("x")])
        assert len(registry) == 0

    def test_duplicate_is_configuration_error(self):
        assert issubclass(DuplicateToolError, ConfigurationError)

    def test_frozen_registry_rejects_registration(self):
        registry = ToolRegistry([make_tool("a")]).freeze()
        assert registry.frozen
        with pytest.raises(ConfigurationError):
            registry.register([make_tool("b")])

    def test_catalog(self):
        registry = ToolRegistry([make_tool("read_file")])
        entry = registry.catalog()[0]
        assert entry["name"] == "read_file"
        assert entry["description"] == "The read_file tool"
        assert entry["inputSchema"]["required"] == ["path"]
        assert "handler" not in entry

    def test_catalog_text(self):
        registry = ToolRegistry([make_tool("a"), make_tool("b")])
        assert registry.build_catalog_text() == (
            "Available tools:\n- a: The a tool\n- b: The b tool"
        )
        assert ToolRegistry().build_catalog_text() == ""

    def test_groups(self):
        registry = ToolRegistry([make_tool("a", "fs"), make_tool("b", "git"), make_tool("c", "fs")])
        assert registry.groups() == {"fs": ["a", "c"], "git": ["b"]}
