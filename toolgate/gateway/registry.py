"""Tool registry: holds tool descriptors and serves name lookups."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from toolgate.gateway.errors import ConfigurationError, DuplicateToolError, ToolNotFoundError
from toolgate.gateway.schema import ToolDef

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Ordered, name-indexed collection of :class:`ToolDef`.

    All ``register()`` calls happen while the server is assembled. After
    ``freeze()`` the registry is read-only and may be shared by concurrent
    dispatches without locking.
    """

    def __init__(self, tools: Optional[Iterable[ToolDef]] = None):
        self._tools: Dict[str, ToolDef] = {}
        self._frozen = False
        if tools:
            self.register(tools)

    # ── Registration ──────────────────────────────────────────────────────

    def register(self, tools: Iterable[ToolDef]) -> None:
        """
        Append a group of descriptors.

        Raises :class:`DuplicateToolError` if any name is already taken or
        repeated inside the group; in that case nothing from the group is kept.
        """
        if self._frozen:
            raise ConfigurationError("Tool registry is frozen; register tools before serving")

        batch = list(tools)
        seen = set()
        for tool in batch:
            if tool.name in self._tools or tool.name in seen:
                raise DuplicateToolError(tool.name)
            seen.add(tool.name)

        for tool in batch:
            self._tools[tool.name] = tool
        if batch:
            logger.debug("registered %d tools: %s", len(batch), [t.name for t in batch])

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ── Lookup ────────────────────────────────────────────────────────────

    def lookup(self, name: str) -> ToolDef:
        """Return the descriptor for ``name`` or raise :class:`ToolNotFoundError`."""
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def get(self, name: str) -> Optional[ToolDef]:
        return self._tools.get(name)

    def list(self) -> List[ToolDef]:
        """All descriptors in registration order."""
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    # ── Advertisement ─────────────────────────────────────────────────────

    def catalog(self) -> List[Dict[str, Any]]:
        """Catalog entries (name, description, input schema) for clients."""
        return [tool.catalog_entry() for tool in self._tools.values()]

    def build_catalog_text(self) -> str:
        """
        Plain-text catalog, one line per tool::

            Available tools:
            - read_file: Read the contents of a file
            - git_status: Get the current git repository status
        """
        if not self._tools:
            return ""
        lines = ["Available tools:"]
        lines.extend(tool.prompt_line() for tool in self._tools.values())
        return "\n".join(lines)

    def groups(self) -> Dict[str, List[str]]:
        """Tool names grouped by the capability module that contributed them."""
        grouped: Dict[str, List[str]] = {}
        for tool in self._tools.values():
            grouped.setdefault(tool.group or "ungrouped", []).append(tool.name)
        return grouped
