"""Tool dispatcher: the single path every call takes through the server."""

from __future__ import annotations

import json
import logging
import subprocess
import time
from collections.abc import Mapping
from typing import Any, List, Optional, Union

import httpx

from toolgate.gateway.errors import (
    ArgumentError,
    FailureCategory,
    ToolError,
    ToolNotFoundError,
)
from toolgate.gateway.registry import ToolRegistry
from toolgate.gateway.schema import CallRequest, ContentBlock, ToolResult
from toolgate.gateway.validator import validate

logger = logging.getLogger(__name__)

# Exceptions raised by external collaborators rather than by our own code.
_OPERATIONAL_ERRORS = (OSError, subprocess.SubprocessError, httpx.HTTPError, UnicodeDecodeError)


class ToolDispatcher:
    """
    Resolves, validates, and invokes tool calls.

    ``dispatch()`` never raises: unknown tools, invalid arguments, handler
    failures, and handler bugs all come back as a failure :class:`ToolResult`.
    Handlers return plain data; wrapping into content blocks happens here.
    """

    def __init__(self, registry: ToolRegistry):
        self._registry = registry

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def call(self, tool_name: str, arguments: Optional[Any] = None) -> ToolResult:
        """Convenience wrapper around :meth:`dispatch`."""
        return self.dispatch(CallRequest(tool_name=tool_name, arguments=arguments))

    def dispatch(self, call: Union[CallRequest, Mapping]) -> ToolResult:
        if not isinstance(call, CallRequest):
            if not isinstance(call, Mapping):
                return ToolResult.fail(
                    f"Malformed call envelope: expected an object, got {type(call).__name__}",
                    FailureCategory.TRANSPORT,
                )
            call = CallRequest(
                tool_name=str(call.get("name") or call.get("tool_name") or ""),
                arguments=call.get("arguments"),
            )

        t0 = time.perf_counter()
        envelope = {"call_id": call.call_id, "tool_name": call.tool_name}

        def elapsed() -> int:
            return int((time.perf_counter() - t0) * 1000)

        # Resolve
        try:
            tool = self._registry.lookup(call.tool_name)
        except ToolNotFoundError as exc:
            logger.warning("unknown tool requested: %s", call.tool_name)
            return ToolResult.fail(
                str(exc),
                FailureCategory.UNKNOWN_TOOL,
                {"tool": call.tool_name},
                **envelope,
            )

        # Validate
        try:
            args = validate(tool.contract, call.arguments)
        except ArgumentError as exc:
            logger.info("rejected call to %s: %s", tool.name, exc)
            return ToolResult.fail(
                str(exc),
                FailureCategory.INVALID_ARGUMENTS,
                exc.to_dict(),
                duration_ms=elapsed(),
                **envelope,
            )

        # Invoke
        logger.debug("dispatching %s call_id=%s", tool.name, call.call_id)
        try:
            raw = tool.handler(args)
            content = self.wrap(raw)
        except ArgumentError as exc:
            logger.info("tool %s rejected its arguments: %s", tool.name, exc)
            return ToolResult.fail(
                str(exc),
                FailureCategory.INVALID_ARGUMENTS,
                exc.to_dict(),
                duration_ms=elapsed(),
                **envelope,
            )
        except ToolError as exc:
            logger.warning("tool %s failed: %s", tool.name, exc.message)
            return ToolResult.fail(
                exc.message,
                FailureCategory.OPERATIONAL,
                exc.details,
                duration_ms=elapsed(),
                **envelope,
            )
        except _OPERATIONAL_ERRORS as exc:
            logger.warning("tool %s failed: %s", tool.name, exc)
            return ToolResult.fail(
                _describe(exc),
                FailureCategory.OPERATIONAL,
                {"exception": type(exc).__name__},
                duration_ms=elapsed(),
                **envelope,
            )
        except Exception as exc:
            logger.exception("unexpected error in tool %s call_id=%s", tool.name, call.call_id)
            return ToolResult.fail(
                f"Internal error in tool '{tool.name}': {_describe(exc)}",
                FailureCategory.INTERNAL,
                {"exception": type(exc).__name__},
                duration_ms=elapsed(),
                **envelope,
            )

        if isinstance(content, ToolResult):
            return content.model_copy(update={"duration_ms": elapsed(), **envelope})

        duration = elapsed()
        logger.info("tool %s completed in %dms", tool.name, duration)
        return ToolResult.ok(content, duration_ms=duration, **envelope)

    # ── Result wrapping ───────────────────────────────────────────────────

    @staticmethod
    def wrap(raw: Any) -> Union[ToolResult, List[ContentBlock]]:
        """Turn whatever a handler returned into content blocks."""
        if isinstance(raw, ToolResult):
            return raw
        if isinstance(raw, ContentBlock):
            return [raw]
        if isinstance(raw, list) and raw and all(isinstance(b, ContentBlock) for b in raw):
            return list(raw)
        if isinstance(raw, str):
            return [ContentBlock(text=raw)]
        if raw is None:
            raw = {"success": True}
        return [ContentBlock(text=json.dumps(raw, indent=2, default=str, ensure_ascii=False))]


def _describe(exc: BaseException) -> str:
    message = str(exc)
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__
