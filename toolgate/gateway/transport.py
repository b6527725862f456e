"""Serve the dispatcher over stdin/stdout as line-delimited JSON-RPC (MCP framing)."""

from __future__ import annotations

import json
import logging
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterator, Optional, TextIO

from toolgate.gateway.dispatcher import ToolDispatcher
from toolgate.gateway.errors import FailureCategory
from toolgate.gateway.schema import CallRequest, ToolResult

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class TransportError(Exception):
    """Raised when a message cannot be turned into a call."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class StdioTransport:
    """
    JSON-RPC 2.0 server over a pair of text streams, one message per line.

    ``tools/call`` requests run on a thread pool so a slow handler never
    stops the reader from accepting the next request. Responses may be
    written out of order; each carries its request ``id``.
    """

    def __init__(
        self,
        dispatcher: ToolDispatcher,
        reader: Optional[TextIO] = None,
        writer: Optional[TextIO] = None,
        max_workers: int = 8,
        server_name: str = "toolgate",
        server_version: str = "0.0.0",
        on_shutdown: Optional[Callable[[], None]] = None,
    ):
        self.dispatcher = dispatcher
        self.reader = reader if reader is not None else sys.stdin
        self.writer = writer if writer is not None else sys.stdout
        self.max_workers = max_workers
        self.server_name = server_name
        self.server_version = server_version
        self.on_shutdown = on_shutdown
        self._write_lock = threading.Lock()
        self._pool: Optional[ThreadPoolExecutor] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def serve(self) -> None:
        """Read requests until EOF, then wait for in-flight calls to finish."""
        self._pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="toolgate-call")
        logger.info(
            "%s serving %d tools on stdio",
            self.server_name,
            len(self.dispatcher.registry),
        )
        try:
            for line in self._lines():
                line = line.strip()
                if not line:
                    continue
                try:
                    self.handle_line(line)
                except Exception:
                    logger.exception("dropped a message that could not be handled")
        finally:
            self._pool.shutdown(wait=True)
            self._pool = None
            if self.on_shutdown is not None:
                self.on_shutdown()
            logger.info("%s stdin closed, shutting down", self.server_name)

    def _lines(self) -> Iterator[str]:
        """Inbound lines; undecodable bytes become U+FFFD and fail to parse."""
        raw = getattr(self.reader, "buffer", None)
        if raw is None:
            yield from self.reader
            return
        for chunk in raw:
            yield chunk.decode("utf-8", errors="replace")

    # ── Message handling ──────────────────────────────────────────────────

    def handle_line(self, line: str) -> None:
        try:
            message = json.loads(line)
        except (ValueError, RecursionError) as exc:
            # JSONDecodeError, over-long integers and runaway nesting
            self._send_error(None, PARSE_ERROR, f"Parse error: {exc}")
            return

        if not isinstance(message, dict) or message.get("jsonrpc") != "2.0" or "method" not in message:
            request_id = message.get("id") if isinstance(message, dict) else None
            self._send_error(request_id, INVALID_REQUEST, "Invalid request")
            return

        method = message["method"]
        request_id = message.get("id")
        params = message.get("params") or {}
        is_notification = "id" not in message

        if is_notification:
            logger.debug("notification %s", method)
            return

        if method == "tools/call":
            if self._pool is None:
                self._run_call(request_id, params)
            else:
                self._pool.submit(self._run_call, request_id, params)
            return

        try:
            result = self.handle_request(method, params)
        except TransportError as exc:
            self._send_error(request_id, exc.code, exc.message)
            return
        except Exception as exc:
            logger.exception("failed handling %s", method)
            self._send_error(request_id, INTERNAL_ERROR, f"Internal error: {exc}")
            return
        self._send_result(request_id, result)

    def handle_request(self, method: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Answer the non-call methods."""
        if method == "initialize":
            return {
                "protocolVersion": params.get("protocolVersion") or PROTOCOL_VERSION,
                "capabilities": {"tools": {"listChanged": False}},
                "serverInfo": {"name": self.server_name, "version": self.server_version},
            }
        if method == "ping":
            return {}
        if method == "tools/list":
            return {"tools": self.dispatcher.registry.catalog()}
        raise TransportError(METHOD_NOT_FOUND, f"Method not found: {method}")

    def _run_call(self, request_id: Any, params: Any) -> None:
        if not isinstance(params, dict) or not isinstance(params.get("name"), str):
            self._send_error(request_id, INVALID_PARAMS, "tools/call requires a string 'name'")
            return

        call = CallRequest(tool_name=params["name"], arguments=params.get("arguments"))
        try:
            result = self.dispatcher.dispatch(call)
            payload = result.to_wire()
            json.dumps(payload)
        except Exception as exc:
            logger.exception("could not produce a response for %s", call.tool_name)
            payload = ToolResult.fail(
                f"Failed to serialize result of '{call.tool_name}': {exc}",
                FailureCategory.TRANSPORT,
                call_id=call.call_id,
                tool_name=call.tool_name,
            ).to_wire()
        self._send_result(request_id, payload)

    # ── Output ────────────────────────────────────────────────────────────

    def _send_result(self, request_id: Any, result: Dict[str, Any]) -> None:
        self._write({"jsonrpc": "2.0", "id": request_id, "result": result})

    def _send_error(self, request_id: Any, code: int, message: str) -> None:
        self._write({"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}})

    def _write(self, message: Dict[str, Any]) -> None:
        line = json.dumps(message, ensure_ascii=False) + "\n"
        with self._write_lock:
            try:
                self.writer.write(line)
                self.writer.flush()
            except (BrokenPipeError, OSError, ValueError) as exc:
                logger.error("failed writing response id=%s: %s", message.get("id"), exc)
