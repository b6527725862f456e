"""
Dispatch gateway: the reusable core of toolgate.

A tool is a name, a description, an argument contract, and a handler.
Capability modules contribute groups of tools to a ToolRegistry; the
ToolDispatcher resolves a call by name, validates its arguments, invokes
the handler, and wraps the outcome in a uniform ToolResult envelope. The
StdioTransport moves calls and envelopes over stdin/stdout.

    client --> StdioTransport --> ToolDispatcher --> handler --> fs / git / HTTP
"""

from toolgate.gateway.dispatcher import ToolDispatcher
from toolgate.gateway.errors import (
    ArgumentError,
    ConfigurationError,
    DuplicateToolError,
    FailureCategory,
    ToolError,
    ToolNotFoundError,
)
from toolgate.gateway.registry import ToolRegistry
from toolgate.gateway.schema import (
    ArgumentContract,
    CallRequest,
    ContentBlock,
    FieldKind,
    FieldSpec,
    ToolDef,
    ToolFailure,
    ToolResult,
)
from toolgate.gateway.transport import StdioTransport
from toolgate.gateway.validator import validate

__all__ = [
    "ArgumentContract",
    "ArgumentError",
    "CallRequest",
    "ConfigurationError",
    "ContentBlock",
    "DuplicateToolError",
    "FailureCategory",
    "FieldKind",
    "FieldSpec",
    "StdioTransport",
    "ToolDef",
    "ToolDispatcher",
    "ToolError",
    "ToolFailure",
    "ToolNotFoundError",
    "ToolRegistry",
    "ToolResult",
    "validate",
]
