"""Data models for argument contracts, tool descriptors, calls, and results."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from toolgate.gateway.errors import FailureCategory


# ── Argument contracts ────────────────────────────────────────────────────


class FieldKind(str, Enum):
    """Primitive kinds an argument field can declare."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ENUM = "enum"
    ARRAY = "array"
    OBJECT = "object"
    MAPPING = "mapping"


class FieldSpec(BaseModel):
    """
    Declarative description of one argument field.

    ``default`` only counts when it was passed explicitly, so a field can
    default to ``None``. A field with a default is implicitly optional.
    """

    model_config = ConfigDict(frozen=True)

    kind: FieldKind
    description: str = ""
    required: bool = False
    default: Any = None
    choices: Tuple[str, ...] = ()
    items: Optional[FieldSpec] = None
    fields: Optional[Dict[str, FieldSpec]] = None
    values: Optional[FieldSpec] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "FieldSpec":
        if self.kind == FieldKind.ENUM and not self.choices:
            raise ValueError("enum fields need a non-empty set of choices")
        if self.kind == FieldKind.ARRAY and self.items is None:
            raise ValueError("array fields need an item spec")
        if self.kind == FieldKind.OBJECT and self.fields is None:
            raise ValueError("object fields need nested field specs")
        return self

    @property
    def has_default(self) -> bool:
        return "default" in self.model_fields_set

    @property
    def is_optional(self) -> bool:
        return not self.required or self.has_default

    def describe_kind(self) -> str:
        """Human-readable kind, used in validation messages."""
        if self.kind == FieldKind.ENUM:
            return "one of " + ", ".join(repr(c) for c in self.choices)
        if self.kind == FieldKind.ARRAY and self.items is not None:
            return f"array of {self.items.describe_kind()}"
        if self.kind == FieldKind.MAPPING and self.values is not None:
            return f"mapping of {self.values.describe_kind()}"
        return self.kind.value

    def to_json_schema(self) -> Dict[str, Any]:
        """JSON Schema fragment for catalog advertisement."""
        schema: Dict[str, Any] = {}
        if self.kind == FieldKind.ENUM:
            schema["type"] = "string"
            schema["enum"] = list(self.choices)
        elif self.kind == FieldKind.ARRAY:
            schema["type"] = "array"
            schema["items"] = self.items.to_json_schema()
        elif self.kind == FieldKind.OBJECT:
            schema.update(ArgumentContract(fields=self.fields).to_json_schema())
        elif self.kind == FieldKind.MAPPING:
            schema["type"] = "object"
            if self.values is not None:
                schema["additionalProperties"] = self.values.to_json_schema()
        else:
            schema["type"] = self.kind.value
        if self.description:
            schema["description"] = self.description
        if self.has_default:
            schema["default"] = self.default
        return schema


class ArgumentContract(BaseModel):
    """Ordered mapping from parameter name to field spec."""

    model_config = ConfigDict(frozen=True)

    fields: Dict[str, FieldSpec] = Field(default_factory=dict)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, FieldSpec]]) -> "ArgumentContract":
        """Build a contract from ``(name, spec)`` pairs, rejecting duplicates."""
        fields: Dict[str, FieldSpec] = {}
        for name, spec in pairs:
            if name in fields:
                raise ValueError(f"duplicate parameter name: {name}")
            fields[name] = spec
        return cls(fields=fields)

    def required_names(self) -> List[str]:
        return [name for name, spec in self.fields.items() if not spec.is_optional]

    def to_json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {
            "type": "object",
            "properties": {name: spec.to_json_schema() for name, spec in self.fields.items()},
        }
        required = self.required_names()
        if required:
            schema["required"] = required
        return schema


FieldSpec.model_rebuild()


def _field(kind: FieldKind, description: str, required: bool, **kwargs: Any) -> FieldSpec:
    return FieldSpec(kind=kind, description=description, required=required, **kwargs)


_NO_DEFAULT = object()


def _with_default(default: Any) -> Dict[str, Any]:
    return {} if default is _NO_DEFAULT else {"default": default}


def string(description: str = "", *, required: bool = False, default: Any = _NO_DEFAULT) -> FieldSpec:
    return _field(FieldKind.STRING, description, required, **_with_default(default))


def number(description: str = "", *, required: bool = False, default: Any = _NO_DEFAULT) -> FieldSpec:
    return _field(FieldKind.NUMBER, description, required, **_with_default(default))


def integer(description: str = "", *, required: bool = False, default: Any = _NO_DEFAULT) -> FieldSpec:
    return _field(FieldKind.INTEGER, description, required, **_with_default(default))


def boolean(description: str = "", *, required: bool = False, default: Any = _NO_DEFAULT) -> FieldSpec:
    return _field(FieldKind.BOOLEAN, description, required, **_with_default(default))


def enum(
    choices: Iterable[str],
    description: str = "",
    *,
    required: bool = False,
    default: Any = _NO_DEFAULT,
) -> FieldSpec:
    return _field(FieldKind.ENUM, description, required, choices=tuple(choices), **_with_default(default))


def array(
    items: FieldSpec,
    description: str = "",
    *,
    required: bool = False,
    default: Any = _NO_DEFAULT,
) -> FieldSpec:
    return _field(FieldKind.ARRAY, description, required, items=items, **_with_default(default))


def obj(
    fields: Dict[str, FieldSpec],
    description: str = "",
    *,
    required: bool = False,
    default: Any = _NO_DEFAULT,
) -> FieldSpec:
    return _field(FieldKind.OBJECT, description, required, fields=fields, **_with_default(default))


def mapping(
    values: Optional[FieldSpec] = None,
    description: str = "",
    *,
    required: bool = False,
    default: Any = _NO_DEFAULT,
) -> FieldSpec:
    return _field(FieldKind.MAPPING, description, required, values=values, **_with_default(default))


# ── Tool descriptors ──────────────────────────────────────────────────────


ToolHandler = Callable[[Dict[str, Any]], Any]


class ToolDef(BaseModel):
    """One callable capability: name, description, contract, handler."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    contract: ArgumentContract = Field(default_factory=ArgumentContract)
    handler: ToolHandler = Field(exclude=True)
    group: str = ""

    def catalog_entry(self) -> Dict[str, Any]:
        """Advertised form: name, description, JSON Schema of the input."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.contract.to_json_schema(),
        }

    def prompt_line(self) -> str:
        return f"- {self.name}: {self.description}"


# ── Calls and results ─────────────────────────────────────────────────────


class CallRequest(BaseModel):
    """One inbound call: a tool name and untyped raw arguments."""

    call_id: str = ""
    tool_name: str
    arguments: Any = None
    timestamp: str = ""

    def model_post_init(self, __context: Any) -> None:
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()
        if not self.call_id:
            raw = f"{self.tool_name}:{self.arguments}:{self.timestamp}"
            self.call_id = hashlib.sha256(raw.encode()).hexdigest()[:12]


class ContentBlock(BaseModel):
    """A typed piece of successful output."""

    type: str = "text"
    text: str = ""


class ToolFailure(BaseModel):
    """Failure description carried by a result envelope."""

    message: str
    category: FailureCategory = FailureCategory.OPERATIONAL
    details: Dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    """
    Uniform response envelope.

    Exactly one of ``content`` (success) and ``error`` (failure) is set.
    """

    call_id: str = ""
    tool_name: str = ""
    content: Optional[List[ContentBlock]] = None
    error: Optional[ToolFailure] = None
    duration_ms: int = 0

    @model_validator(mode="after")
    def _check_exclusive(self) -> "ToolResult":
        if self.content is None and self.error is None:
            raise ValueError("tool result requires content or error")
        if self.content is not None and self.error is not None:
            raise ValueError("tool result cannot include both content and error")
        return self

    @classmethod
    def ok(cls, content: List[ContentBlock], **kwargs: Any) -> "ToolResult":
        return cls(content=content, **kwargs)

    @classmethod
    def fail(
        cls,
        message: str,
        category: FailureCategory = FailureCategory.OPERATIONAL,
        details: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> "ToolResult":
        failure = ToolFailure(message=message, category=category, details=details or {})
        return cls(error=failure, **kwargs)

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def text(self) -> str:
        """All text blocks joined, or the failure message."""
        if self.error is not None:
            return self.error.message
        return "\n".join(block.text for block in self.content or [])

    def to_wire(self) -> Dict[str, Any]:
        """MCP ``tools/call`` result shape."""
        if self.error is None:
            return {
                "content": [block.model_dump() for block in self.content or []],
                "isError": False,
            }
        return {
            "content": [{"type": "text", "text": self.error.message}],
            "isError": True,
            "structuredContent": {
                "error": {
                    "category": self.error.category.value,
                    "details": json.loads(json.dumps(self.error.details, default=str)),
                }
            },
        }
