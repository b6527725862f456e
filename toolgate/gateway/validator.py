"""Argument contract validation.

Validation is fail-fast: the first field that does not satisfy the contract
is reported and the rest are not inspected. Unknown keys are ignored.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any, Dict

from toolgate.gateway.errors import ArgumentError
from toolgate.gateway.schema import ArgumentContract, FieldKind, FieldSpec


def validate(contract: ArgumentContract, raw_args: Any) -> Dict[str, Any]:
    """
    Check ``raw_args`` against ``contract`` and return the validated mapping.

    Defaults are substituted for absent fields; optional fields without a
    default are left out. Raises :class:`ArgumentError` on the first problem.
    """
    if raw_args is None:
        raw_args = {}
    if not isinstance(raw_args, Mapping):
        raise ArgumentError("<arguments>", "arguments must be an object", "object", raw_args)
    return _validate_fields(contract.fields, raw_args, prefix="")


def _validate_fields(fields: Dict[str, FieldSpec], raw: Mapping, prefix: str) -> Dict[str, Any]:
    validated: Dict[str, Any] = {}
    for name, spec in fields.items():
        path = f"{prefix}{name}"
        value = raw.get(name)
        if value is None:
            if spec.has_default:
                validated[name] = copy.deepcopy(spec.default)
            elif not spec.is_optional:
                raise ArgumentError(path, "missing required field", spec.describe_kind())
            continue
        validated[name] = _check_value(spec, value, path)
    return validated


def _check_value(spec: FieldSpec, value: Any, path: str) -> Any:
    kind = spec.kind

    if kind == FieldKind.STRING:
        if not isinstance(value, str):
            raise _mismatch(spec, value, path)
        return value

    if kind == FieldKind.BOOLEAN:
        if not isinstance(value, bool):
            raise _mismatch(spec, value, path)
        return value

    if kind == FieldKind.NUMBER:
        # bool is an int subclass but never a number here
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise _mismatch(spec, value, path)
        return value

    if kind == FieldKind.INTEGER:
        if isinstance(value, bool):
            raise _mismatch(spec, value, path)
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        raise _mismatch(spec, value, path)

    if kind == FieldKind.ENUM:
        if not isinstance(value, str) or value not in spec.choices:
            raise ArgumentError(path, "value is not one of the allowed choices", spec.describe_kind(), value)
        return value

    if kind == FieldKind.ARRAY:
        if not isinstance(value, (list, tuple)):
            raise _mismatch(spec, value, path)
        return [_check_value(spec.items, item, f"{path}[{i}]") for i, item in enumerate(value)]

    if kind == FieldKind.OBJECT:
        if not isinstance(value, Mapping):
            raise _mismatch(spec, value, path)
        return _validate_fields(spec.fields or {}, value, prefix=f"{path}.")

    if kind == FieldKind.MAPPING:
        if not isinstance(value, Mapping):
            raise _mismatch(spec, value, path)
        if spec.values is None:
            return dict(value)
        result = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise ArgumentError(path, "mapping keys must be strings", "string keys", key)
            result[key] = _check_value(spec.values, item, f"{path}.{key}")
        return result

    raise ArgumentError(path, f"unsupported field kind {kind!r}")


def _mismatch(spec: FieldSpec, value: Any, path: str) -> ArgumentError:
    return ArgumentError(
        path,
        f"wrong type {type(value).__name__}",
        spec.describe_kind(),
        value,
    )
