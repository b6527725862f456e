"""Tests for argument contracts and validation."""

import pytest

from toolgate.gateway.errors import ArgumentError
from toolgate.gateway.schema import (
    ArgumentContract,
    FieldKind,
    FieldSpec,
    array,
    boolean,
    enum,
    integer,
    mapping,
    number,
    obj,
    string,
)
from toolgate.gateway.validator import validate


def contract(**fields):
    return ArgumentContract(fields=fields)


# ═══════════════════════════════════════════════════════════════════════════════
# Contract construction
# ═══════════════════════════════════════════════════════════════════════════════

class TestArgumentContract:
    """Tests for FieldSpec / ArgumentContract construction."""

    def test_enum_needs_choices(self):
        with pytest.raises(ValueError):
            FieldSpec(kind=FieldKind.ENUM)

    def test_array_needs_items(self):
        with pytest.raises(ValueError):
            FieldSpec(kind=FieldKind.ARRAY)

    def test_object_needs_fields(self):
        with pytest.raises(ValueError):
            FieldSpec(kind=FieldKind.OBJECT)

    def test_duplicate_names_rejected_in_pair_form(self):
        with pytest.raises(ValueError, match="duplicate"):
            ArgumentContract.from_pairs([("path", string()), ("path", string())])

    def test_default_makes_field_optional(self):
        spec = FieldSpec(kind=FieldKind.STRING, required=True, default="x")
        assert spec.is_optional

    def test_explicit_none_default_is_a_default(self):
        assert string(default=None).has_default
        assert not string().has_default

    def test_json_schema(self):
        schema = contract(
            path=string("Path to the file", required=True),
            mode=enum(["a", "b"], default="a"),
            tags=array(string()),
        ).to_json_schema()

        assert schema["type"] == "object"
        assert schema["required"] == ["path"]
        assert schema["properties"]["path"] == {"type": "string", "description": "Path to the file"}
        assert schema["properties"]["mode"]["enum"] == ["a", "b"]
        assert schema["properties"]["mode"]["default"] == "a"
        assert schema["properties"]["tags"]["items"] == {"type": "string"}

    def test_contracts_are_immutable(self):
        c = contract(path=string(required=True))
        with pytest.raises(Exception):
            c.fields = {}


# ═══════════════════════════════════════════════════════════════════════════════
# validate()
# ═══════════════════════════════════════════════════════════════════════════════

class TestValidate:
    """Tests for validate()."""

    def test_none_is_empty_object(self):
        assert validate(contract(x=string()), None) == {}

    def test_non_mapping_rejected(self):
        with pytest.raises(ArgumentError) as exc:
            validate(contract(), ["not", "an", "object"])
        assert exc.value.field == "<arguments>"

    def test_missing_required(self):
        with pytest.raises(ArgumentError) as exc:
            validate(contract(path=string(required=True)), {})
        assert exc.value.field == "path"
        assert exc.value.reason == "missing required field"
        assert exc.value.expected == "string"

    def test_default_substituted(self):
        result = validate(contract(encoding=string(default="utf-8")), {})
        assert result == {"encoding": "utf-8"}

    def test_mutable_default_is_copied(self):
        c = contract(tags=array(string(), default=[]))
        first = validate(c, {})
        first["tags"].append("x")
        assert validate(c, {}) == {"tags": []}

    def test_optional_without_default_omitted(self):
        assert "file" not in validate(contract(file=string()), {})

    def test_explicit_null_treated_as_absent(self):
        assert validate(contract(file=string(), n=integer(default=3)), {"file": None, "n": None}) == {"n": 3}

    def test_explicit_null_for_required_is_missing(self):
        with pytest.raises(ArgumentError, match="missing required"):
            validate(contract(path=string(required=True)), {"path": None})

    def test_unknown_keys_ignored(self):
        assert validate(contract(a=string()), {"a": "x", "extra": 1}) == {"a": "x"}

    def test_wrong_type(self):
        with pytest.raises(ArgumentError) as exc:
            validate(contract(path=string(required=True)), {"path": 42})
        assert exc.value.field == "path"
        assert exc.value.actual == 42
        assert exc.value.to_dict()["expected"] == "string"

    def test_bool_is_not_a_number(self):
        with pytest.raises(ArgumentError):
            validate(contract(timeout=number()), {"timeout": True})
        with pytest.raises(ArgumentError):
            validate(contract(count=integer()), {"count": False})

    def test_number_accepts_int_and_float(self):
        assert validate(contract(t=number()), {"t": 2}) == {"t": 2}
        assert validate(contract(t=number()), {"t": 2.5}) == {"t": 2.5}

    def test_integer_coerces_whole_float(self):
        result = validate(contract(run_id=integer()), {"run_id": 12.0})
        assert result["run_id"] == 12
        assert isinstance(result["run_id"], int)

    def test_integer_rejects_fraction(self):
        with pytest.raises(ArgumentError):
            validate(contract(run_id=integer()), {"run_id": 1.5})

    def test_boolean_rejects_string(self):
        with pytest.raises(ArgumentError):
            validate(contract(flag=boolean()), {"flag": "true"})

    def test_enum_membership(self):
        c = contract(action=enum(["list", "create"], required=True))
        assert validate(c, {"action": "list"}) == {"action": "list"}
        with pytest.raises(ArgumentError) as exc:
            validate(c, {"action": "explode"})
        assert "'list'" in exc.value.expected

    def test_array_element_path(self):
        c = contract(scope=array(enum(["failed", "success"])))
        with pytest.raises(ArgumentError) as exc:
            validate(c, {"scope": ["failed", "bogus"]})
        assert exc.value.field == "scope[1]"

    def test_nested_object_path(self):
        c = contract(time_range=obj({"start": string(), "end": string()}))
        assert validate(c, {"time_range": {"start": "2024-01-01"}}) == {
            "time_range": {"start": "2024-01-01"}
        }
        with pytest.raises(ArgumentError) as exc:
            validate(c, {"time_range": {"start": 5}})
        assert exc.value.field == "time_range.start"

    def test_mapping_values_checked(self):
        c = contract(env=mapping(string()))
        assert validate(c, {"env": {"A": "1"}}) == {"env": {"A": "1"}}
        with pytest.raises(ArgumentError) as exc:
            validate(c, {"env": {"A": 1}})
        assert exc.value.field == "env.A"

    def test_fail_fast_reports_first_field(self):
        c = contract(a=string(required=True), b=string(required=True))
        with pytest.raises(ArgumentError) as exc:
            validate(c, {"a": 1, "b": 2})
        assert exc.value.field == "a"

    def test_input_not_mutated(self):
        raw = {"path": "x"}
        validate(contract(path=string(), enc=string(default="utf-8")), raw)
        assert raw == {"path": "x"}
