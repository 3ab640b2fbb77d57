"""Tests for the validation data model."""

import copy
import pickle

import pytest

from formschema.errors import ErrorCode, SchemaDefinitionError
from formschema.validation.model import (
    MISSING,
    FieldDefinition,
    FieldKind,
    SchemaDefinition,
    Severity,
    UnknownKeyPolicy,
    ValidationError,
    ValidationOptions,
    ValidationResult,
    ValidationRule,
    ValidatorContext,
    build_result,
    error_result,
    is_blank,
    is_empty,
    lookup_path,
    merge_results,
    parse_path,
    thaw,
)


class TestMissing:
    """Test the absent-key sentinel."""

    def test_missing_is_falsy_singleton(self):
        assert not MISSING
        assert repr(MISSING) == "MISSING"
        assert copy.copy(MISSING) is MISSING
        assert copy.deepcopy(MISSING) is MISSING

    def test_missing_survives_pickling(self):
        assert pickle.loads(pickle.dumps(MISSING)) is MISSING

    def test_emptiness(self):
        assert is_empty(MISSING) and is_empty(None) and is_empty("")
        assert not is_empty([]) and not is_empty(0) and not is_empty(False)
        assert is_blank([]) and is_blank(())
        assert not is_blank([0])


class TestPaths:
    """Test path parsing and lookup."""

    def test_parse_path(self):
        assert parse_path("") == ()
        assert parse_path("email") == ("email",)
        assert parse_path("items[2].sku") == ("items", 2, "sku")
        assert parse_path("matrix[0][1]") == ("matrix", 0, 1)

    def test_lookup_path(self):
        data = {"user": {"emails": ["a@x.io", "b@x.io"]}}
        assert lookup_path(data, "user.emails[1]") == "b@x.io"
        assert lookup_path(data, "user.phone") is MISSING
        assert lookup_path(data, "user.emails[5]") is MISSING
        assert lookup_path(data, "user.emails.first") is MISSING

    def test_context_child_and_item(self):
        root = {"items": [{"sku": "A"}]}
        ctx = ValidatorContext(path="", root=root)
        items = ctx.child("items", root)
        first = items.item(0, root["items"])
        assert items.path == "items"
        assert first.path == "items[0]"
        assert first.child("sku", root["items"][0]).path == "items[0].sku"
        assert first.lookup("items[0].sku") == "A"


class TestDefinitions:
    """Test schema definition invariants."""

    def test_rule_kind_normalized_and_params_frozen(self):
        rule = ValidationRule(ErrorCode.REQUIRED, {"value": 3})
        assert rule.kind == "REQUIRED"
        with pytest.raises(TypeError):
            rule.params["value"] = 4

    def test_nested_params_are_frozen(self):
        source = {"then": {"kind": "enum", "params": {"values": ["a", "b"]}}}
        rule = ValidationRule("when", source)
        source["then"]["params"]["values"].append("c")
        assert rule.params["then"]["params"]["values"] == ("a", "b")
        with pytest.raises(TypeError):
            rule.params["then"]["kind"] = "min"
        assert thaw(rule.params) == {"then": {"kind": "enum", "params": {"values": ["a", "b"]}}}

    def test_call_params_include_soft_and_message(self):
        rule = ValidationRule("min", {"value": 3}, message="Too small", soft=True)
        assert rule.call_params() == {"value": 3, "soft": True, "message": "Too small"}
        assert rule.severity is Severity.SOFT

    def test_nested_schema_only_on_object(self):
        with pytest.raises(SchemaDefinitionError):
            FieldDefinition(FieldKind.STRING, schema=SchemaDefinition())

    def test_items_only_on_array(self):
        with pytest.raises(SchemaDefinitionError):
            FieldDefinition(FieldKind.NUMBER, items=FieldDefinition(FieldKind.STRING))

    def test_catchall_policy_requires_definition(self):
        with pytest.raises(SchemaDefinitionError):
            SchemaDefinition(unknown_keys=UnknownKeyPolicy.CATCHALL)
        with pytest.raises(SchemaDefinitionError):
            SchemaDefinition(catchall=FieldDefinition(FieldKind.STRING))

    def test_fields_must_be_definitions(self):
        with pytest.raises(SchemaDefinitionError):
            SchemaDefinition(fields={"name": "string"})

    def test_fields_keep_declaration_order(self):
        s = SchemaDefinition(fields={"b": FieldDefinition("string"), "a": FieldDefinition("number")})
        assert s.field_names == ("b", "a")
        assert "a" in s and len(s) == 2

    def test_has_async_rules_is_recursive(self):
        inner = FieldDefinition(FieldKind.STRING, rules=(ValidationRule("refineAsync", is_async=True),))
        outer = FieldDefinition(FieldKind.ARRAY, items=inner)
        assert SchemaDefinition(fields={"tags": outer}).has_async_rules
        assert not SchemaDefinition(fields={"tags": FieldDefinition(FieldKind.ARRAY)}).has_async_rules


class TestErrorsAndResults:
    """Test ValidationError and ValidationResult."""

    def test_error_path_is_derived_from_field(self):
        error = ValidationError("items[1].qty", ErrorCode.NOT_POSITIVE, "Value must be positive")
        assert error.path == ("items", 1, "qty")
        assert error.replace(field="total").path == ("total",)

    def test_error_to_dict_omits_absent_values(self):
        error = ValidationError("age", ErrorCode.MIN_VALUE, "Too young", received=12, expected=18)
        assert error.to_dict() == {"field": "age", "path": ["age"], "code": "MIN_VALUE",
            "message": "Too young", "severity": "hard", "received": 12, "expected": 18}
        assert "received" not in ValidationError("age", "REQUIRED", "Missing").to_dict()

    def test_validity_follows_hard_errors(self):
        soft = ValidationError("age", "MAX_VALUE", "Check", Severity.SOFT)
        assert ValidationResult(soft_errors=(soft,)).is_valid
        assert not error_result("age", ErrorCode.REQUIRED, "Missing").is_valid
        assert error_result("age", ErrorCode.WARNING, "Check", soft=True).is_valid

    def test_merge_results_concatenates(self):
        merged = merge_results(error_result("a", "X", "x"), error_result("b", "Y", "y", soft=True))
        assert [e.field for e in merged.hard_errors] == ["a"]
        assert [e.field for e in merged.soft_errors] == ["b"]

    def test_build_result_groups_by_field(self):
        hard = [ValidationError("a", "X", "x")]
        soft = [ValidationError("a", "Y", "y", Severity.SOFT), ValidationError("b", "Z", "z", Severity.SOFT)]
        result = build_result(hard, soft, aggregate_by_field=True)
        assert [e.code for e in result.errors_by_field["a"]] == ["X", "Y"]
        assert list(result.errors_by_field) == ["a", "b"]
        assert build_result(hard, soft).errors_by_field is None

    def test_options_coerce(self):
        assert ValidationOptions.coerce(None) == ValidationOptions()
        assert ValidationOptions.coerce({"abort_early": True}).abort_early
        with pytest.raises(TypeError):
            ValidationOptions.coerce({"stop_early": True})
