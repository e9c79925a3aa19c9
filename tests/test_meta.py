"""Tests for engine/meta.py: dialect selection and schema shape checks."""

from __future__ import annotations

import logging
from decimal import Decimal

import pytest

from engine.dialects import DRAFT4, DRAFT7, DRAFT2019, DRAFT2020, find_dialect
from engine.errors import CompileError
from engine.meta import schema_issues, select_dialect, validate_schema

DRAFT7_URI = "http://json-schema.org/draft-07/schema#"


def _messages(doc, dialect=DRAFT2020, max_depth=100):
    return [issue.message for issue in schema_issues(doc, dialect, max_depth)]


def _paths(doc, dialect=DRAFT2020):
    return [str(issue.path) for issue in schema_issues(doc, dialect)]


# ======================================================================
# Dialects
# ======================================================================
class TestDialects:
    @pytest.mark.parametrize("uri", [
        "http://json-schema.org/draft-07/schema#",
        "http://json-schema.org/draft-07/schema",
        "https://json-schema.org/draft-07/schema#",
    ])
    def test_uri_variants(self, uri):
        assert find_dialect(uri) is DRAFT7

    def test_draft2019_drops_dependencies(self):
        assert "dependencies" not in DRAFT2019.keywords
        assert "dependentRequired" in DRAFT2019.keywords

    def test_draft2020_replaces_array_items(self):
        assert "prefixItems" in DRAFT2020.keywords
        assert "additionalItems" not in DRAFT2020.keywords

    def test_draft4_uses_id(self):
        assert DRAFT4.id_keyword == "id"
        assert DRAFT7.id_keyword == "$id"
        assert not DRAFT4.boolean_schemas


class TestSelectDialect:
    def test_default_when_absent(self):
        assert select_dialect({"type": "string"}) is DRAFT2020

    def test_boolean_schema_uses_default(self):
        assert select_dialect(True, DRAFT7_URI) is DRAFT7

    def test_root_schema_keyword(self):
        assert select_dialect({"$schema": DRAFT7_URI}) is DRAFT7

    def test_unknown_dialect_fails(self):
        with pytest.raises(CompileError) as exc:
            select_dialect({"$schema": "http://example.com/custom"})
        assert exc.value.message == 'Unknown $schema dialect: "http://example.com/custom"'
        assert str(exc.value.path) == "/$schema"

    def test_unknown_dialect_falls_back(self, caplog):
        with caplog.at_level(logging.WARNING, logger="engine.meta"):
            dialect = select_dialect(
                {"$schema": "http://example.com/custom"}, unknown_dialect="default"
            )
        assert dialect is DRAFT2020
        assert "falling back" in caplog.text

    def test_non_string_schema_keyword(self):
        with pytest.raises(CompileError, match="expected a string"):
            select_dialect({"$schema": 7})

    def test_unknown_default_dialect(self):
        with pytest.raises(CompileError, match="Unknown default dialect"):
            select_dialect({}, default_dialect="http://example.com/nope")


# ======================================================================
# Shape checks
# ======================================================================
class TestShapes:
    def test_valid_schema_has_no_issues(self, simple_schema, array_schema):
        assert schema_issues(simple_schema, DRAFT2020) == []
        assert schema_issues(array_schema, DRAFT2020) == []

    def test_boolean_schemas(self):
        assert schema_issues(True, DRAFT2020) == []
        assert _messages(False, DRAFT4) == ["false is not a valid schema: expected an object"]

    def test_non_schema_root(self):
        assert _messages(1) == ["1 is not a valid schema: expected a schema (object or boolean)"]

    def test_max_length_must_be_non_negative_integer(self):
        assert _messages({"maxLength": -1}) == [
            "-1 is not valid under the 'maxLength' keyword: expected a non-negative integer"
        ]
        assert _messages({"maxLength": 1.5})
        assert _messages({"maxLength": True})
        assert _messages({"maxLength": 2.0}) == []

    def test_unknown_type_name(self):
        messages = _messages({"type": "obj"})
        assert len(messages) == 1
        assert messages[0].startswith("\"obj\" is not valid under the 'type' keyword")

    @pytest.mark.parametrize("value", [[], ["string", "string"], ["string", 1]])
    def test_bad_type_arrays(self, value):
        assert _paths({"type": value}) == ["/type"]

    def test_multiple_of_must_be_positive(self):
        assert _paths({"multipleOf": 0}) == ["/multipleOf"]
        assert _paths({"multipleOf": Decimal("0.01")}) == []

    def test_invalid_pattern(self):
        assert _paths({"pattern": "("}) == ["/pattern"]

    def test_invalid_pattern_property_key(self):
        assert _paths({"patternProperties": {"[": {}}}) == ["/patternProperties/["]

    def test_required_must_be_unique_strings(self):
        assert _paths({"required": ["a", "a"]}) == ["/required"]
        assert _paths({"required": "a"}) == ["/required"]

    def test_combinators_need_non_empty_arrays(self):
        assert _paths({"anyOf": []}) == ["/anyOf"]
        assert _paths({"allOf": {}}) == ["/allOf"]

    def test_ref_must_be_string(self):
        assert _paths({"$ref": 1}) == ["/$ref"]

    def test_recurses_into_subschemas(self):
        doc = {
            "properties": {"a": {"items": {"minItems": "3"}}},
            "allOf": [{}, {"not": {"type": "nope"}}],
        }
        assert _paths(doc) == ["/properties/a/items/minItems", "/allOf/1/not/type"]

    def test_draft4_exclusive_limits_are_booleans(self):
        assert _paths({"minimum": 1, "exclusiveMinimum": True}, DRAFT4) == []
        assert _paths({"exclusiveMinimum": 1}, DRAFT4) == ["/exclusiveMinimum"]
        assert _paths({"exclusiveMinimum": True}, DRAFT7) == ["/exclusiveMinimum"]

    def test_draft7_array_items(self):
        assert _paths({"items": [{"type": "string"}, True]}, DRAFT7) == []
        assert _paths({"items": [{"type": "bad"}]}, DRAFT7) == ["/items/0/type"]

    def test_dependencies(self):
        assert _paths({"dependencies": {"a": ["b"], "c": {"required": ["d"]}}}, DRAFT7) == []
        assert _paths({"dependencies": {"a": [1]}}, DRAFT7) == ["/dependencies/a"]

    def test_unknown_keywords_must_hold_json(self):
        assert _paths({"x-custom": {"anything": [1, "two"]}}) == []
        assert _paths({"x-custom": object()}) == ["/x-custom"]

    def test_keywords_of_other_dialects_are_ignored(self):
        # "prefixItems" is an unknown keyword in draft 7
        assert _paths({"prefixItems": "nope"}, DRAFT7) == []

    def test_depth_guard(self):
        doc: dict = {}
        for _ in range(20):
            doc = {"not": doc}
        messages = _messages(doc, max_depth=10)
        assert messages == ["Schema nesting exceeds the maximum depth of 10"]


class TestValidateSchema:
    def test_returns_dialect(self):
        assert validate_schema({"$schema": DRAFT7_URI}) is DRAFT7

    def test_first_issue_is_raised_with_all_issues(self):
        with pytest.raises(CompileError) as exc:
            validate_schema({"minLength": -1, "maxLength": "x"})
        error = exc.value
        assert str(error.path) == "/minLength"
        assert len(error.issues) == 2
        assert "'minLength'" in str(error)

    def test_input_is_not_mutated(self, simple_schema):
        before = repr(simple_schema)
        validate_schema(simple_schema)
        assert repr(simple_schema) == before
