"""Tests for engine/errors.py: error records and their formatting."""

from __future__ import annotations

from engine import ROOT, CompileError, SchemaIssue, ValidationError, compile_schema, format_all, format_error


def _error(path=ROOT, message="boom", instance=None):
    return ValidationError(
        keyword="type",
        instance_path=path,
        schema_path=ROOT.join("type"),
        message=message,
        instance=instance,
    )


class TestFormatting:
    def test_plain_message(self):
        assert format_error(_error()) == "boom"
        assert str(_error()) == "boom"

    def test_location_at_root(self):
        assert format_error(_error(), with_location=True) == "boom at /"

    def test_location_nested(self):
        error = _error(ROOT.join("foo", 0))
        assert format_error(error, with_location=True) == "boom at /foo/0"

    def test_format_all_keeps_order(self):
        errors = [_error(message="b"), _error(message="a")]
        assert format_all(errors) == ["b", "a"]

    def test_instance_is_not_compared(self):
        assert _error(instance=[1]) == _error(instance=[2])


class TestCompileError:
    def test_from_issues_uses_first(self):
        issues = [
            SchemaIssue(ROOT.join("minLength"), "minLength", "first"),
            SchemaIssue(ROOT.join("maxLength"), "maxLength", "second"),
        ]
        error = CompileError.from_issues(issues)
        assert str(error) == "first"
        assert error.message == "first"
        assert str(error.path) == "/minLength"
        assert error.issues == tuple(issues)

    def test_defaults(self):
        error = CompileError("bad")
        assert error.path == ROOT
        assert error.issues == ()

    def test_is_an_exception(self):
        assert isinstance(CompileError("x"), Exception)


class TestReportedErrors:
    def test_single_violation_single_error(self):
        schema = {
            "type": "object",
            "properties": {"name": {"type": "string", "maxLength": 3}},
            "required": ["name"],
        }
        result = compile_schema(schema).validate({"name": "long"})
        assert format_all(result, with_location=True) == [
            '"long" is longer than 3 characters at /name'
        ]

    def test_nested_error_order(self, array_schema):
        instance = {"items": [{"id": "a"}, {"value": 1}]}
        result = compile_schema(array_schema).validate(instance)
        assert [(str(e.instance_path), e.keyword) for e in result] == [
            ("/items/0/id", "type"),
            ("/items/1/value", "type"),
            ("/items/1", "required"),
        ]
