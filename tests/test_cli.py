"""Tests for cli/: argument handling, exit codes and reports."""

from __future__ import annotations

import json
import logging

import pytest

from cli import app
from cli.report import ErrorRecord, ValidationReport
from cli.rich_display import create_error_table, setup_logging


@pytest.fixture
def log_levels(monkeypatch):
    """Record the level the CLI configures logging with."""
    levels = []
    monkeypatch.setattr(app, "setup_logging", levels.append)
    return levels


@pytest.fixture
def schema_file(tmp_path):
    path = tmp_path / "schema.json"
    path.write_text(
        json.dumps({"type": "object", "properties": {"foo": {"type": "string"}}}),
        encoding="utf-8",
    )
    return path


def run(argv):
    with pytest.raises(SystemExit) as exc:
        app.main(argv)
    return exc.value.code


class TestExitCodes:
    def test_valid_instance_file(self, schema_file, tmp_path, capsys, log_levels):
        instance = tmp_path / "instance.json"
        instance.write_text('{"foo": "bar"}', encoding="utf-8")
        assert run(["-s", str(schema_file), "-i", str(instance)]) == 0
        assert "Instance is valid" in capsys.readouterr().out

    def test_invalid_inline_data(self, schema_file, capsys, log_levels):
        assert run(["-s", str(schema_file), "-d", '{"foo": 1}']) == 1
        assert "not valid" in capsys.readouterr().out

    def test_missing_schema_file(self, tmp_path, capsys, log_levels):
        assert run(["-s", str(tmp_path / "nope.json"), "-d", "1"]) == 2
        assert "Schema file not found" in capsys.readouterr().err

    def test_missing_instance_file(self, schema_file, tmp_path, log_levels):
        assert run(["-s", str(schema_file), "-i", str(tmp_path / "nope.json")]) == 2

    def test_malformed_data(self, schema_file, capsys, log_levels):
        assert run(["-s", str(schema_file), "-d", "{"]) == 2
        assert "Invalid instance JSON" in capsys.readouterr().err

    def test_instance_required_without_check_schema(self, schema_file, log_levels):
        assert run(["-s", str(schema_file)]) == 2

    def test_quiet_prints_nothing(self, schema_file, capsys, log_levels):
        assert run(["-s", str(schema_file), "-d", '{"foo": 1}', "-q"]) == 1
        assert capsys.readouterr().out == ""


class TestReports:
    def test_json_errors_report(self, schema_file, capsys, log_levels):
        code = run(["-s", str(schema_file), "-d", '{"foo": 1}', "--errors", "--format", "json"])
        report = json.loads(capsys.readouterr().out)
        assert code == 1
        assert report["valid"] is False
        assert report["dialect"] == "2020-12"
        assert report["errors"] == [
            {
                "keyword": "type",
                "instance_path": "/foo",
                "schema_path": "/properties/foo/type",
                "message": '1 is not of type "string"',
            }
        ]

    def test_boolean_mode_has_no_error_list(self, schema_file, capsys, log_levels):
        run(["-s", str(schema_file), "-d", '{"foo": 1}', "--format", "json"])
        report = json.loads(capsys.readouterr().out)
        assert report["valid"] is False
        assert report["errors"] == []

    def test_check_schema(self, schema_file, capsys, log_levels):
        assert run(["-s", str(schema_file), "--check-schema"]) == 0
        assert "Schema is valid" in capsys.readouterr().out

    def test_check_invalid_schema(self, tmp_path, capsys, log_levels):
        bad = tmp_path / "bad.json"
        bad.write_text('{"type": "obj"}', encoding="utf-8")
        assert run(["-s", str(bad), "--check-schema", "--format", "json"]) == 1
        report = json.loads(capsys.readouterr().out)
        assert report["schema_error_path"] == "/type"
        assert report["schema_error"].startswith("\"obj\" is not valid under the 'type' keyword")

    def test_invalid_schema_with_instance(self, tmp_path, capsys, log_levels):
        bad = tmp_path / "bad.json"
        bad.write_text('{"$ref": "#/nope"}', encoding="utf-8")
        assert run(["-s", str(bad), "-d", "1"]) == 1
        assert "Unresolvable reference" in capsys.readouterr().out

    def test_jsonb_key_order(self, tmp_path, capsys, log_levels):
        schema = tmp_path / "closed.json"
        schema.write_text('{"additionalProperties": false}', encoding="utf-8")
        args = ["-s", str(schema), "-d", '{"bb": 1, "a": 2}', "--errors", "--format", "json"]

        run(args)
        as_text = json.loads(capsys.readouterr().out)["errors"][0]["message"]
        run(args + ["--jsonb"])
        as_binary = json.loads(capsys.readouterr().out)["errors"][0]["message"]

        assert as_text == "Additional properties are not allowed ('bb', 'a' were unexpected)"
        assert as_binary == "Additional properties are not allowed ('a', 'bb' were unexpected)"


class TestLogging:
    def test_default_level_from_settings(self, schema_file, log_levels):
        run(["-s", str(schema_file), "--check-schema", "-q"])
        assert log_levels == ["WARNING"]

    def test_verbose_forces_debug(self, schema_file, log_levels):
        run(["-s", str(schema_file), "--check-schema", "-q", "-v"])
        assert log_levels == ["DEBUG"]

    def test_setup_logging_installs_rich_handler(self):
        from rich.logging import RichHandler

        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("info")
            assert root.level == logging.INFO
            assert any(isinstance(h, RichHandler) for h in root.handlers)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


class TestDisplay:
    def test_error_table_rows(self):
        report = ValidationReport(
            valid=False,
            errors=[
                ErrorRecord(keyword="required", instance_path="", schema_path="/required",
                            message='"a" is a required property'),
            ],
        )
        table = create_error_table(report)
        assert table.row_count == 1
        assert len(table.columns) == 3
