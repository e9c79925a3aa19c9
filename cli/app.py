import argparse
import sys
from pathlib import Path
from typing import Any, Optional

from cli.report import ErrorRecord, ValidationReport
from cli.rich_display import print_report, setup_logging
from settings import get_settings

EXIT_VALID = 0
EXIT_INVALID = 1
EXIT_INPUT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        description="Check JSON documents against a JSON Schema.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate an instance file
  jsonschema-match --schema person.json --instance john.json

  # Validate inline JSON and list every error
  jsonschema-match -s person.json -d '{"name": 42}' --errors

  # Only check that the schema itself is valid
  jsonschema-match -s person.json --check-schema

  # Machine readable report
  jsonschema-match -s person.json -i john.json --errors --format json
""",
    )

    parser.add_argument(
        "--schema",
        "-s",
        type=Path,
        required=True,
        help="JSON Schema file",
    )
    input_group = parser.add_mutually_exclusive_group()
    input_group.add_argument(
        "--instance", "-i", type=Path, help="JSON file to validate"
    )
    input_group.add_argument(
        "--data", "-d", type=str, help="JSON text to validate"
    )

    parser.add_argument(
        "--check-schema",
        action="store_true",
        help="Only check that the schema is valid",
    )
    parser.add_argument(
        "--errors",
        action="store_true",
        help="Report every error instead of a yes/no answer",
    )
    parser.add_argument(
        "--jsonb",
        action="store_true",
        help="Normalise the instance like binary JSON (last duplicate key wins, keys sorted)",
    )
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Silent mode (exit code only)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def _read_file(path: Path, what: str) -> str:
    if not path.exists():
        print(f"Error: {what} file not found: {path}", file=sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)
    return path.read_text(encoding="utf-8")


def _decode(text: str, what: str, binary: bool = False) -> Any:
    from main import decode_json

    try:
        return decode_json(text, binary=binary)
    except ValueError as e:
        print(f"Error: Invalid {what} JSON: {e}", file=sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)


def _read_schema(args: argparse.Namespace) -> Any:
    """Read and parse the JSON schema from args."""
    return _decode(_read_file(args.schema, "Schema"), "schema")


def _read_instance(args: argparse.Namespace) -> Any:
    """Read the instance from args (direct JSON text or file)."""
    text = args.data if args.data is not None else _read_file(args.instance, "Instance")
    return _decode(text, "instance", binary=args.jsonb)


def build_report(schema: Any, instance: Any, args: argparse.Namespace) -> ValidationReport:
    """Compile the schema and evaluate the instance the way *args* ask."""
    from engine import CompileError
    from main import compile_schema

    try:
        validator = compile_schema(schema)
    except CompileError as e:
        return ValidationReport.from_compile_error(e)

    dialect = validator.dialect.name
    if args.check_schema:
        return ValidationReport(valid=True, dialect=dialect)
    if args.errors:
        result = validator.validate(instance)
        return ValidationReport(
            valid=result.valid,
            dialect=dialect,
            errors=[ErrorRecord.from_error(e) for e in result],
        )
    return ValidationReport(valid=validator.is_valid(instance), dialect=dialect)


def _handle_output(report: ValidationReport, args: argparse.Namespace) -> None:
    """Handle the output of the validation report."""
    if args.format == "json":
        print(report.model_dump_json(indent=2))
    elif not args.quiet:
        print_report(report, "Schema" if args.check_schema else "Instance")


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point of the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.check_schema and args.instance is None and args.data is None:
        parser.error("one of --instance/-i or --data/-d is required unless --check-schema is given")

    setup_logging("DEBUG" if args.verbose else get_settings().LOG_LEVEL)

    schema = _read_schema(args)
    instance = None if args.check_schema else _read_instance(args)

    report = build_report(schema, instance, args)
    _handle_output(report, args)
    sys.exit(EXIT_VALID if report.valid else EXIT_INVALID)
