import json
import logging
from decimal import Decimal
from functools import lru_cache
from typing import Any, Union

from engine import CompiledValidator, CompileError, CompileOptions, ValidatorCache
from engine.errors import format_all
from engine.value import render
from settings import get_settings

logger = logging.getLogger(__name__)

JsonText = Union[str, bytes, bytearray]


def compile_options() -> CompileOptions:
    """Map the current settings onto engine compile options."""
    settings = get_settings()
    return CompileOptions(
        default_dialect=settings.DEFAULT_DIALECT,
        unknown_dialect=settings.UNKNOWN_DIALECT_POLICY,
        validate_formats=settings.VALIDATE_FORMATS,
        max_schema_depth=settings.MAX_SCHEMA_DEPTH,
        max_evaluation_depth=settings.MAX_EVALUATION_DEPTH,
    )


@lru_cache(maxsize=1)
def get_cache() -> ValidatorCache:
    """Process-wide validator cache, built from the current settings."""
    return ValidatorCache(get_settings().CACHE_MAXSIZE, compile_options())


def reset_cache() -> None:
    """Drop the validator cache (call after ``reset_settings_cache``)."""
    get_cache.cache_clear()


def compile_schema(schema: Any) -> CompiledValidator:
    """
    Compile a schema, reusing a cached validator when one exists.

    Raises:
        CompileError: the schema is invalid or a reference cannot be resolved.
    """
    return get_cache().get(schema)


def matches(schema: Any, instance: Any) -> bool:
    """
    Check an instance against a schema.

    Returns False both when the instance fails and when the schema itself
    does not compile.

    Example:
        >>> from main import matches
        >>> matches({"maxLength": 5}, "foo")
        True
        >>> matches({"maxLength": 5}, "foobar")
        False
    """
    try:
        validator = compile_schema(schema)
    except CompileError:
        return False
    return validator.is_valid(instance)


def is_valid_schema(schema: Any) -> bool:
    """True iff the schema passes its meta-schema and every reference resolves."""
    try:
        compile_schema(schema)
    except CompileError:
        return False
    return True


def validation_errors(schema: Any, instance: Any) -> list[str]:
    """
    Every failure message for an instance, in evaluation order.

    An empty list means the instance is valid. A schema that does not
    compile yields a single message describing the schema problem.
    """
    try:
        validator = compile_schema(schema)
    except CompileError as e:
        return [str(e)]
    return format_all(validator.validate(instance))


# ----------------------------------------------------------------------
# Text-level entry points
# ----------------------------------------------------------------------
def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON number: {name}")


def _binary_order(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    # Later duplicates win, then keys are sorted shortest first.
    members = dict(pairs)
    ordered = sorted(members, key=lambda k: (len(k.encode("utf-8")), k.encode("utf-8")))
    return {k: members[k] for k in ordered}


def decode_json(text: JsonText, binary: bool = False) -> Any:
    """
    Decode JSON text into plain values with exact numbers.

    With ``binary`` set, objects are normalised the way the binary JSON
    storage type keeps them.

    Raises:
        ValueError: the text is not valid JSON.
    """
    return json.loads(
        text,
        parse_float=Decimal,
        parse_constant=_reject_constant,
        object_pairs_hook=_binary_order if binary else None,
    )


def _notify_instance(validator: CompiledValidator, instance: Any) -> bool:
    result = validator.validate(instance)
    for error in result:
        logger.info("Invalid instance %s at %s", render(error.instance), error.instance_path)
    return result.valid


def _matches_text(schema_text: JsonText, instance_text: JsonText, binary: bool) -> bool:
    schema = decode_json(schema_text)
    instance = decode_json(instance_text, binary=binary)
    try:
        validator = compile_schema(schema)
    except CompileError as e:
        logger.info("Invalid JSON schema: %s", e)
        return False
    if validator.is_valid(instance):
        return True
    return _notify_instance(validator, instance)


def json_matches_schema(schema_text: JsonText, instance_text: JsonText) -> bool:
    """Match JSON text, keeping the instance's key order as written."""
    return _matches_text(schema_text, instance_text, binary=False)


def jsonb_matches_schema(schema_text: JsonText, instance_text: JsonText) -> bool:
    """Match JSON text normalised as binary JSON (last duplicate wins, keys sorted)."""
    return _matches_text(schema_text, instance_text, binary=True)


def jsonschema_is_valid(schema_text: JsonText) -> bool:
    """Whether JSON text holds a schema that compiles."""
    schema = decode_json(schema_text)
    try:
        compile_schema(schema)
    except CompileError as e:
        if len(e.path):
            logger.info("Invalid JSON schema at path: %s", e.path)
        return False
    return True


def main() -> None:
    from cli.app import main as cli_main

    cli_main()


if __name__ == "__main__":
    main()
