"""Structural checks a schema document must pass before it is compiled.

The walker mirrors the dialect meta-schemas keyword by keyword rather than
evaluating the meta-schema documents themselves, so no validator is needed
to validate a validator's input.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from engine.dialects import DRAFT2020, Dialect, find_dialect
from engine.errors import CompileError, SchemaIssue
from engine.formats import is_valid_regex
from engine.paths import ROOT, Path
from engine.value import TYPE_NAMES, is_integer, is_number, render

logger = logging.getLogger(__name__)


def _show(value: Any) -> str:
    try:
        return render(value)
    except TypeError:
        return repr(value)


def _is_json(value: Any, depth: int) -> bool:
    if depth < 0:
        return False
    if value is None or isinstance(value, (bool, str)) or is_number(value):
        return True
    if isinstance(value, list):
        return all(_is_json(v, depth - 1) for v in value)
    if isinstance(value, dict):
        return all(
            isinstance(k, str) and _is_json(v, depth - 1) for k, v in value.items()
        )
    return False


class _MetaWalker:
    def __init__(self, dialect: Dialect, max_depth: int) -> None:
        self.dialect = dialect
        self.max_depth = max_depth
        self.issues: list[SchemaIssue] = []

    def issue(self, path: Path, keyword: str, value: Any, expected: str) -> None:
        if keyword:
            message = (
                f"{_show(value)} is not valid under the '{keyword}' keyword: "
                f"expected {expected}"
            )
        else:
            message = f"{_show(value)} is not a valid schema: expected {expected}"
        self.issues.append(SchemaIssue(path, keyword, message))

    def walk(self, node: Any, path: Path, keyword: str = "", depth: int = 0) -> None:
        if depth > self.max_depth:
            self.issues.append(
                SchemaIssue(
                    path,
                    keyword,
                    f"Schema nesting exceeds the maximum depth of {self.max_depth}",
                )
            )
            return
        if isinstance(node, bool):
            if not self.dialect.boolean_schemas:
                self.issue(path, keyword, node, "an object")
            return
        if not isinstance(node, dict):
            expected = (
                "a schema (object or boolean)"
                if self.dialect.boolean_schemas
                else "an object"
            )
            self.issue(path, keyword, node, expected)
            return

        for key, value in node.items():
            if not isinstance(key, str):
                self.issue(path, keyword, key, "a string key")
                continue
            child = path.join(key)
            check = _CHECKS.get(key) if key in self.dialect.keywords else None
            if check is None:
                # Unknown keywords are ignored, but must still hold JSON.
                if not _is_json(value, self.max_depth - depth):
                    self.issue(child, key, value, "a JSON value")
                continue
            check(self, key, value, child, depth)

    # ------------------------------------------------------------------
    # Keyword shape checks
    # ------------------------------------------------------------------

    def schema(self, key: str, value: Any, path: Path, depth: int) -> None:
        self.walk(value, path, key, depth + 1)

    def schema_map(self, key: str, value: Any, path: Path, depth: int) -> None:
        if not isinstance(value, dict):
            self.issue(path, key, value, "an object")
            return
        for name, sub in value.items():
            self.walk(sub, path.join(name), key, depth + 1)

    def schema_list(self, key: str, value: Any, path: Path, depth: int) -> None:
        if not isinstance(value, list) or not value:
            self.issue(path, key, value, "a non-empty array of schemas")
            return
        for i, sub in enumerate(value):
            self.walk(sub, path.join(i), key, depth + 1)

    def items(self, key: str, value: Any, path: Path, depth: int) -> None:
        if isinstance(value, list) and self.dialect.version < 2020:
            for i, sub in enumerate(value):
                self.walk(sub, path.join(i), key, depth + 1)
            return
        self.walk(value, path, key, depth + 1)

    def non_negative_integer(self, key: str, value: Any, path: Path, depth: int) -> None:
        if not is_integer(value) or value < 0:
            self.issue(path, key, value, "a non-negative integer")

    def number(self, key: str, value: Any, path: Path, depth: int) -> None:
        if not is_number(value):
            self.issue(path, key, value, "a number")

    def positive_number(self, key: str, value: Any, path: Path, depth: int) -> None:
        if not is_number(value) or value <= 0:
            self.issue(path, key, value, "a number greater than 0")

    def exclusive_limit(self, key: str, value: Any, path: Path, depth: int) -> None:
        if self.dialect.version == 4:
            self.boolean(key, value, path, depth)
        else:
            self.number(key, value, path, depth)

    def string(self, key: str, value: Any, path: Path, depth: int) -> None:
        if not isinstance(value, str):
            self.issue(path, key, value, "a string")

    def boolean(self, key: str, value: Any, path: Path, depth: int) -> None:
        if not isinstance(value, bool):
            self.issue(path, key, value, "a boolean")

    def type_(self, key: str, value: Any, path: Path, depth: int) -> None:
        names = value if isinstance(value, list) else [value]
        valid = (
            bool(names)
            and all(isinstance(n, str) and n in TYPE_NAMES for n in names)
            and len(set(names)) == len(names)
        )
        if not valid:
            choices = ", ".join(f'"{t}"' for t in TYPE_NAMES)
            self.issue(
                path, key, value, f"one of {choices} or a non-empty array of them"
            )

    def string_array(self, key: str, value: Any, path: Path, depth: int) -> None:
        if (
            not isinstance(value, list)
            or not all(isinstance(v, str) for v in value)
            or len(set(value)) != len(value)
        ):
            self.issue(path, key, value, "an array of unique strings")

    def string_array_map(self, key: str, value: Any, path: Path, depth: int) -> None:
        if not isinstance(value, dict):
            self.issue(path, key, value, "an object")
            return
        for name, sub in value.items():
            self.string_array(key, sub, path.join(name), depth)

    def dependencies(self, key: str, value: Any, path: Path, depth: int) -> None:
        if not isinstance(value, dict):
            self.issue(path, key, value, "an object")
            return
        for name, sub in value.items():
            if isinstance(sub, list):
                self.string_array(key, sub, path.join(name), depth)
            else:
                self.walk(sub, path.join(name), key, depth + 1)

    def regex(self, key: str, value: Any, path: Path, depth: int) -> None:
        if not isinstance(value, str) or not is_valid_regex(value):
            self.issue(path, key, value, "a valid regular expression")

    def pattern_properties(self, key: str, value: Any, path: Path, depth: int) -> None:
        if not isinstance(value, dict):
            self.issue(path, key, value, "an object")
            return
        for pattern, sub in value.items():
            if not is_valid_regex(pattern):
                self.issue(path.join(pattern), key, pattern, "a valid regular expression")
                continue
            self.walk(sub, path.join(pattern), key, depth + 1)

    def array(self, key: str, value: Any, path: Path, depth: int) -> None:
        if not isinstance(value, list) or not _is_json(value, self.max_depth - depth):
            self.issue(path, key, value, "an array")

    def any_json(self, key: str, value: Any, path: Path, depth: int) -> None:
        if not _is_json(value, self.max_depth - depth):
            self.issue(path, key, value, "a JSON value")


_Check = Callable[[_MetaWalker, str, Any, Path, int], None]

_CHECKS: dict[str, _Check] = {
    # core / identifiers
    "$schema": _MetaWalker.string,
    "$id": _MetaWalker.string,
    "id": _MetaWalker.string,
    "$anchor": _MetaWalker.string,
    "$dynamicAnchor": _MetaWalker.string,
    "$ref": _MetaWalker.string,
    "$dynamicRef": _MetaWalker.string,
    "$recursiveRef": _MetaWalker.string,
    "$recursiveAnchor": _MetaWalker.boolean,
    "$vocabulary": _MetaWalker.any_json,
    "$comment": _MetaWalker.string,
    "$defs": _MetaWalker.schema_map,
    "definitions": _MetaWalker.schema_map,
    # annotations
    "title": _MetaWalker.string,
    "description": _MetaWalker.string,
    "default": _MetaWalker.any_json,
    "examples": _MetaWalker.array,
    "readOnly": _MetaWalker.boolean,
    "writeOnly": _MetaWalker.boolean,
    "deprecated": _MetaWalker.boolean,
    # any instance
    "type": _MetaWalker.type_,
    "enum": _MetaWalker.array,
    "const": _MetaWalker.any_json,
    # numbers
    "minimum": _MetaWalker.number,
    "maximum": _MetaWalker.number,
    "exclusiveMinimum": _MetaWalker.exclusive_limit,
    "exclusiveMaximum": _MetaWalker.exclusive_limit,
    "multipleOf": _MetaWalker.positive_number,
    # strings
    "minLength": _MetaWalker.non_negative_integer,
    "maxLength": _MetaWalker.non_negative_integer,
    "pattern": _MetaWalker.regex,
    "format": _MetaWalker.string,
    # arrays
    "items": _MetaWalker.items,
    "prefixItems": _MetaWalker.schema_list,
    "additionalItems": _MetaWalker.schema,
    "unevaluatedItems": _MetaWalker.schema,
    "contains": _MetaWalker.schema,
    "minContains": _MetaWalker.non_negative_integer,
    "maxContains": _MetaWalker.non_negative_integer,
    "minItems": _MetaWalker.non_negative_integer,
    "maxItems": _MetaWalker.non_negative_integer,
    "uniqueItems": _MetaWalker.boolean,
    # objects
    "properties": _MetaWalker.schema_map,
    "patternProperties": _MetaWalker.pattern_properties,
    "additionalProperties": _MetaWalker.schema,
    "unevaluatedProperties": _MetaWalker.schema,
    "propertyNames": _MetaWalker.schema,
    "required": _MetaWalker.string_array,
    "minProperties": _MetaWalker.non_negative_integer,
    "maxProperties": _MetaWalker.non_negative_integer,
    "dependentRequired": _MetaWalker.string_array_map,
    "dependentSchemas": _MetaWalker.schema_map,
    "dependencies": _MetaWalker.dependencies,
    # applicators
    "allOf": _MetaWalker.schema_list,
    "anyOf": _MetaWalker.schema_list,
    "oneOf": _MetaWalker.schema_list,
    "not": _MetaWalker.schema,
    "if": _MetaWalker.schema,
    "then": _MetaWalker.schema,
    "else": _MetaWalker.schema,
}


def select_dialect(
    doc: Any,
    default_dialect: str = DRAFT2020.uri,
    unknown_dialect: str = "error",
) -> Dialect:
    """Pick the dialect named by the root ``$schema``, or the default one."""
    default = find_dialect(default_dialect)
    if default is None:
        raise CompileError(f'Unknown default dialect: "{default_dialect}"')
    if not isinstance(doc, dict) or "$schema" not in doc:
        return default

    uri = doc["$schema"]
    where = ROOT.join("$schema")
    if not isinstance(uri, str):
        raise CompileError(
            f"{_show(uri)} is not valid under the '$schema' keyword: expected a string",
            where,
        )
    dialect = find_dialect(uri)
    if dialect is not None:
        return dialect
    if unknown_dialect == "default":
        logger.warning(
            "Unknown $schema dialect %r, falling back to %s", uri, default.name
        )
        return default
    raise CompileError(f'Unknown $schema dialect: "{uri}"', where)


def schema_issues(
    doc: Any,
    dialect: Dialect,
    max_depth: int = 100,
    path: Path = ROOT,
) -> list[SchemaIssue]:
    """Collect every structural problem of *doc* under *dialect*."""
    walker = _MetaWalker(dialect, max_depth)
    walker.walk(doc, path, depth=len(path))
    return walker.issues


def validate_schema(
    doc: Any,
    *,
    default_dialect: str = DRAFT2020.uri,
    unknown_dialect: str = "error",
    max_depth: int = 100,
) -> Dialect:
    """Check *doc* against its dialect's meta-schema rules.

    Returns the dialect the schema is written in. Raises ``CompileError``
    naming the first invalid keyword; all issues are on ``error.issues``.
    """
    dialect = select_dialect(doc, default_dialect, unknown_dialect)
    issues = schema_issues(doc, dialect, max_depth)
    if issues:
        raise CompileError.from_issues(issues)
    return dialect
