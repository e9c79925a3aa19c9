"""Turns a schema document into a ``CompiledValidator``.

Compilation runs in two passes. The first walks every subschema position
of the dialect, appends one ``SchemaNode`` per subschema to an arena and
registers each node under its ``base#pointer`` URI (plus ``$id`` and
anchor names). The second pass links every reference against that table.
Pointers into locations the first pass never visited are compiled on
demand. References are integer handles into the arena, so recursive
schemas never form object cycles.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterator, Mapping, Optional, Union
from urllib.parse import unquote, urldefrag, urljoin

from engine import evaluator
from engine.dialects import DRAFT2020, Dialect
from engine.errors import CompileError, ValidationError
from engine.formats import compile_pattern, get_format_checker
from engine.keywords import (
    AdditionalProperties,
    AllOf,
    AnyOf,
    Const,
    Contains,
    DependentRequired,
    DependentSchemas,
    Enum,
    Format,
    IfThenElse,
    Items,
    Keyword,
    MaxItems,
    MaxLength,
    MaxProperties,
    Maximum,
    MinItems,
    MinLength,
    MinProperties,
    Minimum,
    MultipleOf,
    Not,
    OneOf,
    Pattern,
    PatternProperties,
    PrefixItems,
    Properties,
    PropertyNames,
    Ref,
    Required,
    Type,
    UniqueItems,
)
from engine.meta import schema_issues, validate_schema
from engine.paths import ROOT, Path, Segment, parse_pointer
from engine.value import to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompileOptions:
    default_dialect: str = DRAFT2020.uri
    unknown_dialect: str = "error"
    validate_formats: bool = True
    max_schema_depth: int = 100
    max_evaluation_depth: int = 100


@dataclass(frozen=True)
class SchemaNode:
    """One compiled (sub)schema.

    ``verdict`` is set for boolean schemas, which carry no keywords.
    """

    index: int
    schema_path: Path
    base_uri: str
    keywords: tuple[Keyword, ...] = ()
    verdict: Optional[bool] = None


@dataclass(frozen=True, eq=False)
class CompiledValidator:
    """Read-only result of compiling a schema; reusable across instances."""

    schema: Any = field(repr=False)
    dialect: Dialect
    nodes: tuple[SchemaNode, ...] = field(repr=False)
    links: Mapping[str, int] = field(repr=False)
    max_depth: int = 100
    root: int = 0

    def is_valid(self, instance: Any) -> bool:
        return evaluator.is_valid(self, instance)

    def validate(self, instance: Any) -> evaluator.EvaluationResult:
        return evaluator.evaluate(self, instance)

    def iter_errors(self, instance: Any) -> Iterator[ValidationError]:
        return iter(evaluator.evaluate(self, instance).errors)


def _join(base: str, ref: str) -> str:
    if not base:
        return ref
    if ref.startswith("#"):
        return urldefrag(base)[0] + ref
    return urljoin(base, ref)


def link_key(base: str, fragment: str) -> str:
    return f"{base}#{fragment}"


def ref_key(base: str, ref: str) -> str:
    uri, fragment = urldefrag(_join(base, ref))
    return link_key(uri, unquote(fragment))


@dataclass(frozen=True)
class _Site:
    """Where a keyword sits: its schema object, value and location."""

    builder: _Builder
    schema: dict[str, Any]
    key: str
    value: Any
    path: Path
    base: str
    pointer: tuple[Segment, ...]

    @property
    def keyword_path(self) -> Path:
        return self.path.join(self.key)

    def subschema(self, value: Any, *rest: Segment) -> int:
        segments = (self.key, *rest)
        return self.builder.node(
            value, self.path.join(*segments), self.base, self.pointer + segments
        )

    def sibling(self, key: str) -> int:
        return self.builder.node(
            self.schema[key], self.path.join(key), self.base, self.pointer + (key,)
        )


_Compiled = Union[Keyword, tuple[Keyword, ...], None]


class _Builder:
    def __init__(self, doc: Any, dialect: Dialect, options: CompileOptions) -> None:
        self.doc = doc
        self.dialect = dialect
        self.options = options
        self.nodes: list[Optional[SchemaNode]] = []
        self.links: dict[str, int] = {}
        self.by_path: dict[Path, int] = {}
        self.resources: dict[str, tuple[Any, Path]] = {}
        # (link key, keyword location, raw reference)
        self.refs: list[tuple[str, Path, str]] = []

    def build(self) -> CompiledValidator:
        self.resources[""] = (self.doc, ROOT)
        root = self.node(self.doc, ROOT, "", ())
        self._link()
        nodes = tuple(self.nodes)
        logger.debug(
            "Compiled %s schema into %d nodes with %d references",
            self.dialect.name,
            len(nodes),
            len(self.refs),
        )
        return CompiledValidator(
            schema=self.doc,
            dialect=self.dialect,
            nodes=nodes,
            links=MappingProxyType(dict(self.links)),
            max_depth=self.options.max_evaluation_depth,
            root=root,
        )

    # ------------------------------------------------------------------
    # Pass 1: nodes and registration
    # ------------------------------------------------------------------

    def register(self, key: str, index: int) -> None:
        self.links.setdefault(key, index)

    def node(self, schema: Any, path: Path, base: str, pointer: tuple[Segment, ...]) -> int:
        if path in self.by_path:
            return self.by_path[path]
        index = len(self.nodes)
        self.nodes.append(None)
        self.by_path[path] = index
        self.register(link_key(base, str(Path(pointer))), index)

        if not isinstance(schema, dict):
            self.nodes[index] = SchemaNode(index, path, base, verdict=bool(schema))
            return index

        base, pointer = self._enter_resource(schema, path, base, pointer, index)
        keywords = self._keywords(schema, path, base, pointer)
        self.nodes[index] = SchemaNode(index, path, base, tuple(keywords))
        return index

    def _enter_resource(
        self,
        schema: dict[str, Any],
        path: Path,
        base: str,
        pointer: tuple[Segment, ...],
        index: int,
    ) -> tuple[str, tuple[Segment, ...]]:
        if self.dialect.ref_overrides_siblings and "$ref" in schema:
            return base, pointer

        ident = schema.get(self.dialect.id_keyword)
        if isinstance(ident, str) and ident:
            if ident.startswith("#"):
                # draft 4-7 location-independent identifier
                self.register(link_key(base, ident[1:]), index)
            else:
                uri, fragment = urldefrag(_join(base, ident))
                base, pointer = uri, ()
                self.resources.setdefault(base, (schema, path))
                self.register(link_key(base, ""), index)
                if fragment:
                    self.register(link_key(base, fragment), index)

        for anchor_keyword in ("$anchor", "$dynamicAnchor"):
            anchor = schema.get(anchor_keyword)
            if anchor_keyword in self.dialect.keywords and isinstance(anchor, str):
                self.register(link_key(base, anchor), index)
        return base, pointer

    def _keywords(
        self,
        schema: dict[str, Any],
        path: Path,
        base: str,
        pointer: tuple[Segment, ...],
    ) -> list[Keyword]:
        if self.dialect.ref_overrides_siblings and "$ref" in schema:
            return [self.reference("$ref", schema["$ref"], path, base)]

        keywords: list[Keyword] = []
        for key, value in schema.items():
            if key not in self.dialect.keywords:
                continue
            compile_keyword = _COMPILERS.get(key)
            if compile_keyword is None:
                continue
            result = compile_keyword(_Site(self, schema, key, value, path, base, pointer))
            if isinstance(result, Keyword):
                keywords.append(result)
            elif result:
                keywords.extend(result)
        return keywords

    def reference(self, name: str, ref: str, path: Path, base: str) -> Ref:
        key = ref_key(base, ref)
        where = path.join(name)
        self.refs.append((key, where, ref))
        return Ref(name, where, key)

    # ------------------------------------------------------------------
    # Pass 2: linking
    # ------------------------------------------------------------------

    def _link(self) -> None:
        i = 0
        # Lazily compiled targets may append further references.
        while i < len(self.refs):
            key, where, raw = self.refs[i]
            i += 1
            if key in self.links:
                continue
            if self._compile_pointer_target(key) is None:
                raise CompileError(f"Unresolvable reference: {raw}", where)

    def _compile_pointer_target(self, key: str) -> Optional[int]:
        base, _, fragment = key.partition("#")
        if base not in self.resources:
            return None
        if fragment and not fragment.startswith("/"):
            return None
        document, doc_path = self.resources[base]

        target = document
        segments: list[Segment] = []
        for token in parse_pointer(fragment):
            if isinstance(target, dict) and token in target:
                target = target[token]
                segments.append(token)
            elif isinstance(target, list) and token.isdigit() and int(token) < len(target):
                target = target[int(token)]
                segments.append(int(token))
            else:
                return None
        if not isinstance(target, (dict, bool)):
            return None

        path = doc_path.join(*segments)
        issues = schema_issues(target, self.dialect, self.options.max_schema_depth, path)
        if issues:
            raise CompileError.from_issues(issues)
        index = self.node(target, path, base, tuple(segments))
        self.register(key, index)
        return index


# ======================================================================
# Keyword compilers
# ======================================================================
def _type(site: _Site) -> _Compiled:
    types = (site.value,) if isinstance(site.value, str) else tuple(site.value)
    return Type(site.key, site.keyword_path, types)


def _enum(site: _Site) -> _Compiled:
    return Enum(site.key, site.keyword_path, tuple(site.value))


def _const(site: _Site) -> _Compiled:
    return Const(site.key, site.keyword_path, site.value)


def _minimum(site: _Site) -> _Compiled:
    exclusive = site.builder.dialect.version == 4 and site.schema.get("exclusiveMinimum") is True
    return Minimum(site.key, site.keyword_path, to_decimal(site.value), exclusive, site.value)


def _maximum(site: _Site) -> _Compiled:
    exclusive = site.builder.dialect.version == 4 and site.schema.get("exclusiveMaximum") is True
    return Maximum(site.key, site.keyword_path, to_decimal(site.value), exclusive, site.value)


def _exclusive_minimum(site: _Site) -> _Compiled:
    if site.builder.dialect.version == 4:
        return None
    return Minimum(site.key, site.keyword_path, to_decimal(site.value), True, site.value)


def _exclusive_maximum(site: _Site) -> _Compiled:
    if site.builder.dialect.version == 4:
        return None
    return Maximum(site.key, site.keyword_path, to_decimal(site.value), True, site.value)


def _multiple_of(site: _Site) -> _Compiled:
    return MultipleOf(site.key, site.keyword_path, to_decimal(site.value), site.value)


def _min_length(site: _Site) -> _Compiled:
    return MinLength(site.key, site.keyword_path, int(site.value))


def _max_length(site: _Site) -> _Compiled:
    return MaxLength(site.key, site.keyword_path, int(site.value))


def _regex(pattern: str, where: Path) -> re.Pattern[str]:
    try:
        return compile_pattern(pattern)
    except re.error as e:
        raise CompileError(f'"{pattern}" is not a valid regular expression: {e}', where) from e


def _pattern(site: _Site) -> _Compiled:
    return Pattern(site.key, site.keyword_path, site.value, _regex(site.value, site.keyword_path))


def _format(site: _Site) -> _Compiled:
    if not site.builder.options.validate_formats:
        return None
    checker = get_format_checker(site.value)
    if checker is None:
        return None
    return Format(site.key, site.keyword_path, site.value, checker)


def _items(site: _Site) -> _Compiled:
    if isinstance(site.value, list):
        nodes = tuple(site.subschema(v, i) for i, v in enumerate(site.value))
        return PrefixItems(site.key, site.keyword_path, nodes)
    start = 0
    prefix = site.schema.get("prefixItems")
    if site.builder.dialect.version >= 2020 and isinstance(prefix, list):
        start = len(prefix)
    return Items(site.key, site.keyword_path, site.subschema(site.value), start)


def _prefix_items(site: _Site) -> _Compiled:
    nodes = tuple(site.subschema(v, i) for i, v in enumerate(site.value))
    return PrefixItems(site.key, site.keyword_path, nodes)


def _additional_items(site: _Site) -> _Compiled:
    node = site.subschema(site.value)
    items = site.schema.get("items")
    if not isinstance(items, list):
        return None
    return Items(site.key, site.keyword_path, node, len(items))


def _contains(site: _Site) -> _Compiled:
    min_contains, max_contains = 1, None
    if site.builder.dialect.version >= 2019:
        min_contains = int(site.schema.get("minContains", 1))
        if "maxContains" in site.schema:
            max_contains = int(site.schema["maxContains"])
    return Contains(site.key, site.keyword_path, site.subschema(site.value), min_contains, max_contains)


def _min_items(site: _Site) -> _Compiled:
    return MinItems(site.key, site.keyword_path, int(site.value))


def _max_items(site: _Site) -> _Compiled:
    return MaxItems(site.key, site.keyword_path, int(site.value))


def _unique_items(site: _Site) -> _Compiled:
    if site.value is not True:
        return None
    return UniqueItems(site.key, site.keyword_path)


def _properties(site: _Site) -> _Compiled:
    nodes = tuple((name, site.subschema(v, name)) for name, v in site.value.items())
    return Properties(site.key, site.keyword_path, nodes)


def _pattern_properties(site: _Site) -> _Compiled:
    patterns = tuple(
        (_regex(p, site.keyword_path.join(p)), site.subschema(v, p))
        for p, v in site.value.items()
    )
    return PatternProperties(site.key, site.keyword_path, patterns)


def _additional_properties(site: _Site) -> _Compiled:
    if site.value is True:
        return None
    node = None if site.value is False else site.subschema(site.value)
    properties = site.schema.get("properties")
    patterns = site.schema.get("patternProperties")
    known = frozenset(properties) if isinstance(properties, dict) else frozenset()
    regexes = (
        tuple(_regex(p, site.path.join("patternProperties", p)) for p in patterns)
        if isinstance(patterns, dict)
        else ()
    )
    return AdditionalProperties(site.key, site.keyword_path, node, known, regexes)


def _property_names(site: _Site) -> _Compiled:
    return PropertyNames(site.key, site.keyword_path, site.subschema(site.value))


def _required(site: _Site) -> _Compiled:
    if not site.value:
        return None
    return Required(site.key, site.keyword_path, tuple(site.value))


def _min_properties(site: _Site) -> _Compiled:
    return MinProperties(site.key, site.keyword_path, int(site.value))


def _max_properties(site: _Site) -> _Compiled:
    return MaxProperties(site.key, site.keyword_path, int(site.value))


def _dependent_required(site: _Site) -> _Compiled:
    pairs = tuple((name, tuple(deps)) for name, deps in site.value.items())
    return DependentRequired(site.key, site.keyword_path, pairs)


def _dependent_schemas(site: _Site) -> _Compiled:
    pairs = tuple((name, site.subschema(v, name)) for name, v in site.value.items())
    return DependentSchemas(site.key, site.keyword_path, pairs)


def _dependencies(site: _Site) -> _Compiled:
    required = tuple(
        (name, tuple(deps)) for name, deps in site.value.items() if isinstance(deps, list)
    )
    schemas = tuple(
        (name, site.subschema(v, name))
        for name, v in site.value.items()
        if not isinstance(v, list)
    )
    compiled: list[Keyword] = []
    if required:
        compiled.append(DependentRequired(site.key, site.keyword_path, required))
    if schemas:
        compiled.append(DependentSchemas(site.key, site.keyword_path, schemas))
    return tuple(compiled)


def _all_of(site: _Site) -> _Compiled:
    return AllOf(site.key, site.keyword_path, tuple(site.subschema(v, i) for i, v in enumerate(site.value)))


def _any_of(site: _Site) -> _Compiled:
    return AnyOf(site.key, site.keyword_path, tuple(site.subschema(v, i) for i, v in enumerate(site.value)))


def _one_of(site: _Site) -> _Compiled:
    return OneOf(site.key, site.keyword_path, tuple(site.subschema(v, i) for i, v in enumerate(site.value)))


def _not(site: _Site) -> _Compiled:
    return Not(site.key, site.keyword_path, site.subschema(site.value), site.value)


def _if(site: _Site) -> _Compiled:
    then = site.sibling("then") if "then" in site.schema else None
    otherwise = site.sibling("else") if "else" in site.schema else None
    if then is None and otherwise is None:
        site.subschema(site.value)
        return None
    return IfThenElse(site.key, site.keyword_path, site.subschema(site.value), then, otherwise)


def _subschema_only(site: _Site) -> _Compiled:
    """Compile a subschema that is only reachable through references."""
    site.subschema(site.value)
    return None


def _unevaluated(site: _Site) -> _Compiled:
    logger.debug(
        "Keyword %s at %s is not enforced; only its subschema is compiled",
        site.key,
        site.keyword_path,
    )
    site.subschema(site.value)
    return None


def _definitions(site: _Site) -> _Compiled:
    for name, v in site.value.items():
        site.subschema(v, name)
    return None


def _ref(site: _Site) -> _Compiled:
    return site.builder.reference(site.key, site.value, site.path, site.base)


_COMPILERS: dict[str, Callable[[_Site], _Compiled]] = {
    "type": _type,
    "enum": _enum,
    "const": _const,
    "minimum": _minimum,
    "maximum": _maximum,
    "exclusiveMinimum": _exclusive_minimum,
    "exclusiveMaximum": _exclusive_maximum,
    "multipleOf": _multiple_of,
    "minLength": _min_length,
    "maxLength": _max_length,
    "pattern": _pattern,
    "format": _format,
    "items": _items,
    "prefixItems": _prefix_items,
    "additionalItems": _additional_items,
    "contains": _contains,
    "minItems": _min_items,
    "maxItems": _max_items,
    "uniqueItems": _unique_items,
    "properties": _properties,
    "patternProperties": _pattern_properties,
    "additionalProperties": _additional_properties,
    "propertyNames": _property_names,
    "required": _required,
    "minProperties": _min_properties,
    "maxProperties": _max_properties,
    "dependentRequired": _dependent_required,
    "dependentSchemas": _dependent_schemas,
    "dependencies": _dependencies,
    "allOf": _all_of,
    "anyOf": _any_of,
    "oneOf": _one_of,
    "not": _not,
    "if": _if,
    "then": _subschema_only,
    "else": _subschema_only,
    "unevaluatedItems": _unevaluated,
    "unevaluatedProperties": _unevaluated,
    "$defs": _definitions,
    "definitions": _definitions,
    "$ref": _ref,
    "$dynamicRef": _ref,
    "$recursiveRef": _ref,
}


def compile_schema(doc: Any, options: Optional[CompileOptions] = None) -> CompiledValidator:
    """Meta-validate *doc* and compile it.

    Raises ``CompileError`` when the schema is invalid, its dialect is
    unknown or one of its references cannot be resolved. No validator is
    ever returned for such a schema.
    """
    options = options or CompileOptions()
    dialect = validate_schema(
        doc,
        default_dialect=options.default_dialect,
        unknown_dialect=options.unknown_dialect,
        max_depth=options.max_schema_depth,
    )
    return _Builder(doc, dialect, options).build()
