"""Supported JSON Schema dialects and the keywords each one understands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Dialect:
    name: str
    uri: str
    # Ordering key: 4, 6, 7, 2019, 2020
    version: int
    keywords: frozenset[str]

    @property
    def boolean_schemas(self) -> bool:
        return self.version >= 6

    @property
    def ref_overrides_siblings(self) -> bool:
        return self.version <= 7

    @property
    def id_keyword(self) -> str:
        return "id" if self.version == 4 else "$id"


_CORE = frozenset({
    "$schema", "$ref", "$comment", "title", "description", "default",
    "examples", "definitions",
    "type", "enum",
    "minimum", "maximum", "exclusiveMinimum", "exclusiveMaximum", "multipleOf",
    "minLength", "maxLength", "pattern", "format",
    "items", "additionalItems", "minItems", "maxItems", "uniqueItems",
    "properties", "patternProperties", "additionalProperties", "required",
    "minProperties", "maxProperties", "dependencies",
    "allOf", "anyOf", "oneOf", "not",
})

_DRAFT6 = (_CORE - {"$comment"}) | {"$id", "const", "contains", "propertyNames"}
_DRAFT7 = _DRAFT6 | {"$comment", "if", "then", "else", "readOnly", "writeOnly"}
_DRAFT2019 = (_DRAFT7 - {"dependencies"}) | {
    "$defs", "$anchor", "$recursiveRef", "$recursiveAnchor", "$vocabulary",
    "dependentRequired", "dependentSchemas", "minContains", "maxContains",
    "unevaluatedItems", "unevaluatedProperties", "deprecated",
}
_DRAFT2020 = (_DRAFT2019 - {"$recursiveRef", "$recursiveAnchor", "additionalItems"}) | {
    "prefixItems", "$dynamicRef", "$dynamicAnchor",
}

DRAFT4 = Dialect("draft-04", "http://json-schema.org/draft-04/schema#", 4, (_CORE - {"$comment"}) | {"id"})
DRAFT6 = Dialect("draft-06", "http://json-schema.org/draft-06/schema#", 6, _DRAFT6)
DRAFT7 = Dialect("draft-07", "http://json-schema.org/draft-07/schema#", 7, _DRAFT7)
DRAFT2019 = Dialect("2019-09", "https://json-schema.org/draft/2019-09/schema", 2019, _DRAFT2019)
DRAFT2020 = Dialect("2020-12", "https://json-schema.org/draft/2020-12/schema", 2020, _DRAFT2020)

ALL_DIALECTS = (DRAFT4, DRAFT6, DRAFT7, DRAFT2019, DRAFT2020)


def _normalize(uri: str) -> str:
    uri = uri.strip().rstrip("#")
    for prefix in ("https://", "http://"):
        if uri.startswith(prefix):
            return uri[len(prefix):]
    return uri


_BY_URI = {_normalize(d.uri): d for d in ALL_DIALECTS}


def find_dialect(uri: str) -> Optional[Dialect]:
    """Look up a dialect by its ``$schema`` URI (scheme and ``#`` insensitive)."""
    return _BY_URI.get(_normalize(uri))
