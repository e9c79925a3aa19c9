"""JSON value helpers shared by the compiler and the evaluator.

Schemas and instances are plain Python JSON values: ``None``, ``bool``,
``int``, ``float`` or ``Decimal``, ``str``, ``list`` and ``dict`` with
string keys. The engine never mutates them; they are shared by reference
for the duration of a call.
"""

from __future__ import annotations

import json
import math
from decimal import Decimal
from typing import Any, Hashable, Optional

TYPE_NAMES = (
    "array",
    "boolean",
    "integer",
    "null",
    "number",
    "object",
    "string",
)


def is_number(x: Any) -> bool:
    # NaN and the infinities have no JSON spelling, so they are not numbers
    if isinstance(x, bool):
        return False
    if isinstance(x, int):
        return True
    if isinstance(x, float):
        return math.isfinite(x)
    if isinstance(x, Decimal):
        return x.is_finite()
    return False


def is_integer(x: Any) -> bool:
    if isinstance(x, bool):
        return False
    if isinstance(x, int):
        return True
    if isinstance(x, float):
        # A float with no fractional part is also an integer
        return x.is_integer()
    if isinstance(x, Decimal):
        return x.is_finite() and x == x.to_integral_value()
    return False


def json_type(x: Any) -> Optional[str]:
    """Return the JSON type name of *x*, or None for non-JSON objects."""
    if x is None:
        return "null"
    if isinstance(x, bool):
        return "boolean"
    if isinstance(x, str):
        return "string"
    if isinstance(x, list):
        return "array"
    if isinstance(x, dict):
        return "object"
    if is_integer(x):
        return "integer"
    if is_number(x):
        return "number"
    return None


def to_decimal(x: Any) -> Decimal:
    """Exact decimal form of a number; floats go through their shortest repr."""
    if isinstance(x, Decimal):
        return x
    if isinstance(x, float):
        return Decimal(repr(x))
    return Decimal(x)


def equal(a: Any, b: Any) -> bool:
    """JSON equality: 1 == 1.0, but true != 1 and key order is irrelevant."""
    if a is b:
        return True
    if is_number(a) and is_number(b):
        return to_decimal(a) == to_decimal(b)
    ta = json_type(a)
    if ta != json_type(b):
        return False
    if ta == "array":
        if len(a) != len(b):
            return False
        return all(equal(x, y) for x, y in zip(a, b))
    if ta == "object":
        if a.keys() != b.keys():
            return False
        return all(equal(a[k], b[k]) for k in a)
    return a == b


def canonical_key(x: Any) -> Hashable:
    """Hashable key such that ``equal(a, b)`` implies equal keys."""
    if x is None:
        return ("null",)
    if isinstance(x, bool):
        return ("boolean", x)
    if is_number(x):
        return ("number", to_decimal(x))
    if isinstance(x, (float, Decimal)):
        return ("non-finite", x)
    if isinstance(x, str):
        return ("string", x)
    if isinstance(x, list):
        return ("array", tuple(canonical_key(v) for v in x))
    if isinstance(x, dict):
        return ("object", frozenset((k, canonical_key(v)) for k, v in x.items()))
    raise TypeError(f"not a JSON value: {type(x).__name__}")


def render(x: Any) -> str:
    """Compact JSON text of *x*, preserving key order and numeric literals."""
    if isinstance(x, Decimal):
        return str(x)
    if isinstance(x, list):
        return "[" + ",".join(render(v) for v in x) + "]"
    if isinstance(x, dict):
        return "{" + ",".join(
            f"{json.dumps(k, ensure_ascii=False)}:{render(v)}" for k, v in x.items()
        ) + "}"
    return json.dumps(x, ensure_ascii=False)
