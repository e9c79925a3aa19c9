"""Compiled keyword checks.

Each class is one member of the closed keyword vocabulary. An instance
captures only what its check needs (node handles for subschemas, compiled
regexes, exact decimal limits) and is evaluated against one instance value
inside an ``Evaluation``.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext
from typing import TYPE_CHECKING, Any, Callable, Optional

from engine.errors import ValidationError
from engine.paths import Path
from engine.value import canonical_key, equal, is_number, json_type, render, to_decimal

if TYPE_CHECKING:
    from engine.evaluator import Evaluation

Errors = list[ValidationError]


def _plural(n: Any, singular: str, plural: str) -> str:
    return singular if n == 1 else plural


@dataclass(frozen=True)
class Keyword(ABC):
    name: str
    schema_path: Path

    @abstractmethod
    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        """Errors for *instance* at the current location; empty when it passes."""

    def error(self, ctx: Evaluation, instance: Any, message: str) -> ValidationError:
        return ValidationError(
            keyword=self.name,
            instance_path=ctx.location(),
            schema_path=self.schema_path,
            message=message,
            instance=instance,
        )


# ======================================================================
# Any instance type
# ======================================================================
@dataclass(frozen=True)
class Type(Keyword):
    types: tuple[str, ...]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        actual = json_type(instance)
        # JSON Schema: "integer" is a subtype of "number"
        if actual in self.types or (actual == "integer" and "number" in self.types):
            return []
        if len(self.types) == 1:
            message = f'{render(instance)} is not of type "{self.types[0]}"'
        else:
            names = ", ".join(f'"{t}"' for t in self.types)
            message = f"{render(instance)} is not of types {names}"
        return [self.error(ctx, instance, message)]


@dataclass(frozen=True)
class Enum(Keyword):
    options: tuple[Any, ...]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if any(equal(option, instance) for option in self.options):
            return []
        return [
            self.error(
                ctx, instance, f"{render(instance)} is not one of {render(list(self.options))}"
            )
        ]


@dataclass(frozen=True)
class Const(Keyword):
    value: Any

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if equal(self.value, instance):
            return []
        return [self.error(ctx, instance, f"{render(self.value)} was expected")]


# ======================================================================
# Numbers
# ======================================================================
@dataclass(frozen=True)
class Minimum(Keyword):
    limit: Decimal
    exclusive: bool
    literal: Any

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not is_number(instance):
            return []
        value = to_decimal(instance)
        if self.exclusive:
            if value > self.limit:
                return []
            message = f"{render(instance)} is less than or equal to the minimum of {render(self.literal)}"
        else:
            if value >= self.limit:
                return []
            message = f"{render(instance)} is less than the minimum of {render(self.literal)}"
        return [self.error(ctx, instance, message)]


@dataclass(frozen=True)
class Maximum(Keyword):
    limit: Decimal
    exclusive: bool
    literal: Any

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not is_number(instance):
            return []
        value = to_decimal(instance)
        if self.exclusive:
            if value < self.limit:
                return []
            message = f"{render(instance)} is greater than or equal to the maximum of {render(self.literal)}"
        else:
            if value <= self.limit:
                return []
            message = f"{render(instance)} is greater than the maximum of {render(self.literal)}"
        return [self.error(ctx, instance, message)]


def is_multiple_of(value: Decimal, divisor: Decimal) -> bool:
    """Exact divisibility on decimals, so 0.3 is a multiple of 0.01."""
    if not value.is_finite():
        return False
    if value == 0:
        return True
    with localcontext() as decimal_ctx:
        # The integer part of the quotient must fit the working precision.
        decimal_ctx.prec = max(28, value.adjusted() - divisor.adjusted() + 30)
        try:
            return value % divisor == 0
        except InvalidOperation:
            return False


@dataclass(frozen=True)
class MultipleOf(Keyword):
    divisor: Decimal
    literal: Any

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not is_number(instance) or is_multiple_of(to_decimal(instance), self.divisor):
            return []
        return [
            self.error(
                ctx, instance, f"{render(instance)} is not a multiple of {render(self.literal)}"
            )
        ]


# ======================================================================
# Strings
# ======================================================================
@dataclass(frozen=True)
class MinLength(Keyword):
    limit: int

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, str) or len(instance) >= self.limit:
            return []
        unit = _plural(self.limit, "character", "characters")
        return [
            self.error(ctx, instance, f"{render(instance)} is shorter than {self.limit} {unit}")
        ]


@dataclass(frozen=True)
class MaxLength(Keyword):
    limit: int

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, str) or len(instance) <= self.limit:
            return []
        unit = _plural(self.limit, "character", "characters")
        return [
            self.error(ctx, instance, f"{render(instance)} is longer than {self.limit} {unit}")
        ]


@dataclass(frozen=True)
class Pattern(Keyword):
    pattern: str
    regex: re.Pattern[str]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, str) or self.regex.search(instance):
            return []
        return [self.error(ctx, instance, f'{render(instance)} does not match "{self.pattern}"')]


@dataclass(frozen=True)
class Format(Keyword):
    format: str
    checker: Callable[[str], bool]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, str) or self.checker(instance):
            return []
        return [self.error(ctx, instance, f'{render(instance)} is not a "{self.format}"')]


# ======================================================================
# Arrays
# ======================================================================
@dataclass(frozen=True)
class Items(Keyword):
    """One schema for every item from index ``start`` on."""

    node: int
    start: int = 0

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, list):
            return []
        errors: Errors = []
        for i in range(self.start, len(instance)):
            errors.extend(ctx.descend(self.node, instance[i], i))
            if errors and ctx.short_circuit:
                break
        return errors


@dataclass(frozen=True)
class PrefixItems(Keyword):
    """Positional item schemas (``prefixItems`` or array-form ``items``)."""

    nodes: tuple[int, ...]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, list):
            return []
        errors: Errors = []
        for i, (node, item) in enumerate(zip(self.nodes, instance)):
            errors.extend(ctx.descend(node, item, i))
            if errors and ctx.short_circuit:
                break
        return errors


@dataclass(frozen=True)
class Contains(Keyword):
    node: int
    min_contains: int = 1
    max_contains: Optional[int] = None

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, list):
            return []
        matched = 0
        for i, item in enumerate(instance):
            if ctx.probe(self.node, item, i):
                matched += 1
                if self.max_contains is None and matched >= self.min_contains:
                    return []
        if matched < self.min_contains:
            if matched == 0 and self.min_contains == 1:
                message = f"None of {render(instance)} are valid under the given schema"
                return [self.error(ctx, instance, message)]
            unit = _plural(self.min_contains, "item", "items")
            return [
                ValidationError(
                    keyword="minContains",
                    instance_path=ctx.location(),
                    schema_path=self.schema_path,
                    message=f"{render(instance)} has less than {self.min_contains} matching {unit}",
                    instance=instance,
                )
            ]
        if self.max_contains is not None and matched > self.max_contains:
            unit = _plural(self.max_contains, "item", "items")
            return [
                ValidationError(
                    keyword="maxContains",
                    instance_path=ctx.location(),
                    schema_path=self.schema_path,
                    message=f"{render(instance)} has more than {self.max_contains} matching {unit}",
                    instance=instance,
                )
            ]
        return []


@dataclass(frozen=True)
class MinItems(Keyword):
    limit: int

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, list) or len(instance) >= self.limit:
            return []
        unit = _plural(self.limit, "item", "items")
        return [self.error(ctx, instance, f"{render(instance)} has less than {self.limit} {unit}")]


@dataclass(frozen=True)
class MaxItems(Keyword):
    limit: int

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, list) or len(instance) <= self.limit:
            return []
        unit = _plural(self.limit, "item", "items")
        return [self.error(ctx, instance, f"{render(instance)} has more than {self.limit} {unit}")]


@dataclass(frozen=True)
class UniqueItems(Keyword):
    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, list):
            return []
        seen = set()
        for item in instance:
            key = canonical_key(item)
            if key in seen:
                return [self.error(ctx, instance, f"{render(instance)} has non-unique elements")]
            seen.add(key)
        return []


# ======================================================================
# Objects
# ======================================================================
@dataclass(frozen=True)
class Properties(Keyword):
    nodes: tuple[tuple[str, int], ...]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, dict):
            return []
        errors: Errors = []
        for name, node in self.nodes:
            if name in instance:
                errors.extend(ctx.descend(node, instance[name], name))
                if errors and ctx.short_circuit:
                    break
        return errors


@dataclass(frozen=True)
class PatternProperties(Keyword):
    patterns: tuple[tuple[re.Pattern[str], int], ...]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, dict):
            return []
        errors: Errors = []
        for regex, node in self.patterns:
            for name, value in instance.items():
                if regex.search(name):
                    errors.extend(ctx.descend(node, value, name))
                    if errors and ctx.short_circuit:
                        return errors
        return errors


@dataclass(frozen=True)
class AdditionalProperties(Keyword):
    """Members matched by neither ``properties`` nor ``patternProperties``."""

    node: Optional[int]
    known: frozenset[str]
    patterns: tuple[re.Pattern[str], ...]

    def _extra(self, instance: dict[str, Any]) -> list[str]:
        return [
            name
            for name in instance
            if name not in self.known and not any(p.search(name) for p in self.patterns)
        ]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, dict):
            return []
        extra = self._extra(instance)
        if not extra:
            return []
        if self.node is None:
            names = ", ".join(f"'{name}'" for name in extra)
            verb = "was" if len(extra) == 1 else "were"
            message = f"Additional properties are not allowed ({names} {verb} unexpected)"
            return [self.error(ctx, instance, message)]
        errors: Errors = []
        for name in extra:
            errors.extend(ctx.descend(self.node, instance[name], name))
            if errors and ctx.short_circuit:
                break
        return errors


@dataclass(frozen=True)
class PropertyNames(Keyword):
    node: int

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, dict):
            return []
        errors: Errors = []
        for name in instance:
            errors.extend(ctx.descend(self.node, name))
            if errors and ctx.short_circuit:
                break
        return errors


@dataclass(frozen=True)
class Required(Keyword):
    names: tuple[str, ...]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, dict):
            return []
        errors: Errors = []
        for name in self.names:
            if name not in instance:
                errors.append(self.error(ctx, instance, f"{render(name)} is a required property"))
                if ctx.short_circuit:
                    break
        return errors


@dataclass(frozen=True)
class MinProperties(Keyword):
    limit: int

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, dict) or len(instance) >= self.limit:
            return []
        unit = _plural(self.limit, "property", "properties")
        return [self.error(ctx, instance, f"{render(instance)} has less than {self.limit} {unit}")]


@dataclass(frozen=True)
class MaxProperties(Keyword):
    limit: int

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, dict) or len(instance) <= self.limit:
            return []
        unit = _plural(self.limit, "property", "properties")
        return [self.error(ctx, instance, f"{render(instance)} has more than {self.limit} {unit}")]


@dataclass(frozen=True)
class DependentRequired(Keyword):
    dependencies: tuple[tuple[str, tuple[str, ...]], ...]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, dict):
            return []
        errors: Errors = []
        for name, required in self.dependencies:
            if name not in instance:
                continue
            for dependency in required:
                if dependency not in instance:
                    message = f"{render(dependency)} is a dependency of {render(name)}"
                    errors.append(self.error(ctx, instance, message))
                    if ctx.short_circuit:
                        return errors
        return errors


@dataclass(frozen=True)
class DependentSchemas(Keyword):
    dependencies: tuple[tuple[str, int], ...]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not isinstance(instance, dict):
            return []
        errors: Errors = []
        for name, node in self.dependencies:
            if name in instance:
                errors.extend(ctx.descend(node, instance))
                if errors and ctx.short_circuit:
                    break
        return errors


# ======================================================================
# Applicators
# ======================================================================
@dataclass(frozen=True)
class AllOf(Keyword):
    nodes: tuple[int, ...]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        errors: Errors = []
        for node in self.nodes:
            errors.extend(ctx.descend(node, instance))
            if errors and ctx.short_circuit:
                break
        return errors


@dataclass(frozen=True)
class AnyOf(Keyword):
    nodes: tuple[int, ...]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if any(ctx.probe(node, instance) for node in self.nodes):
            return []
        message = (
            f"{render(instance)} is not valid under any of the schemas listed in the 'anyOf' keyword"
        )
        return [self.error(ctx, instance, message)]


@dataclass(frozen=True)
class OneOf(Keyword):
    nodes: tuple[int, ...]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        passed = 0
        for node in self.nodes:
            if ctx.probe(node, instance):
                passed += 1
                if passed > 1:
                    message = (
                        f"{render(instance)} is valid under more than one of the schemas "
                        f"listed in the 'oneOf' keyword"
                    )
                    return [self.error(ctx, instance, message)]
        if passed == 1:
            return []
        message = (
            f"{render(instance)} is not valid under any of the schemas listed in the 'oneOf' keyword"
        )
        return [self.error(ctx, instance, message)]


@dataclass(frozen=True)
class Not(Keyword):
    node: int
    schema: Any

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        if not ctx.probe(self.node, instance):
            return []
        return [
            self.error(ctx, instance, f"{render(self.schema)} is not allowed for {render(instance)}")
        ]


@dataclass(frozen=True)
class IfThenElse(Keyword):
    condition: int
    then: Optional[int]
    otherwise: Optional[int]

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        branch = self.then if ctx.probe(self.condition, instance) else self.otherwise
        if branch is None:
            return []
        return ctx.descend(branch, instance)


@dataclass(frozen=True)
class Ref(Keyword):
    """``$ref`` and its dynamic variants; ``uri`` is a key of the link table."""

    uri: str

    def evaluate(self, ctx: Evaluation, instance: Any) -> Errors:
        return ctx.descend(ctx.resolve(self.uri), instance)
