"""Walks an instance against a compiled validator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator, Optional

from engine.errors import ValidationError
from engine.paths import Path, PathStack, Segment
from engine.value import render

if TYPE_CHECKING:
    from engine.compiler import CompiledValidator


@dataclass(frozen=True)
class EvaluationResult:
    errors: tuple[ValidationError, ...] = ()

    @property
    def valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.valid

    def __iter__(self) -> Iterator[ValidationError]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)


class Evaluation:
    """State of one evaluation call: instance location, depth and mode.

    Two limits share ``max_depth``: how deep the instance location may go,
    and how many schema nodes may be entered in a row without moving into
    the instance (``{"$ref": "#"}`` would otherwise never stop).

    Nothing here is shared between calls, which is what lets a single
    ``CompiledValidator`` serve many threads at once.
    """

    def __init__(self, validator: CompiledValidator, short_circuit: bool) -> None:
        self.validator = validator
        self.short_circuit = short_circuit
        self._path = PathStack()
        # nodes entered since the instance location last changed
        self._hops = 0

    def location(self) -> Path:
        return self._path.snapshot()

    def resolve(self, uri: str) -> int:
        return self.validator.links[uri]

    def descend(
        self, node: int, instance: Any, segment: Optional[Segment] = None
    ) -> list[ValidationError]:
        """Evaluate *node*, optionally one level deeper in the instance."""
        if segment is None:
            return self.run(node, instance)
        hops, self._hops = self._hops, 0
        try:
            with self._path.push(segment):
                return self.run(node, instance)
        finally:
            self._hops = hops

    def probe(self, node: int, instance: Any, segment: Optional[Segment] = None) -> bool:
        """Whether *instance* passes *node*, checked in short-circuit mode."""
        previous = self.short_circuit
        self.short_circuit = True
        try:
            return not self.descend(node, instance, segment)
        finally:
            self.short_circuit = previous

    def run(self, index: int, instance: Any) -> list[ValidationError]:
        node = self.validator.nodes[index]
        if node.verdict is True:
            return []
        if node.verdict is False:
            return [
                ValidationError(
                    keyword="false",
                    instance_path=self.location(),
                    schema_path=node.schema_path,
                    message=f"False schema does not allow {render(instance)}",
                    instance=instance,
                )
            ]
        limit = self.validator.max_depth
        if len(self._path) > limit or self._hops >= limit:
            return [
                ValidationError(
                    keyword="depth",
                    instance_path=self.location(),
                    schema_path=node.schema_path,
                    message=f"Maximum evaluation depth of {limit} exceeded",
                    instance=instance,
                )
            ]

        self._hops += 1
        try:
            errors: list[ValidationError] = []
            for keyword in node.keywords:
                found = keyword.evaluate(self, instance)
                if found:
                    errors.extend(found)
                    if self.short_circuit:
                        break
            return errors
        finally:
            self._hops -= 1


def evaluate(validator: CompiledValidator, instance: Any) -> EvaluationResult:
    """Run every applicable check and collect all failures in order."""
    ctx = Evaluation(validator, short_circuit=False)
    return EvaluationResult(tuple(ctx.run(validator.root, instance)))


def is_valid(validator: CompiledValidator, instance: Any) -> bool:
    """Boolean mode: stop at the first failure."""
    ctx = Evaluation(validator, short_circuit=True)
    return not ctx.run(validator.root, instance)
