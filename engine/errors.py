"""Error records produced by compilation and evaluation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from engine.paths import ROOT, Path


@dataclass(frozen=True)
class SchemaIssue:
    """One structural problem found while checking a schema document."""

    path: Path
    keyword: str
    message: str


class CompileError(Exception):
    """The schema cannot be turned into a validator.

    Raised for structurally invalid schemas, unrecognized dialects and
    unresolvable references. ``path`` locates the first problem inside the
    schema document; ``issues`` holds every problem that was collected.
    """

    def __init__(
        self,
        message: str,
        path: Path = ROOT,
        issues: Optional[Iterable[SchemaIssue]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.issues: tuple[SchemaIssue, ...] = tuple(issues or ())

    @classmethod
    def from_issues(cls, issues: list[SchemaIssue]) -> CompileError:
        first = issues[0]
        return cls(first.message, first.path, issues)

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ValidationError:
    """A single constraint the instance failed."""

    keyword: str
    instance_path: Path
    schema_path: Path
    message: str
    # Offending value, shared with the caller's instance (not copied).
    instance: Any = field(compare=False)

    def __str__(self) -> str:
        return self.message


def format_error(error: ValidationError, with_location: bool = False) -> str:
    if with_location:
        return f"{error.message} at {error.instance_path or '/'}"
    return error.message


def format_all(
    errors: Iterable[ValidationError], with_location: bool = False
) -> list[str]:
    """Render errors in the order they were reported."""
    return [format_error(e, with_location) for e in errors]
