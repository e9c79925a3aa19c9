from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Union

Segment = Union[str, int]


def escape_token(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def unescape_token(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def parse_pointer(pointer: str) -> list[str]:
    """Split an RFC 6901 pointer into unescaped tokens.

    ``""`` is the whole document; ``"/"`` addresses the empty key.
    """
    if pointer == "":
        return []
    if not pointer.startswith("/"):
        raise ValueError(f'Invalid JSON Pointer (must start with "/"): {pointer}')
    return [unescape_token(t) for t in pointer.split("/")[1:]]


@dataclass(frozen=True)
class Path:
    """Location inside an instance or a schema, as ordered segments."""

    segments: tuple[Segment, ...] = ()

    def join(self, *segments: Segment) -> Path:
        return Path(self.segments + segments)

    @property
    def last(self) -> Segment | None:
        return self.segments[-1] if self.segments else None

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __str__(self) -> str:
        return "".join("/" + escape_token(str(s)) for s in self.segments)


ROOT = Path()


class PathStack:
    """Mutable instance location owned by a single evaluation call."""

    def __init__(self) -> None:
        self._segments: list[Segment] = []

    @contextmanager
    def push(self, segment: Segment) -> Iterator[None]:
        self._segments.append(segment)
        try:
            yield
        finally:
            self._segments.pop()

    def snapshot(self) -> Path:
        return Path(tuple(self._segments))

    def __len__(self) -> int:
        return len(self._segments)
