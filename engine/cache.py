"""Process-wide memo of compiled validators, keyed by schema content."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any, Optional

from engine.compiler import CompiledValidator, CompileOptions, compile_schema
from engine.value import render

logger = logging.getLogger(__name__)


class ValidatorCache:
    """Bounded LRU cache of ``CompiledValidator`` objects.

    Two schemas share an entry when they render to the same canonical
    text. Schemas that fail to compile are never stored, so the error is
    raised again on every lookup.
    """

    def __init__(self, maxsize: int = 128, options: Optional[CompileOptions] = None) -> None:
        self.maxsize = maxsize
        self.options = options or CompileOptions()
        self._entries: OrderedDict[str, CompiledValidator] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(schema: Any) -> str:
        return render(schema)

    def get(self, schema: Any) -> CompiledValidator:
        key = self.key(schema)
        with self._lock:
            validator = self._entries.get(key)
            if validator is not None:
                self._entries.move_to_end(key)
                self.hits += 1
                logger.debug("Validator cache hit")
                return validator
            self.misses += 1

        # Compile outside the lock; a concurrent miss for the same schema
        # compiles twice and the first stored validator wins.
        logger.debug("Validator cache miss, compiling schema")
        validator = compile_schema(schema, self.options)
        if self.maxsize <= 0:
            return validator

        with self._lock:
            stored = self._entries.setdefault(key, validator)
            self._entries.move_to_end(key)
            while len(self._entries) > self.maxsize:
                self._entries.popitem(last=False)
                logger.debug("Evicted least recently used validator")
            return stored

    def invalidate(self, schema: Any) -> bool:
        with self._lock:
            return self._entries.pop(self.key(schema), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "maxsize": self.maxsize,
                "hits": self.hits,
                "misses": self.misses,
            }

    def __contains__(self, schema: Any) -> bool:
        with self._lock:
            return self.key(schema) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
