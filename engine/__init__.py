from engine.cache import ValidatorCache
from engine.compiler import CompiledValidator, CompileOptions, SchemaNode, compile_schema
from engine.dialects import ALL_DIALECTS, Dialect, find_dialect
from engine.errors import CompileError, SchemaIssue, ValidationError, format_all, format_error
from engine.evaluator import EvaluationResult
from engine.paths import ROOT, Path

__all__ = [
    "ValidatorCache",
    "CompiledValidator",
    "CompileOptions",
    "SchemaNode",
    "compile_schema",
    "ALL_DIALECTS",
    "Dialect",
    "find_dialect",
    "CompileError",
    "SchemaIssue",
    "ValidationError",
    "format_all",
    "format_error",
    "EvaluationResult",
    "ROOT",
    "Path",
]
