from typing import Optional

from pydantic import BaseModel, Field

from engine import CompileError, ValidationError


class ErrorRecord(BaseModel):
    """One failed constraint, flattened for JSON output."""

    keyword: str = Field(description="Keyword that produced the error")
    instance_path: str = Field(description="JSON Pointer to the failing value in the instance")
    schema_path: str = Field(description="JSON Pointer to the keyword in the schema")
    message: str = Field(description="Human readable description of the failure")

    @classmethod
    def from_error(cls, error: ValidationError) -> "ErrorRecord":
        return cls(
            keyword=error.keyword,
            instance_path=str(error.instance_path),
            schema_path=str(error.schema_path),
            message=error.message,
        )


class ValidationReport(BaseModel):
    """Outcome of one CLI run."""

    valid: bool = Field(description="Whether the instance (or schema) is valid")
    dialect: Optional[str] = Field(default=None, description="Dialect the schema was compiled with")
    schema_error: Optional[str] = Field(
        default=None, description="Why the schema failed to compile, if it did"
    )
    schema_error_path: Optional[str] = Field(
        default=None, description="JSON Pointer to the schema problem"
    )
    errors: list[ErrorRecord] = Field(
        default_factory=list, description="Instance errors in evaluation order"
    )

    @classmethod
    def from_compile_error(cls, error: CompileError) -> "ValidationReport":
        return cls(valid=False, schema_error=error.message, schema_error_path=str(error.path))
