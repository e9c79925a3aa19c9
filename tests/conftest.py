"""Shared fixtures for the test suite."""

from __future__ import annotations

import pytest

from main import reset_cache
from settings import reset_settings_cache


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Each test starts from default settings and an empty validator cache."""
    for name in (
        "DEFAULT_DIALECT",
        "UNKNOWN_DIALECT_POLICY",
        "VALIDATE_FORMATS",
        "MAX_SCHEMA_DEPTH",
        "MAX_EVALUATION_DEPTH",
        "CACHE_MAXSIZE",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    reset_cache()
    yield
    reset_settings_cache()
    reset_cache()


@pytest.fixture
def simple_schema():
    """A simple JSON Schema with an object and required fields."""
    return {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "age": {"type": "integer"},
            "email": {"type": "string", "format": "email"},
        },
        "required": ["name"],
    }


@pytest.fixture
def array_schema():
    """JSON Schema with an array of objects."""
    return {
        "type": "object",
        "properties": {
            "items": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "integer"},
                        "value": {"type": "string"},
                    },
                    "required": ["id"],
                },
            }
        },
    }


@pytest.fixture
def nested_schema():
    """Draft-07 schema with a $ref into definitions."""
    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "object",
        "definitions": {
            "Address": {
                "type": "object",
                "properties": {
                    "street": {"type": "string"},
                    "city": {"type": "string"},
                },
                "required": ["street", "city"],
            }
        },
        "properties": {
            "name": {"type": "string"},
            "address": {"$ref": "#/definitions/Address"},
        },
        "required": ["name"],
    }


@pytest.fixture
def tree_schema():
    """Recursive schema: a node whose children are nodes."""
    return {
        "type": "object",
        "properties": {
            "value": {"type": "integer"},
            "children": {"type": "array", "items": {"$ref": "#"}},
        },
        "required": ["value"],
    }
