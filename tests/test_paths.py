"""Tests for engine/paths.py: JSON Pointer parsing and location tracking."""

from __future__ import annotations

import pytest

from engine.paths import ROOT, Path, PathStack, escape_token, parse_pointer, unescape_token


class TestTokens:
    def test_escape_order(self):
        assert escape_token("a/b~c") == "a~1b~0c"

    def test_unescape_order(self):
        # "~01" is a literal "~1", not "/"
        assert unescape_token("~01") == "~1"
        assert unescape_token("a~1b") == "a/b"


class TestParsePointer:
    def test_root(self):
        assert parse_pointer("") == []

    def test_empty_key(self):
        assert parse_pointer("/") == [""]

    def test_escaped_tokens(self):
        assert parse_pointer("/a~1b/~0c/0") == ["a/b", "~c", "0"]

    def test_missing_leading_slash(self):
        with pytest.raises(ValueError, match="must start with"):
            parse_pointer("a/b")


class TestPath:
    def test_root_renders_empty(self):
        assert str(ROOT) == ""
        assert len(ROOT) == 0
        assert ROOT.last is None

    def test_join_and_render(self):
        path = ROOT.join("items", 0, "a/b")
        assert str(path) == "/items/0/a~1b"
        assert path.last == "a/b"
        assert list(path) == ["items", 0, "a/b"]

    def test_paths_are_values(self):
        assert Path(("a", 1)) == ROOT.join("a", 1)
        assert ROOT.join("a") is not ROOT


class TestPathStack:
    def test_push_pops_on_exit(self):
        stack = PathStack()
        with stack.push("a"):
            with stack.push(0):
                assert str(stack.snapshot()) == "/a/0"
            assert str(stack.snapshot()) == "/a"
        assert len(stack) == 0

    def test_push_pops_on_error(self):
        stack = PathStack()
        with pytest.raises(RuntimeError):
            with stack.push("a"):
                raise RuntimeError("boom")
        assert len(stack) == 0

    def test_snapshot_is_independent(self):
        stack = PathStack()
        with stack.push("a"):
            snap = stack.snapshot()
        assert str(snap) == "/a"
