"""Tests for the Sandbox (path resolution and containment)."""

from __future__ import annotations

__author__ = "Artur Barseghyan <artur.barseghyan@gmail.com>"
__copyright__ = "2026 Artur Barseghyan"
__license__ = "MIT"

import os

import pytest

from ipfsloader import PathEscapeError
from ipfsloader._sandbox import is_within, resolve_member_path


class TestResolverUnit:
    """Unit tests for resolve_member_path()."""

    def test_simple_filename(self, tmp_path):
        result = resolve_member_path(tmp_path, "hello.txt")
        assert result == tmp_path.resolve() / "hello.txt"

    def test_nested_filename(self, tmp_path):
        result = resolve_member_path(tmp_path, "a/b/c.txt")
        assert result == tmp_path.resolve() / "a" / "b" / "c.txt"

    def test_leading_dot_dropped(self, tmp_path):
        result = resolve_member_path(tmp_path, "./hello.txt")
        assert result == tmp_path.resolve() / "hello.txt"

    def test_trailing_slash_dropped(self, tmp_path):
        result = resolve_member_path(tmp_path, "sub/")
        assert result == tmp_path.resolve() / "sub"

    def test_target_need_not_exist(self, tmp_path):
        result = resolve_member_path(tmp_path / "not" / "yet", "file.txt")
        assert result.name == "file.txt"
        assert not (tmp_path / "not").exists()

    def test_dotdot_rejected(self, tmp_path):
        with pytest.raises(PathEscapeError, match="traversal"):
            resolve_member_path(tmp_path, "../escape.txt")

    def test_inner_dotdot_rejected(self, tmp_path):
        with pytest.raises(PathEscapeError, match="traversal"):
            resolve_member_path(tmp_path, "a/../../escape.txt")

    def test_backslash_dotdot_rejected(self, tmp_path):
        with pytest.raises(PathEscapeError, match="traversal"):
            resolve_member_path(tmp_path, "..\\escape.txt")

    def test_absolute_rejected(self, tmp_path):
        with pytest.raises(PathEscapeError, match="Absolute"):
            resolve_member_path(tmp_path, "/etc/passwd")

    def test_windows_absolute_rejected(self, tmp_path):
        with pytest.raises(PathEscapeError, match="Absolute Windows"):
            resolve_member_path(tmp_path, "C:/Windows/system32")

    def test_null_byte_rejected(self, tmp_path):
        with pytest.raises(PathEscapeError, match="Null byte"):
            resolve_member_path(tmp_path, "safe\x00evil")

    def test_empty_rejected(self, tmp_path):
        with pytest.raises(PathEscapeError, match="empty"):
            resolve_member_path(tmp_path, "")

    def test_dot_only_rejected(self, tmp_path):
        with pytest.raises(PathEscapeError, match="empty"):
            resolve_member_path(tmp_path, ".")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="requires symlinks")
    def test_symlinked_directory_escape_rejected(self, tmp_path):
        base = tmp_path / "base"
        outside = tmp_path / "outside"
        base.mkdir()
        outside.mkdir()
        (base / "link").symlink_to(outside, target_is_directory=True)
        with pytest.raises(PathEscapeError, match="escapes"):
            resolve_member_path(base, "link/file.txt")


class TestContainment:
    """is_within()."""

    def test_same_directory(self, tmp_path):
        assert is_within(tmp_path, tmp_path)

    def test_descendant(self, tmp_path):
        assert is_within(tmp_path, tmp_path / "a" / "b")

    def test_parent_is_not_within(self, tmp_path):
        assert not is_within(tmp_path / "a", tmp_path)

    def test_sibling_with_common_prefix(self, tmp_path):
        assert not is_within(tmp_path / "cache", tmp_path / "cacheX")

    def test_dotdot_resolved(self, tmp_path):
        assert not is_within(tmp_path / "a", tmp_path / "a" / ".." / "b")
