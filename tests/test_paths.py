"""Tests for virtual path normalization."""

import pytest

from commitfs import InvalidPathError, normalize_path
from commitfs.paths import base_name, join_path, virtual_path


class TestNormalizePath:
    @pytest.mark.parametrize("raw, expected", [
        ("/a/b.txt", "a/b.txt"),
        ("a/b.txt", "a/b.txt"),
        ("//a///b.txt/", "a/b.txt"),
        ("/a/./b", "a/b"),
        ("/a/x/../b", "a/b"),
        ("/", ""),
        ("", ""),
    ])
    def test_normalizes(self, raw, expected):
        assert normalize_path(raw) == expected

    @pytest.mark.parametrize("raw", ["..", "/../etc/passwd", "a/../../b"])
    def test_escape_raises(self, raw):
        with pytest.raises(InvalidPathError, match="escapes"):
            normalize_path(raw)

    @pytest.mark.parametrize("raw", ["/.git", ".git/config", "/x/../.git/HEAD"])
    def test_control_dir_raises(self, raw):
        with pytest.raises(InvalidPathError, match="control directory"):
            normalize_path(raw)

    @pytest.mark.parametrize("raw", [
        "/sub/.git/config", "vendor/.git", "/.GIT/HEAD", "/a/.Git/b", "/a/b/../.git/x",
    ])
    def test_control_dir_at_any_depth_raises(self, raw):
        with pytest.raises(InvalidPathError, match="control directory"):
            normalize_path(raw)

    @pytest.mark.parametrize("raw, expected", [
        ("/a/.gitignore", "a/.gitignore"),
        ("/git/x", "git/x"),
        ("/a/.git.bak", "a/.git.bak"),
    ])
    def test_git_like_names_allowed(self, raw, expected):
        assert normalize_path(raw) == expected

    def test_invalid_path_is_value_error(self):
        with pytest.raises(ValueError):
            normalize_path("/..")


class TestHelpers:
    def test_virtual_path(self):
        assert virtual_path("a/b") == "/a/b"
        assert virtual_path("") == "/"

    def test_join_path(self):
        assert join_path("", "a") == "a"
        assert join_path("a", "b") == "a/b"

    def test_base_name(self):
        assert base_name("a/b.txt") == "b.txt"
        assert base_name("top") == "top"
        assert base_name("") == "/"
