"""Tests for core/excludes.py - canonical ignore rules."""

import pytest

from repolens.core.excludes import (
    IGNORED_DIRS,
    IGNORED_FILE_GLOBS,
    is_ignored_dir,
    is_ignored_file,
)


class TestIgnoredDirs:
    """Directory pruning rules."""

    @pytest.mark.parametrize(
        "dirname",
        ["node_modules", ".git", "dist", "build", "__pycache__", ".venv", "coverage"],
    )
    def test_given_builtin_dir_when_checked_then_ignored(self, dirname: str) -> None:
        """Dependency, VCS and build directories are never traversed."""
        # Given
        name = dirname

        # When
        result = is_ignored_dir(name)

        # Then
        assert result is True

    @pytest.mark.parametrize("dirname", ["src", "lib", "components", "tests"])
    def test_given_source_dir_when_checked_then_not_ignored(self, dirname: str) -> None:
        assert is_ignored_dir(dirname) is False

    def test_given_extra_dirs_when_checked_then_extends_builtin_set(self) -> None:
        """Configured extras add to the fixed set without replacing it."""
        # Given
        extra = ["generated"]

        # When / Then
        assert is_ignored_dir("generated", extra) is True
        assert is_ignored_dir("node_modules", extra) is True

    def test_given_builtin_set_when_inspected_then_is_frozen(self) -> None:
        assert isinstance(IGNORED_DIRS, frozenset)


class TestIgnoredFiles:
    """File glob rules."""

    @pytest.mark.parametrize(
        "filename",
        ["package-lock.json", "yarn.lock", "app.min.js", "main.js.map", "LOGO.PNG", "debug.log"],
    )
    def test_given_generated_or_binary_file_when_checked_then_ignored(
        self, filename: str
    ) -> None:
        """Lock files, bundles and binaries are skipped (case-insensitive)."""
        # When
        result = is_ignored_file(filename)

        # Then
        assert result is True

    @pytest.mark.parametrize("filename", ["index.ts", "app.js", "setup.py", "package.json"])
    def test_given_source_file_when_checked_then_not_ignored(self, filename: str) -> None:
        assert is_ignored_file(filename) is False

    def test_given_extra_glob_when_checked_then_matches(self) -> None:
        # Given
        extra = ["*.generated.ts"]

        # When
        result = is_ignored_file("schema.generated.ts", extra)

        # Then
        assert result is True

    def test_given_glob_table_when_inspected_then_lowercase_patterns(self) -> None:
        assert all(pattern == pattern.lower() for pattern in IGNORED_FILE_GLOBS)
