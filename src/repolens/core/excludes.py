"""Canonical ignore rules for repository discovery.

IGNORED_DIRS: directory names that are never traversed, at any depth.
    - VCS internals, dependency trees, build outputs, caches, IDE state
IGNORED_FILE_GLOBS: file-name patterns for generated, binary and lock files.

Both sets are fixed. Configuration may extend them, never shrink them.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable

IGNORED_DIRS: frozenset[str] = frozenset(
    (
        # VCS internals
        ".git",
        ".svn",
        ".hg",
        ".bzr",
        # -------------------------------------------------------------------------
        # Dependencies
        # -------------------------------------------------------------------------
        "node_modules",
        "bower_components",
        ".yarn",
        ".pnpm-store",
        "vendor",
        "venv",
        ".venv",
        "site-packages",
        # -------------------------------------------------------------------------
        # Build / output
        # -------------------------------------------------------------------------
        "dist",
        "build",
        "out",
        "target",  # Rust/Java build dirs
        "bin",
        "obj",
        ".next",
        ".nuxt",
        "coverage",
        # -------------------------------------------------------------------------
        # Caches
        # -------------------------------------------------------------------------
        ".cache",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        ".tox",
        # -------------------------------------------------------------------------
        # IDE
        # -------------------------------------------------------------------------
        ".vscode",
        ".idea",
    )
)

IGNORED_FILE_GLOBS: tuple[str, ...] = (
    # Lock files and logs
    "*.lock",
    "*.log",
    "package-lock.json",
    "yarn.lock",
    "bun.lockb",
    # Generated bundles
    "*.map",
    "*.min.js",
    "*.min.css",
    "*.bundle.js",
    "*.chunk.js",
    # Binary assets
    "*.png",
    "*.jpg",
    "*.jpeg",
    "*.gif",
    "*.svg",
    "*.ico",
    "*.woff",
    "*.woff2",
    "*.ttf",
    "*.eot",
    "*.pdf",
    "*.zip",
    "*.tar",
    "*.gz",
)


def is_ignored_dir(dirname: str, extra: Iterable[str] = ()) -> bool:
    """Check if a directory name is excluded from traversal."""
    return dirname in IGNORED_DIRS or dirname in extra


def is_ignored_file(filename: str, extra_globs: Iterable[str] = ()) -> bool:
    """Check if a file name matches an ignored glob (case-insensitive)."""
    lower = filename.lower()
    for pattern in (*IGNORED_FILE_GLOBS, *extra_globs):
        if fnmatch.fnmatchcase(lower, pattern.lower()):
            return True
    return False
