"""File discovery over a materialized repository tree.

Walks the tree with directory pruning, drops ignored/empty/oversized files
and files whose extension maps to no known language.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from repolens.core.errors import DiscoveryError, ReadError
from repolens.core.excludes import is_ignored_dir, is_ignored_file
from repolens.core.languages import LANGUAGE_ORDER, UNKNOWN_LANGUAGE, detect_language

logger = structlog.get_logger()

DEFAULT_MAX_FILE_SIZE = 1024 * 1024


@dataclass(frozen=True, slots=True)
class FileInfo:
    """A discovered file."""

    path: Path  # absolute
    relative_path: str  # posix, relative to discovery root
    language: str
    size: int
    extension: str  # lowercase with leading dot, "" if none

    @property
    def name(self) -> str:
        return self.path.name


@dataclass
class DiscoveryStats:
    total_files: int = 0
    total_size: int = 0
    language_breakdown: dict[str, int] = field(default_factory=dict)

    def add(self, info: FileInfo) -> None:
        self.total_files += 1
        self.total_size += info.size
        self.language_breakdown[info.language] = self.language_breakdown.get(info.language, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_files": self.total_files,
            "total_size": self.total_size,
            "language_breakdown": dict(self.language_breakdown),
        }


@dataclass
class DiscoveryResult:
    files: list[FileInfo] = field(default_factory=list)
    stats: DiscoveryStats = field(default_factory=DiscoveryStats)


def primary_language(breakdown: dict[str, int]) -> str:
    """Language with the highest file count.

    Ties go to the language listed first in the language table, then by
    name, so the result is stable across calls and insertion orders.
    """
    candidates = [(lang, n) for lang, n in breakdown.items() if n > 0]
    if not candidates:
        return UNKNOWN_LANGUAGE
    best = min(
        candidates,
        key=lambda item: (-item[1], LANGUAGE_ORDER.get(item[0], len(LANGUAGE_ORDER)), item[0]),
    )
    return best[0]


def read_content(path: Path) -> str:
    """Read a file as UTF-8 text.

    Raises:
        ReadError: If the file cannot be read or is not valid UTF-8.
    """
    try:
        return path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ReadError.undecodable(str(path), str(e)) from e


class FileDiscovery:
    """Discovers analyzable files under a root directory.

    Usage::

        discovery = FileDiscovery(max_file_size=512 * 1024)
        result = discovery.discover(Path("/tmp/repo"))
        for info in result.files:
            print(info.relative_path, info.language)
    """

    def __init__(
        self,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        extra_ignored_dirs: frozenset[str] = frozenset(),
        extra_ignored_globs: tuple[str, ...] = (),
    ) -> None:
        self.max_file_size = max_file_size
        self.extra_ignored_dirs = frozenset(extra_ignored_dirs)
        self.extra_ignored_globs = tuple(extra_ignored_globs)

    @classmethod
    def from_config(cls, config: Any) -> FileDiscovery:
        """Build from a DiscoveryConfig."""
        return cls(
            max_file_size=config.max_file_size_bytes,
            extra_ignored_dirs=frozenset(config.extra_ignored_dirs),
            extra_ignored_globs=tuple(config.extra_ignored_globs),
        )

    def discover(self, root: Path) -> DiscoveryResult:
        """Enumerate files under root.

        Raises:
            DiscoveryError: If root itself cannot be enumerated.
        """
        root = Path(root)
        if not root.is_dir():
            raise DiscoveryError.root_unreadable(str(root), f"not a directory: {root}")
        try:
            os.listdir(root)
        except OSError as e:
            raise DiscoveryError.root_unreadable(str(root), str(e)) from e

        result = DiscoveryResult()

        def on_walk_error(err: OSError) -> None:
            logger.warning("directory_skipped", path=err.filename, error=str(err))

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_walk_error):
            dirnames[:] = sorted(
                d for d in dirnames if not is_ignored_dir(d, self.extra_ignored_dirs)
            )
            for filename in sorted(filenames):
                info = self._process(root, Path(dirpath) / filename)
                if info is not None:
                    result.files.append(info)
                    result.stats.add(info)

        logger.info(
            "discovery_completed",
            root=str(root),
            total_files=result.stats.total_files,
            total_size=result.stats.total_size,
        )
        return result

    def _process(self, root: Path, path: Path) -> FileInfo | None:
        if is_ignored_file(path.name, self.extra_ignored_globs):
            return None
        try:
            st = path.stat()
        except OSError as e:
            logger.warning("file_skipped", path=str(path), error=str(e))
            return None
        if not path.is_file():
            return None
        if st.st_size == 0 or st.st_size > self.max_file_size:
            return None

        extension = path.suffix.lower()
        language = detect_language(extension)
        if language == UNKNOWN_LANGUAGE:
            return None

        return FileInfo(
            path=path,
            relative_path=path.relative_to(root).as_posix(),
            language=language,
            size=st.st_size,
            extension=extension,
        )
