"""Zip archive extraction with entry validation."""

from __future__ import annotations

import shutil
import zipfile
from pathlib import Path, PurePosixPath

import structlog

from repolens.core.errors import AcquisitionError

logger = structlog.get_logger()

DEFAULT_MAX_ARCHIVE_BYTES = 100 * 1024 * 1024

ARCHIVE_EXTENSIONS = frozenset({".zip"})


def is_archive(path: str | Path) -> bool:
    return Path(path).suffix.lower() in ARCHIVE_EXTENSIONS


def _validate_entries(archive: zipfile.ZipFile, dest: Path) -> None:
    """Reject absolute entries and entries that escape dest."""
    root = dest.resolve()
    for name in archive.namelist():
        normalized = name.replace("\\", "/")
        posix = PurePosixPath(normalized)
        if posix.is_absolute() or ".." in posix.parts or (normalized[1:2] == ":"):
            raise AcquisitionError.unsafe_archive(name)
        target = (root / normalized).resolve()
        if not target.is_relative_to(root):
            raise AcquisitionError.unsafe_archive(name)


def _flatten_single_root(dest: Path) -> None:
    """If dest holds exactly one directory, move its contents up a level."""
    entries = list(dest.iterdir())
    if len(entries) != 1 or not entries[0].is_dir():
        return
    nested = entries[0]
    logger.debug("archive_flattened", dir=nested.name)
    staging = dest.with_name(f"{dest.name}_flatten")
    if staging.exists():
        shutil.rmtree(staging)
    nested.rename(staging)
    dest.rmdir()
    staging.rename(dest)


def extract_zip(archive_path: Path, dest: Path, max_bytes: int = DEFAULT_MAX_ARCHIVE_BYTES) -> Path:
    """Extract a zip archive into dest, replacing anything already there.

    All entries are validated before any file is written. On failure dest
    is removed.

    Raises:
        AcquisitionError: If the archive is missing, too large, unreadable or unsafe.
    """
    archive_path = Path(archive_path)
    try:
        size = archive_path.stat().st_size
    except OSError as e:
        raise AcquisitionError.archive_unreadable(str(archive_path), str(e)) from e
    if size > max_bytes:
        raise AcquisitionError.archive_too_large(size, max_bytes)

    if dest.exists():
        logger.warning("workspace_replaced", path=str(dest))
        shutil.rmtree(dest)

    logger.info("archive_extract_started", archive=str(archive_path), dest=str(dest))
    try:
        dest.mkdir(parents=True)
        try:
            with zipfile.ZipFile(archive_path) as archive:
                _validate_entries(archive, dest)
                archive.extractall(dest)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as e:
            raise AcquisitionError.archive_unreadable(str(archive_path), str(e)) from e
        _flatten_single_root(dest)
    except Exception:
        shutil.rmtree(dest, ignore_errors=True)
        raise

    logger.info("archive_extract_completed", dest=str(dest))
    return dest
