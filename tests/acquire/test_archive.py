"""Tests for acquire/archive.py."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from repolens.acquire.archive import extract_zip, is_archive
from repolens.core.errors import AcquisitionError, ErrorCode


def _zip(path: Path, entries: dict[str, str]) -> Path:
    with zipfile.ZipFile(path, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return path


class TestExtractZip:
    """extract_zip tests."""

    def test_given_single_root_dir_when_extracted_then_flattened(self, tmp_path: Path) -> None:
        """GitHub-style archives wrap everything in one top-level directory."""
        # Given
        archive = _zip(
            tmp_path / "repo.zip",
            {"repo-main/src/a.ts": "export {};\n", "repo-main/README.md": "# hi\n"},
        )
        dest = tmp_path / "ws" / "r1"

        # When
        result = extract_zip(archive, dest)

        # Then
        assert result == dest
        assert (dest / "src" / "a.ts").read_text() == "export {};\n"
        assert (dest / "README.md").exists()
        assert not (dest / "repo-main").exists()

    def test_given_multiple_roots_when_extracted_then_layout_kept(self, tmp_path: Path) -> None:
        archive = _zip(tmp_path / "repo.zip", {"a.py": "x = 1\n", "pkg/b.py": "y = 2\n"})
        dest = tmp_path / "out"

        extract_zip(archive, dest)

        assert sorted(p.name for p in dest.iterdir()) == ["a.py", "pkg"]

    @pytest.mark.parametrize("entry", ["../evil.py", "a/../../evil.py", "/etc/passwd", "C:/x.py"])
    def test_given_unsafe_entry_when_extracted_then_rejected_and_nothing_written(
        self, tmp_path: Path, entry: str
    ) -> None:
        # Given
        archive = _zip(tmp_path / "bad.zip", {"ok.py": "x = 1\n", entry: "boom"})
        dest = tmp_path / "ws" / "r1"

        # When
        with pytest.raises(AcquisitionError) as exc_info:
            extract_zip(archive, dest)

        # Then
        assert exc_info.value.code == ErrorCode.ACQUIRE_UNSAFE_ARCHIVE
        assert exc_info.value.message == "Invalid archive: contains unsafe file paths"
        assert not dest.exists()
        assert not (tmp_path / "ws" / "evil.py").exists()

    def test_given_oversized_archive_when_extracted_then_too_large(self, tmp_path: Path) -> None:
        # Given
        archive = _zip(tmp_path / "big.zip", {"a.py": "x = 1\n" * 200})

        # When / Then
        with pytest.raises(AcquisitionError) as exc_info:
            extract_zip(archive, tmp_path / "out", max_bytes=10)
        assert exc_info.value.code == ErrorCode.ACQUIRE_ARCHIVE_TOO_LARGE

    def test_given_corrupt_archive_when_extracted_then_unreadable(self, tmp_path: Path) -> None:
        # Given
        archive = tmp_path / "corrupt.zip"
        archive.write_bytes(b"not a zip at all")
        dest = tmp_path / "out"

        # When / Then
        with pytest.raises(AcquisitionError) as exc_info:
            extract_zip(archive, dest)
        assert exc_info.value.code == ErrorCode.ACQUIRE_ARCHIVE_UNREADABLE
        assert not dest.exists()

    def test_given_existing_dest_when_extracted_then_replaced(self, tmp_path: Path) -> None:
        # Given
        dest = tmp_path / "out"
        dest.mkdir()
        (dest / "stale.py").write_text("old\n")
        archive = _zip(tmp_path / "repo.zip", {"fresh.py": "new\n", "other.py": "x\n"})

        # When
        extract_zip(archive, dest)

        # Then
        assert not (dest / "stale.py").exists()
        assert (dest / "fresh.py").exists()


class TestIsArchive:
    @pytest.mark.parametrize(
        ("name", "expected"), [("a.zip", True), ("A.ZIP", True), ("a.tar.gz", False)]
    )
    def test_given_name_when_checked_then_zip_only(self, name: str, expected: bool) -> None:
        assert is_archive(name) is expected
