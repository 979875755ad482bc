"""Tests for cli/utils.py target resolution."""

from __future__ import annotations

import zipfile
from pathlib import Path

import click
import pytest

from repolens.cli.utils import resolve_target
from repolens.storage.models import SourceType


class TestResolveTarget:
    """resolve_target classification."""

    def test_given_directory_when_resolved_then_local(self, tmp_path: Path) -> None:
        # Given
        project = tmp_path / "my-project"
        project.mkdir()

        # When
        target = resolve_target(str(project))

        # Then
        assert target.source_type is SourceType.LOCAL
        assert target.name == "my-project"
        assert target.payload == {"source_type": "local", "path": str(project.resolve())}

    def test_given_zip_file_when_resolved_then_archive(self, tmp_path: Path) -> None:
        # Given
        archive = tmp_path / "upload.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("a.py", "x = 1\n")

        # When
        target = resolve_target(str(archive))

        # Then
        assert target.source_type is SourceType.ARCHIVE
        assert target.name == "upload"
        assert target.payload["archive_path"] == str(archive.resolve())

    def test_given_git_url_with_branch_when_resolved_then_git_payload(self) -> None:
        # When
        target = resolve_target("git@github.com:octo/hello.git", branch="dev")

        # Then
        assert target.source_type is SourceType.GIT
        assert target.name == "hello"
        assert target.source_url == "git@github.com:octo/hello.git"
        assert target.payload == {
            "source_type": "git",
            "url": "git@github.com:octo/hello.git",
            "branch": "dev",
        }

    @pytest.mark.parametrize("value", ["does/not/exist", "notes.txt"])
    def test_given_unrecognized_target_when_resolved_then_bad_parameter(
        self, value: str, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / "notes.txt").write_text("hi")

        with pytest.raises(click.BadParameter):
            resolve_target(value)
