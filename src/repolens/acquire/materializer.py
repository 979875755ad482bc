"""Materialize a repository on local disk from a job payload.

Payload shapes (the "source_type" key selects one):
- {"source_type": "git", "url": ..., "branch": optional}
- {"source_type": "archive", "archive_path": ...}
- {"source_type": "local", "path": ...}   analyzed in place, never deleted
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from repolens.acquire.archive import DEFAULT_MAX_ARCHIVE_BYTES, extract_zip
from repolens.acquire.git import clone
from repolens.core.errors import AcquisitionError
from repolens.storage.models import SourceType

if TYPE_CHECKING:
    from repolens.config.models import StorageConfig

logger = structlog.get_logger()


class Materializer:
    """Produces a local directory for a repository under a workspace root."""

    def __init__(
        self,
        workspace_dir: Path,
        max_archive_bytes: int = DEFAULT_MAX_ARCHIVE_BYTES,
    ) -> None:
        self.workspace_dir = Path(workspace_dir).expanduser()
        self.max_archive_bytes = max_archive_bytes

    @classmethod
    def from_config(cls, config: StorageConfig) -> Materializer:
        return cls(Path(config.workspace_dir), max_archive_bytes=config.max_archive_bytes)

    def workspace_for(self, repository_id: str) -> Path:
        return self.workspace_dir / repository_id

    def materialize(self, repository_id: str, payload: dict[str, Any]) -> Path:
        """Return a local path holding the repository contents.

        Partial workspaces are removed on failure.

        Raises:
            AcquisitionError: On unknown source type, bad URL, clone or
                archive failure.
        """
        source_type = payload.get("source_type")

        if source_type == SourceType.LOCAL.value:
            path = Path(str(payload.get("path", ""))).expanduser()
            if not path.is_dir():
                raise AcquisitionError.path_not_found(str(path))
            return path.resolve()

        dest = self.workspace_for(repository_id)
        self.workspace_dir.mkdir(parents=True, exist_ok=True)

        if source_type == SourceType.GIT.value:
            url = payload.get("url")
            if not url:
                raise AcquisitionError.invalid_url(str(url))
            if dest.exists():
                shutil.rmtree(dest)
            try:
                return clone(str(url), dest, branch=payload.get("branch"))
            except Exception:
                shutil.rmtree(dest, ignore_errors=True)
                raise

        if source_type == SourceType.ARCHIVE.value:
            archive = payload.get("archive_path")
            if not archive:
                raise AcquisitionError.archive_unreadable("", "no archive path given")
            return extract_zip(Path(str(archive)), dest, max_bytes=self.max_archive_bytes)

        raise AcquisitionError.unknown_source(source_type)

    def remove(self, repository_id: str) -> bool:
        """Delete a repository's workspace. Returns False if there was none."""
        dest = self.workspace_for(repository_id)
        if not dest.exists():
            return False
        shutil.rmtree(dest)
        logger.info("workspace_removed", repository_id=repository_id)
        return True
