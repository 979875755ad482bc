"""Record store for repositories, files, structural facts and dependency edges.

All methods are synchronous and safe to call from worker threads; writes are
serialized by a process-wide lock since SQLite allows a single writer.
"""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any
from uuid import uuid4

import structlog
from sqlmodel import col, select

from repolens.extraction.models import StructuralFact
from repolens.storage.database import Database
from repolens.storage.models import (
    DependencyEdgeRecord,
    FileRecord,
    RepositoryRecord,
    RepositoryStatus,
    StructuralFactRecord,
)

logger = structlog.get_logger()


@dataclass
class NewFile:
    """A file row to insert."""

    path: str
    name: str
    extension: str
    language: str | None
    size_bytes: int
    content: str | None
    line_count: int | None = None
    content_hash: str | None = None


@dataclass
class NewDependency:
    """A dependency edge to insert for one source file."""

    import_specifier: str
    dependency_type: str = "import"
    target_external: str | None = None
    target_file_id: int | None = None


class Store:
    """Storage primitive consumed by the analysis pipeline and the CLI."""

    def __init__(self, db: Database) -> None:
        self.db = db
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    def create_repository(
        self,
        name: str,
        source_type: str,
        source_url: str | None = None,
        branch: str | None = None,
        repository_id: str | None = None,
    ) -> RepositoryRecord:
        now = time.time()
        record = RepositoryRecord(
            id=repository_id or uuid4().hex,
            name=name,
            source_type=source_type,
            source_url=source_url,
            branch=branch,
            status=RepositoryStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        with self._write_lock, self.db.session() as session:
            session.add(record)
        logger.info("repository_created", repository_id=record.id, source_type=source_type)
        return record

    def get_repository(self, repository_id: str) -> RepositoryRecord | None:
        with self.db.session() as session:
            return session.get(RepositoryRecord, repository_id)

    def list_repositories(self) -> list[RepositoryRecord]:
        with self.db.session() as session:
            stmt = select(RepositoryRecord).order_by(col(RepositoryRecord.created_at).desc())
            return list(session.exec(stmt).all())

    def update_repository(self, repository_id: str, **fields: Any) -> RepositoryRecord | None:
        """Set fields on a repository. Returns None if it does not exist."""
        if "languages" in fields and isinstance(fields["languages"], dict):
            fields["languages"] = json.dumps(fields["languages"], sort_keys=True)
        if isinstance(fields.get("status"), RepositoryStatus):
            fields["status"] = fields["status"].value
        with self._write_lock, self.db.session() as session:
            record = session.get(RepositoryRecord, repository_id)
            if record is None:
                return None
            for key, value in fields.items():
                setattr(record, key, value)
            record.updated_at = time.time()
            session.add(record)
        return record

    def delete_repository(self, repository_id: str) -> bool:
        """Delete a repository; files, facts and edges cascade."""
        with self._write_lock, self.db.session() as session:
            record = session.get(RepositoryRecord, repository_id)
            if record is None:
                return False
            session.delete(record)
        logger.info("repository_deleted", repository_id=repository_id)
        return True

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def clear_files(self, repository_id: str) -> int:
        """Remove a repository's files (and, by cascade, their facts and edges)."""
        with self._write_lock, self.db.bulk_writer() as writer:
            return writer.delete_by(FileRecord, "repository_id", repository_id)

    def insert_files(self, repository_id: str, files: Sequence[NewFile]) -> list[FileRecord]:
        """Insert one batch of files in a single transaction. Returns records with ids."""
        if not files:
            return []
        records = [FileRecord(repository_id=repository_id, **asdict(f)) for f in files]
        with self._write_lock, self.db.session() as session:
            session.add_all(records)
            session.flush()
        return records

    def list_files(self, repository_id: str) -> list[FileRecord]:
        with self.db.session() as session:
            stmt = (
                select(FileRecord)
                .where(FileRecord.repository_id == repository_id)
                .order_by(col(FileRecord.path))
            )
            return list(session.exec(stmt).all())

    # ------------------------------------------------------------------
    # Facts and dependency edges
    # ------------------------------------------------------------------

    def replace_facts(
        self,
        repository_id: str,
        file_id: int,
        facts: Sequence[StructuralFact],
        dependencies: Sequence[NewDependency] = (),
    ) -> int:
        """Replace all facts and outgoing edges of one file. Returns fact count."""
        fact_rows = [
            {
                "file_id": file_id,
                "repository_id": repository_id,
                "name": f.name,
                "kind": f.kind,
                "signature": f.signature,
                "doc_comment": f.doc_comment,
                "start_line": f.start_line,
                "end_line": f.end_line,
                "parameters": (
                    json.dumps([asdict(p) for p in f.parameters])
                    if f.parameters is not None
                    else None
                ),
                "return_type": f.return_type,
                "is_exported": f.is_exported,
                "is_async": f.is_async,
                "accessibility": f.accessibility,
            }
            for f in facts
        ]
        edge_rows = [
            {
                "repository_id": repository_id,
                "source_file_id": file_id,
                "target_file_id": d.target_file_id,
                "target_external": d.target_external,
                "dependency_type": d.dependency_type,
                "import_specifier": d.import_specifier,
            }
            for d in dependencies
        ]
        with self._write_lock, self.db.bulk_writer() as writer:
            writer.delete_by(StructuralFactRecord, "file_id", file_id)
            writer.delete_by(DependencyEdgeRecord, "source_file_id", file_id)
            writer.insert_many(StructuralFactRecord, fact_rows)
            writer.insert_many(DependencyEdgeRecord, edge_rows)
        return len(fact_rows)

    def list_facts(
        self,
        repository_id: str,
        file_id: int | None = None,
    ) -> list[StructuralFactRecord]:
        with self.db.session() as session:
            stmt = select(StructuralFactRecord).where(
                StructuralFactRecord.repository_id == repository_id
            )
            if file_id is not None:
                stmt = stmt.where(StructuralFactRecord.file_id == file_id)
            stmt = stmt.order_by(
                col(StructuralFactRecord.file_id), col(StructuralFactRecord.start_line)
            )
            return list(session.exec(stmt).all())

    def list_dependencies(self, repository_id: str) -> list[DependencyEdgeRecord]:
        with self.db.session() as session:
            stmt = (
                select(DependencyEdgeRecord)
                .where(DependencyEdgeRecord.repository_id == repository_id)
                .order_by(col(DependencyEdgeRecord.id))
            )
            return list(session.exec(stmt).all())
