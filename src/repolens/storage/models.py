"""SQLModel table definitions.

Child tables reference their repository (and file) with ON DELETE CASCADE;
Database enables foreign_keys so deleting a repository removes everything
beneath it.
"""

import json
from enum import Enum
from typing import Any

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlmodel import Field, SQLModel


class RepositoryStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SourceType(str, Enum):
    GIT = "git"
    ARCHIVE = "archive"
    LOCAL = "local"


class RepositoryRecord(SQLModel, table=True):
    """A submitted repository and its aggregate analysis results."""

    __tablename__ = "repositories"

    id: str = Field(primary_key=True)
    name: str
    source_type: str
    source_url: str | None = None
    branch: str | None = None
    status: str = Field(default=RepositoryStatus.PENDING.value, index=True)
    storage_path: str | None = None
    primary_language: str | None = None
    total_files: int = 0
    total_size: int = 0
    languages: str | None = None  # JSON object language -> file count
    error_message: str | None = None
    created_at: float
    updated_at: float
    last_analyzed_at: float | None = None

    def get_languages(self) -> dict[str, int]:
        if self.languages is None:
            return {}
        result: dict[str, int] = json.loads(self.languages)
        return result


class FileRecord(SQLModel, table=True):
    """A discovered file with its text content."""

    __tablename__ = "files"

    id: int | None = Field(default=None, primary_key=True)
    repository_id: str = Field(
        sa_column=Column(String, ForeignKey("repositories.id", ondelete="CASCADE"), index=True)
    )
    path: str = Field(index=True)  # relative, posix
    name: str
    extension: str
    language: str | None = None
    size_bytes: int
    line_count: int | None = None
    content: str | None = None
    content_hash: str | None = None


class StructuralFactRecord(SQLModel, table=True):
    """A function, method, class, interface or type alias in one file."""

    __tablename__ = "functions"

    id: int | None = Field(default=None, primary_key=True)
    file_id: int = Field(
        sa_column=Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), index=True)
    )
    repository_id: str = Field(
        sa_column=Column(String, ForeignKey("repositories.id", ondelete="CASCADE"), index=True)
    )
    name: str = Field(index=True)
    kind: str = Field(index=True)
    signature: str
    doc_comment: str | None = None
    start_line: int
    end_line: int
    parameters: str | None = None  # JSON array of parameter objects
    return_type: str | None = None
    is_exported: bool = False
    is_async: bool = False
    accessibility: str | None = None

    def get_parameters(self) -> list[dict[str, Any]]:
        if self.parameters is None:
            return []
        result: list[dict[str, Any]] = json.loads(self.parameters)
        return result


class DependencyEdgeRecord(SQLModel, table=True):
    """An import/require edge. target_file_id stays NULL until resolved."""

    __tablename__ = "dependencies"

    id: int | None = Field(default=None, primary_key=True)
    repository_id: str = Field(
        sa_column=Column(String, ForeignKey("repositories.id", ondelete="CASCADE"), index=True)
    )
    source_file_id: int = Field(
        sa_column=Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), index=True)
    )
    target_file_id: int | None = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("files.id", ondelete="SET NULL"), nullable=True),
    )
    target_external: str | None = None
    dependency_type: str = "import"
    import_specifier: str
