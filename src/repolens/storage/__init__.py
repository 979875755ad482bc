"""SQLite persistence for analysis results."""

from repolens.storage.database import BulkWriter, Database
from repolens.storage.models import (
    DependencyEdgeRecord,
    FileRecord,
    RepositoryRecord,
    RepositoryStatus,
    SourceType,
    StructuralFactRecord,
)
from repolens.storage.store import NewDependency, NewFile, Store

__all__ = [
    "BulkWriter",
    "Database",
    "DependencyEdgeRecord",
    "FileRecord",
    "NewDependency",
    "NewFile",
    "RepositoryRecord",
    "RepositoryStatus",
    "SourceType",
    "Store",
    "StructuralFactRecord",
]
