"""SQLite engine, sessions and bulk writes.

- Database: connection manager with WAL mode and foreign keys enabled
- BulkWriter: Core-SQL inserts/deletes for high-volume rows (facts, edges)
- ORM sessions for low-volume rows (repositories, file batches needing ids)
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import event
from sqlmodel import Session, SQLModel, create_engine

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()

DEFAULT_BUSY_TIMEOUT_MS = 30000


class Database:
    """SQLite connection manager with WAL mode for concurrent access."""

    def __init__(self, db_path: Path, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS) -> None:
        self.db_path = Path(db_path)
        self.busy_timeout_ms = busy_timeout_ms
        self.engine = self._create_engine()

    def _create_engine(self) -> Engine:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{self.db_path}",
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
        )
        event.listen(
            engine,
            "connect",
            partial(_configure_pragmas, busy_timeout_ms=self.busy_timeout_ms),
        )
        return engine

    def create_all(self) -> None:
        """Create all tables from SQLModel metadata."""
        # Registers the table classes on SQLModel.metadata
        from repolens.storage import models  # noqa: F401

        SQLModel.metadata.create_all(self.engine)
        logger.debug("database_ready", path=str(self.db_path))

    def drop_all(self) -> None:
        """Drop all tables. Use with caution."""
        SQLModel.metadata.drop_all(self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """ORM session. Commits on clean exit, rolls back on exception."""
        with Session(self.engine, expire_on_commit=False) as session:
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    @contextmanager
    def bulk_writer(self) -> Generator[BulkWriter, None, None]:
        """
        Bulk writer for high-volume inserts.

        Auto-commits on successful exit, rolls back on exception.
        """
        writer = BulkWriter(self.engine)
        try:
            yield writer
            writer.commit()
        except Exception:
            writer.rollback()
            raise
        finally:
            writer.close()

    def dispose(self) -> None:
        self.engine.dispose()


def _configure_pragmas(
    dbapi_conn: Any,
    _connection_record: Any,
    *,
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
) -> None:
    """Configure SQLite for concurrent access and cascading deletes."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
    cursor.execute("PRAGMA synchronous=NORMAL")  # Safe with WAL
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class BulkWriter:
    """Bulk insert/delete using Core SQL, bypassing ORM overhead."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.conn = engine.connect()
        self.transaction = self.conn.begin()

    def insert_many(self, model_class: type[SQLModel], records: list[dict[str, Any]]) -> int:
        """Bulk insert records into table, returning count inserted."""
        if not records:
            return 0

        table = model_class.__table__  # type: ignore[attr-defined]
        self.conn.execute(table.insert(), records)
        return len(records)

    def delete_by(self, model_class: type[SQLModel], column: str, value: Any) -> int:
        """Delete rows where column == value, returning count affected."""
        table = model_class.__table__  # type: ignore[attr-defined]
        result = self.conn.execute(table.delete().where(table.c[column] == value))
        return int(result.rowcount)

    def commit(self) -> None:
        self.transaction.commit()

    def rollback(self) -> None:
        self.transaction.rollback()

    def close(self) -> None:
        self.conn.close()
