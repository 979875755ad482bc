"""Storage test fixtures."""

from collections.abc import Generator
from pathlib import Path

import pytest

from repolens.storage import Database, Store


@pytest.fixture
def store(tmp_path: Path) -> Generator[Store, None, None]:
    db = Database(tmp_path / "repolens.db")
    db.create_all()
    yield Store(db)
    db.dispose()
