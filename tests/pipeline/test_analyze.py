"""Tests for pipeline/analyze.py."""

from __future__ import annotations

from collections.abc import Generator, Sequence
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from repolens.acquire import Materializer
from repolens.extraction import ImportInfo, StructuralFact
from repolens.jobs import JobOrchestrator, JobStatus
from repolens.pipeline import ANALYZE_JOB_TYPE, AnalysisPipeline, dependencies_for, external_label
from repolens.storage import Database, Store


@pytest.fixture
def store(tmp_path: Path) -> Generator[Store, None, None]:
    db = Database(tmp_path / "repolens.db")
    db.create_all()
    yield Store(db)
    db.dispose()


@pytest.fixture
def pipeline(store: Store, tmp_path: Path) -> AnalysisPipeline:
    return AnalysisPipeline(store, Materializer(tmp_path / "workspaces"), batch_size=2)


def _project(root: Path, files: dict[str, str | bytes]) -> Path:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
    return root


def _local(path: Path) -> dict[str, Any]:
    return {"source_type": "local", "path": str(path)}


class TestExternalLabel:
    """Package labels for unresolved imports."""

    @pytest.mark.parametrize(
        ("specifier", "language", "expected"),
        [
            ("react", "typescript", "react"),
            ("lodash/fp", "javascript", "lodash"),
            ("@scope/pkg/sub", "typescript", "@scope/pkg"),
            ("os.path", "python", "os"),
            ("node:fs", "javascript", "node:fs"),
        ],
    )
    def test_given_specifier_when_labelled_then_package_name(
        self, specifier: str, language: str, expected: str
    ) -> None:
        assert external_label(specifier, language) == expected

    def test_given_relative_import_when_edges_built_then_no_label(self) -> None:
        # Given
        imports = [
            ImportInfo("util", ["x"], False, "./util", 1),
            ImportInfo("fs", ["fs"], True, "fs", 2, kind="require"),
        ]

        # When
        edges = dependencies_for(imports, "javascript")

        # Then
        assert [(e.import_specifier, e.target_external, e.dependency_type) for e in edges] == [
            ("./util", None, "import"),
            ("fs", "fs", "require"),
        ]


class TestAnalysisPipeline:
    """End-to-end handler runs through the orchestrator."""

    @pytest.mark.asyncio
    async def test_given_local_project_when_analyzed_then_files_facts_and_aggregates(
        self, store: Store, pipeline: AnalysisPipeline, tmp_path: Path
    ) -> None:
        # Given
        project = _project(
            tmp_path / "project",
            {
                "src/a.ts": "import React from 'react';\nexport function a() {}\n",
                "src/b.ts": "export class B { run() {} }\n",
                "lib/c.py": "import os\n\ndef c():\n    pass\n",
                "README.md": "# demo\n",
                "node_modules/x/index.js": "module.exports = 1;\n",
                "bad.py": b"\xff\xfe not utf8",
            },
        )
        store.create_repository("demo", "local", repository_id="r1")
        orchestrator = JobOrchestrator(max_concurrent=2)
        pipeline.register(orchestrator)
        orchestrator.start()

        # When
        job_id = orchestrator.enqueue(ANALYZE_JOB_TYPE, "r1", _local(project))
        snapshot = await orchestrator.wait(job_id, timeout=10)

        # Then
        assert snapshot.status is JobStatus.COMPLETED, snapshot.error
        assert snapshot.progress == 100
        assert snapshot.data["stage"] == "completed"
        assert snapshot.data["facts_extracted"] == 4

        repo = store.get_repository("r1")
        assert repo is not None
        assert repo.status == "completed"
        assert repo.primary_language == "typescript"
        assert repo.total_files == 5
        assert repo.get_languages() == {"typescript": 2, "python": 2, "markdown": 1}
        assert repo.storage_path == str(project.resolve())
        assert repo.last_analyzed_at is not None

        paths = [f.path for f in store.list_files("r1")]
        assert paths == ["README.md", "lib/c.py", "src/a.ts", "src/b.ts"]
        names = sorted(f.name for f in store.list_facts("r1"))
        assert names == ["B", "B.run", "a", "c"]
        externals = sorted(e.target_external or "" for e in store.list_dependencies("r1"))
        assert externals == ["os", "react"]

        # Cleanup
        await orchestrator.stop()

    @pytest.mark.asyncio
    async def test_given_reanalysis_when_run_then_previous_rows_replaced(
        self, store: Store, pipeline: AnalysisPipeline, tmp_path: Path
    ) -> None:
        # Given
        project = _project(tmp_path / "project", {"a.py": "def a():\n    pass\n"})
        store.create_repository("demo", "local", repository_id="r1")
        orchestrator = JobOrchestrator()
        pipeline.register(orchestrator)
        orchestrator.start()
        await orchestrator.wait(orchestrator.enqueue(ANALYZE_JOB_TYPE, "r1", _local(project)), 10)

        # When
        (project / "a.py").write_text("def a2():\n    pass\n")
        await orchestrator.wait(orchestrator.enqueue(ANALYZE_JOB_TYPE, "r1", _local(project)), 10)

        # Then
        assert len(store.list_files("r1")) == 1
        assert [f.name for f in store.list_facts("r1")] == ["a2"]

        # Cleanup
        await orchestrator.stop()

    @pytest.mark.asyncio
    async def test_given_persist_error_for_one_file_when_analyzed_then_job_failed_others_kept(
        self, store: Store, pipeline: AnalysisPipeline, tmp_path: Path
    ) -> None:
        """One bad file fails the job but every other file's facts are stored."""
        # Given
        bad_project = _project(
            tmp_path / "bad",
            {
                "a.ts": "export function alpha() {}\n",
                "b.ts": "export function explode() {}\n",
                "c.ts": "export function gamma() {}\n",
            },
        )
        good_project = _project(tmp_path / "good", {"main.py": "def main():\n    pass\n"})
        store.create_repository("bad", "local", repository_id="bad")
        store.create_repository("good", "local", repository_id="good")
        original = store.replace_facts

        def flaky_replace(
            repository_id: str,
            file_id: int,
            facts: Sequence[StructuralFact],
            dependencies: Sequence[Any] = (),
        ) -> int:
            if any(f.name == "explode" for f in facts):
                raise RuntimeError("database is locked")
            return original(repository_id, file_id, facts, dependencies)

        orchestrator = JobOrchestrator(max_concurrent=1)
        pipeline.register(orchestrator)

        # When
        with patch.object(store, "replace_facts", side_effect=flaky_replace):
            orchestrator.start()
            bad_job = orchestrator.enqueue(ANALYZE_JOB_TYPE, "bad", _local(bad_project))
            good_job = orchestrator.enqueue(ANALYZE_JOB_TYPE, "good", _local(good_project))
            await orchestrator.join()

        # Then
        failed = orchestrator.get_job(bad_job)
        assert failed is not None
        assert failed.status is JobStatus.FAILED
        assert failed.error == "database is locked"
        assert failed.progress < 100
        assert sorted(f.name for f in store.list_facts("bad")) == ["alpha", "gamma"]
        bad_repo = store.get_repository("bad")
        assert bad_repo is not None
        assert bad_repo.status == "failed"
        assert bad_repo.error_message == "database is locked"

        completed = orchestrator.get_job(good_job)
        assert completed is not None
        assert completed.status is JobStatus.COMPLETED
        assert [f.name for f in store.list_facts("good")] == ["main"]

        # Cleanup
        await orchestrator.stop()

    @pytest.mark.asyncio
    async def test_given_missing_source_when_analyzed_then_repository_failed(
        self, store: Store, pipeline: AnalysisPipeline, tmp_path: Path
    ) -> None:
        # Given
        store.create_repository("gone", "local", repository_id="r1")
        orchestrator = JobOrchestrator()
        pipeline.register(orchestrator)
        orchestrator.start()

        # When
        job_id = orchestrator.enqueue(ANALYZE_JOB_TYPE, "r1", _local(tmp_path / "missing"))
        snapshot = await orchestrator.wait(job_id, timeout=10)

        # Then
        assert snapshot.status is JobStatus.FAILED
        assert snapshot.error is not None
        assert snapshot.error.startswith("Source path is not a directory")
        repo = store.get_repository("r1")
        assert repo is not None
        assert repo.status == "failed"
        assert repo.error_message == snapshot.error

        # Cleanup
        await orchestrator.stop()

    def test_given_zero_batch_size_when_constructed_then_value_error(
        self, store: Store, tmp_path: Path
    ) -> None:
        with pytest.raises(ValueError, match="batch_size"):
            AnalysisPipeline(store, Materializer(tmp_path), batch_size=0)
