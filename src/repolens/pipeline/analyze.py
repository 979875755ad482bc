"""Repository analysis job handler.

Stages and the progress each one ends at:

    materialize   10 -> 30
    discover      30 -> 50
    persist files 50 -> 75   (batched; unreadable files skipped)
    parse + facts 75 -> 95   (unsupported / failed extraction skipped)
    finalize      100        (aggregate write-back)

Blocking work runs in worker threads so the event loop keeps serving
status reads and other jobs. Any job-fatal error marks the repository
failed and is re-raised so the job fails with the same message.
"""

from __future__ import annotations

import asyncio
import hashlib
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog

from repolens.core.errors import ReadError
from repolens.discovery.scanner import FileDiscovery, FileInfo, primary_language, read_content
from repolens.extraction.models import ExtractionResult, ImportInfo, split_lines
from repolens.extraction.registry import ExtractorRegistry
from repolens.storage.models import FileRecord, RepositoryStatus
from repolens.storage.store import NewDependency, NewFile, Store

if TYPE_CHECKING:
    from repolens.acquire.materializer import Materializer
    from repolens.config.models import RepoLensConfig
    from repolens.jobs.orchestrator import JobContext, JobOrchestrator

logger = structlog.get_logger()

ANALYZE_JOB_TYPE = "analyze_repository"
DEFAULT_BATCH_SIZE = 100


def external_label(specifier: str, language: str | None) -> str:
    """Package-level label for an unresolved, non-relative import."""
    if language == "python":
        return specifier.split(".")[0]
    if specifier.startswith("@"):
        return "/".join(specifier.split("/")[:2])
    return specifier.split("/")[0]


def dependencies_for(imports: Sequence[ImportInfo], language: str | None) -> list[NewDependency]:
    """Edges for one file. Relative imports stay unresolved with no label."""
    return [
        NewDependency(
            import_specifier=imp.import_path,
            dependency_type=imp.kind,
            target_external=None if imp.is_relative else external_label(imp.import_path, language),
        )
        for imp in imports
    ]


def _new_file(info: FileInfo, content: str) -> NewFile:
    return NewFile(
        path=info.relative_path,
        name=info.name,
        extension=info.extension,
        language=info.language,
        size_bytes=info.size,
        content=content,
        line_count=len(split_lines(content)),
        content_hash=hashlib.sha256(content.encode("utf-8")).hexdigest(),
    )


class AnalysisPipeline:
    """Handler for ANALYZE_JOB_TYPE jobs."""

    def __init__(
        self,
        store: Store,
        materializer: Materializer,
        discovery: FileDiscovery | None = None,
        registry: ExtractorRegistry | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.store = store
        self.materializer = materializer
        self.discovery = discovery or FileDiscovery()
        self.registry = registry or ExtractorRegistry()
        self.batch_size = batch_size

    @classmethod
    def from_config(
        cls,
        config: RepoLensConfig,
        store: Store,
        materializer: Materializer,
    ) -> AnalysisPipeline:
        return cls(
            store,
            materializer,
            discovery=FileDiscovery.from_config(config.discovery),
            batch_size=config.pipeline.batch_size,
        )

    def register(self, orchestrator: JobOrchestrator) -> None:
        orchestrator.register_handler(ANALYZE_JOB_TYPE, self.handle)

    async def handle(self, ctx: JobContext) -> None:
        repository_id = ctx.job.repository_id
        log = logger.bind(job_id=ctx.job.id, repository_id=repository_id)

        await asyncio.to_thread(
            self.store.update_repository,
            repository_id,
            status=RepositoryStatus.PROCESSING,
            error_message=None,
        )
        try:
            ctx.report_progress(10, {"stage": "materialize"})
            root = await asyncio.to_thread(
                self.materializer.materialize, repository_id, ctx.job.data
            )

            ctx.report_progress(30, {"stage": "discover"})
            discovered = await asyncio.to_thread(self.discovery.discover, root)
            stats = discovered.stats

            ctx.report_progress(50, {"stage": "persist", "files_discovered": stats.total_files})
            stored = await self._persist_files(ctx, repository_id, discovered.files)

            ctx.report_progress(75, {"stage": "parse", "files_stored": len(stored)})
            fact_count = await self._extract_facts(ctx, repository_id, stored)

            language = primary_language(stats.language_breakdown)
            await asyncio.to_thread(
                self.store.update_repository,
                repository_id,
                status=RepositoryStatus.COMPLETED,
                storage_path=str(root),
                primary_language=language,
                total_files=stats.total_files,
                total_size=stats.total_size,
                languages=stats.language_breakdown,
                error_message=None,
                last_analyzed_at=time.time(),
            )
            ctx.report_progress(100, {"stage": "completed", "facts_extracted": fact_count})
            log.info(
                "analysis_completed",
                total_files=stats.total_files,
                facts=fact_count,
                primary_language=language,
            )
        except Exception as e:
            message = str(e) or type(e).__name__
            log.error("analysis_failed", error=message)
            await asyncio.to_thread(
                self.store.update_repository,
                repository_id,
                status=RepositoryStatus.FAILED,
                error_message=message,
            )
            raise

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _persist_files(
        self,
        ctx: JobContext,
        repository_id: str,
        files: list[FileInfo],
    ) -> list[FileRecord]:
        # Re-analysis replaces everything; facts and edges cascade
        await asyncio.to_thread(self.store.clear_files, repository_id)

        stored: list[FileRecord] = []
        total = max(len(files), 1)
        for start in range(0, len(files), self.batch_size):
            batch = files[start : start + self.batch_size]
            rows = await asyncio.to_thread(self._read_batch, batch)
            stored.extend(await asyncio.to_thread(self.store.insert_files, repository_id, rows))
            done = min(start + len(batch), len(files))
            ctx.report_progress(50 + 25 * done / total, {"files_stored": len(stored)})
        return stored

    @staticmethod
    def _read_batch(batch: Sequence[FileInfo]) -> list[NewFile]:
        rows: list[NewFile] = []
        for info in batch:
            try:
                content = read_content(info.path)
            except ReadError as e:
                logger.warning("file_skipped", path=info.relative_path, error=e.message)
                continue
            rows.append(_new_file(info, content))
        return rows

    def _extract_batch(
        self, batch: Sequence[FileRecord]
    ) -> list[tuple[FileRecord, ExtractionResult]]:
        results: list[tuple[FileRecord, ExtractionResult]] = []
        for record in batch:
            result = self.registry.extract_for(record.extension, record.content or "")
            if result is None:
                logger.warning("extraction_skipped", path=record.path)
                continue
            results.append((record, result))
        return results

    async def _extract_facts(
        self,
        ctx: JobContext,
        repository_id: str,
        stored: list[FileRecord],
    ) -> int:
        """Extract and persist facts per file.

        A file whose facts cannot be persisted does not stop the others;
        the first such error is raised once every file has been tried.
        """
        parseable = [
            r for r in stored if r.content is not None and self.registry.supports(r.extension)
        ]
        total = max(len(parseable), 1)
        fact_count = 0
        first_error: Exception | None = None

        for start in range(0, len(parseable), self.batch_size):
            batch = parseable[start : start + self.batch_size]
            extracted = await asyncio.to_thread(self._extract_batch, batch)
            for record, result in extracted:
                assert record.id is not None
                try:
                    fact_count += await asyncio.to_thread(
                        self.store.replace_facts,
                        repository_id,
                        record.id,
                        result.functions,
                        dependencies_for(result.imports, record.language),
                    )
                except Exception as e:  # noqa: BLE001
                    logger.warning("facts_persist_failed", path=record.path, error=str(e))
                    if first_error is None:
                        first_error = e
            done = min(start + len(batch), len(parseable))
            ctx.report_progress(75 + 20 * done / total, {"facts_extracted": fact_count})

        if first_error is not None:
            raise first_error
        return fact_count
