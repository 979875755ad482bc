"""Bounded-concurrency job orchestrator.

Design:
- Job table is the single source of truth, guarded by a threading.Lock
- A drain task wakes on an asyncio.Event set by enqueue() and by job
  completion; no polling
- At most max_concurrent jobs are processing at once; dispatch is FIFO by
  enqueue order, skipping repositories that already have a processing job
- Handler exceptions become failed jobs; they never escape the drain task
- A sweep task evicts terminal jobs older than the retention window
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import math
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

from repolens.core.errors import JobError
from repolens.core.logging import set_correlation_id
from repolens.jobs.models import Job, JobSnapshot, JobStatus, OrchestratorStats

if TYPE_CHECKING:
    from repolens.config.models import JobsConfig

logger = structlog.get_logger()


@dataclass(frozen=True)
class JobContext:
    """What a handler gets: its job as dispatched, plus a progress reporter."""

    job: JobSnapshot
    orchestrator: JobOrchestrator

    def report_progress(self, value: float, data: dict[str, Any] | None = None) -> None:
        self.orchestrator.update_progress(self.job.id, value, data)


JobHandler = Callable[[JobContext], Awaitable[None]]


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class JobOrchestrator:
    """
    In-process job runner.

    Usage::

        orchestrator = JobOrchestrator(max_concurrent=2)
        orchestrator.register_handler("analyze_repository", handler)
        orchestrator.start()
        job_id = orchestrator.enqueue("analyze_repository", repo_id, {"url": ...})
        snapshot = await orchestrator.wait(job_id)
        await orchestrator.stop()

    enqueue/update_progress/cancel must be called from the event loop thread;
    status reads are safe from any thread.
    """

    max_concurrent: int = 2
    retention_sec: float = 24 * 60 * 60
    sweep_interval_sec: float = 60 * 60

    _jobs: dict[str, Job] = field(default_factory=dict, init=False)
    _handlers: dict[str, JobHandler] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _seq: itertools.count[int] = field(default_factory=itertools.count, init=False)
    _active: int = field(default=0, init=False)
    _done: dict[str, asyncio.Event] = field(default_factory=dict, init=False)
    _wake: asyncio.Event | None = field(default=None, init=False)
    _drain_task: asyncio.Task[None] | None = field(default=None, init=False)
    _sweep_task: asyncio.Task[None] | None = field(default=None, init=False)
    _running: set[asyncio.Task[None]] = field(default_factory=set, init=False)

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")

    @classmethod
    def from_config(cls, config: JobsConfig) -> JobOrchestrator:
        return cls(
            max_concurrent=config.max_concurrent,
            retention_sec=config.retention_sec,
            sweep_interval_sec=config.sweep_interval_sec,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    def start(self) -> None:
        """Start the drain and sweep tasks. Must be called inside a running loop."""
        if self.is_running:
            return
        self._wake = asyncio.Event()
        self._drain_task = asyncio.create_task(self._drain_loop())
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        self._wake.set()
        logger.info("orchestrator_started", max_concurrent=self.max_concurrent)

    async def stop(self) -> None:
        """Stop draining and cancel in-flight handlers."""
        tasks = [t for t in (self._drain_task, self._sweep_task) if t is not None]
        tasks.extend(self._running)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._drain_task = None
        self._sweep_task = None
        logger.info("orchestrator_stopped")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def register_handler(self, job_type: str, handler: JobHandler) -> None:
        """Register the handler for a job type, replacing any previous one."""
        self._handlers[job_type] = handler
        logger.debug("handler_registered", job_type=job_type)

    def enqueue(
        self,
        job_type: str,
        repository_id: str,
        data: dict[str, Any] | None = None,
    ) -> str:
        job_id = f"job_{uuid4().hex[:12]}"
        job = Job(
            id=job_id,
            type=job_type,
            repository_id=repository_id,
            data=dict(data or {}),
            created_at=_now(),
            seq=next(self._seq),
        )
        with self._lock:
            self._jobs[job_id] = job
        self._done[job_id] = asyncio.Event()
        logger.info("job_enqueued", job_id=job_id, job_type=job_type, repository_id=repository_id)
        self._signal()
        return job_id

    def update_progress(
        self,
        job_id: str,
        value: float,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Clamp progress into [0, 100] and merge data. Ignored unless processing.

        Non-finite values leave progress unchanged.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status is not JobStatus.PROCESSING:
                return
            if math.isfinite(value):
                clamped = int(min(max(value, 0), 100))
                job.progress = max(job.progress, clamped)
            if data:
                job.data.update(data)

    def get_job(self, job_id: str) -> JobSnapshot | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.snapshot() if job is not None else None

    def jobs_for_repository(self, repository_id: str) -> list[JobSnapshot]:
        with self._lock:
            jobs = sorted(
                (j for j in self._jobs.values() if j.repository_id == repository_id),
                key=lambda j: j.seq,
            )
            return [j.snapshot() for j in jobs]

    def cancel(self, job_id: str) -> bool:
        """Cancel a pending job. Returns False if unknown or already started."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status is not JobStatus.PENDING:
                return False
            self._terminate_locked(job, JobError.cancelled(job_id).message)
        self._mark_done(job_id)
        logger.info("job_cancelled", job_id=job_id)
        return True

    def stats(self) -> OrchestratorStats:
        with self._lock:
            counts = {status: 0 for status in JobStatus}
            for job in self._jobs.values():
                counts[job.status] += 1
            active = self._active
        return OrchestratorStats(
            pending=counts[JobStatus.PENDING],
            processing=counts[JobStatus.PROCESSING],
            completed=counts[JobStatus.COMPLETED],
            failed=counts[JobStatus.FAILED],
            active=active,
            max_concurrent=self.max_concurrent,
        )

    async def wait(self, job_id: str, timeout: float | None = None) -> JobSnapshot:
        """Wait for a job to reach a terminal state.

        Raises:
            JobError: If the job is unknown (or already swept).
            TimeoutError: If timeout elapses first.
        """
        event = self._done.get(job_id)
        if event is not None:
            await asyncio.wait_for(event.wait(), timeout)
        snapshot = self.get_job(job_id)
        if snapshot is None:
            raise JobError.not_found(job_id)
        return snapshot

    async def join(self) -> None:
        """Wait until no job is pending or processing."""
        while True:
            with self._lock:
                open_ids = [j.id for j in self._jobs.values() if not j.status.is_terminal]
            events = [self._done[i] for i in open_ids if i in self._done]
            if not events:
                return
            await asyncio.gather(*(e.wait() for e in events))

    def sweep(self, now: datetime | None = None) -> int:
        """Evict terminal jobs older than the retention window. Returns count."""
        cutoff = (now or _now()) - timedelta(seconds=self.retention_sec)
        with self._lock:
            snapshot = [(j.id, j.status, j.completed_at) for j in self._jobs.values()]

        expired = [
            job_id
            for job_id, status, completed_at in snapshot
            if status.is_terminal and completed_at is not None and completed_at < cutoff
        ]
        if not expired:
            return 0

        evicted = 0
        with self._lock:
            for job_id in expired:
                job = self._jobs.get(job_id)
                if job is not None and job.status.is_terminal:
                    del self._jobs[job_id]
                    self._done.pop(job_id, None)
                    evicted += 1
        logger.info("jobs_swept", evicted=evicted)
        return evicted

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _signal(self) -> None:
        if self._wake is not None:
            self._wake.set()

    def _mark_done(self, job_id: str) -> None:
        event = self._done.get(job_id)
        if event is not None:
            event.set()

    @staticmethod
    def _terminate_locked(job: Job, error: str | None) -> None:
        job.status = JobStatus.FAILED if error is not None else JobStatus.COMPLETED
        job.error = error
        job.completed_at = _now()
        if error is None:
            job.progress = 100

    def _next_pending_locked(self) -> Job | None:
        busy = {j.repository_id for j in self._jobs.values() if j.status is JobStatus.PROCESSING}
        pending = sorted(
            (j for j in self._jobs.values() if j.status is JobStatus.PENDING),
            key=lambda j: j.seq,
        )
        for job in pending:
            if job.repository_id not in busy:
                return job
        return None

    async def _drain_loop(self) -> None:
        assert self._wake is not None
        while True:
            await self._wake.wait()
            self._wake.clear()
            self._dispatch_ready()

    def _dispatch_ready(self) -> None:
        while True:
            failed_id: str | None = None
            with self._lock:
                if self._active >= self.max_concurrent:
                    return
                job = self._next_pending_locked()
                if job is None:
                    return
                handler = self._handlers.get(job.type)
                if handler is None:
                    self._terminate_locked(job, JobError.no_handler(job.type).message)
                    failed_id = job.id
                else:
                    job.status = JobStatus.PROCESSING
                    job.started_at = _now()
                    self._active += 1
                    snapshot = job.snapshot()

            if failed_id is not None:
                self._mark_done(failed_id)
                logger.warning("job_failed", job_id=failed_id, error="no handler")
                continue

            task = asyncio.create_task(self._run(handler, snapshot))
            self._running.add(task)
            task.add_done_callback(self._running.discard)

    async def _run(self, handler: JobHandler, snapshot: JobSnapshot) -> None:
        set_correlation_id(snapshot.id)
        log = logger.bind(
            job_id=snapshot.id,
            job_type=snapshot.type,
            repository_id=snapshot.repository_id,
        )
        log.info("job_started")
        error: str | None = None
        try:
            await handler(JobContext(snapshot, self))
        except asyncio.CancelledError:
            error = "Orchestrator stopped"
            raise
        except Exception as e:  # noqa: BLE001
            error = str(e) or type(e).__name__
            log.warning("job_failed", error=error)
        else:
            log.info("job_completed")
        finally:
            with self._lock:
                job = self._jobs.get(snapshot.id)
                if job is not None:
                    self._terminate_locked(job, error)
                self._active -= 1
            self._mark_done(snapshot.id)
            self._signal()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_sec)
            self.sweep()
