"""In-process job orchestration."""

from repolens.jobs.models import Job, JobSnapshot, JobStatus, OrchestratorStats
from repolens.jobs.orchestrator import JobContext, JobHandler, JobOrchestrator

__all__ = [
    "Job",
    "JobContext",
    "JobHandler",
    "JobOrchestrator",
    "JobSnapshot",
    "JobStatus",
    "OrchestratorStats",
]
