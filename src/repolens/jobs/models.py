"""Job state and snapshots."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class JobStatus(Enum):
    """Job lifecycle state.

    pending -> processing -> completed | failed
    pending -> failed (cancellation only)
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass
class Job:
    """Mutable job record. Owned by the orchestrator; never handed out."""

    id: str
    type: str
    repository_id: str
    data: dict[str, Any]
    created_at: datetime
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    seq: int = 0  # FIFO order

    def snapshot(self) -> JobSnapshot:
        return JobSnapshot(
            id=self.id,
            type=self.type,
            repository_id=self.repository_id,
            status=self.status,
            progress=self.progress,
            data=copy.deepcopy(self.data),
            error=self.error,
            created_at=self.created_at,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )


@dataclass(frozen=True)
class JobSnapshot:
    """Point-in-time view of a job for status polling."""

    id: str
    type: str
    repository_id: str
    status: JobStatus
    progress: int
    created_at: datetime
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "repository_id": self.repository_id,
            "status": self.status.value,
            "progress": self.progress,
            "data": self.data,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass(frozen=True)
class OrchestratorStats:
    pending: int
    processing: int
    completed: int
    failed: int
    active: int
    max_concurrent: int
