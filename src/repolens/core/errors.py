"""RepoLens error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Acquisition (clone / archive)
- 4xxx: Discovery and file reads
- 5xxx: Jobs
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Acquisition (3xxx)
    ACQUIRE_INVALID_URL = 3001
    ACQUIRE_CLONE_FAILED = 3002
    ACQUIRE_UNSAFE_ARCHIVE = 3003
    ACQUIRE_ARCHIVE_TOO_LARGE = 3004
    ACQUIRE_ARCHIVE_UNREADABLE = 3005
    ACQUIRE_UNKNOWN_SOURCE = 3006
    ACQUIRE_PATH_NOT_FOUND = 3007

    # Discovery (4xxx)
    DISCOVERY_ROOT_UNREADABLE = 4001
    FILE_READ_FAILED = 4002

    # Jobs (5xxx)
    JOB_NO_HANDLER = 5001
    JOB_NOT_FOUND = 5002
    JOB_CANCELLED = 5003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class RepoLensError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return self.message


class ConfigError(RepoLensError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class AcquisitionError(RepoLensError):
    """Failure to materialize a repository on disk. Always job-fatal."""

    @classmethod
    def invalid_url(cls, url: str) -> "AcquisitionError":
        return cls(
            code=ErrorCode.ACQUIRE_INVALID_URL,
            message=f"Invalid repository URL: {url}",
            details={"url": url},
        )

    @classmethod
    def clone_failed(cls, url: str, reason: str) -> "AcquisitionError":
        return cls(
            code=ErrorCode.ACQUIRE_CLONE_FAILED,
            message=f"Failed to clone repository: {reason}",
            retryable=True,
            details={"url": url, "reason": reason},
        )

    @classmethod
    def unsafe_archive(cls, entry: str) -> "AcquisitionError":
        return cls(
            code=ErrorCode.ACQUIRE_UNSAFE_ARCHIVE,
            message="Invalid archive: contains unsafe file paths",
            details={"entry": entry},
        )

    @classmethod
    def archive_too_large(cls, size: int, limit: int) -> "AcquisitionError":
        return cls(
            code=ErrorCode.ACQUIRE_ARCHIVE_TOO_LARGE,
            message=f"Archive size exceeds maximum allowed size of {limit // (1024 * 1024)}MB",
            details={"size": size, "limit": limit},
        )

    @classmethod
    def archive_unreadable(cls, path: str, reason: str) -> "AcquisitionError":
        return cls(
            code=ErrorCode.ACQUIRE_ARCHIVE_UNREADABLE,
            message=f"Failed to extract archive: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def unknown_source(cls, source_type: Any) -> "AcquisitionError":
        return cls(
            code=ErrorCode.ACQUIRE_UNKNOWN_SOURCE,
            message=f"Unknown repository source type: {source_type}",
            details={"source_type": str(source_type)},
        )

    @classmethod
    def path_not_found(cls, path: str) -> "AcquisitionError":
        return cls(
            code=ErrorCode.ACQUIRE_PATH_NOT_FOUND,
            message=f"Source path is not a directory: {path}",
            details={"path": path},
        )


class DiscoveryError(RepoLensError):
    """The discovery root itself could not be enumerated."""

    @classmethod
    def root_unreadable(cls, root: str, reason: str) -> "DiscoveryError":
        return cls(
            code=ErrorCode.DISCOVERY_ROOT_UNREADABLE,
            message=f"Failed to discover files: {reason}",
            details={"root": root, "reason": reason},
        )


class ReadError(RepoLensError):
    """A single file could not be read as text. Per-file, never job-fatal."""

    @classmethod
    def undecodable(cls, path: str, reason: str) -> "ReadError":
        return cls(
            code=ErrorCode.FILE_READ_FAILED,
            message=f"Failed to read file content: {path}",
            details={"path": path, "reason": reason},
        )


class JobError(RepoLensError):
    """Orchestrator-level job failures."""

    @classmethod
    def no_handler(cls, job_type: str) -> "JobError":
        return cls(
            code=ErrorCode.JOB_NO_HANDLER,
            message=f"No handler registered for job type: {job_type}",
            details={"job_type": job_type},
        )

    @classmethod
    def not_found(cls, job_id: str) -> "JobError":
        return cls(
            code=ErrorCode.JOB_NOT_FOUND,
            message=f"Job not found: {job_id}",
            details={"job_id": job_id},
        )

    @classmethod
    def cancelled(cls, job_id: str) -> "JobError":
        return cls(
            code=ErrorCode.JOB_CANCELLED,
            message="Cancelled by user",
            details={"job_id": job_id},
        )


class InternalError(RepoLensError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
