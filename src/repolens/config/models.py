"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (REPOLENS__SECTION__KEY)
3. Working-directory YAML (.repolens/config.yaml)
4. Global YAML (~/.config/repolens/config.yaml)
5. Built-in defaults (this file)

Examples:
    REPOLENS__LOGGING__LEVEL=DEBUG
    REPOLENS__JOBS__MAX_CONCURRENT=4
    REPOLENS__DISCOVERY__MAX_FILE_SIZE_BYTES=2097152
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_DATA_DIR = Path("~/.local/share/repolens").expanduser()


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        REPOLENS__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every skipped file.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class DiscoveryConfig(BaseModel):
    """File discovery configuration.

    Env vars:
        REPOLENS__DISCOVERY__MAX_FILE_SIZE_BYTES: Skip files larger than this
    """

    max_file_size_bytes: int = Field(
        default=1024 * 1024,
        description="Files larger than this are treated as generated/binary and skipped.",
    )
    extra_ignored_dirs: list[str] = Field(
        default_factory=list,
        description="Directory names pruned in addition to the built-in list.",
    )
    extra_ignored_globs: list[str] = Field(
        default_factory=list,
        description="File-name globs skipped in addition to the built-in list.",
    )

    @field_validator("max_file_size_bytes")
    @classmethod
    def validate_max_file_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"max_file_size_bytes must be positive, got {v}")
        return v


class JobsConfig(BaseModel):
    """Job orchestrator configuration.

    Env vars:
        REPOLENS__JOBS__MAX_CONCURRENT: Simultaneously processing jobs
        REPOLENS__JOBS__RETENTION_SEC: Age after which terminal jobs are evicted
        REPOLENS__JOBS__SWEEP_INTERVAL_SEC: Period of the eviction sweep
    """

    max_concurrent: int = Field(default=2, description="Upper bound on processing jobs.")
    retention_sec: float = Field(
        default=24 * 60 * 60,
        description="Terminal jobs older than this are evicted from memory.",
    )
    sweep_interval_sec: float = Field(default=60 * 60, description="Eviction sweep period.")

    @field_validator("max_concurrent")
    @classmethod
    def validate_max_concurrent(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {v}")
        return v


class PipelineConfig(BaseModel):
    """Analysis pipeline configuration.

    Env vars:
        REPOLENS__PIPELINE__BATCH_SIZE: Files per storage insert
    """

    batch_size: int = Field(default=100, description="Files read and inserted per batch.")

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"batch_size must be >= 1, got {v}")
        return v


class StorageConfig(BaseModel):
    """Storage and workspace configuration.

    Env vars:
        REPOLENS__STORAGE__DATABASE_PATH: SQLite database file
        REPOLENS__STORAGE__WORKSPACE_DIR: Where repositories are materialized
        REPOLENS__STORAGE__MAX_ARCHIVE_BYTES: Largest accepted upload archive
    """

    database_path: str = Field(default=str(DEFAULT_DATA_DIR / "repolens.db"))
    workspace_dir: str = Field(default=str(DEFAULT_DATA_DIR / "workspaces"))
    max_archive_bytes: int = Field(
        default=100 * 1024 * 1024,
        description="Archives larger than this are rejected before extraction.",
    )
    busy_timeout_ms: int = Field(
        default=30000,
        description="SQLite busy timeout (ms). How long to wait for locks.",
    )


class RepoLensConfig(BaseModel):
    """Root configuration for RepoLens."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    jobs: JobsConfig = Field(default_factory=JobsConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
