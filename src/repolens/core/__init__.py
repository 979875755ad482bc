"""Core module exports."""

from repolens.core.errors import (
    AcquisitionError,
    ConfigError,
    DiscoveryError,
    ErrorCode,
    InternalError,
    JobError,
    ReadError,
    RepoLensError,
)
from repolens.core.logging import (
    clear_correlation_id,
    configure_logging,
    get_correlation_id,
    get_logger,
    set_correlation_id,
)

__all__ = [
    # Errors
    "AcquisitionError",
    "ConfigError",
    "DiscoveryError",
    "ErrorCode",
    "InternalError",
    "JobError",
    "ReadError",
    "RepoLensError",
    # Logging
    "clear_correlation_id",
    "configure_logging",
    "get_correlation_id",
    "get_logger",
    "set_correlation_id",
]
