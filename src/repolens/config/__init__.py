"""Config module exports."""

from repolens.config.loader import load_config
from repolens.config.models import (
    DiscoveryConfig,
    JobsConfig,
    LoggingConfig,
    PipelineConfig,
    RepoLensConfig,
    StorageConfig,
)

__all__ = [
    "load_config",
    "DiscoveryConfig",
    "JobsConfig",
    "LoggingConfig",
    "PipelineConfig",
    "RepoLensConfig",
    "StorageConfig",
]
