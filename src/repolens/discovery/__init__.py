"""File discovery: walk, filter and classify a repository tree."""

from repolens.discovery.scanner import (
    DEFAULT_MAX_FILE_SIZE,
    DiscoveryResult,
    DiscoveryStats,
    FileDiscovery,
    FileInfo,
    primary_language,
    read_content,
)

__all__ = [
    "DEFAULT_MAX_FILE_SIZE",
    "DiscoveryResult",
    "DiscoveryStats",
    "FileDiscovery",
    "FileInfo",
    "primary_language",
    "read_content",
]
