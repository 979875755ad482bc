"""Analysis pipeline: the job handler that turns a repository into records."""

from repolens.pipeline.analyze import (
    ANALYZE_JOB_TYPE,
    AnalysisPipeline,
    dependencies_for,
    external_label,
)

__all__ = [
    "ANALYZE_JOB_TYPE",
    "AnalysisPipeline",
    "dependencies_for",
    "external_label",
]
