"""Structural fact extraction protocol and exports.

An Extractor is a capability, not a base class: anything exposing a
`language`, a set of `extensions` and a total `extract()` satisfies it.
The registry selects one by file extension.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from repolens.extraction.models import (
    ExportInfo,
    ExtractionResult,
    ImportInfo,
    LanguageFeatures,
    ParameterInfo,
    StructuralFact,
    normalize_signature,
    split_lines,
)


@runtime_checkable
class Extractor(Protocol):
    """Protocol for language-specific structural extraction.

    `extract` must be pure and total: on malformed input it returns an
    empty-but-valid ExtractionResult instead of raising.
    """

    @property
    def language(self) -> str:
        """Canonical language name this extractor handles."""
        ...

    @property
    def extensions(self) -> frozenset[str]:
        """Lowercase extensions with leading dot."""
        ...

    def supports(self, extension: str) -> bool: ...

    def extract(self, source: str) -> ExtractionResult: ...


__all__ = [
    "ExportInfo",
    "ExtractionResult",
    "Extractor",
    "ImportInfo",
    "LanguageFeatures",
    "ParameterInfo",
    "StructuralFact",
    "normalize_signature",
    "split_lines",
]
