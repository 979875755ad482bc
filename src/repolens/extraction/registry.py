"""Extractor registry: extension -> Extractor lookup.

Selection is first-match over an ordered list. Unsupported extensions and
extractor failures both yield None so one bad file never aborts a batch.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from repolens.extraction import Extractor
from repolens.extraction.models import ExtractionResult
from repolens.extraction.python import PythonExtractor
from repolens.extraction.typescript import TypeScriptExtractor

logger = structlog.get_logger()


def default_extractors() -> list[Extractor]:
    return [
        TypeScriptExtractor("typescript"),
        TypeScriptExtractor("tsx"),
        TypeScriptExtractor("javascript"),
        PythonExtractor(),
    ]


class ExtractorRegistry:
    """Ordered collection of extractors keyed by declared extensions."""

    def __init__(self, extractors: Sequence[Extractor] | None = None) -> None:
        self._extractors: list[Extractor] = (
            list(extractors) if extractors is not None else default_extractors()
        )

    def extractor_for(self, extension: str) -> Extractor | None:
        ext = extension.lower()
        for extractor in self._extractors:
            if ext in extractor.extensions:
                return extractor
        return None

    def supports(self, extension: str) -> bool:
        return self.extractor_for(extension) is not None

    def supported_extensions(self) -> frozenset[str]:
        return frozenset(ext for e in self._extractors for ext in e.extensions)

    def extract_for(self, extension: str, source: str) -> ExtractionResult | None:
        """Run the matching extractor.

        Returns None when the extension is unsupported or the extractor
        raised despite its contract.
        """
        extractor = self.extractor_for(extension)
        if extractor is None:
            return None
        try:
            return extractor.extract(source)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "extraction_failed",
                extension=extension,
                language=extractor.language,
                error=str(e),
            )
            return None
