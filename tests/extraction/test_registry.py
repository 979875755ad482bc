"""Tests for extraction/registry.py."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from repolens.extraction import ExtractionResult, Extractor
from repolens.extraction.python import PythonExtractor
from repolens.extraction.registry import ExtractorRegistry, default_extractors
from repolens.extraction.typescript import TypeScriptExtractor


class TestDefaultRegistry:
    """Built-in extractor selection."""

    @pytest.mark.parametrize(
        ("extension", "language"),
        [(".ts", "typescript"), (".TSX", "typescript"), (".cjs", "javascript"), (".pyi", "python")],
    )
    def test_given_supported_extension_when_looked_up_then_matching_extractor(
        self, extension: str, language: str
    ) -> None:
        # Given
        registry = ExtractorRegistry()

        # When
        extractor = registry.extractor_for(extension)

        # Then
        assert extractor is not None
        assert extractor.language == language

    def test_given_defaults_when_listed_then_satisfy_protocol(self) -> None:
        for extractor in default_extractors():
            assert isinstance(extractor, Extractor)

    def test_given_unsupported_extension_when_extracting_then_none(self) -> None:
        # Given
        registry = ExtractorRegistry()

        # When
        result = registry.extract_for(".go", "package main")

        # Then
        assert result is None
        assert registry.supports(".go") is False

    def test_given_defaults_when_listed_then_extensions_cover_three_languages(self) -> None:
        extensions = ExtractorRegistry().supported_extensions()
        assert {".ts", ".tsx", ".js", ".jsx", ".py"} <= extensions


class TestFailureIsolation:
    """A broken extractor never propagates."""

    def test_given_raising_extractor_when_extracting_then_none(self) -> None:
        # Given
        broken = MagicMock()
        broken.language = "python"
        broken.extensions = frozenset({".py"})
        broken.extract.side_effect = RuntimeError("boom")
        registry = ExtractorRegistry([broken])

        # When
        result = registry.extract_for(".py", "def f(): pass")

        # Then
        assert result is None
        broken.extract.assert_called_once_with("def f(): pass")

    def test_given_first_match_order_when_overlapping_then_first_wins(self) -> None:
        # Given
        first = PythonExtractor()
        second = MagicMock(language="other", extensions=frozenset({".py"}))

        # When
        registry = ExtractorRegistry([first, second])

        # Then
        assert registry.extractor_for(".py") is first

    @pytest.mark.parametrize("extension", [".ts", ".js", ".py"])
    @pytest.mark.parametrize("source", ["\x00\x01\x02", "((((((((", "'''\n\"\"\"\n`"])
    def test_given_garbage_input_when_extracting_then_result_returned(
        self, extension: str, source: str
    ) -> None:
        result = ExtractorRegistry().extract_for(extension, source)
        assert isinstance(result, ExtractionResult)

    def test_given_custom_registry_when_grammar_listed_then_repr_names_it(self) -> None:
        assert "tsx" in repr(TypeScriptExtractor("tsx"))
