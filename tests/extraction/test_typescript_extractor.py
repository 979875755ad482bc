"""Tests for the tree-sitter TypeScript/JavaScript extractor."""

from __future__ import annotations

import pytest

from repolens.extraction import ExtractionResult, StructuralFact
from repolens.extraction.typescript import TypeScriptExtractor


@pytest.fixture
def ts() -> TypeScriptExtractor:
    return TypeScriptExtractor("typescript")


@pytest.fixture
def js() -> TypeScriptExtractor:
    return TypeScriptExtractor("javascript")


def _by_name(result: ExtractionResult) -> dict[str, StructuralFact]:
    return {fact.name: fact for fact in result.functions}


class TestGrammarSelection:
    """Constructor and extension routing."""

    @pytest.mark.parametrize(
        ("grammar", "extension", "language"),
        [
            ("typescript", ".ts", "typescript"),
            ("tsx", ".tsx", "typescript"),
            ("javascript", ".jsx", "javascript"),
            ("javascript", ".mjs", "javascript"),
        ],
    )
    def test_given_grammar_when_constructed_then_language_and_extensions(
        self, grammar: str, extension: str, language: str
    ) -> None:
        # When
        extractor = TypeScriptExtractor(grammar)

        # Then
        assert extractor.language == language
        assert extractor.supports(extension)

    def test_given_unknown_grammar_when_constructed_then_value_error(self) -> None:
        with pytest.raises(ValueError, match="Unknown grammar"):
            TypeScriptExtractor("cobol")


class TestClassesAndMethods:
    """Class declarations and their members."""

    def test_given_exported_class_with_async_method_when_extracted_then_two_facts(
        self, ts: TypeScriptExtractor
    ) -> None:
        """Methods inherit exported status from the enclosing export."""
        # Given
        source = "export class Foo { async bar(x: number) {} }"

        # When
        result = ts.extract(source)

        # Then
        facts = _by_name(result)
        assert set(facts) == {"Foo", "Foo.bar"}
        assert facts["Foo"].kind == "class"
        assert facts["Foo"].is_exported is True
        assert facts["Foo.bar"].kind == "method"
        assert facts["Foo.bar"].is_async is True
        assert facts["Foo.bar"].is_exported is True
        assert facts["Foo.bar"].accessibility == "public"
        assert facts["Foo.bar"].parameters is not None
        assert facts["Foo.bar"].parameters[0].name == "x"
        assert facts["Foo.bar"].parameters[0].type == "number"
        assert result.language_features.has_classes is True

    def test_given_modifiers_when_extracted_then_accessibility_recorded(
        self, ts: TypeScriptExtractor
    ) -> None:
        # Given
        source = (
            "class Repo {\n"
            "  private load(): void {}\n"
            "  protected save() {}\n"
            "  #secret() {}\n"
            "  open() {}\n"
            "}\n"
        )

        # When
        facts = _by_name(ts.extract(source))

        # Then
        assert facts["Repo"].is_exported is False
        assert facts["Repo.load"].accessibility == "private"
        assert facts["Repo.load"].return_type == "void"
        assert facts["Repo.save"].accessibility == "protected"
        assert facts["Repo.#secret"].accessibility == "private"
        assert facts["Repo.open"].accessibility == "public"

    def test_given_object_literal_in_method_when_extracted_then_not_a_class_member(
        self, ts: TypeScriptExtractor
    ) -> None:
        # Given
        source = "class Foo {\n  bar() {\n    return { baz() {} };\n  }\n}\n"

        # When
        facts = _by_name(ts.extract(source))

        # Then
        assert set(facts) == {"Foo", "Foo.bar"}

    def test_given_decorated_class_when_extracted_then_decorator_feature(
        self, ts: TypeScriptExtractor
    ) -> None:
        result = ts.extract("@Component({})\nclass Widget {}\n")
        assert result.language_features.has_decorators is True


class TestFunctions:
    """Function declarations and function-valued variables."""

    def test_given_typed_function_when_extracted_then_parameters_and_return(
        self, ts: TypeScriptExtractor
    ) -> None:
        # Given
        source = (
            "function load(path: string, limit?: number, retries = 3): Promise<void> {\n"
            "  return Promise.resolve();\n"
            "}\n"
        )

        # When
        fact = ts.extract(source).functions[0]

        # Then
        assert fact.name == "load"
        assert fact.kind == "function"
        assert fact.is_exported is False
        assert fact.return_type == "Promise<void>"
        assert (fact.start_line, fact.end_line) == (1, 3)
        assert fact.parameters is not None
        params = [(p.name, p.type, p.optional, p.default_value) for p in fact.parameters]
        assert params == [
            ("path", "string", False, None),
            ("limit", "number", True, None),
            ("retries", None, True, "3"),
        ]
        assert fact.signature.startswith("function load(path: string")
        assert "{" not in fact.signature

    def test_given_exported_arrow_functions_when_extracted_then_named_by_binding(
        self, ts: TypeScriptExtractor
    ) -> None:
        # Given
        source = "export const inc = (n: number) => n + 1;\nconst dec = async n => n - 1;\n"

        # When
        facts = _by_name(ts.extract(source))

        # Then
        assert facts["inc"].kind == "function"
        assert facts["inc"].is_exported is True
        assert facts["dec"].is_exported is False
        assert facts["dec"].is_async is True
        assert facts["dec"].parameters is not None
        assert [p.name for p in facts["dec"].parameters] == ["n"]

    def test_given_jsdoc_when_extracted_then_doc_comment_cleaned(
        self, ts: TypeScriptExtractor
    ) -> None:
        # Given
        source = "/**\n * Adds two numbers.\n */\nexport function add(a: number, b: number) {}\n"

        # When
        fact = ts.extract(source).functions[0]

        # Then
        assert fact.doc_comment == "Adds two numbers."
        assert fact.start_line == 4

    def test_given_line_comment_when_extracted_then_no_doc(self, ts: TypeScriptExtractor) -> None:
        fact = ts.extract("// not a doc\nfunction f() {}\n").functions[0]
        assert fact.doc_comment is None


class TestTypes:
    """Interfaces and type aliases."""

    def test_given_interface_and_alias_when_extracted_then_facts_and_features(
        self, ts: TypeScriptExtractor
    ) -> None:
        # Given
        source = "export interface Props { id: string }\ntype Id = string;\n"

        # When
        result = ts.extract(source)

        # Then
        facts = _by_name(result)
        assert facts["Props"].kind == "interface"
        assert facts["Props"].is_exported is True
        assert facts["Id"].kind == "type"
        assert result.language_features.has_interfaces is True
        assert result.language_features.has_types is True


class TestImports:
    """ES imports and CommonJS require."""

    def test_given_default_and_named_import_when_extracted_then_names_listed(
        self, ts: TypeScriptExtractor
    ) -> None:
        # When
        imp = ts.extract("import React, { useState as us } from 'react';\n").imports[0]

        # Then
        assert imp.module_name == "react"
        assert imp.import_path == "react"
        assert imp.imported_names == ["React", "useState"]
        assert imp.is_default_import is True
        assert imp.kind == "import"
        assert imp.line == 1

    def test_given_namespace_and_side_effect_imports_when_extracted_then_both_recorded(
        self, ts: TypeScriptExtractor
    ) -> None:
        # Given
        source = "import * as path from './lib/path';\nimport './styles.css';\n"

        # When
        imports = ts.extract(source).imports

        # Then
        assert imports[0].imported_names == ["* as path"]
        assert imports[0].module_name == "path"
        assert imports[0].is_relative is True
        assert imports[1].imported_names == []
        assert imports[1].line == 2

    def test_given_require_calls_when_extracted_then_kind_require(
        self, js: TypeScriptExtractor
    ) -> None:
        # Given
        source = (
            "const fs = require('fs');\n"
            "const { readFile, writeFile: wf } = require('fs/promises');\n"
        )

        # When
        imports = js.extract(source).imports

        # Then
        assert [i.kind for i in imports] == ["require", "require"]
        assert imports[0].imported_names == ["fs"]
        assert imports[0].is_default_import is True
        assert imports[1].module_name == "promises"
        assert imports[1].imported_names == ["readFile", "writeFile"]
        assert imports[1].is_default_import is False


class TestExports:
    """Export statement forms."""

    def test_given_export_forms_when_extracted_then_kinds_recorded(
        self, ts: TypeScriptExtractor
    ) -> None:
        # Given
        source = (
            "export default function main() {}\n"
            "export * from './a';\n"
            "export * as utils from './utils';\n"
            "export { alpha, beta as gamma };\n"
            "export const x = 1, y = 2;\n"
        )

        # When
        exports = [(e.name, e.kind, e.line) for e in ts.extract(source).exports]

        # Then
        assert exports == [
            ("main", "default", 1),
            ("*", "all", 2),
            ("utils", "all", 3),
            ("alpha", "named", 4),
            ("gamma", "named", 4),
            ("x", "named", 5),
            ("y", "named", 5),
        ]

    def test_given_anonymous_default_export_when_extracted_then_named_default(
        self, js: TypeScriptExtractor
    ) -> None:
        exports = js.extract("export default 42;\n").exports
        assert [(e.name, e.kind) for e in exports] == [("default", "default")]


class TestJsx:
    """JSX detection for tsx and js grammars."""

    def test_given_tsx_component_when_extracted_then_uses_jsx(self) -> None:
        # Given
        extractor = TypeScriptExtractor("tsx")

        # When
        result = extractor.extract("export const App = () => <div className='x' />;\n")

        # Then
        assert result.language_features.uses_jsx is True
        assert _by_name(result)["App"].is_exported is True

    def test_given_plain_ts_when_extracted_then_no_jsx(self, ts: TypeScriptExtractor) -> None:
        assert ts.extract("const n = 1;\n").language_features.uses_jsx is False


class TestRobustness:
    """extract() never raises."""

    @pytest.mark.parametrize(
        "source",
        ["", "}}}{{{", "export class {", "function (", "import from;", "\x00\ud800"],
    )
    def test_given_malformed_source_when_extracted_then_returns_result(
        self, ts: TypeScriptExtractor, source: str
    ) -> None:
        result = ts.extract(source)
        assert isinstance(result, ExtractionResult)

    def test_given_partial_syntax_error_when_extracted_then_line_ranges_valid(
        self, ts: TypeScriptExtractor
    ) -> None:
        source = "function ok() {}\nclass Broken {\n  method( {\n"
        for fact in ts.extract(source).functions:
            assert 1 <= fact.start_line <= fact.end_line <= 3

    def test_given_deeply_nested_expression_when_extracted_then_other_facts_kept(
        self, ts: TypeScriptExtractor
    ) -> None:
        """Generated code with a very long operator chain is still walked."""
        # Given
        chain = " + ".join(["'a'"] * 3000)
        source = f"export function keep() {{}}\nconst s = {chain};\n"

        # When
        result = ts.extract(source)

        # Then
        assert [f.name for f in result.functions] == ["keep"]
        assert [e.name for e in result.exports] == ["keep"]
