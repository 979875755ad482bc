"""TypeScript / JavaScript structural extractor (tree-sitter).

One extractor instance per grammar:
- typescript: .ts .mts .cts
- tsx:        .tsx
- javascript: .js .jsx .mjs .cjs (the JS grammar includes JSX)

The tree is walked once. Exported status comes from an enclosing
export_statement ancestor, so methods of an exported class are exported.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import structlog
import tree_sitter
import tree_sitter_javascript
import tree_sitter_typescript

from repolens.extraction.models import (
    Accessibility,
    ExportInfo,
    ExtractionResult,
    FactKind,
    ImportInfo,
    LanguageFeatures,
    ParameterInfo,
    StructuralFact,
    split_lines,
)

logger = structlog.get_logger()

GRAMMAR_EXTENSIONS: dict[str, frozenset[str]] = {
    "typescript": frozenset({".ts", ".mts", ".cts"}),
    "tsx": frozenset({".tsx"}),
    "javascript": frozenset({".js", ".jsx", ".mjs", ".cjs"}),
}

_FUNCTION_VALUE_TYPES = frozenset({"arrow_function", "function_expression", "function"})
_CLASS_TYPES = frozenset({"class_declaration", "abstract_class_declaration", "class"})
_FUNCTION_DECL_TYPES = frozenset({"function_declaration", "generator_function_declaration"})
_PARAM_TYPES = frozenset({"required_parameter", "optional_parameter"})
_ACCESSIBILITY: frozenset[str] = frozenset({"public", "protected", "private"})


@lru_cache(maxsize=None)
def _load_language(grammar: str) -> tree_sitter.Language:
    if grammar == "javascript":
        return tree_sitter.Language(tree_sitter_javascript.language())
    if grammar == "tsx":
        return tree_sitter.Language(tree_sitter_typescript.language_tsx())
    return tree_sitter.Language(tree_sitter_typescript.language_typescript())


def _text(node: Any) -> str:
    return node.text.decode("utf-8", errors="replace") if node is not None else ""


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] in "'\"`" and text[-1] == text[0]:
        return text[1:-1]
    return text


def _annotation(node: Any) -> str | None:
    """Type annotation text without the leading colon."""
    if node is None:
        return None
    return _text(node).lstrip(":").strip() or None


def _has_child(node: Any, child_type: str) -> bool:
    return any(child.type == child_type for child in node.children)


def _clean_doc(raw: str) -> str | None:
    body = raw.removeprefix("/**").removesuffix("*/")
    lines = [line.strip().removeprefix("*").strip() for line in body.splitlines()]
    doc = "\n".join(line for line in lines if line).strip()
    return doc or None


class TypeScriptExtractor:
    """AST-based extractor for the TypeScript/JavaScript family."""

    def __init__(self, grammar: str = "typescript") -> None:
        if grammar not in GRAMMAR_EXTENSIONS:
            raise ValueError(f"Unknown grammar: {grammar}")
        self.grammar = grammar
        self.language = "javascript" if grammar == "javascript" else "typescript"
        self.extensions = GRAMMAR_EXTENSIONS[grammar]

    def __repr__(self) -> str:
        return f"TypeScriptExtractor(grammar={self.grammar!r})"

    def supports(self, extension: str) -> bool:
        return extension.lower() in self.extensions

    def extract(self, source: str) -> ExtractionResult:
        try:
            parser = tree_sitter.Parser(_load_language(self.grammar))
            tree = parser.parse(source.encode("utf-8"))
            walker = _Walker(source.encode("utf-8"), len(split_lines(source)))
            walker.walk(tree.root_node)
            return walker.result()
        except Exception as e:  # noqa: BLE001
            logger.warning("typescript_extraction_failed", grammar=self.grammar, error=str(e))
            return ExtractionResult.empty()


class _Walker:
    """Single-pass collector over one syntax tree."""

    def __init__(self, source: bytes, line_count: int) -> None:
        self._source = source
        self._line_count = max(line_count, 1)
        self.functions: list[StructuralFact] = []
        self.imports: list[ImportInfo] = []
        self.exports: list[ExportInfo] = []
        self.features = LanguageFeatures()

    def result(self) -> ExtractionResult:
        self.features.has_classes = any(f.kind == "class" for f in self.functions)
        return ExtractionResult(
            functions=self.functions,
            imports=self.imports,
            exports=self.exports,
            language_features=self.features,
        )

    def walk(self, root: Any) -> None:
        # Iterative preorder; generated code can nest past the recursion limit
        stack: list[tuple[Any, str | None]] = [(root, None)]
        while stack:
            node, class_name = stack.pop()
            inner = self._visit(node, class_name)
            stack.extend((child, inner) for child in reversed(node.children))

    def _visit(self, node: Any, class_name: str | None) -> str | None:
        """Record one node. Returns the class name in scope for its children."""
        kind = node.type

        if kind == "import_statement":
            self._import(node)
        elif kind == "export_statement":
            self._export(node)
        elif kind == "call_expression":
            self._require(node)
        elif kind in _FUNCTION_DECL_TYPES:
            self._function(node, _text(node.child_by_field_name("name")), node)
        elif kind == "variable_declarator":
            value = node.child_by_field_name("value")
            if value is not None and value.type in _FUNCTION_VALUE_TYPES:
                self._function(value, _text(node.child_by_field_name("name")), node)
        elif kind in _CLASS_TYPES and node.child_by_field_name("name") is not None:
            name = _text(node.child_by_field_name("name"))
            self._fact(node, name, "class")
            return name
        elif kind == "method_definition":
            if class_name:
                self._method(node, class_name)
            # object literals inside a method body are not class members
            return None
        elif kind == "interface_declaration":
            self.features.has_interfaces = True
            self._fact(node, _text(node.child_by_field_name("name")), "interface")
        elif kind == "type_alias_declaration":
            self.features.has_types = True
            self._fact(node, _text(node.child_by_field_name("name")), "type")
        elif kind == "type_annotation":
            self.features.has_types = True
        elif kind == "decorator":
            self.features.has_decorators = True
        elif kind in ("jsx_element", "jsx_self_closing_element"):
            self.features.uses_jsx = True

        return class_name

    # ------------------------------------------------------------------
    # Facts
    # ------------------------------------------------------------------

    def _fact(
        self,
        node: Any,
        name: str,
        kind: FactKind,
        *,
        parameters: list[ParameterInfo] | None = None,
        return_type: str | None = None,
        is_async: bool = False,
        accessibility: Accessibility | None = None,
    ) -> None:
        end = min(node.end_point[0] + 1, self._line_count)
        self.functions.append(
            StructuralFact(
                name=name,
                kind=kind,
                signature=self._header(node),
                doc_comment=self._doc_comment(node),
                start_line=min(node.start_point[0] + 1, end),
                end_line=end,
                parameters=parameters,
                return_type=return_type,
                is_exported=self._is_exported(node),
                is_async=is_async,
                accessibility=accessibility,
            )
        )

    def _function(self, fn: Any, name: str, declaration: Any) -> None:
        """Record a function; declaration is fn itself or its variable_declarator."""
        if not name:
            return
        self._fact(
            declaration,
            name,
            "function",
            parameters=self._parameters(fn),
            return_type=self._return_type(fn),
            is_async=_has_child(fn, "async"),
        )

    def _method(self, node: Any, class_name: str) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        access: Accessibility = "public"
        for child in node.children:
            if child.type == "accessibility_modifier" and _text(child) in _ACCESSIBILITY:
                access = _text(child)  # type: ignore[assignment]
        if name_node.type == "private_property_identifier":
            access = "private"
        self._fact(
            node,
            f"{class_name}.{_text(name_node)}",
            "method",
            parameters=self._parameters(node),
            return_type=self._return_type(node),
            is_async=_has_child(node, "async"),
            accessibility=access,
        )

    def _header(self, node: Any) -> str:
        """Declaration text up to (not including) its body."""
        body = node.child_by_field_name("body")
        if body is None:
            value = node.child_by_field_name("value")
            if value is not None and value.type in _FUNCTION_VALUE_TYPES:
                body = value.child_by_field_name("body")
        if body is None or body.start_byte <= node.start_byte:
            return _text(node)
        return self._source[node.start_byte : body.start_byte].decode("utf-8", errors="replace")

    @staticmethod
    def _doc_comment(node: Any) -> str | None:
        target = node
        if target.type == "variable_declarator" and target.parent is not None:
            target = target.parent
        if target.parent is not None and target.parent.type == "export_statement":
            target = target.parent
        prev = target.prev_named_sibling
        if prev is not None and prev.type == "comment":
            raw = _text(prev)
            if raw.startswith("/**"):
                return _clean_doc(raw)
        return None

    @staticmethod
    def _is_exported(node: Any) -> bool:
        current = node.parent
        while current is not None:
            if current.type == "export_statement":
                return True
            current = current.parent
        return False

    @staticmethod
    def _return_type(node: Any) -> str | None:
        return _annotation(node.child_by_field_name("return_type"))

    def _parameters(self, fn: Any) -> list[ParameterInfo]:
        single = fn.child_by_field_name("parameter")
        if single is not None:
            return [ParameterInfo(name=_text(single))]
        params_node = fn.child_by_field_name("parameters")
        if params_node is None:
            return []
        params: list[ParameterInfo] = []
        for child in params_node.named_children:
            if child.type == "comment":
                continue
            if child.type in _PARAM_TYPES:
                # Parameter properties (private x: T) unwrap to their pattern
                pattern = child.child_by_field_name("pattern")
                value = child.child_by_field_name("value")
                params.append(
                    ParameterInfo(
                        name=_text(pattern) if pattern is not None else _text(child),
                        type=_annotation(child.child_by_field_name("type")),
                        optional=child.type == "optional_parameter" or value is not None,
                        default_value=_text(value) if value is not None else None,
                    )
                )
            elif child.type == "assignment_pattern":
                value = child.child_by_field_name("right")
                params.append(
                    ParameterInfo(
                        name=_text(child.child_by_field_name("left")),
                        optional=True,
                        default_value=_text(value) if value is not None else None,
                    )
                )
            else:
                params.append(ParameterInfo(name=_text(child)))
        return params

    # ------------------------------------------------------------------
    # Imports / exports
    # ------------------------------------------------------------------

    def _import(self, node: Any) -> None:
        source = node.child_by_field_name("source")
        if source is None:
            return
        path = _unquote(_text(source))
        names: list[str] = []
        is_default = False
        for clause in node.named_children:
            if clause.type != "import_clause":
                continue
            for part in clause.named_children:
                if part.type == "identifier":
                    names.append(_text(part))
                    is_default = True
                elif part.type == "namespace_import":
                    alias = next((c for c in part.named_children if c.type == "identifier"), None)
                    names.append(f"* as {_text(alias)}" if alias is not None else "*")
                elif part.type == "named_imports":
                    for spec in part.named_children:
                        if spec.type == "import_specifier":
                            names.append(_text(spec.child_by_field_name("name")))
        self.imports.append(
            ImportInfo(
                module_name=path.rstrip("/").split("/")[-1] or path,
                imported_names=names,
                is_default_import=is_default,
                import_path=path,
                line=node.start_point[0] + 1,
            )
        )

    def _require(self, node: Any) -> None:
        fn = node.child_by_field_name("function")
        if fn is None or fn.type != "identifier" or _text(fn) != "require":
            return
        args = node.child_by_field_name("arguments")
        first = args.named_children[0] if args is not None and args.named_children else None
        if first is None or first.type != "string":
            return
        path = _unquote(_text(first))
        names: list[str] = []
        is_default = False
        parent = node.parent
        if parent is not None and parent.type == "variable_declarator":
            target = parent.child_by_field_name("name")
            if target is not None and target.type == "identifier":
                names.append(_text(target))
                is_default = True
            elif target is not None and target.type == "object_pattern":
                for prop in target.named_children:
                    key = prop.child_by_field_name("key")
                    names.append(_text(key) if key is not None else _text(prop))
        self.imports.append(
            ImportInfo(
                module_name=path.rstrip("/").split("/")[-1] or path,
                imported_names=names,
                is_default_import=is_default,
                import_path=path,
                line=node.start_point[0] + 1,
                kind="require",
            )
        )

    def _export(self, node: Any) -> None:
        line = node.start_point[0] + 1
        declaration = node.child_by_field_name("declaration")

        if _has_child(node, "default"):
            value = node.child_by_field_name("value")
            target = declaration if declaration is not None else value
            name = "default"
            if target is not None:
                name_node = target.child_by_field_name("name")
                if name_node is not None:
                    name = _text(name_node)
                elif target.type == "identifier":
                    name = _text(target)
            self.exports.append(ExportInfo(name=name, kind="default", line=line))
            return

        # "export * as ns" nests its star inside a namespace_export node
        namespace = next((c for c in node.named_children if c.type == "namespace_export"), None)
        if namespace is not None or _has_child(node, "*"):
            name = "*"
            if namespace is not None and namespace.named_children:
                name = _text(namespace.named_children[-1])
            self.exports.append(ExportInfo(name=name, kind="all", line=line))
            return

        if declaration is not None:
            if declaration.type in ("lexical_declaration", "variable_declaration"):
                for declarator in declaration.named_children:
                    if declarator.type == "variable_declarator":
                        name_node = declarator.child_by_field_name("name")
                        if name_node is not None:
                            self.exports.append(ExportInfo(_text(name_node), "named", line))
            else:
                name_node = declaration.child_by_field_name("name")
                if name_node is not None:
                    self.exports.append(ExportInfo(_text(name_node), "named", line))
            return

        for clause in node.named_children:
            if clause.type != "export_clause":
                continue
            for spec in clause.named_children:
                if spec.type != "export_specifier":
                    continue
                alias = spec.child_by_field_name("alias")
                name_node = alias if alias is not None else spec.child_by_field_name("name")
                if name_node is not None:
                    self.exports.append(ExportInfo(_text(name_node), "named", line))
