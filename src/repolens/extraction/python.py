"""Python structural extractor (heuristic line scanning).

Single pass over source lines; no syntax tree is built.

Handles:
- import a.b as c, d / from pkg import (x, y as z)
- def / async def (top-level = function, directly under a class = method)
- class statements, including nested classes (qualified as Outer.Inner)
- docstrings: first statement of a block that is a triple-quoted string

Known approximation: a block ends at the last line before the next
non-blank line whose indentation is <= the header's indentation. Multi-line
statements, backslash continuations and string contents that happen to
dedent are not accounted for.
"""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass

import structlog

from repolens.extraction.models import (
    Accessibility,
    ExtractionResult,
    ImportInfo,
    LanguageFeatures,
    ParameterInfo,
    StructuralFact,
    normalize_signature,
    split_lines,
)

logger = structlog.get_logger()

_DEF_RE = re.compile(r"^(async\s+)?def\s+([A-Za-z_][A-Za-z0-9_]*)\s*\(")
_CLASS_RE = re.compile(r"^class\s+([A-Za-z_][A-Za-z0-9_]*)")
_FROM_IMPORT_RE = re.compile(r"^from\s+([A-Za-z0-9_.]+)\s+import\s+(.+)$")
_MODULE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")
_RETURN_RE = re.compile(r"^\s*->\s*([^:]+?)\s*:")
_DOCSTRING_START_RE = re.compile(r"^[rRuUbB]{0,2}(\"\"\"|''')")

# Header continuation is bounded so a stray "(" cannot swallow the file
_MAX_HEADER_LINES = 50
_DOCSTRING_LOOKAHEAD = 5


@dataclass
class _Block:
    """An open def/class block while scanning."""

    kind: str  # "class" or "def"
    qualname: str
    indent: int
    end: int  # 0-based index of last line in block


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip())


def _strip_comment(text: str) -> str:
    return text.split("#", 1)[0].rstrip()


def _accessibility(name: str) -> Accessibility:
    if name.startswith("__") and not name.endswith("__"):
        return "private"
    if name.startswith("_"):
        return "protected"
    return "public"


def _split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split on sep where not nested in brackets."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        if ch == sep and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return parts


class PythonExtractor:
    """Heuristic extractor for Python source."""

    language = "python"
    extensions: frozenset[str] = frozenset({".py", ".pyi"})

    def supports(self, extension: str) -> bool:
        return extension.lower() in self.extensions

    def extract(self, source: str) -> ExtractionResult:
        try:
            return self._extract(source)
        except Exception as e:  # noqa: BLE001
            logger.warning("python_extraction_failed", error=str(e))
            return ExtractionResult.empty()

    def _extract(self, source: str) -> ExtractionResult:
        lines = split_lines(source)
        result = ExtractionResult()
        stack: list[_Block] = []
        has_decorators = False

        i = 0
        while i < len(lines):
            line = lines[i]
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                i += 1
                continue

            if stripped.startswith("@"):
                has_decorators = True

            indent = _indent_of(line)
            while stack and stack[-1].end < i:
                stack.pop()
            parent = stack[-1] if stack else None

            if stripped.startswith(("import ", "from ")):
                i = self._scan_import(lines, i, result.imports)
                continue

            def_match = _DEF_RE.match(stripped)
            class_match = None if def_match else _CLASS_RE.match(stripped)
            if not def_match and not class_match:
                i += 1
                continue

            header_end = self._find_header_end(lines, i)
            header = " ".join(_strip_comment(lines[j]).strip() for j in range(i, header_end + 1))
            end = self._find_block_end(lines, header_end, indent)
            doc = self._docstring(lines, header_end + 1, end)

            if def_match:
                name = def_match.group(2)
                is_method = parent is not None and parent.kind == "class"
                qualname = f"{parent.qualname}.{name}" if is_method and parent else name
                access = _accessibility(name)
                params, return_type = self._parse_def_header(header)
                if parent is None:
                    exported = not name.startswith("_")
                elif is_method:
                    exported = access == "public"
                else:
                    exported = False
                result.functions.append(
                    StructuralFact(
                        name=qualname,
                        kind="method" if is_method else "function",
                        signature=header,
                        doc_comment=doc,
                        start_line=i + 1,
                        end_line=end + 1,
                        parameters=params,
                        return_type=return_type,
                        is_exported=exported,
                        is_async=bool(def_match.group(1)),
                        accessibility=access,
                    )
                )
                stack.append(_Block("def", qualname, indent, end))
            else:
                assert class_match is not None
                name = class_match.group(1)
                nested_in_class = parent is not None and parent.kind == "class"
                qualname = f"{parent.qualname}.{name}" if nested_in_class and parent else name
                result.functions.append(
                    StructuralFact(
                        name=qualname,
                        kind="class",
                        signature=header,
                        doc_comment=doc,
                        start_line=i + 1,
                        end_line=end + 1,
                        is_exported=parent is None and not name.startswith("_"),
                        accessibility=_accessibility(name),
                    )
                )
                stack.append(_Block("class", qualname, indent, end))

            i = header_end + 1

        result.language_features = LanguageFeatures(
            has_classes=any(f.kind == "class" for f in result.functions),
            has_decorators=has_decorators,
        )
        return result

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def _scan_import(self, lines: list[str], i: int, out: list[ImportInfo]) -> int:
        """Parse an import statement at line i. Returns next line index."""
        text = _strip_comment(lines[i].strip())
        next_index = i + 1

        # Parenthesized from-imports may span lines
        if text.startswith("from ") and "(" in text and ")" not in text:
            j = i + 1
            while j < len(lines) and j - i < _MAX_HEADER_LINES:
                part = _strip_comment(lines[j].strip())
                text = f"{text} {part}"
                j += 1
                if ")" in part:
                    break
            next_index = j

        if text.startswith("import "):
            for part in text[len("import ") :].split(","):
                module = part.strip().split(" as ")[0].strip()
                if _MODULE_RE.match(module):
                    out.append(
                        ImportInfo(
                            module_name=module,
                            imported_names=[module],
                            is_default_import=True,
                            import_path=module,
                            line=i + 1,
                        )
                    )
            return next_index

        from_match = _FROM_IMPORT_RE.match(text)
        if from_match:
            module = from_match.group(1)
            names = [
                n.strip().split(" as ")[0].strip()
                for n in from_match.group(2).strip().strip("()").split(",")
            ]
            out.append(
                ImportInfo(
                    module_name=module,
                    imported_names=[n for n in names if n],
                    is_default_import=False,
                    import_path=module,
                    line=i + 1,
                )
            )
        return next_index

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    @staticmethod
    def _find_header_end(lines: list[str], start: int) -> int:
        """Index of the line that closes a (possibly multi-line) def/class header."""
        depth = 0
        for j in range(start, min(start + _MAX_HEADER_LINES, len(lines))):
            code = _strip_comment(lines[j])
            for ch in code:
                if ch in "([{":
                    depth += 1
                elif ch in ")]}":
                    depth -= 1
            # one-line bodies ("class E(Exception): pass") end the header too
            if depth <= 0:
                return j
        return start

    @staticmethod
    def _find_block_end(lines: list[str], header_end: int, indent: int) -> int:
        for j in range(header_end + 1, len(lines)):
            if not lines[j].strip():
                continue
            if _indent_of(lines[j]) <= indent:
                return j - 1
        return len(lines) - 1

    @staticmethod
    def _docstring(lines: list[str], start: int, end: int) -> str | None:
        limit = min(start + _DOCSTRING_LOOKAHEAD, end + 1, len(lines))
        for i in range(start, limit):
            stripped = lines[i].strip()
            if not stripped or stripped.startswith("#"):
                continue
            match = _DOCSTRING_START_RE.match(stripped)
            if not match:
                return None
            quote = match.group(1)
            body = stripped[match.end() :]
            if quote in body:
                return inspect.cleandoc(body[: body.index(quote)]) or None
            collected = [body]
            for j in range(i + 1, len(lines)):
                if quote in lines[j]:
                    collected.append(lines[j][: lines[j].index(quote)])
                    return inspect.cleandoc("\n".join(collected)) or None
                collected.append(lines[j])
            return None
        return None

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_def_header(header: str) -> tuple[list[ParameterInfo], str | None]:
        open_idx = header.find("(")
        depth = 0
        close_idx = -1
        for idx in range(open_idx, len(header)):
            ch = header[idx]
            if ch in "([{":
                depth += 1
            elif ch in ")]}":
                depth -= 1
                if depth == 0:
                    close_idx = idx
                    break
        if open_idx < 0 or close_idx < 0:
            return [], None

        params: list[ParameterInfo] = []
        for raw in _split_top_level(header[open_idx + 1 : close_idx]):
            param = raw.strip()
            if not param or param in ("self", "cls", "*", "/"):
                continue
            default: str | None = None
            pieces = _split_top_level(param, "=")
            if len(pieces) > 1:
                param = pieces[0].strip()
                default = normalize_signature("=".join(pieces[1:]))
            name, _, annotation = param.partition(":")
            name = name.strip()
            if name in ("self", "cls"):
                continue
            params.append(
                ParameterInfo(
                    name=name,
                    type=normalize_signature(annotation) or None,
                    optional=default is not None,
                    default_value=default,
                )
            )

        return_match = _RETURN_RE.match(header[close_idx + 1 :])
        return_type = normalize_signature(return_match.group(1)) if return_match else None
        return params, return_type
