"""Extraction result dataclasses.

Every extractor returns an ExtractionResult. All collections default to
empty so a failed parse is still a valid, serializable result.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any, Literal

FactKind = Literal["function", "method", "class", "interface", "type"]
Accessibility = Literal["public", "protected", "private"]
ImportKind = Literal["import", "require"]
ExportKind = Literal["named", "default", "all"]

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_signature(signature: str) -> str:
    """Collapse runs of whitespace and trim."""
    return _WHITESPACE_RE.sub(" ", signature).strip()


def split_lines(text: str) -> list[str]:
    """Split on newlines; a trailing newline does not start a new line."""
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line.rstrip("\r") for line in lines]


@dataclass
class ParameterInfo:
    """A single declared parameter."""

    name: str
    type: str | None = None
    optional: bool = False
    default_value: str | None = None


@dataclass
class StructuralFact:
    """A function, method, class, interface or type alias."""

    name: str
    kind: FactKind
    signature: str
    start_line: int  # 1-based, inclusive
    end_line: int  # 1-based, inclusive
    doc_comment: str | None = None
    parameters: list[ParameterInfo] | None = None
    return_type: str | None = None
    is_exported: bool = False
    is_async: bool = False
    accessibility: Accessibility | None = None

    def __post_init__(self) -> None:
        self.signature = normalize_signature(self.signature)


@dataclass
class ImportInfo:
    """An import declaration or require() call."""

    module_name: str
    imported_names: list[str]
    is_default_import: bool
    import_path: str
    line: int
    kind: ImportKind = "import"

    @property
    def is_relative(self) -> bool:
        return self.import_path.startswith(".")


@dataclass
class ExportInfo:
    """A named, default or star export."""

    name: str
    kind: ExportKind
    line: int


@dataclass
class LanguageFeatures:
    has_classes: bool = False
    has_interfaces: bool = False
    has_types: bool = False
    has_decorators: bool = False
    uses_jsx: bool = False


@dataclass
class ExtractionResult:
    """Complete extraction result from a single source text."""

    functions: list[StructuralFact] = field(default_factory=list)
    imports: list[ImportInfo] = field(default_factory=list)
    exports: list[ExportInfo] = field(default_factory=list)
    language_features: LanguageFeatures = field(default_factory=LanguageFeatures)

    @classmethod
    def empty(cls) -> ExtractionResult:
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
