"""Canonical language definitions.

Authoritative mapping of file extensions to language names. Discovery uses
it to classify files; files whose extension is absent here are skipped.

RULES:
1. Extensions include the leading dot and are lowercase
2. Each extension maps to exactly one language
3. Table order is the tie-break order for primary language selection
"""

from __future__ import annotations

from dataclasses import dataclass

UNKNOWN_LANGUAGE = "unknown"


@dataclass(frozen=True, slots=True)
class Language:
    """Canonical definition for a language name.

    Attributes:
        name: Unique identifier (lowercase, e.g., "python", "typescript")
        extensions: File extensions including dot (e.g., ".py", ".ts")
    """

    name: str
    extensions: frozenset[str]


ALL_LANGUAGES: tuple[Language, ...] = (
    Language("typescript", frozenset({".ts", ".tsx", ".mts", ".cts"})),
    Language("javascript", frozenset({".js", ".jsx", ".mjs", ".cjs"})),
    Language("python", frozenset({".py", ".pyi"})),
    Language("java", frozenset({".java"})),
    Language("go", frozenset({".go"})),
    Language("rust", frozenset({".rs"})),
    Language("c", frozenset({".c", ".h"})),
    Language("cpp", frozenset({".cpp", ".cc", ".cxx", ".hpp"})),
    Language("csharp", frozenset({".cs"})),
    Language("php", frozenset({".php"})),
    Language("ruby", frozenset({".rb"})),
    Language("swift", frozenset({".swift"})),
    Language("kotlin", frozenset({".kt", ".kts"})),
    Language("scala", frozenset({".scala"})),
    Language("shell", frozenset({".sh", ".bash", ".zsh"})),
    Language("json", frozenset({".json"})),
    Language("yaml", frozenset({".yaml", ".yml"})),
    Language("xml", frozenset({".xml"})),
    Language("html", frozenset({".html", ".htm"})),
    Language("css", frozenset({".css"})),
    Language("scss", frozenset({".scss"})),
    Language("sass", frozenset({".sass"})),
    Language("less", frozenset({".less"})),
    Language("markdown", frozenset({".md"})),
    Language("sql", frozenset({".sql"})),
)

EXTENSION_TO_LANGUAGE: dict[str, str] = {
    ext: lang.name for lang in ALL_LANGUAGES for ext in sorted(lang.extensions)
}

LANGUAGE_ORDER: dict[str, int] = {lang.name: i for i, lang in enumerate(ALL_LANGUAGES)}


def detect_language(extension: str) -> str:
    """Map an extension (with or without dot) to a language, or 'unknown'."""
    ext = extension.lower()
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    return EXTENSION_TO_LANGUAGE.get(ext, UNKNOWN_LANGUAGE)
