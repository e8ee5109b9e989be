"""Extension to language mapping used by discovery and analyzer dispatch."""

from __future__ import annotations

from pathlib import PurePath
from typing import FrozenSet

KOTLIN = "Kotlin"
JAVA = "Java"
JAVASCRIPT = "JavaScript"
TYPESCRIPT = "TypeScript"
PYTHON = "Python"
UNKNOWN = "Unknown"

_LANGUAGE_BY_EXTENSION = {
    "kt": KOTLIN,
    "kts": KOTLIN,
    "java": JAVA,
    "js": JAVASCRIPT,
    "jsx": JAVASCRIPT,
    "mjs": JAVASCRIPT,
    "cjs": JAVASCRIPT,
    "ts": TYPESCRIPT,
    "tsx": TYPESCRIPT,
    "mts": TYPESCRIPT,
    "cts": TYPESCRIPT,
    "py": PYTHON,
}

SUPPORTED_EXTENSIONS: FrozenSet[str] = frozenset(_LANGUAGE_BY_EXTENSION)
SUPPORTED_LANGUAGES: FrozenSet[str] = frozenset(_LANGUAGE_BY_EXTENSION.values())


def normalise_extension(extension: str) -> str:
    """Return ``extension`` lowercased and without its leading dot."""
    return extension.strip().lstrip(".").lower()


def detect_language(extension: str) -> str:
    """Map a file extension (case-insensitive, dot optional) to a language tag."""
    return _LANGUAGE_BY_EXTENSION.get(normalise_extension(extension), UNKNOWN)


def extension_of(path: str | PurePath) -> str:
    return normalise_extension(PurePath(path).suffix)


def language_for_path(path: str | PurePath) -> str:
    return detect_language(extension_of(path))


def extensions_for_languages(languages: FrozenSet[str] | set[str]) -> FrozenSet[str]:
    """Return the supported extensions whose language is in ``languages``."""
    wanted = {language.lower() for language in languages}
    return frozenset(
        extension
        for extension, language in _LANGUAGE_BY_EXTENSION.items()
        if language.lower() in wanted
    )


__all__ = [
    "JAVA",
    "JAVASCRIPT",
    "KOTLIN",
    "PYTHON",
    "SUPPORTED_EXTENSIONS",
    "SUPPORTED_LANGUAGES",
    "TYPESCRIPT",
    "UNKNOWN",
    "detect_language",
    "extension_of",
    "extensions_for_languages",
    "language_for_path",
    "normalise_extension",
]
