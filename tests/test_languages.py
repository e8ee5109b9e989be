"""Tests for codehealth.languages."""

from __future__ import annotations

import pytest

from codehealth.languages import (
    SUPPORTED_LANGUAGES,
    UNKNOWN,
    detect_language,
    extensions_for_languages,
    language_for_path,
)


@pytest.mark.parametrize(
    ("extension", "language"),
    [
        ("kt", "Kotlin"),
        (".KTS", "Kotlin"),
        ("java", "Java"),
        ("js", "JavaScript"),
        ("jsx", "JavaScript"),
        ("ts", "TypeScript"),
        ("TSX", "TypeScript"),
        ("py", "Python"),
        ("md", UNKNOWN),
        ("", UNKNOWN),
    ],
)
def test_detect_language(extension: str, language: str) -> None:
    assert detect_language(extension) == language


def test_language_for_path_uses_last_suffix() -> None:
    assert language_for_path("src/app.test.ts") == "TypeScript"
    assert language_for_path("Makefile") == UNKNOWN


def test_extensions_for_languages_is_case_insensitive() -> None:
    assert extensions_for_languages({"kotlin"}) == frozenset({"kt", "kts"})


def test_every_supported_language_has_a_tag() -> None:
    assert SUPPORTED_LANGUAGES == {"Kotlin", "Java", "JavaScript", "TypeScript", "Python"}
