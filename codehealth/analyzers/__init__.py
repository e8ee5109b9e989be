"""Per-language analyzers and the lookup table that dispatches to them."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from ..languages import JAVA, JAVASCRIPT, KOTLIN, PYTHON, TYPESCRIPT
from .base import (
    BASELINE_COMPLEXITY,
    FileAnalysis,
    FileAnalysisResult,
    ParseFailure,
    SourceAnalyzer,
    baseline_analysis,
    count_lines_of_code,
)
from .java import JavaAnalyzer
from .javascript import JavaScriptAnalyzer, TypeScriptAnalyzer
from .kotlin import KotlinAnalyzer
from .python import PythonAnalyzer

ANALYZERS: Mapping[str, SourceAnalyzer] = MappingProxyType(
    {
        KOTLIN: KotlinAnalyzer(),
        JAVA: JavaAnalyzer(),
        JAVASCRIPT: JavaScriptAnalyzer(),
        TYPESCRIPT: TypeScriptAnalyzer(),
        PYTHON: PythonAnalyzer(),
    }
)

__all__ = [
    "ANALYZERS",
    "BASELINE_COMPLEXITY",
    "FileAnalysis",
    "FileAnalysisResult",
    "ParseFailure",
    "SourceAnalyzer",
    "baseline_analysis",
    "count_lines_of_code",
]
