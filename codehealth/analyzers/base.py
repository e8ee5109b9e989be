"""Base classes and result types for per-language source analyzers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple, Union

from ..models import CodeFile, FileDependency

BASELINE_COMPLEXITY = 1.0

C_FAMILY_COMMENT_MARKERS: Tuple[str, ...] = ("//", "/*", "*")
HASH_COMMENT_MARKERS: Tuple[str, ...] = ("#",)


@dataclass
class FileAnalysis:
    """Successful analysis of one file."""

    file: CodeFile
    dependencies: List[FileDependency] = field(default_factory=list)


@dataclass
class ParseFailure:
    """The file could not be parsed; only the line count is trustworthy."""

    lines_of_code: int
    reason: str


FileAnalysisResult = Union[FileAnalysis, ParseFailure]


def count_lines_of_code(content: str, markers: Sequence[str] = C_FAMILY_COMMENT_MARKERS) -> int:
    """Count non-blank lines that do not start with one of ``markers``.

    Each line is judged on its own; text inside a block comment that does not
    start with a marker is counted as code.
    """
    count = 0
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if any(stripped.startswith(marker) for marker in markers):
            continue
        count += 1
    return count


def baseline_analysis(seed: CodeFile, lines_of_code: int = 0) -> FileAnalysis:
    """Degraded result used when a file cannot be analyzed."""
    return FileAnalysis(
        file=seed.with_analysis(lines_of_code=lines_of_code, complexity=BASELINE_COMPLEXITY),
        dependencies=[],
    )


class SourceAnalyzer(ABC):
    """Contract for analyzers that turn one source file into metrics and edges."""

    language: str = ""
    comment_markers: Tuple[str, ...] = C_FAMILY_COMMENT_MARKERS

    def count_lines(self, content: str) -> int:
        return count_lines_of_code(content, self.comment_markers)

    @abstractmethod
    def analyze(self, content: str, seed: CodeFile) -> FileAnalysisResult:
        """Return a ``FileAnalysis`` or a ``ParseFailure``; never raise for bad input."""


__all__ = [
    "BASELINE_COMPLEXITY",
    "C_FAMILY_COMMENT_MARKERS",
    "FileAnalysis",
    "FileAnalysisResult",
    "HASH_COMMENT_MARKERS",
    "ParseFailure",
    "SourceAnalyzer",
    "baseline_analysis",
    "count_lines_of_code",
]
