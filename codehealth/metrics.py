"""Codebase-wide metric rollup."""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Sequence

from .models import CodeFile, CodeMetrics, Dependency


def compute_metrics(files: Sequence[CodeFile], dependencies: Sequence[Dependency]) -> CodeMetrics:
    """Aggregate the analyzed files and dependencies of one run."""
    total_files = len(files)
    total_complexity = sum(code_file.complexity for code_file in files)
    average = total_complexity / total_files if total_files else 0.0
    distribution = Counter(code_file.language for code_file in files)

    return CodeMetrics(
        total_files=total_files,
        total_lines_of_code=sum(code_file.lines_of_code for code_file in files),
        average_complexity=average,
        language_distribution=dict(sorted(distribution.items())),
        dependency_count=len(dependencies),
        max_dependencies_per_file=_max_per_source(dependencies),
    )


def _max_per_source(dependencies: Iterable[Dependency]) -> int:
    per_source = Counter(
        dependency.source_file_id for dependency in dependencies if dependency.source_file_id is not None
    )
    return max(per_source.values(), default=0)


__all__ = ["compute_metrics"]
