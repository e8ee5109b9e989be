"""Shared driver for the tree-sitter (C-family) analyzers."""

from __future__ import annotations

from abc import abstractmethod
from typing import FrozenSet, Iterable, Tuple

from tree_sitter import Node

from ..models import CodeFile, DependencyType, FileDependency
from .base import FileAnalysis, FileAnalysisResult, ParseFailure, SourceAnalyzer
from .complexity import tree_complexity
from .parsing import describe_error, parse_source

Found = Tuple[int, FileDependency]


def found(node: Node, target: str, kind: DependencyType) -> Found:
    return node.start_byte, FileDependency(target=target.strip(), type=kind)


class SyntaxTreeAnalyzer(SourceAnalyzer):
    """Parse, reject trees with errors, score and extract edges in source order."""

    grammar: str = ""
    branch_nodes: FrozenSet[str] = frozenset()

    def grammar_for(self, seed: CodeFile) -> str:
        return self.grammar

    def analyze(self, content: str, seed: CodeFile) -> FileAnalysisResult:
        lines = self.count_lines(content)
        source = content.encode("utf-8")
        root = parse_source(source, self.grammar_for(seed)).root_node
        if root.has_error:
            return ParseFailure(lines_of_code=lines, reason=describe_error(root, source))

        complexity = tree_complexity(root, self.branch_nodes)
        # sorted() is stable, so edges at the same offset keep pre-order.
        ordered = sorted(self.extract(root, source), key=lambda item: item[0])
        dependencies = [dependency for _, dependency in ordered if dependency.target]
        return FileAnalysis(file=seed.with_analysis(lines, complexity), dependencies=dependencies)

    @abstractmethod
    def extract(self, root: Node, source: bytes) -> Iterable[Found]:
        """Yield ``(byte_offset, dependency)`` pairs in any order."""


__all__ = ["Found", "SyntaxTreeAnalyzer", "found"]
