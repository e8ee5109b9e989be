"""Python analyzer built on the standard library ``ast`` module."""

from __future__ import annotations

import ast
from typing import List, Optional, Set, Tuple

from ..languages import PYTHON
from ..models import CodeFile, DependencyType, FileDependency
from .base import HASH_COMMENT_MARKERS, FileAnalysis, FileAnalysisResult, ParseFailure, SourceAnalyzer
from .complexity import python_complexity

Position = Tuple[int, int]


class PythonAnalyzer(SourceAnalyzer):
    language = PYTHON
    comment_markers = HASH_COMMENT_MARKERS

    def analyze(self, content: str, seed: CodeFile) -> FileAnalysisResult:
        lines = self.count_lines(content)
        try:
            tree = ast.parse(content, filename=seed.path)
        except (SyntaxError, ValueError) as exc:
            return ParseFailure(lines_of_code=lines, reason=f"{type(exc).__name__}: {exc}")

        edges: List[Tuple[Position, FileDependency]] = []
        protocols = _protocol_names(tree)
        decorators: Set[int] = set()
        for node in ast.walk(tree):
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
                decorators.update(id(decorator) for decorator in node.decorator_list)

        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    edges.append((_position(node), FileDependency(alias.name, DependencyType.IMPORT)))
            elif isinstance(node, ast.ImportFrom):
                module = "." * node.level + (node.module or "")
                edges.append((_position(node), FileDependency(module, DependencyType.IMPORT)))
            elif isinstance(node, ast.ClassDef):
                edges.extend(_class_edges(content, node, protocols))
            elif isinstance(node, ast.Call) and id(node) not in decorators:
                callee = _callee_text(node.func)
                if callee:
                    edges.append((_position(node), FileDependency(callee, DependencyType.FUNCTION_CALL)))
            elif isinstance(node, ast.AnnAssign):
                annotation = ast.get_source_segment(content, node.annotation)
                if annotation:
                    edges.append(
                        (_position(node.annotation), FileDependency(annotation, DependencyType.VARIABLE_REFERENCE))
                    )

        edges.sort(key=lambda item: item[0])
        complexity = python_complexity(tree)
        return FileAnalysis(
            file=seed.with_analysis(lines, complexity),
            dependencies=[dependency for _, dependency in edges if dependency.target.strip()],
        )


def _position(node: ast.AST) -> Position:
    return getattr(node, "lineno", 0), getattr(node, "col_offset", 0)


def _protocol_names(tree: ast.AST) -> Set[str]:
    """Names of classes declared in this module that subclass ``Protocol``."""
    names: Set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.ClassDef) and any(_is_protocol_base(base) for base in node.bases):
            names.add(node.name)
    return names


def _is_protocol_base(base: ast.expr) -> bool:
    return _base_name(base) == "Protocol"


def _base_name(base: ast.expr) -> Optional[str]:
    if isinstance(base, ast.Subscript):
        base = base.value
    if isinstance(base, ast.Name):
        return base.id
    if isinstance(base, ast.Attribute):
        return base.attr
    return None


def _class_edges(content: str, node: ast.ClassDef, protocols: Set[str]) -> List[Tuple[Position, FileDependency]]:
    is_protocol = node.name in protocols
    edges: List[Tuple[Position, FileDependency]] = []
    for position, base in enumerate(node.bases):
        text = ast.get_source_segment(content, base)
        if not text:
            continue
        if is_protocol:
            kind = DependencyType.IMPLEMENTATION
        elif position == 0 and _base_name(base) not in protocols:
            kind = DependencyType.INHERITANCE
        else:
            kind = DependencyType.IMPLEMENTATION
        edges.append((_position(base), FileDependency(text, kind)))
    return edges


def _callee_text(func: ast.expr) -> Optional[str]:
    """Dotted callee such as ``self.store.save``; ``None`` for computed callees.

    When the chain starts at a call or subscript (``factory().build``) only the
    trailing attribute names are kept.
    """
    parts: List[str] = []
    while isinstance(func, ast.Attribute):
        parts.append(func.attr)
        func = func.value
    if isinstance(func, ast.Name):
        parts.append(func.id)
    if not parts:
        return None
    return ".".join(reversed(parts))


__all__ = ["PythonAnalyzer"]
