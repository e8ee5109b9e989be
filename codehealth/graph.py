"""Dependency record construction and graph assembly."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Iterable, List, Sequence, Set
from uuid import UUID, uuid4

from .analyzers import FileAnalysis
from .models import CodeFile, Dependency, DependencyGraph, GraphLink, GraphNode


def build_dependencies(results: Iterable[FileAnalysis], repository_id: UUID) -> List[Dependency]:
    """Turn per-file edges into Dependency records with fresh identifiers."""
    dependencies: List[Dependency] = []
    for result in results:
        for edge in result.dependencies:
            if not edge.target or not edge.target.strip():
                continue
            dependencies.append(
                Dependency(
                    id=uuid4(),
                    repository_id=repository_id,
                    source_file_id=result.file.id,
                    target=edge.target,
                    type=edge.type,
                )
            )
    return dependencies


def assemble_graph(files: Sequence[CodeFile], dependencies: Iterable[Dependency]) -> DependencyGraph:
    """Project files into nodes and their resolvable dependencies into links."""
    nodes = [
        GraphNode(
            id=str(code_file.id),
            label=PurePosixPath(code_file.path).name or code_file.path,
            language=code_file.language,
            size=code_file.size,
            metrics={"linesOfCode": code_file.lines_of_code, "complexity": code_file.complexity},
        )
        for code_file in files
    ]
    node_ids: Set[str] = {node.id for node in nodes}

    links: List[GraphLink] = []
    for dependency in dependencies:
        if dependency.source_file_id is None:
            continue
        source = str(dependency.source_file_id)
        if source not in node_ids or not dependency.target.strip():
            continue
        links.append(GraphLink(source=source, target=dependency.target, type=dependency.type.name.lower()))
    return DependencyGraph(nodes=nodes, links=links)


__all__ = ["assemble_graph", "build_dependencies"]
