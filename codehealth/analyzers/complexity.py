"""Cyclomatic-style complexity shared by all analyzers."""

from __future__ import annotations

import ast
from typing import AbstractSet

from tree_sitter import Node

from .base import BASELINE_COMPLEXITY
from .parsing import walk


def tree_complexity(root: Node, branch_nodes: AbstractSet[str]) -> float:
    """Score a syntax tree: one point per node whose type is in ``branch_nodes``.

    Each analyzer names the nodes for ``if``, ``for``, ``while``, ``do``-``while``,
    ``catch`` and every ``when``/``switch`` arm in its grammar, so a ``try`` or a
    ``switch`` by itself adds nothing.
    """
    return BASELINE_COMPLEXITY + sum(1 for node in walk(root) if node.type in branch_nodes)


def python_complexity(tree: ast.AST) -> float:
    complexity = BASELINE_COMPLEXITY
    for node in ast.walk(tree):
        if isinstance(node, (ast.If, ast.For, ast.AsyncFor, ast.While)):
            complexity += 1
        elif isinstance(node, ast.Match):
            complexity += len(node.cases)
        elif isinstance(node, (ast.Try, ast.TryStar)):
            complexity += len(node.handlers)
    return complexity


__all__ = ["python_complexity", "tree_complexity"]
