"""Java analyzer."""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from tree_sitter import Node

from ..languages import JAVA
from ..models import DependencyType
from .clike import Found, SyntaxTreeAnalyzer, found
from .parsing import node_text, walk

_IMPORT_NOISE = frozenset({"import", "static", ";"})
_CHAIN_ROOTS = frozenset({"identifier", "this", "super"})


class JavaAnalyzer(SyntaxTreeAnalyzer):
    language = JAVA
    grammar = "java"
    branch_nodes = frozenset(
        {
            "if_statement",
            "for_statement",
            "enhanced_for_statement",
            "while_statement",
            "do_statement",
            "catch_clause",
            "switch_label",
        }
    )

    def extract(self, root: Node, source: bytes) -> Iterable[Found]:
        for node in walk(root):
            kind = node.type
            if kind == "import_declaration":
                yield from _import(node, source)
            elif kind == "superclass":
                yield from _listed_types(node, source, DependencyType.INHERITANCE)
            elif kind in ("super_interfaces", "extends_interfaces"):
                yield from _listed_types(node, source, DependencyType.IMPLEMENTATION)
            elif kind == "method_invocation":
                yield from _method_call(node, source)
            elif kind == "object_creation_expression":
                yield from _constructor_call(node, source)
            elif kind in ("field_declaration", "local_variable_declaration"):
                yield from _declared_type(node, source)


def _import(node: Node, source: bytes) -> Iterator[Found]:
    target = "".join(
        node_text(child, source)
        for child in node.children
        if child.type not in _IMPORT_NOISE and not child.type.endswith("comment")
    )
    if target:
        yield found(node, target, DependencyType.IMPORT)


def _listed_types(node: Node, source: bytes, kind: DependencyType) -> Iterator[Found]:
    for child in node.named_children:
        types = child.named_children if child.type == "type_list" else [child]
        for declared in types:
            yield found(declared, node_text(declared, source), kind)


def _dotted(node: Node, source: bytes) -> Optional[str]:
    if node.type in _CHAIN_ROOTS:
        return node_text(node, source)
    if node.type == "field_access":
        base = node.child_by_field_name("object")
        field = node.child_by_field_name("field")
        if base is not None and field is not None:
            prefix = _dotted(base, source)
            if prefix:
                return f"{prefix}.{node_text(field, source)}"
    return None


def _method_call(node: Node, source: bytes) -> Iterator[Found]:
    name = node.child_by_field_name("name")
    if name is None:
        return
    target = node_text(name, source)
    receiver = node.child_by_field_name("object")
    if receiver is not None:
        prefix = _dotted(receiver, source)
        if prefix:
            target = f"{prefix}.{target}"
    yield found(node, target, DependencyType.FUNCTION_CALL)


def _constructor_call(node: Node, source: bytes) -> Iterator[Found]:
    created = node.child_by_field_name("type")
    if created is None:
        return
    if created.type == "generic_type" and created.named_children:
        created = created.named_children[0]
    yield found(created, node_text(created, source), DependencyType.FUNCTION_CALL)


def _declared_type(node: Node, source: bytes) -> Iterator[Found]:
    declared = node.child_by_field_name("type")
    if declared is None:
        return
    text = node_text(declared, source)
    if text != "var":
        yield found(declared, text, DependencyType.VARIABLE_REFERENCE)


__all__ = ["JavaAnalyzer"]
