"""Kotlin analyzer (primary language)."""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Set

from tree_sitter import Node

from ..languages import KOTLIN
from ..models import DependencyType
from .clike import Found, SyntaxTreeAnalyzer, found
from .parsing import node_text, walk

_CLASS_LIKE = frozenset({"class_declaration", "object_declaration", "object_literal", "companion_object"})
_CHAIN_ROOTS = frozenset({"simple_identifier", "this_expression", "super_expression"})


class KotlinAnalyzer(SyntaxTreeAnalyzer):
    language = KOTLIN
    grammar = "kotlin"
    branch_nodes = frozenset(
        {
            "if_expression",
            "for_statement",
            "while_statement",
            "do_while_statement",
            "catch_block",
            "when_entry",
        }
    )

    def extract(self, root: Node, source: bytes) -> Iterable[Found]:
        interfaces = _interface_names(root, source)
        for node in walk(root):
            kind = node.type
            if kind == "import_header":
                yield from _import(node, source)
            elif kind in _CLASS_LIKE:
                yield from _supertypes(node, source, interfaces)
            elif kind == "call_expression":
                yield from _call(node, source)
            elif kind == "property_declaration":
                yield from _property_types(node, source)


def _is_interface(node: Node) -> bool:
    return node.type == "class_declaration" and any(child.type == "interface" for child in node.children)


def _declared_name(node: Node, source: bytes) -> Optional[str]:
    for child in node.children:
        if child.type in ("type_identifier", "simple_identifier"):
            return node_text(child, source)
    return None


def _interface_names(root: Node, source: bytes) -> Set[str]:
    names: Set[str] = set()
    for node in walk(root):
        if _is_interface(node):
            name = _declared_name(node, source)
            if name:
                names.add(name)
    return names


def _import(node: Node, source: bytes) -> Iterator[Found]:
    path = next((child for child in node.named_children if child.type == "identifier"), None)
    if path is None:
        return
    target = node_text(path, source)
    if any(child.type == "wildcard_import" for child in node.children):
        target += ".*"
    yield found(node, target, DependencyType.IMPORT)


def _delegation_specifiers(node: Node) -> List[Node]:
    specifiers: List[Node] = []
    for child in node.children:
        if child.type == "delegation_specifier":
            specifiers.append(child)
        elif child.type == "delegation_specifiers":
            specifiers.extend(item for item in child.named_children if item.type == "delegation_specifier")
    return specifiers


def _supertype_node(specifier: Node) -> Node:
    """The written supertype: ``Base(name)`` keeps its arguments, ``Named by x`` drops the delegate."""
    inner = next((child for child in specifier.named_children if child.type != "annotation"), specifier)
    if inner.type == "explicit_delegation" and inner.named_children:
        return inner.named_children[0]
    return inner


def _simple_name(text: str) -> str:
    return text.split("<", 1)[0].split("(", 1)[0].strip().rsplit(".", 1)[-1]


def _supertypes(node: Node, source: bytes, interfaces: Set[str]) -> Iterator[Found]:
    is_interface = _is_interface(node)
    for position, specifier in enumerate(_delegation_specifiers(node)):
        supertype = _supertype_node(specifier)
        text = node_text(supertype, source)
        if is_interface:
            kind = DependencyType.IMPLEMENTATION
        elif position == 0 and _simple_name(text) not in interfaces:
            kind = DependencyType.INHERITANCE
        else:
            kind = DependencyType.IMPLEMENTATION
        yield found(supertype, text, kind)


def _member_name(navigation: Node, source: bytes) -> Optional[str]:
    suffix = navigation.named_children[-1] if navigation.named_children else None
    if suffix is None or suffix.type != "navigation_suffix":
        return None
    for child in suffix.named_children:
        if child.type == "simple_identifier":
            return node_text(child, source)
    return None


def _dotted(node: Node, source: bytes) -> Optional[str]:
    if node.type in _CHAIN_ROOTS:
        return node_text(node, source)
    if node.type == "navigation_expression" and node.named_children:
        base = _dotted(node.named_children[0], source)
        name = _member_name(node, source)
        if base and name:
            return f"{base}.{name}"
    return None


def _call(node: Node, source: bytes) -> Iterator[Found]:
    if not node.named_children:
        return
    callee = node.named_children[0]
    target = _dotted(callee, source)
    if target is None and callee.type == "navigation_expression":
        # factory().build() keeps the trailing name only
        target = _member_name(callee, source)
    if target:
        yield found(callee, target, DependencyType.FUNCTION_CALL)


def _property_types(node: Node, source: bytes) -> Iterator[Found]:
    for child in node.named_children:
        if child.type == "variable_declaration":
            declarations = [child]
        elif child.type == "multi_variable_declaration":
            declarations = [item for item in child.named_children if item.type == "variable_declaration"]
        else:
            continue
        for declaration in declarations:
            declared = next((item for item in declaration.named_children if item.type.endswith("_type")), None)
            if declared is not None:
                yield found(declared, node_text(declared, source), DependencyType.VARIABLE_REFERENCE)


__all__ = ["KotlinAnalyzer"]
