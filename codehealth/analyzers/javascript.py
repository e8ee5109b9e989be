"""JavaScript and TypeScript analyzers.

JSX is part of the JavaScript grammar. TypeScript files use the ``typescript``
grammar except ``.tsx`` files, which need the ``tsx`` variant because the two
disagree on ``<T>value`` casts.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from tree_sitter import Node

from ..languages import JAVASCRIPT, TYPESCRIPT, extension_of
from ..models import CodeFile, DependencyType
from .clike import Found, SyntaxTreeAnalyzer, found
from .parsing import node_text, text_from, unquote, walk

_CHAIN_ROOTS = frozenset({"identifier", "this", "super"})
_TYPED_DECLARATIONS = frozenset({"variable_declarator", "public_field_definition", "property_signature"})


class JavaScriptAnalyzer(SyntaxTreeAnalyzer):
    language = JAVASCRIPT
    grammar = "javascript"
    branch_nodes = frozenset(
        {
            "if_statement",
            "for_statement",
            "for_in_statement",
            "while_statement",
            "do_statement",
            "catch_clause",
            "switch_case",
            "switch_default",
        }
    )

    def extract(self, root: Node, source: bytes) -> Iterable[Found]:
        for node in walk(root):
            yield from self.edges(node, source)

    def edges(self, node: Node, source: bytes) -> Iterator[Found]:
        kind = node.type
        if kind in ("import_statement", "export_statement"):
            module = node.child_by_field_name("source")
            if module is not None:
                yield found(module, unquote(node_text(module, source)), DependencyType.IMPORT)
        elif kind == "call_expression":
            yield from _call(node, source)
        elif kind == "new_expression":
            constructor = node.child_by_field_name("constructor")
            target = _dotted(constructor, source) if constructor is not None else None
            if target:
                yield found(node, target, DependencyType.FUNCTION_CALL)
        elif kind == "class_heritage":
            # TypeScript wraps the target in extends/implements clauses instead
            value = node.named_children[0] if node.named_children else None
            if value is not None and value.type not in ("extends_clause", "implements_clause"):
                yield found(value, node_text(value, source), DependencyType.INHERITANCE)


class TypeScriptAnalyzer(JavaScriptAnalyzer):
    language = TYPESCRIPT
    grammar = "typescript"

    def grammar_for(self, seed: CodeFile) -> str:
        return "tsx" if extension_of(seed.path) == "tsx" else self.grammar

    def edges(self, node: Node, source: bytes) -> Iterator[Found]:
        kind = node.type
        if kind == "extends_clause":
            if node.named_children:
                first = node.named_children[0]
                yield found(first, text_from(first, node, source), DependencyType.INHERITANCE)
        elif kind in ("implements_clause", "extends_type_clause"):
            for declared in node.named_children:
                yield found(declared, node_text(declared, source), DependencyType.IMPLEMENTATION)
        elif kind in _TYPED_DECLARATIONS:
            yield from _annotated_type(node, source)
        else:
            yield from super().edges(node, source)


def _dotted(node: Node, source: bytes) -> Optional[str]:
    if node.type in _CHAIN_ROOTS:
        return node_text(node, source)
    if node.type == "member_expression":
        base = node.child_by_field_name("object")
        member = node.child_by_field_name("property")
        if base is not None and member is not None:
            prefix = _dotted(base, source)
            if prefix:
                return f"{prefix}.{node_text(member, source)}"
    return None


def _string_argument(node: Node, source: bytes) -> Optional[str]:
    arguments = node.child_by_field_name("arguments")
    if arguments is None or not arguments.named_children:
        return None
    first = arguments.named_children[0]
    if first.type != "string":
        return None
    return unquote(node_text(first, source))


def _call(node: Node, source: bytes) -> Iterator[Found]:
    function = node.child_by_field_name("function")
    if function is None or function.type == "super":
        return
    if function.type == "import" or (function.type == "identifier" and node_text(function, source) == "require"):
        module = _string_argument(node, source)
        if module is not None:
            yield found(node, module, DependencyType.IMPORT)
            return
    target = _dotted(function, source)
    if target is None and function.type == "member_expression":
        # /re/.test(x) and factory().build() keep the trailing name only
        member = function.child_by_field_name("property")
        target = node_text(member, source) if member is not None else None
    if target:
        yield found(node, target, DependencyType.FUNCTION_CALL)


def _annotated_type(node: Node, source: bytes) -> Iterator[Found]:
    annotation = node.child_by_field_name("type")
    if annotation is None or annotation.type != "type_annotation" or not annotation.named_children:
        return
    declared = annotation.named_children[0]
    yield found(declared, node_text(declared, source), DependencyType.VARIABLE_REFERENCE)


__all__ = ["JavaScriptAnalyzer", "TypeScriptAnalyzer"]
