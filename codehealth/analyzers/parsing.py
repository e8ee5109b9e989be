"""Tree-sitter grammars and node helpers shared by the syntax-tree analyzers."""

from __future__ import annotations

from functools import lru_cache
from typing import Callable, Dict, Iterator, Optional

import tree_sitter_java
import tree_sitter_javascript
import tree_sitter_kotlin
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

# Grammar key -> function returning the compiled language pointer.
_GRAMMARS: Dict[str, Callable[[], object]] = {
    "kotlin": tree_sitter_kotlin.language,
    "java": tree_sitter_java.language,
    "javascript": tree_sitter_javascript.language,
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
}

GRAMMARS = frozenset(_GRAMMARS)


@lru_cache(maxsize=None)
def get_language(grammar: str) -> Language:
    try:
        loader = _GRAMMARS[grammar]
    except KeyError:
        raise ValueError(f"Unknown grammar: {grammar}") from None
    return Language(loader())


def parse_source(source: bytes, grammar: str) -> Tree:
    # Parsers are not shared between threads; a new one per file is cheap.
    parser = Parser()
    parser.language = get_language(grammar)
    return parser.parse(source)


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal of ``node`` and all of its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def text_from(first: Node, last: Node, source: bytes) -> str:
    """Source text spanning ``first`` through ``last``."""
    return source[first.start_byte : last.end_byte].decode("utf-8", errors="ignore")


def first_error(root: Node) -> Optional[Node]:
    """The first ``ERROR`` or missing node in document order, if any."""
    stack = [root]
    while stack:
        current = stack.pop()
        if current.type == "ERROR" or current.is_missing:
            return current
        stack.extend(child for child in reversed(current.children) if child.has_error or child.is_missing)
    return None


def describe_error(root: Node, source: bytes) -> str:
    node = first_error(root)
    if node is None:
        return "syntax error"
    line = node.start_point[0] + 1
    if node.is_missing:
        return f"line {line}: missing {node.type!r}"
    snippet = node_text(node, source).strip().splitlines()
    return f"line {line}: unexpected {snippet[0][:40]!r}" if snippet else f"line {line}: syntax error"


def unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"`":
        return text[1:-1]
    return text


__all__ = [
    "GRAMMARS",
    "describe_error",
    "first_error",
    "get_language",
    "node_text",
    "parse_source",
    "text_from",
    "unquote",
    "walk",
]
