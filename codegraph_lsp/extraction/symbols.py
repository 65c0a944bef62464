"""
Symbol Collector

Flattens one file's documentSymbol tree into method records.

Traversal is depth-first in server order. The nearest enclosing type
(class, interface, enum) is passed down explicitly; a method with no
enclosing type cannot be anchored and is skipped along with its subtree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from codegraph_lsp.common.observability import get_logger
from codegraph_lsp.extraction.models import TYPE_KINDS, Chunk, FlatMethod, Range, SymbolKind, SymbolNode
from codegraph_lsp.infra.exceptions import ProtocolError

logger = get_logger(__name__)

SIGNATURE_SEPARATOR = " : "

_OPENERS = {"<": ">", "(": ")", "[": "]"}
_CLOSERS = frozenset(_OPENERS.values())


@dataclass
class CollectedFile:
    """Methods of one file and their partial chunks, in the same order."""

    methods: list[FlatMethod] = field(default_factory=list)
    chunks: list[Chunk] = field(default_factory=list)


def parse_document_symbols(result: Any, uri: str = "") -> list[SymbolNode]:
    """
    Convert a raw documentSymbol result into SymbolNode trees.

    The flat SymbolInformation[] shape has no body ranges or nesting and is
    skipped with a warning.
    """
    if not result:
        return []
    if not isinstance(result, list):
        raise ProtocolError(f"documentSymbol result must be a list, got {type(result).__name__}")

    if any(isinstance(item, dict) and "location" in item and "range" not in item for item in result):
        logger.warning("lsp_flat_symbols_unsupported", uri=uri, count=len(result))
        return []

    return [SymbolNode.from_lsp(item) for item in result]


def split_parameters(text: str) -> list[str]:
    """Split a parameter list on top-level commas (generic arguments stay intact)."""
    params: list[str] = []
    depth = 0
    current: list[str] = []

    for char in text:
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS and depth > 0:
            depth -= 1
        elif char == "," and depth == 0:
            params.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    tail = "".join(current).strip()
    if tail or params:
        params.append(tail)
    return [p for p in params if p]


def _strip_parens(text: str) -> str:
    text = text.strip()
    if text.startswith("("):
        text = text[1:]
    if text.endswith(")"):
        text = text[:-1]
    return text


def parse_signature(detail: str | None, void_type: str = "void") -> tuple[str, list[str]]:
    """
    Parse a detail string shaped like "(T1 a, T2 b) : R".

    Returns:
        (return type, parameters)

    Examples:
        >>> parse_signature("(String name, int count) : boolean")
        ('boolean', ['String name', 'int count'])
        >>> parse_signature("(Map<String, Integer> m)")
        ('void', ['Map<String, Integer> m'])
        >>> parse_signature(None)
        ('void', [])
    """
    if not detail:
        return void_type, []

    parts = detail.split(SIGNATURE_SEPARATOR)
    if len(parts) == 2:
        return_type = parts[1].strip() or void_type
        return return_type, split_parameters(_strip_parens(parts[0]))

    segment = detail.strip()
    if len(parts) == 1 and segment.startswith("(") and segment.endswith(")"):
        return void_type, split_parameters(_strip_parens(segment))

    return void_type, []


def slice_source(lines: list[str], span: Range) -> str:
    """Source lines covered by `span`, first and last line included."""
    return "\n".join(lines[span.start.line : span.end.line + 1])


class SymbolCollector:
    """
    Pure transformation: symbol tree + source text -> methods and partial chunks.

    Deterministic and free of I/O; `called_by` is left empty for the
    reference pass to fill in.
    """

    def __init__(self, void_type: str = "void"):
        self.void_type = void_type

    def collect(self, file_uri: str, symbols: list[SymbolNode], source_text: str) -> CollectedFile:
        collected = CollectedFile()
        lines = source_text.split("\n")
        self._walk(symbols, None, file_uri, lines, collected)
        return collected

    def _walk(
        self,
        nodes: list[SymbolNode],
        enclosing_type: str | None,
        file_uri: str,
        lines: list[str],
        collected: CollectedFile,
    ) -> None:
        for node in nodes:
            if node.kind in TYPE_KINDS:
                context = node.name
            elif node.kind == SymbolKind.METHOD:
                if enclosing_type is None:
                    logger.warning("lsp_method_without_container", method=node.name, uri=file_uri)
                    continue
                context = enclosing_type
                self._add_method(node, enclosing_type, file_uri, lines, collected)
            else:
                context = enclosing_type

            if node.children:
                self._walk(node.children, context, file_uri, lines, collected)

    def _add_method(
        self,
        node: SymbolNode,
        class_name: str,
        file_uri: str,
        lines: list[str],
        collected: CollectedFile,
    ) -> None:
        method_code = slice_source(lines, node.range)
        return_type, parameters = parse_signature(node.detail, self.void_type)

        collected.methods.append(
            FlatMethod(file_uri=file_uri, class_name=class_name, symbol=node, source_text=method_code)
        )
        collected.chunks.append(
            Chunk(
                class_name=class_name,
                method_name=node.name,
                return_type=return_type,
                parameters=parameters,
                method_code=method_code,
            )
        )
