"""
Method-level chunk extraction.

The pipeline itself lives in `codegraph_lsp.extraction.pipeline`; it is not
re-exported here since it depends on the client package.
"""

from .assembler import ChunkAssembler
from .models import (
    Chunk,
    FlatMethod,
    Location,
    MethodKey,
    Position,
    Range,
    SymbolKind,
    SymbolNode,
    WorkspaceSymbol,
    symbol_kind_name,
)
from .references import ReferenceResolver, find_caller
from .symbols import CollectedFile, SymbolCollector, parse_document_symbols, parse_signature

__all__ = [
    "Chunk",
    "ChunkAssembler",
    "CollectedFile",
    "FlatMethod",
    "Location",
    "MethodKey",
    "Position",
    "Range",
    "ReferenceResolver",
    "SymbolCollector",
    "SymbolKind",
    "SymbolNode",
    "WorkspaceSymbol",
    "find_caller",
    "parse_document_symbols",
    "parse_signature",
    "symbol_kind_name",
]
