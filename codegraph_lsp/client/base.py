"""
Language client port

The extraction pipeline only needs these three operations from a language
server; JavaLanguageServerClient implements them over a TransportSession.
"""

from pathlib import Path
from typing import Any, Protocol

from codegraph_lsp.extraction.models import Position


class SymbolProvider(Protocol):
    """Source of document symbols and references."""

    def did_open(self, uri: str, text: str) -> None:
        """Announce a document and its full text (textDocument/didOpen)."""
        ...

    async def document_symbols(self, uri: str) -> list[dict[str, Any]]:
        """Raw textDocument/documentSymbol result for one file."""
        ...

    async def references(
        self,
        uri: str,
        position: Position,
        include_declaration: bool = False,
    ) -> list[dict[str, Any]]:
        """Raw textDocument/references result for the symbol at `position`."""
        ...


def path_to_uri(path: Path | str) -> str:
    """file:// URI for a local path (drive letters and escaping handled by pathlib)."""
    return Path(path).resolve().as_uri()
