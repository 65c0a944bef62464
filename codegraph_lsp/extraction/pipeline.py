"""
Chunk Extraction Pipeline

Two passes over a workspace:
    1. Symbols: didOpen + documentSymbol per file -> methods and partial chunks
    2. References: textDocument/references per method -> calledBy edges
then assembly into complete chunks.

The symbol pass finishes for every file before the first references request,
so a caller in a later file is still a known candidate.

Usage:
    chunks = await extract_chunks("/path/to/project")
"""

from __future__ import annotations

from pathlib import Path

from codegraph_lsp.client.base import SymbolProvider, path_to_uri
from codegraph_lsp.client.java_client import JavaLanguageServerClient
from codegraph_lsp.common.observability import LogPerformance, add_context, clear_context, get_logger
from codegraph_lsp.config.settings import ExtractionConfig, Settings, get_settings
from codegraph_lsp.extraction.assembler import ChunkAssembler
from codegraph_lsp.extraction.models import Chunk
from codegraph_lsp.extraction.references import ReferenceResolver
from codegraph_lsp.extraction.symbols import CollectedFile, SymbolCollector, parse_document_symbols
from codegraph_lsp.infra.exceptions import LSPError

logger = get_logger(__name__)


def discover_files(workspace: Path | str, file_glob: str = "**/*.java") -> list[Path]:
    """Files under `workspace` matching `file_glob`, in sorted order."""
    return sorted(path for path in Path(workspace).glob(file_glob) if path.is_file())


class ChunkExtractionPipeline:
    """
    Orchestrates collection, resolution, and assembly against a SymbolProvider.

    File-level and method-level failures are logged and skipped; the run
    always produces whatever chunks could be built.
    """

    def __init__(self, client: SymbolProvider, config: ExtractionConfig | None = None):
        self.client = client
        self.config = config or ExtractionConfig()
        self.collector = SymbolCollector(void_type=self.config.void_type)
        self.resolver = ReferenceResolver(client)
        self.assembler = ChunkAssembler()

    def discover_files(self, workspace: Path | str) -> list[Path]:
        return discover_files(workspace, self.config.file_glob)

    async def run(self, workspace: Path | str) -> list[Chunk]:
        workspace = Path(workspace).resolve()
        files = self.discover_files(workspace)
        logger.info("extraction_started", workspace=str(workspace), files=len(files))

        collected = CollectedFile()
        with LogPerformance(logger, "symbol_pass", files=len(files)):
            for path in files:
                result = await self._collect_file(path)
                if result is not None:
                    collected.methods.extend(result.methods)
                    collected.chunks.extend(result.chunks)

        with LogPerformance(logger, "reference_pass", methods=len(collected.methods)) as perf:
            edges = await self.resolver.resolve(collected.methods)
            perf.record(edges=sum(len(callers) for callers in edges.values()))

        chunks = self.assembler.assemble(collected.chunks, edges)
        logger.info("extraction_complete", files=len(files), chunks=len(chunks))
        return chunks

    async def _collect_file(self, path: Path) -> CollectedFile | None:
        uri = path_to_uri(path)
        add_context(uri=uri)
        try:
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.error("source_read_failed", path=str(path), error=str(e))
                return None

            try:
                self.client.did_open(uri, text)
                raw = await self.client.document_symbols(uri)
                symbols = parse_document_symbols(raw, uri)
            except LSPError as e:
                logger.error("document_symbols_failed", error=str(e))
                return None

            result = self.collector.collect(uri, symbols, text)
            logger.debug("file_collected", methods=len(result.methods))
            return result
        finally:
            clear_context("uri")


async def extract_chunks(workspace: Path | str, settings: Settings | None = None) -> list[Chunk]:
    """
    Start a Java language server for `workspace`, extract its chunks, stop it.

    Raises:
        ServerStartError: The server could not be launched
    """
    settings = settings or get_settings()
    client = JavaLanguageServerClient(settings)
    try:
        await client.start(workspace)
        return await ChunkExtractionPipeline(client, settings.extraction).run(workspace)
    finally:
        await client.stop()
