"""
Java Language Server Client

Drives Eclipse JDT LS over JSON-RPC/stdio.

Usage:
    async with JavaLanguageServerClient(settings) as client:
        await client.start("/path/to/project")
        client.did_open(uri, text)
        symbols = await client.document_symbols(uri)
        matches = await client.workspace_symbols("UserService")
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any

from codegraph_lsp import __version__
from codegraph_lsp.client.base import path_to_uri
from codegraph_lsp.common.observability import get_logger
from codegraph_lsp.config.settings import Settings, get_settings
from codegraph_lsp.extraction.models import Position, SymbolKind, WorkspaceSymbol
from codegraph_lsp.infra.exceptions import LSPError, ProtocolError, TransportError
from codegraph_lsp.transport.launcher import JdtLauncher, ServerProcess
from codegraph_lsp.transport.session import TransportSession

logger = get_logger(__name__)


class JavaLanguageServerClient:
    """
    JDT LS client implementing the SymbolProvider port.

    Lifecycle: start() launches the server and performs the
    initialize/initialized handshake; stop() sends shutdown/exit and
    reaps the process.
    """

    def __init__(self, settings: Settings | None = None, launcher: JdtLauncher | None = None):
        self.settings = settings or get_settings()
        self.launcher = launcher or JdtLauncher(self.settings.server)
        self.server_capabilities: dict[str, Any] = {}

        self._process: ServerProcess | None = None
        self._session: TransportSession | None = None
        self._opened: set[str] = set()

    async def __aenter__(self) -> JavaLanguageServerClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    @property
    def session(self) -> TransportSession:
        if self._session is None:
            raise TransportError("Language server not started")
        return self._session

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, workspace: Path | str) -> None:
        """
        Launch the server and complete the initialize handshake.

        Raises:
            ServerStartError: Server could not be spawned
            LSPError: initialize failed
        """
        workspace = Path(workspace).resolve()
        self._process = await self.launcher.launch(workspace)

        transport = self.settings.transport
        self._session = TransportSession(
            self._process.stdout,
            self._process.stdin,
            request_timeout=transport.request_timeout,
            max_buffer_bytes=transport.max_buffer_bytes,
            read_chunk_size=transport.read_chunk_size,
        )
        self._session.start()

        try:
            await self._initialize(workspace)
        except LSPError:
            await self.stop()
            raise

        if self.settings.server.startup_delay:
            await asyncio.sleep(self.settings.server.startup_delay)
        logger.info("lsp_client_ready", workspace=str(workspace))

    async def _initialize(self, workspace: Path) -> None:
        root_uri = path_to_uri(workspace)
        params = {
            "processId": os.getpid(),
            "clientInfo": {"name": "codegraph-lsp", "version": __version__},
            "rootUri": root_uri,
            "workspaceFolders": [{"uri": root_uri, "name": workspace.name}],
            "capabilities": {
                "workspace": {
                    "applyEdit": False,
                    "workspaceFolders": True,
                    "configuration": True,
                    "symbol": {
                        "dynamicRegistration": False,
                        "symbolKind": {"valueSet": [kind.value for kind in SymbolKind]},
                    },
                },
                "textDocument": {
                    "synchronization": {"dynamicRegistration": False, "didSave": False},
                    "references": {"dynamicRegistration": False},
                    "documentSymbol": {
                        "dynamicRegistration": False,
                        "hierarchicalDocumentSymbolSupport": True,
                        "symbolKind": {"valueSet": [kind.value for kind in SymbolKind]},
                    },
                },
            },
            "initializationOptions": {
                "workspaceFolders": [root_uri],
                "settings": {"java": {"configuration": {"updateBuildConfiguration": "automatic"}}},
            },
            "trace": "off",
        }

        result = await self.session.request("initialize", params)
        self.server_capabilities = (result or {}).get("capabilities", {})
        logger.info("lsp_initialized", capabilities=sorted(self.server_capabilities))

        self.session.notify("initialized", {})

    async def stop(self) -> None:
        """Graceful shutdown; errors are logged, never raised."""
        if self._session is not None:
            try:
                await self._session.request("shutdown", timeout=10.0)
                self._session.notify("exit")
            except LSPError as e:
                logger.warning("lsp_shutdown_failed", error=str(e))
            await self._session.stop()
            self._session = None

        if self._process is not None:
            await self._process.terminate()
            self._process = None

        self._opened.clear()

    # ------------------------------------------------------------------
    # SymbolProvider
    # ------------------------------------------------------------------

    def did_open(self, uri: str, text: str) -> None:
        if uri in self._opened:
            return
        self.session.notify(
            "textDocument/didOpen",
            {
                "textDocument": {
                    "uri": uri,
                    "languageId": self.settings.extraction.language_id,
                    "version": 1,
                    "text": text,
                }
            },
        )
        self._opened.add(uri)

    async def document_symbols(self, uri: str) -> list[dict[str, Any]]:
        result = await self.session.request("textDocument/documentSymbol", {"textDocument": {"uri": uri}})
        return result or []

    async def references(
        self,
        uri: str,
        position: Position,
        include_declaration: bool = False,
    ) -> list[dict[str, Any]]:
        result = await self.session.request(
            "textDocument/references",
            {
                "textDocument": {"uri": uri},
                "position": position.to_lsp(),
                "context": {"includeDeclaration": include_declaration},
            },
        )
        return result or []

    # ------------------------------------------------------------------
    # Workspace queries
    # ------------------------------------------------------------------

    async def workspace_symbols(self, query: str) -> list[WorkspaceSymbol]:
        """
        Search the whole workspace for symbols matching `query`.

        Entries the server sends in an unexpected shape are logged and skipped.
        """
        result = await self.session.request("workspace/symbol", {"query": query})
        if not isinstance(result, list):
            result = []

        symbols = []
        for item in result:
            try:
                symbols.append(WorkspaceSymbol.from_lsp(item))
            except ProtocolError as e:
                logger.warning("lsp_workspace_symbol_malformed", query=query, error=str(e))

        logger.info("lsp_workspace_symbols_found", query=query, count=len(symbols))
        return symbols


async def search_workspace_symbols(
    workspace: Path | str,
    query: str,
    settings: Settings | None = None,
) -> list[WorkspaceSymbol]:
    """
    Start a Java language server for `workspace`, run one symbol search, stop it.

    Raises:
        ServerStartError: The server could not be launched
        LSPError: initialize or the search request failed
    """
    client = JavaLanguageServerClient(settings)
    try:
        await client.start(workspace)
        return await client.workspace_symbols(query)
    finally:
        await client.stop()
