"""
codegraph-lsp CLI

Command-line interface for extracting method chunks from a Java workspace
and searching its symbols.
"""

import asyncio
import json
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from codegraph_lsp.client.java_client import search_workspace_symbols
from codegraph_lsp.common.observability import setup_logging
from codegraph_lsp.config.settings import Settings, get_settings
from codegraph_lsp.extraction.models import Chunk, WorkspaceSymbol
from codegraph_lsp.extraction.pipeline import discover_files, extract_chunks
from codegraph_lsp.infra.exceptions import LSPError, ServerStartError

app = typer.Typer(
    name="codegraph-lsp",
    help="Method-level chunks and call graphs from a Java language server",
    add_completion=False,
)

# stdout carries chunk JSON; everything human-readable goes to stderr
console = Console(stderr=True)

T = TypeVar("T")


def _apply_overrides(
    settings: Settings,
    jdtls_home: Path | None = None,
    timeout: float | None = None,
    log_format: str | None = None,
) -> Settings:
    server = settings.server
    if jdtls_home is not None:
        server = server.model_copy(update={"jdtls_home": jdtls_home})

    transport = settings.transport
    if timeout is not None:
        transport = transport.model_copy(update={"request_timeout": timeout})

    logging_config = settings.logging
    if log_format is not None:
        logging_config = logging_config.model_copy(update={"format": log_format})

    return settings.model_copy(update={"server": server, "transport": transport, "logging": logging_config})


def _run_or_exit(coro: Coroutine[Any, Any, T]) -> T:
    """Run a server session; any language server failure becomes exit code 1."""
    try:
        return asyncio.run(coro)
    except ServerStartError as e:
        console.print(f"[bold red]Language server failed to start:[/bold red] {e}")
        raise typer.Exit(code=1)
    except LSPError as e:
        console.print(f"[bold red]Language server error:[/bold red] {e}")
        raise typer.Exit(code=1)


def _chunks_to_json(chunks: list[Chunk]) -> str:
    return json.dumps([chunk.model_dump(by_alias=True) for chunk in chunks], indent=2, ensure_ascii=False)


def _display_summary(chunks: list[Chunk]) -> None:
    per_class: dict[str, list[Chunk]] = {}
    for chunk in chunks:
        per_class.setdefault(chunk.class_name, []).append(chunk)

    table = Table(title="Extracted Chunks")
    table.add_column("Class", style="cyan")
    table.add_column("Methods", justify="right")
    table.add_column("Inbound Edges", justify="right", style="green")

    for class_name, class_chunks in per_class.items():
        table.add_row(
            class_name,
            str(len(class_chunks)),
            str(sum(len(chunk.called_by) for chunk in class_chunks)),
        )

    console.print(table)
    console.print(f"[bold]Total:[/bold] {len(chunks)} chunks in {len(per_class)} classes")


def _display_symbols(query: str, symbols: list[WorkspaceSymbol]) -> None:
    if not symbols:
        console.print(f"[yellow]No symbols found for '{escape(query)}'[/yellow]")
        return

    table = Table(title=f"Symbols matching '{escape(query)}'")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Location")
    table.add_column("Container", style="green")

    for index, symbol in enumerate(symbols, 1):
        start = symbol.location.range.start
        table.add_row(
            str(index),
            symbol.name,
            symbol.kind_name,
            # 1-based for humans
            f"{symbol.location.uri}:{start.line + 1}:{start.character + 1}",
            symbol.container_name or "",
        )

    console.print(table)


@app.command()
def extract(
    workspace: Path = typer.Argument(..., help="Java project root", exists=True, file_okay=False),
    jdtls_home: Path | None = typer.Option(None, "--jdtls-home", help="JDT LS distribution directory"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write chunk JSON here instead of stdout"),
    timeout: float | None = typer.Option(None, "--timeout", "-t", help="Per-request timeout in seconds"),
    log_format: str | None = typer.Option(None, "--log-format", help="Log output format (console/json)"),
):
    """
    Extract method chunks with their callers.

    Starts JDT LS for WORKSPACE, collects every method, resolves its
    references, and writes the chunks as JSON.
    """
    settings = _apply_overrides(get_settings(), jdtls_home, timeout, log_format)
    setup_logging(level=settings.logging.level, format=settings.logging.format)

    chunks = _run_or_exit(extract_chunks(workspace, settings))

    payload = _chunks_to_json(chunks)
    if output is not None:
        output.write_text(payload + "\n", encoding="utf-8")
        console.print(f"[dim]Wrote {output}[/dim]")
    else:
        typer.echo(payload)

    _display_summary(chunks)


@app.command()
def search(
    workspace: Path = typer.Argument(..., help="Java project root", exists=True, file_okay=False),
    query: str = typer.Argument(..., help="Symbol name or prefix"),
    jdtls_home: Path | None = typer.Option(None, "--jdtls-home", help="JDT LS distribution directory"),
    timeout: float | None = typer.Option(None, "--timeout", "-t", help="Per-request timeout in seconds"),
    log_format: str | None = typer.Option(None, "--log-format", help="Log output format (console/json)"),
):
    """
    Search WORKSPACE for symbols matching QUERY.
    """
    settings = _apply_overrides(get_settings(), jdtls_home, timeout, log_format)
    setup_logging(level=settings.logging.level, format=settings.logging.format)

    symbols = _run_or_exit(search_workspace_symbols(workspace, query, settings))
    _display_symbols(query, symbols)


@app.command()
def discover(
    workspace: Path = typer.Argument(..., help="Java project root", exists=True, file_okay=False),
    pattern: str | None = typer.Option(None, "--glob", "-g", help="File glob (default from settings)"),
):
    """
    List the source files an extraction would analyse.
    """
    file_glob = pattern or get_settings().extraction.file_glob
    files = discover_files(workspace, file_glob)

    for path in files:
        typer.echo(str(path.relative_to(workspace)))
    console.print(f"[dim]{len(files)} files matching {file_glob}[/dim]")


if __name__ == "__main__":
    app()
