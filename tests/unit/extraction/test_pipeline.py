"""
Unit Tests: ChunkExtractionPipeline

End-to-end over real files in tmp_path with a scripted symbol provider.
"""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from codegraph_lsp.config.settings import ExtractionConfig
from codegraph_lsp.extraction.models import SymbolKind
from codegraph_lsp.extraction.pipeline import ChunkExtractionPipeline, discover_files, extract_chunks
from codegraph_lsp.infra.exceptions import ErrorCode, RequestError, ServerStartError
from tests.fakes.fake_lsp import FakeSymbolProvider, location, symbol, uri_of

FOO_SOURCE = "\n".join(
    [
        "public class Foo {",  # 0
        "    public void bar() {",  # 1
        "        baz();",  # 2
        "    }",  # 3
        "    public int baz() {",  # 4
        "        return 1;",  # 5
        "    }",  # 6
        "}",  # 7
    ]
)

MAIN_SOURCE = "\n".join(
    [
        "public class Main {",  # 0
        "    public static void main(String[] args) {",  # 1
        "        new Foo().bar();",  # 2
        "    }",  # 3
        "}",  # 4
    ]
)


def foo_symbols() -> list[dict]:
    return [
        symbol(
            "Foo",
            SymbolKind.CLASS,
            (0, 0, 7, 1),
            (0, 13, 0, 16),
            children=[
                symbol("bar", SymbolKind.METHOD, (1, 4, 3, 5), (1, 16, 1, 19), "() : void"),
                symbol("baz", SymbolKind.METHOD, (4, 4, 6, 5), (4, 15, 4, 18), "() : int"),
            ],
        )
    ]


def main_symbols() -> list[dict]:
    return [
        symbol(
            "Main",
            SymbolKind.CLASS,
            (0, 0, 4, 1),
            (0, 13, 0, 17),
            children=[
                symbol("main", SymbolKind.METHOD, (1, 4, 3, 5), (1, 23, 1, 27), "(String[] args) : void"),
            ],
        )
    ]


@pytest.fixture
def workspace(tmp_path) -> Path:
    src = tmp_path / "src"
    src.mkdir()
    (src / "Foo.java").write_text(FOO_SOURCE, encoding="utf-8")
    (src / "Main.java").write_text(MAIN_SOURCE, encoding="utf-8")
    (tmp_path / "README.md").write_text("not java", encoding="utf-8")
    return tmp_path


def scripted_client(workspace: Path) -> FakeSymbolProvider:
    foo = uri_of(workspace / "src" / "Foo.java")
    main = uri_of(workspace / "src" / "Main.java")
    return FakeSymbolProvider(
        symbols={foo: foo_symbols(), main: main_symbols()},
        references={
            (foo, 4, 15): [location(foo, 2, 8, 11)],
            (foo, 1, 16): [location(main, 2, 18, 21)],
        },
    )


def by_id(chunks) -> dict:
    return {chunk.identifier: chunk for chunk in chunks}


class TestRun:
    @pytest.mark.asyncio
    async def test_bar_calls_baz(self, workspace):
        chunks = await ChunkExtractionPipeline(scripted_client(workspace)).run(workspace)
        result = by_id(chunks)

        assert set(result) == {"Foo::bar", "Foo::baz", "Main::main"}
        assert result["Foo::baz"].called_by == ["Foo::bar"]
        assert result["Foo::baz"].return_type == "int"
        assert result["Foo::baz"].method_code == "    public int baz() {\n        return 1;\n    }"
        assert result["Foo::bar"].dependencies == ["Foo::baz"]

    @pytest.mark.asyncio
    async def test_caller_in_later_file(self, workspace):
        """Main.java sorts after Foo.java but its method is still a known caller"""
        result = by_id(await ChunkExtractionPipeline(scripted_client(workspace)).run(workspace))

        assert result["Foo::bar"].called_by == ["Main::main"]
        assert result["Main::main"].dependencies == ["Foo::bar"]
        assert result["Main::main"].parameters == ["String[] args"]

    @pytest.mark.asyncio
    async def test_files_opened_in_sorted_order(self, workspace):
        client = scripted_client(workspace)

        await ChunkExtractionPipeline(client).run(workspace)

        assert client.opened == [
            uri_of(workspace / "src" / "Foo.java"),
            uri_of(workspace / "src" / "Main.java"),
        ]

    @pytest.mark.asyncio
    async def test_all_symbols_before_any_references(self, workspace):
        client = scripted_client(workspace)
        calls = []
        original_symbols, original_refs = client.document_symbols, client.references

        async def document_symbols(uri):
            calls.append("symbols")
            return await original_symbols(uri)

        async def references(uri, position, include_declaration=False):
            calls.append("references")
            return await original_refs(uri, position, include_declaration)

        client.document_symbols = document_symbols
        client.references = references

        await ChunkExtractionPipeline(client).run(workspace)

        assert calls == ["symbols", "symbols", "references", "references", "references"]

    @pytest.mark.asyncio
    async def test_symbol_failure_skips_one_file(self, workspace):
        client = scripted_client(workspace)
        client.symbols[uri_of(workspace / "src" / "Main.java")] = RequestError(
            "textDocument/documentSymbol", ErrorCode.INTERNAL_ERROR, "boom"
        )

        result = by_id(await ChunkExtractionPipeline(client).run(workspace))

        assert set(result) == {"Foo::bar", "Foo::baz"}
        # Main::main was never collected, so its call site cannot be attributed
        assert result["Foo::bar"].called_by == []
        assert result["Foo::baz"].called_by == ["Foo::bar"]

    @pytest.mark.asyncio
    async def test_reference_failure_keeps_chunk(self, workspace):
        client = scripted_client(workspace)
        foo = uri_of(workspace / "src" / "Foo.java")
        client.reference_results[(foo, 4, 15)] = RequestError(
            "textDocument/references", ErrorCode.REQUEST_FAILED, "failed"
        )

        result = by_id(await ChunkExtractionPipeline(client).run(workspace))

        assert result["Foo::baz"].called_by == []
        assert result["Foo::bar"].called_by == ["Main::main"]

    @pytest.mark.asyncio
    async def test_unreadable_file_skipped(self, workspace):
        (workspace / "src" / "Broken.java").write_bytes(b"\xff\xfe\x00bad")

        result = by_id(await ChunkExtractionPipeline(scripted_client(workspace)).run(workspace))

        assert set(result) == {"Foo::bar", "Foo::baz", "Main::main"}

    @pytest.mark.asyncio
    async def test_empty_workspace(self, java_workspace):
        assert await ChunkExtractionPipeline(FakeSymbolProvider()).run(java_workspace) == []


class TestDiscovery:
    def test_sorted_java_files_only(self, workspace):
        files = discover_files(workspace)
        assert [f.name for f in files] == ["Foo.java", "Main.java"]

    def test_custom_glob(self, workspace):
        pipeline = ChunkExtractionPipeline(FakeSymbolProvider(), ExtractionConfig(file_glob="**/*.md"))
        assert [f.name for f in pipeline.discover_files(workspace)] == ["README.md"]


class TestExtractChunks:
    @pytest.mark.asyncio
    async def test_server_start_error_propagates(self, workspace):
        with patch(
            "codegraph_lsp.extraction.pipeline.JavaLanguageServerClient.start",
            new=AsyncMock(side_effect=ServerStartError("no jdtls")),
        ):
            with pytest.raises(ServerStartError):
                await extract_chunks(workspace)
