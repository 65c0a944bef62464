"""
Unit Tests: SymbolCollector and signature parsing
"""

import pytest

from codegraph_lsp.extraction.models import SymbolKind, SymbolNode
from codegraph_lsp.extraction.symbols import (
    SymbolCollector,
    parse_document_symbols,
    parse_signature,
    split_parameters,
)
from codegraph_lsp.infra.exceptions import ProtocolError
from tests.fakes.fake_lsp import symbol

URI = "file:///w/src/Shapes.java"

SOURCE = "\n".join(
    [
        "public class Shapes {",  # 0
        "    public double area(double w, double h) {",  # 1
        "        return w * h;",  # 2
        "    }",  # 3
        "    static class Inner {",  # 4
        "        void run() {}",  # 5
        "    }",  # 6
        "    interface Visitor {",  # 7
        "        void visit(Shapes s);",  # 8
        "    }",  # 9
        "    enum Kind {",  # 10
        "        SQUARE;",  # 11
        "        String label() { return name(); }",  # 12
        "    }",  # 13
        "}",  # 14
    ]
)


def shapes_tree() -> list[SymbolNode]:
    return parse_document_symbols(
        [
            symbol(
                "Shapes",
                SymbolKind.CLASS,
                (0, 0, 14, 1),
                (0, 13, 0, 19),
                children=[
                    symbol("area", SymbolKind.METHOD, (1, 4, 3, 5), (1, 18, 1, 22), "(double w, double h) : double"),
                    symbol(
                        "Inner",
                        SymbolKind.CLASS,
                        (4, 4, 6, 5),
                        children=[symbol("run", SymbolKind.METHOD, (5, 8, 5, 21), (5, 13, 5, 16), "() : void")],
                    ),
                    symbol(
                        "Visitor",
                        SymbolKind.INTERFACE,
                        (7, 4, 9, 5),
                        children=[symbol("visit", SymbolKind.METHOD, (8, 8, 8, 29), (8, 13, 8, 18), "(Shapes s) : void")],
                    ),
                    symbol(
                        "Kind",
                        SymbolKind.ENUM,
                        (10, 4, 13, 5),
                        children=[
                            symbol("SQUARE", SymbolKind.ENUM_MEMBER, (11, 8, 11, 14)),
                            symbol("label", SymbolKind.METHOD, (12, 8, 12, 41), (12, 15, 12, 20), "() : String"),
                        ],
                    ),
                ],
            )
        ],
        URI,
    )


class TestParseSignature:
    @pytest.mark.parametrize(
        "detail,expected",
        [
            ("(String name, int count) : boolean", ("boolean", ["String name", "int count"])),
            ("() : void", ("void", [])),
            ("(int x)", ("void", ["int x"])),
            ("(Map<String, Integer> m, int n) : List<String>", ("List<String>", ["Map<String, Integer> m", "int n"])),
            (None, ("void", [])),
            ("", ("void", [])),
            ("some unexpected detail", ("void", [])),
        ],
    )
    def test_shapes(self, detail, expected):
        assert parse_signature(detail) == expected

    def test_custom_void_type(self):
        assert parse_signature(None, void_type="Unit") == ("Unit", [])

    def test_split_parameters_nested_generics(self):
        assert split_parameters("Map<String, List<Integer>> a, Function<A, B> f, int[] xs") == [
            "Map<String, List<Integer>> a",
            "Function<A, B> f",
            "int[] xs",
        ]


class TestCollect:
    def test_methods_in_traversal_order(self):
        collected = SymbolCollector().collect(URI, shapes_tree(), SOURCE)

        assert [m.identifier for m in collected.methods] == [
            "Shapes::area",
            "Inner::run",
            "Visitor::visit",
            "Kind::label",
        ]
        assert [c.identifier for c in collected.chunks] == [m.identifier for m in collected.methods]

    def test_nearest_enclosing_type_wins(self):
        collected = SymbolCollector().collect(URI, shapes_tree(), SOURCE)
        run = collected.methods[1]

        assert run.class_name == "Inner"
        assert run.file_uri == URI

    def test_chunk_fields(self):
        chunk = SymbolCollector().collect(URI, shapes_tree(), SOURCE).chunks[0]

        assert chunk.class_name == "Shapes"
        assert chunk.method_name == "area"
        assert chunk.return_type == "double"
        assert chunk.parameters == ["double w", "double h"]
        assert chunk.called_by == []
        assert chunk.method_code == "    public double area(double w, double h) {\n        return w * h;\n    }"

    def test_single_line_method_code(self):
        chunk = SymbolCollector().collect(URI, shapes_tree(), SOURCE).chunks[3]
        assert chunk.method_code == "        String label() { return name(); }"

    def test_method_without_type_is_skipped_with_children(self):
        tree = parse_document_symbols(
            [
                symbol(
                    "orphan",
                    SymbolKind.METHOD,
                    (0, 0, 2, 1),
                    children=[symbol("nested", SymbolKind.METHOD, (1, 0, 1, 5))],
                ),
                symbol(
                    "Real",
                    SymbolKind.CLASS,
                    (3, 0, 5, 1),
                    children=[symbol("ok", SymbolKind.METHOD, (4, 0, 4, 10))],
                ),
            ]
        )
        collected = SymbolCollector().collect(URI, tree, "a\nb\nc\nd\ne\nf")

        assert [m.identifier for m in collected.methods] == ["Real::ok"]

    def test_method_nested_in_method_keeps_outer_type(self):
        tree = parse_document_symbols(
            [
                symbol(
                    "Outer",
                    SymbolKind.CLASS,
                    (0, 0, 6, 1),
                    children=[
                        symbol(
                            "build",
                            SymbolKind.METHOD,
                            (1, 4, 5, 5),
                            children=[symbol("compare", SymbolKind.METHOD, (2, 8, 4, 9))],
                        )
                    ],
                )
            ]
        )
        collected = SymbolCollector().collect(URI, tree, "\n".join(["x"] * 7))

        assert [m.identifier for m in collected.methods] == ["Outer::build", "Outer::compare"]

    def test_non_method_kinds_ignored(self):
        tree = parse_document_symbols(
            [
                symbol(
                    "Holder",
                    SymbolKind.CLASS,
                    (0, 0, 3, 1),
                    children=[
                        symbol("count", SymbolKind.FIELD, (1, 4, 1, 20)),
                        symbol("Holder", SymbolKind.CONSTRUCTOR, (2, 4, 2, 20)),
                    ],
                )
            ]
        )
        assert SymbolCollector().collect(URI, tree, "a\nb\nc\nd").methods == []

    def test_empty_file(self):
        collected = SymbolCollector().collect(URI, [], "")
        assert collected.methods == []
        assert collected.chunks == []


class TestParseDocumentSymbols:
    def test_null_result(self):
        assert parse_document_symbols(None) == []

    def test_flat_symbol_information_skipped(self):
        flat = [
            {
                "name": "Foo",
                "kind": SymbolKind.CLASS,
                "location": {"uri": URI, "range": {"start": {"line": 0, "character": 0}, "end": {"line": 1, "character": 0}}},
            }
        ]
        assert parse_document_symbols(flat, URI) == []

    def test_malformed_symbol(self):
        with pytest.raises(ProtocolError):
            parse_document_symbols([{"name": "Foo", "kind": 5}])

    def test_unknown_kind_passes_through(self):
        nodes = parse_document_symbols([symbol("Thing", 99, (0, 0, 0, 5))])
        assert nodes[0].kind == 99
