"""
Chunk Extraction Models

Symbol tree, reference locations, and the method-level Chunk output.

Positions are zero-based (line, character) exactly as the server reports them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from codegraph_lsp.infra.exceptions import ProtocolError


class SymbolKind(IntEnum):
    """LSP SymbolKind"""

    FILE = 1
    MODULE = 2
    NAMESPACE = 3
    PACKAGE = 4
    CLASS = 5
    METHOD = 6
    PROPERTY = 7
    FIELD = 8
    CONSTRUCTOR = 9
    ENUM = 10
    INTERFACE = 11
    FUNCTION = 12
    VARIABLE = 13
    CONSTANT = 14
    STRING = 15
    NUMBER = 16
    BOOLEAN = 17
    ARRAY = 18
    OBJECT = 19
    KEY = 20
    NULL = 21
    ENUM_MEMBER = 22
    STRUCT = 23
    EVENT = 24
    OPERATOR = 25
    TYPE_PARAMETER = 26

    @property
    def is_type(self) -> bool:
        """Kinds that name an enclosing type for the methods beneath them."""
        return self in TYPE_KINDS

    @classmethod
    def coerce(cls, value: Any) -> SymbolKind | int:
        """Known kinds become enum members; unknown ints pass through unchanged."""
        try:
            return cls(value)
        except ValueError:
            return int(value)


TYPE_KINDS = frozenset({SymbolKind.CLASS, SymbolKind.INTERFACE, SymbolKind.ENUM})


def symbol_kind_name(kind: SymbolKind | int) -> str:
    """Display name of a kind ("EnumMember"), or "Unknown(N)" for kinds outside the enum."""
    try:
        member = SymbolKind(kind)
    except ValueError:
        return f"Unknown({kind})"
    return "".join(part.capitalize() for part in member.name.split("_"))


@dataclass(frozen=True, order=True)
class Position:
    line: int
    character: int

    def to_lsp(self) -> dict[str, int]:
        return {"line": self.line, "character": self.character}

    @classmethod
    def from_lsp(cls, payload: dict[str, Any]) -> Position:
        return cls(line=int(payload["line"]), character=int(payload["character"]))


@dataclass(frozen=True)
class Range:
    start: Position
    end: Position

    def contains_lines(self, other: Range) -> bool:
        """Line-inclusive containment: both boundary lines count as inside."""
        return self.start.line <= other.start.line and other.end.line <= self.end.line

    def to_lsp(self) -> dict[str, Any]:
        return {"start": self.start.to_lsp(), "end": self.end.to_lsp()}

    @classmethod
    def from_lsp(cls, payload: dict[str, Any]) -> Range:
        return cls(start=Position.from_lsp(payload["start"]), end=Position.from_lsp(payload["end"]))


@dataclass(frozen=True)
class Location:
    """A reference site reported by the server."""

    uri: str
    range: Range

    @classmethod
    def from_lsp(cls, payload: Any) -> Location:
        try:
            return cls(uri=str(payload["uri"]), range=Range.from_lsp(payload["range"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ProtocolError(f"Malformed Location: {e}") from e


@dataclass(frozen=True)
class WorkspaceSymbol:
    """One `workspace/symbol` match (SymbolInformation shape)."""

    name: str
    kind: SymbolKind | int
    location: Location
    container_name: str | None = None

    @property
    def kind_name(self) -> str:
        return symbol_kind_name(self.kind)

    @classmethod
    def from_lsp(cls, payload: Any) -> WorkspaceSymbol:
        try:
            return cls(
                name=str(payload["name"]),
                kind=SymbolKind.coerce(payload["kind"]),
                location=Location.from_lsp(payload["location"]),
                container_name=payload.get("containerName") or None,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProtocolError(f"Malformed workspace symbol: {e}") from e


@dataclass
class SymbolNode:
    """
    One node of a hierarchical documentSymbol result.

    `range` spans the full declaration including its body;
    `selection_range` spans just the name token.
    """

    name: str
    kind: SymbolKind | int
    range: Range
    selection_range: Range
    detail: str | None = None
    children: list[SymbolNode] = field(default_factory=list)

    @classmethod
    def from_lsp(cls, payload: dict[str, Any]) -> SymbolNode:
        try:
            return cls(
                name=str(payload["name"]),
                kind=SymbolKind.coerce(payload["kind"]),
                range=Range.from_lsp(payload["range"]),
                selection_range=Range.from_lsp(payload["selectionRange"]),
                detail=payload.get("detail"),
                children=[cls.from_lsp(child) for child in payload.get("children") or []],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProtocolError(f"Malformed DocumentSymbol: {e}") from e


@dataclass
class FlatMethod:
    """A method symbol lifted out of its file's tree, with its container and source."""

    file_uri: str
    class_name: str
    symbol: SymbolNode
    source_text: str

    @property
    def method_name(self) -> str:
        return self.symbol.name

    @property
    def identifier(self) -> str:
        return f"{self.class_name}::{self.symbol.name}"

    @property
    def key(self) -> MethodKey:
        return (self.class_name, self.symbol.name, self.source_text)


# (class name, method name, method code): distinguishes overloads sharing a name
MethodKey = tuple[str, str, str]


class Chunk(BaseModel):
    """
    Method-level record produced by the extraction pipeline.

    Serializes with camelCase keys (className, methodName, calledBy, ...).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    class_name: str
    method_name: str
    return_type: str
    parameters: list[str] = Field(default_factory=list)
    called_by: list[str] = Field(default_factory=list)
    """Inbound edges, formatted Class::method, deduplicated in discovery order"""

    dependencies: list[str] = Field(default_factory=list)
    """Outbound edges: the inverse of called_by across the whole run"""

    method_code: str

    @property
    def identifier(self) -> str:
        return f"{self.class_name}::{self.method_name}"

    @property
    def key(self) -> MethodKey:
        return (self.class_name, self.method_name, self.method_code)
