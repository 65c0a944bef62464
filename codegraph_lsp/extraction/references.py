"""
Reference Resolver

Second extraction pass: for every collected method, ask the server where it
is referenced and attribute each site to the method whose body contains it.

Containment is by line only, boundary lines included. Candidates are scanned
in traversal order and the first match wins, so a reference inside a nested
or anonymous class lands on the first enclosing method that was collected.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from codegraph_lsp.common.observability import get_logger
from codegraph_lsp.extraction.models import FlatMethod, Location, MethodKey
from codegraph_lsp.infra.exceptions import LSPError, ProtocolError, ResolutionError

if TYPE_CHECKING:
    from codegraph_lsp.client.base import SymbolProvider

logger = get_logger(__name__)


def is_declaration_echo(target: FlatMethod, location: Location) -> bool:
    """Some servers return the declaration even when includeDeclaration is false."""
    return location.uri == target.file_uri and location.range == target.symbol.selection_range


def find_caller(target: FlatMethod, location: Location, candidates: list[FlatMethod]) -> FlatMethod:
    """
    First candidate whose body contains `location`, skipping `target` itself.

    Raises:
        ResolutionError: No candidate contains the reference
    """
    for candidate in candidates:
        if candidate.file_uri != location.uri:
            continue
        if candidate.identifier == target.identifier:
            continue
        if candidate.symbol.range.contains_lines(location.range):
            return candidate
    raise ResolutionError(location.uri, location.range.start.line)


class ReferenceResolver:
    """
    Builds the inbound call edges for a set of methods.

    One references request per method, issued sequentially. A failed request
    costs that method its edges and nothing else.
    """

    def __init__(self, client: SymbolProvider):
        self.client = client

    async def resolve(self, methods: list[FlatMethod]) -> dict[MethodKey, list[str]]:
        """
        Returns:
            method key -> caller identifiers ("Class::method"), deduplicated,
            in the order the server reported them
        """
        edges: dict[MethodKey, list[str]] = {}

        for target in methods:
            try:
                locations = await self._references(target)
            except LSPError as e:
                logger.warning(
                    "lsp_references_failed",
                    method=target.identifier,
                    uri=target.file_uri,
                    error=str(e),
                )
                continue

            callers = edges.setdefault(target.key, [])
            for location in locations:
                if is_declaration_echo(target, location):
                    continue
                try:
                    caller = find_caller(target, location, methods)
                except ResolutionError as e:
                    logger.debug("lsp_reference_unattributed", target=target.identifier, **e.context)
                    continue
                if caller.identifier not in callers:
                    callers.append(caller.identifier)

        logger.info(
            "lsp_references_resolved",
            methods=len(methods),
            edges=sum(len(callers) for callers in edges.values()),
        )
        return edges

    async def _references(self, target: FlatMethod) -> list[Location]:
        raw = await self.client.references(target.file_uri, target.symbol.selection_range.start)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise ProtocolError(f"references result must be a list, got {type(raw).__name__}")
        return [Location.from_lsp(item) for item in raw]
