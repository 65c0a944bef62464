"""
Chunk Assembler

Merges partial chunks with the resolved call edges.
"""

from __future__ import annotations

from codegraph_lsp.extraction.models import Chunk, MethodKey


class ChunkAssembler:
    """
    Joins chunks and edges on (class, method, code).

    Every chunk appears exactly once in the output, in input order. A chunk
    with no entry in `edges` keeps an empty called_by. `dependencies` is the
    inverse relation: if B::b is in A::a's called_by, A::a is in B::b's
    dependencies.
    """

    def assemble(self, chunks: list[Chunk], edges: dict[MethodKey, list[str]]) -> list[Chunk]:
        linked = [chunk.model_copy(update={"called_by": list(edges.get(chunk.key, []))}) for chunk in chunks]

        outbound: dict[str, list[str]] = {}
        for chunk in linked:
            for caller in chunk.called_by:
                targets = outbound.setdefault(caller, [])
                if chunk.identifier not in targets:
                    targets.append(chunk.identifier)

        return [
            chunk.model_copy(update={"dependencies": list(outbound.get(chunk.identifier, []))})
            for chunk in linked
        ]
