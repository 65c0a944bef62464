"""
Test Fakes Module

In-memory stand-ins for the language server pipes and the symbol provider.
"""

from tests.fakes.fake_lsp import FakeSymbolProvider, FakeWriter, ScriptedServer, wait_for_sent

__all__ = [
    "FakeSymbolProvider",
    "FakeWriter",
    "ScriptedServer",
    "wait_for_sent",
]
