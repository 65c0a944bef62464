"""
codegraph-lsp

Method-level code chunks and call graphs for Java workspaces, extracted
through a language server over JSON-RPC.

Packages:
    protocol    Message model, Content-Length framing, request correlation
    transport   Session over the server pipes, JDT LS launcher
    client      Language client facade (initialize, didOpen, symbols, references)
    extraction  Symbol pass, reference pass, chunk assembly
"""

__version__ = "0.1.0"
