"""Language server clients."""

from .base import SymbolProvider, path_to_uri
from .java_client import JavaLanguageServerClient, search_workspace_symbols

__all__ = [
    "JavaLanguageServerClient",
    "SymbolProvider",
    "path_to_uri",
    "search_workspace_symbols",
]
