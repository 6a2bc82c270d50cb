"""
ledgerlink: client for account-scoped JSON/HTTP APIs.

Executes reads, searches and writes, turns long lists of writes into
bounded container calls with stop/continue semantics, and shares one
cached auth token safely across concurrent callers.
"""

from ledgerlink.client import ApiClient
from ledgerlink.session import ApiSession

__version__ = "0.1.0"

__all__ = ["ApiClient", "ApiSession", "__version__"]
