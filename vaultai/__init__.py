"""VaultAI package initialization."""

from __future__ import annotations

from .documents import Document, FileSystemDocumentStore
from .engine import SyncEngine
from .errors import ErrorKind, QueryError, VaultAIError
from .services.query_service import QueryMode, QueryResult
from .services.upload_service import SyncProgress, SyncStatus, SyncSummary
from .settings import JsonSettingsStore

__all__ = [
    "__version__",
    "Document",
    "ErrorKind",
    "FileSystemDocumentStore",
    "JsonSettingsStore",
    "QueryError",
    "QueryMode",
    "QueryResult",
    "SyncEngine",
    "SyncProgress",
    "SyncStatus",
    "SyncSummary",
    "VaultAIError",
    "get_version",
]

__version__ = "0.1.0"


def get_version() -> str:
    """Return the current package version."""
    return __version__
