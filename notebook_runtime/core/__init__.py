from .config import settings, Settings
from .errors import (
    NotebookRuntimeError,
    UnsupportedLanguage,
    DocumentError,
    MalformedDocument,
    UnsupportedVersion,
    BackendUnavailable,
    ExecutionError,
    ExecutionTimeout,
)
from .logging import setup_logging

__all__ = [
    "settings", "Settings", "setup_logging",
    "NotebookRuntimeError", "UnsupportedLanguage",
    "DocumentError", "MalformedDocument", "UnsupportedVersion",
    "BackendUnavailable", "ExecutionError", "ExecutionTimeout",
]
