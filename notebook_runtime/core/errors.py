"""Exception taxonomy for the execution runtime and the document model."""
from typing import List, Optional


class NotebookRuntimeError(Exception):
    """Base class for every error raised by notebook_runtime."""
    pass


class UnsupportedLanguage(NotebookRuntimeError):
    """Raised when a cell language is not one of the supported tags."""

    def __init__(self, language: str):
        self.language = language
        super().__init__(f"Unsupported language: {language}")


class DocumentError(NotebookRuntimeError):
    """Raised when a persisted notebook document cannot be loaded."""
    pass


class MalformedDocument(DocumentError):
    """The document is not valid JSON or lacks a cells array."""
    pass


class UnsupportedVersion(DocumentError):
    """The document declares a notebook format older than version 4."""

    def __init__(self, major: Optional[int]):
        self.major = major
        super().__init__(f"Unsupported notebook format version: {major}")


class BackendUnavailable(NotebookRuntimeError):
    """
    A backend tier cannot serve the request.

    Raised by a tier to hand the request to the next tier of its fallback
    chain. Never reaches callers of the dispatcher.
    """

    def __init__(self, backend: str, reason: str):
        self.backend = backend
        self.reason = reason
        super().__init__(f"{backend} unavailable: {reason}")


class ExecutionError(NotebookRuntimeError):
    """In-engine failure carrying the language-native error name, message and trace."""

    def __init__(self, ename: str, evalue: str, traceback: Optional[List[str]] = None):
        self.ename = ename
        self.evalue = evalue
        self.traceback = list(traceback) if traceback else [f"{ename}: {evalue}"]
        super().__init__(f"{ename}: {evalue}")


class ExecutionTimeout(ExecutionError):
    """A delegated call did not answer before its deadline."""

    def __init__(self, backend: str, timeout_ms: int):
        self.backend = backend
        self.timeout_ms = timeout_ms
        super().__init__(
            "Timeout",
            f"{backend} did not respond within {timeout_ms} ms",
        )
