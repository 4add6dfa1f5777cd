"""Fallback chains for every supported language."""
from typing import Dict, Optional

from ..kernel.types import Language
from .base import FallbackChain
from .delegated import (
    HostNavLambdaBackend,
    HostPythonBackend,
    HostRBackend,
    HostRustBackend,
    HostSqlBackend,
)
from .host import HostEngine
from .javascript import NodeBackend
from .python import InProcessPythonBackend, PythonApiBackend
from .simulated import SimulatedBackend
from .sql import PostgresBackend


def build_backend_chains(state, settings, host_engine: Optional[HostEngine]) -> Dict[Language, FallbackChain]:
    """
    Wire the tiers of each language, most capable first.

    Every chain ends with the simulated backend, so execution always has a
    tier to land on.
    """
    interpreter = state.python

    def python_namespace():
        return interpreter.globals_dict

    chains = {
        Language.PYTHON: [
            InProcessPythonBackend(interpreter),
            HostPythonBackend(host_engine),
            PythonApiBackend(settings.PYTHON_API_URL),
        ],
        Language.SQL: [
            HostSqlBackend(host_engine, settings.MAX_TABLE_ROWS),
            PostgresBackend(settings.DATABASE_URL, python_namespace, settings.MAX_TABLE_ROWS),
        ],
        Language.RUST: [HostRustBackend(host_engine)],
        Language.R: [HostRBackend(host_engine)],
        Language.NAVLAMBDA: [HostNavLambdaBackend(host_engine)],
        Language.JAVASCRIPT: [NodeBackend(Language.JAVASCRIPT, settings.NODE_BINARY)],
        Language.TYPESCRIPT: [NodeBackend(Language.TYPESCRIPT, settings.NODE_BINARY)],
    }

    return {
        language: FallbackChain(language, tiers + [SimulatedBackend(language)])
        for language, tiers in chains.items()
    }
