from .base import (
    Backend,
    FallbackChain,
    HOST,
    IN_PROCESS,
    NODE,
    POSTGRES,
    PYTHON_API,
    SIMULATED,
)
from .host import HostEngine, HttpHostEngine, host_engine_from_settings
from .python import InProcessPythonBackend, PythonApiBackend, PythonInterpreter, mime_bundle
from .registry import build_backend_chains
from .simulated import SimulatedBackend
from .sql import PostgresBackend, prepare_parameterized_query
from .tables import MAX_DISPLAY_ROWS, NO_ROWS_MESSAGE, format_table_html, format_table_text, table_bundle

__all__ = [
    "Backend",
    "FallbackChain",
    "HOST",
    "IN_PROCESS",
    "NODE",
    "POSTGRES",
    "PYTHON_API",
    "SIMULATED",
    "HostEngine",
    "HttpHostEngine",
    "host_engine_from_settings",
    "InProcessPythonBackend",
    "PythonApiBackend",
    "PythonInterpreter",
    "mime_bundle",
    "build_backend_chains",
    "SimulatedBackend",
    "PostgresBackend",
    "prepare_parameterized_query",
    "MAX_DISPLAY_ROWS",
    "NO_ROWS_MESSAGE",
    "format_table_html",
    "format_table_text",
    "table_bundle",
]
