from .types import (
    ExecutionContext,
    ExecutionOptions,
    ExecutionRequest,
    ExecutionState,
    Language,
    LANGUAGE_ALIASES,
)
from .counters import ExecutionCounters
from .state import RuntimeState
from .dispatcher import ExecutionDispatcher

__all__ = [
    "ExecutionContext", "ExecutionOptions", "ExecutionRequest", "ExecutionState",
    "Language", "LANGUAGE_ALIASES",
    "ExecutionCounters", "RuntimeState", "ExecutionDispatcher",
]
