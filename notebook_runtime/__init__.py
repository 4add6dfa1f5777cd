"""Polyglot notebook cell execution runtime."""
from .core import settings, setup_logging
from .models import CellExecutionResult, NotebookCell, CellKind, select_representation
from .kernel import ExecutionDispatcher, ExecutionOptions, Language, RuntimeState
from .notebook import (
    parse_notebook,
    serialize_notebook,
    notebook_to_cells,
    cells_to_notebook,
    new_notebook,
)

__version__ = "0.1.0"

__all__ = [
    "settings", "setup_logging",
    "CellExecutionResult", "NotebookCell", "CellKind", "select_representation",
    "ExecutionDispatcher", "ExecutionOptions", "Language", "RuntimeState",
    "parse_notebook", "serialize_notebook", "notebook_to_cells", "cells_to_notebook",
    "new_notebook",
]
