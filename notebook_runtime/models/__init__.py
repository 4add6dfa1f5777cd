from .output import (
    Output,
    StreamOutput,
    ExecuteResultOutput,
    DisplayDataOutput,
    ErrorOutput,
    RenderedOutput,
    stream,
    execute_result,
    display_data,
    error_output,
    select_representation,
)
from .result import CellExecutionResult, ErrorInfo
from .cell import NotebookCell, CellKind

__all__ = [
    "Output", "StreamOutput", "ExecuteResultOutput", "DisplayDataOutput", "ErrorOutput",
    "RenderedOutput", "stream", "execute_result", "display_data", "error_output",
    "select_representation",
    "CellExecutionResult", "ErrorInfo",
    "NotebookCell", "CellKind",
]
