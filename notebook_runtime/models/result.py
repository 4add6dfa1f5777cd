"""Execution result returned for every cell run."""
from typing import List, Optional

from pydantic import BaseModel, Field

from .output import Output, ErrorOutput, error_output


class ErrorInfo(BaseModel):
    """Error summary mirrored from the error output of a failed run."""
    ename: str
    evalue: str
    traceback: List[str] = Field(default_factory=list)


class CellExecutionResult(BaseModel):
    """
    Result of executing one cell.

    success is False exactly when error is set, and then outputs contain an
    error output with the same ename, evalue and traceback.
    """
    success: bool
    outputs: List[Output] = Field(default_factory=list)
    execution_count: int = Field(ge=1)
    error: Optional[ErrorInfo] = None
    backend: Optional[str] = None

    @classmethod
    def succeeded(
        cls,
        outputs: List[Output],
        execution_count: int,
        backend: Optional[str] = None,
    ) -> "CellExecutionResult":
        return cls(success=True, outputs=list(outputs), execution_count=execution_count, backend=backend)

    @classmethod
    def failed(
        cls,
        ename: str,
        evalue: str,
        traceback: Optional[List[str]],
        execution_count: int,
        outputs: Optional[List[Output]] = None,
        backend: Optional[str] = None,
    ) -> "CellExecutionResult":
        """Build a failed result whose error output and error summary agree."""
        trace = list(traceback) if traceback else [f"{ename}: {evalue}"]
        return cls(
            success=False,
            outputs=[*(outputs or []), error_output(ename, evalue, trace)],
            execution_count=execution_count,
            error=ErrorInfo(ename=ename, evalue=evalue, traceback=trace),
            backend=backend,
        )

    def error_outputs(self) -> List[ErrorOutput]:
        return [output for output in self.outputs if isinstance(output, ErrorOutput)]
