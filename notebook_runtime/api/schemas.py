from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.cell import CellKind, NotebookCell
from ..models.output import Output


class CellSchema(BaseModel):
    """Wire form of an in-memory notebook cell."""
    id: str
    kind: CellKind = CellKind.CODE
    language: str = "python"
    source: str = ""
    outputs: List[Output] = Field(default_factory=list)
    execution_count: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_cell(cls, cell: NotebookCell) -> "CellSchema":
        return cls(
            id=cell.id,
            kind=cell.kind,
            language=cell.language,
            source=cell.source,
            outputs=list(cell.outputs),
            execution_count=cell.execution_count,
            metadata=dict(cell.metadata),
        )

    def to_cell(self) -> NotebookCell:
        return NotebookCell(
            id=self.id,
            kind=self.kind,
            language=self.language,
            source=self.source,
            outputs=list(self.outputs),
            execution_count=self.execution_count,
            metadata=dict(self.metadata),
        )


class ParseNotebookResponse(BaseModel):
    cells: List[CellSchema]
    metadata: Dict[str, Any]
    nbformat: int
    nbformat_minor: int


class SerializeNotebookRequest(BaseModel):
    cells: List[CellSchema]
    metadata: Optional[Dict[str, Any]] = None


class ResetCountsRequest(BaseModel):
    language: Optional[str] = None


class ExecutionCountsResponse(BaseModel):
    counts: Dict[str, int]
