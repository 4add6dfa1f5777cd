from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .output import Output


class CellKind(str, Enum):
    CODE = "code"
    MARKDOWN = "markdown"
    RAW = "raw"


@dataclass
class NotebookCell:
    """
    In-memory cell consumed by the dispatcher.

    Execution replaces outputs and execution_count in place; text cells keep
    both empty.
    """
    id: str
    kind: CellKind = CellKind.CODE
    language: str = "python"
    source: str = ""
    outputs: List[Output] = field(default_factory=list)
    execution_count: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_code(self) -> bool:
        return self.kind == CellKind.CODE
