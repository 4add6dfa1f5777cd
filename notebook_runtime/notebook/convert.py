"""Convert between persisted documents and the in-memory cell list."""
import platform
import uuid
from typing import Any, Dict, List, Optional, Union

from ..models.cell import CellKind, NotebookCell
from .document import (
    CURRENT_NBFORMAT,
    CURRENT_NBFORMAT_MINOR,
    DocumentCell,
    KernelSpec,
    LanguageInfo,
    NotebookDocument,
    NotebookMetadata,
)

CELL_LANGUAGE_KEY = "language"
DEFAULT_CODE_LANGUAGE = "python"
DEFAULT_TEXT_LANGUAGE = "markdown"


def default_metadata(language: str = DEFAULT_CODE_LANGUAGE) -> NotebookMetadata:
    if language == "python":
        return NotebookMetadata(
            kernelspec=KernelSpec(display_name="Python 3", language="python", name="python3"),
            language_info=LanguageInfo(name="python", version=platform.python_version()),
        )
    return NotebookMetadata(
        kernelspec=KernelSpec(display_name=language, language=language, name=language),
        language_info=LanguageInfo(name=language),
    )


def detect_language(kind: CellKind, cell_language: Optional[str], metadata: NotebookMetadata) -> str:
    """
    Resolve a cell's language.

    Code cells: cell tag, then the document language, then python.
    Text cells: cell tag, then markdown.
    """
    if cell_language:
        return cell_language
    if kind != CellKind.CODE:
        return DEFAULT_TEXT_LANGUAGE
    return metadata.language or DEFAULT_CODE_LANGUAGE


def _default_language(kind: CellKind, metadata: NotebookMetadata) -> str:
    return detect_language(kind, None, metadata)


def notebook_to_cells(document: NotebookDocument) -> List[NotebookCell]:
    cells = []
    for index, doc_cell in enumerate(document.cells):
        kind = CellKind(doc_cell.cell_type)
        metadata = dict(doc_cell.metadata)
        cell_language = metadata.pop(CELL_LANGUAGE_KEY, None)
        is_code = kind == CellKind.CODE

        cells.append(NotebookCell(
            id=doc_cell.id or f"cell-{index}",
            kind=kind,
            language=detect_language(kind, cell_language, document.metadata),
            source=doc_cell.source,
            outputs=list(doc_cell.outputs) if is_code else [],
            execution_count=doc_cell.execution_count if is_code else None,
            metadata=metadata,
        ))
    return cells


def cells_to_notebook(
    cells: List[NotebookCell],
    metadata: Union[NotebookMetadata, Dict[str, Any], None] = None,
) -> NotebookDocument:
    """
    Build a document from in-memory cells.

    A cell's language is stored in its metadata only when it differs from
    what detect_language would infer, so loading the result gives back the
    same cells.
    """
    if metadata is None:
        metadata = default_metadata()
    elif isinstance(metadata, dict):
        metadata = NotebookMetadata.model_validate(metadata)

    doc_cells = []
    for cell in cells:
        cell_metadata = dict(cell.metadata)
        if cell.language != _default_language(cell.kind, metadata):
            cell_metadata[CELL_LANGUAGE_KEY] = cell.language

        is_code = cell.kind == CellKind.CODE
        doc_cells.append(DocumentCell(
            cell_type=cell.kind.value,
            id=cell.id,
            metadata=cell_metadata,
            source=cell.source,
            execution_count=cell.execution_count if is_code else None,
            outputs=list(cell.outputs) if is_code else [],
        ))

    return NotebookDocument(
        cells=doc_cells,
        metadata=metadata,
        nbformat=CURRENT_NBFORMAT,
        nbformat_minor=CURRENT_NBFORMAT_MINOR,
    )


def new_notebook(language: str = DEFAULT_CODE_LANGUAGE) -> NotebookDocument:
    """Create a document holding a single introductory markdown cell."""
    return NotebookDocument(
        cells=[
            DocumentCell(
                cell_type="markdown",
                id=f"cell-{uuid.uuid4().hex[:8]}",
                source="# New Notebook\n\nStart writing your code here...",
            )
        ],
        metadata=default_metadata(language),
    )
