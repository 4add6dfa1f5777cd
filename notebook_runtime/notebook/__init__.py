from .document import (
    NotebookDocument,
    NotebookMetadata,
    DocumentCell,
    KernelSpec,
    LanguageInfo,
    SchemaVersion,
    parse_notebook,
    serialize_notebook,
    notebook_to_dict,
    normalize_source,
)
from .convert import (
    notebook_to_cells,
    cells_to_notebook,
    new_notebook,
    detect_language,
    default_metadata,
)

__all__ = [
    "NotebookDocument", "NotebookMetadata", "DocumentCell", "KernelSpec", "LanguageInfo",
    "SchemaVersion", "parse_notebook", "serialize_notebook", "notebook_to_dict",
    "normalize_source", "notebook_to_cells", "cells_to_notebook", "new_notebook",
    "detect_language", "default_metadata",
]
