"""Parse and serialize notebook documents (.ipynb, format version 4)."""
import json
import logging
from typing import Any, Dict, List, Literal, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.errors import MalformedDocument, UnsupportedVersion
from ..models.output import Output

logger = logging.getLogger(__name__)

MIN_NBFORMAT = 4
CURRENT_NBFORMAT = 4
CURRENT_NBFORMAT_MINOR = 5


def normalize_source(source: Union[str, List[str], None]) -> str:
    """Concatenate line fragments (no separator inserted); None becomes ''."""
    if isinstance(source, list):
        return "".join(source)
    return source or ""


def split_source(source: str) -> List[str]:
    """Split source into line fragments, each keeping its trailing newline."""
    return source.splitlines(keepends=True)


class SchemaVersion(NamedTuple):
    major: int
    minor: int


class KernelSpec(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    display_name: str = ""
    language: Optional[str] = None


class LanguageInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    version: str = ""


class NotebookMetadata(BaseModel):
    """Document-level metadata; unknown keys are preserved."""
    model_config = ConfigDict(extra="allow")

    kernelspec: Optional[KernelSpec] = None
    language_info: Optional[LanguageInfo] = None

    @property
    def language(self) -> Optional[str]:
        """Document-level language tag: kernelspec first, then language_info."""
        if self.kernelspec and self.kernelspec.language:
            return self.kernelspec.language
        if self.language_info and self.language_info.name:
            return self.language_info.name
        return None


class DocumentCell(BaseModel):
    """A cell as persisted. source is always a single string once loaded."""
    model_config = ConfigDict(extra="allow")

    cell_type: Literal["code", "markdown", "raw"]
    id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    source: str = ""
    execution_count: Optional[int] = None
    outputs: List[Output] = Field(default_factory=list)

    @field_validator("source", mode="before")
    @classmethod
    def _normalize_source(cls, value):
        return normalize_source(value)

    @field_validator("metadata", mode="before")
    @classmethod
    def _default_metadata(cls, value):
        return value or {}


class NotebookDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    cells: List[DocumentCell]
    metadata: NotebookMetadata = Field(default_factory=NotebookMetadata)
    nbformat: int = CURRENT_NBFORMAT
    nbformat_minor: int = CURRENT_NBFORMAT_MINOR

    @property
    def schema_version(self) -> SchemaVersion:
        return SchemaVersion(self.nbformat, self.nbformat_minor)

    @property
    def language_info(self) -> Optional[LanguageInfo]:
        return self.metadata.language_info


def parse_notebook(text: Union[str, bytes]) -> NotebookDocument:
    """
    Parse a persisted notebook.

    Raises:
        UnsupportedVersion: If nbformat is missing or older than 4
        MalformedDocument: If the text is not a JSON object with a cells array,
            or a cell does not match the format
    """
    try:
        raw = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedDocument(f"Invalid notebook JSON: {e}") from e

    if not isinstance(raw, dict):
        raise MalformedDocument("Invalid notebook format: top level must be an object")

    major = raw.get("nbformat")
    if isinstance(major, int) and major < MIN_NBFORMAT:
        raise UnsupportedVersion(major)

    if not isinstance(raw.get("cells"), list):
        raise MalformedDocument("Invalid notebook format: missing cells array")

    if not isinstance(major, int):
        raise UnsupportedVersion(major)

    try:
        document = NotebookDocument.model_validate(raw)
    except ValidationError as e:
        raise MalformedDocument(f"Invalid notebook format: {e}") from e

    logger.debug("Parsed notebook with %d cell(s), format %d.%d",
                 len(document.cells), document.nbformat, document.nbformat_minor)
    return document


def _dump_cell(cell: DocumentCell) -> Dict[str, Any]:
    data: Dict[str, Any] = {"cell_type": cell.cell_type}
    if cell.id is not None:
        data["id"] = cell.id
    data["metadata"] = cell.metadata
    data["source"] = split_source(cell.source)

    if cell.cell_type == "code":
        data["execution_count"] = cell.execution_count
        data["outputs"] = [output.model_dump(mode="json") for output in cell.outputs]

    # Extra keys (attachments etc.) round-trip untouched
    data.update(cell.model_extra or {})
    return data


def notebook_to_dict(document: NotebookDocument) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "cells": [_dump_cell(cell) for cell in document.cells],
        "metadata": document.metadata.model_dump(mode="json", exclude_none=True),
        "nbformat": document.nbformat,
        "nbformat_minor": document.nbformat_minor,
    }
    data.update(document.model_extra or {})
    return data


def serialize_notebook(document: NotebookDocument) -> str:
    """Serialize to nbformat JSON; sources are written as line fragments."""
    return json.dumps(notebook_to_dict(document), indent=1, ensure_ascii=False) + "\n"
