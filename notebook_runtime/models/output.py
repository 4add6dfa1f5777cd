"""Cell outputs in the notebook interchange format, plus display selection."""
import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

StreamName = Literal["stdout", "stderr"]

# MIME types whose values may be persisted as a list of line fragments
_MULTILINE_PREFIXES = ("text/",)
_MULTILINE_TYPES = {"image/svg+xml"}

# Richest first
IMAGE_MIME_TYPES = ["image/png", "image/jpeg", "image/svg+xml"]
HTML_MIME_TYPE = "text/html"
PLAIN_MIME_TYPE = "text/plain"


def join_multiline(value: Any) -> Any:
    """Join a list of line fragments into one string; other values pass through."""
    if isinstance(value, list) and all(isinstance(part, str) for part in value):
        return "".join(value)
    return value


def _normalize_bundle(data: Dict[str, Any]) -> Dict[str, Any]:
    normalized = {}
    for mime_type, value in data.items():
        if mime_type.startswith(_MULTILINE_PREFIXES) or mime_type in _MULTILINE_TYPES:
            value = join_multiline(value)
        normalized[mime_type] = value
    return normalized


class StreamOutput(BaseModel):
    """Text written to stdout or stderr."""
    output_type: Literal["stream"] = "stream"
    name: StreamName
    text: str

    @field_validator("text", mode="before")
    @classmethod
    def _join_text(cls, value):
        return join_multiline(value)


class ExecuteResultOutput(BaseModel):
    """Value of the final expression of a cell, as a MIME bundle."""
    output_type: Literal["execute_result"] = "execute_result"
    execution_count: Optional[int] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def _normalize_data(cls, value):
        return _normalize_bundle(value or {})


class DisplayDataOutput(BaseModel):
    """Rich display produced during execution (figures, tables)."""
    output_type: Literal["display_data"] = "display_data"
    data: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def _normalize_data(cls, value):
        return _normalize_bundle(value or {})


class ErrorOutput(BaseModel):
    """Error raised by the cell."""
    output_type: Literal["error"] = "error"
    ename: str
    evalue: str
    traceback: List[str] = Field(default_factory=list)


Output = Annotated[
    Union[StreamOutput, ExecuteResultOutput, DisplayDataOutput, ErrorOutput],
    Field(discriminator="output_type"),
]


def stream(name: StreamName, text: str) -> StreamOutput:
    return StreamOutput(name=name, text=text)


def execute_result(
    data: Dict[str, Any],
    execution_count: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> ExecuteResultOutput:
    return ExecuteResultOutput(execution_count=execution_count, data=data, metadata=metadata or {})


def display_data(data: Dict[str, Any], metadata: Optional[Dict[str, Any]] = None) -> DisplayDataOutput:
    return DisplayDataOutput(data=data, metadata=metadata or {})


def error_output(ename: str, evalue: str, traceback: Optional[List[str]] = None) -> ErrorOutput:
    return ErrorOutput(ename=ename, evalue=evalue, traceback=traceback or [])


class RenderedOutput(BaseModel):
    """The single representation a consumer should display for an output."""
    type: Literal["text", "html", "image", "error", "stream"]
    content: str
    mime_type: Optional[str] = None


def _as_text(value: Any) -> str:
    value = join_multiline(value)
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, indent=2, default=str)
    except (TypeError, ValueError):
        return str(value)


def select_representation(output: Any) -> RenderedOutput:
    """
    Pick exactly one renderable representation of an output.

    Preference order: image/png, image/jpeg, image/svg+xml, text/html,
    text/plain. Outputs with none of these render as empty text. Never raises.
    """
    if isinstance(output, ErrorOutput):
        return RenderedOutput(
            type="error",
            content="\n".join([output.ename or "Error", output.evalue or "", *output.traceback]),
        )

    if isinstance(output, StreamOutput):
        return RenderedOutput(type="stream", content=output.text or "")

    data = getattr(output, "data", None)
    if isinstance(data, dict):
        for mime_type in IMAGE_MIME_TYPES:
            if data.get(mime_type):
                return RenderedOutput(type="image", content=_as_text(data[mime_type]), mime_type=mime_type)
        if data.get(HTML_MIME_TYPE):
            return RenderedOutput(type="html", content=_as_text(data[HTML_MIME_TYPE]), mime_type=HTML_MIME_TYPE)
        if data.get(PLAIN_MIME_TYPE):
            return RenderedOutput(type="text", content=_as_text(data[PLAIN_MIME_TYPE]), mime_type=PLAIN_MIME_TYPE)

    return RenderedOutput(type="text", content="")
