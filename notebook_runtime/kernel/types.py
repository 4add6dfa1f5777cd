"""Type definitions for execution requests and per-call state."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..core.errors import UnsupportedLanguage


class Language(str, Enum):
    """Closed set of languages a code cell may be tagged with."""
    PYTHON = "python"
    SQL = "sql"
    RUST = "rust"
    R = "r"
    NAVLAMBDA = "navlambda"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"

    @classmethod
    def parse(cls, tag) -> "Language":
        """
        Resolve a language tag.

        Accepts enum members, canonical tags (case-insensitive) and the
        legacy "vnc" alias for navlambda.

        Raises:
            UnsupportedLanguage: If the tag is not a supported language
        """
        if isinstance(tag, cls):
            return tag
        if not isinstance(tag, str):
            raise UnsupportedLanguage(repr(tag))

        normalized = tag.strip().lower()
        normalized = LANGUAGE_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise UnsupportedLanguage(tag) from None


LANGUAGE_ALIASES: Dict[str, str] = {
    "vnc": Language.NAVLAMBDA.value,
}


class ExecutionState(str, Enum):
    """Lifecycle of a single execute call."""
    IDLE = "idle"
    SELECTING = "selecting"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ExecutionOptions(BaseModel):
    """Per-call options. Accepts camelCase (wire) and snake_case names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    timeout: Optional[int] = Field(default=None, ge=1)  # milliseconds
    capture_output: bool = True
    working_directory: Optional[str] = None
    environment: Dict[str, str] = Field(default_factory=dict)
    compile_only: bool = False


class ExecutionRequest(BaseModel):
    """Request from the collaborator that owns the UI or CLI."""
    language: str
    source: str
    options: ExecutionOptions = Field(default_factory=ExecutionOptions)
    cell_id: Optional[str] = Field(default=None, alias="cellId")

    model_config = ConfigDict(populate_by_name=True)


@dataclass
class ExecutionContext:
    """What a backend tier knows about the call it is serving."""
    language: Language
    execution_count: int
    options: ExecutionOptions = field(default_factory=ExecutionOptions)
    default_timeout_ms: int = 30000

    @property
    def timeout_ms(self) -> int:
        return self.options.timeout or self.default_timeout_ms

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000
