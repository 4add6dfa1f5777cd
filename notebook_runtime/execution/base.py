"""Backend tiers and the fallback chain that picks one per call."""
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from ..core.errors import BackendUnavailable, ExecutionError
from ..kernel.types import ExecutionContext, Language
from ..models.result import CellExecutionResult

logger = logging.getLogger(__name__)

IN_PROCESS = "in_process"
HOST = "host"
PYTHON_API = "python_api"
POSTGRES = "postgres"
NODE = "node"
SIMULATED = "simulated"


class Backend(ABC):
    """
    One execution tier for a language.

    check_available() is the selection step; raising BackendUnavailable from
    it, or from execute(), hands the request to the next tier.
    """
    name: str = "backend"
    supports_compile_only: bool = False

    async def check_available(self, context: ExecutionContext) -> None:
        """Raise BackendUnavailable if this tier cannot serve the request."""
        return None

    @abstractmethod
    async def execute(self, source: str, context: ExecutionContext) -> CellExecutionResult:
        ...


class FallbackChain:
    """Ordered tiers for one language; the first available tier serves the call."""

    def __init__(self, language: Language, tiers: List[Backend]):
        if not tiers:
            raise ValueError(f"Fallback chain for {language.value} needs at least one tier")
        self.language = language
        self.tiers = list(tiers)

    @property
    def supports_compile_only(self) -> bool:
        return any(tier.supports_compile_only for tier in self.tiers)

    @property
    def tier_names(self) -> List[str]:
        return [tier.name for tier in self.tiers]

    async def execute(
        self,
        source: str,
        context: ExecutionContext,
        on_selected: Optional[Callable[[Backend], None]] = None,
    ) -> CellExecutionResult:
        """
        Run source on the first tier that accepts it.

        Raises:
            ExecutionError: compile_only on a language without a compile step,
                or a genuine failure reported by the selected tier
            BackendUnavailable: If every tier declined
        """
        if context.options.compile_only and not self.supports_compile_only:
            raise ExecutionError(
                "CompileOnlyNotSupported",
                f"compileOnly is not supported for {self.language.value} cells",
            )

        reasons = []
        for tier in self.tiers:
            if context.options.compile_only and not tier.supports_compile_only:
                continue
            try:
                await tier.check_available(context)
                if on_selected is not None:
                    on_selected(tier)
                return await tier.execute(source, context)
            except BackendUnavailable as e:
                logger.info("[%s] %s, falling back", self.language.value, e)
                reasons.append(str(e))

        raise BackendUnavailable(self.language.value, "; ".join(reasons) or "no tiers")
