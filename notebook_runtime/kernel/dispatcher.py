"""Routes execution requests to the fallback chain of their language."""
import asyncio
import logging
import traceback
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ..core.config import settings as default_settings
from ..core.errors import BackendUnavailable, ExecutionError
from ..execution.base import Backend, FallbackChain
from ..execution.host import HostEngine, host_engine_from_settings
from ..execution.registry import build_backend_chains
from ..models.cell import NotebookCell
from ..models.output import ErrorOutput, ExecuteResultOutput, Output, StreamOutput
from ..models.result import CellExecutionResult, ErrorInfo
from .state import RuntimeState
from .types import ExecutionContext, ExecutionOptions, ExecutionState, Language

logger = logging.getLogger(__name__)

StateListener = Callable[[Optional[str], ExecutionState], None]
OptionsLike = Union[ExecutionOptions, Mapping[str, Any], None]


def coerce_options(options: OptionsLike) -> ExecutionOptions:
    if options is None:
        return ExecutionOptions()
    if isinstance(options, ExecutionOptions):
        return options
    return ExecutionOptions.model_validate(dict(options))


class ExecutionDispatcher:
    """
    Entry point for running cells.

    Each call reserves the next execution number of its language, runs the
    source on the first available tier of the language's fallback chain and
    returns a normalized CellExecutionResult. Tier errors never escape;
    only an unsupported language is raised to the caller.
    """

    def __init__(
        self,
        state: Optional[RuntimeState] = None,
        chains: Optional[Dict[Language, FallbackChain]] = None,
        host_engine: Optional[HostEngine] = None,
        settings=None,
    ):
        self.settings = settings or default_settings
        self.state = state or RuntimeState.from_settings(self.settings)
        self.host_engine = host_engine
        self.chains = chains if chains is not None else build_backend_chains(
            self.state, self.settings, host_engine
        )

        missing = [language.value for language in Language if language not in self.chains]
        if missing:
            raise ValueError(f"No fallback chain for: {', '.join(missing)}")

        self._cell_locks: Dict[str, asyncio.Lock] = {}
        self._cell_lock_users: Dict[str, int] = {}
        self._cell_states: Dict[str, ExecutionState] = {}
        self._listeners: List[StateListener] = []

    @classmethod
    def from_settings(cls, settings=None) -> "ExecutionDispatcher":
        settings = settings or default_settings
        return cls(
            state=RuntimeState.from_settings(settings),
            host_engine=host_engine_from_settings(settings),
            settings=settings,
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        language: Union[str, Language],
        source: str,
        options: OptionsLike = None,
        cell_id: Optional[str] = None,
    ) -> CellExecutionResult:
        """
        Execute source as a cell of the given language.

        Raises:
            UnsupportedLanguage: If the language tag is not supported. No
                counter changes in that case.
        """
        lang = Language.parse(language)
        opts = coerce_options(options)

        if cell_id is None:
            return await self._run(lang, source, opts, None)

        lock = self._acquire_cell_lock(cell_id)
        try:
            async with lock:
                return await self._run(lang, source, opts, cell_id)
        finally:
            self._release_cell_lock(cell_id)

    async def execute_cell(self, cell: NotebookCell, options: OptionsLike = None) -> CellExecutionResult:
        """Execute a code cell and replace its outputs and execution count in place."""
        if not cell.is_code:
            raise ValueError(f"Cell {cell.id} is a {cell.kind.value} cell and cannot be executed")

        result = await self.execute(cell.language, cell.source, options, cell_id=cell.id)
        cell.outputs = list(result.outputs)
        cell.execution_count = result.execution_count
        return result

    async def _run(
        self,
        language: Language,
        source: str,
        options: ExecutionOptions,
        cell_id: Optional[str],
    ) -> CellExecutionResult:
        count = self.state.counters.increment(language)
        context = ExecutionContext(
            language=language,
            execution_count=count,
            options=options,
            default_timeout_ms=self.settings.DEFAULT_TIMEOUT_MS,
        )
        chain = self.chains[language]
        selected: List[str] = []

        def on_selected(tier: Backend) -> None:
            selected.append(tier.name)
            logger.debug("[%s] #%d running on %s", language.value, count, tier.name)
            self._set_state(cell_id, ExecutionState.RUNNING)

        self._set_state(cell_id, ExecutionState.SELECTING)
        try:
            result = await chain.execute(source, context, on_selected=on_selected)
        except ExecutionError as e:
            result = CellExecutionResult.failed(
                e.ename, e.evalue, e.traceback, count, backend=selected[-1] if selected else None
            )
        except BackendUnavailable as e:
            logger.warning("[%s] no tier could run the cell: %s", language.value, e)
            result = CellExecutionResult.failed("BackendUnavailable", str(e), None, count)
        except Exception as e:
            logger.exception("[%s] unexpected error during execution", language.value)
            trace = [line.rstrip("\n") for line in traceback.format_exception(type(e), e, e.__traceback__)]
            result = CellExecutionResult.failed(
                type(e).__name__, str(e), trace, count, backend=selected[-1] if selected else None
            )

        result = self._normalize(result, count, options)
        self._set_state(cell_id, ExecutionState.SUCCEEDED if result.success else ExecutionState.FAILED)
        self._set_state(cell_id, ExecutionState.IDLE)
        return result

    def _normalize(
        self,
        result: CellExecutionResult,
        count: int,
        options: ExecutionOptions,
    ) -> CellExecutionResult:
        """Stamp the reserved count and make success, error and error outputs agree."""
        outputs: List[Output] = []
        for output in result.outputs:
            if isinstance(output, StreamOutput) and not options.capture_output:
                continue
            if isinstance(output, ExecuteResultOutput):
                output = output.model_copy(update={"execution_count": count})
            outputs.append(output)

        error_outputs = [output for output in outputs if isinstance(output, ErrorOutput)]
        if result.success and result.error is None and not error_outputs:
            return CellExecutionResult.succeeded(outputs, count, backend=result.backend)

        if result.error is not None:
            info = result.error
        elif error_outputs:
            first = error_outputs[0]
            info = ErrorInfo(ename=first.ename, evalue=first.evalue, traceback=first.traceback)
        else:
            info = ErrorInfo(ename="ExecutionError", evalue="Execution failed without an error report")

        others = [
            output for output in outputs
            if not (
                isinstance(output, ErrorOutput)
                and output.ename == info.ename
                and output.evalue == info.evalue
            )
        ]
        return CellExecutionResult.failed(
            info.ename, info.evalue, info.traceback, count,
            outputs=others, backend=result.backend,
        )

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    def reset_execution_count(self, language: Union[str, Language, None] = None) -> None:
        """Reset one language's counter, or all of them."""
        self.state.counters.reset(Language.parse(language) if language is not None else None)

    def get_execution_count(self, language: Union[str, Language]) -> int:
        return self.state.counters.get(Language.parse(language))

    def execution_counts(self) -> Dict[str, int]:
        return self.state.counters.snapshot()

    # ------------------------------------------------------------------
    # Per-cell state
    # ------------------------------------------------------------------

    def _acquire_cell_lock(self, cell_id: str) -> asyncio.Lock:
        if cell_id not in self._cell_locks:
            self._cell_locks[cell_id] = asyncio.Lock()
        self._cell_lock_users[cell_id] = self._cell_lock_users.get(cell_id, 0) + 1
        return self._cell_locks[cell_id]

    def _release_cell_lock(self, cell_id: str) -> None:
        # Forget the lock once no call holds or waits on it
        users = self._cell_lock_users[cell_id] - 1
        if users:
            self._cell_lock_users[cell_id] = users
        else:
            del self._cell_lock_users[cell_id]
            del self._cell_locks[cell_id]

    def state_of(self, cell_id: str) -> ExecutionState:
        return self._cell_states.get(cell_id, ExecutionState.IDLE)

    def add_state_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _set_state(self, cell_id: Optional[str], state: ExecutionState) -> None:
        if cell_id is not None:
            if state == ExecutionState.IDLE:
                self._cell_states.pop(cell_id, None)
            else:
                self._cell_states[cell_id] = state

        for listener in self._listeners:
            try:
                listener(cell_id, state)
            except Exception as e:
                logger.warning("State listener failed: %s", e)

    async def aclose(self) -> None:
        if self.host_engine is not None:
            await self.host_engine.aclose()
        self.state.python.shutdown()
