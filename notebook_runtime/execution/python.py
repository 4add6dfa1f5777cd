"""Python execution: in-process interpreter and the remote python API."""
import ast
import asyncio
import base64
import builtins
import importlib
import importlib.util
import json
import logging
import sys
import traceback
from concurrent.futures import ThreadPoolExecutor
from contextlib import redirect_stderr, redirect_stdout
from io import BytesIO, StringIO
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
from pydantic import ValidationError

from ..core.errors import BackendUnavailable, ExecutionTimeout
from ..kernel.types import ExecutionContext
from ..models.output import Output, display_data, execute_result, stream
from ..models.result import CellExecutionResult
from .base import Backend, IN_PROCESS, PYTHON_API

logger = logging.getLogger(__name__)

CELL_FILENAME = "<cell>"


def format_exception(exc: BaseException) -> Tuple[str, str, List[str]]:
    """
    Name, message and traceback lines for an exception raised by cell code.

    Frames belonging to the interpreter itself are dropped. Never raises: if
    the traceback cannot be formatted a generic trace is returned instead.
    """
    ename = type(exc).__name__
    try:
        evalue = str(exc)
    except Exception:
        evalue = "<unprintable exception>"

    try:
        tb = exc.__traceback__
        while tb is not None and tb.tb_frame.f_code.co_filename != CELL_FILENAME:
            tb = tb.tb_next
        lines = traceback.format_exception(type(exc), exc, tb)
        trace = [line.rstrip("\n") for line in lines]
    except Exception:
        trace = ["Traceback unavailable", f"{ename}: {evalue}"]

    return ename, evalue, trace or [f"{ename}: {evalue}"]


def _safe_repr(obj: Any) -> str:
    try:
        return repr(obj)
    except Exception as e:
        return f"<{type(obj).__name__} object (repr failed: {e})>"


def _figure_to_png(figure) -> str:
    buf = BytesIO()
    figure.savefig(buf, format="png", bbox_inches="tight", dpi=100)
    buf.seek(0)
    return base64.b64encode(buf.read()).decode("utf-8")


def mime_bundle(obj: Any) -> Dict[str, Any]:
    """
    Convert a Python object to a MIME bundle.

    text/plain (repr) is always present. Additionally:
    - Matplotlib figures → image/png (base64)
    - Plotly figures → application/vnd.plotly.v1+json
    - Altair charts → application/vnd.vegalite.v5+json
    - Pandas DataFrames → text/html and a JSON table
    - Objects with _repr_html_ → text/html
    """
    bundle: Dict[str, Any] = {"text/plain": _safe_repr(obj)}

    try:
        # Matplotlib figures
        mpl_figure = sys.modules.get("matplotlib.figure")
        if mpl_figure is not None and isinstance(obj, mpl_figure.Figure):
            bundle["image/png"] = _figure_to_png(obj)
            pyplot = sys.modules.get("matplotlib.pyplot")
            if pyplot is not None:
                pyplot.close(obj)
            return bundle

        # Plotly figures
        plotly_go = sys.modules.get("plotly.graph_objects")
        if plotly_go is not None and isinstance(obj, plotly_go.Figure):
            bundle["application/vnd.plotly.v1+json"] = json.loads(obj.to_json())
            return bundle

        # Altair charts
        altair = sys.modules.get("altair")
        if altair is not None and isinstance(obj, altair.TopLevelMixin):
            bundle["application/vnd.vegalite.v5+json"] = obj.to_dict()
            return bundle

        # Pandas DataFrames
        pandas = sys.modules.get("pandas")
        if pandas is not None and isinstance(obj, pandas.DataFrame):
            bundle["text/html"] = obj.to_html()
            bundle["application/json"] = {
                "type": "table",
                "columns": [str(column) for column in obj.columns],
                "rows": json.loads(obj.to_json(orient="values", date_format="iso")),
            }
            return bundle

        repr_html = getattr(obj, "_repr_html_", None)
        if callable(repr_html) and not isinstance(obj, type):
            html = repr_html()
            if html:
                bundle["text/html"] = html
    except Exception as e:
        logger.warning("Rich display failed for %s: %s", type(obj).__name__, e)

    return bundle


class PythonInterpreter:
    """
    Process-scoped embedded interpreter.

    Initialization is lazy and coalesced: the first caller starts a single
    initialization task and every concurrent caller awaits that same task.
    A failed initialization is seen by all callers and sticks until reset().
    The namespace persists across executions.

    Cell code runs on a single dedicated worker thread so the event loop
    stays free and matplotlib state stays on one thread. Runs queue on that
    worker in submission order.
    """

    def __init__(self, enabled: bool = True, preload_modules: Sequence[str] = ()):
        self.enabled = enabled
        self.preload_modules = list(preload_modules)
        self.globals_dict: Dict[str, Any] = {}
        self.initialization_count = 0
        self._init_task: Optional[asyncio.Future] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="python-cell")

    @property
    def ready(self) -> bool:
        task = self._init_task
        return task is not None and task.done() and not task.cancelled() and task.exception() is None

    async def initialize(self) -> None:
        """Initialize once; concurrent callers share the same initialization."""
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())
        await asyncio.shield(self._init_task)

    async def _initialize(self) -> None:
        self.initialization_count += 1
        if not self.enabled:
            raise BackendUnavailable(IN_PROCESS, "in-process interpreter is disabled")

        logger.info("[Interpreter] Initializing in-process Python")
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self._executor, self._load)
        logger.info("[Interpreter] Ready")

    def _load(self) -> None:
        namespace: Dict[str, Any] = {"__builtins__": builtins, "__name__": "__main__"}

        if importlib.util.find_spec("matplotlib") is not None:
            import matplotlib
            # Figures are captured after each run, never shown in a window
            matplotlib.use("Agg")

        for module_name in self.preload_modules:
            try:
                namespace[module_name.split(".")[0]] = importlib.import_module(module_name)
            except ImportError as e:
                logger.warning("[Interpreter] Could not preload %s: %s", module_name, e)

        self.globals_dict = namespace

    def reset(self) -> None:
        """Drop the namespace and require a fresh initialization."""
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
        self._init_task = None
        self.globals_dict = {}

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

    async def execute(self, code: str, execution_count: int, timeout_ms: Optional[int] = None) -> CellExecutionResult:
        """
        Run code on the worker thread.

        Raises:
            ExecutionTimeout: If the run does not finish within timeout_ms.
                The worker keeps running the cell until it returns, so
                later runs queue behind it.
        """
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, self.run, code, execution_count)
        try:
            return await asyncio.wait_for(
                future, timeout=timeout_ms / 1000 if timeout_ms is not None else None
            )
        except asyncio.TimeoutError:
            raise ExecutionTimeout("python", timeout_ms) from None

    def run(self, code: str, execution_count: int) -> CellExecutionResult:
        """
        Execute code and capture its outputs.

        Strategy:
        1. Parse code into AST
        2. If last statement is an expression, eval it and capture the result
        3. Execute all other statements with exec()
        4. Capture stdout and stderr separately during execution
        5. Collect open matplotlib figures as display_data
        6. Convert the final expression value (if not None) to execute_result
        """
        stdout_buffer = StringIO()
        stderr_buffer = StringIO()
        has_value = False
        value = None

        try:
            tree = ast.parse(code, filename=CELL_FILENAME)

            with redirect_stdout(stdout_buffer), redirect_stderr(stderr_buffer):
                if tree.body and isinstance(tree.body[-1], ast.Expr):
                    statements = ast.Module(body=tree.body[:-1], type_ignores=[])
                    expression = ast.Expression(body=tree.body[-1].value)

                    if statements.body:
                        exec(compile(statements, CELL_FILENAME, "exec"), self.globals_dict)
                    value = eval(compile(expression, CELL_FILENAME, "eval"), self.globals_dict)
                    has_value = True
                else:
                    exec(compile(tree, CELL_FILENAME, "exec"), self.globals_dict)

        except (Exception, SystemExit) as e:
            ename, evalue, trace = format_exception(e)
            self._close_figures()
            return CellExecutionResult.failed(
                ename, evalue, trace, execution_count,
                outputs=self._stream_outputs(stdout_buffer, stderr_buffer),
                backend=IN_PROCESS,
            )

        outputs: List[Output] = self._stream_outputs(stdout_buffer, stderr_buffer)
        # The bundle closes a returned figure so it is not captured twice
        bundle = mime_bundle(value) if has_value and value is not None else None
        outputs.extend(self._capture_figures())
        if bundle is not None:
            outputs.append(execute_result(bundle, execution_count))

        return CellExecutionResult.succeeded(outputs, execution_count, backend=IN_PROCESS)

    def _stream_outputs(self, stdout_buffer: StringIO, stderr_buffer: StringIO) -> List[Output]:
        outputs: List[Output] = []
        if stdout_buffer.getvalue():
            outputs.append(stream("stdout", stdout_buffer.getvalue()))
        if stderr_buffer.getvalue():
            outputs.append(stream("stderr", stderr_buffer.getvalue()))
        return outputs

    def _capture_figures(self) -> List[Output]:
        pyplot = sys.modules.get("matplotlib.pyplot")
        if pyplot is None:
            return []

        outputs: List[Output] = []
        try:
            for number in pyplot.get_fignums():
                figure = pyplot.figure(number)
                outputs.append(display_data({
                    "image/png": _figure_to_png(figure),
                    "text/plain": _safe_repr(figure),
                }))
        except Exception as e:
            logger.warning("[Interpreter] Figure capture failed: %s", e)
        finally:
            self._close_figures()
        return outputs

    def _close_figures(self) -> None:
        pyplot = sys.modules.get("matplotlib.pyplot")
        if pyplot is not None:
            pyplot.close("all")


class InProcessPythonBackend(Backend):
    """First python tier: the embedded interpreter."""
    name = IN_PROCESS

    def __init__(self, interpreter: PythonInterpreter):
        self.interpreter = interpreter

    async def check_available(self, context: ExecutionContext) -> None:
        try:
            await self.interpreter.initialize()
        except BackendUnavailable:
            raise
        except Exception as e:
            raise BackendUnavailable(self.name, f"initialization failed: {e}") from e

    async def execute(self, source: str, context: ExecutionContext) -> CellExecutionResult:
        return await self.interpreter.execute(
            source, context.execution_count, timeout_ms=context.timeout_ms
        )


class PythonApiBackend(Backend):
    """Python tier served by a remote HTTP API: POST {base_url}/api/python/execute."""
    name = PYTHON_API
    path = "/api/python/execute"

    def __init__(self, base_url: Optional[str], client: Optional[httpx.AsyncClient] = None):
        self.base_url = (base_url or "").rstrip("/")
        self._client = client

    async def check_available(self, context: ExecutionContext) -> None:
        if not self.base_url:
            raise BackendUnavailable(self.name, "no python API configured")

    async def _post(self, payload: Dict[str, Any]) -> Any:
        url = f"{self.base_url}{self.path}"
        if self._client is not None:
            response = await self._client.post(url, json=payload)
        else:
            async with httpx.AsyncClient(timeout=None) as client:
                response = await client.post(url, json=payload)
        response.raise_for_status()
        return response.json()

    async def execute(self, source: str, context: ExecutionContext) -> CellExecutionResult:
        payload = {
            "code": source,
            "timeout": context.timeout_ms,
            "workingDirectory": context.options.working_directory,
            "environment": context.options.environment,
        }
        try:
            data = await asyncio.wait_for(self._post(payload), timeout=context.timeout_seconds)
        except asyncio.TimeoutError:
            raise ExecutionTimeout("python API", context.timeout_ms) from None
        except (httpx.HTTPError, ValueError) as e:
            raise BackendUnavailable(self.name, f"request failed: {e}") from e

        if not isinstance(data, dict):
            raise BackendUnavailable(self.name, "unexpected response body")
        try:
            return CellExecutionResult.model_validate(
                {**data, "execution_count": context.execution_count, "backend": self.name}
            )
        except ValidationError as e:
            raise BackendUnavailable(self.name, f"invalid result: {e}") from e
