"""Placeholder execution used when no real backend is reachable."""
import re
from typing import List

from ..kernel.types import ExecutionContext, Language
from ..models.output import Output, display_data, execute_result, stream
from ..models.result import CellExecutionResult
from .base import Backend, SIMULATED

SIMULATED_METADATA = {"simulated": True}

PRINT_CALL = re.compile(r"print\s*\(([^)]*)\)")
CONSOLE_LOG_CALL = re.compile(r"console\.log\s*\(([^)]*)\)")


def _strip_quotes(argument: str) -> str:
    argument = argument.strip()
    if len(argument) >= 2 and argument[0] == argument[-1] and argument[0] in "'\"`":
        return argument[1:-1]
    return argument


def _echo_calls(pattern: re.Pattern, source: str) -> List[Output]:
    return [
        stream("stdout", _strip_quotes(argument) + "\n")
        for argument in pattern.findall(source)
        if argument.strip()
    ]


class SimulatedBackend(Backend):
    """
    Always succeeds and never computes anything.

    Output is derived from a shallow look at the source (echoing literal
    print/console.log calls) and is labelled as simulated.
    """
    name = SIMULATED

    def __init__(self, language: Language):
        self.language = language

    @property
    def supports_compile_only(self) -> bool:
        return self.language == Language.RUST

    async def execute(self, source: str, context: ExecutionContext) -> CellExecutionResult:
        count = context.execution_count
        handler = getattr(self, f"_simulate_{self.language.value}")
        return CellExecutionResult.succeeded(handler(source, context), count, backend=self.name)

    def _placeholder(self, text: str, count: int) -> Output:
        return execute_result({"text/plain": text}, count, metadata=dict(SIMULATED_METADATA))

    def _simulate_python(self, source: str, context: ExecutionContext) -> List[Output]:
        outputs = _echo_calls(PRINT_CALL, source)
        if "import matplotlib" in source or "import plt" in source:
            outputs.append(display_data(
                {"text/plain": "<matplotlib.figure.Figure>"},
                metadata=dict(SIMULATED_METADATA),
            ))
        if not outputs:
            outputs.append(self._placeholder("Code executed successfully (simulated)", context.execution_count))
        return outputs

    def _simulate_sql(self, source: str, context: ExecutionContext) -> List[Output]:
        if source.strip().upper().startswith("SELECT"):
            return [execute_result({
                "text/plain": "Query executed successfully\n(Simulated - use backend for real SQL)",
                "text/html": (
                    '<div style="padding: 12px; background: #1e1e1e; border-radius: 4px;">'
                    "Query executed successfully<br/>(Simulated - use backend for real SQL)</div>"
                ),
            }, context.execution_count, metadata=dict(SIMULATED_METADATA))]
        return [stream("stdout", "SQL command executed (simulated)\n")]

    def _simulate_rust(self, source: str, context: ExecutionContext) -> List[Output]:
        if context.options.compile_only:
            return [stream(
                "stdout",
                "Rust code compiled (simulated)\nNote: Real Rust compilation requires the host engine",
            )]
        return [stream(
            "stdout",
            "Rust code compiled and executed (simulated)\n"
            "Note: Real Rust execution requires backend or WebAssembly compilation",
        )]

    def _simulate_r(self, source: str, context: ExecutionContext) -> List[Output]:
        return [stream(
            "stdout",
            "R code executed (simulated)\nNote: Real R execution requires backend R installation",
        )]

    def _simulate_navlambda(self, source: str, context: ExecutionContext) -> List[Output]:
        return [stream(
            "stdout",
            "NAVΛ code executed (simulated)\n"
            "→ Navigation field computed\n"
            "→ Optimal path calculated\n"
            "Note: Real NAVΛ execution requires backend compiler",
        )]

    def _simulate_javascript(self, source: str, context: ExecutionContext) -> List[Output]:
        outputs = _echo_calls(CONSOLE_LOG_CALL, source)
        if not outputs:
            outputs.append(self._placeholder("Code executed successfully (simulated)", context.execution_count))
        return outputs

    _simulate_typescript = _simulate_javascript
