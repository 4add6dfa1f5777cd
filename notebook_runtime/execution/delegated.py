"""Tiers that delegate execution to the host engine."""
import asyncio
import json
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..core.errors import BackendUnavailable, ExecutionTimeout
from ..kernel.types import ExecutionContext
from ..models.output import execute_result, stream
from ..models.result import CellExecutionResult
from .base import Backend, HOST
from .host import HostEngine
from .tables import MAX_DISPLAY_ROWS, table_bundle

logger = logging.getLogger(__name__)


class HostCommandBackend(Backend):
    """
    Base for tiers backed by a host engine command.

    A missing host, a failed call or a response with success=false all
    degrade to the next tier. Only an exceeded deadline is reported, as a
    Timeout failure.
    """
    name = HOST
    command: str = ""

    def __init__(self, engine: Optional[HostEngine]):
        self.engine = engine

    async def check_available(self, context: ExecutionContext) -> None:
        if self.engine is None or not self.engine.available:
            raise BackendUnavailable(self.name, "no host engine present")

    async def invoke(self, command: str, payload: Dict[str, Any], context: ExecutionContext) -> Any:
        try:
            return await asyncio.wait_for(
                self.engine.invoke(command, payload),
                timeout=context.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise ExecutionTimeout(f"host command {command}", context.timeout_ms) from None
        except Exception as e:
            raise BackendUnavailable(self.name, f"{command} failed: {e}") from e

    def require_success(self, command: str, response: Any) -> Dict[str, Any]:
        if not isinstance(response, dict):
            raise BackendUnavailable(self.name, f"{command} returned an unexpected response")
        if not response.get("success"):
            error = response.get("error") or f"{command} failed"
            raise BackendUnavailable(self.name, f"{command} reported: {error}")
        return response

    def output_text(self, command: str, response: Dict[str, Any], default: str) -> str:
        output = response.get("output")
        if output is None or output == "":
            return default
        if not isinstance(output, str):
            raise BackendUnavailable(self.name, f"{command} returned a non-text output")
        return output

    def text_result(self, text: str, context: ExecutionContext) -> CellExecutionResult:
        return CellExecutionResult.succeeded(
            [stream("stdout", text)], context.execution_count, backend=self.name
        )


class HostPythonBackend(HostCommandBackend):
    """execute_python_code answers with a complete CellExecutionResult."""
    command = "execute_python_code"

    async def execute(self, source: str, context: ExecutionContext) -> CellExecutionResult:
        options = context.options
        response = await self.invoke(self.command, {
            "code": source,
            "timeout": context.timeout_ms,
            "workingDirectory": options.working_directory,
            "environment": options.environment,
        }, context)

        if not isinstance(response, dict):
            raise BackendUnavailable(self.name, f"{self.command} returned an unexpected response")
        try:
            result = CellExecutionResult.model_validate(
                {**response, "execution_count": context.execution_count, "backend": self.name}
            )
        except ValidationError as e:
            raise BackendUnavailable(self.name, f"{self.command} returned an invalid result: {e}") from e
        return result


class HostSqlBackend(HostCommandBackend):
    command = "execute_sql"

    def __init__(self, engine: Optional[HostEngine], max_rows: int = MAX_DISPLAY_ROWS):
        super().__init__(engine)
        self.max_rows = max_rows

    async def execute(self, source: str, context: ExecutionContext) -> CellExecutionResult:
        response = await self.invoke(self.command, {
            "query": source,
            "timeout": context.timeout_ms,
        }, context)
        response = self.require_success(self.command, response)

        rows = response.get("rows")
        if not isinstance(rows, list):
            raise BackendUnavailable(self.name, f"{self.command} returned no rows field")
        if not all(isinstance(row, dict) for row in rows):
            raise BackendUnavailable(self.name, f"{self.command} returned rows that are not mappings")

        return CellExecutionResult.succeeded(
            [execute_result(table_bundle(rows, self.max_rows), context.execution_count)],
            context.execution_count,
            backend=self.name,
        )


class HostRustBackend(HostCommandBackend):
    """execute_rust, or compile_rust when compile_only is set."""
    supports_compile_only = True
    command = "execute_rust"
    compile_command = "compile_rust"

    async def execute(self, source: str, context: ExecutionContext) -> CellExecutionResult:
        if context.options.compile_only:
            response = await self.invoke(self.compile_command, {
                "code": source,
                "target": "wasm",
            }, context)
            response = self.require_success(self.compile_command, response)
            return self.text_result(
                self.output_text(self.compile_command, response, "Compilation successful"), context
            )

        response = await self.invoke(self.command, {
            "code": source,
            "timeout": context.timeout_ms,
        }, context)
        response = self.require_success(self.command, response)
        return self.text_result(self.output_text(self.command, response, "Execution successful"), context)


class HostRBackend(HostCommandBackend):
    command = "execute_r"

    async def execute(self, source: str, context: ExecutionContext) -> CellExecutionResult:
        response = await self.invoke(self.command, {
            "code": source,
            "timeout": context.timeout_ms,
        }, context)
        response = self.require_success(self.command, response)
        return self.text_result(
            self.output_text(self.command, response, "R code executed successfully"), context
        )


class HostNavLambdaBackend(HostCommandBackend):
    """
    run_live_preview answers with text, or with a {success, output} dict.

    Text that parses as JSON becomes a structured result.
    """
    command = "run_live_preview"

    async def execute(self, source: str, context: ExecutionContext) -> CellExecutionResult:
        response = await self.invoke(self.command, {
            "code": source,
            "timeout": context.timeout_ms,
        }, context)

        if not isinstance(response, str):
            response = self.require_success(self.command, response)
            response = response.get("output")
            if response is None:
                return self.text_result("Program executed successfully", context)
            if not isinstance(response, str):
                return self.value_result(response, context)

        try:
            value = json.loads(response)
        except ValueError:
            return self.text_result(response, context)
        return self.value_result(value, context)

    def value_result(self, value: Any, context: ExecutionContext) -> CellExecutionResult:
        plain = value if isinstance(value, str) else json.dumps(value, indent=2)
        return CellExecutionResult.succeeded(
            [execute_result({"application/json": value, "text/plain": plain}, context.execution_count)],
            context.execution_count,
            backend=self.name,
        )
