"""JavaScript and TypeScript cells run by a local Node.js subprocess."""
import asyncio
import logging
import os
import shutil
import tempfile
from typing import List, Optional

from ..core.errors import BackendUnavailable, ExecutionTimeout
from ..kernel.types import ExecutionContext, Language
from ..models.output import Output, execute_result, stream
from ..models.result import CellExecutionResult
from .base import Backend, NODE

logger = logging.getLogger(__name__)

NO_OUTPUT_MESSAGE = "Code executed successfully"


class NodeBackend(Backend):
    """
    First javascript/typescript tier.

    The source is written to a temporary file and run with node. TypeScript
    relies on node's built-in type stripping. A missing binary degrades.
    """
    name = NODE

    def __init__(self, language: Language, node_binary: str = "node"):
        self.language = language
        self.node_binary = node_binary

    @property
    def suffix(self) -> str:
        return ".ts" if self.language == Language.TYPESCRIPT else ".js"

    def resolve_binary(self) -> Optional[str]:
        return shutil.which(self.node_binary)

    async def check_available(self, context: ExecutionContext) -> None:
        if self.resolve_binary() is None:
            raise BackendUnavailable(self.name, f"{self.node_binary} not found on PATH")

    def command(self, binary: str, script_path: str) -> List[str]:
        if self.language == Language.TYPESCRIPT:
            return [binary, "--experimental-strip-types", "--no-warnings", script_path]
        return [binary, script_path]

    async def execute(self, source: str, context: ExecutionContext) -> CellExecutionResult:
        binary = self.resolve_binary()
        if binary is None:
            raise BackendUnavailable(self.name, f"{self.node_binary} not found on PATH")

        options = context.options
        env = {**os.environ, **options.environment}

        with tempfile.TemporaryDirectory(prefix="notebook-cell-") as tmpdir:
            script_path = os.path.join(tmpdir, f"cell{self.suffix}")
            with open(script_path, "w", encoding="utf-8") as f:
                f.write(source)

            try:
                process = await asyncio.create_subprocess_exec(
                    *self.command(binary, script_path),
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    cwd=options.working_directory or None,
                    env=env,
                )
            except OSError as e:
                raise BackendUnavailable(self.name, f"could not start {binary}: {e}") from e

            try:
                stdout, stderr = await asyncio.wait_for(
                    process.communicate(), timeout=context.timeout_seconds
                )
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                raise ExecutionTimeout(self.language.value, context.timeout_ms) from None

        stdout_text = stdout.decode("utf-8", errors="replace")
        stderr_text = stderr.decode("utf-8", errors="replace")

        if process.returncode != 0:
            logger.info("[%s] node exited with %s", self.language.value, process.returncode)
            trace = stderr_text.rstrip("\n").splitlines()
            evalue = trace[-1] if trace else f"node exited with code {process.returncode}"
            # stderr becomes the traceback; stdout printed before the failure is kept
            streams = [stream("stdout", stdout_text)] if stdout_text else []
            return CellExecutionResult.failed(
                "JavaScriptError", evalue, trace or None, context.execution_count,
                outputs=streams, backend=self.name,
            )

        outputs: List[Output] = []
        if stdout_text:
            outputs.append(stream("stdout", stdout_text))
        if stderr_text:
            outputs.append(stream("stderr", stderr_text))
        if not outputs:
            outputs.append(execute_result({"text/plain": NO_OUTPUT_MESSAGE}, context.execution_count))

        return CellExecutionResult.succeeded(outputs, context.execution_count, backend=self.name)
