"""SQL tier backed by PostgreSQL through asyncpg."""
import asyncio
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

import asyncpg

from ..core.errors import BackendUnavailable, ExecutionError, ExecutionTimeout
from ..kernel.types import ExecutionContext
from ..models.output import execute_result, stream
from ..models.result import CellExecutionResult
from .base import Backend, POSTGRES
from .tables import MAX_DISPLAY_ROWS, table_bundle

logger = logging.getLogger(__name__)

TEMPLATE_VARIABLE = re.compile(r"\{(\w+)\}")

NamespaceProvider = Callable[[], Dict[str, Any]]


def prepare_parameterized_query(sql: str, variables: Dict[str, Any]) -> Tuple[str, List[Optional[str]]]:
    """
    Convert {variable} templates to $1, $2, ... parameter syntax.

    Args:
        sql: SQL query with {variable_name} templates
        variables: Dictionary mapping variable names to values

    Returns:
        Tuple of (parameterized_sql, parameter_values as strings)

    Raises:
        ValueError: If a template variable is not found in variables dict

    Example:
        sql = "SELECT {user_id} as id, {min_age} as min_age"
        variables = {'user_id': 42, 'min_age': 18}

        Returns:
            ("SELECT $1 as id, $2 as min_age", ['42', '18'])

    Note:
        All parameters are sent as strings and PostgreSQL casts them from
        the SQL context. None is sent as NULL.
    """
    params: List[Optional[str]] = []

    def replace_var(match: re.Match) -> str:
        var_name = match.group(1)
        if var_name not in variables:
            raise ValueError(f"Variable '{var_name}' not found in namespace")

        value = variables[var_name]
        params.append(str(value) if value is not None else None)
        return f"${len(params)}"

    safe_sql = TEMPLATE_VARIABLE.sub(replace_var, sql)
    return safe_sql, params


class PostgresBackend(Backend):
    """
    Second sql tier: runs the query against DATABASE_URL.

    Template variables are bound from the python namespace. A missing DSN or a
    failed connection degrades to the next tier; errors raised while the
    query runs are failures of the cell.
    """
    name = POSTGRES

    def __init__(
        self,
        dsn: Optional[str],
        namespace_provider: Optional[NamespaceProvider] = None,
        max_rows: int = MAX_DISPLAY_ROWS,
    ):
        self.dsn = dsn
        self.namespace_provider = namespace_provider or dict
        self.max_rows = max_rows

    async def check_available(self, context: ExecutionContext) -> None:
        if not self.dsn:
            raise BackendUnavailable(self.name, "DATABASE_URL is not configured")

    async def execute(self, source: str, context: ExecutionContext) -> CellExecutionResult:
        try:
            safe_sql, params = prepare_parameterized_query(source, self.namespace_provider())
        except ValueError as e:
            raise ExecutionError("TemplateError", str(e)) from e

        try:
            conn = await asyncpg.connect(self.dsn, timeout=context.timeout_seconds)
        except asyncio.TimeoutError:
            raise BackendUnavailable(self.name, "connection timed out") from None
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise BackendUnavailable(self.name, f"cannot reach database: {e}") from e

        try:
            records = await conn.fetch(safe_sql, *params, timeout=context.timeout_seconds)
        except asyncio.TimeoutError:
            raise ExecutionTimeout("postgres", context.timeout_ms) from None
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise ExecutionError("SQLError", str(e)) from e
        finally:
            await conn.close()

        rows = [dict(record.items()) for record in records]
        logger.debug("Query returned %d row(s)", len(rows))

        outputs = []
        if params:
            outputs.append(stream("stdout", f"Executing: {safe_sql}\nParameters: {params}\n"))
        outputs.append(execute_result(table_bundle(rows, self.max_rows), context.execution_count))
        return CellExecutionResult.succeeded(outputs, context.execution_count, backend=self.name)
