"""Tests for backend fallback chains and the delegated tiers."""
import json

import httpx
import pytest

from notebook_runtime.core.errors import BackendUnavailable
from notebook_runtime.execution.base import FallbackChain, HOST, PYTHON_API, SIMULATED
from notebook_runtime.execution.host import HttpHostEngine, host_engine_from_settings
from notebook_runtime.execution.python import PythonApiBackend
from notebook_runtime.execution.simulated import SimulatedBackend
from notebook_runtime.kernel import ExecutionContext, ExecutionOptions, Language
from notebook_runtime.models import ExecuteResultOutput, StreamOutput
from tests.test_utils import FakeHostEngine, make_dispatcher, make_settings


def context_for(language: Language, **options) -> ExecutionContext:
    return ExecutionContext(language=language, execution_count=1, options=ExecutionOptions(**options))


@pytest.mark.asyncio
async def test_host_python_result_is_used():
    host = FakeHostEngine({
        "execute_python_code": {
            "success": True,
            "outputs": [{"output_type": "stream", "name": "stdout", "text": "from host\n"}],
            "execution_count": 17,
        },
    })
    dispatcher = make_dispatcher(host, PYTHON_INPROCESS_ENABLED=False)

    result = await dispatcher.execute("python", "print('from host')", {"timeout": 5000, "workingDirectory": "/tmp"})

    assert result.success is True
    assert result.backend == HOST
    assert result.execution_count == 1
    assert result.outputs[0].text == "from host\n"

    command, payload = host.calls[0]
    assert command == "execute_python_code"
    assert payload["code"] == "print('from host')"
    assert payload["timeout"] == 5000
    assert payload["workingDirectory"] == "/tmp"


@pytest.mark.asyncio
async def test_host_python_error_is_reported():
    host = FakeHostEngine({
        "execute_python_code": {
            "success": False,
            "outputs": [],
            "execution_count": 1,
            "error": {"ename": "NameError", "evalue": "name 'y' is not defined", "traceback": []},
        },
    })
    dispatcher = make_dispatcher(host, PYTHON_INPROCESS_ENABLED=False)

    result = await dispatcher.execute("python", "y")

    assert result.success is False
    assert result.error.ename == "NameError"
    assert result.error_outputs()[0].ename == "NameError"


@pytest.mark.asyncio
async def test_host_sql_rows_are_tabulated():
    host = FakeHostEngine({
        "execute_sql": {"success": True, "rows": [{"id": 1, "name": "alice"}, {"id": 2, "name": "bob"}]},
    })
    dispatcher = make_dispatcher(host)

    result = await dispatcher.execute("sql", "SELECT * FROM users", {"timeout": 1000})

    assert result.success is True
    assert result.backend == HOST
    output = result.outputs[0]
    assert isinstance(output, ExecuteResultOutput)
    assert output.execution_count == 1
    assert "alice" in output.data["text/plain"]
    assert "<table" in output.data["text/html"]
    assert output.data["application/json"]["columns"] == ["id", "name"]
    assert host.calls == [("execute_sql", {"query": "SELECT * FROM users", "timeout": 1000})]


@pytest.mark.asyncio
async def test_host_sql_empty_result():
    host = FakeHostEngine({"execute_sql": {"success": True, "rows": []}})
    dispatcher = make_dispatcher(host)

    result = await dispatcher.execute("sql", "SELECT 1 WHERE false")

    assert result.outputs[0].data["text/plain"] == "No rows returned"


@pytest.mark.asyncio
async def test_host_reported_failure_degrades_to_simulation():
    host = FakeHostEngine({"execute_sql": {"success": False, "error": "relation does not exist"}})
    dispatcher = make_dispatcher(host)

    result = await dispatcher.execute("sql", "SELECT * FROM missing")

    assert result.success is True
    assert result.backend == SIMULATED


@pytest.mark.asyncio
async def test_host_call_failure_degrades_to_simulation():
    host = FakeHostEngine({"execute_r": ConnectionError("host went away")})
    dispatcher = make_dispatcher(host)

    result = await dispatcher.execute("r", "print(1)")

    assert result.success is True
    assert result.backend == SIMULATED
    assert "R code executed (simulated)" in result.outputs[0].text


@pytest.mark.asyncio
async def test_host_timeout_is_a_failure():
    host = FakeHostEngine({"execute_rust": {"success": True, "output": "late"}}, delay=0.5)
    dispatcher = make_dispatcher(host)

    result = await dispatcher.execute("rust", "fn main() {}", {"timeout": 20})

    assert result.success is False
    assert result.error.ename == "Timeout"
    assert result.execution_count == 1


@pytest.mark.asyncio
async def test_rust_execute_and_compile():
    host = FakeHostEngine({
        "execute_rust": {"success": True, "output": "Hello from Rust\n"},
        "compile_rust": {"success": True, "output": ""},
    })
    dispatcher = make_dispatcher(host)

    executed = await dispatcher.execute("rust", "fn main() {}")
    compiled = await dispatcher.execute("rust", "fn main() {}", {"compileOnly": True})

    assert executed.outputs[0].text == "Hello from Rust\n"
    assert compiled.outputs[0].text == "Compilation successful"
    assert compiled.execution_count == 2
    assert host.calls[1] == ("compile_rust", {"code": "fn main() {}", "target": "wasm"})


@pytest.mark.asyncio
async def test_r_default_message():
    host = FakeHostEngine({"execute_r": {"success": True}})
    dispatcher = make_dispatcher(host)

    result = await dispatcher.execute("r", "x <- 1")

    assert result.outputs[0].text == "R code executed successfully"


@pytest.mark.asyncio
async def test_navlambda_json_and_text():
    answers = iter(['{"path": [1, 2, 3]}', "field computed"])
    host = FakeHostEngine({"run_live_preview": lambda payload: next(answers)})
    dispatcher = make_dispatcher(host)

    structured = await dispatcher.execute("navlambda", "⋋ path")
    plain = await dispatcher.execute("navlambda", "⋋ field")

    assert isinstance(structured.outputs[0], ExecuteResultOutput)
    assert structured.outputs[0].data["application/json"] == {"path": [1, 2, 3]}
    assert json.loads(structured.outputs[0].data["text/plain"]) == {"path": [1, 2, 3]}
    assert isinstance(plain.outputs[0], StreamOutput)
    assert plain.outputs[0].text == "field computed"


@pytest.mark.asyncio
async def test_python_api_tier():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/python/execute"
        body = json.loads(request.content)
        assert body["code"] == "1 + 1"
        return httpx.Response(200, json={
            "success": True,
            "outputs": [{"output_type": "execute_result", "execution_count": 1,
                         "data": {"text/plain": "2"}, "metadata": {}}],
            "execution_count": 1,
        })

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    backend = PythonApiBackend("http://python-api", client=client)
    chain = FallbackChain(Language.PYTHON, [backend, SimulatedBackend(Language.PYTHON)])

    result = await chain.execute("1 + 1", context_for(Language.PYTHON))

    assert result.backend == PYTHON_API
    assert result.outputs[0].data["text/plain"] == "2"
    await client.aclose()


@pytest.mark.asyncio
async def test_python_api_server_error_degrades():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
    backend = PythonApiBackend("http://python-api", client=client)
    chain = FallbackChain(Language.PYTHON, [backend, SimulatedBackend(Language.PYTHON)])

    result = await chain.execute("print('x')", context_for(Language.PYTHON))

    assert result.backend == SIMULATED
    await client.aclose()


@pytest.mark.asyncio
async def test_http_host_engine_posts_commands():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/invoke/execute_sql"
        return httpx.Response(200, json={"success": True, "rows": [{"n": 1}]})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    engine = HttpHostEngine("http://host/", client=client)

    assert engine.available
    assert await engine.invoke("execute_sql", {"query": "SELECT 1"}) == {"success": True, "rows": [{"n": 1}]}

    await engine.aclose()
    # Caller-owned clients are left open
    assert not client.is_closed
    await client.aclose()


def test_host_engine_from_settings():
    assert host_engine_from_settings(make_settings()) is None
    engine = host_engine_from_settings(make_settings(HOST_ENGINE_URL="http://localhost:9000"))
    assert isinstance(engine, HttpHostEngine)
    assert engine.available


@pytest.mark.asyncio
async def test_chain_raises_when_every_tier_declines():
    backend = PythonApiBackend(None)
    chain = FallbackChain(Language.PYTHON, [backend])

    with pytest.raises(BackendUnavailable):
        await chain.execute("1", context_for(Language.PYTHON))


def test_chain_requires_tiers():
    with pytest.raises(ValueError):
        FallbackChain(Language.R, [])


@pytest.mark.asyncio
async def test_simulated_javascript_echoes_console_log():
    backend = SimulatedBackend(Language.JAVASCRIPT)
    result = await backend.execute("console.log('hello')\nconsole.log(`tpl`)", context_for(Language.JAVASCRIPT))

    assert [output.text for output in result.outputs] == ["hello\n", "tpl\n"]


@pytest.mark.asyncio
async def test_simulated_sql_non_select():
    backend = SimulatedBackend(Language.SQL)
    result = await backend.execute("CREATE TABLE t (id int)", context_for(Language.SQL))

    assert result.outputs[0].text == "SQL command executed (simulated)\n"


@pytest.mark.asyncio
async def test_navlambda_reported_failure_degrades_to_simulation():
    host = FakeHostEngine({"run_live_preview": {"success": False, "error": "compiler crashed"}})
    dispatcher = make_dispatcher(host)

    result = await dispatcher.execute("navlambda", "⋋ path", {"timeout": 5000})

    assert result.success is True
    assert result.backend == SIMULATED
    assert host.calls == [("run_live_preview", {"code": "⋋ path", "timeout": 5000})]


@pytest.mark.asyncio
async def test_navlambda_success_dict_renders_output():
    host = FakeHostEngine({"run_live_preview": {"success": True, "output": '{"field": 3}'}})
    dispatcher = make_dispatcher(host)

    result = await dispatcher.execute("navlambda", "⋋ field")

    assert result.backend == HOST
    assert result.outputs[0].data["application/json"] == {"field": 3}


@pytest.mark.asyncio
async def test_host_sql_rows_that_are_not_mappings_degrade():
    host = FakeHostEngine({"execute_sql": {"success": True, "rows": [[1, 2]]}})
    dispatcher = make_dispatcher(host)

    result = await dispatcher.execute("sql", "SELECT 1, 2")

    assert result.success is True
    assert result.backend == SIMULATED


@pytest.mark.asyncio
async def test_host_non_text_output_degrades():
    host = FakeHostEngine({"execute_r": {"success": True, "output": {"value": 1}}})
    dispatcher = make_dispatcher(host)

    result = await dispatcher.execute("r", "x <- 1")

    assert result.success is True
    assert result.backend == SIMULATED
