"""Tests for the HTTP surface."""
import json

import pytest
from fastapi.testclient import TestClient

from notebook_runtime.main import create_app
from tests.test_utils import make_dispatcher


@pytest.fixture
def client():
    app = create_app(dispatcher=make_dispatcher())
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_execute_python(client):
    response = client.post("/api/v1/execute", json={"language": "python", "source": "print('hi')"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["execution_count"] == 1
    assert body["outputs"] == [{"output_type": "stream", "name": "stdout", "text": "hi\n"}]


def test_execute_accepts_camel_case_options(client):
    response = client.post("/api/v1/execute", json={
        "language": "rust",
        "source": "fn main() {}",
        "cellId": "cell-1",
        "options": {"compileOnly": True, "captureOutput": True, "timeout": 1000},
    })

    body = response.json()
    assert body["success"] is True
    assert "compiled (simulated)" in body["outputs"][0]["text"]


def test_execute_error_result(client):
    response = client.post("/api/v1/execute", json={"language": "python", "source": "1 / 0"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["error"]["ename"] == "ZeroDivisionError"
    assert body["outputs"][-1]["output_type"] == "error"


def test_execute_unknown_language(client):
    response = client.post("/api/v1/execute", json={"language": "cobol", "source": "x"})

    assert response.status_code == 400
    assert "cobol" in response.json()["detail"]


def test_execution_counts(client):
    client.post("/api/v1/execute", json={"language": "python", "source": "1"})
    client.post("/api/v1/execute", json={"language": "python", "source": "2"})
    client.post("/api/v1/execute", json={"language": "sql", "source": "SELECT 1"})

    counts = client.get("/api/v1/execution-counts").json()["counts"]
    assert counts["python"] == 2
    assert counts["sql"] == 1

    counts = client.post("/api/v1/execution-counts/reset", json={"language": "python"}).json()["counts"]
    assert counts["python"] == 0
    assert counts["sql"] == 1

    counts = client.post("/api/v1/execution-counts/reset").json()["counts"]
    assert set(counts.values()) == {0}


def test_reset_unknown_language(client):
    response = client.post("/api/v1/execution-counts/reset", json={"language": "cobol"})

    assert response.status_code == 400


def test_parse_notebook(client):
    document = {
        "cells": [
            {"cell_type": "markdown", "metadata": {}, "source": ["# Title\n", "text"]},
            {"cell_type": "code", "id": "c1", "metadata": {"language": "sql"},
             "source": "SELECT 1", "execution_count": None, "outputs": []},
        ],
        "metadata": {"kernelspec": {"name": "python3", "display_name": "Python 3", "language": "python"}},
        "nbformat": 4,
        "nbformat_minor": 5,
    }

    response = client.post("/api/v1/notebooks/parse", content=json.dumps(document))

    assert response.status_code == 200
    body = response.json()
    assert [cell["kind"] for cell in body["cells"]] == ["markdown", "code"]
    assert body["cells"][0]["source"] == "# Title\ntext"
    assert body["cells"][0]["id"] == "cell-0"
    assert body["cells"][1]["language"] == "sql"
    assert body["nbformat"] == 4


@pytest.mark.parametrize("payload", [
    "{broken",
    json.dumps({"metadata": {}, "nbformat": 4}),
    json.dumps({"cells": [], "nbformat": 3, "nbformat_minor": 0}),
])
def test_parse_rejects_bad_documents(client, payload):
    response = client.post("/api/v1/notebooks/parse", content=payload)

    assert response.status_code == 422


def test_serialize_notebook(client):
    response = client.post("/api/v1/notebooks/serialize", json={
        "cells": [
            {"id": "c1", "kind": "code", "language": "python", "source": "a = 1\nb = 2"},
            {"id": "m1", "kind": "markdown", "language": "markdown", "source": "notes"},
        ],
    })

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ipynb+json")
    document = response.json()
    assert document["nbformat"] == 4
    assert document["cells"][0]["source"] == ["a = 1\n", "b = 2"]
    assert document["metadata"]["kernelspec"]["name"] == "python3"
