"""Pytest configuration and shared fixtures for runtime tests."""
import pytest
import sys
import os

# Add repository root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from notebook_runtime.models import CellKind, NotebookCell
from tests.test_utils import FakeHostEngine, make_dispatcher, make_settings


@pytest.fixture
def test_settings():
    """Settings with no host, no python API, no database and no node."""
    return make_settings()


@pytest.fixture
def dispatcher():
    """Fresh dispatcher with its own counters and interpreter."""
    return make_dispatcher()


@pytest.fixture
def fake_host():
    """Host engine that fails every command until responses are set."""
    return FakeHostEngine()


@pytest.fixture
def python_cell():
    return NotebookCell(id="cell1", kind=CellKind.CODE, language="python", source="x = 1\nx + 1")


@pytest.fixture
def markdown_cell():
    return NotebookCell(id="md1", kind=CellKind.MARKDOWN, language="markdown", source="# Title")
