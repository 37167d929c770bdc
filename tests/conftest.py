"""
Pytest configuration and fixtures for the workflow engine tests.
"""
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add the project root and this directory to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

from codegen_loader import load_generated  # noqa: E402
from recording_steps import build_registry, reset  # noqa: E402
from services.codegen import CompileOptions, WorkflowCompiler  # noqa: E402
from services.executor import (  # noqa: E402
    EnvironmentCredentialResolver,
    ExecutionLogStore,
    WorkflowExecutor,
)


@pytest.fixture(autouse=True)
def clear_recorded_calls():
    """Every test starts with an empty call record."""
    reset()
    yield
    reset()


@pytest.fixture
def registry():
    """Registry of recording steps."""
    return build_registry()


@pytest.fixture
def log_store():
    """Fresh in-memory execution log."""
    return ExecutionLogStore()


@pytest.fixture
def executor(registry, log_store):
    """Interpreter wired to recording steps and an empty environment."""
    return WorkflowExecutor(
        registry=registry,
        credential_resolver=EnvironmentCredentialResolver(environ={}),
        log_store=log_store,
        concurrent_branches=True,
    )


@pytest.fixture
def compiler(registry):
    """Compiler wired to recording steps."""
    return WorkflowCompiler(registry=registry, options=CompileOptions(concurrent_branches=True))


@pytest.fixture
def run_generated(compiler, monkeypatch):
    """Compile a graph, load the module and await its orchestrator."""
    monkeypatch.delenv("RESEND_API_KEY", raising=False)

    async def _run(graph, payload=None):
        generated = compiler.compile(graph)
        namespace = load_generated(generated.code)
        return await namespace[generated.function_name](payload)

    return _run


@pytest.fixture
def test_client(registry):
    """Test client for the FastAPI application backed by recording steps."""
    from api import dependencies
    from api.main import app

    dependencies.reset_dependencies()
    app.dependency_overrides[dependencies.get_registry] = lambda: registry
    app.dependency_overrides[dependencies.get_compiler] = lambda: WorkflowCompiler(registry=registry)
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
    dependencies.reset_dependencies()
