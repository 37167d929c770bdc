"""
Shared service instances for the API, injected with ``Depends``.
"""

from typing import Optional

from core.logging_config import get_logger
from services.codegen import WorkflowCompiler
from services.executor import ExecutionLogStore
from services.steps import StepRegistry, default_registry
from api.store import InMemoryWorkflowStore, WorkflowStore

logger = get_logger(__name__)

_workflow_store: Optional[WorkflowStore] = None
_log_store: Optional[ExecutionLogStore] = None
_registry: Optional[StepRegistry] = None


def get_workflow_store() -> WorkflowStore:
    global _workflow_store
    if _workflow_store is None:
        _workflow_store = InMemoryWorkflowStore()
    return _workflow_store


def get_log_store() -> ExecutionLogStore:
    global _log_store
    if _log_store is None:
        _log_store = ExecutionLogStore()
    return _log_store


def get_registry() -> StepRegistry:
    global _registry
    if _registry is None:
        _registry = default_registry()
        logger.info(f"📚 Step registry ready with {len(_registry.action_types())} action types")
    return _registry


def get_compiler() -> WorkflowCompiler:
    return WorkflowCompiler(registry=get_registry())


def reset_dependencies():
    """Drop every shared instance; the next request builds fresh ones"""
    global _workflow_store, _log_store, _registry
    _workflow_store = None
    _log_store = None
    _registry = None
