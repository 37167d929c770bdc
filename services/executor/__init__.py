"""
Workflow Execution Engine Package

Interprets workflow graphs in-process: walks the graph from its triggers,
resolves templates against prior node outputs and dispatches action nodes
to the step registry.

Main exports:
- WorkflowExecutor: Main execution engine class
- execute_workflow_async: Async function for executing workflows
- execute_workflow_sync: Sync function for executing workflows
- create_executor: Factory function for creating executor instances
"""

from .executor import (
    WorkflowExecutor,
    RunState,
    WorkflowRunResult,
    create_executor,
    execute_workflow_async,
    execute_workflow_sync
)
from .credentials import (
    CredentialResolver,
    EnvironmentCredentialResolver,
    StaticCredentialResolver,
    create_credential_resolver
)
from .execution_log import (
    ExecutionLogStore,
    NodeExecutionLog,
    WorkflowRun,
    NodeStatus,
    RunStatus
)

__all__ = [
    # Main classes
    "WorkflowExecutor",
    "RunState",
    "WorkflowRunResult",

    # Credentials
    "CredentialResolver",
    "EnvironmentCredentialResolver",
    "StaticCredentialResolver",
    "create_credential_resolver",

    # Execution log
    "ExecutionLogStore",
    "NodeExecutionLog",
    "WorkflowRun",

    # Enums
    "NodeStatus",
    "RunStatus",

    # Factory functions
    "create_executor",

    # Execution functions
    "execute_workflow_async",
    "execute_workflow_sync"
]

__version__ = "1.0.0"
