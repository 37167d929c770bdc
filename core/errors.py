"""
Exception hierarchy shared by the graph model, the interpreter and the compiler.
"""

from typing import Any, List, Optional


NO_TRIGGER_NODES = "NO_TRIGGER_NODES"
NO_TRIGGER_NODES_MESSAGE = "No trigger nodes"


class WorkflowError(Exception):
    """Base class for every error raised by the workflow engine"""


class GraphValidationError(WorkflowError):
    """The graph cannot be run or compiled as declared"""

    def __init__(self, message: str, issues: Optional[List[Any]] = None):
        super().__init__(message)
        self.issues = issues or []


class NoTriggerNodesError(GraphValidationError):
    """The graph has no trigger node to start from"""

    code = NO_TRIGGER_NODES

    def __init__(self, issues: Optional[List[Any]] = None):
        super().__init__(f"{NO_TRIGGER_NODES_MESSAGE} found", issues)


class UnsupportedConditionError(WorkflowError):
    """A condition uses syntax outside the supported comparison subset"""

    def __init__(self, condition: str, reason: str):
        super().__init__(f"Unsupported condition expression {condition!r}: {reason}")
        self.condition = condition
        self.reason = reason


class StepNotFoundError(WorkflowError):
    """No step is registered for an action type"""

    def __init__(self, action_type: str):
        super().__init__(f"Unknown action type: {action_type}")
        self.action_type = action_type


class StepRegistryError(WorkflowError):
    """A step definition does not match its handler"""
