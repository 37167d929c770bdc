"""
Workflow graph model, traversal primitives and execution planning.
"""

from .models import BranchRole, Edge, Node, NodeKind, WorkflowGraph
from .traversal import GraphIndex, reachable_from, successors_of, traverse, trigger_nodes
from .plan import (
    BranchStep,
    DisabledStep,
    ExecutionPlan,
    ExecutionPlanner,
    JoinStep,
    ParallelStep,
    RunStep,
    TriggerPlan,
    build_plan,
)

__all__ = [
    # Models
    "BranchRole",
    "Edge",
    "Node",
    "NodeKind",
    "WorkflowGraph",

    # Traversal
    "GraphIndex",
    "reachable_from",
    "successors_of",
    "traverse",
    "trigger_nodes",

    # Planning
    "BranchStep",
    "DisabledStep",
    "ExecutionPlan",
    "ExecutionPlanner",
    "JoinStep",
    "ParallelStep",
    "RunStep",
    "TriggerPlan",
    "build_plan",
]
