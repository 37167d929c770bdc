"""
Main validator module for workflow graphs
"""

import time
from collections import Counter
from typing import Any, List, Optional, Set

from core.errors import NO_TRIGGER_NODES, GraphValidationError, NoTriggerNodesError
from core.graph.models import NodeKind, WorkflowGraph
from core.graph.traversal import GraphIndex, traverse
from core.logging_config import get_logger
from core.templates.parser import Addressing, extract_template_references
from .models import Severity, ValidateResponse, ValidationIssue

logger = get_logger(__name__)


def validate_graph(graph: WorkflowGraph, registry: Optional[Any] = None) -> ValidateResponse:
    """
    Validate a workflow graph

    Args:
        graph: The graph to validate
        registry: Optional step registry (anything with ``has(action_type)``);
            enables the unknown action type warning

    Returns:
        Validation response with errors and warnings
    """
    start_time = time.time()
    index = GraphIndex(graph)

    errors: List[ValidationIssue] = []
    warnings: List[ValidationIssue] = []

    # 1. Structure
    errors.extend(_check_duplicate_ids(graph))
    errors.extend(_check_dangling_edges(graph, index))
    if not index.trigger_nodes():
        errors.append(ValidationIssue(
            code=NO_TRIGGER_NODES,
            path="nodes",
            message="Workflow has no trigger node without incoming edges",
        ))

    # 2. Node configuration
    warnings.extend(_check_actions(graph, registry))
    warnings.extend(_check_condition_edges(graph, index))

    # 3. Reachability and cycles
    warnings.extend(_check_unreachable(index))
    warnings.extend(_check_cycles(index))

    # 4. Template references
    warnings.extend(_check_ambiguous_labels(graph))

    validation_time = time.time() - start_time
    logger.debug(f"Validation completed in {validation_time:.3f}s with {len(errors)} errors, {len(warnings)} warnings")

    return ValidateResponse(ok=not errors, errors=errors, warnings=warnings)


def ensure_valid(graph: WorkflowGraph, registry: Optional[Any] = None) -> ValidateResponse:
    """
    Validate and raise on the first fatal problem.

    Raises:
        NoTriggerNodesError: the graph has no trigger node (and no other error)
        GraphValidationError: any other structural error
    """
    response = validate_graph(graph, registry)
    if response.ok:
        return response

    structural = [issue for issue in response.errors if issue.code != NO_TRIGGER_NODES]
    if structural:
        raise GraphValidationError(structural[0].message, response.errors)
    raise NoTriggerNodesError(response.errors)


def _check_duplicate_ids(graph: WorkflowGraph) -> List[ValidationIssue]:
    counts = Counter(node.id for node in graph.nodes)
    return [
        ValidationIssue(
            code="DUPLICATE_NODE_ID",
            path=f"nodes[{node_id}]",
            message=f"Node id {node_id} is declared {count} times",
        )
        for node_id, count in counts.items() if count > 1
    ]


def _check_dangling_edges(graph: WorkflowGraph, index: GraphIndex) -> List[ValidationIssue]:
    issues = []
    for edge in graph.edges:
        if edge.source not in index.nodes:
            issues.append(ValidationIssue(
                code="DANGLING_EDGE_SOURCE",
                path=f"edges[{edge.id}].source",
                message=f"Edge source {edge.source} not found in nodes",
            ))
        if edge.target not in index.nodes:
            issues.append(ValidationIssue(
                code="DANGLING_EDGE_TARGET",
                path=f"edges[{edge.id}].target",
                message=f"Edge target {edge.target} not found in nodes",
            ))
    return issues


def _check_actions(graph: WorkflowGraph, registry: Optional[Any]) -> List[ValidationIssue]:
    issues = []
    for node in graph.nodes:
        if node.kind != NodeKind.ACTION:
            continue
        action_type = node.action_type
        if not action_type:
            issues.append(ValidationIssue(
                code="ACTION_TYPE_MISSING",
                path=f"nodes[{node.id}].config.actionType",
                message=f"Action node {node.id} has no actionType",
                severity=Severity.WARNING,
            ))
        elif registry is not None and not registry.has(action_type):
            issues.append(ValidationIssue(
                code="UNKNOWN_ACTION_TYPE",
                path=f"nodes[{node.id}].config.actionType",
                message=f"No step is registered for action type {action_type!r}",
                severity=Severity.WARNING,
                meta={"action_type": action_type},
            ))
    return issues


def _check_condition_edges(graph: WorkflowGraph, index: GraphIndex) -> List[ValidationIssue]:
    issues = []
    for node in graph.nodes:
        if node.kind != NodeKind.CONDITION:
            continue
        edges = index.outgoing_edges(node.id)
        if len(edges) > 2:
            ignored = [edge.id for edge in edges[2:]]
            issues.append(ValidationIssue(
                code="CONDITION_EXTRA_EDGES",
                path=f"nodes[{node.id}]",
                message=f"Condition {node.id} has {len(edges)} outgoing edges; only the true and false branches are followed",
                severity=Severity.WARNING,
                meta={"ignored_edges": ignored},
            ))
    return issues


def _check_unreachable(index: GraphIndex) -> List[ValidationIssue]:
    visited: Set[str] = set()
    for trigger in index.trigger_nodes():
        traverse(index, trigger.id, visited)
    return [
        ValidationIssue(
            code="UNREACHABLE_NODE",
            path=f"nodes[{node_id}]",
            message=f"Node {node_id} is not reachable from any trigger and will never run",
            severity=Severity.WARNING,
        )
        for node_id in index.nodes if node_id not in visited
    ]


def _check_cycles(index: GraphIndex) -> List[ValidationIssue]:
    """Report each edge that closes a cycle; traversal stops at such edges"""
    issues = []
    state = {}  # node id -> 1 while on the current path, 2 when finished

    for root in index.nodes:
        if root in state:
            continue
        stack = [(root, iter(index.outgoing_edges(root)))]
        state[root] = 1
        while stack:
            node_id, edges = stack[-1]
            edge = next(edges, None)
            if edge is None:
                state[node_id] = 2
                stack.pop()
                continue
            target_state = state.get(edge.target)
            if target_state == 1:
                issues.append(ValidationIssue(
                    code="CYCLE_TRUNCATED",
                    path=f"edges[{edge.id}]",
                    message=f"Edge {edge.source} -> {edge.target} closes a cycle; the target is not run again",
                    severity=Severity.WARNING,
                ))
            elif target_state is None:
                state[edge.target] = 1
                stack.append((edge.target, iter(index.outgoing_edges(edge.target))))
    return issues


def _check_ambiguous_labels(graph: WorkflowGraph) -> List[ValidationIssue]:
    labels = Counter((node.label or "").strip().lower() for node in graph.nodes if node.label)
    issues = []
    seen = set()
    for node in graph.nodes:
        for ref in extract_template_references(node.config):
            if ref.addressing != Addressing.LABEL:
                continue
            key = ref.node_ref.lower()
            if labels.get(key, 0) > 1 and (node.id, key) not in seen:
                seen.add((node.id, key))
                issues.append(ValidationIssue(
                    code="AMBIGUOUS_LABEL_REFERENCE",
                    path=f"nodes[{node.id}].config",
                    message=f"Label reference {ref.node_ref!r} matches {labels[key]} nodes; the first match is used",
                    severity=Severity.WARNING,
                ))
    return issues
