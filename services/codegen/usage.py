"""
Usage analysis: which node outputs are referenced anywhere in the graph.

Runs over every template in the whole graph before code generation
starts, so that nodes nobody reads are emitted as bare calls.
"""

from typing import Dict, List, Set

from core.graph import WorkflowGraph
from core.templates import extract_template_references
from core.templates.parser import Addressing
from core.templates.resolver import NON_TEMPLATED_KEYS


def _labels(graph: WorkflowGraph) -> Dict[str, List[str]]:
    by_label: Dict[str, List[str]] = {}
    for node in graph.nodes:
        by_label.setdefault((node.label or "").strip().lower(), []).append(node.id)
    return by_label


def referenced_node_ids(graph: WorkflowGraph) -> Set[str]:
    """
    Ids of every node some template reads from.

    A label reference marks every node carrying that label, since which
    one it resolves to depends on what has run by then.
    """
    by_label = _labels(graph)
    node_ids = {node.id for node in graph.nodes}
    referenced: Set[str] = set()

    for node in graph.nodes:
        templated = {key: value for key, value in node.config.items() if key not in NON_TEMPLATED_KEYS}
        for ref in extract_template_references(templated):
            if ref.addressing == Addressing.LABEL:
                referenced.update(by_label.get(ref.node_ref.strip().lower(), []))
            elif ref.node_ref in node_ids:
                referenced.add(ref.node_ref)

    return referenced
