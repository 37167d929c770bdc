"""
Derived adjacency and traversal primitives for workflow graphs.
"""

from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple, Union

from core.graph.models import BranchRole, Edge, Node, NodeKind, WorkflowGraph


class GraphIndex:
    """Read-only lookup tables derived from a WorkflowGraph"""

    def __init__(self, graph: WorkflowGraph):
        self.graph = graph
        self.nodes: Dict[str, Node] = {}
        self.order: Dict[str, int] = {}
        self._outgoing: Dict[str, List[Edge]] = {}
        self._incoming: Dict[str, List[Edge]] = {}

        for position, node in enumerate(graph.nodes):
            # Duplicate ids are a validation error; the first declaration wins here
            if node.id not in self.nodes:
                self.nodes[node.id] = node
                self.order[node.id] = position

        for edge in graph.edges:
            if edge.source not in self.nodes or edge.target not in self.nodes:
                continue
            self._outgoing.setdefault(edge.source, []).append(edge)
            self._incoming.setdefault(edge.target, []).append(edge)

    def node(self, node_id: str) -> Optional[Node]:
        return self.nodes.get(node_id)

    def outgoing_edges(self, node_id: str) -> List[Edge]:
        return list(self._outgoing.get(node_id, []))

    def incoming_edges(self, node_id: str) -> List[Edge]:
        return list(self._incoming.get(node_id, []))

    def successors_of(self, node_id: str) -> List[str]:
        """Targets of the node's outgoing edges, in edge declaration order"""
        return [edge.target for edge in self._outgoing.get(node_id, [])]

    def predecessors_of(self, node_id: str) -> List[str]:
        return [edge.source for edge in self._incoming.get(node_id, [])]

    def trigger_nodes(self) -> List[Node]:
        """Trigger nodes with no incoming edge, in node declaration order"""
        return [
            node for node in self.nodes.values()
            if node.kind == NodeKind.TRIGGER and not self._incoming.get(node.id)
        ]

    def condition_targets(self, node_id: str) -> Tuple[Optional[str], Optional[str]]:
        """
        Resolve the (true, false) targets of a condition node.

        Explicit branch roles win when any outgoing edge declares one;
        otherwise the first edge is the true branch and the second the
        false branch. Further edges are never followed.
        """
        edges = self._outgoing.get(node_id, [])
        if any(edge.branch is not None for edge in edges):
            when_true = next((e.target for e in edges if e.branch == BranchRole.TRUE), None)
            when_false = next((e.target for e in edges if e.branch == BranchRole.FALSE), None)
            return when_true, when_false

        when_true = edges[0].target if len(edges) > 0 else None
        when_false = edges[1].target if len(edges) > 1 else None
        return when_true, when_false

    def next_nodes(self, node_id: str) -> List[str]:
        """Nodes the walk may continue to after ``node_id``"""
        node = self.nodes.get(node_id)
        if node is None or not node.enabled:
            return []
        if node.kind == NodeKind.CONDITION:
            return [target for target in self.condition_targets(node_id) if target is not None]
        return self.successors_of(node_id)


GraphLike = Union[WorkflowGraph, GraphIndex]


def _as_index(graph: GraphLike) -> GraphIndex:
    return graph if isinstance(graph, GraphIndex) else GraphIndex(graph)


def trigger_nodes(graph: GraphLike) -> List[Node]:
    """Entry points of a graph in declaration order"""
    return _as_index(graph).trigger_nodes()


def successors_of(graph: GraphLike, node_id: str) -> List[str]:
    return _as_index(graph).successors_of(node_id)


def traverse(graph: GraphLike, start_id: str, visited: Set[str],
             visit: Optional[Callable[[Node], None]] = None) -> List[str]:
    """
    Depth-first walk from ``start_id``.

    ``visited`` is mutated in place so that one set can be threaded through
    several walks of the same run; a node already in it is neither visited
    again nor descended into, which also truncates cycles.

    Returns:
        Node ids in the order they were first visited
    """
    index = _as_index(graph)
    order: List[str] = []
    stack = [start_id]

    while stack:
        node_id = stack.pop()
        if node_id in visited or node_id not in index.nodes:
            continue
        visited.add(node_id)
        order.append(node_id)
        if visit is not None:
            visit(index.nodes[node_id])
        # Reverse so the first declared successor is explored first
        stack.extend(reversed(index.next_nodes(node_id)))

    return order


def reachable_from(graph: GraphLike, start_ids: Iterable[str],
                   blocked: Optional[Set[str]] = None) -> List[str]:
    """Nodes reachable from ``start_ids`` without entering ``blocked``, in DFS order"""
    index = _as_index(graph)
    visited = set(blocked or ())
    order: List[str] = []
    for start_id in start_ids:
        order.extend(traverse(index, start_id, visited))
    return order
