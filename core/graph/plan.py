"""
Execution planning.

A plan is the structured walk of a workflow graph that both the interpreter
and the code generator follow. Building it once, from one set of rules, is
what keeps a live run and the generated source in step with each other:

- nodes are walked depth-first from each trigger, sharing one visited set
- a node with several first-time successors fans out into branches
- a node reachable from two or more branches (a diamond) is hoisted out of
  the branches and placed after the join, so it appears exactly once
- condition nodes split into a true chain and a false chain, with nodes
  reachable from both hoisted after the if/else
- a hoisted node runs only if an edge into it was followed from a node that
  succeeded, so one failed branch does not cancel the join
- a disabled node ends its branch
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Set, Tuple, Union

from core.graph.models import NodeKind, WorkflowGraph
from core.graph.traversal import GraphIndex, reachable_from
from core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class RunStep:
    """Execute a trigger, action or transform node"""
    node_id: str


@dataclass
class DisabledStep:
    """A disabled node; nothing after it on this branch runs"""
    node_id: str


@dataclass
class BranchStep:
    """Evaluate a condition node and follow one of its chains"""
    node_id: str
    when_true: List["Step"] = field(default_factory=list)
    when_false: List["Step"] = field(default_factory=list)


@dataclass
class ParallelStep:
    """Independent branches joined before the chain continues"""
    branches: List[List["Step"]]
    concurrent: bool = True


@dataclass
class JoinStep:
    """A chain hoisted past a join or an if/else, entered at ``node_id``"""
    node_id: str
    steps: List["Step"] = field(default_factory=list)


Step = Union[RunStep, DisabledStep, BranchStep, ParallelStep, JoinStep]


@dataclass
class TriggerPlan:
    """Everything reachable from one trigger node"""
    trigger_id: str
    steps: List[Step]


@dataclass
class ExecutionPlan:
    """Ordered trigger plans for a whole graph"""
    index: GraphIndex
    triggers: List[TriggerPlan]

    @property
    def has_triggers(self) -> bool:
        return bool(self.triggers)

    def node_ids(self) -> List[str]:
        """Every planned node id, disabled ones included, in walk order"""
        return [node_id for node_id, _ in self.walk()]

    def walk(self) -> Iterator[Tuple[str, Step]]:
        for trigger in self.triggers:
            yield from _walk_steps(trigger.steps)

    def executable_node_ids(self) -> List[str]:
        return [node_id for node_id, step in self.walk() if not isinstance(step, DisabledStep)]

    def join_node_ids(self) -> Set[str]:
        """Entry nodes of every JoinStep"""
        return {step.node_id for step in _iter_steps(trigger.steps for trigger in self.triggers)
                if isinstance(step, JoinStep)}

    def exit_node_ids(self) -> List[str]:
        """
        Executable nodes the walk cannot continue from to another executable
        planned node, in declaration order. In a graph where every node has
        such a successor (a cycle) this is the last node walked.

        The run's output is the data of the last of these that produced
        any; which one that is depends on the branches taken.
        """
        planned = self.executable_node_ids()
        members = set(planned)
        exits = [
            node_id for node_id in planned
            if not any(target in members for target in self.index.next_nodes(node_id))
        ] or planned[-1:]
        return sorted(exits, key=lambda node_id: self.index.order[node_id])


def _walk_steps(steps: List[Step]) -> Iterator[Tuple[str, Step]]:
    for step in steps:
        if isinstance(step, (RunStep, DisabledStep)):
            yield step.node_id, step
        elif isinstance(step, BranchStep):
            yield step.node_id, step
            yield from _walk_steps(step.when_true)
            yield from _walk_steps(step.when_false)
        elif isinstance(step, ParallelStep):
            for branch in step.branches:
                yield from _walk_steps(branch)
        elif isinstance(step, JoinStep):
            yield from _walk_steps(step.steps)


def _iter_steps(chains) -> Iterator[Step]:
    for steps in chains:
        for step in steps:
            yield step
            if isinstance(step, BranchStep):
                yield from _iter_steps([step.when_true, step.when_false])
            elif isinstance(step, ParallelStep):
                yield from _iter_steps(step.branches)
            elif isinstance(step, JoinStep):
                yield from _iter_steps([step.steps])


class ExecutionPlanner:
    """Builds an ExecutionPlan from a graph"""

    def __init__(self, graph: Union[WorkflowGraph, GraphIndex], concurrent_branches: bool = True):
        self.index = graph if isinstance(graph, GraphIndex) else GraphIndex(graph)
        self.concurrent_branches = concurrent_branches

    def build(self) -> ExecutionPlan:
        visited: Set[str] = set()
        triggers = []
        for trigger in self.index.trigger_nodes():
            steps = self._chain(trigger.id, visited)
            if steps:
                triggers.append(TriggerPlan(trigger_id=trigger.id, steps=steps))
        logger.debug(f"Planned {len(visited)} of {len(self.index.nodes)} nodes from {len(triggers)} triggers")
        return ExecutionPlan(index=self.index, triggers=triggers)

    def _chain(self, start_id: str, visited: Set[str]) -> List[Step]:
        steps: List[Step] = []
        current: Optional[str] = start_id

        while current is not None and current not in visited and current in self.index.nodes:
            visited.add(current)
            node = self.index.nodes[current]

            if not node.enabled:
                steps.append(DisabledStep(current))
                break

            if node.kind == NodeKind.CONDITION:
                when_true, when_false = self.index.condition_targets(current)
                chains, hoisted = self._split([when_true, when_false], visited)
                steps.append(BranchStep(current, when_true=chains[0], when_false=chains[1]))
                steps.extend(self._continue(hoisted, visited))
                break

            steps.append(RunStep(current))
            pending = _unique(t for t in self.index.successors_of(current) if t not in visited)
            if not pending:
                break
            if len(pending) == 1:
                current = pending[0]
                continue

            chains, hoisted = self._split(pending, visited)
            steps.extend(self._fan_out([c for c in chains if c]))
            steps.extend(self._continue(hoisted, visited))
            break

        return steps

    def _split(self, targets: List[Optional[str]], visited: Set[str]) -> Tuple[List[List[Step]], List[str]]:
        """
        Plan each target as its own branch.

        Returns one chain per target (empty for missing or already visited
        targets) and the hoisted node ids reachable from more than one
        branch, in discovery order.
        """
        reaches = []
        for target in targets:
            if target is None or target in visited:
                reaches.append([])
            else:
                reaches.append(reachable_from(self.index, [target], blocked=visited))

        counts = Counter(node_id for reach in reaches for node_id in set(reach))
        shared = {node_id for node_id, count in counts.items() if count > 1}

        chains: List[List[Step]] = []
        claimed: Set[str] = set()
        for target, reach in zip(targets, reaches):
            if not reach or target in shared:
                chains.append([])
                continue
            branch_visited = visited | shared
            chains.append(self._chain(target, branch_visited))
            claimed |= branch_visited - visited - shared

        visited |= claimed
        hoisted = _unique(node_id for reach in reaches for node_id in reach if node_id in shared)
        return chains, hoisted

    def _continue(self, entries: List[str], visited: Set[str]) -> List[Step]:
        """Plan the nodes hoisted past a join or an if/else"""
        remaining = [node_id for node_id in entries if node_id not in visited]
        if not remaining:
            return []
        if len(remaining) == 1:
            return self._joined(remaining[0], self._chain(remaining[0], visited))

        chains, hoisted = self._split(remaining, visited)
        live = [self._joined(entry, chain) for entry, chain in zip(remaining, chains) if chain]
        if not live:
            # Every entry reaches every other one (a cycle): walk them in order
            steps: List[Step] = []
            for node_id in remaining:
                steps.extend(self._joined(node_id, self._chain(node_id, visited)))
            return steps

        steps = self._fan_out(live)
        steps.extend(self._continue(hoisted, visited))
        return steps

    @staticmethod
    def _joined(entry: str, chain: List[Step]) -> List[Step]:
        # A disabled entry has nothing to guard
        if not chain or isinstance(chain[0], DisabledStep):
            return chain
        return [JoinStep(entry, chain)]

    def _fan_out(self, branches: List[List[Step]]) -> List[Step]:
        if not branches:
            return []
        if len(branches) == 1:
            return list(branches[0])
        return [ParallelStep(branches=branches, concurrent=self.concurrent_branches)]


def _unique(values) -> List[str]:
    seen: Set[str] = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def build_plan(graph: Union[WorkflowGraph, GraphIndex], concurrent_branches: bool = True) -> ExecutionPlan:
    """Plan a graph for execution or code generation"""
    return ExecutionPlanner(graph, concurrent_branches).build()
