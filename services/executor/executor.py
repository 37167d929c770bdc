"""
Workflow Execution Engine

An in-process interpreter that walks a workflow graph from its trigger
nodes, resolves templates against the outputs produced so far, dispatches
action nodes to the step registry and records every node transition in the
execution log.

This module can be imported and used from:
- API endpoints
- CLI tools
- Scripts
- Other services
"""

import asyncio
import inspect
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Union

from core.config import settings
from core.graph import (
    BranchStep,
    DisabledStep,
    GraphIndex,
    JoinStep,
    Node,
    NodeKind,
    ParallelStep,
    RunStep,
    WorkflowGraph,
    build_plan,
)
from core.graph.plan import Step
from core.logging_config import get_logger, get_run_logger
from core.templates import (
    NodeOutput,
    NodeOutputs,
    evaluate_condition,
    parse_condition,
    process_config_templates,
    process_template,
)
from core.validator import ensure_valid
from services.runtime import join_branches, stamp_output
from services.steps import StepRegistry, StepResult, default_registry
from .credentials import CredentialResolver, create_credential_resolver
from .execution_log import ExecutionLogStore, NodeStatus, RunStatus

logger = get_logger(__name__)
run_logger = get_run_logger(__name__)

NodeUpdateCallback = Callable[[str, NodeStatus], Any]


@dataclass
class RunState:
    """Everything one run owns; never shared between runs"""
    run_id: str
    trigger_input: Any
    outputs: NodeOutputs = field(default_factory=dict)
    results: Dict[str, StepResult] = field(default_factory=dict)
    ready: Set[str] = field(default_factory=set)
    on_node_update: Optional[NodeUpdateCallback] = None


@dataclass
class WorkflowRunResult:
    """Final state of a run"""
    run_id: str
    status: RunStatus
    results: Dict[str, StepResult]
    outputs: NodeOutputs
    output: Any = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == RunStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "success": self.success,
            "results": {node_id: result.to_dict() for node_id, result in self.results.items()},
            "outputs": {node_id: {"label": out.label, "data": out.data} for node_id, out in self.outputs.items()},
            "output": self.output,
            "error": self.error,
        }


class WorkflowExecutor:
    """Main workflow execution engine"""

    def __init__(self, registry: Optional[StepRegistry] = None,
                 credential_resolver: Optional[CredentialResolver] = None,
                 log_store: Optional[ExecutionLogStore] = None,
                 concurrent_branches: Optional[bool] = None):
        self.registry = registry or default_registry()
        self.credential_resolver = credential_resolver or create_credential_resolver()
        self.log_store = log_store or ExecutionLogStore()
        self.concurrent_branches = (
            settings.concurrent_branches if concurrent_branches is None else concurrent_branches
        )

    async def execute(self, graph: Union[WorkflowGraph, Dict[str, Any]], trigger_input: Any = None,
                      workflow_id: Optional[str] = None,
                      on_node_update: Optional[NodeUpdateCallback] = None) -> WorkflowRunResult:
        """
        Execute a workflow graph

        Args:
            graph: Graph to run, as a model or in exchange format
            trigger_input: Payload handed to every trigger node
            workflow_id: ID of the workflow, for the execution log
            on_node_update: Optional callback receiving (node_id, status)

        Returns:
            WorkflowRunResult with per-node results and outputs

        Raises:
            NoTriggerNodesError: the graph has no trigger node
            GraphValidationError: dangling edges or duplicate node ids
        """
        if not isinstance(graph, WorkflowGraph):
            graph = WorkflowGraph.model_validate(graph)

        # Step 1: Preflight validation
        ensure_valid(graph)

        # Step 2: Planning
        plan = build_plan(graph, concurrent_branches=self.concurrent_branches)

        # Step 3: Activation
        state = RunState(
            run_id=str(uuid.uuid4()),
            trigger_input=trigger_input if trigger_input is not None else {},
            on_node_update=on_node_update,
        )
        await self.log_store.start_run(state.run_id, workflow_id, state.trigger_input)
        run_logger.log_run_start(state.run_id, workflow_id, trigger_count=len(plan.triggers))
        started = time.perf_counter()

        for node_id in plan.executable_node_ids():
            await self._notify(state, node_id, NodeStatus.PENDING)

        # Step 4: Orchestrate
        for trigger in plan.triggers:
            completed = await self._run_steps(state, plan.index, trigger.steps)
            if not completed:
                logger.warning(f"Run from trigger {trigger.trigger_id} had failed nodes")

        # Step 5: Finalize
        failed = [node_id for node_id, result in state.results.items() if not result.success]
        status = RunStatus.FAILED if failed else RunStatus.SUCCESS
        error = f"{len(failed)} node(s) failed: {', '.join(failed)}" if failed else None

        output = None
        for node_id in reversed(plan.exit_node_ids()):
            produced = state.outputs.get(node_id)
            if produced is not None and produced.data is not None:
                output = produced.data
                break

        await self.log_store.finish_run(state.run_id, status, output=output, error=error)
        run_logger.log_run_end(
            state.run_id, status.value,
            duration_ms=(time.perf_counter() - started) * 1000,
            node_count=len(state.results),
        )

        return WorkflowRunResult(
            run_id=state.run_id,
            status=status,
            results=state.results,
            outputs=state.outputs,
            output=output,
            error=error,
        )

    async def _run_steps(self, state: RunState, index: GraphIndex, steps: List[Step]) -> bool:
        """
        Run a planned chain.

        A failed node ends the chain. A failure inside a condition arm, a
        parallel branch or a join only ends that part; the steps after it
        still run, and join steps check ``state.ready`` themselves. Returns
        False when anything on the chain failed.
        """
        completed = True
        for step in steps:
            if isinstance(step, DisabledStep):
                logger.info(f"Skipping disabled node {step.node_id}")
                return completed

            if isinstance(step, RunStep):
                result = await self._execute_node(state, index.node(step.node_id))
                if not result.success:
                    return False
                state.ready.update(index.successors_of(step.node_id))

            elif isinstance(step, BranchStep):
                result = await self._execute_node(state, index.node(step.node_id))
                if not result.success:
                    return False
                when_true, when_false = index.condition_targets(step.node_id)
                taken = when_true if result.data["result"] else when_false
                if taken is not None:
                    state.ready.add(taken)
                chosen = step.when_true if result.data["result"] else step.when_false
                if not await self._run_steps(state, index, chosen):
                    completed = False

            elif isinstance(step, ParallelStep):
                outcomes = await join_branches(
                    *(self._run_steps(state, index, branch) for branch in step.branches),
                    concurrent=step.concurrent,
                )
                if not all(outcomes):
                    completed = False

            elif isinstance(step, JoinStep):
                if step.node_id not in state.ready:
                    logger.info(f"Skipping {step.node_id}: no edge into it was followed")
                    continue
                if not await self._run_steps(state, index, step.steps):
                    completed = False

        return completed

    async def _execute_node(self, state: RunState, node: Node) -> StepResult:
        """Execute a single node and record its output, whatever the outcome"""
        node_input = self._node_input(state, node)
        log_id = await self._log_start(state, node, node_input)
        await self._notify(state, node.id, NodeStatus.RUNNING)
        run_logger.log_step_start(node.display_name, node.kind.value)
        started = time.perf_counter()

        try:
            result = await self._dispatch(state, node, node_input)
        except Exception as e:
            logger.error(f"Node {node.id} raised {type(e).__name__}: {e}")
            result = StepResult.fail(str(e) or type(e).__name__)

        duration_ms = (time.perf_counter() - started) * 1000
        state.outputs[node.id] = NodeOutput(label=node.label, data=result.data if result.success else None)
        state.results[node.id] = result

        status = NodeStatus.SUCCESS if result.success else NodeStatus.ERROR
        await self._log_complete(log_id, status, result)
        await self._notify(state, node.id, status)
        run_logger.log_step_complete(node.display_name, result.success, duration_ms, result.error)
        return result

    def _node_input(self, state: RunState, node: Node) -> Any:
        if node.kind == NodeKind.TRIGGER:
            return state.trigger_input
        if node.kind == NodeKind.CONDITION:
            return {"condition": process_template(node.config.get("condition") or "", state.outputs)}
        return process_config_templates(node.config, state.outputs)

    async def _dispatch(self, state: RunState, node: Node, node_input: Any) -> StepResult:
        if node.kind == NodeKind.TRIGGER:
            return StepResult.ok(stamp_output(state.trigger_input, triggered=True))

        if node.kind == NodeKind.ACTION:
            return await self._exec_action(node, node_input)

        if node.kind == NodeKind.CONDITION:
            parsed = parse_condition(node.config.get("condition"))
            outcome = evaluate_condition(parsed, state.outputs)
            return StepResult.ok({"condition": node_input["condition"], "result": outcome})

        if node.kind == NodeKind.TRANSFORM:
            transform_type = node.config.get("transformType", "passthrough")
            return StepResult.ok(stamp_output(state.trigger_input, transformType=transform_type, transformed=True))

        return StepResult.fail(f"Unsupported node kind: {node.kind}")

    async def _exec_action(self, node: Node, config: Dict[str, Any]) -> StepResult:
        """Dispatch an action node to its registered step"""
        action_type = config.get("actionType")
        definition = self.registry.find(action_type)
        if definition is None:
            return StepResult.fail(f"Unknown action type: {action_type}")

        arguments = definition.build_arguments(config)
        if definition.credentials:
            reference = config.get("integrationId") or definition.integration
            secrets = await self.credential_resolver.resolve(reference, list(definition.credentials))
            arguments.update(definition.build_credential_arguments(secrets))

        logger.debug(f"Invoking {definition.action_type} for node {node.id}")
        return _coerce_result(await definition.handler(**arguments))

    async def _notify(self, state: RunState, node_id: str, status: NodeStatus):
        if state.on_node_update is None:
            return
        outcome = state.on_node_update(node_id, status)
        if inspect.isawaitable(outcome):
            await outcome

    async def _log_start(self, state: RunState, node: Node, node_input: Any) -> Optional[str]:
        try:
            return await self.log_store.log_start(
                state.run_id, node.id, node.display_name, node.kind.value, node_input
            )
        except Exception as e:
            logger.error(f"Failed to record start of node {node.id}: {e}")
            return None

    async def _log_complete(self, log_id: Optional[str], status: NodeStatus, result: StepResult):
        if log_id is None:
            return
        try:
            await self.log_store.log_complete(log_id, status, output=result.data, error=result.error)
        except Exception as e:
            logger.error(f"Failed to record completion of log entry {log_id}: {e}")


def _coerce_result(value: Any) -> StepResult:
    """Accept StepResult, a {success, data, error} dict, or bare data"""
    if isinstance(value, StepResult):
        return value
    if isinstance(value, dict) and isinstance(value.get("success"), bool):
        return StepResult(success=value["success"], data=value.get("data"), error=value.get("error"))
    return StepResult.ok(value)


# Factory function for easy instantiation
def create_executor(registry: Optional[StepRegistry] = None,
                    credential_source: Optional[str] = None,
                    credential_bundles: Optional[Dict[str, Dict[str, str]]] = None,
                    log_store: Optional[ExecutionLogStore] = None) -> WorkflowExecutor:
    """Create a workflow executor instance"""
    return WorkflowExecutor(
        registry=registry or default_registry(),
        credential_resolver=create_credential_resolver(credential_source, credential_bundles),
        log_store=log_store or ExecutionLogStore(),
    )


# Async execution function for easy calling from anywhere
async def execute_workflow_async(graph: Union[WorkflowGraph, Dict[str, Any]], trigger_input: Any = None,
                                 workflow_id: Optional[str] = None,
                                 executor: Optional[WorkflowExecutor] = None) -> WorkflowRunResult:
    """
    Async function to execute a workflow - can be called from anywhere in the project

    Args:
        graph: Graph in exchange format or as a model
        trigger_input: Payload for the trigger nodes
        workflow_id: ID of the workflow
        executor: Executor to use; a default one is created when omitted

    Returns:
        WorkflowRunResult of the run
    """
    executor = executor or create_executor()
    return await executor.execute(graph, trigger_input, workflow_id=workflow_id)


# Sync wrapper for non-async contexts
def execute_workflow_sync(graph: Union[WorkflowGraph, Dict[str, Any]], trigger_input: Any = None,
                          workflow_id: Optional[str] = None,
                          executor: Optional[WorkflowExecutor] = None) -> WorkflowRunResult:
    """Sync function to execute a workflow - can be called from anywhere in the project"""
    return asyncio.run(execute_workflow_async(graph, trigger_input, workflow_id, executor))
