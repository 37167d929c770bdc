"""
Code Generation Engine

Compiles a workflow graph into a freestanding async Python module: step
imports, the runtime helpers the interpreter itself uses, and one
orchestrator function whose body mirrors the graph's control flow.

The module follows the same execution plan as the interpreter, so traversal
order, condition branches, fan-out joins and the single execution of
diamond nodes are identical in both.
"""

import ast
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

from core.config import settings
from core.errors import NO_TRIGGER_NODES, NO_TRIGGER_NODES_MESSAGE, UnsupportedConditionError
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
from core.logging_config import get_logger
from core.templates import compile_condition, compile_text_template, format_value, parse_condition
from core.templates.escaping import string_literal
from core.templates.expressions import FallbackNamer, LabelResolver
from core.templates.resolver import NON_TEMPLATED_KEYS
from core.validator import validate_graph
from services import runtime
from services.steps import StepDefinition, StepRegistry, default_registry
from .base import BaseCompiler, CompilerReport
from .naming import VariableNamer, to_identifier
from .templates import GENERATED_HEADER, render_module
from .usage import referenced_node_ids

logger = get_logger(__name__)

INDENT = "    "

# Embedded verbatim, in this order, into every generated module
HELPERS = (
    format_value,
    runtime.StepFailed,
    runtime.now_ms,
    runtime.stamp_output,
    runtime.unwrap_step_result,
    runtime.join_branches,
    runtime.run_isolated,
)

HELPER_IMPORTS = ("asyncio", "json", "logging", "time")


@dataclass
class CompileOptions:
    """Knobs for one compilation"""
    function_name: Optional[str] = None
    module_header: Optional[str] = None
    concurrent_branches: Optional[bool] = None


@dataclass
class GeneratedCode:
    """Output of a compilation"""
    code: str
    function_name: str
    variables: Dict[str, str]
    imports: List[str]
    report: CompilerReport

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "function_name": self.function_name,
            "variables": dict(self.variables),
            "imports": list(self.imports),
            "report": self.report.to_dict(),
        }


@dataclass
class _CompileState:
    """Everything one compilation owns"""
    index: GraphIndex
    variables: Dict[str, str] = field(default_factory=dict)
    step_imports: Dict[str, str] = field(default_factory=dict)
    uses_environ: bool = False
    counters: Dict[str, int] = field(default_factory=dict)
    joins: Set[str] = field(default_factory=set)
    # Placeholder text -> fallback constant, for the statement being emitted
    literals: Dict[str, str] = field(default_factory=dict)

    def next_name(self, prefix: str) -> str:
        self.counters[prefix] = self.counters.get(prefix, 0) + 1
        return f"_{prefix}_{self.counters[prefix]}"


def _indent(lines: List[str], depth: int = 1) -> List[str]:
    prefix = INDENT * depth
    return [prefix + line if line else line for line in lines]


def _has_statement(lines: List[str]) -> bool:
    return any(line.strip() and not line.strip().startswith("#") for line in lines)


def _body(lines: List[str]) -> List[str]:
    """A block body; ``pass`` is added when it holds only comments"""
    return lines if _has_statement(lines) else lines + ["pass"]


def _isolated(lines: List[str]) -> List[str]:
    """Wrap a block so a failure inside it is logged and the caller carries on"""
    return (
        ["try:"]
        + _indent(_body(lines))
        + ["except Exception as exc:", f'{INDENT}logger.error(f"Branch stopped: {{exc}}")']
    )


def _merge_uncertain(visible: Dict[str, bool], scope: Dict[str, bool]):
    """Add nodes first seen in ``scope`` to ``visible``; they may not have run"""
    for node_id in scope:
        if node_id not in visible:
            visible[node_id] = False


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


def _literal(value: Any) -> str:
    """Python source for a JSON-representable value, with no templating"""
    if isinstance(value, str):
        return string_literal(value)
    if isinstance(value, dict):
        items = ", ".join(f"{_literal(str(key))}: {_literal(item)}" for key, item in value.items())
        return "{" + items + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_literal(item) for item in value) + "]"
    if isinstance(value, float) and (value != value or value in (float("inf"), float("-inf"))):
        return f'float("{value}")'
    return repr(value)


class WorkflowCompiler(BaseCompiler):
    """Compiles workflow graphs into Python source"""

    def __init__(self, registry: Optional[StepRegistry] = None, options: Optional[CompileOptions] = None):
        super().__init__()
        self.registry = registry or default_registry()
        self.options = options or CompileOptions()

    @property
    def function_name(self) -> str:
        requested = self.options.function_name or settings.generated_function_name
        return to_identifier(requested) or "run_workflow"

    @property
    def concurrent_branches(self) -> bool:
        if self.options.concurrent_branches is None:
            return settings.concurrent_branches
        return self.options.concurrent_branches

    def compile(self, graph: Union[WorkflowGraph, Dict[str, Any]]) -> GeneratedCode:
        """
        Compile a graph into a Python module

        Args:
            graph: Graph to compile, as a model or in exchange format

        Returns:
            GeneratedCode; problems that did not stop generation are in its report
        """
        if not isinstance(graph, WorkflowGraph):
            graph = WorkflowGraph.model_validate(graph)
        report = self._reset_report()

        # Step 1: Validation, reported but not fatal
        validation = validate_graph(graph, self.registry)
        for issue in validation.errors:
            report.add_error(issue.code, issue.path, issue.message)
        for issue in validation.warnings:
            report.add_warning(issue.code, issue.path, issue.message)

        # Step 2: Planning
        plan = build_plan(graph, concurrent_branches=self.concurrent_branches)
        state = _CompileState(index=plan.index)
        function_name = self.function_name

        if not plan.has_triggers:
            logger.warning("Graph has no trigger nodes; emitting the no-trigger sentinel")
            if not any(error["code"] == NO_TRIGGER_NODES for error in report.errors):
                report.add_error(NO_TRIGGER_NODES, "nodes", f"{NO_TRIGGER_NODES_MESSAGE} found")
            orchestrator = [
                f"async def {function_name}(payload):",
                f'{INDENT}"""Graph has no trigger nodes; nothing to run"""',
                f'{INDENT}return {{"error": {string_literal(NO_TRIGGER_NODES_MESSAGE)}}}',
            ]
            return self._finish(state, function_name, orchestrator)

        # Step 3: Usage analysis and naming
        exits = plan.exit_node_ids()
        used = referenced_node_ids(graph) | set(exits)
        namer = VariableNamer(reserved=[function_name] + self._step_function_names(graph))
        for node_id in plan.executable_node_ids():
            if node_id in used:
                node = plan.index.node(node_id)
                state.variables[node_id] = namer.assign(node.label, fallback=node.display_name)
        state.joins = plan.join_node_ids()

        # Step 4: Emission
        result_vars = [state.variables[node_id] for node_id in exits]
        orchestrator = self._emit_orchestrator(state, plan, function_name, result_vars)
        return self._finish(state, function_name, orchestrator)

    def _step_function_names(self, graph: WorkflowGraph) -> List[str]:
        names = []
        for node in graph.nodes:
            if node.kind == NodeKind.ACTION:
                definition = self.registry.find(node.config.get("actionType"))
                if definition is not None:
                    names.append(definition.function_name)
        return names

    def _finish(self, state: _CompileState, function_name: str, orchestrator: List[str]) -> GeneratedCode:
        header = [GENERATED_HEADER]
        if self.options.module_header:
            header.extend(self._comment_text(line) for line in self.options.module_header.splitlines())

        stdlib_imports = sorted(set(HELPER_IMPORTS) | ({"os"} if state.uses_environ else set()))
        step_imports = list(state.step_imports.values())
        helpers = [inspect.getsource(helper).rstrip() for helper in HELPERS]

        code = render_module(header, stdlib_imports, step_imports, helpers, "\n".join(orchestrator))

        try:
            ast.parse(code)
        except SyntaxError as e:
            logger.error(f"Generated module does not parse: {e.msg} (line {e.lineno})")
            self.report.add_error("GENERATED_SYNTAX_ERROR", f"line {e.lineno}", e.msg)

        logger.info(
            f"🛠️  Compiled workflow into {function_name}() with "
            f"{len(state.variables)} bound variable(s) and {len(step_imports)} step import(s)"
        )
        return GeneratedCode(
            code=code,
            function_name=function_name,
            variables=dict(state.variables),
            imports=[f"import {module}" for module in stdlib_imports] + step_imports,
            report=self.report,
        )

    def _emit_orchestrator(self, state: _CompileState, plan, function_name: str, result_vars: List[str]) -> List[str]:
        body = [
            '"""Run the workflow; returns the output of its last node"""',
            "if payload is None:",
            f"{INDENT}payload = {{}}",
        ]
        body.extend(f"{variable} = None" for variable in state.variables.values())
        if state.joins:
            body.append("_ready = set()")

        # Triggers run one after another; what earlier ones produced may be unset
        visible: Dict[str, bool] = {}
        for trigger in plan.triggers:
            trigger_node = state.index.node(trigger.trigger_id)
            name = state.next_name("trigger")
            scope = dict(visible)
            steps, assigned = self._emit_steps(state, trigger.steps, scope)
            visible.update((node_id, False) for node_id in scope)
            body.append("")
            body.append(f"async def {name}():")
            body.extend(_indent(self._function_body(steps, assigned)))
            body.append("")
            body.append(f"await run_isolated({string_literal(trigger_node.display_name)}, {name}())")

        body.append("")
        if len(result_vars) <= 1:
            body.append(f"return {result_vars[0] if result_vars else None}")
        else:
            candidates = ", ".join(reversed(result_vars))
            body.append(f"return next((value for value in ({candidates}) if value is not None), None)")
        return [f"async def {function_name}(payload):"] + _indent(body)

    def _function_body(self, lines: List[str], assigned: List[str]) -> List[str]:
        names = _unique(assigned)
        header = [f"nonlocal {', '.join(names)}"] if names else []
        return _body(header + lines)

    def _emit_steps(self, state: _CompileState, steps: List[Step],
                    visible: Dict[str, bool]) -> Tuple[List[str], List[str]]:
        """
        Emit a planned chain.

        ``visible`` maps the nodes that may be referenced at the chain's
        current position, in execution order, to whether they are certain
        to have succeeded there; it grows as the chain is emitted. Returns
        the lines and the variables assigned in them.
        """
        lines: List[str] = []
        assigned: List[str] = []

        for position, step in enumerate(steps):
            # An arm or join that fails must not stop the steps after it
            isolate = position < len(steps) - 1

            if isinstance(step, DisabledStep):
                node = state.index.node(step.node_id)
                lines.append(f"# {self._describe(node)} is disabled; this branch ends here")

            elif isinstance(step, RunStep):
                node_lines, node_assigned = self._emit_node(state, state.index.node(step.node_id), visible)
                lines.extend(node_lines)
                lines.extend(self._mark_ready(state, state.index.successors_of(step.node_id)))
                assigned.extend(node_assigned)
                visible[step.node_id] = True

            elif isinstance(step, BranchStep):
                branch_lines, branch_assigned = self._emit_branch(state, step, visible, isolate)
                lines.extend(branch_lines)
                assigned.extend(branch_assigned)

            elif isinstance(step, ParallelStep):
                lines.extend(self._emit_parallel(state, step, visible))

            elif isinstance(step, JoinStep):
                scope = dict(visible)
                join_lines, join_assigned = self._emit_steps(state, step.steps, scope)
                _merge_uncertain(visible, scope)
                lines.append(f"if {string_literal(step.node_id)} in _ready:")
                lines.extend(_indent(_isolated(join_lines) if isolate else _body(join_lines)))
                assigned.extend(join_assigned)

        return lines, assigned

    @staticmethod
    def _mark_ready(state: _CompileState, targets: List[Optional[str]]) -> List[str]:
        """Record followed edges into join entries"""
        return [
            f"_ready.add({string_literal(target)})"
            for target in _unique([t for t in targets if t in state.joins])
        ]

    def _describe(self, node: Node) -> str:
        return f"{node.kind.value.title()}: {self._comment_text(node.display_name)} ({self._comment_text(node.id)})"

    def _scope(self, state: _CompileState,
               visible: Dict[str, bool]) -> Tuple[Dict[str, str], LabelResolver, FallbackNamer]:
        """Variables, label resolution and literal fallbacks for a use site"""
        variables = {node_id: state.variables[node_id] for node_id in visible if node_id in state.variables}

        def resolve_label(label: str) -> Optional[str]:
            wanted = label.strip().lower()
            for node_id in visible:
                if (state.index.node(node_id).label or "").strip().lower() == wanted:
                    return node_id
            return None

        def fallback(node_id: str, raw: str) -> Optional[str]:
            if visible.get(node_id, True):
                return None
            if raw not in state.literals:
                state.literals[raw] = state.next_name("literal")
            return state.literals[raw]

        return variables, resolve_label, fallback

    @staticmethod
    def _take_literals(state: _CompileState) -> List[str]:
        """Assignments for the fallback literals of the statement being emitted"""
        lines = [f"{name} = {string_literal(raw)}" for raw, name in state.literals.items()]
        state.literals.clear()
        return lines

    def _emit_node(self, state: _CompileState, node: Node, visible: Dict[str, bool]) -> Tuple[List[str], List[str]]:
        target = state.variables.get(node.id)
        lines = [f"# {self._describe(node)}"]

        if node.kind == NodeKind.ACTION:
            call = self._emit_action(state, node, visible)
            if call is None:
                action_type = node.config.get("actionType")
                message = string_literal(f"Unknown action type: {action_type}")
                lines.append(
                    f"raise StepFailed({message})  "
                    f"# TODO: register a step for {self._comment_text(repr(action_type))}"
                )
                return lines, []
            lines.extend(self._take_literals(state))
            if target is None:
                lines.append(call)
                return lines, []
            lines.append(f"{target} = {call}")
            return lines, [target]

        if node.kind == NodeKind.TRIGGER:
            expression = "stamp_output(payload, triggered=True)"
        else:
            transform_type = _literal(node.config.get("transformType", "passthrough"))
            expression = f"stamp_output(payload, transformType={transform_type}, transformed=True)"

        # Pure nodes whose output nobody reads leave nothing to run
        if target is None:
            return lines, []
        lines.append(f"{target} = {expression}")
        return lines, [target]

    def _emit_action(self, state: _CompileState, node: Node, visible: Dict[str, bool]) -> Optional[str]:
        """Awaited step call for an action node, or None when no step is registered"""
        action_type = node.config.get("actionType")
        definition: Optional[StepDefinition] = self.registry.find(action_type)
        if definition is None:
            self.report.add_hint(f"Register a step for action type {action_type!r} to compile node {node.id}")
            return None

        state.step_imports[definition.function_name] = (
            f"from {definition.import_path} import {definition.function_name}"
        )
        variables, resolve_label, fallback = self._scope(state, visible)

        arguments = []
        for key, keyword in definition.arguments.items():
            value = node.config.get(key)
            if value is None:
                continue
            unresolved: List[str] = []
            if key in NON_TEMPLATED_KEYS:
                source = _literal(value)
            else:
                source = self._compile_value(value, variables, resolve_label, unresolved, fallback)
            self._report_unresolved(node, key, unresolved)
            arguments.append(f"{keyword}={source}")

        for name, keyword in definition.credentials.items():
            state.uses_environ = True
            arguments.append(f"{keyword}=os.environ.get({string_literal(name)})")

        return f"unwrap_step_result(await {definition.function_name}({', '.join(arguments)}))"

    def _compile_value(self, value: Any, variables: Dict[str, str],
                       resolve_label: Callable[[str], Optional[str]], unresolved: List[str],
                       fallback: Optional[FallbackNamer] = None) -> str:
        if isinstance(value, str):
            return compile_text_template(value, variables, resolve_label, unresolved, fallback)
        if isinstance(value, dict):
            items = []
            for key, item in value.items():
                if key in NON_TEMPLATED_KEYS:
                    source = _literal(item)
                else:
                    source = self._compile_value(item, variables, resolve_label, unresolved, fallback)
                items.append(f"{_literal(str(key))}: {source}")
            return "{" + ", ".join(items) + "}"
        return _literal(value)

    def _report_unresolved(self, node: Node, key: str, unresolved: List[str]):
        for expression in unresolved:
            self.report.add_warning(
                "UNRESOLVED_TEMPLATE",
                f"nodes.{node.id}.config.{key}",
                f"{{{{{expression}}}}} does not refer to an earlier node; kept as literal text",
            )

    def _emit_branch(self, state: _CompileState, step: BranchStep, visible: Dict[str, bool],
                     isolate: bool = False) -> Tuple[List[str], List[str]]:
        node = state.index.node(step.node_id)
        target = state.variables.get(node.id)
        lines = [f"# {self._describe(node)}"]
        condition = node.config.get("condition") or ""

        try:
            parsed = parse_condition(condition)
        except UnsupportedConditionError as e:
            self.report.add_warning("UNSUPPORTED_CONDITION", f"nodes.{node.id}.config.condition", str(e))
            lines.append(f"raise StepFailed({string_literal(str(e))})")
            return lines, []

        variables, resolve_label, fallback = self._scope(state, visible)
        unresolved: List[str] = []
        expression = compile_condition(parsed, variables, resolve_label, unresolved, fallback)
        self._report_unresolved(node, "condition", unresolved)

        assigned: List[str] = []
        if target is not None:
            text = compile_text_template(condition, variables, resolve_label, fallback=fallback)
            lines.extend(self._take_literals(state))
            lines.append(f'{target} = {{"condition": {text}, "result": bool({expression})}}')
            assigned.append(target)
            test = f'{target}["result"]'
        else:
            lines.extend(self._take_literals(state))
            test = expression
        visible[node.id] = True

        arms = []
        scopes = []
        for taken, chain in zip(state.index.condition_targets(node.id), (step.when_true, step.when_false)):
            scope = dict(visible)
            arm_lines, arm_assigned = self._emit_steps(state, chain, scope)
            scopes.append(scope)
            arm_lines = self._mark_ready(state, [taken]) + arm_lines
            arms.append(_isolated(arm_lines) if isolate and _has_statement(arm_lines) else arm_lines)
            assigned.extend(arm_assigned)

        for scope in scopes:
            _merge_uncertain(visible, scope)

        when_true, when_false = arms
        lines.append(f"if {test}:")
        lines.extend(_indent(_body(when_true)))
        if when_false:
            lines.append("else:")
            lines.extend(_indent(_body(when_false)))
        return lines, assigned

    def _emit_parallel(self, state: _CompileState, step: ParallelStep,
                       visible: Dict[str, bool]) -> List[str]:
        """Each branch becomes a nested coroutine; all are awaited by one join"""
        lines: List[str] = []
        calls: List[str] = []
        parent = dict(visible)

        for branch in step.branches:
            name = state.next_name("branch")
            # Serial branches also see what earlier siblings may have produced
            scope = dict(visible if not step.concurrent else parent)
            body, assigned = self._emit_steps(state, branch, scope)
            _merge_uncertain(visible, scope)
            lines.append(f"async def {name}():")
            lines.extend(_indent(self._function_body(body, assigned)))
            lines.append("")
            calls.append(f"{name}()")

        lines.append(f"await join_branches({', '.join(calls)}, concurrent={step.concurrent})")
        return lines


def generate_workflow_module(graph: Union[WorkflowGraph, Dict[str, Any]], name: Optional[str] = None,
                             registry: Optional[StepRegistry] = None,
                             options: Optional[CompileOptions] = None) -> str:
    """Source of a standalone module for ``graph``, headed with the workflow name"""
    options = options or CompileOptions()
    if name:
        header = f"Workflow: {' '.join(name.split())}"
        options = CompileOptions(
            function_name=options.function_name,
            module_header=f"{header}\n{options.module_header}" if options.module_header else header,
            concurrent_branches=options.concurrent_branches,
        )
    generated = WorkflowCompiler(registry=registry, options=options).compile(graph)
    if generated.report.has_errors:
        for error in generated.report.errors:
            logger.warning(f"  {error['path']}: {error['message']}")
    return generated.code
