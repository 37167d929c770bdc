"""
Condition expressions for condition nodes.

A condition is a small Python-style boolean expression whose operands may be
template placeholders, e.g. ``{{@check:Check Stock.count}} > 3``. It is parsed
once into a restricted AST. The interpreter evaluates that AST against live
node outputs; the code generator unparses the same AST with placeholders
swapped for access expressions, so both paths agree on what a condition
means.

Supported: comparisons, ``and``/``or``/``not``, unary minus, literals,
list/tuple literals, and the names ``true``/``false``/``null``. Calls,
attribute access, arithmetic and any other names are rejected.
"""

import ast
import copy
import operator
import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from core.errors import UnsupportedConditionError
from core.templates.expressions import FORMAT_HELPER, FallbackNamer, LabelResolver, guarded_expression
from core.templates.formatting import format_value
from core.templates.parser import TEMPLATE_PATTERN, TemplateRef, parse_expression
from core.templates.resolver import MISSING, NodeOutputs, lookup_value

PLACEHOLDER_PATTERN = re.compile(r"__ref_(\d+)__")

LITERAL_NAMES = {
    "true": True,
    "false": False,
    "null": None,
    "True": True,
    "False": False,
    "None": None,
}

COMPARISONS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda left, right: left in right,
    ast.NotIn: lambda left, right: left not in right,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}

ALLOWED_NODES = (
    ast.Expression, ast.BoolOp, ast.And, ast.Or, ast.UnaryOp, ast.Not, ast.USub, ast.UAdd,
    ast.Compare, ast.Constant, ast.Name, ast.Load, ast.List, ast.Tuple,
) + tuple(COMPARISONS)


@dataclass
class ParsedCondition:
    """A validated condition with its placeholders numbered in order"""
    text: str
    tree: ast.Expression
    refs: List[Optional[TemplateRef]] = field(default_factory=list)
    raws: List[str] = field(default_factory=list)


def parse_condition(text: Optional[str]) -> ParsedCondition:
    """
    Parse and validate a condition string.

    An empty condition means ``true``.

    Raises:
        UnsupportedConditionError: syntax error or a disallowed construct
    """
    source = (text or "").strip() or "true"
    refs: List[Optional[TemplateRef]] = []
    raws: List[str] = []

    def number(match: re.Match) -> str:
        refs.append(parse_expression(match.group(1), raw=match.group(0)))
        raws.append(match.group(0))
        return f"__ref_{len(refs) - 1}__"

    skeleton = TEMPLATE_PATTERN.sub(number, source)
    try:
        tree = ast.parse(skeleton, mode="eval")
    except SyntaxError as e:
        raise UnsupportedConditionError(source, f"invalid syntax ({e.msg})")

    for node in ast.walk(tree):
        if not isinstance(node, ALLOWED_NODES):
            raise UnsupportedConditionError(source, f"{type(node).__name__} is not allowed")
        if isinstance(node, ast.Name):
            placeholder = PLACEHOLDER_PATTERN.fullmatch(node.id)
            if node.id not in LITERAL_NAMES and not (placeholder and int(placeholder.group(1)) < len(refs)):
                raise UnsupportedConditionError(source, f"unknown name {node.id!r}")

    return ParsedCondition(text=source, tree=tree, refs=refs, raws=raws)


def evaluate_condition(parsed: ParsedCondition, outputs: NodeOutputs) -> bool:
    """
    Evaluate against live outputs.

    A placeholder that cannot be resolved evaluates to its literal text,
    the same fallback value-mode resolution uses.
    """
    values = []
    for ref, raw in zip(parsed.refs, parsed.raws):
        value = lookup_value(ref, outputs) if ref is not None else MISSING
        values.append(raw if value is MISSING else value)
    return bool(_ConditionEvaluator(values).visit(parsed.tree.body))


class _ConditionEvaluator:
    def __init__(self, values: List[Any]):
        self.values = values

    def visit(self, node: ast.AST) -> Any:
        if isinstance(node, ast.Constant):
            if isinstance(node.value, str):
                return PLACEHOLDER_PATTERN.sub(
                    lambda match: format_value(self.values[int(match.group(1))]), node.value
                )
            return node.value
        if isinstance(node, ast.Name):
            if node.id in LITERAL_NAMES:
                return LITERAL_NAMES[node.id]
            return self.values[int(PLACEHOLDER_PATTERN.fullmatch(node.id).group(1))]
        if isinstance(node, ast.BoolOp):
            result = None
            for operand in node.values:
                result = self.visit(operand)
                if isinstance(node.op, ast.And) and not result:
                    return result
                if isinstance(node.op, ast.Or) and result:
                    return result
            return result
        if isinstance(node, ast.UnaryOp):
            operand = self.visit(node.operand)
            if isinstance(node.op, ast.Not):
                return not operand
            return -operand if isinstance(node.op, ast.USub) else +operand
        if isinstance(node, ast.Compare):
            left = self.visit(node.left)
            for op, comparator in zip(node.ops, node.comparators):
                right = self.visit(comparator)
                if not COMPARISONS[type(op)](left, right):
                    return False
                left = right
            return True
        if isinstance(node, ast.List):
            return [self.visit(item) for item in node.elts]
        if isinstance(node, ast.Tuple):
            return tuple(self.visit(item) for item in node.elts)
        raise UnsupportedConditionError(ast.dump(node), f"{type(node).__name__} is not allowed")


def compile_condition(parsed: ParsedCondition, variables: Mapping[str, str],
                      resolve_label: Optional[LabelResolver] = None,
                      unresolved: Optional[List[str]] = None,
                      fallback: Optional[FallbackNamer] = None) -> str:
    """Python source for a condition, placeholders replaced by access expressions"""
    expressions: List[Optional[str]] = []
    for ref, raw in zip(parsed.refs, parsed.raws):
        expression = guarded_expression(ref, variables, resolve_label, fallback) if ref is not None else None
        if expression is None and unresolved is not None:
            unresolved.append(raw[2:-2].strip())
        expressions.append(expression)

    tree = _PlaceholderRewriter(expressions, parsed.raws).visit(copy.deepcopy(parsed.tree))
    return ast.unparse(ast.fix_missing_locations(tree))


class _PlaceholderRewriter(ast.NodeTransformer):
    def __init__(self, expressions: List[Optional[str]], raws: List[str]):
        self.expressions = expressions
        self.raws = raws

    def _operand(self, index: int) -> ast.expr:
        expression = self.expressions[index]
        if expression is None:
            return ast.Constant(value=self.raws[index])
        return ast.parse(expression, mode="eval").body

    def visit_Name(self, node: ast.Name) -> ast.expr:
        if node.id in LITERAL_NAMES:
            return ast.copy_location(ast.Constant(value=LITERAL_NAMES[node.id]), node)
        index = int(PLACEHOLDER_PATTERN.fullmatch(node.id).group(1))
        return ast.copy_location(self._operand(index), node)

    def visit_Constant(self, node: ast.Constant) -> ast.expr:
        if not isinstance(node.value, str) or not PLACEHOLDER_PATTERN.search(node.value):
            return node
        parts: List[ast.expr] = []
        last = 0
        for match in PLACEHOLDER_PATTERN.finditer(node.value):
            if match.start() > last:
                parts.append(ast.Constant(value=node.value[last:match.start()]))
            index = int(match.group(1))
            if self.expressions[index] is None:
                parts.append(ast.Constant(value=self.raws[index]))
            else:
                call = ast.Call(
                    func=ast.Name(id=FORMAT_HELPER, ctx=ast.Load()),
                    args=[self._operand(index)],
                    keywords=[],
                )
                parts.append(ast.FormattedValue(value=call, conversion=-1, format_spec=None))
            last = match.end()
        if last < len(node.value):
            parts.append(ast.Constant(value=node.value[last:]))
        return ast.copy_location(ast.JoinedStr(values=parts), node)
