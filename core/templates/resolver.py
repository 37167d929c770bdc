"""
Value-mode template resolution, used by the interpreter.

Placeholders are replaced with the formatted live value they reference.
A reference that cannot be resolved is left exactly as written and logged,
so a partially resolved string stays readable instead of failing the run.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from core.logging_config import get_logger
from core.templates.formatting import format_value
from core.templates.parser import (
    Addressing,
    PathSegment,
    TEMPLATE_PATTERN,
    TemplateRef,
    parse_expression,
)

logger = get_logger(__name__)

# Config keys that select behaviour rather than carry user text
NON_TEMPLATED_KEYS = frozenset({"actionType", "aiModel", "imageModel"})

DISPLAY_PATTERN = re.compile(r"\{\{@[^:}]+:([^}]+)\}\}")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


@dataclass
class NodeOutput:
    """What a node produced during the current run"""
    label: str
    data: Any = None


# Insertion-ordered: entries appear in the order nodes finished
NodeOutputs = Dict[str, NodeOutput]


@dataclass
class AvailableField:
    """A field a later node could reference, for editor suggestions"""
    node_label: str
    field: str
    path: str
    sample: Any = None


def resolve_field_path(data: Any, field_path: Iterable[PathSegment]) -> Any:
    """Walk ``field_path`` through ``data``; MISSING when any segment is absent"""
    current = data
    for segment in field_path:
        if segment.name is not None:
            if not isinstance(current, dict) or segment.name not in current:
                return MISSING
            current = current[segment.name]
        if segment.index is not None:
            if not isinstance(current, (list, tuple)) or not 0 <= segment.index < len(current):
                return MISSING
            current = current[segment.index]
    return current


def find_output_by_label(label: str, outputs: NodeOutputs) -> Optional[Tuple[str, NodeOutput]]:
    """First output whose label matches case-insensitively"""
    wanted = label.strip().lower()
    for node_id, output in outputs.items():
        if (output.label or "").strip().lower() == wanted:
            return node_id, output
    return None


def find_output(ref: TemplateRef, outputs: NodeOutputs) -> Optional[NodeOutput]:
    if ref.addressing == Addressing.LABEL:
        found = find_output_by_label(ref.node_ref, outputs)
        return found[1] if found else None
    return outputs.get(ref.node_ref)


def lookup_value(ref: TemplateRef, outputs: NodeOutputs) -> Any:
    """
    Live value a reference points at.

    Returns MISSING when the node has no output yet, produced no data
    (it failed), or the field path leads nowhere.
    """
    output = find_output(ref, outputs)
    if output is None or output.data is None:
        return MISSING
    value = resolve_field_path(output.data, ref.field_path)
    if value is None:
        return MISSING
    return value


def process_template(template: Any, outputs: NodeOutputs) -> Any:
    """Replace every placeholder in a string with its formatted value"""
    if not isinstance(template, str) or not template:
        return template

    def replace(match: re.Match) -> str:
        ref = parse_expression(match.group(1), raw=match.group(0))
        if ref is None:
            logger.warning(f"Invalid template reference {match.group(0)!r}: expected @nodeId:DisplayName")
            return match.group(0)
        value = lookup_value(ref, outputs)
        if value is MISSING:
            logger.warning(f"Could not resolve {ref.expression!r} in node outputs")
            return match.group(0)
        return format_value(value)

    return TEMPLATE_PATTERN.sub(replace, template)


def process_config_templates(config: Dict[str, Any], outputs: NodeOutputs,
                             skip_keys: Iterable[str] = NON_TEMPLATED_KEYS) -> Dict[str, Any]:
    """Resolve every string in a config map, recursing into nested maps"""
    skip = frozenset(skip_keys)
    processed: Dict[str, Any] = {}
    for key, value in config.items():
        if key in skip:
            processed[key] = value
        elif isinstance(value, str):
            processed[key] = process_template(value, outputs)
        elif isinstance(value, dict):
            processed[key] = process_config_templates(value, outputs, skip)
        else:
            processed[key] = value
    return processed


def format_template_for_display(template: Any) -> Any:
    """Show ``{{@id:Label.field}}`` as ``{{Label.field}}``"""
    if not isinstance(template, str) or not template:
        return template
    return DISPLAY_PATTERN.sub(lambda match: f"{{{{{match.group(1)}}}}}", template)


def get_available_fields(outputs: NodeOutputs, max_depth: int = 3) -> List[AvailableField]:
    """Every node and nested field a template could reference, label-addressed"""
    fields: List[AvailableField] = []
    for output in outputs.values():
        fields.append(AvailableField(
            node_label=output.label,
            field="",
            path=f"{{{{{output.label}}}}}",
            sample=output.data,
        ))
        if isinstance(output.data, dict):
            _collect_fields(output.data, output.label, output.label, fields, max_depth, 0)
    return fields


def _collect_fields(data: Dict[str, Any], node_label: str, prefix: str,
                    fields: List[AvailableField], max_depth: int, depth: int):
    if depth >= max_depth:
        return
    for key, value in data.items():
        path = f"{prefix}.{key}"
        fields.append(AvailableField(node_label=node_label, field=key, path=f"{{{{{path}}}}}", sample=value))
        # Lists are offered whole, not element by element
        if isinstance(value, dict):
            _collect_fields(value, node_label, path, fields, max_depth, depth + 1)
