"""
Template resolution engine.

Parses ``{{...}}`` placeholders in node configuration and resolves them
either to live values (interpreter) or to Python access expressions
(code generator).
"""

from .formatting import format_value
from .parser import (
    Addressing,
    PathSegment,
    TemplateRef,
    TEMPLATE_PATTERN,
    extract_template_references,
    extract_template_variables,
    has_template_variables,
    parse_expression,
    parse_field_path,
)
from .resolver import (
    MISSING,
    AvailableField,
    NodeOutput,
    NodeOutputs,
    find_output_by_label,
    format_template_for_display,
    get_available_fields,
    lookup_value,
    process_config_templates,
    process_template,
    resolve_field_path,
)
from .expressions import access_expression, compile_text_template, guarded_expression, resolve_expression
from .conditions import ParsedCondition, compile_condition, evaluate_condition, parse_condition

__all__ = [
    # Parsing
    "Addressing",
    "PathSegment",
    "TemplateRef",
    "TEMPLATE_PATTERN",
    "extract_template_references",
    "extract_template_variables",
    "has_template_variables",
    "parse_expression",
    "parse_field_path",

    # Value mode
    "MISSING",
    "AvailableField",
    "NodeOutput",
    "NodeOutputs",
    "find_output_by_label",
    "format_template_for_display",
    "format_value",
    "get_available_fields",
    "lookup_value",
    "process_config_templates",
    "process_template",
    "resolve_field_path",

    # Expression mode
    "access_expression",
    "compile_text_template",
    "guarded_expression",
    "resolve_expression",

    # Conditions
    "ParsedCondition",
    "compile_condition",
    "evaluate_condition",
    "parse_condition",
]
