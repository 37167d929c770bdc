"""
Expression-mode template resolution, used by the code generator.

Instead of a live value, a placeholder becomes a Python access expression
over the variable that holds the referenced node's output, for example
``{{$fetch.items[0].title}}`` becomes ``fetch_user['items'][0]['title']``.
"""

from typing import Callable, List, Mapping, Optional

from core.templates.escaping import escape_fstring_literal, is_safe_key, string_literal
from core.templates.parser import Addressing, TemplateRef, iter_templates

# Resolves a legacy label reference to a node id
LabelResolver = Callable[[str], Optional[str]]

# (node id, placeholder text) -> name of a constant holding that text, or None
FallbackNamer = Callable[[str, str], Optional[str]]

FORMAT_HELPER = "format_value"


def target_node_id(ref: TemplateRef, resolve_label: Optional[LabelResolver] = None) -> Optional[str]:
    if ref.addressing == Addressing.LABEL:
        return resolve_label(ref.node_ref) if resolve_label else None
    return ref.node_ref


def access_expression(ref: TemplateRef, variables: Mapping[str, str],
                      resolve_label: Optional[LabelResolver] = None) -> Optional[str]:
    """
    Access expression for a reference, or None when it cannot be expressed.

    A reference cannot be expressed when its node has no variable or when a
    key contains characters that are unsafe inside a replacement field.
    """
    node_id = target_node_id(ref, resolve_label)
    variable = variables.get(node_id) if node_id else None
    if variable is None:
        return None

    parts = [variable]
    for segment in ref.field_path:
        if segment.name is not None:
            if not is_safe_key(segment.name):
                return None
            parts.append(f"['{segment.name}']")
        if segment.index is not None:
            parts.append(f"[{segment.index}]")
    return "".join(parts)


def guarded_expression(ref: TemplateRef, variables: Mapping[str, str],
                       resolve_label: Optional[LabelResolver] = None,
                       fallback: Optional[FallbackNamer] = None) -> Optional[str]:
    """
    Like ``access_expression``, for a node that may not have produced output.

    ``fallback`` is asked for a name holding the reference's literal text.
    When it gives one, the expression reads the variable only if it is set
    and evaluates to that name otherwise.
    """
    expression = access_expression(ref, variables, resolve_label)
    if expression is None or fallback is None:
        return expression
    node_id = target_node_id(ref, resolve_label)
    literal = fallback(node_id, ref.raw)
    if literal is None:
        return expression
    return f"{expression} if {variables[node_id]} is not None else {literal}"


def resolve_expression(ref: TemplateRef, variables: Mapping[str, str],
                       resolve_label: Optional[LabelResolver] = None) -> str:
    """Access expression for ``ref``, falling back to its literal text"""
    return access_expression(ref, variables, resolve_label) or ref.raw


def compile_text_template(text: str, variables: Mapping[str, str],
                          resolve_label: Optional[LabelResolver] = None,
                          unresolved: Optional[List[str]] = None,
                          fallback: Optional[FallbackNamer] = None) -> str:
    """
    Python source for a config string.

    Plain text compiles to a string literal. Text with resolvable
    placeholders compiles to an f-string whose replacement fields apply
    ``format_value`` to the access expression. Placeholders that cannot be
    resolved stay in the output as literal text, and their expressions are
    appended to ``unresolved`` when given. See ``guarded_expression`` for
    ``fallback``.
    """
    pieces = []
    last = 0
    interpolated = False

    for match, ref in iter_templates(text):
        pieces.append(escape_fstring_literal(text[last:match.start()]))
        last = match.end()
        expression = guarded_expression(ref, variables, resolve_label, fallback) if ref else None
        if expression is None:
            if unresolved is not None:
                unresolved.append(match.group(1).strip())
            pieces.append(escape_fstring_literal(match.group(0)))
            continue
        interpolated = True
        pieces.append(f"{{{FORMAT_HELPER}({expression})}}")

    if not interpolated:
        return string_literal(text)

    pieces.append(escape_fstring_literal(text[last:]))
    return 'f"' + "".join(pieces) + '"'
