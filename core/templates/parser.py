"""
Parsing of ``{{...}}`` template expressions.

Three addressing grammars are recognised, tried in this order:

    {{@<nodeId>:<DisplayName>[.<fieldPath>]}}   id-addressed with display name
    {{$<nodeId>[.<fieldPath>]}}                 legacy id-addressed
    {{<label>[.<fieldPath>]}}                   legacy label-addressed

A field path is a dot-separated chain of names, each optionally suffixed
with one integer index, e.g. ``items[0].title``.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, List, Optional, Tuple

TEMPLATE_PATTERN = re.compile(r"\{\{([^}]+)\}\}")
SEGMENT_PATTERN = re.compile(r"^([^\[]*)\[(\d+)\]$")


class Addressing(str, Enum):
    """How a template expression names the node it reads from"""
    ID_WITH_DISPLAY = "id_with_display"
    ID = "id"
    LABEL = "label"


@dataclass(frozen=True)
class PathSegment:
    """One step of a field path: a key, an index, or a key then an index"""
    name: Optional[str] = None
    index: Optional[int] = None

    def __str__(self) -> str:
        suffix = f"[{self.index}]" if self.index is not None else ""
        return f"{self.name or ''}{suffix}"


@dataclass(frozen=True)
class TemplateRef:
    """A parsed template expression"""
    raw: str
    expression: str
    addressing: Addressing
    node_ref: str
    field_path: Tuple[PathSegment, ...] = ()
    display_name: Optional[str] = None

    @property
    def is_whole_node(self) -> bool:
        return not self.field_path

    @property
    def path_text(self) -> str:
        return ".".join(str(segment) for segment in self.field_path)


def parse_field_path(path: str) -> Tuple[PathSegment, ...]:
    """Split ``a.b[0].c`` into segments; empty parts are skipped"""
    segments: List[PathSegment] = []
    for part in path.split("."):
        part = part.strip()
        if not part:
            continue
        match = SEGMENT_PATTERN.match(part)
        if match:
            segments.append(PathSegment(name=match.group(1) or None, index=int(match.group(2))))
        else:
            segments.append(PathSegment(name=part))
    return tuple(segments)


def _split_reference(text: str) -> Tuple[str, str]:
    """Split ``node.a.b`` or ``node[0].a`` into the node part and the path part"""
    cut = len(text)
    for marker in (".", "["):
        position = text.find(marker)
        if position != -1:
            cut = min(cut, position)
    head, rest = text[:cut], text[cut:]
    if rest.startswith("."):
        rest = rest[1:]
    return head, rest


def parse_expression(expression: str, raw: Optional[str] = None) -> Optional[TemplateRef]:
    """
    Parse the inside of a ``{{...}}`` placeholder.

    Returns:
        TemplateRef, or None when the expression is malformed
        (``@`` without a display-name colon, or an empty node reference)
    """
    trimmed = expression.strip()
    raw = raw if raw is not None else f"{{{{{expression}}}}}"

    if trimmed.startswith("@"):
        body = trimmed[1:]
        node_id, colon, rest = body.partition(":")
        if not colon or not node_id:
            return None
        display_name, dot, path = rest.partition(".")
        return TemplateRef(
            raw=raw,
            expression=trimmed,
            addressing=Addressing.ID_WITH_DISPLAY,
            node_ref=node_id,
            field_path=parse_field_path(path) if dot else (),
            display_name=display_name,
        )

    if trimmed.startswith("$"):
        node_id, path = _split_reference(trimmed[1:])
        if not node_id:
            return None
        return TemplateRef(
            raw=raw,
            expression=trimmed,
            addressing=Addressing.ID,
            node_ref=node_id,
            field_path=_leading_index(trimmed[1:], node_id, path),
        )

    label, path = _split_reference(trimmed)
    if not label.strip():
        return None
    return TemplateRef(
        raw=raw,
        expression=trimmed,
        addressing=Addressing.LABEL,
        node_ref=label.strip(),
        field_path=_leading_index(trimmed, label, path),
    )


def _leading_index(text: str, head: str, path: str) -> Tuple[PathSegment, ...]:
    # ``node[0].title`` indexes the node's data directly
    remainder = text[len(head):]
    if remainder.startswith("["):
        closing = remainder.find("]")
        index_text = remainder[1:closing] if closing != -1 else ""
        if index_text.isdigit():
            tail = remainder[closing + 1:].lstrip(".")
            return (PathSegment(index=int(index_text)),) + parse_field_path(tail)
    return parse_field_path(path)


def iter_templates(text: str) -> Iterator[Tuple[re.Match, Optional[TemplateRef]]]:
    """Yield every placeholder match in ``text`` with its parsed reference"""
    for match in TEMPLATE_PATTERN.finditer(text):
        yield match, parse_expression(match.group(1), raw=match.group(0))


def has_template_variables(text: Any) -> bool:
    return isinstance(text, str) and TEMPLATE_PATTERN.search(text) is not None


def extract_template_variables(text: Any) -> List[str]:
    """Trimmed expressions of every placeholder in a string"""
    if not isinstance(text, str):
        return []
    return [match.group(1).strip() for match in TEMPLATE_PATTERN.finditer(text)]


def extract_template_references(value: Any) -> List[TemplateRef]:
    """Parsed references found anywhere inside strings, dicts and lists"""
    refs: List[TemplateRef] = []
    if isinstance(value, str):
        refs.extend(ref for _, ref in iter_templates(value) if ref is not None)
    elif isinstance(value, dict):
        for item in value.values():
            refs.extend(extract_template_references(item))
    elif isinstance(value, (list, tuple)):
        for item in value:
            refs.extend(extract_template_references(item))
    return refs
