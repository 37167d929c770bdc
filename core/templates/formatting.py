"""
Human-readable rendering of node output values.

``format_value`` is also embedded verbatim into generated workflow modules,
so it must stay self-contained: standard library only, no module globals
other than ``json``.
"""

import json


def format_value(value):
    """
    Render a resolved template value as text.

    Strings pass through, numbers and booleans stringify, lists join their
    formatted items with ", ", and mappings prefer a truthy ``title``,
    ``name``, ``id`` or ``message`` field before falling back to indented
    JSON. A preferred field is stringified plainly: a list in it joins with
    "," and a mapping in it renders as ``[object Object]``.
    """
    def plain(item):
        if item is None:
            return ""
        if isinstance(item, dict):
            return "[object Object]"
        if isinstance(item, (list, tuple)):
            return ",".join(plain(inner) for inner in item)
        return format_value(item)

    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value != value:
            return "NaN"
        if value in (float("inf"), float("-inf")):
            return "Infinity" if value > 0 else "-Infinity"
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(format_value(item) for item in value)
    if isinstance(value, dict):
        for key in ("title", "name", "id", "message"):
            if value.get(key):
                return plain(value[key])
        return json.dumps(value, indent=2, ensure_ascii=False, default=str)
    return str(value)
