"""
Identifier allocation for generated code.
"""

import builtins
import keyword
import re
from typing import Iterable, Set

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_IDENTIFIER = re.compile(r"[^0-9A-Za-z]+")

# Names every generated module defines or imports
MODULE_NAMES = frozenset({
    "asyncio", "json", "logging", "os", "time",
    "logger", "payload", "exc",
    "format_value", "StepFailed", "now_ms", "stamp_output",
    "unwrap_step_result", "join_branches", "run_isolated",
})


def to_identifier(text: str) -> str:
    """snake_case identifier from free text; empty when nothing usable is left"""
    snake = _NON_IDENTIFIER.sub("_", _CAMEL_BOUNDARY.sub("_", text or "")).strip("_").lower()
    if snake and snake[0].isdigit():
        snake = f"node_{snake}"
    return snake


class VariableNamer:
    """
    Hands out unique identifiers derived from node labels.

    A label that would shadow a reserved name gets a ``_result`` suffix;
    later collisions between labels get ``_2``, ``_3`` and so on.
    """

    def __init__(self, reserved: Iterable[str] = ()):
        self.reserved: Set[str] = set(MODULE_NAMES) | set(reserved)
        self.reserved |= set(keyword.kwlist) | set(dir(builtins))
        self.taken: Set[str] = set()

    def assign(self, text: str, fallback: str = "node") -> str:
        base = to_identifier(text) or to_identifier(fallback) or "node"
        if base in self.reserved:
            base = f"{base}_result"

        candidate = base
        suffix = 2
        while candidate in self.taken or candidate in self.reserved:
            candidate = f"{base}_{suffix}"
            suffix += 1
        self.taken.add(candidate)
        return candidate

    def reserve(self, name: str):
        self.reserved.add(name)
