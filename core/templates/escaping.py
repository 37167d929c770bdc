"""
Escaping of untrusted text embedded into generated Python source.
"""

import re

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}

_NEEDS_ESCAPE = re.compile(r'[\\"\x00-\x1f\x7f]')

# Keys allowed inside an f-string replacement field: no quotes, backslashes or braces
SAFE_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_\- ]+$")


def _escape_char(match: re.Match) -> str:
    char = match.group(0)
    if char in _ESCAPES:
        return _ESCAPES[char]
    return f"\\u{ord(char):04x}"


def escape_string_literal(text: str) -> str:
    """Body of a double-quoted Python string literal holding ``text``"""
    return _NEEDS_ESCAPE.sub(_escape_char, text)


def escape_fstring_literal(text: str) -> str:
    """Literal part of a double-quoted f-string; braces are doubled"""
    return escape_string_literal(text).replace("{", "{{").replace("}", "}}")


def string_literal(text: str) -> str:
    return f'"{escape_string_literal(text)}"'


def is_safe_key(name: str) -> bool:
    return bool(SAFE_KEY_PATTERN.match(name))
