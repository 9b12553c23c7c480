"""Translate a prompt's raw command text into a script for the external tool.

The built script is handed to the shell as one single-quoted argument, so
every mode ends with the same quote-escaping step.
"""

from __future__ import annotations

import logging
import re
from enum import Enum

LOGGER = logging.getLogger(__name__)

DEFAULT_FIELD_SEPARATOR = " "
BLANK_LINE_RULE = "/^$/ { print; next }"

# $1, $23, $NF and simple parenthesised forms such as $(NF-1)
_FIELD_REFERENCE = re.compile(r"\$(?:[0-9]+|NF|\([^()\n]*\))")


class Mode(str, Enum):
    """How raw command text becomes a script."""

    PRINT = "print"
    SIMPLE = "simple"
    RAW = "raw"

    @classmethod
    def parse(cls, value: Mode | str) -> Mode:
        if isinstance(value, Mode):
            return value
        normalized = str(value or "").strip().lower()
        for mode in cls:
            if mode.value == normalized:
                return mode
        raise ValueError(f"Unknown mode {value!r}; expected one of {', '.join(m.value for m in cls)}")

    def next_mode(self) -> Mode:
        members = list(Mode)
        return members[(members.index(self) + 1) % len(members)]


def escape_single_quotes(script: str) -> str:
    """Escape ``'`` so ``script`` survives inside a single-quoted shell word."""

    return script.replace("'", "'\\''")


def escape_string_literal(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def print_statement(raw: str) -> str:
    """Turn free text with field references into a ``print "..."`` statement.

    ``a $1 b`` becomes ``print "a " $1 " b"`` so field values are
    interpolated outside the string literal. A newline typed in the prompt
    becomes the awk ``\\n`` escape rather than a line-continuation
    sequence: the program stays on one line and each record prints as
    several output lines.
    """

    text = escape_string_literal(raw)
    text = _FIELD_REFERENCE.sub(lambda match: f'" {match.group(0)} "', text)
    text = text.replace("\n", "\\n")
    return f'print "{text}"'


def guarded_rule(action: str, match_expr: str = "") -> str:
    """Return ``action`` guarded by ``match_expr`` after the blank-line rule."""

    guard = (match_expr or "").strip()
    rule = f"{guard} {{ {action} }}" if guard else f"{{ {action} }}"
    return f"{BLANK_LINE_RULE}\n{rule}"


def field_separator_clause(field_separator: str) -> str:
    return f'BEGIN {{ FS = "{escape_string_literal(field_separator)}" }}'


def build(
    raw: str,
    mode: Mode | str = Mode.PRINT,
    match_expr: str = "",
    field_separator: str = DEFAULT_FIELD_SEPARATOR,
) -> str:
    """Return the shell-escaped script for ``raw`` in ``mode``."""

    resolved = Mode.parse(mode)
    if resolved is Mode.RAW:
        body = raw
    elif resolved is Mode.SIMPLE:
        body = guarded_rule(raw, match_expr)
    else:
        body = guarded_rule(print_statement(raw), match_expr)

    if field_separator != DEFAULT_FIELD_SEPARATOR:
        body = f"{field_separator_clause(field_separator)}\n{body}"

    LOGGER.debug("Built %s-mode script (%d chars)", resolved.value, len(body))
    return escape_single_quotes(body)


__all__ = [
    "BLANK_LINE_RULE",
    "DEFAULT_FIELD_SEPARATOR",
    "Mode",
    "build",
    "escape_single_quotes",
    "field_separator_clause",
    "guarded_rule",
    "print_statement",
]
