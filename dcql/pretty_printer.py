"""Indentation based printer for diagnostic output."""

import json
from typing import Any, Iterable, List

INDENT_STEP = 2


def compact_json(value: Any) -> str:
    """Render a JSON value without insignificant whitespace."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def bracketed(items: Iterable[Any]) -> str:
    """Render a list of identifiers as `[a, b, c]`."""
    return "[" + ", ".join(str(item) for item in items) + "]"


class PrettyPrinter:
    """Collects lines, each prefixed with the current indentation."""

    def __init__(self):
        """Initialize an empty printer."""
        self._lines: List[str] = []
        self._indent = 0

    def append(self, line: str):
        """Append a line at the current indentation."""
        self._lines.append(" " * self._indent + line + "\n")

    def push_indent(self):
        """Indent subsequent lines one more level."""
        self._indent += INDENT_STEP

    def pop_indent(self):
        """Indent subsequent lines one level less."""
        if self._indent < INDENT_STEP:
            raise ValueError("Unbalanced pop_indent")
        self._indent -= INDENT_STEP

    def __str__(self) -> str:
        """Return everything printed so far."""
        return "".join(self._lines)
