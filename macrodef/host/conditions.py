"""
Condition evaluation for the ``if`` / ``unless`` task attributes.

The attribute text is property-expanded first, then read as one of:

    true | false            (case-insensitive)
    <lhs> == <rhs>
    <lhs> != <rhs>

Operands are compared as trimmed text; surrounding single or double quotes
are stripped, so ``'a' == "a"`` holds.
"""

from __future__ import annotations

import re

from macrodef.core.exceptions import HostExecutionError

_COMPARISON = re.compile(r"^(.*?)\s*(==|!=)\s*(.*)$", re.DOTALL)


def _operand(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"":
        return text[1:-1]
    return text


def evaluate(text: str) -> bool:
    stripped = text.strip()
    lowered = stripped.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False

    m = _COMPARISON.match(stripped)
    if m:
        lhs, op, rhs = _operand(m.group(1)), m.group(2), _operand(m.group(3))
        return (lhs == rhs) if op == "==" else (lhs != rhs)

    raise HostExecutionError(f"Cannot evaluate condition '{text}'")
