"""
Property interpolation
----------------------
Expands ``${name}`` references in raw attribute text against a property
scope.  Whitespace inside the braces is ignored: ``${ name }`` == ``${name}``.

A reference to a property that is not set is an error, never an empty
string.
"""

from __future__ import annotations

import re
from typing import Optional, Protocol

from macrodef.core.exceptions import PropertyExpansionError

_PROPERTY_REF = re.compile(r"\$\{\s*([^{}]*?)\s*\}")


class PropertyLookup(Protocol):
    def get(self, name: str) -> Optional[str]: ...


def expand(text: str, scope: PropertyLookup) -> str:
    """Return *text* with every ``${name}`` replaced by its value in *scope*."""
    if "${" not in text:
        return text

    def _resolve(match: re.Match) -> str:
        name = match.group(1)
        if not name:
            raise PropertyExpansionError(text, None)
        value = scope.get(name)
        if value is None:
            raise PropertyExpansionError(text, name)
        return value

    return _PROPERTY_REF.sub(_resolve, text)
