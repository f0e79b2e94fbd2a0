"""
PropertyScope
=============
The shared name → text environment used for interpolation.

Macro invocations override properties for a bounded duration through
``override()``, a context manager that snapshots each property before its
first change and puts every snapshot back on exit, whether the block
returned or raised.

Overrides assume strict nesting.  Two invocations running concurrently on
different threads must not bind the same property names.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Mapping, Optional

from . import interpolation

logger = logging.getLogger(__name__)


class PropertyScope:
    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    # ---------------------------------------------------------------- access

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._values.get(name, default)

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)

    # ---------------------------------------------------------------- mutate

    def set(self, name: str, value: str) -> None:
        self._values[name] = value

    def remove(self, name: str) -> None:
        self._values.pop(name, None)

    # ----------------------------------------------------------- interpolate

    def expand(self, text: str) -> str:
        return interpolation.expand(text, self)

    # -------------------------------------------------------------- override

    @contextmanager
    def override(self) -> Iterator["ScopeOverlay"]:
        overlay = ScopeOverlay(self)
        try:
            yield overlay
        finally:
            overlay.restore()


# -----------------------------------------------------------------------------

class ScopeOverlay:
    """Shadow table of prior values for the properties bound in one region."""

    def __init__(self, scope: PropertyScope) -> None:
        self._scope = scope
        self._shadow: dict[str, Optional[str]] = {}

    @property
    def bound_names(self) -> list[str]:
        return list(self._shadow)

    def bind(self, name: str, value: Optional[str]) -> None:
        """Set *name* to *value*, or remove it when *value* is None."""
        if name not in self._shadow:
            self._shadow[name] = self._scope.get(name)
        if value is None:
            self._scope.remove(name)
        else:
            self._scope.set(name, value)

    def restore(self) -> None:
        for name in reversed(list(self._shadow)):
            prior = self._shadow[name]
            if prior is None:
                self._scope.remove(name)
            else:
                self._scope.set(name, prior)
        if self._shadow:
            logger.debug("Restored properties: %s", ", ".join(self._shadow))
        self._shadow.clear()
