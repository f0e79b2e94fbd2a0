"""
MacroRegistry: the live macro definitions of one build session.

A name maps to at most one definition.  Encountering the same definition
again (same fingerprint) is a no-op, which is what happens when a shared
file of macros is included by several build files; a different definition
under a taken name is a DefinitionConflict.

Registration is serialised per name.  Different names register
independently.
"""

from __future__ import annotations

import logging
import threading

from macrodef.core.exceptions import DefinitionConflict, MacroNotFound
from macrodef.schemas import MacroDefinition

logger = logging.getLogger(__name__)


class MacroRegistry:
    def __init__(self) -> None:
        self._definitions: dict[str, MacroDefinition] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, name: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(name, threading.Lock())

    # ---------------------------------------------------------------- register

    def register(self, definition: MacroDefinition) -> bool:
        """
        Add *definition*; return True if it was new, False if an identical
        definition was already registered.
        """
        name = definition.name
        with self._lock_for(name):
            existing = self._definitions.get(name)
            if existing is None:
                self._definitions[name] = definition
                logger.debug("Registered macro: %s (%s)", name, definition.fingerprint[:12])
                return True

            if existing.fingerprint != definition.fingerprint:
                raise DefinitionConflict(name, existing.fingerprint, definition.fingerprint)

            logger.info('macrodef "%s" already included.', name)
            return False

    # ------------------------------------------------------------------ lookup

    def has(self, name: str) -> bool:
        return name in self._definitions

    def lookup(self, name: str) -> MacroDefinition:
        definition = self._definitions.get(name)
        if definition is None:
            raise MacroNotFound(name)
        return definition

    # ---------------------------------------------------------- introspection

    def registered_names(self) -> list[str]:
        return sorted(self._definitions.keys())
