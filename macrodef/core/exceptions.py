#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Error taxonomy
==============
Every failure raised by macrodef derives from MacrodefError.  None of them
is retried; restoring the property scope after an invocation is the only
cleanup that is guaranteed.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Optional, Sequence


class MacrodefError(Exception):
    """Base class for every error raised by macrodef."""


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Definition time
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class InvalidDefinition(MacrodefError):
    pass


class DefinitionConflict(MacrodefError):
    def __init__(self, name: str, existing: str, incoming: str) -> None:
        super().__init__(
            f"Different macrodef with the name '{name}' already exists. Cannot redefine."
        )
        self.name = name
        self.existing_fingerprint = existing
        self.incoming_fingerprint = incoming


class MacroNotFound(MacrodefError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Macro '{name}' is not defined")
        self.name = name


class CompilationError(MacrodefError):
    """The generated handler source was rejected.

    Carries the full generated source and every diagnostic so an operator
    can see exactly what was compiled.
    """

    def __init__(self, source: str, diagnostics: Sequence[str]) -> None:
        self.source = source
        self.diagnostics = list(diagnostics)
        super().__init__(
            "Errors:\n" + "\n".join(self.diagnostics) + "\n" + source
        )


class ArtifactNotFound(MacrodefError):
    def __init__(self, key: str) -> None:
        super().__init__(f"No cached handler artifact under key '{key}'")
        self.key = key


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Invocation time
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class MissingElementBinding(MacrodefError):
    def __init__(self, macro: str, element: str) -> None:
        super().__init__(f"Element '{element}' must be defined when calling '{macro}'")
        self.macro = macro
        self.element = element


class PropertyExpansionError(MacrodefError):
    def __init__(self, text: str, reference: Optional[str]) -> None:
        if reference:
            message = f"Property '{reference}' has not been set (in '{text}')"
        else:
            message = f"Empty property reference in '{text}'"
        super().__init__(message)
        self.text = text
        self.reference = reference


class InvocationDepthExceeded(MacrodefError):
    def __init__(self, macro: str, depth: int) -> None:
        super().__init__(f"Macro '{macro}' exceeded the maximum nesting depth ({depth})")
        self.macro = macro
        self.depth = depth


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Host execution
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class HostExecutionError(MacrodefError):
    """A dispatched instruction failed."""


class BuildFailure(HostExecutionError):
    """Raised deliberately by ``<fail>`` and ``<assert-fail>``."""


class UnknownTask(HostExecutionError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Invalid element <{name}>. Unknown task or datatype.")
        self.name = name


class InvalidBuildFile(HostExecutionError):
    pass


# -----------------------------------------------------------------------------
