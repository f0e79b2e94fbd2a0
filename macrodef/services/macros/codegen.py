"""
Handler code generation
-----------------------
Every macro gets a small generated Python module whose ``create_handler``
factory returns the task handler installed in the host dispatch table.  The
handler does nothing but route the call back into the macro session:

    def create_handler(session):
        def macro_assert_equals_3f2a9c01d4e5(node, project):
            return session.invoke(MACRO_NAME, node)
        ...

Generation and compilation are separate steps so that a cached artifact can
be recompiled from its stored source without regenerating it.
"""

from __future__ import annotations

import re
import sys
import traceback
from types import CodeType
from typing import Any, Callable

from macrodef.core.exceptions import CompilationError
from macrodef.schemas import MacroDefinition

# Identifies the interpreter that produced stored bytecode
TOOLCHAIN = sys.implementation.cache_tag or sys.implementation.name

FACTORY_NAME = "create_handler"

_NON_IDENT = re.compile(r"[^0-9A-Za-z_]")

_HANDLER_TEMPLATE = '''\
# Generated handler for macro {name!r}.  Do not edit.
# fingerprint: {fingerprint}

MACRO_NAME = {name!r}
FINGERPRINT = {fingerprint!r}


def {factory}(session):
    def {function}(node, project):
        return session.invoke(MACRO_NAME, node)

    {function}.macro_name = MACRO_NAME
    {function}.fingerprint = FINGERPRINT
    return {function}
'''


def handler_function_name(definition: MacroDefinition) -> str:
    return f"macro_{_NON_IDENT.sub('_', definition.name)}_{definition.fingerprint[:12]}"


def module_filename(name: str, fingerprint: str) -> str:
    return f"<macrodef {name} {fingerprint[:12]}>"


class HandlerCodeGenerator:
    """Renders and compiles handler modules."""

    def generate(self, definition: MacroDefinition) -> str:
        return _HANDLER_TEMPLATE.format(
            name=definition.name,
            fingerprint=definition.fingerprint,
            factory=FACTORY_NAME,
            function=handler_function_name(definition),
        )

    def compile(self, source: str, filename: str) -> CodeType:
        try:
            return compile(source, filename, "exec")
        except (SyntaxError, ValueError) as exc:
            raise CompilationError(source, traceback.format_exception_only(type(exc), exc)) from exc

    def instantiate(self, code: CodeType, source: str, session: Any) -> Callable:
        """Execute a compiled handler module and build its handler for *session*."""
        namespace: dict[str, Any] = {"__name__": "macrodef.generated"}
        try:
            exec(code, namespace)
        except Exception as exc:
            raise CompilationError(source, traceback.format_exception_only(type(exc), exc)) from exc

        factory = namespace.get(FACTORY_NAME)
        if not callable(factory):
            raise CompilationError(source, [f"generated module defines no {FACTORY_NAME}()"])
        return factory(session)
