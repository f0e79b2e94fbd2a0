#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
BuildProject
============
The host side of macrodef: owns the property scope, the task dispatch table
and the macro session of one build, and executes instruction nodes.

Usage::

    project = BuildProject(properties={"version": "1.2"})
    project.execute(parse_build_file("build.xml"))

Every task handler is called as ``handler(node, project)``.  Built-in tasks
register themselves through ``TaskTable.register``; macros are installed by
the macro session when their ``<macrodef>`` runs.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Mapping, Optional

from macrodef.core.config import get_settings
from macrodef.core.exceptions import (
    HostExecutionError,
    InvalidBuildFile,
    MacrodefError,
    UnknownTask,
)
from macrodef.services.macros.cache import ArtifactStore
from macrodef.services.macros.codegen import HandlerCodeGenerator
from macrodef.services.macros.nodes import is_instruction, local_name, namespace_of
from macrodef.services.macros.scope import PropertyScope
from macrodef.services.macros.session import MacroSession

from . import conditions
from .tasks import register_builtin_tasks

logger = logging.getLogger(__name__)
build_logger = logging.getLogger("macrodef.build")

TaskHandler = Callable[[ET.Element, "BuildProject"], None]


# -----------------------------------------------------------------------------

class TaskTable:
    """Dispatch table from task name to handler."""

    def __init__(self) -> None:
        self._handlers: dict[str, TaskHandler] = {}

    def register(self, name: str):
        """
        Decorator that registers a function as a task handler.

        Usage::

            @tasks.register("echo")
            def echo_task(node, project):
                project.log(node.get("message", ""))
        """
        def decorator(fn: TaskHandler) -> TaskHandler:
            self.install(name, fn)
            return fn
        return decorator

    def install(self, name: str, handler: TaskHandler) -> None:
        self._handlers[name] = handler
        logger.debug("Installed task: %s", name)

    def get(self, name: str) -> Optional[TaskHandler]:
        return self._handlers.get(name)

    def has(self, name: str) -> bool:
        return name in self._handlers


# -----------------------------------------------------------------------------

@dataclass
class BlockResult:
    """Outcome of running a nested block: success, or the error it raised."""

    error: Optional[MacrodefError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# -----------------------------------------------------------------------------

class BuildProject:
    def __init__(
        self,
        namespace: Optional[str] = None,
        properties: Optional[Mapping[str, str]] = None,
        store: Optional[ArtifactStore] = None,
        generator: Optional[HandlerCodeGenerator] = None,
    ) -> None:
        self.namespace = get_settings().host_namespace if namespace is None else namespace
        self.properties = PropertyScope(properties)
        self.tasks = TaskTable()
        self.messages: list[str] = []
        self._indent = 0

        register_builtin_tasks(self.tasks)
        self.macros = MacroSession(self, store=store, generator=generator)

    # ----------------------------------------------------------------- output

    @property
    def indent_level(self) -> int:
        return self._indent

    @contextmanager
    def indented(self) -> Iterator[None]:
        self._indent += 1
        try:
            yield
        finally:
            self._indent -= 1

    def log(self, message: str, task: str = "echo") -> None:
        """Record a line of build output."""
        self.messages.append(message)
        build_logger.info("%s[%s] %s", "  " * self._indent, task, message)

    # ----------------------------------------------------------- properties

    def expand(self, text: str) -> str:
        return self.properties.expand(text)

    def conditions_hold(self, node: ET.Element) -> bool:
        if_text = node.get("if")
        if if_text is not None and not conditions.evaluate(self.expand(if_text)):
            return False
        unless_text = node.get("unless")
        if unless_text is not None and conditions.evaluate(self.expand(unless_text)):
            return False
        return True

    # -------------------------------------------------------------- execution

    def execute(self, root: ET.Element) -> None:
        """Run every top-level instruction of a ``<project>`` root."""
        if local_name(root.tag) != "project" or namespace_of(root.tag) != self.namespace:
            raise InvalidBuildFile(
                f"Root element must be <project> in namespace '{self.namespace}', got {root.tag}"
            )
        self.run_children(root)

    def execute_node(self, node: ET.Element) -> None:
        """Dispatch one instruction node to its task handler."""
        name = local_name(node.tag)
        handler = self.tasks.get(name)
        if handler is None:
            raise UnknownTask(name)
        if not self.conditions_hold(node):
            logger.debug("Skipping <%s>: condition not met", name)
            return

        try:
            handler(node, self)
        except MacrodefError:
            raise
        except Exception as exc:
            raise HostExecutionError(f"<{name}> failed: {exc}") from exc

    def run_children(self, node: ET.Element) -> None:
        for child in node:
            if is_instruction(child, self.namespace):
                self.execute_node(child)

    def run_block(self, node: ET.Element) -> BlockResult:
        """Run the children of *node* and report the outcome as a value."""
        try:
            self.run_children(node)
        except MacrodefError as exc:
            return BlockResult(error=exc)
        return BlockResult()
