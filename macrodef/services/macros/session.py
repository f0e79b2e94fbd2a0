"""
MacroSession: the macro state of one build.

Owns the registry, the invocation engine and the handler cache, and is the
object generated handlers call back into.  One session per build project;
nothing here is module-global.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING, Optional

from macrodef.schemas import MacroDefinition

from .cache import ArtifactStore, GeneratedHandlerCache, SqlArtifactStore, TaskHandler
from .codegen import HandlerCodeGenerator
from .engine import MacroInvocationEngine
from .invocation import Invocation
from .registry import MacroRegistry

if TYPE_CHECKING:
    from macrodef.host.project import BuildProject

logger = logging.getLogger(__name__)


class MacroSession:
    def __init__(
        self,
        host: "BuildProject",
        store: Optional[ArtifactStore] = None,
        generator: Optional[HandlerCodeGenerator] = None,
    ) -> None:
        self.host = host
        self.registry = MacroRegistry()
        self.engine = MacroInvocationEngine(host)
        self.cache = GeneratedHandlerCache(
            store if store is not None else SqlArtifactStore(),
            generator or HandlerCodeGenerator(),
            self,
        )

    # ------------------------------------------------------------ definition

    def define(self, definition: MacroDefinition) -> TaskHandler:
        """
        Registration hook: register *definition*, obtain its handler from the
        cache and install it in the host dispatch table.
        """
        self.registry.register(definition)
        handler = self.cache.get_or_create(definition)
        self.host.tasks.install(definition.name, handler)
        return handler

    # ------------------------------------------------------------ invocation

    def invoke(self, name: str, node: ET.Element) -> None:
        """Entry point of every generated handler."""
        definition = self.registry.lookup(name)
        invocation = Invocation.from_call_site(definition, node, self.host.namespace)
        self.engine.invoke(invocation)
