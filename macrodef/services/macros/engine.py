"""
MacroInvocationEngine
=====================
Runs one macro call:

1. bind each declared attribute to its property (call-site text expanded
   against the caller's scope, else the default, else unset),
2. materialise the template, cloning it and splicing in nested blocks when
   the macro declares elements,
3. dispatch the template's instructions to the host, in document order,
4. restore every bound property to its prior state.

Step 4 always runs: the bindings live inside ``PropertyScope.override()``,
so an expansion error, a missing element or a failing instruction all leave
the scope exactly as the caller had it.
"""

from __future__ import annotations

import copy
import logging
import xml.etree.ElementTree as ET
from contextlib import AbstractContextManager
from typing import Mapping, Optional, Protocol, Sequence

from macrodef.core.config import get_settings
from macrodef.core.exceptions import InvocationDepthExceeded
from macrodef.schemas import MacroDefinition

from .invocation import Invocation
from .nodes import is_instruction
from .scope import PropertyScope, ScopeOverlay
from .substitution import substitute_elements

logger = logging.getLogger(__name__)


class Host(Protocol):
    """What the engine needs from the build tool that embeds it."""

    namespace: str
    properties: PropertyScope

    def execute_node(self, node: ET.Element) -> None: ...

    def indented(self) -> AbstractContextManager: ...


# -----------------------------------------------------------------------------

class MacroInvocationEngine:
    """
    Usage::

        engine = MacroInvocationEngine(project)
        engine.execute(definition, {"name": "x"}, {"body": [node, ...]})
    """

    def __init__(self, host: Host, max_depth: Optional[int] = None) -> None:
        self._host = host
        self._max_depth = max_depth or get_settings().max_invocation_depth
        self._depth = 0

    @property
    def depth(self) -> int:
        return self._depth

    # ----------------------------------------------------------------- public

    def execute(
        self,
        definition: MacroDefinition,
        actual_attribute_values: Optional[Mapping[str, str]] = None,
        actual_nested_blocks: Optional[Mapping[str, Sequence[ET.Element]]] = None,
    ) -> None:
        if self._depth >= self._max_depth:
            raise InvocationDepthExceeded(definition.name, self._max_depth)

        logger.debug("Running '%s'", definition.name)
        self._depth += 1
        try:
            with self._host.indented(), self._host.properties.override() as overlay:
                self._bind_attributes(definition, actual_attribute_values or {}, overlay)
                tree = self._materialize(definition, actual_nested_blocks or {})
                self._run(tree)
        finally:
            self._depth -= 1

    def invoke(self, invocation: Invocation) -> None:
        self.execute(
            invocation.definition,
            invocation.actual_attribute_values,
            invocation.actual_nested_blocks,
        )

    # ----------------------------------------------------------------- private

    def _bind_attributes(
        self,
        definition: MacroDefinition,
        values: Mapping[str, str],
        overlay: ScopeOverlay,
    ) -> None:
        properties = self._host.properties
        summary: list[str] = []

        for spec in definition.attributes:
            if spec.attribute_name in values:
                value: Optional[str] = properties.expand(values[spec.attribute_name])
            else:
                value = spec.default_value

            logger.debug("Setting property %s to %s", spec.bound_property_name, value)
            overlay.bind(spec.bound_property_name, value)
            summary.append(f"{spec.bound_property_name} = '{value if value is not None else ''}'")

        if summary:
            logger.info(", ".join(summary))

    def _materialize(
        self,
        definition: MacroDefinition,
        blocks: Mapping[str, Sequence[ET.Element]],
    ) -> ET.Element:
        if not definition.elements:
            return definition.template_body   # read-only, safe to share

        tree = copy.deepcopy(definition.template_body)
        substitute_elements(
            tree,
            definition.element_names,
            blocks,
            self._host.namespace,
            macro_name=definition.name,
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Effective macro definition: %s", ET.tostring(tree, encoding="unicode"))
        return tree

    def _run(self, tree: ET.Element) -> None:
        for child in tree:
            if is_instruction(child, self._host.namespace):
                self._host.execute_node(child)
