"""
Invocation
----------
One call of a macro: the definition plus what the call site supplied.
Built from the call-site node, executed once and discarded.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from macrodef.schemas import MacroDefinition

from .nodes import qualify

logger = logging.getLogger(__name__)

# Evaluated by the host before the macro runs
_HOST_ATTRIBUTES = frozenset({"if", "unless"})


@dataclass
class Invocation:
    definition: MacroDefinition
    actual_attribute_values: dict[str, str] = field(default_factory=dict)
    actual_nested_blocks: dict[str, list[ET.Element]] = field(default_factory=dict)

    @classmethod
    def from_call_site(cls, definition: MacroDefinition, node: ET.Element, namespace: str) -> "Invocation":
        """
        Collect raw attribute text and nested blocks from *node*.

        Only the first child carrying an element's tag is used as its block.
        Attributes the macro does not declare are ignored with a warning.
        """
        declared = {a.attribute_name for a in definition.attributes}
        values: dict[str, str] = {}
        for key, raw in node.attrib.items():
            if key in declared:
                values[key] = raw
            elif key not in _HOST_ATTRIBUTES:
                logger.warning("'%s' does not declare attribute '%s'; ignored", definition.name, key)

        blocks: dict[str, list[ET.Element]] = {}
        for name in definition.element_names:
            block = node.find(qualify(namespace, name))
            if block is not None:
                blocks[name] = list(block)

        return cls(definition=definition, actual_attribute_values=values, actual_nested_blocks=blocks)
