"""
Defining construct
------------------
Turns a ``<macrodef>`` node into a MacroDefinition:

    <macrodef name="assert-equals">
      <attributes>
        <attribute name="name"/>
        <attribute name="expected"/>
        <attribute name="actual" property="actual.value" default=""/>
      </attributes>
      <elements>
        <element name="body"/>
      </elements>
      <sequential>
        ... template body ...
      </sequential>
    </macrodef>

``<attributes>``, ``<elements>`` and ``<sequential>`` are all optional; a
macro without ``<sequential>`` does nothing when called.  The template body
is copied out of the build file so the definition owns it outright.
"""

from __future__ import annotations

import copy
import xml.etree.ElementTree as ET

from pydantic import ValidationError

from macrodef.core.exceptions import InvalidDefinition
from macrodef.schemas import AttributeSpec, ElementSpec, MacroDefinition

from .nodes import qualify


def parse_definition(node: ET.Element, namespace: str) -> MacroDefinition:
    """Build a MacroDefinition from a ``<macrodef>`` element."""
    name = node.get("name")
    if not name:
        raise InvalidDefinition("<macrodef> requires a 'name' attribute")

    attributes = []
    for attr in node.iterfind(f"{qualify(namespace, 'attributes')}/{qualify(namespace, 'attribute')}"):
        if not attr.get("name"):
            raise InvalidDefinition(f"Attribute of macrodef '{name}' has no name")
        attributes.append({
            "attribute_name": attr.get("name"),
            "bound_property_name": attr.get("property"),
            "default_value": attr.get("default"),
        })

    elements = []
    for elem in node.iterfind(f"{qualify(namespace, 'elements')}/{qualify(namespace, 'element')}"):
        if not elem.get("name"):
            raise InvalidDefinition(f"Element of macrodef '{name}' has no name")
        elements.append({"element_name": elem.get("name")})

    body = node.find(qualify(namespace, "sequential"))
    if body is None:
        body = ET.Element(qualify(namespace, "sequential"))

    try:
        return MacroDefinition(
            name=name,
            attributes=tuple(AttributeSpec(**a) for a in attributes),
            elements=tuple(ElementSpec(**e) for e in elements),
            template_body=copy.deepcopy(body),
        )
    except ValidationError as exc:
        raise InvalidDefinition(f"Invalid macrodef '{name}': {exc}") from exc
