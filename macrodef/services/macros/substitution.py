"""
ElementSubstitution
===================
Splices call-site nested blocks into a macro template.

A template declares element ``body`` and marks where it goes with an empty
``<body/>`` placeholder.  At invocation time each placeholder is replaced by
deep copies of the children the call site supplied under ``<body>``:

    template                      call site                 result
    --------                      ---------                 ------
    <echo message="before"/>      <body>                    <echo message="before"/>
    <body/>                         <echo message="x"/>     <echo message="x"/>
    <echo message="after"/>       </body>                   <echo message="after"/>

Every placeholder expands to the complete bound sequence, so a template that
uses ``<body/>`` twice runs the block twice.  Only direct children of the
template are placeholders.

These functions only ever mutate the tree they are given, which must be a
private clone owned by one invocation.
"""

from __future__ import annotations

import copy
import logging
import xml.etree.ElementTree as ET
from typing import Iterable, Mapping, NamedTuple, Sequence

from macrodef.core.exceptions import MissingElementBinding

from .nodes import qualify

logger = logging.getLogger(__name__)


class Placeholder(NamedTuple):
    parent: ET.Element
    node: ET.Element


def find_placeholders(tree: ET.Element, tag: str) -> list[Placeholder]:
    """
    Return the direct children of *tree* with *tag*, in document order.

    Deeper nodes are never placeholders: a nested call site or <macrodef>
    may carry a block of the same name that belongs to it.
    """
    return [Placeholder(tree, node) for node in tree if node.tag == tag]


def replace_placeholder(placeholder: Placeholder, bound_children: Sequence[ET.Element]) -> None:
    """Replace *placeholder* with deep copies of *bound_children*, in place."""
    parent, node = placeholder
    index = list(parent).index(node)
    copies = [copy.deepcopy(child) for child in bound_children]

    # Keep the text that followed the placeholder
    if node.tail:
        if copies:
            copies[-1].tail = (copies[-1].tail or "") + node.tail
        elif index > 0:
            previous = parent[index - 1]
            previous.tail = (previous.tail or "") + node.tail
        else:
            parent.text = (parent.text or "") + node.tail

    parent[index:index + 1] = copies


def substitute_elements(
    tree: ET.Element,
    element_names: Iterable[str],
    bindings: Mapping[str, Sequence[ET.Element]],
    namespace: str,
    macro_name: str = "",
) -> int:
    """
    Replace the placeholders of every element in *element_names*.

    All placeholders are located before any replacement happens, so content
    spliced in from the call site is never itself treated as a placeholder.
    Returns the number of placeholders replaced.

    Raises MissingElementBinding when a placeholder has no bound block; an
    element that is declared but never used needs no binding.
    """
    pending = [(name, find_placeholders(tree, qualify(namespace, name))) for name in element_names]

    for name, placeholders in pending:
        if placeholders and name not in bindings:
            raise MissingElementBinding(macro_name, name)

    replaced = 0
    for name, placeholders in pending:
        logger.debug("Inserting %d call(s) of '%s'", len(placeholders), name)
        for placeholder in placeholders:
            replace_placeholder(placeholder, bindings[name])
            replaced += 1
    return replaced
