"""
Instruction tree helpers
------------------------
Build files are parsed with ``xml.etree.ElementTree``.  Tags are
namespace-qualified in Clark notation (``{uri}local``); an empty namespace
means plain, unqualified tags.

Comments are kept in the tree so that templates round-trip faithfully;
they are never executed.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Union


def qualify(namespace: str, local: str) -> str:
    """Return the Clark-notation tag for *local* in *namespace*."""
    return f"{{{namespace}}}{local}" if namespace else local


def namespace_of(tag: str) -> str:
    if tag.startswith("{"):
        return tag[1:].split("}", 1)[0]
    return ""


def local_name(tag: str) -> str:
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def is_instruction(node: ET.Element, namespace: str) -> bool:
    """True for element nodes in the host namespace; comments and PIs are not."""
    if not isinstance(node.tag, str):
        return False
    return namespace_of(node.tag) == namespace


# -----------------------------------------------------------------------------

def _parser() -> ET.XMLParser:
    return ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))


def parse_xml(text: str) -> ET.Element:
    """Parse an XML fragment, keeping comments."""
    parser = _parser()
    parser.feed(text)
    return parser.close()


def parse_build_file(path: Union[str, Path]) -> ET.Element:
    """Parse a build file from disk and return its root element."""
    return ET.parse(str(path), parser=_parser()).getroot()
