"""
Fingerprint
-----------
A deterministic content hash over a macro definition: its declared
attributes, its declared elements and its template body.

The hash doubles as a durable cache key, so it must not depend on anything
that varies between processes (object ids, dict ordering, hash seeds).
Attributes and elements are serialised as compact JSON; the template body is
serialised in XML canonical form (C14N 2.0).

Comments are dropped and attribute order is normalised by C14N, but
whitespace changes inside the template body still produce a different
fingerprint.  That only costs a regeneration.
"""

from __future__ import annotations

import copy
import hashlib
import json
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from macrodef.schemas import MacroDefinition

FINGERPRINT_ALGORITHM = "sha256"
FINGERPRINT_LENGTH = 64      # hex characters


def canonical_body(template_body: ET.Element) -> str:
    """Serialise *template_body* in canonical form, ignoring its own tail."""
    root = copy.copy(template_body)   # shallow: children are shared, not mutated
    root.tail = None
    return ET.canonicalize(ET.tostring(root, encoding="unicode"))


def canonical_bytes(definition: "MacroDefinition") -> bytes:
    header = json.dumps(
        {
            "attributes": [
                [a.attribute_name, a.bound_property_name, a.default_value]
                for a in definition.attributes
            ],
            "elements": [e.element_name for e in definition.elements],
        },
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return header.encode("utf-8") + b"\n" + canonical_body(definition.template_body).encode("utf-8")


def compute_fingerprint(definition: "MacroDefinition") -> str:
    """Return the hex SHA-256 of the definition's canonical serialisation."""
    return hashlib.new(FINGERPRINT_ALGORITHM, canonical_bytes(definition)).hexdigest()
