"""
Pydantic v2 schemas for macro definitions and cached handler artifacts.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Macro definitions
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class AttributeSpec(BaseModel):
    """A call-site attribute, bound to a property for the invocation's duration."""

    model_config = ConfigDict(frozen=True)

    attribute_name: str = Field(..., min_length=1)
    bound_property_name: str = Field(..., min_length=1)
    default_value: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def property_defaults_to_attribute(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("bound_property_name") is None:
            data = {**data, "bound_property_name": data.get("attribute_name")}
        return data


# -----------------------------------------------------------------------------

class ElementSpec(BaseModel):
    """A named nested block the call site may supply."""

    model_config = ConfigDict(frozen=True)

    element_name: str = Field(..., min_length=1)


# -----------------------------------------------------------------------------

class MacroDefinition(BaseModel):
    """
    Immutable record of one macro.

    ``template_body`` is the ``<sequential>`` element of the defining
    construct.  Nothing ever mutates it; invocations that need to splice in
    nested blocks work on a deep copy.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1)
    attributes: tuple[AttributeSpec, ...] = ()
    elements: tuple[ElementSpec, ...] = ()
    template_body: ET.Element

    _fingerprint: Optional[str] = PrivateAttr(default=None)

    @field_validator("elements")
    @classmethod
    def element_names_unique(cls, v: tuple[ElementSpec, ...]) -> tuple[ElementSpec, ...]:
        seen: set[str] = set()
        for spec in v:
            if spec.element_name in seen:
                raise ValueError(f"Element '{spec.element_name}' is declared more than once")
            seen.add(spec.element_name)
        return v

    @property
    def fingerprint(self) -> str:
        """Content hash, computed on first access and cached."""
        if self._fingerprint is None:
            from macrodef.services.macros.fingerprint import compute_fingerprint
            self._fingerprint = compute_fingerprint(self)
        return self._fingerprint

    @property
    def element_names(self) -> list[str]:
        return [e.element_name for e in self.elements]

    def __repr__(self) -> str:
        return f"<MacroDefinition {self.name!r}>"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Handler cache
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class CompiledArtifact(BaseModel):
    macro_name: str
    fingerprint: str
    source: str
    bytecode: bytes
    toolchain: str

    model_config = {"from_attributes": True}
