"""
Macro subsystem public API.
"""

from .cache import GeneratedHandlerCache, SqlArtifactStore, cache_key
from .codegen import HandlerCodeGenerator
from .definition import parse_definition
from .engine import MacroInvocationEngine
from .fingerprint import compute_fingerprint
from .invocation import Invocation
from .registry import MacroRegistry
from .scope import PropertyScope
from .session import MacroSession
from .substitution import find_placeholders, replace_placeholder, substitute_elements

__all__ = [
    "GeneratedHandlerCache",
    "SqlArtifactStore",
    "cache_key",
    "HandlerCodeGenerator",
    "parse_definition",
    "MacroInvocationEngine",
    "compute_fingerprint",
    "Invocation",
    "MacroRegistry",
    "PropertyScope",
    "MacroSession",
    "find_placeholders",
    "replace_placeholder",
    "substitute_elements",
]
