"""
macrodef: user-defined build macros.

A ``<macrodef>`` construct defines a new build instruction composed from
existing ones.  Definitions are fingerprinted, registered per build session,
and backed by a generated handler that is cached by content so unchanged
macros are not regenerated on the next build.
"""

__version__ = "0.3.0"
