#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
macrodef: command line entry point.

    macrodef build.xml
    macrodef build.xml -D version=1.2 -D target=release -v
    python -m macrodef build.xml --artifact-db sqlite:///./cache.db

Exit status is 0 on success and 1 on build failure.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import argparse
import logging
import sys
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional, Sequence

from macrodef import __version__
from macrodef.core.config import get_settings
from macrodef.core.database import build_engine
from macrodef.core.exceptions import MacrodefError
from macrodef.host.project import BuildProject
from macrodef.services.macros.cache import SqlArtifactStore
from macrodef.services.macros.nodes import namespace_of, parse_build_file

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

def parse_defines(defines: Sequence[str]) -> dict[str, str]:
    """Turn ``["a=1", "b=2"]`` into ``{"a": "1", "b": "2"}``."""
    properties: dict[str, str] = {}
    for item in defines:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got '{item}'")
        properties[name] = value
    return properties


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="macrodef",
        description="Run an XML build file with user-defined macros.",
    )
    ap.add_argument("buildfile", type=Path, help="Build file whose root is <project>")
    ap.add_argument("-D", dest="defines", action="append", default=[], metavar="NAME=VALUE",
                    help="Set a property before the build starts (repeatable)")
    ap.add_argument("--artifact-db", default=None, metavar="URL",
                    help="Database URL of the handler artifact cache")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


# -----------------------------------------------------------------------------

def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_arg_parser()
    args = ap.parse_args(argv)
    settings = get_settings()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level.upper(),
        format="%(message)s",
    )

    try:
        properties = parse_defines(args.defines)
    except argparse.ArgumentTypeError as exc:
        ap.error(str(exc))

    try:
        root = parse_build_file(args.buildfile)
    except (OSError, ET.ParseError) as exc:
        print(f"Cannot read build file {args.buildfile}: {exc}", file=sys.stderr)
        return 1

    engine = build_engine(args.artifact_db)
    try:
        project = BuildProject(
            namespace=namespace_of(root.tag),
            properties=properties,
            store=SqlArtifactStore(engine),
        )
        project.execute(root)
    except MacrodefError as exc:
        logger.debug("Build failed", exc_info=True)
        print(f"\nBUILD FAILED\n\n{exc}", file=sys.stderr)
        return 1
    finally:
        engine.dispose()

    print("\nBUILD SUCCEEDED")
    return 0


# -----------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
