#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Test fixtures
=============
Every test gets its own in-memory SQLite artifact store and a fresh build
project bound to it.  Projects created from the same ``store`` fixture share
cached handlers, which is how the tests model "a second build".
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import os
import xml.etree.ElementTree as ET
from typing import Iterator

import pytest

# ── Env vars must be set before importing macrodef modules ───────────────────
os.environ.setdefault("MACRODEF_ENVIRONMENT",     "testing")
os.environ.setdefault("MACRODEF_ARTIFACT_DB_URL", "sqlite://")

from sqlalchemy import Engine

from macrodef.core.config import get_settings
from macrodef.core.database import build_engine, drop_db, init_db
from macrodef.host.project import BuildProject
from macrodef.schemas import MacroDefinition
from macrodef.services.macros.cache import SqlArtifactStore
from macrodef.services.macros.definition import parse_definition
from macrodef.services.macros.nodes import parse_xml

NS = get_settings().host_namespace


# ── One in-memory database per test ───────────────────────────────────────────
@pytest.fixture
def db_engine() -> Iterator[Engine]:
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    drop_db(engine)
    engine.dispose()


@pytest.fixture
def store(db_engine: Engine) -> SqlArtifactStore:
    return SqlArtifactStore(db_engine)


# ── A build project with a "snapshot" task that records the property scope ─
@pytest.fixture
def project(store: SqlArtifactStore) -> BuildProject:
    return make_project(store)


def make_project(store: SqlArtifactStore, **kwargs) -> BuildProject:
    p = BuildProject(store=store, **kwargs)
    p.snapshots = []  # type: ignore[attr-defined]

    @p.tasks.register("snapshot")
    def snapshot_task(node, proj):
        proj.snapshots.append(proj.properties.as_dict())

    return p


# ── XML helpers ───────────────────────────────────────────────────────────────

def xml(text: str) -> ET.Element:
    """Parse *text* with the host namespace as its default namespace."""
    head, sep, rest = text.strip().partition(">")
    if head.endswith("/"):
        head = head[:-1].rstrip() + f' xmlns="{NS}"/'
    else:
        head = head + f' xmlns="{NS}"'
    return parse_xml(head + sep + rest)


def make_definition(text: str) -> MacroDefinition:
    """Parse a ``<macrodef>`` snippet into a MacroDefinition."""
    return parse_definition(xml(text), NS)


def build_root(body: str) -> ET.Element:
    return xml(f"<project>{body}</project>")


def run_build(project: BuildProject, body: str) -> list[str]:
    """Execute *body* as the contents of a <project> and return echoed lines."""
    project.execute(build_root(body))
    return project.messages


# -----------------------------------------------------------------------------
