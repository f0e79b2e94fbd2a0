#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Artifact database engine and session factory.

Uses the synchronous SQLAlchemy 2.x API: macro invocation never suspends,
so the artifact store is read and written on the calling thread.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from macrodef.core.config import get_settings


# -----------------------------------------------------------------------------

class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""
    pass


# -----------------------------------------------------------------------------

def build_engine(url: str | None = None) -> Engine:
    settings = get_settings()
    db_url = make_url(url or settings.artifact_db_url)

    if db_url.get_backend_name() == "sqlite":
        if db_url.database in (None, "", ":memory:"):
            # One shared connection, otherwise every checkout sees a fresh DB
            return create_engine(
                db_url,
                echo=settings.db_echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        Path(db_url.database).parent.mkdir(parents=True, exist_ok=True)

    return create_engine(db_url, echo=settings.db_echo, pool_pre_ping=True)


# -----------------------------------------------------------------------------

_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def get_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    global _SessionLocal
    if engine is not None:
        return sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            bind=get_engine(),
            expire_on_commit=False,
            autoflush=False,
        )
    return _SessionLocal


# -----------------------------------------------------------------------------

def init_db(engine: Engine | None = None) -> None:
    """Create all tables.  Safe to call repeatedly."""
    from macrodef.models import artifact  # noqa: F401
    Base.metadata.create_all(engine or get_engine())


def drop_db(engine: Engine | None = None) -> None:
    """Drop all tables."""
    Base.metadata.drop_all(engine or get_engine())


# -----------------------------------------------------------------------------
