#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------

"""
HandlerArtifact model
=====================
One generated macro handler, keyed by macro name + content fingerprint.
Rows are written once and never updated: a changed definition has a
different fingerprint and therefore a different key.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from macrodef.core.database import Base


class HandlerArtifact(Base):
    __tablename__ = "handler_artifacts"

    cache_key: Mapped[str] = mapped_column(String(512), primary_key=True)
    macro_name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    fingerprint: Mapped[str] = mapped_column(String(64), nullable=False)
    source: Mapped[str] = mapped_column(Text, nullable=False)
    bytecode: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    toolchain: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    def __repr__(self) -> str:
        return f"<HandlerArtifact {self.macro_name!r} {self.fingerprint[:12]}>"
