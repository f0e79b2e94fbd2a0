#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Build-session configuration.

All values can be overridden via ``MACRODEF_*`` environment variables or a
.env file.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


# -----------------------------------------------------------------------------

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_prefix="MACRODEF_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ────────────────────────────────────────────────────────

    environment: Literal["development", "testing", "production"] = "development"
    log_level: str = "INFO"

    # ── Artifact store ─────────────────────────────────────────────────────

    artifact_db_url: str = "sqlite:///./.macrodef/artifacts.db"
    # For tests, override to: "sqlite://"
    db_echo: bool = False

    # ── Build host ─────────────────────────────────────────────────────────

    host_namespace: str = "http://nant.sf.net/schemas/nant.xsd"
    max_invocation_depth: int = 50     # guard against runaway macro recursion

    # ── Code generation ────────────────────────────────────────────────────

    log_generated_code: bool = True    # dump handler source at DEBUG level


# -----------------------------------------------------------------------------

@lru_cache
def get_settings() -> Settings:
    return Settings()


# -----------------------------------------------------------------------------
