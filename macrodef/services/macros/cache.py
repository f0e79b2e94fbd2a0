"""
GeneratedHandlerCache
=====================
Maps (macro name, fingerprint) to an executable handler.

    miss → generate source, compile, persist the artifact, return handler
    hit  → load the stored artifact and return its handler; the generator
           is never asked for source again

The artifact store is a plain key/value table.  The key is
``name + fingerprint``: the fingerprint is fixed-width, so the
concatenation is unambiguous.  Stored bytecode is only reused by the
interpreter that wrote it (see ``TOOLCHAIN``); any other interpreter
recompiles the stored source.

Generation is serialised per key, so one process never compiles the same
handler twice concurrently.
"""

from __future__ import annotations

import logging
import marshal
import threading
from typing import Callable, Optional, Protocol

from sqlalchemy import Engine, func, select

from macrodef.core.config import get_settings
from macrodef.core.database import get_engine, get_session_factory, init_db
from macrodef.core.exceptions import ArtifactNotFound
from macrodef.models.artifact import HandlerArtifact
from macrodef.schemas import CompiledArtifact, MacroDefinition

from .codegen import TOOLCHAIN, HandlerCodeGenerator, module_filename

logger = logging.getLogger(__name__)

TaskHandler = Callable[..., None]


def cache_key(name: str, fingerprint: str) -> str:
    return f"{name}{fingerprint}"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Artifact store
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class ArtifactStore(Protocol):
    def exists(self, key: str) -> bool: ...

    def load(self, key: str) -> Optional[CompiledArtifact]: ...

    def save(self, key: str, artifact: CompiledArtifact) -> None: ...


class SqlArtifactStore:
    """ArtifactStore backed by the ``handler_artifacts`` table."""

    def __init__(self, engine: Optional[Engine] = None) -> None:
        engine = engine or get_engine()
        init_db(engine)
        self._factory = get_session_factory(engine)

    def exists(self, key: str) -> bool:
        with self._factory() as db:
            count = db.scalar(
                select(func.count()).select_from(HandlerArtifact).where(HandlerArtifact.cache_key == key)
            )
        return bool(count)

    def load(self, key: str) -> Optional[CompiledArtifact]:
        with self._factory() as db:
            row = db.get(HandlerArtifact, key)
            return CompiledArtifact.model_validate(row) if row else None

    def save(self, key: str, artifact: CompiledArtifact) -> None:
        with self._factory() as db:
            db.merge(HandlerArtifact(cache_key=key, **artifact.model_dump()))
            db.commit()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Cache
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class GeneratedHandlerCache:
    """
    Usage::

        cache = GeneratedHandlerCache(store, HandlerCodeGenerator(), session)
        handler = cache.get_or_create(definition)
    """

    def __init__(self, store: ArtifactStore, generator: HandlerCodeGenerator, session) -> None:
        self._store = store
        self._generator = generator
        self._session = session
        self._handlers: dict[str, TaskHandler] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())

    # ----------------------------------------------------------------- public

    def exists(self, name: str, fingerprint: str) -> bool:
        return self._store.exists(cache_key(name, fingerprint))

    def load(self, name: str, fingerprint: str) -> TaskHandler:
        """Return the stored handler without generating any code."""
        key = cache_key(name, fingerprint)
        artifact = self._store.load(key)
        if artifact is None:
            raise ArtifactNotFound(key)

        if artifact.toolchain == TOOLCHAIN:
            code = marshal.loads(artifact.bytecode)
        else:
            logger.info(
                '"%s" was compiled by %s; recompiling stored source for %s',
                name, artifact.toolchain, TOOLCHAIN,
            )
            code = self._generator.compile(artifact.source, module_filename(name, fingerprint))

        logger.debug('Loaded cached handler for "%s" (%s)', name, fingerprint[:12])
        return self._generator.instantiate(code, artifact.source, self._session)

    def store(self, name: str, fingerprint: str, definition: MacroDefinition) -> TaskHandler:
        """Generate, compile and persist a handler for *definition*."""
        logger.info('"%s" new or modified. Compiling.', name)

        source = self._generator.generate(definition)
        code = self._generator.compile(source, module_filename(name, fingerprint))
        handler = self._generator.instantiate(code, source, self._session)

        if get_settings().log_generated_code:
            logger.debug("Generated handler for %s:\n%s", name, source)

        self._store.save(
            cache_key(name, fingerprint),
            CompiledArtifact(
                macro_name=name,
                fingerprint=fingerprint,
                source=source,
                bytecode=marshal.dumps(code),
                toolchain=TOOLCHAIN,
            ),
        )
        return handler

    def get_or_create(self, definition: MacroDefinition) -> TaskHandler:
        name, fingerprint = definition.name, definition.fingerprint
        key = cache_key(name, fingerprint)

        with self._lock_for(key):
            handler = self._handlers.get(key)
            if handler is None:
                if self.exists(name, fingerprint):
                    handler = self.load(name, fingerprint)
                else:
                    handler = self.store(name, fingerprint, definition)
                self._handlers[key] = handler
        return handler
