"""
Conteneur d'injection de dépendances et configuration application.

Instancie les composants centraux (settings, store, service, ressource) selon `STORE_BACKEND`
et expose `get_container()` utilisé par le CLI.
"""

from __future__ import annotations

from functools import lru_cache

import structlog

from packstore.app.content_packs import ContentPackResource
from packstore.core.logging import setup_logging
from packstore.core.settings import Settings, get_settings
from packstore.domain.content_pack_service import ContentPackService
from packstore.infra.store.base import ContentPackStore
from packstore.infra.store.memory_store import InMemoryContentPackStore
from packstore.infra.store.redis_store import RedisContentPackStore
from packstore.infra.store.sql_store import SqlContentPackStore


def build_store(settings: Settings) -> ContentPackStore:
    """Construit le store correspondant au backend configuré."""
    timeout = settings.STORE_TIMEOUT_S
    if settings.STORE_BACKEND == "sql":
        store = SqlContentPackStore(url=settings.DATABASE_URL, timeout=timeout)
        if settings.DB_CREATE_SCHEMA:
            store.create_schema()
        return store
    if settings.STORE_BACKEND == "redis":
        if not settings.REDIS_URL:
            raise RuntimeError("Redis required but REDIS_URL not set")
        return RedisContentPackStore(
            settings.REDIS_URL, key_prefix=settings.REDIS_KEY_PREFIX, timeout=timeout
        )
    return InMemoryContentPackStore(timeout=timeout)


class Container:
    """Assemble store -> service -> ressource à partir des settings."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        setup_logging(self.settings.LOG_LEVEL, json=self.settings.LOG_JSON)
        structlog.contextvars.bind_contextvars(app=self.settings.APP_NAME)
        self.store = build_store(self.settings)
        self.storage_backend = self.settings.STORE_BACKEND
        self.service = ContentPackService(self.store)
        self.resource = ContentPackResource(self.service)


@lru_cache(maxsize=1)
def get_container() -> Container:
    """Retourne le conteneur applicatif (construit au premier appel)."""
    return Container()
