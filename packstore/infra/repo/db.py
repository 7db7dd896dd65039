"""DB utilities for SQLAlchemy sessions/engine.

Uses `DATABASE_URL` env var or falls back to `sqlite+pysqlite:///:memory:` for tests.
The in-memory database lives on a single shared connection: callers must serialize access
(see `is_memory_sqlite`).
"""

from __future__ import annotations

import os
import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///:memory:"

_memory_locks: weakref.WeakKeyDictionary[Engine, threading.Lock] = weakref.WeakKeyDictionary()
_memory_locks_guard = threading.Lock()


def connect_args_for(url: str, timeout: float) -> dict[str, Any]:
    """Arguments de connexion pilote bornant connexion et requêtes à `timeout`.

    - sqlite: attente d'un verrou d'écriture (`timeout`, en secondes);
    - postgresql: `connect_timeout` (secondes entières) et `statement_timeout` (ms);
    - mysql/mariadb: délais de connexion, lecture et écriture (secondes entières).
    """
    backend = make_url(url).get_backend_name()
    seconds = max(1, int(timeout))
    if backend == "sqlite":
        return {"check_same_thread": False, "timeout": timeout}
    if backend == "postgresql":
        return {
            "connect_timeout": seconds,
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        }
    if backend in ("mysql", "mariadb"):
        return {"connect_timeout": seconds, "read_timeout": seconds, "write_timeout": seconds}
    return {}


def is_memory_sqlite(engine: Engine) -> bool:
    """Vrai pour une base SQLite en mémoire (une seule connexion partagée)."""
    return engine.dialect.name == "sqlite" and engine.url.database in (None, "", ":memory:")


def memory_lock(engine: Engine) -> threading.Lock | None:
    """Verrou commun à tous les utilisateurs d'un moteur SQLite en mémoire, `None` sinon."""
    if not is_memory_sqlite(engine):
        return None
    with _memory_locks_guard:
        lock = _memory_locks.get(engine)
        if lock is None:
            lock = _memory_locks[engine] = threading.Lock()
        return lock


def get_engine(url: str | None = None, timeout: float = 5.0) -> Engine:
    """Crée un moteur SQLAlchemy à partir de l'URL de base de données.

    `timeout` borne l'attente d'une connexion du pool, l'établissement de la connexion et, selon
    le pilote, la durée d'une requête ou l'attente d'un verrou d'écriture SQLite.
    """
    db_url = url or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL
    connect_args = connect_args_for(db_url, timeout)
    if db_url.startswith("sqlite"):
        if ":memory:" in db_url or make_url(db_url).database in (None, ""):
            # une seule connexion partagée, sinon chaque connexion voit sa propre base vide
            return create_engine(
                db_url,
                future=True,
                echo=False,
                connect_args=connect_args,
                poolclass=StaticPool,
            )
        return create_engine(db_url, future=True, echo=False, connect_args=connect_args)
    return create_engine(
        db_url,
        future=True,
        echo=False,
        connect_args=connect_args,
        pool_timeout=timeout,
        pool_pre_ping=True,
    )


def get_session_factory(engine: Engine) -> sessionmaker:
    """Crée une factory de sessions SQLAlchemy."""
    return sessionmaker(bind=engine, class_=Session, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Contexte de session SQLAlchemy avec gestion automatique des transactions.

    La transaction est validée à la sortie normale du bloc et annulée sur toute exception, y
    compris une interruption de l'appelant: une mutation est appliquée entièrement ou pas du tout.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()
