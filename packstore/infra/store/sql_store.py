"""Store de content packs adossé à une base SQL (SQLAlchemy).

L'unicité de (pack_id, revision) est portée par la contrainte `uq_content_pack_id_revision`:
l'insertion est un compare-and-insert atomique côté base, un doublon remonte en `IntegrityError`
et devient `DuplicateRevision`. Toute autre erreur pilote devient `StorageUnavailable`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TypeVar

import structlog
from sqlalchemy import delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from packstore.domain.content_pack import ContentPack
from packstore.domain.errors import DuplicateRevision, StorageUnavailable
from packstore.infra.repo.db import get_engine, get_session_factory, memory_lock, session_scope
from packstore.infra.repo.models import Base, ContentPackORM
from packstore.infra.store.base import DEFAULT_TIMEOUT_S, ContentPackStore, stamp, utcnow
from packstore.infra.store.codec import decode_payload, encode_payload

log = structlog.get_logger(__name__)

T = TypeVar("T")


def _to_domain(row: ContentPackORM) -> ContentPack:
    """Convertit une ligne ORM en pack du domaine."""
    return ContentPack(
        id=row.pack_id,
        revision=row.revision,
        payload=row.payload if row.payload is not None else {},
        created_at=(row.created_at.isoformat() if row.created_at else None),
    )


class SqlContentPackStore(ContentPackStore):
    """Dépôt SQL des content packs (une session par appel)."""

    def __init__(
        self,
        engine: Engine | None = None,
        *,
        url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        """Construit le repo depuis un moteur existant ou une URL (SQLite mémoire par défaut)."""
        self.timeout = timeout
        self._engine = engine or get_engine(url, timeout=timeout)
        self._factory = get_session_factory(self._engine)
        # SQLite en mémoire: une seule connexion, les transactions ne doivent pas s'entrelacer
        self._serial = memory_lock(self._engine)

    @property
    def engine(self) -> Engine:
        """Moteur SQLAlchemy sous-jacent."""
        return self._engine

    @contextmanager
    def _serialized(self) -> Iterator[None]:
        """Accès exclusif à la connexion partagée d'une base en mémoire, borné par le timeout."""
        if self._serial is None:
            yield
            return
        if not self._serial.acquire(timeout=self.timeout):
            raise StorageUnavailable(
                f"timed out after {self.timeout}s waiting for the in-memory database"
            )
        try:
            yield
        finally:
            self._serial.release()

    def create_schema(self) -> None:
        """Crée les tables manquantes (dev/tests; Alembic en production)."""
        with self._serialized():
            try:
                Base.metadata.create_all(self._engine)
            except SQLAlchemyError as err:
                raise StorageUnavailable(err) from err
        log.debug("content_pack_schema_created", dialect=self._engine.dialect.name)

    def _run(self, work: Callable[[Session], T]) -> T:
        """Exécute `work` dans une transaction; erreurs pilotes -> `StorageUnavailable`."""
        with self._serialized():
            try:
                with session_scope(self._factory) as session:
                    return work(session)
            except SQLAlchemyError as err:
                raise StorageUnavailable(err) from err

    def insert(self, pack: ContentPack) -> ContentPack:
        """Insère une ligne; lève `DuplicateRevision` sur violation d'unicité."""
        created_at = utcnow()
        # copie découplée du payload de l'appelant, validée JSON avant l'écriture
        payload = decode_payload(encode_payload(pack.payload))
        row = ContentPackORM(
            pack_id=pack.id,
            revision=pack.revision,
            payload=payload,
            created_at=created_at,
        )
        with self._serialized():
            try:
                with session_scope(self._factory) as session:
                    session.add(row)
            except IntegrityError as err:
                raise DuplicateRevision(pack.id, pack.revision) from err
            except SQLAlchemyError as err:
                raise StorageUnavailable(err) from err
        return stamp(ContentPack(pack.id, pack.revision, payload), created_at)

    def delete_by_id(self, pack_id: str) -> int:
        """Supprime toutes les révisions d'un id (rowcount)."""
        stmt = delete(ContentPackORM).where(ContentPackORM.pack_id == pack_id)
        return self._run(lambda s: s.execute(stmt).rowcount or 0)

    def delete_by_id_and_revision(self, pack_id: str, revision: int) -> bool:
        """Supprime une révision précise."""
        stmt = delete(ContentPackORM).where(
            ContentPackORM.pack_id == pack_id, ContentPackORM.revision == revision
        )
        return self._run(lambda s: (s.execute(stmt).rowcount or 0) > 0)

    def find_all_by_id(self, pack_id: str) -> list[ContentPack]:
        """Retourne toutes les révisions d'un id."""
        stmt = select(ContentPackORM).where(ContentPackORM.pack_id == pack_id)
        return self._run(lambda s: [_to_domain(r) for r in s.execute(stmt).scalars().all()])

    def find_by_id_and_revision(self, pack_id: str, revision: int) -> ContentPack | None:
        """Recherche exacte (pack_id, revision)."""
        stmt = select(ContentPackORM).where(
            ContentPackORM.pack_id == pack_id, ContentPackORM.revision == revision
        )

        def _first(session: Session) -> ContentPack | None:
            row = session.execute(stmt).scalars().first()
            return _to_domain(row) if row else None

        return self._run(_first)

    def load_all(self) -> list[ContentPack]:
        """Retourne toutes les lignes de la table."""
        stmt = select(ContentPackORM)
        return self._run(lambda s: [_to_domain(r) for r in s.execute(stmt).scalars().all()])
