"""
Ressource "System/ContentPacks": surface externe du store de content packs.

Expose les opérations historiquement servies sous `/system/content_packs` comme méthodes Python,
décorées par le chronométrage Prometheus et l'audit. La traduction en réponses (400 pour un
doublon, 404 pour une absence, 5xx pour une panne de stockage) appartient au transport.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from packstore.app.instrumentation import (
    AUDIT_CONTENT_PACK_CREATE,
    AUDIT_CONTENT_PACK_DELETE,
    audited,
    timed,
)
from packstore.domain.content_pack import ContentPack
from packstore.domain.content_pack_service import ContentPackService

log = structlog.get_logger(__name__)

CONTENT_PACKS_PATH = "/system/content_packs"


@dataclass(frozen=True)
class CreatedContentPack:
    """Résultat d'une création: pack persisté et chemin de ses révisions."""

    pack: ContentPack
    location: str


def _sorted(packs: Iterable[ContentPack]) -> list[ContentPack]:
    """Ordre stable des listes: par id puis par révision."""
    return sorted(packs, key=lambda p: (p.id, p.revision))


class ContentPackResource:
    """Opérations de lecture et de mutation des content packs."""

    def __init__(self, service: ContentPackService) -> None:
        self._service = service

    @timed("list")
    def list_content_packs(self) -> list[ContentPack]:
        """Liste tous les content packs disponibles (toutes révisions)."""
        return _sorted(self._service.list_all())

    @timed("list_latest")
    def list_latest_content_packs(self) -> list[ContentPack]:
        """Liste la dernière révision de chaque content pack."""
        return _sorted(self._service.list_latest())

    @timed("list_revisions")
    def list_content_pack_revisions(self, content_pack_id: str) -> dict[int, ContentPack]:
        """Liste toutes les révisions d'un content pack, indexées par révision."""
        return self._service.list_revisions_of(content_pack_id)

    @timed("get_revision")
    def get_content_pack_revision(self, content_pack_id: str, revision: int) -> ContentPack:
        """Retourne une révision; `ContentPackNotFound` si elle n'existe pas."""
        return self._service.get_revision(content_pack_id, revision)

    @timed("create")
    @audited(AUDIT_CONTENT_PACK_CREATE)
    def create_content_pack(self, content_pack: ContentPack) -> CreatedContentPack:
        """Persiste une révision; `DuplicateRevision` si elle existe déjà."""
        pack = self._service.insert(content_pack)
        return CreatedContentPack(pack=pack, location=f"{CONTENT_PACKS_PATH}/{pack.id}")

    @timed("delete")
    @audited(AUDIT_CONTENT_PACK_DELETE)
    def delete_content_pack(self, content_pack_id: str) -> int:
        """Supprime toutes les révisions d'un content pack (idempotent)."""
        deleted = self._service.delete_by_id(content_pack_id)
        log.debug("content_packs_deleted", deleted=deleted, content_pack_id=content_pack_id)
        return deleted

    @timed("delete_revision")
    @audited(AUDIT_CONTENT_PACK_DELETE)
    def delete_content_pack_revision(self, content_pack_id: str, revision: int) -> bool:
        """Supprime une révision d'un content pack (idempotent)."""
        deleted = self._service.delete_by_id_and_revision(content_pack_id, revision)
        log.debug(
            "content_pack_revision_deleted",
            deleted=deleted,
            content_pack_id=content_pack_id,
            revision=revision,
        )
        return deleted
