"""Interface de base des stores de content packs.

Ce module définit l'interface abstraite commune aux backends (mémoire, SQL, Redis). Chaque
implémentation garantit l'unicité de (id, revision), des suppressions idempotentes et signale ses
pannes par `StorageUnavailable`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import UTC, datetime

from packstore.domain.content_pack import ContentPack

DEFAULT_TIMEOUT_S = 5.0


def utcnow() -> datetime:
    """Horodatage UTC naïf (sans tzinfo), stable à l'aller-retour en base."""
    return datetime.now(UTC).replace(tzinfo=None)


def stamp(pack: ContentPack, created_at: datetime) -> ContentPack:
    """Retourne une copie du pack portant la date de création du store."""
    return replace(pack, created_at=created_at.isoformat())


class ContentPackStore(ABC):
    """Interface abstraite des stores de content packs.

    Les lectures renvoient des listes non ordonnées: un doublon (id, revision) éventuel reste
    visible pour la couche requête au lieu d'être fusionné.
    """

    timeout: float = DEFAULT_TIMEOUT_S

    @abstractmethod
    def insert(self, pack: ContentPack) -> ContentPack:
        """Persiste un pack; lève `DuplicateRevision` si (id, revision) existe déjà."""
        raise NotImplementedError

    @abstractmethod
    def delete_by_id(self, pack_id: str) -> int:
        """Supprime toutes les révisions d'un id et retourne le nombre supprimé."""
        raise NotImplementedError

    @abstractmethod
    def delete_by_id_and_revision(self, pack_id: str, revision: int) -> bool:
        """Supprime une révision; retourne False si elle était absente."""
        raise NotImplementedError

    @abstractmethod
    def find_all_by_id(self, pack_id: str) -> list[ContentPack]:
        """Retourne toutes les révisions d'un id, sans ordre garanti."""
        raise NotImplementedError

    @abstractmethod
    def find_by_id_and_revision(self, pack_id: str, revision: int) -> ContentPack | None:
        """Recherche exacte; None si absent."""
        raise NotImplementedError

    @abstractmethod
    def load_all(self) -> list[ContentPack]:
        """Retourne tous les packs stockés, toutes révisions confondues."""
        raise NotImplementedError
