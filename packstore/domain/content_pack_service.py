"""Service de requêtes et commandes sur les content packs.

Couche sans état au-dessus d'un `ContentPackStore`: les vues agrégées (tous les packs, dernières
révisions, révisions d'un id) sont dérivées d'une lecture du store sans jamais le modifier. Les
commandes sont transmises telles quelles au store; aucune erreur n'est traduite, sauf les
doublons (id, revision) découverts à l'agrégation qui deviennent `InvariantViolation`.
"""

from __future__ import annotations

from packstore.domain.content_pack import ContentPack
from packstore.domain.errors import ContentPackNotFound
from packstore.domain.revisions import index_by_revision, select_latest
from packstore.infra.store.base import ContentPackStore


class ContentPackService:
    """Service métier des content packs.

    Responsabilités:
    - Déléguer insertions et suppressions au store (`store`).
    - Construire les vues "dernière révision" et "révisions par numéro".
    """

    def __init__(self, store: ContentPackStore) -> None:
        """Initialise le service avec son store."""
        self.store = store

    # -- commandes ---------------------------------------------------------

    def insert(self, pack: ContentPack) -> ContentPack:
        """Persiste une nouvelle révision (voir `ContentPackStore.insert`)."""
        return self.store.insert(pack)

    def delete_by_id(self, pack_id: str) -> int:
        """Supprime toutes les révisions d'un id; 0 si l'id est inconnu."""
        return self.store.delete_by_id(pack_id)

    def delete_by_id_and_revision(self, pack_id: str, revision: int) -> bool:
        """Supprime une révision; False si elle était déjà absente."""
        return self.store.delete_by_id_and_revision(pack_id, revision)

    # -- requêtes ----------------------------------------------------------

    def list_all(self) -> list[ContentPack]:
        """Tous les packs, toutes révisions."""
        return self.store.load_all()

    def list_latest(self) -> set[ContentPack]:
        """Dernière révision de chaque id présent."""
        return select_latest(self.store.load_all())

    def list_revisions_of(self, pack_id: str) -> dict[int, ContentPack]:
        """Révisions d'un id indexées par numéro; dict vide si l'id est inconnu."""
        return index_by_revision(self.store.find_all_by_id(pack_id))

    def find_revision(self, pack_id: str, revision: int) -> ContentPack | None:
        """Recherche exacte, None si absente."""
        return self.store.find_by_id_and_revision(pack_id, revision)

    def get_revision(self, pack_id: str, revision: int) -> ContentPack:
        """Recherche exacte; lève `ContentPackNotFound` si absente."""
        pack = self.store.find_by_id_and_revision(pack_id, revision)
        if pack is None:
            raise ContentPackNotFound(pack_id, revision)
        return pack
