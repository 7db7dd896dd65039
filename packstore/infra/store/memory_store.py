"""Store de content packs en mémoire (dev/tests).

Les documents sont conservés encodés en JSON: un pack renvoyé est toujours une copie, jamais une
référence partagée vers l'état interne. Les mutations d'un même id sont sérialisées par un verrou
propre à cet id; deux ids différents ne se bloquent jamais.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager

from packstore.domain.content_pack import ContentPack
from packstore.domain.errors import DuplicateRevision, StorageUnavailable
from packstore.infra.store.base import DEFAULT_TIMEOUT_S, ContentPackStore, stamp, utcnow
from packstore.infra.store.codec import decode_pack, encode_pack


class InMemoryContentPackStore(ContentPackStore):
    """Dépôt de content packs en mémoire, non persistant.

    Structure: id -> {revision -> document JSON}.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_S) -> None:
        """Initialise une base mémoire vide."""
        self.timeout = timeout
        self._packs: dict[str, dict[int, str]] = {}
        # un verrou n'existe que pour un id qui a (ou est en train de recevoir) des révisions
        self._locks: dict[str, threading.Lock] = {}
        # protège uniquement la table des verrous
        self._registry_lock = threading.Lock()

    def _lock_for(self, pack_id: str, create: bool = True) -> threading.Lock | None:
        """Retourne le verrou d'un id, créé au besoin si `create`."""
        with self._registry_lock:
            lock = self._locks.get(pack_id)
            if lock is None and create:
                lock = self._locks[pack_id] = threading.Lock()
            return lock

    @contextmanager
    def _locked(self, pack_id: str, create: bool = True) -> Iterator[bool]:
        """Section critique d'un id, bornée par le timeout du store.

        Produit `False` sans rien verrouiller quand `create` est faux et que l'id n'a pas de
        verrou: l'id n'a alors aucune révision. Le verrou d'un id vidé est retiré de la table à
        la sortie; un appelant qui obtient un verrou déjà retiré recommence avec le nouveau.
        """
        deadline = time.monotonic() + self.timeout
        while True:
            lock = self._lock_for(pack_id, create)
            if lock is None:
                yield False
                return
            if not lock.acquire(timeout=max(0.0, deadline - time.monotonic())):
                raise StorageUnavailable(
                    f"timed out after {self.timeout}s waiting for content pack {pack_id}"
                )
            with self._registry_lock:
                current = self._locks.get(pack_id) is lock
            if current:
                break
            lock.release()
        try:
            yield True
        finally:
            if pack_id not in self._packs:
                with self._registry_lock:
                    if self._locks.get(pack_id) is lock:
                        del self._locks[pack_id]
            lock.release()

    def insert(self, pack: ContentPack) -> ContentPack:
        """Insère le pack si (id, revision) est libre."""
        doc = encode_pack(stamp(pack, utcnow()))
        with self._locked(pack.id):
            revisions = self._packs.setdefault(pack.id, {})
            if pack.revision in revisions:
                raise DuplicateRevision(pack.id, pack.revision)
            revisions[pack.revision] = doc
        return decode_pack(doc)

    def delete_by_id(self, pack_id: str) -> int:
        """Supprime toutes les révisions de l'id."""
        with self._locked(pack_id, create=False) as held:
            revisions = self._packs.pop(pack_id, None) if held else None
        return len(revisions) if revisions else 0

    def delete_by_id_and_revision(self, pack_id: str, revision: int) -> bool:
        """Supprime une révision si elle existe."""
        with self._locked(pack_id, create=False) as held:
            revisions = self._packs.get(pack_id) if held else None
            if not revisions or revision not in revisions:
                return False
            del revisions[revision]
            if not revisions:
                del self._packs[pack_id]
        return True

    def find_all_by_id(self, pack_id: str) -> list[ContentPack]:
        """Retourne toutes les révisions de l'id."""
        with self._locked(pack_id, create=False) as held:
            docs = list(self._packs.get(pack_id, {}).values()) if held else []
        return [decode_pack(doc) for doc in docs]

    def find_by_id_and_revision(self, pack_id: str, revision: int) -> ContentPack | None:
        """Recherche exacte (id, revision)."""
        with self._locked(pack_id, create=False) as held:
            doc = self._packs.get(pack_id, {}).get(revision) if held else None
        return decode_pack(doc) if doc is not None else None

    def load_all(self) -> list[ContentPack]:
        """Instantané de tous les packs, id par id."""
        docs: list[str] = []
        for pack_id in list(self._packs):
            with self._locked(pack_id, create=False) as held:
                if held:
                    docs.extend(self._packs.get(pack_id, {}).values())
        return [decode_pack(doc) for doc in docs]
