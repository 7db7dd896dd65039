"""Agrégations pures sur un instantané de content packs.

Ces fonctions ne touchent pas au store: elles reçoivent la liste renvoyée par une lecture et
appliquent la politique d'unicité (id, revision). Un doublon est un défaut et lève
`InvariantViolation`, jamais un choix silencieux.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from packstore.domain.content_pack import ContentPack
from packstore.domain.errors import InvariantViolation


def _ensure_unique(packs: list[ContentPack]) -> None:
    """Lève `InvariantViolation` si deux packs partagent (id, revision)."""
    counts = Counter(pack.key for pack in packs)
    duplicates = [key for key, n in counts.items() if n > 1]
    if duplicates:
        raise InvariantViolation("duplicate content pack revisions in store", duplicates)


def select_latest(packs: Iterable[ContentPack]) -> set[ContentPack]:
    """Retourne, pour chaque id, le pack de révision maximale.

    Un id sans révision n'apparaît pas dans le résultat.
    """
    snapshot = list(packs)
    _ensure_unique(snapshot)
    latest: dict[str, ContentPack] = {}
    for pack in snapshot:
        current = latest.get(pack.id)
        if current is None or pack.revision > current.revision:
            latest[pack.id] = pack
    return set(latest.values())


def index_by_revision(packs: Iterable[ContentPack]) -> dict[int, ContentPack]:
    """Indexe les révisions d'un même pack par numéro de révision (ordre croissant)."""
    snapshot = list(packs)
    _ensure_unique(snapshot)
    ids = {pack.id for pack in snapshot}
    if len(ids) > 1:
        raise InvariantViolation(f"revisions of several content packs mixed: {sorted(ids)}")
    return {pack.revision: pack for pack in sorted(snapshot, key=lambda p: p.revision)}
