"""
Taxonomie des erreurs du store de content packs.

Chaque erreur expose un `code` stable utilisé par la couche externe (métriques, journaux) pour
distinguer un conflit client, une absence attendue, une panne de stockage et un état impossible.
"""

from __future__ import annotations

from collections.abc import Iterable


class ContentPackError(Exception):
    """Erreur de base du store de content packs."""

    code = "content_pack_error"


class DuplicateRevision(ContentPackError):
    """Insertion refusée: le couple (id, revision) existe déjà.

    Erreur client, jamais rejouée automatiquement par le store.
    """

    code = "duplicate_revision"

    def __init__(self, pack_id: str, revision: int) -> None:
        """Construit l'erreur en nommant le couple en collision."""
        super().__init__(f"Content pack {pack_id} with revision {revision} already exists")
        self.pack_id = pack_id
        self.revision = revision


class ContentPackNotFound(ContentPackError, LookupError):
    """Aucun content pack pour l'id (et la révision) demandés."""

    code = "not_found"

    def __init__(self, pack_id: str, revision: int | None = None) -> None:
        """Construit l'erreur pour un id seul ou un couple (id, revision)."""
        if revision is None:
            message = f"Content pack {pack_id} not found"
        else:
            message = f"Content pack {pack_id} with revision {revision} not found"
        super().__init__(message)
        self.pack_id = pack_id
        self.revision = revision


class StorageUnavailable(ContentPackError):
    """Le support de stockage a échoué ou n'a pas répondu dans le délai imparti.

    Peut être rejouée par l'appelant avec backoff; ne signifie jamais "absent".
    """

    code = "storage_unavailable"

    def __init__(self, cause: BaseException | str) -> None:
        """Conserve la cause d'origine (exception pilote ou message)."""
        super().__init__(f"Content pack storage unavailable: {cause}")
        self.cause = cause


class InvariantViolation(ContentPackError):
    """Le store contient un état impossible (ex: doublon (id, revision) lu)."""

    code = "invariant_violation"

    def __init__(self, message: str, keys: Iterable[tuple[str, int]] = ()) -> None:
        """Construit l'erreur avec les clés fautives, triées pour l'investigation."""
        self.keys = sorted(set(keys))
        if self.keys:
            message = f"{message}: {self.keys}"
        super().__init__(message)
