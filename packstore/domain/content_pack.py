"""
Modèle de domaine des content packs versionnés (POPO).

Un content pack est un document opaque identifié par un `id` stable et un numéro de `revision`.
Le couple (id, revision) est unique dans le store et un pack persisté n'est jamais modifié.
"""

# ============================================================
# Module : packstore/domain/content_pack.py
# Objet  : Content pack immuable (id, revision, payload).
# ============================================================

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ContentPack:
    """
    Révision immuable d'un content pack.

    Attributs
    - id: identifiant stable partagé par toutes les révisions du pack.
    - revision: entier strictement positif, unique pour un `id` donné.
    - payload: contenu structuré opaque (jamais interprété par le store).
    - created_at: horodatage ISO UTC attribué par le store à l'insertion.
    """

    id: str
    revision: int
    payload: Mapping[str, Any] = field(default_factory=dict, hash=False)
    created_at: str | None = None

    def __post_init__(self) -> None:
        """Valide l'identité du pack (id non vide, révision positive)."""
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError(f"content pack id must be a non-empty string, got {self.id!r}")
        # bool est une sous-classe d'int
        if isinstance(self.revision, bool) or not isinstance(self.revision, int):
            raise ValueError(f"content pack revision must be an integer, got {self.revision!r}")
        if self.revision < 1:
            raise ValueError(f"content pack revision must be positive, got {self.revision}")
        if not isinstance(self.payload, Mapping):
            raise ValueError("content pack payload must be a mapping")

    @property
    def key(self) -> tuple[str, int]:
        """Clé unique du pack dans le store."""
        return (self.id, self.revision)
