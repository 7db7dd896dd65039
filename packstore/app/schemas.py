# Schémas Pydantic des documents content pack échangés avec l'extérieur (CLI, fichiers).

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from packstore.domain.content_pack import ContentPack


class ContentPackDocument(BaseModel):
    """Document d'entrée décrivant une révision de content pack.

    Champs:
    - id: str (identifiant stable du pack)
    - revision: int > 0 (accepte aussi la clé historique `rev`)
    - payload: dict | None (contenu explicite; sinon les champs restants forment le payload)
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    revision: int = Field(gt=0, validation_alias=AliasChoices("revision", "rev"))
    payload: dict[str, Any] | None = None

    def to_domain(self) -> ContentPack:
        """Construit le `ContentPack` correspondant."""
        if self.payload is not None:
            payload = self.payload
        else:
            payload = dict(self.model_extra or {})
        return ContentPack(id=self.id, revision=self.revision, payload=payload)


class ContentPackView(BaseModel):
    """Vue sérialisable d'une révision persistée."""

    id: str
    revision: int
    created_at: str | None = None
    payload: dict[str, Any]

    @classmethod
    def from_domain(cls, pack: ContentPack) -> ContentPackView:
        """Projette un pack du domaine."""
        return cls(
            id=pack.id,
            revision=pack.revision,
            created_at=pack.created_at,
            payload=dict(pack.payload),
        )
