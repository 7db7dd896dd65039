"""Encodage JSON canonique des content packs pour les backends clé/valeur.

Le document stocké contient l'identité, la révision, la date de création et le payload opaque.
"""

from __future__ import annotations

import json
from typing import Any

from packstore.domain.content_pack import ContentPack
from packstore.domain.errors import InvariantViolation


def encode_payload(payload: Any) -> str:
    """Sérialise un payload en JSON canonique (clés triées, séparateurs compacts)."""
    try:
        return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as err:
        raise ValueError(f"content pack payload is not JSON serializable: {err}") from err


def decode_payload(raw: str) -> dict[str, Any]:
    """Désérialise un payload produit par `encode_payload`."""
    return json.loads(raw)


def encode_pack(pack: ContentPack) -> str:
    """Sérialise un pack complet en document JSON."""
    doc = {
        "id": pack.id,
        "revision": pack.revision,
        "created_at": pack.created_at,
        "payload": decode_payload(encode_payload(pack.payload)),
    }
    return json.dumps(doc, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def decode_pack(raw: str | bytes) -> ContentPack:
    """Reconstruit un pack depuis son document JSON.

    Un document illisible signale un stockage corrompu (`InvariantViolation`).
    """
    try:
        doc = json.loads(raw)
        return ContentPack(
            id=doc["id"],
            revision=doc["revision"],
            payload=doc["payload"],
            created_at=doc.get("created_at"),
        )
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as err:
        raise InvariantViolation(f"unreadable content pack document: {err}") from err
