"""
Outil en ligne de commande pour administrer le store de content packs.

Sous-commandes:
- list                 : toutes les révisions
- latest               : dernière révision de chaque pack
- revisions ID         : révisions d'un pack, indexées par numéro
- get ID REVISION      : une révision précise
- insert FILE          : insère le document JSON `FILE` (`{"id", "rev"|"revision", ...}`)
- delete ID [REVISION] : supprime un pack entier ou une révision

Codes de sortie: 0 succès, 1 erreur client (doublon, absence, document invalide), 2 stockage
indisponible ou état incohérent.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from packstore.app.schemas import ContentPackDocument, ContentPackView
from packstore.core.container import get_container
from packstore.domain.content_pack import ContentPack
from packstore.domain.errors import (
    ContentPackNotFound,
    DuplicateRevision,
    InvariantViolation,
    StorageUnavailable,
)

EXIT_CLIENT_ERROR = 1
EXIT_STORAGE_ERROR = 2


def _view(pack: ContentPack) -> dict[str, Any]:
    return ContentPackView.from_domain(pack).model_dump()


def _print(data: Any) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False))


def _load_document(path: str) -> ContentPack:
    """Lit et valide un document content pack JSON."""
    raw = Path(path).read_text(encoding="utf-8")
    return ContentPackDocument.model_validate_json(raw).to_domain()


def build_parser() -> argparse.ArgumentParser:
    """Construit le parseur d'arguments."""
    parser = argparse.ArgumentParser(
        prog="packstore", description="Administration du store de content packs"
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="Liste toutes les révisions")
    sub.add_parser("latest", help="Liste la dernière révision de chaque pack")
    p_revs = sub.add_parser("revisions", help="Révisions d'un pack")
    p_revs.add_argument("id")
    p_get = sub.add_parser("get", help="Une révision précise")
    p_get.add_argument("id")
    p_get.add_argument("revision", type=int)
    p_insert = sub.add_parser("insert", help="Insère un document JSON")
    p_insert.add_argument("file")
    p_delete = sub.add_parser("delete", help="Supprime un pack ou une révision")
    p_delete.add_argument("id")
    p_delete.add_argument("revision", type=int, nargs="?")
    return parser


def run(args: argparse.Namespace) -> int:
    """Exécute la sous-commande et retourne le code de sortie."""
    resource = get_container().resource
    if args.command == "list":
        _print([_view(p) for p in resource.list_content_packs()])
    elif args.command == "latest":
        _print([_view(p) for p in resource.list_latest_content_packs()])
    elif args.command == "revisions":
        revisions = resource.list_content_pack_revisions(args.id)
        _print({str(rev): _view(p) for rev, p in revisions.items()})
    elif args.command == "get":
        _print(_view(resource.get_content_pack_revision(args.id, args.revision)))
    elif args.command == "insert":
        created = resource.create_content_pack(_load_document(args.file))
        _print({"location": created.location, "content_pack": _view(created.pack)})
    elif args.command == "delete":
        if args.revision is None:
            _print({"deleted": resource.delete_content_pack(args.id)})
        else:
            deleted = resource.delete_content_pack_revision(args.id, args.revision)
            _print({"deleted": int(deleted)})
    return 0


def main(argv: list[str] | None = None) -> int:
    """Point d'entrée: parse les arguments et traduit les erreurs en codes de sortie."""
    args = build_parser().parse_args(argv)
    try:
        return run(args)
    except (DuplicateRevision, ContentPackNotFound) as err:
        print(f"[packstore] {err}", file=sys.stderr)
        return EXIT_CLIENT_ERROR
    except (ValidationError, ValueError, OSError) as err:
        print(f"[packstore] invalid content pack document: {err}", file=sys.stderr)
        return EXIT_CLIENT_ERROR
    except (StorageUnavailable, InvariantViolation) as err:
        print(f"[packstore] {err}", file=sys.stderr)
        return EXIT_STORAGE_ERROR


if __name__ == "__main__":
    sys.exit(main())
