"""Store Redis atomique pour les content packs.

Chaque id possède un hash `{prefix}:{id}:revisions` (champ = révision, valeur = document JSON) et
figure dans l'index `{prefix}:ids`. Les mutations passent par des scripts Lua pour que le hash et
l'index évoluent ensemble: HSETNX garantit qu'une seule insertion concurrente d'un même
(id, revision) réussit.
"""

from __future__ import annotations

import redis
import structlog
from redis.exceptions import RedisError

from packstore.domain.content_pack import ContentPack
from packstore.domain.errors import DuplicateRevision, StorageUnavailable
from packstore.infra.store.base import DEFAULT_TIMEOUT_S, ContentPackStore, stamp, utcnow
from packstore.infra.store.codec import decode_pack, encode_pack

log = structlog.get_logger(__name__)

# Insertion conditionnelle: 1 si insérée, 0 si la révision existe déjà
INSERT_SCRIPT = """
if redis.call('HSETNX', KEYS[1], ARGV[1], ARGV[2]) == 0 then
    return 0
end
redis.call('SADD', KEYS[2], ARGV[3])
return 1
"""

# Suppression de toutes les révisions d'un id, retourne le nombre supprimé
DELETE_ID_SCRIPT = """
local n = redis.call('HLEN', KEYS[1])
redis.call('DEL', KEYS[1])
redis.call('SREM', KEYS[2], ARGV[1])
return n
"""

# Suppression d'une révision; l'id quitte l'index quand son hash est vide
DELETE_REVISION_SCRIPT = """
local n = redis.call('HDEL', KEYS[1], ARGV[1])
if redis.call('EXISTS', KEYS[1]) == 0 then
    redis.call('SREM', KEYS[2], ARGV[2])
end
return n
"""


class RedisContentPackStore(ContentPackStore):
    """Dépôt de content packs adossé à Redis."""

    def __init__(
        self,
        url: str | None = None,
        *,
        client: redis.Redis | None = None,
        key_prefix: str = "content_pack",
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        """Crée (ou réutilise) un client Redis et enregistre les scripts Lua."""
        if client is None:
            if not url:
                raise ValueError("RedisContentPackStore requires a url or a client")
            client = redis.Redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=timeout,
                socket_timeout=timeout,
                health_check_interval=30,
            )
        self.timeout = timeout
        self.client = client
        self.key_prefix = key_prefix
        self._insert = client.register_script(INSERT_SCRIPT)
        self._delete_id = client.register_script(DELETE_ID_SCRIPT)
        self._delete_revision = client.register_script(DELETE_REVISION_SCRIPT)
        log.debug("content_pack_redis_scripts_registered", key_prefix=key_prefix)

    @property
    def ids_key(self) -> str:
        """Clé de l'index des ids présents."""
        return f"{self.key_prefix}:ids"

    def revisions_key(self, pack_id: str) -> str:
        """Clé du hash des révisions d'un id."""
        return f"{self.key_prefix}:{pack_id}:revisions"

    def insert(self, pack: ContentPack) -> ContentPack:
        """Insère le document si la révision est libre."""
        doc = encode_pack(stamp(pack, utcnow()))
        try:
            inserted = self._insert(
                keys=[self.revisions_key(pack.id), self.ids_key],
                args=[str(pack.revision), doc, pack.id],
            )
        except RedisError as err:
            raise StorageUnavailable(err) from err
        if not int(inserted):
            raise DuplicateRevision(pack.id, pack.revision)
        return decode_pack(doc)

    def delete_by_id(self, pack_id: str) -> int:
        """Supprime le hash de l'id et le retire de l'index."""
        try:
            removed = self._delete_id(
                keys=[self.revisions_key(pack_id), self.ids_key], args=[pack_id]
            )
        except RedisError as err:
            raise StorageUnavailable(err) from err
        return int(removed)

    def delete_by_id_and_revision(self, pack_id: str, revision: int) -> bool:
        """Supprime un champ du hash de l'id."""
        try:
            removed = self._delete_revision(
                keys=[self.revisions_key(pack_id), self.ids_key],
                args=[str(revision), pack_id],
            )
        except RedisError as err:
            raise StorageUnavailable(err) from err
        return int(removed) > 0

    def find_all_by_id(self, pack_id: str) -> list[ContentPack]:
        """Charge toutes les révisions de l'id."""
        try:
            docs = self.client.hvals(self.revisions_key(pack_id))
        except RedisError as err:
            raise StorageUnavailable(err) from err
        return [decode_pack(doc) for doc in docs]

    def find_by_id_and_revision(self, pack_id: str, revision: int) -> ContentPack | None:
        """Charge une révision précise, si présente."""
        try:
            doc = self.client.hget(self.revisions_key(pack_id), str(revision))
        except RedisError as err:
            raise StorageUnavailable(err) from err
        return decode_pack(doc) if doc else None

    def load_all(self) -> list[ContentPack]:
        """Instantané par id: index puis hash de chaque id (pipeline non transactionnel)."""
        try:
            # un client sans decode_responses renvoie des bytes
            ids = sorted(
                i.decode() if isinstance(i, bytes) else i
                for i in self.client.smembers(self.ids_key)
            )
            pipe = self.client.pipeline(transaction=False)
            for pack_id in ids:
                pipe.hvals(self.revisions_key(pack_id))
            results = pipe.execute() if ids else []
        except RedisError as err:
            raise StorageUnavailable(err) from err
        return [decode_pack(doc) for docs in results for doc in docs]
