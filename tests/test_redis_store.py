"""
Tests pour le store Redis des content packs.

Client simulé (Mock): câblage des scripts Lua (clés, arguments), traduction des réponses et des
pannes en `StorageUnavailable`. Serveur simulé (fakeredis avec Lua): comportement réel des scripts.
"""

from __future__ import annotations

from unittest.mock import Mock

import fakeredis
import pytest
import redis
from redis.exceptions import ConnectionError, TimeoutError

from packstore.domain.content_pack import ContentPack
from packstore.domain.content_pack_service import ContentPackService
from packstore.domain.errors import DuplicateRevision, StorageUnavailable
from packstore.infra.store.codec import encode_pack
from packstore.infra.store.redis_store import (
    DELETE_ID_SCRIPT,
    DELETE_REVISION_SCRIPT,
    INSERT_SCRIPT,
    RedisContentPackStore,
)


def _doc(pack_id: str, revision: int, payload: dict | None = None) -> str:
    return encode_pack(
        ContentPack(pack_id, revision, payload or {}, created_at="2025-01-01T00:00:00")
    )


class TestRedisContentPackStore:
    """Tests pour RedisContentPackStore."""

    def setup_method(self) -> None:
        """Client simulé et scripts simulés, dans l'ordre d'enregistrement."""
        self.client = Mock(spec=redis.Redis)
        self.insert_script = Mock()
        self.delete_id_script = Mock()
        self.delete_revision_script = Mock()
        self.client.register_script.side_effect = [
            self.insert_script,
            self.delete_id_script,
            self.delete_revision_script,
        ]
        self.store = RedisContentPackStore(client=self.client, key_prefix="cp")

    def test_scripts_registered_in_order(self) -> None:
        """Les trois scripts Lua sont enregistrés à la construction."""
        registered = [c.args[0] for c in self.client.register_script.call_args_list]
        assert registered == [INSERT_SCRIPT, DELETE_ID_SCRIPT, DELETE_REVISION_SCRIPT]

    def test_key_layout(self) -> None:
        """Hash des révisions par id et index global des ids."""
        assert self.store.ids_key == "cp:ids"
        assert self.store.revisions_key("graylog-sample") == "cp:graylog-sample:revisions"

    def test_insert_success(self) -> None:
        """Le script reçoit hash, index, révision, document et id."""
        self.insert_script.return_value = 1

        persisted = self.store.insert(ContentPack("a", 2, {"k": "v"}))

        assert persisted.key == ("a", 2)
        assert persisted.payload == {"k": "v"}
        assert persisted.created_at
        kwargs = self.insert_script.call_args.kwargs
        assert kwargs["keys"] == ["cp:a:revisions", "cp:ids"]
        revision, doc, pack_id = kwargs["args"]
        assert (revision, pack_id) == ("2", "a")
        assert '"payload":{"k":"v"}' in doc

    def test_insert_duplicate(self) -> None:
        """HSETNX refusé (0) -> DuplicateRevision."""
        self.insert_script.return_value = 0
        with pytest.raises(DuplicateRevision):
            self.store.insert(ContentPack("a", 2))

    def test_insert_connection_error(self) -> None:
        """Une panne Redis n'est pas un doublon."""
        self.insert_script.side_effect = ConnectionError("Redis unavailable")
        with pytest.raises(StorageUnavailable) as excinfo:
            self.store.insert(ContentPack("a", 2))
        assert isinstance(excinfo.value.__cause__, ConnectionError)

    def test_delete_by_id(self) -> None:
        """Le nombre renvoyé par le script est le nombre supprimé."""
        self.delete_id_script.return_value = 3
        assert self.store.delete_by_id("a") == 3
        self.delete_id_script.assert_called_once_with(
            keys=["cp:a:revisions", "cp:ids"], args=["a"]
        )
        self.delete_id_script.return_value = 0
        assert self.store.delete_by_id("a") == 0

    def test_delete_by_id_and_revision(self) -> None:
        """HDEL 1 -> True, 0 -> False (idempotent)."""
        self.delete_revision_script.side_effect = [1, 0]
        assert self.store.delete_by_id_and_revision("a", 4) is True
        assert self.store.delete_by_id_and_revision("a", 4) is False
        self.delete_revision_script.assert_called_with(
            keys=["cp:a:revisions", "cp:ids"], args=["4", "a"]
        )

    def test_find_by_id_and_revision(self) -> None:
        """HGET du champ révision; None si absent."""
        self.client.hget.return_value = _doc("a", 1, {"v": 1})
        assert self.store.find_by_id_and_revision("a", 1).payload == {"v": 1}
        self.client.hget.assert_called_with("cp:a:revisions", "1")
        self.client.hget.return_value = None
        assert self.store.find_by_id_and_revision("a", 5) is None

    def test_find_all_by_id(self) -> None:
        """HVALS du hash de l'id."""
        self.client.hvals.return_value = [_doc("a", 1), _doc("a", 3)]
        assert sorted(p.revision for p in self.store.find_all_by_id("a")) == [1, 3]

    def test_load_all_uses_pipeline(self) -> None:
        """Index des ids puis un HVALS par id en pipeline."""
        pipe = Mock()
        pipe.execute.return_value = [[_doc("a", 1), _doc("a", 2)], [_doc("b", 1)]]
        self.client.pipeline.return_value = pipe
        self.client.smembers.return_value = {"b", "a"}

        packs = self.store.load_all()

        assert sorted(p.key for p in packs) == [("a", 1), ("a", 2), ("b", 1)]
        self.client.pipeline.assert_called_once_with(transaction=False)
        assert [c.args[0] for c in pipe.hvals.call_args_list] == [
            "cp:a:revisions",
            "cp:b:revisions",
        ]

    def test_load_all_decodes_bytes_ids(self) -> None:
        """Un client sans decode_responses renvoie des ids en bytes."""
        pipe = Mock()
        pipe.execute.return_value = [[_doc("a", 1).encode()]]
        self.client.pipeline.return_value = pipe
        self.client.smembers.return_value = {b"a"}

        packs = self.store.load_all()

        assert [p.key for p in packs] == [("a", 1)]
        pipe.hvals.assert_called_once_with("cp:a:revisions")

    def test_load_all_empty(self) -> None:
        """Aucun id indexé: liste vide."""
        self.client.smembers.return_value = set()
        assert self.store.load_all() == []

    def test_read_timeout_is_storage_unavailable(self) -> None:
        """Un dépassement de délai en lecture remonte en StorageUnavailable."""
        self.client.hvals.side_effect = TimeoutError("timed out")
        with pytest.raises(StorageUnavailable):
            self.store.find_all_by_id("a")
        self.client.smembers.side_effect = TimeoutError("timed out")
        with pytest.raises(StorageUnavailable):
            self.store.load_all()


def test_store_requires_url_or_client() -> None:
    """Sans URL ni client, la construction échoue explicitement."""
    with pytest.raises(ValueError):
        RedisContentPackStore()


class TestRedisContentPackStoreScripts:
    """Scripts Lua exécutés sur un serveur Redis simulé (fakeredis)."""

    def setup_method(self) -> None:
        """Serveur isolé par test."""
        self.server = fakeredis.FakeServer()
        self.client = fakeredis.FakeRedis(server=self.server, decode_responses=True)
        self.store = RedisContentPackStore(client=self.client, key_prefix="cp")

    def test_duplicate_insert_is_rejected(self) -> None:
        """HSETNX: la seconde insertion du même couple échoue sans écraser la première."""
        self.store.insert(ContentPack("a", 1, {"v": "first"}))
        with pytest.raises(DuplicateRevision):
            self.store.insert(ContentPack("a", 1, {"v": "second"}))
        assert self.store.find_by_id_and_revision("a", 1).payload == {"v": "first"}
        assert self.client.smembers("cp:ids") == {"a"}

    def test_delete_by_id_returns_count_and_unindexes(self) -> None:
        """Le script renvoie le nombre de révisions et retire l'id de l'index."""
        for rev in (1, 2, 3):
            self.store.insert(ContentPack("a", rev))
        self.store.insert(ContentPack("b", 1))

        assert self.store.delete_by_id("a") == 3
        assert self.store.delete_by_id("a") == 0
        assert self.client.smembers("cp:ids") == {"b"}
        assert not self.client.exists("cp:a:revisions")
        assert [p.key for p in self.store.load_all()] == [("b", 1)]

    def test_delete_last_revision_unindexes_id(self) -> None:
        """L'id quitte l'index quand sa dernière révision est supprimée."""
        self.store.insert(ContentPack("a", 1))
        self.store.insert(ContentPack("a", 2))

        assert self.store.delete_by_id_and_revision("a", 1) is True
        assert self.client.smembers("cp:ids") == {"a"}
        assert self.store.delete_by_id_and_revision("a", 1) is False
        assert self.store.delete_by_id_and_revision("a", 2) is True
        assert self.client.smembers("cp:ids") == set()
        assert self.store.load_all() == []
        assert self.store.find_all_by_id("a") == []

    def test_latest_follows_deletions(self) -> None:
        """Révisions {1,3,7}: la dernière passe de 7 à 3 puis l'id disparaît."""
        service = ContentPackService(self.store)
        for rev in (1, 3, 7):
            service.insert(ContentPack("p", rev))

        assert {p.key for p in service.list_latest()} == {("p", 7)}
        service.delete_by_id_and_revision("p", 7)
        assert {p.key for p in service.list_latest()} == {("p", 3)}
        service.delete_by_id("p")
        assert service.list_latest() == set()

    def test_client_without_decoded_responses(self) -> None:
        """Un client renvoyant des bytes voit les mêmes packs."""
        raw = fakeredis.FakeRedis(server=self.server)
        store = RedisContentPackStore(client=raw, key_prefix="cp")
        self.store.insert(ContentPack("a", 1, {"v": 1}))
        self.store.insert(ContentPack("b", 2))

        assert sorted(p.key for p in store.load_all()) == [("a", 1), ("b", 2)]
        assert store.find_by_id_and_revision("a", 1).payload == {"v": 1}
        assert [p.key for p in store.find_all_by_id("b")] == [("b", 2)]
