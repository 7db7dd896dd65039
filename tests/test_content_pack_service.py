"""Tests du service de requêtes (vues agrégées) sur les deux backends."""

from __future__ import annotations

import pytest

from packstore.domain.content_pack import ContentPack
from packstore.domain.content_pack_service import ContentPackService
from packstore.domain.errors import ContentPackNotFound, InvariantViolation, StorageUnavailable


def test_latest_follows_inserts_and_deletes(service) -> None:
    """Révisions {1,3,7}: 7, puis 3 après suppression de 7, puis absent."""
    for rev in (1, 3, 7):
        service.insert(ContentPack("a", rev, {"rev": rev}))
    service.insert(ContentPack("other", 1))

    def latest_of(pack_id: str) -> list[int]:
        return [p.revision for p in service.list_latest() if p.id == pack_id]

    assert latest_of("a") == [7]
    assert service.delete_by_id_and_revision("a", 7) is True
    assert latest_of("a") == [3]
    service.delete_by_id_and_revision("a", 3)
    service.delete_by_id_and_revision("a", 1)
    assert latest_of("a") == []
    assert latest_of("other") == [1]


def test_graylog_sample_scenario(service) -> None:
    """Scénario complet: insertions, vues, suppressions ciblées puis globales."""
    payload_a = {"name": "Sample", "entities": []}
    payload_b = {"name": "Sample v2", "entities": [{"type": "input"}]}

    service.insert(ContentPack("graylog-sample", 1, payload_a))
    service.insert(ContentPack("graylog-sample", 2, payload_b))

    revisions = service.list_revisions_of("graylog-sample")
    assert {rev: p.payload for rev, p in revisions.items()} == {1: payload_a, 2: payload_b}

    latest = [p for p in service.list_latest() if p.id == "graylog-sample"]
    assert [(p.revision, p.payload) for p in latest] == [(2, payload_b)]

    assert service.delete_by_id_and_revision("graylog-sample", 1) is True
    with pytest.raises(ContentPackNotFound):
        service.get_revision("graylog-sample", 1)

    assert service.delete_by_id("graylog-sample") == 1
    assert [p for p in service.list_latest() if p.id == "graylog-sample"] == []


def test_list_all_returns_every_revision(service) -> None:
    """list_all délègue à load_all."""
    service.insert(ContentPack("a", 1))
    service.insert(ContentPack("a", 2))
    service.insert(ContentPack("b", 4))
    assert sorted(p.key for p in service.list_all()) == [("a", 1), ("a", 2), ("b", 4)]


def test_list_revisions_of_unknown_id_is_empty(service) -> None:
    """Un id inconnu donne un index vide, pas une erreur."""
    assert service.list_revisions_of("nope") == {}


def test_get_and_find_revision(service) -> None:
    """get_revision lève NotFound, find_revision renvoie None."""
    inserted = service.insert(ContentPack("a", 1, {"k": "v"}))
    assert service.get_revision("a", 1) == inserted
    assert service.find_revision("a", 9) is None
    with pytest.raises(ContentPackNotFound) as excinfo:
        service.get_revision("a", 9)
    assert (excinfo.value.pack_id, excinfo.value.revision) == ("a", 9)


class _CorruptedStore:
    """Store factice renvoyant un doublon (id, revision)."""

    def load_all(self):
        return [ContentPack("a", 1, {"v": 1}), ContentPack("a", 1, {"v": 2})]

    def find_all_by_id(self, pack_id):
        return self.load_all()


class _FailingStore:
    """Store factice dont le support est indisponible."""

    def load_all(self):
        raise StorageUnavailable("disk gone")

    def find_by_id_and_revision(self, pack_id, revision):
        raise StorageUnavailable("disk gone")


def test_duplicates_escalate_to_invariant_violation() -> None:
    """Un doublon lu dans le store remonte en InvariantViolation."""
    service = ContentPackService(_CorruptedStore())
    with pytest.raises(InvariantViolation):
        service.list_latest()
    with pytest.raises(InvariantViolation):
        service.list_revisions_of("a")


def test_storage_failure_is_not_an_empty_result() -> None:
    """Une panne de stockage n'est jamais confondue avec une absence."""
    service = ContentPackService(_FailingStore())
    with pytest.raises(StorageUnavailable):
        service.list_latest()
    with pytest.raises(StorageUnavailable):
        service.get_revision("a", 1)
