"""Configuration de test pour pytest avec gestion des chemins.

Ce module configure pytest pour résoudre les imports `packstore` en ajoutant la racine du projet
au sys.path, et fournit les stores de test (mémoire et SQLite en mémoire).
"""

import os
import sys

import pytest

# Ensure project root is on sys.path so that
# imports like `from packstore...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from packstore.core.logging import setup_logging  # noqa: E402
from packstore.domain.content_pack_service import ContentPackService  # noqa: E402
from packstore.infra.store.memory_store import InMemoryContentPackStore  # noqa: E402
from packstore.infra.store.sql_store import SqlContentPackStore  # noqa: E402


@pytest.fixture(autouse=True, scope="session")
def structured_logging():
    """Logs structlog sur stderr: stdout reste réservé aux sorties du CLI."""
    setup_logging("DEBUG")


def _make_store(kind: str):
    """Construit un store vierge du type demandé."""
    if kind == "sql":
        store = SqlContentPackStore(url="sqlite+pysqlite:///:memory:")
        store.create_schema()
        return store
    return InMemoryContentPackStore()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Store vierge, successivement mémoire puis SQLite."""
    return _make_store(request.param)


@pytest.fixture
def service(store):
    """Service de requêtes au-dessus du store paramétré."""
    return ContentPackService(store)
