import json
import threading

import pytest

from casino_search import PROJECT_ROOT
from casino_search.candidates import RemoteCandidate
from casino_search.dbpedia_client import generate_external_links
from casino_search.errors import RemoteUnavailableError
from casino_search.external_knowledge import ExternalKnowledgeAdapter
from casino_search.ontology_store import OntologyStore
from casino_search.search_cache import SearchCache
from casino_search.unified_search import UnifiedSearchService

OWL_PATH = str(PROJECT_ROOT / "data" / "ontology" / "casino_games.owl")

SMALL_DATASET = {
    "metadata": {"version": "test", "total_entries": 2},
    "entries": [
        {
            "id": "dbp-en-roulette",
            "uri": "http://dbpedia.org/resource/Roulette",
            "label": "Roulette",
            "abstract": "Roulette is a casino game played with a spinning wheel.",
            "description": "Casino game with a wheel and a ball.",
            "category": "Gambling games",
            "language": "en",
            "properties": {"type": "Table game"},
        },
        {
            "id": "dbp-es-ruleta",
            "uri": "http://es.dbpedia.org/resource/Ruleta",
            "label": "Ruleta",
            "abstract": "La ruleta es un juego de azar, del francés roulette.",
            "description": "Juego de azar con una rueda giratoria.",
            "category": "Juegos de casino",
            "language": "es",
            "properties": {"tipo": "Juego de mesa"},
        },
    ],
}


def make_remote(label, uri, language="en", relevance=3.0, thumbnail=""):
    return RemoteCandidate(
        uri=uri,
        display_name=label,
        relevance=relevance,
        language=language,
        description=f"{label} description",
        abstract=f"{label} abstract",
        thumbnail=thumbnail,
        external_links=generate_external_links(uri),
    )


class FakeDBpediaClient:
    """Stands in for DBpediaClient: canned answers per language, call log."""

    def __init__(self, results=None, failing_languages=(), error=None, detail=None):
        self.results = results or {}
        self.failing_languages = set(failing_languages)
        self.error = error
        self.detail = detail
        self.calls = []
        self.detail_calls = []
        self._lock = threading.Lock()

    def search(self, search_term, language):
        with self._lock:
            self.calls.append((search_term, language))
        if self.error is not None:
            raise self.error
        if language in self.failing_languages:
            raise RemoteUnavailableError(f"DBpedia {language} unavailable: test", language)
        return [make_remote(label, uri, language) for label, uri in self.results.get(language, [])]

    def fetch_resource_detail(self, uri, language="es"):
        self.detail_calls.append(uri)
        if self.detail is None:
            raise RemoteUnavailableError(f"DBpedia detail timeout for {uri}")
        return dict(self.detail, uri=uri)


class SlowDBpediaClient(FakeDBpediaClient):
    """Blocks every search until `release` is set."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def search(self, search_term, language):
        with self._lock:
            self.calls.append((search_term, language))
        self.release.wait(timeout=30)
        return []


@pytest.fixture(scope="session")
def loaded_store():
    store = OntologyStore(OWL_PATH)
    store.load_ontology()
    return store


@pytest.fixture
def fresh_store():
    store = OntologyStore(OWL_PATH)
    store.load_ontology()
    return store


@pytest.fixture
def cache_dir(tmp_path):
    path = tmp_path / "dbpedia_cache"
    path.mkdir()
    return path


@pytest.fixture
def dataset_path(tmp_path):
    path = tmp_path / "dataset.json"
    path.write_text(json.dumps(SMALL_DATASET), encoding="utf-8")
    return path


@pytest.fixture
def fake_client():
    return FakeDBpediaClient(results={
        "en": [("Blackjack", "http://dbpedia.org/resource/Blackjack")],
        "es": [("Blackjack", "http://es.dbpedia.org/resource/Blackjack")],
    })


@pytest.fixture
def adapter_factory(cache_dir, dataset_path):
    def build(client, cache=None, **kwargs):
        if cache is None:
            cache = SearchCache(str(cache_dir))
        adapter = ExternalKnowledgeAdapter(client, cache, str(dataset_path), **kwargs)
        adapter.init()
        return adapter
    return build


@pytest.fixture
def adapter(adapter_factory, fake_client):
    return adapter_factory(fake_client)


@pytest.fixture
def search_service(loaded_store, adapter):
    service = UnifiedSearchService(loaded_store, adapter)
    service.initialized = True
    return service
