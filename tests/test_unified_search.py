import pytest

from casino_search.errors import NotLoadedError, ValidationError
from casino_search.ontology_store import OntologyStore
from casino_search.unified_search import UnifiedSearchService

from conftest import OWL_PATH, FakeDBpediaClient

NS = "http://www.semanticweb.org/casino/ontologies/2025/casino-games#"


class ExplodingAdapter:
    """External adapter that must never be consulted."""

    def search_with_fallback(self, *args, **kwargs):
        raise AssertionError("external knowledge must not be queried")


def test_red_roulette_end_to_end(search_service):
    response = search_service.search("probabilidad rojo ruleta", include_dbpedia=True)

    top = response["results"][0]
    assert top["name"] == "Ruleta"
    assert top["resultType"] == "local"
    assert "48.65%" in top["contextualAnswer"]
    assert "48.65%" in response["contextualAnswer"]

    nlp = response["nlp"]
    assert nlp["language"] == "es"
    assert nlp["intent"] == "probability"
    assert nlp["specificQuery"] == "redRoulette"

    assert response["stats"]["source"] == "online"
    assert {s["type"] for s in response["sources"]} == {"local", "dbpedia"}


def test_answer_only_on_results_about_the_game(search_service):
    response = search_service.search("probabilidad rojo ruleta", include_dbpedia=True)
    blackjack = [r for r in response["results"] if r["name"] == "Blackjack"]
    assert blackjack
    assert all(r["contextualAnswer"] is None for r in blackjack)


def test_local_mode_never_consults_external(loaded_store):
    service = UnifiedSearchService(loaded_store, ExplodingAdapter())
    response = service.search("ruleta", include_dbpedia=True, mode="local")

    assert response["results"]
    assert all(r["resultType"] == "local" for r in response["results"])
    assert response["stats"]["source"] == "empty"


def test_external_skipped_unless_requested(search_service, fake_client):
    search_service.search("blackjack")
    assert fake_client.calls == []


def test_dbpedia_mode_has_only_remote_results(search_service):
    response = search_service.search("blackjack", include_dbpedia=True, mode="dbpedia")
    assert response["results"]
    assert all(r["resultType"] == "dbpedia" for r in response["results"])
    assert response["stats"]["local"] == 0


def test_repeated_search_is_stable_and_uses_cache(search_service, fake_client):
    first = search_service.search("blackjack", include_dbpedia=True)
    second = search_service.search("blackjack", include_dbpedia=True)

    assert [(r["id"], r["score"]) for r in first["results"]] == \
        [(r["id"], r["score"]) for r in second["results"]]
    assert len(fake_client.calls) == 2
    assert second["stats"]["source"] == "cache-exact"


def test_language_option_restricts_remote_results(loaded_store, adapter_factory):
    client = FakeDBpediaClient(results={
        "en": [("Craps", "http://dbpedia.org/resource/Craps")],
        "es": [("Juego de dados", "http://es.dbpedia.org/resource/Juego_de_dados")],
    })
    service = UnifiedSearchService(loaded_store, adapter_factory(client))

    response = service.search("craps", include_dbpedia=True, language="en")
    remote = [r["name"] for r in response["results"] if r["resultType"] == "dbpedia"]
    assert remote == ["Craps"]
    assert response["nlp"]["language"] == "es"


def test_max_results(search_service):
    response = search_service.search("apuesta", max_results=2)
    assert len(response["results"]) == 2
    assert response["stats"]["total"] == 2


@pytest.mark.parametrize("query", ["", "   ", None])
def test_blank_query_rejected(search_service, query):
    with pytest.raises(ValidationError):
        search_service.search(query)


def test_unknown_mode_rejected(search_service):
    with pytest.raises(ValidationError):
        search_service.search("ruleta", mode="everything")


def test_unloaded_ontology_propagates(adapter):
    service = UnifiedSearchService(OntologyStore(OWL_PATH), adapter)
    with pytest.raises(NotLoadedError):
        service.search("ruleta")


def test_local_result_details(search_service):
    detail = search_service.get_result_details(NS + "Ruleta", "local")
    assert detail["name"] == "Ruleta"
    assert detail["category"] == "Juego de mesa"


def test_dbpedia_result_details_from_dataset(search_service):
    detail = search_service.get_result_details("dbp-en-roulette", "dbpedia")
    assert detail["type"] == "dbpedia"
    assert detail["source"] == "local-detailed"
    assert detail["externalLinks"]


def test_dbpedia_detail_links_out_when_unavailable(search_service):
    uri = "http://dbpedia.org/resource/Craps"
    detail = search_service.get_result_details("craps-id", "dbpedia", uri)
    assert detail["uri"] == uri
    assert detail["externalLinks"][0]["url"] == uri


def test_unknown_dbpedia_detail_without_uri(search_service):
    assert search_service.get_result_details("nothing-here", "dbpedia") is None


def test_unknown_result_type(search_service):
    with pytest.raises(ValidationError):
        search_service.get_result_details("x", "wikidata")


def test_service_stats_count_searches(search_service):
    search_service.search("ruleta")
    stats = search_service.get_service_stats()
    assert stats["unified"]["searches"] == 1
    assert stats["dbpedia"]["localEntries"] == 2
