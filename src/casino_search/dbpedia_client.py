"""
Remote DBpedia access: the per-language SPARQL text search used by the
external knowledge adapter, and the resource JSON fetch behind detail views.

Every transport or protocol failure surfaces as RemoteUnavailableError.
"""

import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import unquote

import requests
from SPARQLWrapper import SPARQLWrapper, JSON, GET

from casino_search.candidates import RemoteCandidate, generate_preview
from casino_search.errors import RemoteUnavailableError

logger = logging.getLogger(__name__)

USER_AGENT = "CasinoSemanticSearch/0.3 (+https://dbpedia.org)"

DBO = "http://dbpedia.org/ontology/"
RDFS_NS = "http://www.w3.org/2000/01/rdf-schema#"

SEARCH_QUERY_TEMPLATE = """
PREFIX dbo: <http://dbpedia.org/ontology/>
PREFIX rdfs: <http://www.w3.org/2000/01/rdf-schema#>

SELECT DISTINCT ?resource ?label ?abstract ?thumbnail ?comment
WHERE {{
    ?resource rdfs:label ?label .
    OPTIONAL {{ ?resource dbo:abstract ?abstract . }}
    OPTIONAL {{ ?resource dbo:thumbnail ?thumbnail . }}
    OPTIONAL {{ ?resource rdfs:comment ?comment . }}

    FILTER (
        LANG(?label) = "{lang}" &&
        (
            CONTAINS(LCASE(STR(?label)), "{term}") ||
            CONTAINS(LCASE(STR(?abstract)), "{term}")
        )
    )

    FILTER (
        STRSTARTS(STR(?resource), "http://dbpedia.org/resource/") ||
        STRSTARTS(STR(?resource), "http://es.dbpedia.org/resource/")
    )

    FILTER (LANG(?abstract) = "{lang}" || !BOUND(?abstract))
}}
ORDER BY STRLEN(?label)
LIMIT {limit}
"""


def escape_sparql_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", " ").replace("\r", " ")


def calculate_online_relevance(binding: Dict[str, Any]) -> int:
    """Information richness of a binding: base 1, +2 abstract, +1 thumbnail, +1 comment."""
    score = 1
    if binding.get("abstract", {}).get("value"):
        score += 2
    if binding.get("thumbnail", {}).get("value"):
        score += 1
    if binding.get("comment", {}).get("value"):
        score += 1
    return score


def generate_external_links(uri: str) -> List[Dict[str, str]]:
    """DBpedia page plus the Wikipedia article of the same language edition."""
    links = []
    if "dbpedia.org" not in (uri or ""):
        return links

    links.append({"title": "Ver en DBpedia", "url": uri, "type": "dbpedia"})
    resource_name = uri.rstrip("/").split("/")[-1]
    if resource_name:
        wiki_host = "es.wikipedia.org" if "es.dbpedia.org" in uri else "en.wikipedia.org"
        links.append({
            "title": "Ver en Wikipedia",
            "url": f"https://{wiki_host}/wiki/{resource_name}",
            "type": "wikipedia",
        })
    return links


class DBpediaClient:
    """SPARQLWrapper-based search and requests-based resource fetch."""

    def __init__(self, endpoints: Dict[str, str], query_timeout: float = 6,
                 result_limit: int = 10, session: requests.Session = None):
        """
        Args:
            endpoints: Language code -> SPARQL endpoint URL
            query_timeout: Seconds allowed for one language sub-query
            result_limit: LIMIT of each sub-query
            session: HTTP session for resource fetches
        """
        self.endpoints = endpoints
        self.query_timeout = query_timeout
        self.result_limit = result_limit
        self._http_session = session or requests.Session()
        self._http_session.headers.update({"User-Agent": USER_AGENT})

    def build_search_query(self, search_term: str, language: str) -> str:
        lang = "es" if language == "es" else "en"
        term = escape_sparql_string(search_term.strip().lower())
        return SEARCH_QUERY_TEMPLATE.format(lang=lang, term=term, limit=self.result_limit).strip()

    def parse_bindings(self, data: Dict[str, Any], language: str) -> List[RemoteCandidate]:
        bindings = (data or {}).get("results", {}).get("bindings", [])
        seen = set()
        candidates = []
        for binding in bindings:
            uri = binding.get("resource", {}).get("value", "")
            if not uri or uri in seen:
                continue
            seen.add(uri)

            abstract = binding.get("abstract", {}).get("value", "")
            comment = binding.get("comment", {}).get("value", "")
            candidates.append(RemoteCandidate(
                uri=uri,
                display_name=binding.get("label", {}).get("value", ""),
                relevance=float(calculate_online_relevance(binding)),
                language=language,
                description=abstract or comment,
                abstract=abstract,
                comment=comment,
                thumbnail=binding.get("thumbnail", {}).get("value", ""),
                source="DBpedia",
                external_links=generate_external_links(uri),
            ))

        candidates.sort(key=lambda c: -c.relevance)
        return candidates

    def search(self, search_term: str, language: str) -> List[RemoteCandidate]:
        """
        Text search against one language endpoint.

        Raises:
            RemoteUnavailableError: endpoint missing, timed out or failed
        """
        endpoint = self.endpoints.get(language)
        if not endpoint:
            raise RemoteUnavailableError(f"No DBpedia endpoint configured for '{language}'", language)

        sparql = SPARQLWrapper(endpoint)
        sparql.setQuery(self.build_search_query(search_term, language))
        sparql.setReturnFormat(JSON)
        sparql.setMethod(GET)
        sparql.setTimeout(int(max(1, self.query_timeout)))
        sparql.addCustomHttpHeader("User-Agent", USER_AGENT)

        start = time.time()
        try:
            data = sparql.query().convert()
        except Exception as e:
            raise RemoteUnavailableError(f"DBpedia {language} unavailable: {str(e)}", language) from e

        results = self.parse_bindings(data, language)
        logger.info(f"Found {len(results)} results from {language} DBpedia in {time.time() - start:.2f}s")
        return results

    def _data_url(self, uri: str) -> str:
        resource_name = uri.rstrip("/").split("/")[-1]
        host = "http://es.dbpedia.org" if "es.dbpedia.org" in uri else "https://dbpedia.org"
        return f"{host}/data/{resource_name}.json"

    def fetch_resource_detail(self, uri: str, language: str = "es") -> Optional[Dict[str, Any]]:
        """
        Fetch the DBpedia JSON document of a resource and keep the
        presentable fields.

        Returns:
            Detail dict, or None if the document has no data for the resource

        Raises:
            RemoteUnavailableError: timeout, transport error or non-2xx answer
        """
        url = self._data_url(uri)
        try:
            response = self._http_session.get(url, headers={"Accept": "application/json"},
                                              timeout=self.query_timeout)
        except requests.exceptions.Timeout as e:
            raise RemoteUnavailableError(f"DBpedia detail timeout for {uri}") from e
        except requests.exceptions.RequestException as e:
            raise RemoteUnavailableError(f"DBpedia detail request failed for {uri}: {e}") from e

        if response.status_code != 200:
            raise RemoteUnavailableError(f"DBpedia detail: status {response.status_code} for {uri}")

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteUnavailableError(f"DBpedia detail JSON parse failed for {uri}: {e}") from e

        # The document is keyed by the canonical resource URI
        resource = data.get(uri) or data.get(unquote(uri))
        if not resource:
            logger.warning(f"No DBpedia data found for {uri}")
            return None

        def pick(predicate):
            values = resource.get(predicate, [])
            for preferred in (language, "en", None):
                for value in values:
                    if preferred is None or value.get("lang") == preferred:
                        return value.get("value", "")
            return ""

        abstract = pick(DBO + "abstract")
        comment = pick(RDFS_NS + "comment")
        return {
            "uri": uri,
            "label": pick(RDFS_NS + "label"),
            "abstract": abstract,
            "comment": comment,
            "thumbnail": pick(DBO + "thumbnail"),
            "description": abstract or comment,
            "preview": generate_preview(abstract or comment),
            "properties": {
                "wikiPageID": pick(DBO + "wikiPageID"),
            },
            "source": "online",
        }
