"""
Unified search: one query through the NLU, the ontology and the external
knowledge adapter, fused into a single ranked list.
"""

import logging
from typing import Dict, Any, List, Optional

from casino_search.candidates import to_unified_result, normalize_name
from casino_search.dbpedia_client import generate_external_links
from casino_search.errors import ValidationError
from casino_search.external_knowledge import ExternalKnowledgeAdapter, ExternalResult
from casino_search.fusion import combine_and_rank_results
from casino_search.game_knowledge import GAME_KNOWLEDGE
from casino_search.local_ranker import LocalRanker
from casino_search.nlu import QueryProcessor
from casino_search.ontology_store import OntologyStore

logger = logging.getLogger(__name__)

SEARCH_MODES = ("local", "dbpedia", "hybrid")
ANSWER_LANGUAGES = ("es", "en")


class UnifiedSearchService:
    """Orchestrates query understanding, local and external search and fusion."""

    def __init__(self, ontology_store: OntologyStore, external: ExternalKnowledgeAdapter,
                 query_processor: QueryProcessor = None):
        self.ontology_store = ontology_store
        self.external = external
        self.query_processor = query_processor or ontology_store.query_processor
        self.local_ranker = LocalRanker(ontology_store)
        self.initialized = False
        self.search_count = 0

    def init(self):
        self.external.init()
        self.initialized = True
        logger.info("Unified search service initialized")

    def _game_aliases(self, game: Optional[str]) -> List[str]:
        if not game or game not in GAME_KNOWLEDGE:
            return []
        names = [game] + GAME_KNOWLEDGE[game]["names"]
        return [normalize_name(n) for n in names if len(n) > 3]

    def _source_info(self, local_count: int, external: ExternalResult) -> List[Dict[str, Any]]:
        sources = []
        if local_count > 0:
            sources.append({
                "name": "Ontología Local",
                "type": "local",
                "count": local_count,
                "description": "Base de conocimiento específica de juegos de casino",
            })
        if external.total > 0:
            sources.append({
                "name": "DBpedia",
                "type": "dbpedia",
                "count": external.total,
                "description": f"Base de conocimiento global ({external.source})",
            })
        return sources

    def search(self, query: str, include_dbpedia: bool = False, max_results: int = 20,
               language: str = "auto", prefer_offline: bool = False,
               mode: str = "hybrid") -> Dict[str, Any]:
        """
        Run a fused search.

        Args:
            query: Free-text query, must not be blank
            include_dbpedia: Allow the external knowledge lookup
            max_results: Cap on the returned results
            language: 'auto' answers in the detected language, 'es'/'en' force it
            prefer_offline: Skip live DBpedia queries for this request
            mode: 'local', 'dbpedia' or 'hybrid'; 'local' never consults DBpedia

        Returns:
            Dict with query, mode, results, stats, sources and the NLU analysis

        Raises:
            ValidationError: blank query or unknown mode
            NotLoadedError: the ontology is needed and not loaded
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError("Query parameter is required")
        if mode not in SEARCH_MODES:
            raise ValidationError(f"Invalid mode '{mode}', expected one of {', '.join(SEARCH_MODES)}")

        self.search_count += 1
        logger.info(f"Unified search for: '{query}' (mode: {mode}, dbpedia: {include_dbpedia}, "
                    f"offline: {prefer_offline})")

        answer_language = language if language in ANSWER_LANGUAGES else None
        analysis = self.query_processor.process_query(query, answer_language=answer_language)

        local_candidates = []
        if mode in ("local", "hybrid"):
            local_candidates = self.local_ranker.search(query)

        external = ExternalResult()
        if include_dbpedia and mode in ("dbpedia", "hybrid"):
            external = self.external.search_with_fallback(
                query, prefer_offline=prefer_offline, language=language)

        fusion = combine_and_rank_results(
            local_candidates, external.all_candidates(), query, max_results=max_results)

        answer = analysis.contextual_answer
        aliases = self._game_aliases(analysis.game)
        results = []
        for candidate in fusion.results:
            folded = normalize_name(candidate.display_name)
            matches_game = any(alias and alias in folded for alias in aliases)
            results.append(to_unified_result(candidate, answer if matches_game else None))

        stats = dict(fusion.stats)
        stats["source"] = external.source

        return {
            "query": query,
            "mode": mode,
            "results": results,
            "stats": stats,
            "sources": self._source_info(len(local_candidates), external),
            "contextualAnswer": answer,
            "nlp": analysis.to_dict(),
        }

    def get_result_details(self, identifier: str, result_type: str, uri: str = None) -> Optional[Dict[str, Any]]:
        """Detail view of one result. Returns None when nothing is known about it."""
        logger.info(f"Getting details for {result_type} result: {identifier}")

        if result_type == "local":
            return self.local_ranker.get_local_details(uri or identifier)

        if result_type == "dbpedia":
            detail = self.external.get_detailed_info(identifier, uri)
            if detail is None and uri:
                # Nothing fetched or cached: link out instead
                detail = {
                    "uri": uri,
                    "properties": {},
                    "fullDescription": "Información disponible en DBpedia. "
                                       "Accede al enlace externo para más detalles.",
                    "external_links": generate_external_links(uri),
                }
            if detail is not None:
                detail = {"type": "dbpedia", "id": identifier, "source": "DBpedia", **detail}
                detail.setdefault("externalLinks", detail.get("external_links", []))
            return detail

        raise ValidationError(f"Unknown result type: {result_type}")

    def cleanup(self) -> int:
        cleaned = self.external.clean_expired_cache()
        logger.info("Unified search cleanup completed")
        return cleaned

    def reload_local_dataset(self):
        self.external.reload_local_dataset()
        logger.info("Local dataset reloaded successfully")

    def get_service_stats(self) -> Dict[str, Any]:
        return {
            "unified": {
                "initialized": self.initialized,
                "searches": self.search_count,
            },
            "dbpedia": self.external.get_stats(),
        }
