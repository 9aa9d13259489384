"""
External knowledge adapter: DBpedia enrichment with an offline snapshot,
a disk cache and a bounded live query, tried in that order.

search_with_fallback() and get_detailed_info() never raise. External
knowledge is optional enrichment, so every failure degrades to a smaller
(possibly empty) result.
"""

import json
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Optional

from casino_search.candidates import RemoteCandidate
from casino_search.dbpedia_client import DBpediaClient, generate_external_links
from casino_search.errors import RemoteUnavailableError
from casino_search.search_cache import SearchCache, now_ms

logger = logging.getLogger(__name__)

SOURCE_LOCAL_DATASET = "local-dataset"
SOURCE_CACHE_EXACT = "cache-exact"
SOURCE_CACHE_FUZZY = "cache-fuzzy"
SOURCE_ONLINE = "online"
SOURCE_EMPTY = "empty"

ONLINE_LANGUAGES = ("en", "es")


@dataclass
class ExternalResult:
    """Remote candidates split by language, with the stage that produced them."""
    english: List[RemoteCandidate] = field(default_factory=list)
    spanish: List[RemoteCandidate] = field(default_factory=list)
    source: str = SOURCE_EMPTY
    timestamp: int = field(default_factory=now_ms)

    @property
    def total(self) -> int:
        return len(self.english) + len(self.spanish)

    def all_candidates(self) -> List[RemoteCandidate]:
        return self.english + self.spanish

    def to_dict(self) -> Dict[str, Any]:
        return {
            "english": [c.to_dict() for c in self.english],
            "spanish": [c.to_dict() for c in self.spanish],
            "total": self.total,
            "source": self.source,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str) -> "ExternalResult":
        return cls(
            english=[RemoteCandidate.from_dict(c) for c in data.get("english", [])],
            spanish=[RemoteCandidate.from_dict(c) for c in data.get("spanish", [])],
            source=source,
        )

    @classmethod
    def from_candidates(cls, candidates: List[RemoteCandidate], source: str) -> "ExternalResult":
        return cls(
            english=[c for c in candidates if c.language == "en"],
            spanish=[c for c in candidates if c.language != "en"],
            source=source,
        )

    def restricted_to(self, language: str) -> "ExternalResult":
        """Keep only one language list ('es'/'en'); any other value keeps both."""
        if language == "en":
            return ExternalResult(english=self.english, source=self.source, timestamp=self.timestamp)
        if language == "es":
            return ExternalResult(spanish=self.spanish, source=self.source, timestamp=self.timestamp)
        return self


def _contains(text: Optional[str], term: str) -> bool:
    return bool(text) and term in text.lower()


def dataset_relevance(entry: Dict[str, Any], term: str) -> int:
    """Score of an offline dataset entry against a lowercased term. 0 means no match."""
    score = 0
    label = (entry.get("label") or "").lower()
    if term in label:
        score += 10
        if label.startswith(term):
            score += 5
    if _contains(entry.get("abstract"), term):
        score += 3
    if _contains(entry.get("description"), term):
        score += 2

    for value in (entry.get("properties") or {}).values():
        values = value if isinstance(value, list) else [value]
        score += sum(1 for v in values if isinstance(v, str) and term in v.lower())

    if _contains(entry.get("category"), term):
        score += 2
    return score


def fuzzy_relevance(candidate: RemoteCandidate, term: str) -> int:
    score = 0
    label = candidate.display_name.lower()
    if term in label:
        score += 10
    if label.startswith(term):
        score += 5
    if _contains(candidate.description, term):
        score += 3
    if _contains(candidate.abstract, term):
        score += 2
    return score


def candidate_from_entry(entry: Dict[str, Any], relevance: float) -> RemoteCandidate:
    description = entry.get("description") or ""
    uri = entry.get("uri", "")
    return RemoteCandidate(
        uri=uri,
        display_name=entry.get("label", ""),
        relevance=float(relevance),
        language=entry.get("language") or "en",
        description=description,
        raw_properties=entry.get("properties") or {},
        category=entry.get("category") or "",
        id=entry.get("id") or "",
        abstract=entry.get("abstract") or description,
        comment=entry.get("comment") or "",
        thumbnail=entry.get("thumbnail") or "",
        source="Local Dataset",
        external_links=entry.get("external_links") or generate_external_links(uri),
    )


class ExternalKnowledgeAdapter:
    """Offline dataset -> cache (exact, fuzzy) -> live DBpedia, in strict order."""

    def __init__(self, client: DBpediaClient, cache: SearchCache, dataset_path: str,
                 online_timeout: float = 8, sweep_interval: float = 3600,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            client: Remote DBpedia client
            cache: Disk cache for search results and details
            dataset_path: JSON offline snapshot ({metadata, entries})
            online_timeout: Upper bound in seconds for the whole live stage
            sweep_interval: Minimum seconds between lazy expired-entry sweeps
            clock: Monotonic seconds, used for sweep scheduling
        """
        self.client = client
        self.cache = cache
        self.dataset_path = dataset_path
        self.online_timeout = online_timeout
        self.sweep_interval = sweep_interval
        self.clock = clock

        self.local_dataset: Dict[str, Any] = {"metadata": {}, "entries": []}
        self.is_online = True
        self.offline_mode = False
        self.initialized = False
        self._last_sweep = clock()

    def init(self):
        """Load the offline snapshot and make sure the cache directory exists."""
        try:
            os.makedirs(self.cache.cache_dir, exist_ok=True)
        except OSError as e:
            logger.error(f"Error creating cache directory {self.cache.cache_dir}: {e}")
        self.load_local_dataset()
        self.initialized = True
        logger.info(f"External knowledge adapter initialized with "
                    f"{len(self.local_dataset['entries'])} offline entries")

    def load_local_dataset(self):
        try:
            with open(self.dataset_path, "r", encoding="utf-8") as f:
                dataset = json.load(f)
            if not isinstance(dataset.get("entries"), list):
                raise ValueError("dataset has no 'entries' list")
            self.local_dataset = dataset
            logger.info(f"Loaded local dataset with {len(dataset['entries'])} entries")
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load local dataset {self.dataset_path}, using an empty one: {e}")
            self.local_dataset = {
                "metadata": {"version": "1.0", "description": "Empty local DBpedia dataset",
                             "total_entries": 0},
                "entries": [],
            }

    def reload_local_dataset(self):
        self.load_local_dataset()

    def set_offline_mode(self, offline: bool):
        self.offline_mode = bool(offline)
        logger.info(f"Offline mode {'enabled' if self.offline_mode else 'disabled'}")

    def _maybe_sweep(self):
        now = self.clock()
        if now - self._last_sweep >= self.sweep_interval:
            self._last_sweep = now
            self.cache.clean_expired()

    def search_local(self, search_term: str) -> ExternalResult:
        term = search_term.lower().strip()
        scored = []
        for entry in self.local_dataset.get("entries", []):
            score = dataset_relevance(entry, term)
            if score > 0:
                scored.append(candidate_from_entry(entry, score))
        scored.sort(key=lambda c: -c.relevance)
        return ExternalResult.from_candidates(scored, SOURCE_LOCAL_DATASET)

    def search_from_cache(self, search_term: str, language: str = "auto") -> ExternalResult:
        """Exact cache entry if it has results in `language`, else a fuzzy scan of every entry."""
        exact = self.cache.get(search_term,
                               decode=partial(ExternalResult.from_dict, source=SOURCE_CACHE_EXACT))
        if exact is not None:
            exact = exact.restricted_to(language)
            if exact.total > 0:
                return exact

        term = search_term.lower().strip()
        matches = {}
        decode = partial(ExternalResult.from_dict, source=SOURCE_CACHE_FUZZY)
        for cached in self.cache.iter_valid_entries(decode=decode):
            for candidate in cached.restricted_to(language).all_candidates():
                if candidate.uri in matches:
                    continue
                if (_contains(candidate.display_name, term) or _contains(candidate.description, term)
                        or _contains(candidate.abstract, term)):
                    candidate.relevance = float(fuzzy_relevance(candidate, term))
                    matches[candidate.uri] = candidate

        ranked = sorted(matches.values(), key=lambda c: -c.relevance)
        return ExternalResult.from_candidates(ranked, SOURCE_CACHE_FUZZY)

    def search_online(self, search_term: str) -> ExternalResult:
        """
        Query both language endpoints concurrently, bounded by online_timeout.

        A language that fails or does not answer in time contributes nothing;
        late answers are discarded.

        Raises:
            RemoteUnavailableError: no language answered
        """
        executor = ThreadPoolExecutor(max_workers=len(ONLINE_LANGUAGES))
        try:
            futures = {
                executor.submit(self.client.search, search_term, lang): lang
                for lang in ONLINE_LANGUAGES
            }
            done, not_done = wait(futures, timeout=self.online_timeout)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        results = {lang: [] for lang in ONLINE_LANGUAGES}
        answered = 0
        for future in done:
            lang = futures[future]
            try:
                results[lang] = future.result()
                answered += 1
            except RemoteUnavailableError as e:
                logger.warning(str(e))
            except Exception as e:
                logger.error(f"Unexpected error searching DBpedia {lang}: {e}", exc_info=True)

        for future in not_done:
            logger.warning(f"DBpedia {futures[future]} did not answer within {self.online_timeout}s")

        if answered == 0:
            raise RemoteUnavailableError("DBpedia unavailable in every language")

        return ExternalResult(english=results["en"], spanish=results["es"], source=SOURCE_ONLINE)

    def search_with_fallback(self, search_term: str, prefer_offline: bool = False,
                             language: str = "auto") -> ExternalResult:
        """
        Look a term up in the offline dataset, then the cache, then live DBpedia.

        Args:
            search_term: Raw (trimmed) user query
            prefer_offline: Skip the live stage for this request
            language: 'es' or 'en' restricts every stage to that language; a
                stage with nothing in it falls through to the next one

        Returns:
            ExternalResult, with source 'empty' when nothing matched
        """
        try:
            search_term = (search_term or "").strip()
            if not search_term:
                return ExternalResult()

            logger.info(f"Searching external knowledge for: '{search_term}'")
            self._maybe_sweep()

            local = self.search_local(search_term).restricted_to(language)
            if local.total > 0:
                logger.info(f"Found {local.total} results in local dataset")
                return local

            cached = self.search_from_cache(search_term, language)
            if cached.total > 0:
                logger.info(f"Found {cached.total} results in cache ({cached.source})")
                return cached

            if prefer_offline or self.offline_mode:
                logger.info("Skipping online DBpedia search (offline)")
                return ExternalResult()

            try:
                online = self.search_online(search_term)
                self.is_online = True
                if online.total > 0:
                    self.cache.put(search_term, online.to_dict())
                    online = online.restricted_to(language)
                if online.total > 0:
                    logger.info(f"Found {online.total} results online")
                    return online
            except RemoteUnavailableError as e:
                logger.warning(f"Online search not available, using offline mode: {e}")
                self.is_online = False

            logger.info("No results found in any source")
            return ExternalResult()

        except Exception as e:
            logger.error(f"External knowledge search error: {e}", exc_info=True)
            return ExternalResult()

    def _local_detail(self, detail_id: str) -> Optional[Dict[str, Any]]:
        for entry in self.local_dataset.get("entries", []):
            if entry.get("id") == detail_id:
                return {
                    "uri": entry.get("uri"),
                    "label": entry.get("label"),
                    "properties": entry.get("properties") or {},
                    "description": entry.get("description") or entry.get("abstract") or "",
                    "external_links": entry.get("external_links") or generate_external_links(entry.get("uri", "")),
                    "source": "local-detailed",
                }
        return None

    def get_detailed_info(self, detail_id: str, uri: str = None) -> Optional[Dict[str, Any]]:
        """Detail for 'view more': offline dataset, then live fetch (cached), then cache."""
        try:
            detail = self._local_detail(detail_id)
            if detail:
                return detail

            if uri and not self.offline_mode:
                try:
                    detail = self.client.fetch_resource_detail(uri)
                    if detail:
                        detail["external_links"] = generate_external_links(uri)
                        self.cache.put_detail(detail_id, detail)
                        return detail
                except RemoteUnavailableError as e:
                    logger.warning(f"Online detail fetch failed: {e}")

            return self.cache.get_detail(detail_id)

        except Exception as e:
            logger.error(f"Error getting detailed info for {detail_id}: {e}", exc_info=True)
            return None

    def clean_expired_cache(self) -> int:
        self._last_sweep = self.clock()
        return self.cache.clean_expired()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "localEntries": len(self.local_dataset.get("entries", [])),
            "isOnline": self.is_online,
            "offlineMode": self.offline_mode,
            "initialized": self.initialized,
            "cacheDirectory": self.cache.cache_dir,
            "datasetPath": self.dataset_path,
            "cache": self.cache.get_stats(),
        }
