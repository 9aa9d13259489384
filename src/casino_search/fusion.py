"""
Fusion and ranking of local and external candidates.

Each origin gets fusion-time bonuses against the raw query, then a per-origin
boost (local 1.2, remote 1.0). Candidates whose folded names collide are
deduplicated, the survivors are stable-sorted by boosted score and the list
is truncated to max_results.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import List, Dict, Any, Optional

from casino_search.candidates import Candidate, LocalCandidate, RemoteCandidate, OriginKind, normalize_name

logger = logging.getLogger(__name__)


@dataclass
class FusionResult:
    results: List[Candidate]
    stats: Dict[str, Any] = field(default_factory=dict)


def _contains(text: Optional[str], query: str) -> bool:
    return bool(text) and query in text.lower()


def score_local(candidate: LocalCandidate, query: str) -> float:
    """Upstream relevance plus +10 exact name, +5 name substring, +3 description, +2 abstract."""
    score = candidate.relevance or 1
    name = candidate.display_name.lower()
    if name == query:
        score += 10
    elif query in name:
        score += 5
    if _contains(candidate.description, query):
        score += 3
    abstract = candidate.raw_properties.get("abstract")
    if isinstance(abstract, str) and _contains(abstract, query):
        score += 2
    return score


def score_remote(candidate: RemoteCandidate, query: str) -> float:
    """Upstream relevance plus +8 exact label, +4 label substring, +2 description, +2 abstract, +1 thumbnail."""
    score = candidate.relevance or 1
    label = candidate.display_name.lower()
    if label == query:
        score += 8
    elif query in label:
        score += 4
    if _contains(candidate.description, query):
        score += 2
    if _contains(candidate.abstract, query):
        score += 2
    if candidate.thumbnail:
        score += 1
    return score


def _prefer(challenger: Candidate, incumbent: Candidate) -> bool:
    """True when challenger should replace incumbent for the same folded name."""
    if challenger.boosted_score != incumbent.boosted_score:
        return challenger.boosted_score > incumbent.boosted_score
    return challenger.origin is OriginKind.LOCAL and incumbent.origin is not OriginKind.LOCAL


def remove_duplicates(candidates: List[Candidate]) -> List[Candidate]:
    """
    Keep one candidate per folded display name.

    The survivor is the higher boosted score; on an exact tie a local
    candidate wins, otherwise the earlier one stays. The survivor takes the
    position of the first candidate seen for that name.
    """
    unique: List[Candidate] = []
    index_by_name: Dict[str, int] = {}

    for candidate in candidates:
        key = normalize_name(candidate.display_name)
        if not key:
            # Nothing to fold on: never merge
            unique.append(candidate)
            continue

        if key not in index_by_name:
            index_by_name[key] = len(unique)
            unique.append(candidate)
        elif _prefer(candidate, unique[index_by_name[key]]):
            unique[index_by_name[key]] = candidate

    return unique


def combine_and_rank_results(local_candidates: List[LocalCandidate],
                             remote_candidates: List[RemoteCandidate],
                             query: str,
                             max_results: int = 20) -> FusionResult:
    """
    Merge, deduplicate, rank and truncate local and remote candidates.

    Args:
        local_candidates: Matches from the ontology
        remote_candidates: Matches from the external knowledge adapter
        query: The raw user query
        max_results: Size cap of the returned list

    Returns:
        FusionResult with ranked candidates and provenance stats
    """
    query_lower = (query or "").lower().strip()

    scored: List[Candidate] = []
    for candidate in local_candidates:
        scored.append(replace(candidate, relevance=score_local(candidate, query_lower)))
    for candidate in remote_candidates:
        scored.append(replace(candidate, relevance=score_remote(candidate, query_lower)))

    unique = remove_duplicates(scored)
    # sorted() is stable: equal boosted scores keep insertion order
    ranked = sorted(unique, key=lambda c: -c.boosted_score)
    final = ranked[:max(0, int(max_results))]

    stats = {
        "total": len(final),
        "local": len(local_candidates),
        "external": len(remote_candidates),
        "dbpedia": len(remote_candidates),
        "merged": len(scored) - len(unique),
        "maxRelevance": round(final[0].boosted_score, 3) if final else 0,
    }
    logger.debug(f"Fusion for '{query}': {stats}")
    return FusionResult(results=final, stats=stats)
