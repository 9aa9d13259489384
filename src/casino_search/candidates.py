"""
Candidate types shared by the local ranker, the external knowledge adapter
and the fusion engine.

A candidate is either a LocalCandidate (an ontology subject) or a
RemoteCandidate (a DBpedia resource, live or from the offline snapshot).
Both project onto the same outward "unified result" dict via
to_unified_result().
"""

import hashlib
import re
from dataclasses import dataclass, field, fields, asdict
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional


class OriginKind(str, Enum):
    LOCAL = "local"
    REMOTE = "dbpedia"


# Boost applied to the raw relevance of each origin before final ordering
ORIGIN_BOOST = {
    OriginKind.LOCAL: 1.2,
    OriginKind.REMOTE: 1.0,
}

_PARENTHETICAL = re.compile(r"\s*\([^)]*\)\s*$")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


def generate_id(uri: str) -> str:
    """Short opaque id derived from a URI (not collision-proof)."""
    return hashlib.md5((uri or "default").encode("utf-8")).hexdigest()[:12]


def generate_preview(text: Optional[str], max_length: int = 150) -> str:
    """Single-line preview cut at the last word boundary before max_length."""
    if not text:
        return ""

    cleaned = text.replace("\n", " ").strip()
    if len(cleaned) <= max_length:
        return cleaned

    truncated = cleaned[:max_length]
    last_space = truncated.rfind(" ")
    return (truncated[:last_space] if last_space > 0 else truncated) + "..."


def normalize_name(name: str) -> str:
    """Coarse fold used for deduplication: 'Blackjack (casino game)' -> 'blackjack'."""
    folded = _PARENTHETICAL.sub("", (name or "").lower())
    return _NON_ALNUM.sub("", folded)[:20]


@dataclass
class Candidate:
    """Fields every candidate carries, whatever its origin."""
    uri: str
    display_name: str
    relevance: float = 1.0
    language: str = "es"
    description: str = ""
    raw_properties: Dict[str, Any] = field(default_factory=dict)
    category: str = ""
    id: str = ""

    origin: ClassVar[OriginKind]

    def __post_init__(self):
        if not self.id:
            self.id = generate_id(self.uri or self.display_name)

    @property
    def boost(self) -> float:
        return ORIGIN_BOOST[self.origin]

    @property
    def boosted_score(self) -> float:
        return self.relevance * self.boost


@dataclass
class LocalCandidate(Candidate):
    """An ontology subject matched by the triple-store text search."""
    origin: ClassVar[OriginKind] = OriginKind.LOCAL


@dataclass
class RemoteCandidate(Candidate):
    """A DBpedia resource, from the live endpoint, the cache or the offline snapshot."""
    abstract: str = ""
    comment: str = ""
    thumbnail: str = ""
    source: str = "DBpedia"
    external_links: List[Dict[str, str]] = field(default_factory=list)

    origin: ClassVar[OriginKind] = OriginKind.REMOTE

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteCandidate":
        if not isinstance(data.get("uri"), str) or not isinstance(data.get("display_name"), str):
            raise TypeError("remote candidate needs string 'uri' and 'display_name'")
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def _display_source(candidate: Candidate) -> str:
    if candidate.origin is OriginKind.LOCAL:
        return "Ontología Local"
    if candidate.source == "Local Dataset":
        return f"DBpedia offline ({candidate.language.upper()})"
    return f"DBpedia ({candidate.language.upper()})"


def to_unified_result(candidate: Candidate, contextual_answer: Optional[str] = None) -> Dict[str, Any]:
    """Project a candidate onto the outward-facing result shape."""
    text = candidate.description
    result = {
        "id": candidate.id,
        "uri": candidate.uri,
        "name": candidate.display_name,
        "label": candidate.display_name,
        "resultType": candidate.origin.value,
        "displaySource": _display_source(candidate),
        "language": candidate.language,
        "relevance": round(candidate.relevance, 3),
        "score": round(candidate.boosted_score, 3),
        "category": candidate.category,
        "description": candidate.description,
        "properties": candidate.raw_properties,
        "contextualAnswer": contextual_answer,
    }
    if isinstance(candidate, RemoteCandidate):
        text = candidate.description or candidate.abstract or candidate.comment
        result.update({
            "abstract": candidate.abstract,
            "comment": candidate.comment,
            "thumbnail": candidate.thumbnail,
            "source": candidate.source,
            "externalLinks": candidate.external_links,
        })
    result["preview"] = generate_preview(text)
    return result
