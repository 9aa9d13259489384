"""
Local relevance ranker: turns ontology search matches into LocalCandidates
and builds the enriched detail view of a single ontology subject.
"""

import re
import logging
from typing import List, Dict, Any, Optional

from casino_search.candidates import LocalCandidate, generate_id
from casino_search.game_knowledge import GAME_KNOWLEDGE
from casino_search.ontology_store import OntologyStore, extract_local_name

logger = logging.getLogger(__name__)

MAIN_DESCRIPTION_PROPERTIES = ["descripcion", "description", "definicion", "resumen", "concepto"]
DEFAULT_CATEGORY = "Juego de Casino"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def format_display_name(name: str) -> str:
    """'ApuestaRojo' -> 'Apuesta Rojo'"""
    spaced = _CAMEL_BOUNDARY.sub(" ", name or "").replace("_", " ").strip()
    return spaced[:1].upper() + spaced[1:]


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def find_main_description(properties: Dict[str, Any]) -> Optional[str]:
    for prop in MAIN_DESCRIPTION_PROPERTIES:
        value = _first(properties.get(prop))
        if isinstance(value, str) and len(value) > 20:
            return value
    return None


def get_category(properties: Dict[str, Any]) -> str:
    return _first(properties.get("categoria")) or _first(properties.get("tipo")) or DEFAULT_CATEGORY


def _game_for_name(name: str) -> Optional[str]:
    lowered = name.lower()
    for game, data in GAME_KNOWLEDGE.items():
        if game in lowered or any(len(alias) > 3 and alias in lowered for alias in data["names"]):
            return game
    return None


def generate_game_description(name: str, properties: Dict[str, Any]) -> str:
    """Fallback description assembled from the game knowledge table."""
    display = format_display_name(name)
    game = _game_for_name(name)
    if game:
        knowledge = GAME_KNOWLEDGE[game]
        return (f"{display}: {knowledge['description']['es']}. {knowledge['rules']['es']} "
                f"Ventaja de la casa aproximada: {knowledge['house_edge']}%.")

    kind = _first(properties.get("tipo"))
    kind_text = f"de tipo {kind} " if kind else ""
    return f"{display} es un juego de casino {kind_text}que ofrece entretenimiento y la posibilidad de ganar premios."


def generate_summary(name: str) -> str:
    game = _game_for_name(name)
    if game:
        return GAME_KNOWLEDGE[game]["description"]["es"] + "."
    return f"{format_display_name(name)} - Juego popular de casino con reglas y estrategias propias."


def generate_detail_context(properties: Dict[str, Any]) -> str:
    contexts = []
    edge = _first(properties.get("probabilidadCasa")) or _first(properties.get("ventajaCasa"))
    if edge:
        contexts.append(f"Ventaja de casa: {edge}")
    if properties.get("jugadores"):
        contexts.append(f"Número de jugadores: {_first(properties['jugadores'])}")
    if properties.get("dificultad"):
        contexts.append(f"Nivel de dificultad: {_first(properties['dificultad'])}")
    if properties.get("duracion"):
        contexts.append(f"Duración típica: {_first(properties['duracion'])}")
    return " | ".join(contexts)


def extract_key_features(properties: Dict[str, Any]) -> List[str]:
    features = []
    if properties.get("ventajaCasa"):
        features.append(f"Ventaja casa: {_first(properties['ventajaCasa'])}")
    if properties.get("jugadores"):
        features.append(f"{_first(properties['jugadores'])} jugadores")
    if properties.get("dificultad"):
        features.append(f"Dificultad: {_first(properties['dificultad'])}")
    return features


class LocalRanker:
    """Scores and formats local ontology matches."""

    def __init__(self, ontology_store: OntologyStore):
        self.ontology_store = ontology_store

    def to_candidates(self, matches: List[Dict[str, Any]]) -> List[LocalCandidate]:
        candidates = []
        for match in matches:
            properties = match.get("properties", {})
            name = match.get("name") or extract_local_name(match["uri"])
            label = match.get("label")
            display = label if label and label != name else format_display_name(name)
            description = find_main_description(properties) or generate_game_description(name, properties)

            candidates.append(LocalCandidate(
                uri=match["uri"],
                display_name=display,
                relevance=float(match.get("relevance", 1)),
                language="es",
                description=description,
                raw_properties=properties,
                category=get_category(properties),
            ))
        return candidates

    def search(self, query: str) -> List[LocalCandidate]:
        """Run the ontology text search and convert the matches. NotLoadedError propagates."""
        matches = self.ontology_store.search_by_text(query)
        candidates = self.to_candidates(matches)
        logger.info(f"Local search found {len(candidates)} results")
        return candidates

    def get_local_details(self, identifier: str) -> Optional[Dict[str, Any]]:
        """Detail view for a subject URI or the short id generated from it."""
        instance = self.ontology_store.describe_instance(identifier, id_of=generate_id)
        if not instance:
            return None

        uri = instance["uri"]
        properties = instance["properties"]
        name = extract_local_name(uri)
        return {
            "type": "local",
            "id": generate_id(uri),
            "uri": uri,
            "name": format_display_name(name),
            "properties": properties,
            "types": instance["types"],
            "source": "Local Ontology",
            "fullDescription": find_main_description(properties) or generate_game_description(name, properties),
            "summary": generate_summary(name),
            "contextualInfo": generate_detail_context(properties),
            "relatedConcepts": instance["relatedConcepts"],
            "category": get_category(properties),
            "keyFeatures": extract_key_features(properties),
        }
