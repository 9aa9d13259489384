"""
Triple-store query adapter over the casino games OWL ontology.

The rdflib Graph is owned by an OntologyStore and is never mutated after a
successful parse: reload() parses into a fresh Graph and swaps the reference,
so a reader always sees either the old or the new graph in full.
"""

import os
import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from rdflib import Graph, Namespace, URIRef, Literal, RDF, RDFS, OWL

from casino_search.config_loader import DEFAULT_ONTOLOGY_NAMESPACE, DEFAULT_SEARCH_CONFIG
from casino_search.errors import NotLoadedError
from casino_search.nlu import QueryProcessor, normalize_text

logger = logging.getLogger(__name__)

# Subjects typed with one of these are schema, not domain entities
SCHEMA_TYPES = {
    RDFS.Class, OWL.Class, RDF.Property, OWL.Ontology,
    OWL.ObjectProperty, OWL.DatatypeProperty, OWL.AnnotationProperty,
    OWL.FunctionalProperty, OWL.Restriction,
}

NAME_HIT_WEIGHT = 2
LITERAL_HIT_WEIGHT = 1


def extract_local_name(uri: str) -> str:
    """Fragment after '#', else the last path segment."""
    if not uri:
        return ""
    uri = str(uri)
    if "#" in uri:
        return uri.split("#", 1)[1]
    return uri.rstrip("/").split("/")[-1]


class OntologyStore:
    """Read-mostly wrapper around an rdflib Graph of the casino ontology."""

    def __init__(self, owl_file_path: str, namespace: str = DEFAULT_ONTOLOGY_NAMESPACE,
                 search_config: Dict[str, Any] = None, query_processor: QueryProcessor = None):
        self.owl_file_path = owl_file_path
        self.namespace = Namespace(namespace)
        search_config = search_config or DEFAULT_SEARCH_CONFIG
        self.max_results = int(search_config.get("max_local_results", 10))
        self.descriptive_predicates = [p.lower() for p in search_config.get("descriptive_predicates", [])]
        self.technical_terms = [t.lower() for t in search_config.get("technical_terms", [])]
        self.query_processor = query_processor or QueryProcessor()

        self._graph: Optional[Graph] = None
        self._reload_lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._graph is not None

    def load_ontology(self, owl_file_path: str = None) -> int:
        """
        Parse the OWL file (RDF/XML) into a new graph and make it current.

        On failure the previously loaded graph, if any, stays in place and
        the error is re-raised.

        Returns:
            Number of triples in the new graph
        """
        path = owl_file_path or self.owl_file_path
        with self._reload_lock:
            logger.info(f"Loading ontology from {path}")
            if not os.path.exists(path):
                raise FileNotFoundError(f"OWL file not found: {path}")

            graph = Graph()
            try:
                graph.parse(path, format="xml", publicID=str(self.namespace))
            except Exception as e:
                logger.error(f"Error parsing ontology {path}: {str(e)}")
                raise

            self._graph = graph
            self.owl_file_path = path
            logger.info(f"Ontology loaded: {len(graph)} statements")
            return len(graph)

    def reload(self) -> int:
        return self.load_ontology()

    def _require_graph(self) -> Graph:
        graph = self._graph
        if graph is None:
            raise NotLoadedError()
        return graph

    def _label(self, graph: Graph, resource) -> str:
        label = graph.value(resource, RDFS.label)
        return str(label) if label is not None else extract_local_name(resource)

    def _properties_of(self, graph: Graph, subject) -> Dict[str, Any]:
        """Predicate local name -> value, or list of values when repeated. rdf:type is skipped."""
        properties = defaultdict(list)
        for predicate, obj in graph.predicate_objects(subject):
            if predicate == RDF.type:
                continue
            properties[extract_local_name(predicate)].append(str(obj))
        return {k: v[0] if len(v) == 1 else sorted(v) for k, v in properties.items()}

    def _schema_subjects(self, graph: Graph) -> set:
        return {s for s, o in graph.subject_objects(RDF.type) if o in SCHEMA_TYPES}

    def _is_technical(self, name: str) -> bool:
        lowered = name.lower()
        return any(term in lowered for term in self.technical_terms)

    def _is_descriptive(self, predicate) -> bool:
        name = extract_local_name(predicate).lower()
        return any(p in name for p in self.descriptive_predicates)

    def _classes(self, graph: Graph) -> List[Dict[str, str]]:
        classes = sorted(s for s in graph.subjects(RDF.type, OWL.Class) if isinstance(s, URIRef))
        return [
            {"uri": str(c), "name": extract_local_name(c), "label": self._label(graph, c)}
            for c in classes
        ]

    def get_classes(self) -> List[Dict[str, str]]:
        return self._classes(self._require_graph())

    def get_instances_of_class(self, class_name: str) -> List[Dict[str, Any]]:
        graph = self._require_graph()
        class_uri = self.namespace[class_name]
        return [
            {
                "uri": str(instance),
                "name": extract_local_name(instance),
                "label": self._label(graph, instance),
                "properties": self._properties_of(graph, instance),
            }
            for instance in sorted(graph.subjects(RDF.type, class_uri))
        ]

    def _properties(self, graph: Graph) -> List[Dict[str, Any]]:
        properties = sorted(
            set(graph.subjects(RDF.type, OWL.ObjectProperty))
            | set(graph.subjects(RDF.type, OWL.DatatypeProperty))
        )
        results = []
        for prop in properties:
            domain = graph.value(prop, RDFS.domain)
            range_ = graph.value(prop, RDFS.range)
            results.append({
                "uri": str(prop),
                "name": extract_local_name(prop),
                "label": self._label(graph, prop),
                "type": "ObjectProperty" if (prop, RDF.type, OWL.ObjectProperty) in graph else "DatatypeProperty",
                "domain": extract_local_name(domain) if domain is not None else None,
                "range": extract_local_name(range_) if range_ is not None else None,
            })
        return results

    def get_properties(self) -> List[Dict[str, Any]]:
        return self._properties(self._require_graph())

    def _instances(self, graph: Graph) -> List[URIRef]:
        schema = self._schema_subjects(graph)
        instances = set()
        for subject in graph.subjects(RDF.type, None):
            if isinstance(subject, URIRef) and subject not in schema and "#" in str(subject):
                instances.add(subject)
        return sorted(instances)

    def get_stats(self) -> Dict[str, Any]:
        graph = self._require_graph()
        classes = self._classes(graph)
        properties = self._properties(graph)
        return {
            "totalClasses": len(classes),
            "totalProperties": len(properties),
            "totalStatements": len(graph),
            "totalInstances": len(self._instances(graph)),
            "classes": [c["name"] for c in classes],
            "properties": [p["name"] for p in properties],
        }

    def _types(self, graph: Graph, subject: URIRef) -> List[str]:
        return [
            extract_local_name(t) for t in graph.objects(subject, RDF.type)
            if t != OWL.NamedIndividual
        ]

    def _related(self, graph: Graph, subject: URIRef, limit: int) -> List[Dict[str, str]]:
        types = sorted(t for t in graph.objects(subject, RDF.type) if t != OWL.NamedIndividual)
        if not types:
            return []

        related = []
        for other in sorted(graph.subjects(RDF.type, types[0])):
            if other == subject or not isinstance(other, URIRef):
                continue
            related.append({
                "uri": str(other),
                "name": extract_local_name(other),
                "label": self._label(graph, other),
                "type": extract_local_name(types[0]),
            })
            if len(related) >= limit:
                break
        return related

    def describe_instance(self, identifier: str, id_of: Callable[[str], str] = None,
                          related_limit: int = 5) -> Optional[Dict[str, Any]]:
        """
        Properties, types and related concepts of one instance, all read from
        the same graph.

        Args:
            identifier: Subject URI, or a short id when id_of is given
            id_of: Maps an instance URI to its short id
            related_limit: Maximum number of related concepts

        Returns:
            None when the identifier matches no subject with properties
        """
        graph = self._require_graph()
        subject = None
        if identifier and "#" in identifier:
            subject = URIRef(identifier)
        elif identifier and id_of is not None:
            subject = next((s for s in self._instances(graph) if id_of(str(s)) == identifier), None)
        if subject is None:
            return None

        properties = self._properties_of(graph, subject)
        if not properties:
            return None
        return {
            "uri": str(subject),
            "properties": properties,
            "types": self._types(graph, subject),
            "relatedConcepts": self._related(graph, subject, related_limit),
        }

    def search_by_text(self, raw_query: str) -> List[Dict[str, Any]]:
        """
        Free-text search over instance names and descriptive literals.

        Each search term found in a subject's local name adds 2 to its
        relevance; each descriptive literal containing a term adds 1.
        Callers reject empty queries before reaching this method.

        Args:
            raw_query: The user query, expanded into search terms by the NLU

        Returns:
            Up to max_results matches, highest relevance first
        """
        graph = self._require_graph()
        analysis = self.query_processor.process_query(raw_query)
        terms = [normalize_text(t) for t in analysis.search_terms if t and t.strip()]
        if not terms:
            return []

        logger.info(f"Searching ontology for {terms} in {len(graph)} statements")

        schema = self._schema_subjects(graph)
        scores = defaultdict(int)

        for subject in set(graph.subjects()):
            if not isinstance(subject, URIRef) or "#" not in str(subject) or subject in schema:
                continue
            name = extract_local_name(subject)
            if not name or self._is_technical(name):
                continue

            folded_name = normalize_text(name)
            for term in terms:
                if term in folded_name:
                    scores[subject] += NAME_HIT_WEIGHT

            for predicate, obj in graph.predicate_objects(subject):
                if not isinstance(obj, Literal) or not self._is_descriptive(predicate):
                    continue
                folded_value = normalize_text(str(obj))
                for term in terms:
                    if term in folded_value:
                        scores[subject] += LITERAL_HIT_WEIGHT

        ranked = sorted(scores.items(), key=lambda item: (-item[1], str(item[0])))
        results = [
            {
                "uri": str(subject),
                "name": extract_local_name(subject),
                "label": self._label(graph, subject),
                "types": self._types(graph, subject),
                "properties": self._properties_of(graph, subject),
                "relevance": score,
            }
            for subject, score in ranked[:self.max_results]
        ]

        logger.info(f"Found {len(results)} ontology results for '{raw_query}'")
        return results
