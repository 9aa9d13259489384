"""
Query understanding for free-text casino questions.

Turns a raw query into normalized tokens, a detected language, an intent,
the expanded search terms used by the triple-store search and, when a game
and a precise sub-question are recognized, a canned contextual answer.
"""

import re
import logging
from dataclasses import dataclass, field, asdict
from typing import List, Optional, Dict, Any

from nltk.stem.snowball import SnowballStemmer
from nltk.tokenize import RegexpTokenizer

from casino_search.game_knowledge import (
    GAME_KNOWLEDGE,
    DOMAIN_SYNONYMS,
    STOP_WORDS,
    generate_answer,
)

logger = logging.getLogger(__name__)

_ACCENTS = str.maketrans({
    "á": "a", "é": "e", "í": "i", "ó": "o", "ú": "u", "ü": "u", "ñ": "n",
})
_PUNCTUATION = re.compile(r"[¿?¡!]")
_WHITESPACE = re.compile(r"\s+")

# Marker words voting for a language. Matched against accent-stripped tokens.
LANGUAGE_INDICATORS = {
    "es": {
        "cual", "cuales", "como", "que", "donde", "cuanto", "probabilidad",
        "del", "para", "el", "la", "los", "las", "de", "en", "es", "juego",
        "reglas", "estrategia", "apuesta", "ganar", "ventaja", "casa",
    },
    "en": {
        "what", "how", "which", "where", "probability", "the", "chance",
        "odds", "of", "is", "rules", "strategy", "bet", "win", "house",
        "edge", "game", "play",
    },
}

# Ordered (intent, patterns): the first intent with a matching pattern wins
INTENT_PATTERNS = [
    ("probability", [
        r"probabilidad|chance|odds|posibilidad|porcentaje|\bprob\b",
        r"cuanto.*ganar|what.*chance|how likely",
        r"que tan probable|how probable",
        r"cuales.*probabilidades|what.*odds",
    ]),
    ("redBlackRoulette", [
        r"ruleta.*\b(rojo|negro|red|black)\b",
        r"\b(rojo|negro|red|black)\b.*(ruleta|roulette)",
    ]),
    ("numberRoulette", [
        r"acertar.*numero.*ruleta",
        r"numero.*especifico.*ruleta",
        r"single number.*roulette",
    ]),
    ("evenOdd", [
        r"\b(par|impar|even|odd)\b.*(ruleta|roulette)",
        r"apostar.*\b(par|impar|even|odd)\b",
    ]),
    ("payout", [
        r"pago|premio|retorno|\brtp\b|ganancia|cuanto paga|payout",
        r"cuanto.*devuelve|how much.*pay",
        r"retorno.*jugador|return.*player",
    ]),
    ("rules", [
        r"reglas|\brules\b|como jugar|how to play",
        r"instrucciones|instructions|como funciona|how.*work",
        r"como se juega|explicar|explain",
    ]),
    ("strategy", [
        r"estrategia|strategy|tactica|tactic|consejo|\btips?\b|advice",
        r"como ganar|how to win|tecnica|technique",
        r"mejor.*manera|best way|forma.*ganar|way to win",
    ]),
    ("comparison", [
        r"\bmejor\b|\bbest\b|\bpeor\b|\bworst\b|comparar|compare",
        r"diferencia|difference|versus|\bvs\b|cual es mejor",
        r"que es mejor|which is better",
    ]),
    ("houseEdge", [
        r"ventaja casa|ventaja de la casa|house edge|margen casa|ventaja.*casino",
        r"casino.*ventaja|edge.*house",
    ]),
    ("definition", [
        r"que es|what is|define",
        r"significado|meaning|definicion|definition",
    ]),
    ("blackjackNatural", [
        r"recibir.*blackjack",
        r"blackjack.*natural",
    ]),
    ("insurance", [
        r"seguro.*blackjack|insurance.*blackjack",
        r"tomar.*seguro|take.*insurance",
        r"conviene.*seguro|should.*insurance",
    ]),
    ("pokerHands", [
        r"(escalera|full house|flush|straight).*(poker|poquer)",
    ]),
    ("specificGame", [
        r"blackjack|\b21\b|veintiuno",
        r"ruleta|roulette",
        r"poker|poquer",
        r"dados|craps",
        r"baccarat|bacara",
        r"tragamonedas|\bslots?\b",
    ]),
]

# (sub-query, subject pattern, game pattern). Checked in order on normalized text.
SPECIFIC_QUERY_PATTERNS = [
    ("redRoulette", r"\b(rojo|roja|red)\b", r"ruleta|roulette"),
    ("blackRoulette", r"\b(negro|negra|black)\b", r"ruleta|roulette"),
    ("evenRoulette", r"\b(par|pares|even)\b", r"ruleta|roulette"),
    ("oddRoulette", r"\b(impar|impares|odd)\b", r"ruleta|roulette"),
    ("numberRoulette", r"\b(numero|number)\b", r"ruleta|roulette"),
    ("insuranceBlackjack", r"\b(seguro|insurance)\b", r"blackjack"),
    ("naturalBlackjack", r"\bnatural\b", r"blackjack"),
    ("bankerBaccarat", r"\b(banca|banker)\b", r"baccarat|bacara"),
    ("tieBaccarat", r"\b(empate|tie)\b", r"baccarat|bacara"),
]

_COMPILED_INTENTS = [
    (intent, [re.compile(p) for p in patterns]) for intent, patterns in INTENT_PATTERNS
]
_COMPILED_SPECIFIC = [
    (name, re.compile(subject), re.compile(game))
    for name, subject, game in SPECIFIC_QUERY_PATTERNS
]

_STEMMER_LANGUAGES = {"es": "spanish", "en": "english"}


@dataclass
class QueryAnalysis:
    """Result of understanding one free-text query."""
    original: str
    normalized: str
    language: str
    tokens: List[str]
    search_terms: List[str]
    intent: str = "search"
    game: Optional[str] = None
    specific_query: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    contextual_answer: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            "original": data["original"],
            "normalized": data["normalized"],
            "language": data["language"],
            "tokens": data["tokens"],
            "intent": data["intent"],
            "game": data["game"],
            "specificQuery": data["specific_query"],
            "keywords": data["keywords"],
            "searchTerms": data["search_terms"],
            "contextualAnswer": data["contextual_answer"],
        }


def normalize_text(text: str) -> str:
    """Lowercase, strip accents and question/exclamation marks, collapse spaces."""
    normalized = (text or "").lower().strip().translate(_ACCENTS)
    normalized = _PUNCTUATION.sub("", normalized)
    return _WHITESPACE.sub(" ", normalized).strip()


def _alias_in_text(alias: str, text: str) -> bool:
    # Short aliases ("21", "die") only count as whole words
    if len(alias) <= 3:
        return re.search(r"\b" + re.escape(alias) + r"\b", text) is not None
    return alias in text


class QueryProcessor:
    """Language detection, intent classification and search-term expansion."""

    def __init__(self):
        self.tokenizer = RegexpTokenizer(r"\w+")
        self.stemmers = {
            code: SnowballStemmer(name) for code, name in _STEMMER_LANGUAGES.items()
        }

    def detect_language(self, text: str) -> str:
        """Vote between Spanish and English marker words. Ties resolve to Spanish.

        This is a heuristic for short queries, not a statistical classifier.
        """
        tokens = self.tokenizer.tokenize(normalize_text(text))
        spanish_score = sum(1 for t in tokens if t in LANGUAGE_INDICATORS["es"])
        english_score = sum(1 for t in tokens if t in LANGUAGE_INDICATORS["en"])
        return "es" if spanish_score >= english_score else "en"

    def tokenize(self, normalized: str) -> List[str]:
        return self.tokenizer.tokenize(normalized)

    def detect_intent(self, normalized: str) -> str:
        for intent, patterns in _COMPILED_INTENTS:
            if any(p.search(normalized) for p in patterns):
                return intent
        return "search"

    def identify_game(self, normalized: str) -> Optional[str]:
        for game, data in GAME_KNOWLEDGE.items():
            if any(_alias_in_text(name, normalized) for name in data["names"]):
                return game
        return None

    def identify_specific_query(self, normalized: str) -> Optional[str]:
        for name, subject, game in _COMPILED_SPECIFIC:
            if subject.search(normalized) and game.search(normalized):
                return name
        return None

    def identify_keywords(self, normalized: str) -> List[str]:
        """Canonical domain terms whose name or a synonym occurs in the text."""
        keywords = []
        for canonical, synonyms in DOMAIN_SYNONYMS.items():
            if _alias_in_text(canonical, normalized) or any(
                    _alias_in_text(s, normalized) for s in synonyms):
                keywords.append(canonical)
        return keywords

    def expand_synonyms(self, keywords: List[str]) -> List[str]:
        """One level of expansion: each keyword's declared synonyms, nothing further."""
        expanded = []
        for keyword in keywords:
            expanded.extend(DOMAIN_SYNONYMS.get(keyword, []))
        return expanded

    def extract_search_terms(self, tokens: List[str], keywords: List[str], language: str) -> List[str]:
        stop_words = STOP_WORDS.get(language, STOP_WORDS["es"])
        stemmer = self.stemmers.get(language, self.stemmers["es"])

        stems = [
            stemmer.stem(token) for token in tokens
            if len(token) > 3 and token not in stop_words
        ]

        terms = []
        for term in keywords + self.expand_synonyms(keywords) + stems:
            if term and term not in terms:
                terms.append(term)
        return terms

    def process_query(self, text: str, answer_language: Optional[str] = None) -> QueryAnalysis:
        """
        Analyse a raw query. Never raises: on any internal error a minimal
        analysis carrying the raw query as its only search term is returned.

        Args:
            text: The raw user query
            answer_language: Forces the contextual answer language ('es'/'en');
                None uses the detected language

        Returns:
            QueryAnalysis for the query
        """
        try:
            language = self.detect_language(text)
            normalized = normalize_text(text)
            tokens = self.tokenize(normalized)
            intent = self.detect_intent(normalized)
            game = self.identify_game(normalized)
            specific_query = self.identify_specific_query(normalized)
            keywords = self.identify_keywords(normalized)
            search_terms = self.extract_search_terms(tokens, keywords, language)

            contextual_answer = generate_answer(
                game, intent, specific_query, answer_language or language)

            analysis = QueryAnalysis(
                original=text,
                normalized=normalized,
                language=language,
                tokens=tokens,
                search_terms=search_terms,
                intent=intent,
                game=game,
                specific_query=specific_query,
                keywords=keywords,
                contextual_answer=contextual_answer,
            )
            logger.debug(f"Query analysis for '{text}': intent={intent}, game={game}, "
                         f"language={language}, terms={search_terms}")
            return analysis

        except Exception as e:
            logger.warning(f"Query processing failed for '{text}', using fallback: {str(e)}",
                           exc_info=True)
            raw = text if isinstance(text, str) else str(text)
            return QueryAnalysis(
                original=raw,
                normalized=raw.lower(),
                language="es",
                tokens=[raw],
                search_terms=[raw],
            )
