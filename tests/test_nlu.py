import pytest

from casino_search.game_knowledge import generate_answer
from casino_search.nlu import QueryProcessor, normalize_text


@pytest.fixture(scope="module")
def processor():
    return QueryProcessor()


def test_normalize_text_strips_accents_and_marks():
    assert normalize_text("¿Cuál es la   PROBABILIDAD?") == "cual es la probabilidad"
    assert normalize_text("¡Póquer!") == "poquer"


def test_red_roulette_question_in_spanish(processor):
    analysis = processor.process_query("probabilidad rojo ruleta")

    assert analysis.language == "es"
    assert analysis.intent == "probability"
    assert analysis.game == "ruleta"
    assert analysis.specific_query == "redRoulette"
    assert "48.65%" in analysis.contextual_answer
    assert "ruleta" in analysis.search_terms
    assert "roulette" in analysis.search_terms


def test_english_probability_question(processor):
    analysis = processor.process_query("What are the odds in blackjack")

    assert analysis.language == "en"
    assert analysis.intent == "probability"
    assert analysis.game == "blackjack"
    assert analysis.specific_query is None
    assert "42.0%" in analysis.contextual_answer
    assert "winning probability" in analysis.contextual_answer


def test_language_tie_resolves_to_spanish(processor):
    assert processor.detect_language("blackjack") == "es"


def test_answer_language_can_be_forced(processor):
    analysis = processor.process_query("probabilidad rojo ruleta", answer_language="en")
    assert analysis.language == "es"
    assert analysis.contextual_answer.startswith("**Roulette - Red/Black**")


def test_unrecognized_query_has_default_intent_and_no_answer(processor):
    analysis = processor.process_query("xyz")
    assert analysis.intent == "search"
    assert analysis.game is None
    assert analysis.contextual_answer is None


@pytest.mark.parametrize("text, intent", [
    ("reglas del poker", "rules"),
    ("estrategia para blackjack", "strategy"),
    ("ventaja de la casa en dados", "houseEdge"),
    ("seguro en blackjack", "insurance"),
    ("baccarat", "specificGame"),
])
def test_intent_detection_first_match_wins(processor, text, intent):
    assert processor.detect_intent(normalize_text(text)) == intent


def test_insurance_gets_specific_answer(processor):
    analysis = processor.process_query("seguro en blackjack")
    assert analysis.specific_query == "insuranceBlackjack"
    assert "7.4%" in analysis.contextual_answer


def test_short_aliases_match_whole_words_only(processor):
    assert processor.identify_game("diet plan") is None
    assert processor.identify_game("el ano 2100") is None
    assert processor.identify_game("jugar al 21") == "blackjack"


def test_synonym_expansion_is_one_level(processor):
    keywords = processor.identify_keywords("roulette wheel")
    assert keywords == ["ruleta"]

    expanded = processor.expand_synonyms(keywords)
    assert "rueda" in expanded
    assert "roulette" in expanded
    assert "probability" not in expanded


def test_stop_words_and_short_tokens_are_not_search_terms(processor):
    analysis = processor.process_query("reglas para el poker")
    assert "para" not in analysis.search_terms
    assert "el" not in analysis.search_terms
    assert "poker" in analysis.search_terms


def test_search_terms_have_no_duplicates(processor):
    analysis = processor.process_query("ruleta ruleta roulette")
    assert len(analysis.search_terms) == len(set(analysis.search_terms))


def test_processing_error_falls_back_to_raw_query(processor, monkeypatch):
    def boom(normalized):
        raise RuntimeError("broken pattern table")

    monkeypatch.setattr(processor, "detect_intent", boom)
    analysis = processor.process_query("Ruleta Europea")

    assert analysis.language == "es"
    assert analysis.intent == "search"
    assert analysis.search_terms == ["Ruleta Europea"]
    assert analysis.normalized == "ruleta europea"


def test_analysis_serializes_with_camel_case_keys(processor):
    data = processor.process_query("probabilidad rojo ruleta").to_dict()
    assert data["specificQuery"] == "redRoulette"
    assert "searchTerms" in data
    assert "contextualAnswer" in data


def test_generate_answer_for_game_without_fixed_probability():
    answer = generate_answer("poker", "probability", None, "es")
    assert answer.startswith("**Poker**")
    assert "variable" in answer


def test_generate_answer_without_game_is_none():
    assert generate_answer(None, "probability", None, "es") is None
