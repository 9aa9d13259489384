from casino_search.candidates import LocalCandidate, OriginKind, normalize_name
from casino_search.fusion import combine_and_rank_results, remove_duplicates, score_remote

from conftest import make_remote

NS = "http://www.semanticweb.org/casino/ontologies/2025/casino-games#"


def local(name, relevance, description="x"):
    return LocalCandidate(uri=NS + name.replace(" ", ""), display_name=name,
                          relevance=relevance, description=description)


def test_normalize_name_drops_parenthetical_and_punctuation():
    assert normalize_name("Blackjack (casino game)") == "blackjack"
    assert normalize_name("Punto-Banco!") == "puntobanco"
    assert len(normalize_name("a" * 40)) == 20


def test_local_boost_beats_remote_at_equal_raw_score():
    fused = combine_and_rank_results(
        [local("Alpha", 5)],
        [make_remote("Beta", "http://dbpedia.org/resource/Beta", relevance=5)],
        "zzz",
    )
    assert [c.origin for c in fused.results] == [OriginKind.LOCAL, OriginKind.REMOTE]
    assert fused.results[0].boosted_score == 6.0
    assert fused.results[1].boosted_score == 5.0


def test_duplicate_keeps_higher_scoring_remote():
    fused = combine_and_rank_results(
        [local("Blackjack", 1)],
        [make_remote("Blackjack (casino game)", "http://dbpedia.org/resource/Blackjack", relevance=10)],
        "blackjack",
    )
    assert len(fused.results) == 1
    assert fused.results[0].origin is OriginKind.REMOTE
    assert fused.stats["merged"] == 1


def test_duplicate_keeps_higher_scoring_local():
    fused = combine_and_rank_results(
        [local("Blackjack", 20)],
        [make_remote("Blackjack (casino game)", "http://dbpedia.org/resource/Blackjack", relevance=10)],
        "blackjack",
    )
    assert len(fused.results) == 1
    assert fused.results[0].origin is OriginKind.LOCAL


def test_exact_tie_prefers_local_even_when_remote_came_first():
    remote = make_remote("Ruleta", "http://es.dbpedia.org/resource/Ruleta", "es", relevance=6)
    unique = remove_duplicates([remote, local("Ruleta", 5)])

    assert len(unique) == 1
    assert unique[0].origin is OriginKind.LOCAL


def test_candidates_without_foldable_name_are_never_merged():
    unique = remove_duplicates([local("¿?", 1), local("¡!", 1)])
    assert len(unique) == 2


def test_equal_scores_keep_insertion_order():
    fused = combine_and_rank_results([], [
        make_remote("Gamma", "http://dbpedia.org/resource/Gamma", relevance=3),
        make_remote("Delta", "http://dbpedia.org/resource/Delta", relevance=3),
    ], "zzz")
    assert [c.display_name for c in fused.results] == ["Gamma", "Delta"]


def test_truncation_and_stats():
    names = ["Uno", "Dos", "Tres", "Cuatro", "Cinco"]
    candidates = [local(name, i + 1) for i, name in enumerate(names)]
    fused = combine_and_rank_results(candidates, [], "zzz", max_results=2)

    assert [c.display_name for c in fused.results] == ["Cinco", "Cuatro"]
    assert fused.stats["total"] == 2
    assert fused.stats["local"] == 5
    assert fused.stats["external"] == 0
    assert fused.stats["maxRelevance"] == 6.0


def test_remote_bonuses():
    craps = make_remote("Craps", "http://dbpedia.org/resource/Craps", relevance=1, thumbnail="thumb.jpg")
    # 1 + exact label 8 + description 2 + abstract 2 + thumbnail 1
    assert score_remote(craps, "craps") == 14


def test_fusion_does_not_mutate_inputs():
    candidate = local("Ruleta", 2)
    combine_and_rank_results([candidate], [], "ruleta")
    assert candidate.relevance == 2
