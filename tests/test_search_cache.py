import json

import pytest

from casino_search.search_cache import MS_PER_DAY, SearchCache, generate_cache_key

NOW = 1_700_000_000_000


class Clock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def cache(cache_dir, clock):
    return SearchCache(str(cache_dir), ttl_days=7, clock=clock)


def write_entry(cache_dir, key, expiry, results=None):
    path = cache_dir / f"{key}.json"
    path.write_text(json.dumps({
        "searchTerm": key,
        "results": results or {"english": [], "spanish": []},
        "timestamp": expiry - 1000,
        "expiry": expiry,
    }), encoding="utf-8")
    return path


def test_cache_key_generation():
    assert generate_cache_key("¿Ruleta Europea?") == "ruleta_europea"
    assert generate_cache_key("Blackjack") == "blackjack"
    assert generate_cache_key("¿¡!?").startswith("h_")
    assert generate_cache_key("¿¡!?") != generate_cache_key("ñññ")


def test_put_then_get(cache, cache_dir, clock):
    results = {"english": [{"uri": "http://dbpedia.org/resource/Craps"}], "spanish": []}
    cache.put("Craps", results)

    assert cache.get("craps") == results
    stored = json.loads((cache_dir / "craps.json").read_text(encoding="utf-8"))
    assert stored["timestamp"] == NOW
    assert stored["expiry"] == NOW + 7 * MS_PER_DAY


def test_entry_usable_until_expiry_inclusive(cache, cache_dir):
    write_entry(cache_dir, "ruleta", NOW)
    assert cache.get("ruleta") is not None


def test_expired_entry_is_a_miss_and_deleted(cache, cache_dir):
    path = write_entry(cache_dir, "ruleta", NOW - 1)

    assert cache.get("ruleta") is None
    assert not path.exists()


def test_entry_expires_when_clock_moves(cache, clock):
    cache.put("poker", {"english": [], "spanish": []})
    clock.now += 7 * MS_PER_DAY + 1
    assert cache.get("poker") is None


def test_corrupt_file_is_deleted(cache, cache_dir):
    path = cache_dir / "dados.json"
    path.write_text("{not json", encoding="utf-8")

    assert cache.get("dados") is None
    assert not path.exists()


def test_entry_without_expiry_is_corrupt(cache, cache_dir):
    path = cache_dir / "dados.json"
    path.write_text(json.dumps({"results": {}}), encoding="utf-8")

    assert cache.get("dados") is None
    assert not path.exists()


def test_payload_rejected_by_decoder_is_deleted(cache, cache_dir):
    path = write_entry(cache_dir, "dados", NOW + 1000, results={"english": "oops"})

    def decode(results):
        return [item["uri"] for item in results["english"]]

    assert cache.get("dados", decode=decode) is None
    assert not path.exists()


def test_decoder_rejections_are_skipped_while_scanning(cache, cache_dir):
    broken = write_entry(cache_dir, "broken", NOW + 1000, results={"english": [{}]})
    write_entry(cache_dir, "fine", NOW + 1000,
                results={"english": [{"uri": "http://dbpedia.org/resource/Craps"}]})

    decoded = list(cache.iter_valid_entries(decode=lambda r: [c["uri"] for c in r["english"]]))

    assert decoded == [["http://dbpedia.org/resource/Craps"]]
    assert not broken.exists()


def test_search_terms_never_share_a_file_with_details(cache, cache_dir):
    cache.put_detail("dbp", {"label": "Detail"})
    cache.put("Detail dbp", {"english": [], "spanish": [], "n": 1})

    assert cache.get_detail("dbp") == {"label": "Detail"}
    assert cache.get("detail  DBP")["n"] == 1
    assert "searchTerm" not in (cache_dir / "detail_dbp.json").read_text(encoding="utf-8")
    assert cache.get_stats()["count"] == 1


def test_clean_expired(cache, cache_dir):
    write_entry(cache_dir, "old", NOW - 1)
    (cache_dir / "broken.json").write_text("][", encoding="utf-8")
    write_entry(cache_dir, "fresh", NOW + 1000)

    assert cache.clean_expired() == 2
    assert sorted(p.name for p in cache_dir.iterdir()) == ["fresh.json"]


def test_details_are_separate_from_search_entries(cache):
    cache.put("baccarat", {"english": [], "spanish": []})
    cache.put_detail("dbp-en-baccarat", {"label": "Baccarat"})

    assert cache.get_detail("dbp-en-baccarat") == {"label": "Baccarat"}
    assert list(cache.iter_valid_entries()) == [{"english": [], "spanish": []}]

    stats = cache.get_stats()
    assert stats["count"] == 1
    assert stats["detail_count"] == 1
    assert stats["size_bytes"] > 0


def test_rewriting_a_key_keeps_last_write(cache):
    cache.put("blackjack", {"english": [], "spanish": [], "n": 1})
    cache.put("blackjack", {"english": [], "spanish": [], "n": 2})
    assert cache.get("blackjack")["n"] == 2
