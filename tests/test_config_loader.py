import os

from casino_search import PROJECT_ROOT
from casino_search.config_loader import DEFAULT_SEARCH_CONFIG, ConfigLoader

ENV_KEYS = ["PORT", "OWL_FILE_PATH", "DBPEDIA_CACHE_DIR", "DBPEDIA_ONLINE_TIMEOUT", "LOG_LEVEL"]


def test_env_file_values_and_path_resolution(tmp_path, monkeypatch):
    env_file = tmp_path / "test.env"
    env_file.write_text(
        "PORT=6001\n"
        "OWL_FILE_PATH=data/ontology/casino_games.owl\n"
        f"DBPEDIA_CACHE_DIR={tmp_path / 'cache'}\n"
        "DBPEDIA_ONLINE_TIMEOUT=2.5\n"
        "LOG_LEVEL=debug\n",
        encoding="utf-8",
    )
    # load_dotenv writes to os.environ: register the keys so they are removed afterwards
    for key in ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)

    config = ConfigLoader.load_config(str(env_file))

    assert config["port"] == 6001
    assert config["owl_file_path"] == str(PROJECT_ROOT / "data" / "ontology" / "casino_games.owl")
    assert config["cache_dir"] == str(tmp_path / "cache")
    assert config["online_timeout"] == 2.5
    assert config["log_level"] == "DEBUG"


def test_environment_wins_over_defaults(monkeypatch):
    monkeypatch.setenv("PORT", "7002")
    monkeypatch.setenv("CACHE_TTL_DAYS", "1")
    config = ConfigLoader.load_config(os.path.join("does", "not", "exist.env"))
    assert config["port"] == 7002
    assert config["cache_ttl_days"] == 1.0


def test_search_config_defaults_when_missing(tmp_path):
    config = ConfigLoader.load_search_config(str(tmp_path / "missing.yaml"))
    assert config == DEFAULT_SEARCH_CONFIG
    assert config is not DEFAULT_SEARCH_CONFIG


def test_search_config_partial_override(tmp_path):
    path = tmp_path / "search.yaml"
    path.write_text("max_local_results: 3\n", encoding="utf-8")

    config = ConfigLoader.load_search_config(str(path))
    assert config["max_local_results"] == 3
    assert config["technical_terms"] == DEFAULT_SEARCH_CONFIG["technical_terms"]


def test_search_config_invalid_yaml_falls_back(tmp_path):
    path = tmp_path / "search.yaml"
    path.write_text("max_local_results: [unclosed\n", encoding="utf-8")
    assert ConfigLoader.load_search_config(str(path)) == DEFAULT_SEARCH_CONFIG


def test_bundled_search_config_loads():
    config = ConfigLoader.load_search_config()
    assert config["max_local_results"] == 10
    assert "descripcion" in config["descriptive_predicates"]
