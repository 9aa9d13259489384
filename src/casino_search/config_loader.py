"""
Configuration loader for the casino semantic search service.
This module handles loading configuration from environment files and the
search tuning tables from config/search.yaml.
"""

import os
import copy
import logging
from typing import Dict, Any

import yaml
from dotenv import load_dotenv

from casino_search import PROJECT_ROOT

logger = logging.getLogger(__name__)

DEFAULT_ONTOLOGY_NAMESPACE = "http://www.semanticweb.org/casino/ontologies/2025/casino-games#"

# Used when config/search.yaml is missing or unreadable
DEFAULT_SEARCH_CONFIG = {
    'max_local_results': 10,
    'descriptive_predicates': [
        'descripcion', 'description', 'definicion', 'definition',
        'reglas', 'rules', 'objetivo', 'objective', 'resumen', 'summary',
        'estrategia', 'strategy', 'label', 'comment', 'nombre', 'name',
    ],
    'technical_terms': [
        'thing', 'nothing', 'class', 'property', 'ontology', 'restriction',
        'owl', 'rdf', 'rdfs', 'xsd', 'untitled', 'datatype', 'axiom',
    ],
}


def _resolve_path(path: str) -> str:
    """Resolve a configured path against the repository root."""
    if os.path.isabs(path):
        return path
    return str(PROJECT_ROOT / path)


class ConfigLoader:
    """Configuration loader for the casino semantic search service"""

    @staticmethod
    def load_config(env_file: str = None) -> Dict[str, Any]:
        """Load configuration from environment file"""
        config_dir = str(PROJECT_ROOT / "config")

        if env_file:
            # If relative path provided, check both config/ and absolute path
            if not os.path.isabs(env_file):
                config_path = os.path.join(config_dir, env_file)
                if os.path.exists(config_path):
                    env_file = config_path

            if os.path.exists(env_file):
                logger.info(f"Loading configuration from {env_file}")
                load_dotenv(env_file)
            else:
                logger.warning(f"Specified env file not found: {env_file}, loading default")
                default_env = os.path.join(config_dir, ".env")
                if os.path.exists(default_env):
                    load_dotenv(default_env)
        else:
            default_env = os.path.join(config_dir, ".env")
            if os.path.exists(default_env):
                logger.info(f"Loading configuration from {default_env}")
                load_dotenv(default_env)
            else:
                logger.warning("No .env file found in config/ directory, using environment and defaults")

        # Secrets (e.g. FLASK_SECRET_KEY) override the public .env
        secrets_file = os.path.join(config_dir, ".env.secrets")
        if os.path.exists(secrets_file):
            logger.info(f"Loading secrets from {secrets_file}")
            load_dotenv(secrets_file, override=True)

        config = {
            "port": int(os.environ.get("PORT", "5001")),
            "host": os.environ.get("HOST", "127.0.0.1"),
            "owl_file_path": _resolve_path(
                os.environ.get("OWL_FILE_PATH", "data/ontology/casino_games.owl")),
            "ontology_namespace": os.environ.get("ONTOLOGY_NAMESPACE", DEFAULT_ONTOLOGY_NAMESPACE),
            "cache_dir": _resolve_path(os.environ.get("DBPEDIA_CACHE_DIR", "data/dbpedia_cache")),
            "offline_dataset_path": _resolve_path(
                os.environ.get("OFFLINE_DATASET_PATH", "data/offline_dbpedia/casino_games_dataset.json")),
            "dbpedia_endpoint_en": os.environ.get("DBPEDIA_ENDPOINT_EN", "https://dbpedia.org/sparql"),
            "dbpedia_endpoint_es": os.environ.get("DBPEDIA_ENDPOINT_ES", "http://es.dbpedia.org/sparql"),
            "online_timeout": float(os.environ.get("DBPEDIA_ONLINE_TIMEOUT", "8")),
            "query_timeout": float(os.environ.get("DBPEDIA_QUERY_TIMEOUT", "6")),
            "cache_ttl_days": float(os.environ.get("CACHE_TTL_DAYS", "7")),
            "cache_sweep_interval": float(os.environ.get("CACHE_SWEEP_INTERVAL", "3600")),
            "flask_secret_key": os.environ.get("FLASK_SECRET_KEY"),
            "log_level": os.environ.get("LOG_LEVEL", "INFO").upper(),
        }

        if not os.path.exists(config["owl_file_path"]):
            logger.warning(f"OWL file not found at {config['owl_file_path']}. "
                           "The ontology endpoints will fail until it is available.")

        return config

    @staticmethod
    def load_search_config(path: str = None) -> Dict[str, Any]:
        """Load search tuning tables from config/search.yaml"""
        search_config_path = path or str(PROJECT_ROOT / "config" / "search.yaml")
        default_config = copy.deepcopy(DEFAULT_SEARCH_CONFIG)

        try:
            if os.path.exists(search_config_path):
                with open(search_config_path, 'r', encoding='utf-8') as f:
                    loaded_config = yaml.safe_load(f)
                logger.info(f"Loaded search configuration from {search_config_path}")
                if not loaded_config:
                    return default_config
                # Keys missing from the file keep their defaults
                default_config.update(loaded_config)
                return default_config
            else:
                logger.warning(f"Search config not found at {search_config_path}, using defaults")
                return default_config
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading search config: {str(e)}, using defaults")
            return default_config
