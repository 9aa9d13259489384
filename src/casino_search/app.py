"""
Flask application for the casino semantic search service.
Contains the JSON API routes, the response envelope and application startup.
"""

import argparse
import logging
import secrets
import sys

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from logging.handlers import RotatingFileHandler

from casino_search import PROJECT_ROOT, __version__
from casino_search.config_loader import ConfigLoader
from casino_search.dbpedia_client import DBpediaClient
from casino_search.errors import CasinoSearchError, NotLoadedError, ValidationError
from casino_search.external_knowledge import ExternalKnowledgeAdapter
from casino_search.ontology_store import OntologyStore
from casino_search.search_cache import SearchCache
from casino_search.unified_search import UnifiedSearchService

logger = logging.getLogger(__name__)

TRUE_VALUES = {"true", "1", "yes", "on"}


def success_response(data=None, message="Success", status=200):
    return jsonify({"success": True, "message": message, "data": data}), status


def error_response(message="Error", status=500, errors=None):
    return jsonify({"success": False, "message": message, "errors": errors}), status


def _bool_arg(name, default=False):
    value = request.args.get(name)
    if value is None:
        return default
    return value.strip().lower() in TRUE_VALUES


def _int_arg(name, default):
    value = request.args.get(name)
    if value is None or value == "":
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ValidationError(f"Parameter '{name}' must be an integer")
    if parsed < 1:
        raise ValidationError(f"Parameter '{name}' must be positive")
    return parsed


def build_services(config, search_config=None):
    """Wire the ontology store, cache, DBpedia client and adapters from config."""
    ontology_store = OntologyStore(
        owl_file_path=config["owl_file_path"],
        namespace=config["ontology_namespace"],
        search_config=search_config,
    )
    cache = SearchCache(config["cache_dir"], ttl_days=config["cache_ttl_days"])
    client = DBpediaClient(
        endpoints={"en": config["dbpedia_endpoint_en"], "es": config["dbpedia_endpoint_es"]},
        query_timeout=config["query_timeout"],
    )
    external = ExternalKnowledgeAdapter(
        client=client,
        cache=cache,
        dataset_path=config["offline_dataset_path"],
        online_timeout=config["online_timeout"],
        sweep_interval=config["cache_sweep_interval"],
    )
    search_service = UnifiedSearchService(ontology_store, external)
    return ontology_store, search_service


def create_app(config, ontology_store, search_service):
    """Create and configure the Flask application."""
    app = Flask(__name__)

    secret_key = config.get("flask_secret_key")
    if not secret_key:
        secret_key = secrets.token_hex(32)
        logger.warning("No FLASK_SECRET_KEY configured in .env, using randomly generated key")
    app.config['SECRET_KEY'] = secret_key

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return error_response(str(e), 400)

    @app.errorhandler(NotLoadedError)
    def handle_not_loaded(e):
        logger.error(f"Ontology not loaded: {str(e)}")
        return error_response(str(e), 500)

    @app.errorhandler(CasinoSearchError)
    def handle_service_error(e):
        logger.error(f"Service error: {str(e)}", exc_info=True)
        return error_response(str(e), 500)

    @app.errorhandler(404)
    def handle_not_found(e):
        return error_response("Resource not found", 404)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return error_response(e.description, e.code)
        logger.error(f"Unexpected error handling {request.path}: {str(e)}", exc_info=True)
        return error_response("Internal server error", 500, [str(e)])

    # --- Routes ---

    @app.route('/')
    def index():
        """Service description"""
        return success_response({
            "name": "casino-search",
            "version": __version__,
            "ontologyLoaded": ontology_store.loaded,
        })

    # Ontology

    @app.route('/api/ontology/classes', methods=['GET'])
    def get_classes():
        classes = ontology_store.get_classes()
        return success_response(classes, f"{len(classes)} classes")

    @app.route('/api/ontology/instances/<class_name>', methods=['GET'])
    def get_instances(class_name):
        instances = ontology_store.get_instances_of_class(class_name)
        return success_response(instances, f"{len(instances)} instances of {class_name}")

    @app.route('/api/ontology/search', methods=['GET'])
    def search_ontology():
        """Local text search over the ontology only"""
        query = (request.args.get('query') or '').strip()
        if not query:
            raise ValidationError('Parameter "query" is required')

        logger.info(f"Ontology search: '{query}'")
        results = ontology_store.search_by_text(query)
        return success_response(
            {"local": results, "totalLocal": len(results)},
            f"{len(results)} local results",
        )

    @app.route('/api/ontology/properties', methods=['GET'])
    def get_properties():
        properties = ontology_store.get_properties()
        return success_response(properties, f"{len(properties)} properties")

    @app.route('/api/ontology/stats', methods=['GET'])
    def get_ontology_stats():
        return success_response(ontology_store.get_stats())

    @app.route('/api/ontology/reload', methods=['POST'])
    def reload_ontology():
        try:
            statements = ontology_store.reload()
        except (OSError, ValueError) as e:
            logger.error(f"Ontology reload failed: {str(e)}")
            return error_response(f"Ontology reload failed: {str(e)}", 500)
        return success_response({"totalStatements": statements}, "Ontology reloaded")

    # Unified search

    @app.route('/api/unified/search', methods=['GET'])
    def unified_search():
        """Fused local + DBpedia search"""
        query = (request.args.get('query') or '').strip()
        if not query:
            raise ValidationError('Parameter "query" is required')

        result = search_service.search(
            query,
            include_dbpedia=_bool_arg('includeDbpedia'),
            max_results=_int_arg('maxResults', 20),
            language=request.args.get('language', 'auto'),
            prefer_offline=_bool_arg('preferOffline'),
            mode=request.args.get('mode', 'hybrid'),
        )
        return success_response(result, f"{result['stats']['total']} results")

    @app.route('/api/unified/detail', methods=['GET'])
    @app.route('/api/unified/details', methods=['GET'])
    def unified_detail():
        identifier = request.args.get('id')
        result_type = request.args.get('type')
        uri = request.args.get('uri')
        if not (identifier or uri) or not result_type:
            raise ValidationError('Parameters "id" (or "uri") and "type" are required')

        detail = search_service.get_result_details(identifier or uri, result_type, uri)
        if detail is None:
            return error_response("Resource not found", 404)
        return success_response(detail)

    @app.route('/api/unified/init', methods=['POST'])
    def unified_init():
        search_service.init()
        return success_response(search_service.get_service_stats(), "Service initialized")

    @app.route('/api/unified/clean-cache', methods=['POST'])
    def clean_cache():
        cleaned = search_service.cleanup()
        return success_response({"cleaned": cleaned}, f"Removed {cleaned} cache entries")

    @app.route('/api/unified/reload-dataset', methods=['POST'])
    def reload_dataset():
        search_service.reload_local_dataset()
        return success_response(search_service.get_service_stats()["dbpedia"], "Dataset reloaded")

    @app.route('/api/unified/offline-mode', methods=['POST'])
    def set_offline_mode():
        payload = request.get_json(silent=True) or {}
        offline = payload.get('offline')
        if offline is None:
            raise ValidationError('Field "offline" is required')
        if isinstance(offline, str):
            offline = offline.strip().lower() in TRUE_VALUES
        search_service.external.set_offline_mode(bool(offline))
        return success_response({"offlineMode": search_service.external.offline_mode})

    @app.route('/api/unified/stats', methods=['GET'])
    def unified_stats():
        stats = search_service.get_service_stats()
        if ontology_store.loaded:
            stats["ontology"] = ontology_store.get_stats()
        else:
            stats["ontology"] = {"loaded": False, "totalInstances": 0}
        return success_response(stats)

    return app


def main():
    """Entry point: parse CLI args, configure logging, create app, and run."""
    log_dir = PROJECT_ROOT / 'logs'
    log_dir.mkdir(exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            RotatingFileHandler(str(log_dir / 'app.log'), maxBytes=10485760, backupCount=5),
            logging.StreamHandler()
        ]
    )

    parser = argparse.ArgumentParser(description='Casino games semantic search')
    parser.add_argument('--env', type=str, help='Path to environment file')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--port', type=int, default=None, help='Port to listen on (overrides PORT)')
    args = parser.parse_args()

    config = ConfigLoader.load_config(args.env)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.info("Debug logging enabled")
    else:
        logging.getLogger().setLevel(config.get("log_level", "INFO"))

    search_config = ConfigLoader.load_search_config()
    ontology_store, search_service = build_services(config, search_config)

    try:
        ontology_store.load_ontology()
    except Exception as e:
        logger.error(f"Error loading the ontology: {str(e)}")
        print(f"ERROR: {str(e)}")
        print("Application cannot start without the ontology. Check OWL_FILE_PATH and try again.")
        sys.exit(1)

    search_service.init()

    app = create_app(config, ontology_store, search_service)

    port = args.port or config.get("port", 5001)
    host = config.get("host", "127.0.0.1")
    print(f"Starting Flask application...")
    print(f"Running on http://{host}:{port}")
    print(f"Press CTRL+C to stop the server")

    app.run(debug=False, host=host, port=port)


if __name__ == '__main__':
    main()
