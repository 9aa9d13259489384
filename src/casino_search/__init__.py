"""casino_search: semantic search over a casino games ontology, blended with DBpedia."""
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent.parent  # src/casino_search → src → repo root

__version__ = "0.3.0"
