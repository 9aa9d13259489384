"""
Error taxonomy for the casino semantic search service.

Only NotLoadedError and ValidationError are meant to reach the HTTP boundary.
RemoteUnavailableError and CacheCorruptionError are recovered inside the
external knowledge adapter and the search cache respectively.
"""


class CasinoSearchError(Exception):
    """Base class for all service errors."""


class NotLoadedError(CasinoSearchError):
    """The ontology graph was queried before a successful load."""

    def __init__(self, message="Ontology not loaded. Call load_ontology() first."):
        super().__init__(message)


class ValidationError(CasinoSearchError):
    """A required request parameter is missing or invalid."""


class RemoteUnavailableError(CasinoSearchError):
    """The remote knowledge endpoint timed out or answered with an error."""

    def __init__(self, message, language=None):
        super().__init__(message)
        self.language = language


class CacheCorruptionError(CasinoSearchError):
    """A cache file exists but cannot be parsed."""

    def __init__(self, path, cause=None):
        super().__init__(f"Unreadable cache file: {path}")
        self.path = path
        self.cause = cause
