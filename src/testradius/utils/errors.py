"""Custom exception classes for testradius."""


class TestRadiusError(Exception):
    """Base exception for all testradius errors."""
    __test__ = False


class ConfigError(TestRadiusError):
    """Raised when configuration is invalid or missing."""
    pass


class InvalidEntityNameError(ConfigError):
    """Raised when the target entity name is not a valid resource identifier."""
    pass


class CorpusError(TestRadiusError):
    """Raised when the source tree cannot yield any candidate or relevant file."""
    pass


class ExtractionError(TestRadiusError):
    """Raised when a source construct cannot be extracted."""
    pass


class EnrichmentLoadError(TestRadiusError):
    """Raised when deep-parser enrichment records cannot be loaded or are invalid."""
    pass


class PersistenceError(TestRadiusError):
    """Raised when persisted tables cannot be written or read."""
    pass


class StoreIntegrityError(TestRadiusError):
    """Raised on duplicate keys or dangling foreign keys in the entity store."""
    pass
