"""Adapter-specific exceptions."""


class AdapterError(Exception):
    """Base exception for adapter errors."""


class ConnectionError(AdapterError):
    """Raised when the adapter cannot reach the search engine."""


class QueryError(AdapterError):
    """Raised when an engine request (index, get, search, ...) fails."""


class ConfigurationError(AdapterError):
    """Raised when adapter configuration is invalid."""
