# Error taxonomy shared by the store, the index adapter and the API


class LogstreamError(Exception):
    """Base class for logstream errors"""


class EventValidationError(LogstreamError):
    """Malformed event input. Raised before anything is written."""


class StoreError(LogstreamError):
    """Relational store unavailable or a query failed"""


class SearchIndexError(LogstreamError):
    """Search engine unavailable or a request to it failed"""


class ConfigError(LogstreamError):
    """Invalid configuration at startup"""
