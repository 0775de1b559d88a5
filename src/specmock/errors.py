"""
specmock errors

Typed exceptions shared across the package so that callers (mostly the HTTP
layer) can map failures to the right status code without string matching.
"""


class SpecmockError(Exception):
    """Base class for all specmock errors."""


class ConfigError(SpecmockError):
    """Invalid or unreadable configuration."""


class DocumentLoadError(SpecmockError):
    """OpenAPI document could not be read or parsed."""


class ContextLoadError(SpecmockError):
    """Context file could not be read or parsed."""


class ServiceNotFoundError(SpecmockError):
    """Service is not registered."""


class ResourceNotFoundError(SpecmockError):
    """Resource path is not known to the service or document."""


class MethodNotAllowedError(SpecmockError):
    """Resource exists but the HTTP method is not declared for it."""


class CacheStorageError(SpecmockError):
    """Cache backend failed to read or store a value."""


class ContentEncodeError(SpecmockError):
    """Generated content cannot be encoded with the requested content type."""
