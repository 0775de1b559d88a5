"""
specmock OpenAPI Module

Document/Operation abstraction over two interchangeable providers:

- ``native``: reads the parsed YAML/JSON dictionaries directly
- ``pydantic``: validates the document into ``openapi_pydantic`` models
"""

from .base import (
    Document,
    Operation,
    OperationDescription,
    Parameter,
    Response,
    SecurityComponent,
    transform_http_code,
    choose_response_code,
    choose_request_content_type,
    choose_response_content_type,
    security_parameters,
)
from .native import NativeDocument, NativeSchemaBuilder, PROVIDER_NATIVE
from .pydantic_provider import PydanticDocument, PydanticSchemaBuilder, PROVIDER_PYDANTIC
from .swagger2 import convert_v2_to_v3
from .cache import CacheOperationAdapter, CacheStorage, MemoryStorage, MISSING
from .loader import (
    PROVIDERS,
    new_document,
    new_document_from_content,
    new_document_from_file,
    parse_document_content,
)

__all__ = [
    # Abstraction
    'Document',
    'Operation',
    'OperationDescription',
    'Parameter',
    'Response',
    'SecurityComponent',
    'transform_http_code',
    'choose_response_code',
    'choose_request_content_type',
    'choose_response_content_type',
    'security_parameters',

    # Providers
    'NativeDocument',
    'NativeSchemaBuilder',
    'PydanticDocument',
    'PydanticSchemaBuilder',
    'PROVIDER_NATIVE',
    'PROVIDER_PYDANTIC',
    'PROVIDERS',
    'convert_v2_to_v3',

    # Loading
    'new_document',
    'new_document_from_content',
    'new_document_from_file',
    'parse_document_content',

    # Cache
    'CacheOperationAdapter',
    'CacheStorage',
    'MemoryStorage',
    'MISSING',
]
