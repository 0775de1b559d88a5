"""
specmock Schema Module

Normalized schema model and the provider agnostic builder that merges
polymorphic sub-schemas and bounds recursion.
"""

from .model import (
    Schema,
    TYPE_OBJECT,
    TYPE_ARRAY,
    TYPE_STRING,
    TYPE_INTEGER,
    TYPE_NUMBER,
    TYPE_BOOLEAN,
    OPENAPI_TYPES,
    fix_schema_type_typos,
    get_openapi_type_from_value,
)
from .builder import SchemaBuilder, ADDITIONAL_PROPERTIES_PREFIX, ADDITIONAL_PROPERTIES_COUNT

__all__ = [
    'Schema',
    'SchemaBuilder',
    'TYPE_OBJECT',
    'TYPE_ARRAY',
    'TYPE_STRING',
    'TYPE_INTEGER',
    'TYPE_NUMBER',
    'TYPE_BOOLEAN',
    'OPENAPI_TYPES',
    'ADDITIONAL_PROPERTIES_PREFIX',
    'ADDITIONAL_PROPERTIES_COUNT',
    'fix_schema_type_typos',
    'get_openapi_type_from_value',
]
