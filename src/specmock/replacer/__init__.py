"""
specmock Replacer Module

Ordered chain of value sources used to fill every generated field.
"""

from .state import ReplaceState
from .impl import (
    NULL_VALUE,
    REPLACERS,
    ReplaceContext,
    apply_schema_constraints,
    has_correct_schema_value,
    is_correctly_replaced_type,
    replace_value_with_context,
    replace_in_headers,
    replace_in_path,
    replace_from_context,
    replace_from_schema_format,
    replace_from_schema_primitive,
    replace_from_schema_example,
    replace_from_schema_fallback,
)
from .factory import ValueReplacer, create_value_replacer, get_context_functions

__all__ = [
    'ReplaceState',
    'ReplaceContext',
    'ValueReplacer',
    'create_value_replacer',
    'get_context_functions',
    'NULL_VALUE',
    'REPLACERS',
    'apply_schema_constraints',
    'has_correct_schema_value',
    'is_correctly_replaced_type',
    'replace_value_with_context',
    'replace_in_headers',
    'replace_in_path',
    'replace_from_context',
    'replace_from_schema_format',
    'replace_from_schema_primitive',
    'replace_from_schema_example',
    'replace_from_schema_fallback',
]
