"""
specmock URL, query and header generation
"""

import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote_plus

from ..openapi import Parameter
from ..replacer import ReplaceState
from ..schema import TYPE_STRING, Schema
from .content import ValueReplacerFunc, extract_placeholders, generate_content_from_schema


logger = logging.getLogger("specmock.generator")

PARAM_IN_PATH = 'path'
PARAM_IN_QUERY = 'query'
PARAM_IN_HEADER = 'header'

# Managed by the HTTP layer, values from the document would mislead clients.
SKIP_RESPONSE_HEADERS = ('content-encoding', 'content-length', 'transfer-encoding')


def generate_url_from_schema_parameters(
    path: str,
    replacer: ValueReplacerFunc,
    params: Sequence[Parameter],
) -> str:
    """
    Fill the ``{name}`` segments of a resource path.

    Placeholders without a declared path parameter are filled as strings.

    Example:
        generate_url_from_schema_parameters('/pets/{id}', replacer, params)
        # '/pets/1234'
    """
    declared = set()
    for param in params:
        if param is None or param.in_ != PARAM_IN_PATH:
            continue
        declared.add(param.name)

        state = ReplaceState().with_name(param.name).with_path_param()
        value = replacer(param.schema, state)
        if value is None or str(value) == '':
            logger.warning(f"Parameter '{param.name}' not replaced in URL path {path}")
            continue
        path = path.replace('{' + param.name + '}', str(value))

    for placeholder in extract_placeholders(path):
        name = placeholder[1:-1]
        if name in declared:
            continue
        state = ReplaceState().with_name(name).with_path_param()
        value = replacer(Schema(type=TYPE_STRING), state)
        if value is not None and str(value) != '':
            path = path.replace(placeholder, str(value))

    return path


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def generate_query(replacer: ValueReplacerFunc, params: Sequence[Parameter]) -> str:
    """
    Query string for the query parameters, without the leading ``?``.

    Array values are repeated as ``name[]=item``.
    """
    pairs: List[str] = []
    for param in params:
        if param is None or param.in_ != PARAM_IN_QUERY:
            continue

        state = ReplaceState().with_name(param.name)
        value = generate_content_from_schema(param.schema, replacer, state)
        if value is None:
            value = ''

        if isinstance(value, list):
            for item in value:
                pairs.append(f"{param.name}[]={quote_plus(_query_value(item))}")
        else:
            pairs.append(f"{param.name}={quote_plus(_query_value(value))}")

    return '&'.join(pairs)


def generate_request_headers(
    params: Sequence[Parameter],
    replacer: ValueReplacerFunc,
) -> Dict[str, Any]:
    """Header parameter values by lower-cased name."""
    result: Dict[str, Any] = {}
    for param in params:
        if param is None or param.in_.lower() != PARAM_IN_HEADER or param.schema is None:
            continue

        name = param.name.lower()
        state = ReplaceState().with_name(name).with_header()
        result[name] = generate_content_from_schema(param.schema, replacer, state)
    return result


def generate_response_headers(
    headers: Dict[str, Parameter],
    replacer: ValueReplacerFunc,
) -> Dict[str, str]:
    """Response header values as strings, skipping transport headers."""
    result: Dict[str, str] = {}
    for name, header in headers.items():
        name = name.lower()
        if name in SKIP_RESPONSE_HEADERS:
            continue

        schema: Optional[Schema] = header.schema if header is not None else None
        state = ReplaceState().with_name(name).with_header()
        value = generate_content_from_schema(schema, replacer, state)
        if value is None:
            continue
        result[name] = _query_value(value)
    return result
