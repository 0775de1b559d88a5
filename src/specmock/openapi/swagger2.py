"""
specmock Swagger 2.0 helpers

Helpers to read Swagger 2.0 parameters, responses and security
definitions, and ``convert_v2_to_v3`` which upgrades a whole Swagger 2.0
document to an OpenAPI 3.0 one for providers that only understand 3.x.
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Tuple

from .base import (
    AUTH_SCHEME_BASIC,
    AUTH_SCHEME_BEARER,
    HTTP_METHODS,
    SECURITY_TYPE_API_KEY,
    SECURITY_TYPE_HTTP,
)


logger = logging.getLogger("specmock.openapi")

DEFAULT_CONTENT_TYPE = 'application/json'
FORM_CONTENT_TYPES = ('multipart/form-data', 'application/x-www-form-urlencoded')

SCHEMA_KEYS = (
    'type', 'format', 'items', 'enum', 'default', 'minimum', 'maximum',
    'exclusiveMinimum', 'exclusiveMaximum', 'multipleOf', 'minLength',
    'maxLength', 'pattern', 'minItems', 'maxItems', 'uniqueItems',
)

_REF_PREFIXES = {
    '#/definitions/': '#/components/schemas/',
    '#/parameters/': '#/components/parameters/',
    '#/responses/': '#/components/responses/',
}


def parameter_schema(param: Dict[str, Any]) -> Dict[str, Any]:
    """
    Schema of a non-body Swagger parameter or header.

    Swagger keeps type information directly on the parameter; ``file``
    parameters become binary strings.
    """
    schema = {key: copy.deepcopy(param[key]) for key in SCHEMA_KEYS if key in param}
    if schema.get('type') == 'file':
        schema['type'] = 'string'
        schema['format'] = 'binary'
    if isinstance(schema.get('items'), dict) and '$ref' not in schema['items']:
        schema['items'] = parameter_schema(schema['items'])
    return schema


def form_schema(params: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Object schema built from ``formData`` parameters."""
    schema: Dict[str, Any] = {
        'type': 'object',
        'properties': {p['name']: parameter_schema(p) for p in params},
    }
    required = [p['name'] for p in params if p.get('required')]
    if required:
        schema['required'] = required
    return schema


def split_parameters(params: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Split parameters into regular ones, the body parameter and form fields.

    Returns:
        Tuple of (regular parameters, body parameter or None, formData parameters)
    """
    regular, form = [], []
    body = None
    for param in params:
        location = param.get('in')
        if location == 'body':
            body = param
        elif location == 'formData':
            form.append(param)
        else:
            regular.append(param)
    return regular, body, form


def merge_parameters(path_params: List[Dict[str, Any]], op_params: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Path level parameters overridden by operation ones with the same name and location."""
    merged: Dict[Tuple[str, str], Dict[str, Any]] = {}
    for param in [*path_params, *op_params]:
        merged[(param.get('name', ''), param.get('in', ''))] = param
    return list(merged.values())


def consumes(document: Dict[str, Any], operation: Dict[str, Any]) -> List[str]:
    return list(operation.get('consumes') or document.get('consumes') or [DEFAULT_CONTENT_TYPE])


def produces(document: Dict[str, Any], operation: Dict[str, Any]) -> List[str]:
    return list(operation.get('produces') or document.get('produces') or [DEFAULT_CONTENT_TYPE])


def form_content_types(document: Dict[str, Any], operation: Dict[str, Any]) -> List[str]:
    types = [t for t in consumes(document, operation) if t in FORM_CONTENT_TYPES]
    return types or ['application/x-www-form-urlencoded']


def convert_security_definition(definition: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Convert a Swagger security definition into an OpenAPI 3 security scheme.

    ``basic`` becomes http basic. An apiKey named ``authorization`` is how
    Swagger describes bearer tokens, so it becomes http bearer.

    Returns:
        Security scheme dict, or None for unsupported types (oauth2)
    """
    typ = definition.get('type')
    if typ == 'basic':
        return {'type': SECURITY_TYPE_HTTP, 'scheme': AUTH_SCHEME_BASIC}
    if typ == SECURITY_TYPE_API_KEY:
        name = definition.get('name', '')
        if name.lower() == 'authorization':
            return {'type': SECURITY_TYPE_HTTP, 'scheme': AUTH_SCHEME_BEARER}
        return {'type': SECURITY_TYPE_API_KEY, 'name': name, 'in': definition.get('in', 'header')}
    return None


def _rewrite_refs(node: Any) -> Any:
    if isinstance(node, dict):
        result = {}
        for key, value in node.items():
            if key == '$ref' and isinstance(value, str):
                for old, new in _REF_PREFIXES.items():
                    if value.startswith(old):
                        value = new + value[len(old):]
                        break
                result[key] = value
            else:
                result[key] = _rewrite_refs(value)
        return result
    if isinstance(node, list):
        return [_rewrite_refs(item) for item in node]
    return node


def _resolve_local(document: Dict[str, Any], node: Any, section: str) -> Any:
    """Inline ``#/parameters/x`` and ``#/responses/x`` references."""
    if isinstance(node, dict) and isinstance(node.get('$ref'), str):
        ref = node['$ref']
        prefix = f'#/{section}/'
        if ref.startswith(prefix):
            target = (document.get(section) or {}).get(ref[len(prefix):])
            if target is None:
                logger.warning(f"Unresolved reference: {ref}")
                return None
            return target
    return node


def _convert_response(document: Dict[str, Any], operation: Dict[str, Any], response: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {'description': response.get('description', '')}

    headers = {}
    for name, header in (response.get('headers') or {}).items():
        headers[name] = {'schema': parameter_schema(header)}
        if 'x-example' in header:
            headers[name]['example'] = header['x-example']
    if headers:
        result['headers'] = headers

    if response.get('schema') is not None:
        result['content'] = {
            content_type: {'schema': copy.deepcopy(response['schema'])}
            for content_type in produces(document, operation)
        }
    return result


def _convert_operation(document: Dict[str, Any], path_params: List[Dict[str, Any]], operation: Dict[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        key: copy.deepcopy(operation[key])
        for key in ('operationId', 'summary', 'description', 'tags', 'deprecated', 'security')
        if key in operation
    }

    op_params = [_resolve_local(document, p, 'parameters') for p in operation.get('parameters') or []]
    params = merge_parameters(path_params, [p for p in op_params if p is not None])
    regular, body, form = split_parameters(params)

    converted = []
    for param in regular:
        item = {
            'name': param.get('name', ''),
            'in': param.get('in', 'query'),
            'required': bool(param.get('required', param.get('in') == 'path')),
            'schema': parameter_schema(param),
        }
        if 'x-example' in param:
            item['example'] = param['x-example']
        converted.append(item)
    if converted:
        result['parameters'] = converted

    if body is not None:
        result['requestBody'] = {
            'required': bool(body.get('required')),
            'content': {
                content_type: {'schema': copy.deepcopy(body.get('schema') or {})}
                for content_type in consumes(document, operation)
            },
        }
    elif form:
        schema = form_schema(form)
        result['requestBody'] = {
            'content': {
                content_type: {'schema': copy.deepcopy(schema)}
                for content_type in form_content_types(document, operation)
            },
        }

    responses = {}
    for code, response in (operation.get('responses') or {}).items():
        response = _resolve_local(document, response, 'responses')
        if response is None:
            continue
        responses[str(code)] = _convert_response(document, operation, response)
    result['responses'] = responses or {'default': {'description': ''}}

    return result


def convert_v2_to_v3(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Upgrade a Swagger 2.0 document to OpenAPI 3.0.

    Body and formData parameters become request bodies, ``produces`` and
    ``consumes`` become media types, definitions move to
    ``components.schemas`` and references are rewritten accordingly.

    Args:
        document: Parsed Swagger 2.0 document

    Returns:
        OpenAPI 3.0.3 document
    """
    result: Dict[str, Any] = {
        'openapi': '3.0.3',
        'info': copy.deepcopy(document.get('info') or {'title': '', 'version': ''}),
        'paths': {},
    }

    host = document.get('host')
    if host:
        scheme = (document.get('schemes') or ['https'])[0]
        result['servers'] = [{'url': f"{scheme}://{host}{document.get('basePath', '')}"}]

    for path, path_item in (document.get('paths') or {}).items():
        if not isinstance(path_item, dict):
            continue
        path_params = [_resolve_local(document, p, 'parameters') for p in path_item.get('parameters') or []]
        path_params = [p for p in path_params if p is not None]

        converted_item = {}
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if isinstance(operation, dict):
                converted_item[method] = _convert_operation(document, path_params, operation)
        result['paths'][str(path)] = converted_item

    components: Dict[str, Any] = {}
    if document.get('definitions'):
        components['schemas'] = copy.deepcopy(document['definitions'])

    schemes = {}
    for name, definition in (document.get('securityDefinitions') or {}).items():
        scheme = convert_security_definition(definition)
        if scheme is not None:
            schemes[name] = scheme
    if schemes:
        components['securitySchemes'] = schemes
    if components:
        result['components'] = components

    if 'security' in document:
        result['security'] = copy.deepcopy(document['security'])

    return _rewrite_refs(result)
